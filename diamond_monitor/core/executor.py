"""Executor Module - Runs monitoring modules sequentially or concurrently."""

import asyncio
import logging
import traceback
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .config import ExecutionConfig
from .events import EventBus, EventType, MonitoringEvent
from .retry import RetryPolicy, execute_with_retry, run_with_timeout
from .types import (
    Issue,
    ModuleOutcome,
    ModuleResult,
    MonitoringContext,
    Severity,
    Status,
    derive_status,
)

logger = logging.getLogger(__name__)


def _elapsed_ms(started_at: datetime, completed_at: datetime) -> int:
    return int((completed_at - started_at).total_seconds() * 1000)


class ExecutionScheduler:
    """Executes an ordered module list and collects one result per module.

    Concurrent mode runs ``max_concurrency`` workers that pull modules from a
    queue in the given order. The order is an admission order only: a module
    may start while a module it depends on is still running. Use sequential
    mode when dependencies must have finished first.
    """

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: Optional[float] = 30.0,
    ):
        """Initialize the scheduler.

        Args:
            event_bus: Bus receiving module lifecycle events
            retry_policy: Retry policy for applicability checks and module runs
            timeout: Deadline in seconds for each module run (None disables)
        """
        self.event_bus = event_bus or EventBus()
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout

    @classmethod
    def from_config(
        cls,
        execution: ExecutionConfig,
        event_bus: Optional[EventBus] = None,
    ) -> "ExecutionScheduler":
        return cls(
            event_bus=event_bus,
            retry_policy=execution.retry,
            timeout=execution.timeout,
        )

    async def execute(
        self,
        modules: Sequence[Any],
        context: MonitoringContext,
    ) -> List[ModuleResult]:
        """Run modules with the strategy selected by the run configuration."""
        execution = context.config.execution
        if execution.parallel_execution:
            return await self.run_concurrent(modules, context, execution.max_concurrency)
        return await self.run_sequential(modules, context, execution.fail_fast)

    async def run_sequential(
        self,
        modules: Sequence[Any],
        context: MonitoringContext,
        fail_fast: bool = False,
    ) -> List[ModuleResult]:
        """Run modules one after another.

        Args:
            modules: Dependency-ordered modules
            context: Shared monitoring context
            fail_fast: Stop scheduling after the first failed module

        Returns:
            Results of the modules that were run, in order
        """
        results: List[ModuleResult] = []

        for module in modules:
            result = await self.run_single_module(module, context)
            results.append(result)

            if fail_fast and result.status == Status.FAIL:
                remaining = len(modules) - len(results)
                logger.info(
                    "Module '%s' failed, fail-fast skips %d remaining module(s)",
                    module.id,
                    remaining,
                )
                break

        return results

    async def run_concurrent(
        self,
        modules: Sequence[Any],
        context: MonitoringContext,
        max_concurrency: int = 3,
    ) -> List[ModuleResult]:
        """Run modules with at most ``max_concurrency`` in flight.

        Returns:
            Results sorted by start time
        """
        if not modules:
            return []

        queue: asyncio.Queue = asyncio.Queue()
        for index, module in enumerate(modules):
            queue.put_nowait((index, module))

        results: List[Optional[ModuleResult]] = [None] * len(modules)

        async def worker() -> None:
            while True:
                try:
                    index, module = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                results[index] = await self.run_single_module(module, context)

        worker_count = max(1, min(max_concurrency, len(modules)))
        await asyncio.gather(*(worker() for _ in range(worker_count)))

        collected = [r for r in results if r is not None]
        # Stable sort keeps admission order for equal start times.
        return sorted(collected, key=lambda r: r.started_at)

    async def run_single_module(
        self,
        module: Any,
        context: MonitoringContext,
    ) -> ModuleResult:
        """Run one module: check applicability, execute with retry and deadline, clean up.

        Never raises for module failures; they come back as a FAIL result
        carrying one CRITICAL issue.
        """
        started_at = datetime.now()
        self._emit(EventType.MODULE_START, module.id, {"module": module.name}, started_at)
        self._log(context, "Running %s...", module.name)

        module_context = context

        try:
            module_context = replace(
                context,
                module_config=self._module_config(module, context),
            )

            can_monitor = await execute_with_retry(
                lambda: module.can_monitor(context.diamond, context.network),
                f"{module.name} can_monitor check",
                self.retry_policy,
            )

            if not can_monitor:
                result = self._skipped_result(module, started_at)
                self._log(context, "Skipped %s (cannot monitor this diamond)", module.name)
                self._emit(
                    EventType.MODULE_COMPLETE,
                    module.id,
                    {"result": result.outcome, "status": result.status.value},
                    result.completed_at,
                )
                return result

            outcome = await run_with_timeout(
                execute_with_retry(
                    lambda: module.run(module_context),
                    f"{module.name} monitoring",
                    self.retry_policy,
                ),
                self.timeout,
                module.name,
            )
            if not isinstance(outcome, ModuleOutcome):
                raise TypeError(
                    f"Module '{module.id}' returned {type(outcome).__name__}, "
                    "expected ModuleOutcome"
                )

            result = self._completed_result(module, outcome, started_at)

            for issue in result.issues:
                self._emit(EventType.ISSUE_FOUND, module.id, {"issue": issue})

            self._log(
                context,
                "%s %s completed in %dms with %d issue(s)",
                result.status.icon,
                module.name,
                result.duration_ms,
                len(result.issues),
            )
            self._emit(
                EventType.MODULE_COMPLETE,
                module.id,
                {"result": result.outcome, "status": result.status.value},
                result.completed_at,
            )
            return result

        except Exception as e:
            result = self._error_result(module, e, started_at)
            logger.error(
                "Module '%s' execution failed after %dms: %s",
                module.name,
                result.duration_ms,
                e,
            )
            self._emit(
                EventType.MODULE_ERROR,
                module.id,
                {"error": str(e), "result": result.outcome},
                result.completed_at,
            )
            return result

        finally:
            await self._cleanup(module, module_context)

    def _completed_result(
        self,
        module: Any,
        outcome: ModuleOutcome,
        started_at: datetime,
    ) -> ModuleResult:
        if outcome.status == Status.SKIPPED and not outcome.issues:
            status = Status.SKIPPED
        else:
            status = derive_status(outcome.issues)
        outcome = replace(outcome, status=status, issues=list(outcome.issues))

        return ModuleResult(
            module_id=module.id,
            module_name=module.name,
            status=status,
            outcome=outcome,
            started_at=started_at,
            completed_at=self._now_after(started_at),
        )

    def _skipped_result(self, module: Any, started_at: datetime) -> ModuleResult:
        completed_at = self._now_after(started_at)
        return ModuleResult(
            module_id=module.id,
            module_name=module.name,
            status=Status.SKIPPED,
            outcome=ModuleOutcome(
                status=Status.SKIPPED,
                execution_time_ms=_elapsed_ms(started_at, completed_at),
                metadata={"reason": "Module cannot monitor this diamond"},
            ),
            started_at=started_at,
            completed_at=completed_at,
        )

    def _error_result(
        self,
        module: Any,
        error: Exception,
        started_at: datetime,
    ) -> ModuleResult:
        completed_at = self._now_after(started_at)
        message = str(error) or type(error).__name__
        issue = Issue(
            id="module-error",
            title="Module Execution Error",
            description=f"Module '{module.name}' failed: {message}",
            severity=Severity.CRITICAL,
            category="system",
            metadata={
                "stack_trace": "".join(
                    traceback.format_exception(type(error), error, error.__traceback__)
                ),
                "timestamp": completed_at.isoformat(),
            },
        )
        return ModuleResult(
            module_id=module.id,
            module_name=module.name,
            status=Status.FAIL,
            outcome=ModuleOutcome(
                status=Status.FAIL,
                issues=[issue],
                execution_time_ms=_elapsed_ms(started_at, completed_at),
                metadata={"error": message},
            ),
            started_at=started_at,
            completed_at=completed_at,
            error=error,
        )

    async def _cleanup(self, module: Any, context: MonitoringContext) -> None:
        cleanup = getattr(module, "cleanup", None)
        if cleanup is None:
            return
        try:
            await cleanup(context)
        except Exception as e:
            logger.warning("Cleanup failed for module '%s': %s", module.name, e)

    def _module_config(self, module: Any, context: MonitoringContext) -> Dict[str, Any]:
        raw = context.config.module_config(module.id)
        if not isinstance(raw, dict):
            raise TypeError(
                f"Configuration of module '{module.id}' must be a mapping, "
                f"got {type(raw).__name__}"
            )
        resolve = getattr(module, "resolve_config", None)
        return resolve(raw) if resolve else dict(raw)

    def _emit(
        self,
        event_type: EventType,
        module_id: str,
        data: Dict[str, Any],
        timestamp: Optional[datetime] = None,
    ) -> None:
        self.event_bus.emit(
            MonitoringEvent(
                type=event_type,
                timestamp=timestamp or datetime.now(),
                module_id=module_id,
                data=data,
            )
        )

    @staticmethod
    def _log(context: MonitoringContext, message: str, *args: Any) -> None:
        level = logging.INFO if context.verbose else logging.DEBUG
        logger.log(level, message, *args)

    @staticmethod
    def _now_after(started_at: datetime) -> datetime:
        return max(datetime.now(), started_at)
