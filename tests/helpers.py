"""Stub modules and builders shared by the test suite."""

import asyncio
import time
from typing import Any, List, Optional

from diamond_monitor.core.config import ExecutionConfig, ModuleSettings, MonitoringConfig
from diamond_monitor.core.module import BaseMonitoringModule
from diamond_monitor.core.retry import RetryPolicy
from diamond_monitor.core.types import (
    ConfigRequirement,
    DiamondInfo,
    Issue,
    ModuleDependency,
    ModuleOutcome,
    MonitoringContext,
    NetworkInfo,
    Severity,
    Status,
)


def make_diamond(name: str = "TestDiamond") -> DiamondInfo:
    return DiamondInfo(
        name=name,
        address="0x1234567890123456789012345678901234567890",
        network=NetworkInfo(name="hardhat", chain_id=31337, rpc_url="http://localhost:8545"),
    )


def make_issue(
    issue_id: str = "issue-1",
    severity: Severity = Severity.WARNING,
    recommendation: Optional[str] = None,
) -> Issue:
    return Issue(
        id=issue_id,
        title=f"Issue {issue_id}",
        description="Found during testing",
        severity=severity,
        category="test",
        recommendation=recommendation,
    )


def fast_config(**execution: Any) -> MonitoringConfig:
    """Config without retries or backoff so failures surface immediately."""
    execution.setdefault("retry", RetryPolicy(max_attempts=1, base_delay=0.0))
    execution.setdefault("parallel_execution", False)
    return MonitoringConfig(execution=ExecutionConfig(**execution))


def make_context(config: Optional[MonitoringConfig] = None, transport: Any = None) -> MonitoringContext:
    return MonitoringContext(
        diamond=make_diamond(),
        transport=transport,
        config=config or fast_config(),
    )


class StubModule(BaseMonitoringModule):
    """Configurable module recording how the engine drives it."""

    def __init__(
        self,
        module_id: str,
        issues: Optional[List[Issue]] = None,
        delay: float = 0.0,
        applicable: bool = True,
        error: Optional[Exception] = None,
        fail_times: int = 0,
        never_finish: bool = False,
        dependencies: Optional[List[str]] = None,
        requirements: Optional[List[ConfigRequirement]] = None,
        cleanup_error: Optional[Exception] = None,
        reported_status: Optional[Status] = None,
        log: Optional[list] = None,
    ):
        self.id = module_id
        self.name = f"Stub {module_id}"
        self.description = "Stub module for tests"
        self.category = "test"
        self.issues = issues or []
        self.delay = delay
        self.applicable = applicable
        self.error = error
        self.fail_times = fail_times
        self.never_finish = never_finish
        self.dependencies = dependencies or []
        self.requirements = requirements or []
        self.cleanup_error = cleanup_error
        self.reported_status = reported_status
        self.log = log if log is not None else []
        self.check_calls = 0
        self.run_calls = 0
        self.cleanup_calls = 0
        self.last_context: Optional[MonitoringContext] = None

    async def can_monitor(self, diamond: DiamondInfo, network: NetworkInfo) -> bool:
        self.check_calls += 1
        return self.applicable

    async def run(self, context: MonitoringContext) -> ModuleOutcome:
        started = time.monotonic()
        self.run_calls += 1
        self.last_context = context
        self.log.append(("start", self.id))

        if self.never_finish:
            await asyncio.Event().wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.run_calls <= self.fail_times:
            raise ConnectionError(f"transient failure {self.run_calls}")

        self.log.append(("end", self.id))
        outcome = self._complete_outcome(self.issues, started)
        if self.reported_status is not None:
            outcome.status = self.reported_status
        return outcome

    async def cleanup(self, context: MonitoringContext) -> None:
        self.cleanup_calls += 1
        if self.cleanup_error is not None:
            raise self.cleanup_error

    def required_config(self) -> List[ConfigRequirement]:
        return self.requirements

    def get_dependencies(self) -> List[ModuleDependency]:
        return [ModuleDependency(module_id=dep) for dep in self.dependencies]


class PassingModule(StubModule):
    """Loadable by import path from the CLI tests."""

    def __init__(self):
        super().__init__("passing")


class FailingModule(StubModule):
    """Loadable by import path; reports an ERROR issue."""

    def __init__(self):
        super().__init__(
            "failing",
            issues=[make_issue("broken-selector", Severity.ERROR, "Redeploy the facet")],
        )


class ConfiguredModule(StubModule):
    """Loadable by import path; needs a numeric 'maxFacets' setting."""

    def __init__(self):
        super().__init__(
            "configured",
            requirements=[ConfigRequirement(key="maxFacets", type="number", required=True)],
        )


def enabled(*module_ids: str) -> dict:
    return {module_id: ModuleSettings(priority=i) for i, module_id in enumerate(module_ids)}
