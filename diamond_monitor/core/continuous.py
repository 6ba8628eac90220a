"""Continuous Module - Repeats monitoring runs on a fixed interval."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from .config import MonitoringConfig
from .system import DiamondMonitoringSystem
from .types import DiamondInfo, Issue, RunReport, Severity, Status

logger = logging.getLogger(__name__)

MIN_INTERVAL = 30.0
MAX_CONSECUTIVE_FAILURES = 3

ALERT_THRESHOLDS = {
    "low": Severity.INFO,
    "medium": Severity.WARNING,
    "high": Severity.ERROR,
    "critical": Severity.CRITICAL,
}


@dataclass
class MonitoringRun:
    """One iteration of continuous monitoring."""
    number: int
    report: RunReport
    alerts: List[Issue] = field(default_factory=list)
    output_path: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.report.status == Status.FAIL

    @property
    def errored(self) -> bool:
        """Whether the run could not execute its modules at all."""
        return self.report.error is not None


class ContinuousMonitor:
    """Runs one monitoring system against a diamond again and again.

    Every iteration reuses the same ``DiamondMonitoringSystem`` and transport.
    Monitoring stops after ``max_runs`` iterations (0 means no limit) or after
    ``MAX_CONSECUTIVE_FAILURES`` runs in a row that could not execute.
    """

    def __init__(
        self,
        system: DiamondMonitoringSystem,
        diamond: DiamondInfo,
        transport: Any,
        config: Optional[MonitoringConfig] = None,
        module_ids: Optional[Sequence[str]] = None,
        interval: float = 300.0,
        max_runs: int = 0,
        alert_threshold: Severity = Severity.ERROR,
        on_run: Optional[Callable[[MonitoringRun], Any]] = None,
        save_report: Optional[Callable[[RunReport, int], str]] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        """Initialize the monitor.

        Args:
            system: Monitoring system with its modules registered
            diamond: Diamond to monitor
            transport: Handle passed to every run
            config: Run configuration
            module_ids: Optional ids restricting which modules run
            interval: Seconds to wait between runs (at least 30)
            max_runs: Number of runs before stopping, 0 for no limit
            alert_threshold: Lowest issue severity that raises an alert
            on_run: Called with each completed run
            save_report: Called with each report and run number; returns the
                path the report was written to
            sleep: Coroutine used to wait between runs

        Raises:
            ValueError: If interval or max_runs is out of range
        """
        if interval < MIN_INTERVAL:
            raise ValueError(f"Monitoring interval must be at least {int(MIN_INTERVAL)} seconds")
        if max_runs < 0:
            raise ValueError("Max runs must be a non-negative number")

        self.system = system
        self.diamond = diamond
        self.transport = transport
        self.config = config or MonitoringConfig()
        self.module_ids = list(module_ids) if module_ids else None
        self.interval = interval
        self.max_runs = max_runs
        self.alert_threshold = alert_threshold
        self.on_run = on_run
        self.save_report = save_report
        self.sleep = sleep or asyncio.sleep

        self.runs: List[MonitoringRun] = []
        self.consecutive_failures = 0
        self.aborted = False

    def alerts_for(self, report: RunReport) -> List[Issue]:
        """Get the issues at or above the alert threshold."""
        return [i for i in report.all_issues if i.severity >= self.alert_threshold]

    async def run_once(self) -> MonitoringRun:
        """Execute one monitoring run and record it."""
        number = len(self.runs) + 1
        logger.info("Starting monitoring run #%d for %s", number, self.diamond.name)

        report = await self.system.run_monitoring(
            self.diamond,
            self.transport,
            self.config,
            module_ids=self.module_ids,
        )
        run = MonitoringRun(number=number, report=report, alerts=self.alerts_for(report))

        if self.save_report:
            try:
                run.output_path = self.save_report(report, number)
            except OSError as e:
                logger.error("Failed to save report of run #%d: %s", number, e)

        if run.errored:
            self.consecutive_failures += 1
            logger.error("Monitoring run #%d failed: %s", number, report.error)
        else:
            self.consecutive_failures = 0

        self.runs.append(run)
        if self.on_run:
            self.on_run(run)
        return run

    async def start(self) -> List[MonitoringRun]:
        """Run until ``max_runs`` is reached or too many runs fail in a row.

        Returns:
            All runs performed
        """
        while True:
            await self.run_once()

            if self.consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                logger.error(
                    "Stopping after %d consecutive failed runs", self.consecutive_failures
                )
                self.aborted = True
                break
            if self.max_runs and len(self.runs) >= self.max_runs:
                break

            await self.sleep(self.interval)

        return self.runs
