"""Progress Module - Prints monitoring events to the terminal."""

from typing import Optional

from rich.console import Console
from rich.markup import escape

from ..core.events import EventType, MonitoringEvent
from ..core.types import Status


class ConsoleEventListener:
    """Event listener printing one line per monitoring event.

    Register it with ``DiamondMonitoringSystem.add_event_listener``.
    """

    def __init__(self, console: Optional[Console] = None, show_issues: bool = True):
        """Initialize the listener.

        Args:
            console: Rich console to print to (default: a new Console)
            show_issues: Print a line per issue found
        """
        self.console = console or Console()
        self.show_issues = show_issues
        self.completed = 0

    def __call__(self, event: MonitoringEvent) -> None:
        handler = {
            EventType.MONITORING_START: self._on_monitoring_start,
            EventType.MONITORING_COMPLETE: self._on_monitoring_complete,
            EventType.MODULE_START: self._on_module_start,
            EventType.MODULE_COMPLETE: self._on_module_complete,
            EventType.MODULE_ERROR: self._on_module_error,
            EventType.ISSUE_FOUND: self._on_issue_found,
        }.get(event.type)
        if handler:
            handler(event)

    def _on_monitoring_start(self, event: MonitoringEvent) -> None:
        self.completed = 0
        diamond = event.data.get("diamond")
        if diamond is not None:
            self.console.print(
                f"[bold blue]🔍 Monitoring {escape(diamond.name)}[/bold blue] "
                f"({escape(diamond.address)}) on {escape(diamond.network.name)}"
            )

    def _on_monitoring_complete(self, event: MonitoringEvent) -> None:
        report = event.data.get("report")
        if report is None:
            return
        color = {
            Status.PASS: "green",
            Status.WARNING: "yellow",
            Status.FAIL: "red",
        }.get(report.status, "white")
        self.console.print(
            f"[{color}]{report.status.icon} Monitoring finished: "
            f"{report.status.value}[/{color}] in {report.duration_ms}ms"
        )

    def _on_module_start(self, event: MonitoringEvent) -> None:
        self.console.print(f"[dim]   ▶ {escape(str(event.data.get('module', event.module_id)))}[/dim]")

    def _on_module_complete(self, event: MonitoringEvent) -> None:
        self.completed += 1
        status = Status(event.data.get("status", Status.PASS.value))
        self.console.print(f"   {status.icon} {event.module_id} ({status.value})")

    def _on_module_error(self, event: MonitoringEvent) -> None:
        self.completed += 1
        self.console.print(
            f"   [red]❌ {event.module_id} failed: {escape(str(event.data.get('error', '')))}[/red]"
        )

    def _on_issue_found(self, event: MonitoringEvent) -> None:
        if not self.show_issues:
            return
        issue = event.data.get("issue")
        if issue is None:
            return
        color = issue.severity.color
        self.console.print(
            f"      [{color}]{issue.severity.value.upper()}[/{color}] {escape(issue.title)}"
        )
