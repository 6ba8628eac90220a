"""Tests for continuous monitoring and report files."""

import asyncio
import json
from datetime import datetime

import pytest

from diamond_monitor.core.continuous import ContinuousMonitor
from diamond_monitor.core.events import EventType
from diamond_monitor.core.system import DiamondMonitoringSystem
from diamond_monitor.core.types import Severity, Status
from diamond_monitor.utils.report_writer import JSONReportWriter

from tests.helpers import StubModule, fast_config, make_diamond, make_issue


class RecordingSleep:
    """Async stand-in for asyncio.sleep that returns immediately."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def _monitor(*modules, **kwargs):
    system = DiamondMonitoringSystem()
    for module in modules:
        system.register_module(module)
    kwargs.setdefault("sleep", RecordingSleep())
    kwargs.setdefault("config", fast_config())
    return ContinuousMonitor(system, make_diamond(), object(), **kwargs)


class TestContinuousMonitor:
    """Tests for ContinuousMonitor."""

    def test_stops_after_max_runs(self):
        module = StubModule("a")
        monitor = _monitor(module, interval=30, max_runs=2)

        runs = asyncio.run(monitor.start())

        assert [run.number for run in runs] == [1, 2]
        assert module.run_calls == 2
        assert monitor.sleep.calls == [30]
        assert not monitor.aborted

    def test_same_system_is_used_for_every_run(self):
        monitor = _monitor(StubModule("a"), max_runs=3)
        seen = []
        monitor.system.add_event_listener(lambda e: seen.append(e.type))

        asyncio.run(monitor.start())

        assert len(monitor.runs) == 3
        assert monitor.system.get_statistics()["connection_pool_size"] == 1
        assert seen.count(EventType.MONITORING_START) == 3

    def test_alerts_respect_threshold(self):
        module = StubModule("a", issues=[
            make_issue("w", Severity.WARNING),
            make_issue("e", Severity.ERROR),
            make_issue("c", Severity.CRITICAL),
        ])
        monitor = _monitor(module, max_runs=1, alert_threshold=Severity.ERROR)

        run = asyncio.run(monitor.run_once())

        assert [issue.id for issue in run.alerts] == ["e", "c"]
        assert run.failed

    def test_no_alerts_below_threshold(self):
        monitor = _monitor(
            StubModule("a", issues=[make_issue("w", Severity.WARNING)]),
            alert_threshold=Severity.CRITICAL,
        )

        run = asyncio.run(monitor.run_once())

        assert run.alerts == []
        assert run.report.status == Status.WARNING

    def test_consecutive_errored_runs_abort(self):
        monitor = _monitor(max_runs=0)

        runs = asyncio.run(monitor.start())

        assert len(runs) == 3
        assert all(run.errored for run in runs)
        assert monitor.aborted
        assert len(monitor.sleep.calls) == 2

    def test_failed_checks_do_not_abort(self):
        monitor = _monitor(
            StubModule("a", issues=[make_issue("e", Severity.ERROR)]),
            max_runs=4,
        )

        runs = asyncio.run(monitor.start())

        assert len(runs) == 4
        assert not monitor.aborted
        assert monitor.consecutive_failures == 0

    def test_reports_are_saved_with_run_numbers(self):
        saved = []

        def save_report(report, number):
            saved.append((report.diamond.name, number))
            return f"run-{number}.json"

        monitor = _monitor(StubModule("a"), max_runs=2, save_report=save_report)

        runs = asyncio.run(monitor.start())

        assert saved == [("TestDiamond", 1), ("TestDiamond", 2)]
        assert [run.output_path for run in runs] == ["run-1.json", "run-2.json"]

    def test_save_errors_do_not_stop_monitoring(self):
        def save_report(report, number):
            raise OSError("disk full")

        monitor = _monitor(StubModule("a"), max_runs=2, save_report=save_report)

        runs = asyncio.run(monitor.start())

        assert len(runs) == 2
        assert runs[0].output_path is None

    def test_on_run_receives_each_run(self):
        received = []
        monitor = _monitor(StubModule("a"), max_runs=2, on_run=received.append)

        asyncio.run(monitor.start())

        assert [run.number for run in received] == [1, 2]

    def test_interval_below_minimum_is_rejected(self):
        with pytest.raises(ValueError, match="at least 30 seconds"):
            _monitor(StubModule("a"), interval=10)

    def test_negative_max_runs_is_rejected(self):
        with pytest.raises(ValueError):
            _monitor(StubModule("a"), max_runs=-1)


class TestJSONReportWriter:
    """Tests for JSONReportWriter."""

    def _report(self):
        system = DiamondMonitoringSystem()
        system.register_module(StubModule("a"))
        return asyncio.run(system.run_monitoring(make_diamond("My Diamond"), object(), fast_config()))

    def test_generate_filename(self, tmp_path):
        writer = JSONReportWriter(str(tmp_path))
        stamp = datetime(2024, 5, 1, 12, 30, 45)

        assert writer.generate_filename("My Diamond", stamp) == "monitoring_My_Diamond_20240501_123045.json"
        assert writer.generate_filename("My Diamond", stamp, run_number=3) == (
            "monitoring_My_Diamond_20240501_123045_run3.json"
        )

    def test_save_creates_directory_and_file(self, tmp_path):
        output_dir = tmp_path / "reports" / "nested"
        writer = JSONReportWriter(str(output_dir))

        path = writer.save(self._report(), run_number=1)

        assert path.startswith(str(output_dir))
        assert path.endswith("_run1.json")
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert data["diamond"]["name"] == "My Diamond"
        assert data["summary"]["status"] == "PASS"

    def test_save_with_custom_filename(self, tmp_path):
        writer = JSONReportWriter(str(tmp_path))

        path = writer.save(self._report(), "latest.json")

        assert path == str(tmp_path / "latest.json")
