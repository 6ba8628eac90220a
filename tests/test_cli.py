"""Tests for the command-line interface."""

import asyncio
import json

from click.testing import CliRunner

from diamond_monitor.cli.main import build_system, cli

PASSING = "tests.helpers:PassingModule"
FAILING = "tests.helpers:FailingModule"
CONFIGURED = "tests.helpers:ConfiguredModule"
ADDRESS = "0x1234567890123456789012345678901234567890"


def _invoke(*args):
    return CliRunner().invoke(cli, list(args), obj={})


def _run_args(*extra):
    return ["run", "--name", "TestDiamond", "--address", ADDRESS, "--sequential", *extra]


class TestBuildSystem:
    """Tests for loading modules by import path."""

    def test_class_paths_are_instantiated(self):
        system = build_system([PASSING, FAILING])

        assert [m.id for m in system.list_modules()] == ["passing", "failing"]


class TestListModules:
    """Tests for the list-modules command."""

    def test_lists_loaded_modules(self):
        result = _invoke("list-modules", "-m", PASSING)

        assert result.exit_code == 0
        assert "passing" in result.output

    def test_no_modules(self):
        result = _invoke("list-modules")

        assert result.exit_code == 0
        assert "No modules loaded" in result.output

    def test_bad_import_path(self):
        result = _invoke("list-modules", "-m", "tests.helpers")

        assert result.exit_code == 1
        assert "Error loading modules" in result.output


class TestValidateConfig:
    """Tests for the validate-config command."""

    def test_valid_config(self, tmp_path):
        path = tmp_path / "ok.yaml"
        path.write_text("execution:\n  max_concurrency: 2\n")

        result = _invoke("validate-config", str(path))

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("execution:\n  max_concurrency: 0\n")

        result = _invoke("validate-config", str(path))

        assert result.exit_code == 1
        assert "max_concurrency" in result.output

    def test_plugin_module_config_is_checked(self, tmp_path):
        path = tmp_path / "plugins.yaml"
        path.write_text(f"plugins:\n  - {CONFIGURED}\nmodules:\n  configured:\n    config: {{}}\n")

        result = _invoke("validate-config", str(path))

        assert result.exit_code == 1
        assert "configured: Missing required config 'maxFacets'" in result.output

    def test_plugin_module_config_is_valid(self, tmp_path):
        path = tmp_path / "plugins.yaml"
        path.write_text(f"plugins:\n  - {CONFIGURED}\nmodules:\n  configured:\n    config:\n      maxFacets: 10\n")

        result = _invoke("validate-config", str(path))

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "1 module(s) checked" in result.output

    def test_extra_module_option(self, tmp_path):
        path = tmp_path / "ok.yaml"
        path.write_text("execution:\n  max_concurrency: 2\n")

        result = _invoke("validate-config", str(path), "-m", CONFIGURED)

        assert result.exit_code == 1
        assert "maxFacets" in result.output

    def test_non_mapping_module_config(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("modules:\n  selectors:\n    config:\n      - maxFacets\n")

        result = _invoke("validate-config", str(path))

        assert result.exit_code == 1
        assert "must be a mapping" in result.output


class TestRun:
    """Tests for the run command."""

    def test_passing_run(self):
        result = _invoke(*_run_args("-m", PASSING))

        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_failing_run_exits_zero_without_flag(self):
        result = _invoke(*_run_args("-m", FAILING))

        assert result.exit_code == 0
        assert "FAIL" in result.output

    def test_fail_on_error(self):
        result = _invoke(*_run_args("-m", PASSING, "-m", FAILING, "--fail-on-error"))

        assert result.exit_code == 1

    def test_json_output(self, tmp_path):
        output = tmp_path / "reports" / "report.json"

        result = _invoke(*_run_args("-m", PASSING, "-m", FAILING, "-o", str(output)))

        assert result.exit_code == 0
        report = json.loads(output.read_text())
        assert report["summary"]["status"] == "FAIL"
        assert report["summary"]["total_checks"] == 2
        assert [m["module_id"] for m in report["modules"]] == ["passing", "failing"]
        assert report["diamond"]["address"] == ADDRESS

    def test_only_filters_modules(self, tmp_path):
        output = tmp_path / "report.json"

        result = _invoke(*_run_args("-m", PASSING, "-m", FAILING, "--only", "passing", "-o", str(output)))

        assert result.exit_code == 0
        report = json.loads(output.read_text())
        assert [m["module_id"] for m in report["modules"]] == ["passing"]

    def test_no_modules_is_a_configuration_error(self):
        result = _invoke(*_run_args())

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_plugins_from_config_file(self, tmp_path):
        config = tmp_path / "monitoring.yaml"
        config.write_text(f"plugins:\n  - {PASSING}\nexecution:\n  parallel_execution: false\n")
        output = tmp_path / "report.json"

        result = _invoke(
            "run", "--name", "TestDiamond", "--address", ADDRESS,
            "-c", str(config), "-o", str(output),
        )

        assert result.exit_code == 0
        report = json.loads(output.read_text())
        assert report["config"]["plugins"] == [PASSING]
        assert report["summary"]["passed"] == 1


class TestMonitor:
    """Tests for the monitor command."""

    def _monitor_args(self, *extra):
        return [
            "monitor", "--name", "TestDiamond", "--address", ADDRESS,
            "--sequential", "--interval", "30", *extra,
        ]

    def _no_wait(self, monkeypatch):
        waits = []

        async def fake_sleep(seconds):
            waits.append(seconds)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        return waits

    def test_runs_until_max_runs(self, tmp_path, monkeypatch):
        waits = self._no_wait(monkeypatch)
        output_dir = tmp_path / "reports"

        result = _invoke(*self._monitor_args(
            "-m", PASSING, "--max-runs", "2", "--output-dir", str(output_dir),
        ))

        assert result.exit_code == 0
        assert "Run #1" in result.output
        assert "Run #2" in result.output
        assert "Total monitoring runs completed: 2" in result.output
        assert waits == [30.0]
        reports = sorted(output_dir.glob("*.json"))
        assert len(reports) == 2
        assert reports[1].name.endswith("_run2.json")
        assert json.loads(reports[0].read_text())["summary"]["status"] == "PASS"

    def test_interval_below_minimum(self):
        result = _invoke(
            "monitor", "--name", "TestDiamond", "--address", ADDRESS,
            "-m", PASSING, "--interval", "10", "--max-runs", "1",
        )

        assert result.exit_code == 1
        assert "at least 30 seconds" in result.output

    def test_alert_threshold(self, monkeypatch):
        self._no_wait(monkeypatch)

        high = _invoke(*self._monitor_args("-m", FAILING, "--max-runs", "1"))
        critical = _invoke(*self._monitor_args(
            "-m", FAILING, "--max-runs", "1", "--alert-threshold", "critical",
        ))

        assert "ALERT: 1 issue(s)" in high.output
        assert "ALERT" not in critical.output

    def test_failing_run_exits_zero_without_flag(self, monkeypatch):
        self._no_wait(monkeypatch)

        result = _invoke(*self._monitor_args("-m", FAILING, "--max-runs", "1"))

        assert result.exit_code == 0

    def test_fail_on_error(self, monkeypatch):
        self._no_wait(monkeypatch)

        result = _invoke(*self._monitor_args("-m", FAILING, "--max-runs", "2", "--fail-on-error"))

        assert result.exit_code == 1
        assert "Total monitoring runs completed: 2" in result.output

    def test_repeated_errors_stop_monitoring(self, monkeypatch):
        waits = self._no_wait(monkeypatch)

        result = _invoke(*self._monitor_args("--max-runs", "5"))

        assert result.exit_code == 1
        assert "Total monitoring runs completed: 3" in result.output
        assert "consecutive failed runs" in result.output
        assert len(waits) == 2
