"""Config Module - Monitoring run configuration and its YAML loader."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from .retry import RetryPolicy
from .types import ValidationResult

REPORT_FORMATS = ("console", "json", "html", "csv", "markdown")


@dataclass
class ModuleSettings:
    """Per-module run settings."""
    enabled: bool = True
    priority: int = 0
    config: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "priority": self.priority,
            "config": self.config,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ModuleSettings":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Module settings must be a mapping, got {type(data).__name__}")
        return cls(
            enabled=data.get("enabled", True),
            priority=data.get("priority", 0),
            config=data.get("config") or {},
        )


@dataclass
class ExecutionConfig:
    """How modules are scheduled. ``timeout`` is in seconds."""
    parallel_execution: bool = True
    max_concurrency: int = 3
    timeout: float = 30.0
    fail_fast: bool = False
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parallel_execution": self.parallel_execution,
            "max_concurrency": self.max_concurrency,
            "timeout": self.timeout,
            "fail_fast": self.fail_fast,
            "retry": self.retry.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExecutionConfig":
        data = data or {}
        defaults = cls()
        return cls(
            parallel_execution=data.get("parallel_execution", defaults.parallel_execution),
            max_concurrency=data.get("max_concurrency", defaults.max_concurrency),
            timeout=data.get("timeout", defaults.timeout),
            fail_fast=data.get("fail_fast", defaults.fail_fast),
            retry=RetryPolicy.from_dict(data.get("retry") or {}),
        )


@dataclass
class ReportingConfig:
    """Reporting preferences handed through to report renderers."""
    format: str = "console"
    output_path: Optional[str] = None
    verbose: bool = False
    include_metadata: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format,
            "output_path": self.output_path,
            "verbose": self.verbose,
            "include_metadata": self.include_metadata,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ReportingConfig":
        data = data or {}
        defaults = cls()
        return cls(
            format=data.get("format", defaults.format),
            output_path=data.get("output_path"),
            verbose=data.get("verbose", defaults.verbose),
            include_metadata=data.get("include_metadata", defaults.include_metadata),
        )


@dataclass
class MonitoringConfig:
    """Main monitoring configuration."""
    modules: Dict[str, ModuleSettings] = field(default_factory=dict)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)
    dry_run: bool = False
    plugins: List[str] = field(default_factory=list)
    enabled_by_default: bool = True

    def settings_for(self, module_id: str) -> ModuleSettings:
        """Get settings for a module.

        Unlisted modules get default settings, enabled only when
        ``enabled_by_default`` is set.
        """
        settings = self.modules.get(module_id)
        if settings is None:
            return ModuleSettings(enabled=self.enabled_by_default)
        return settings

    def module_config(self, module_id: str) -> Dict[str, Any]:
        return self.settings_for(module_id).config

    def validate(self, registered_ids: Optional[Iterable[str]] = None) -> ValidationResult:
        """Validate the run configuration itself.

        Args:
            registered_ids: Ids of registered modules, to flag unknown entries

        Returns:
            ValidationResult with errors and warnings
        """
        result = ValidationResult()

        if self.reporting.format not in REPORT_FORMATS:
            result.errors.append(f"Invalid reporting format: {self.reporting.format}")

        execution = self.execution
        if execution.max_concurrency < 1:
            result.errors.append("max_concurrency must be at least 1")
        if execution.timeout is not None:
            if execution.timeout <= 0:
                result.errors.append("timeout must be positive")
            elif execution.timeout < 1:
                result.warnings.append("timeout is very low, monitoring may fail")

        retry = execution.retry
        if retry.max_attempts < 1:
            result.errors.append("retry.max_attempts must be at least 1")
        if retry.base_delay < 0 or retry.max_delay < 0:
            result.errors.append("retry delays must not be negative")
        if retry.backoff_multiplier < 1:
            result.errors.append("retry.backoff_multiplier must be at least 1")

        for module_id, settings in self.modules.items():
            if not isinstance(settings.config, dict):
                result.errors.append(
                    f"Module '{module_id}' configuration must be a mapping"
                )

        if registered_ids is not None:
            registered = set(registered_ids)
            for module_id, settings in self.modules.items():
                if settings.enabled and module_id not in registered:
                    result.warnings.append(
                        f"Module '{module_id}' is enabled but not registered"
                    )

        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "modules": {k: v.to_dict() for k, v in self.modules.items()},
            "execution": self.execution.to_dict(),
            "reporting": self.reporting.to_dict(),
            "dry_run": self.dry_run,
            "plugins": list(self.plugins),
            "enabled_by_default": self.enabled_by_default,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MonitoringConfig":
        """Create configuration from dictionary."""
        data = data or {}
        return cls(
            modules={
                module_id: ModuleSettings.from_dict(settings)
                for module_id, settings in (data.get("modules") or {}).items()
            },
            execution=ExecutionConfig.from_dict(data.get("execution")),
            reporting=ReportingConfig.from_dict(data.get("reporting")),
            dry_run=data.get("dry_run", False),
            plugins=list(data.get("plugins") or []),
            enabled_by_default=data.get("enabled_by_default", True),
        )


def load_config(path: str | Path) -> MonitoringConfig:
    """Load a monitoring configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed MonitoringConfig

    Raises:
        ValueError: If the file does not contain a mapping
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    return MonitoringConfig.from_dict(data)


def default_config(module_ids: Iterable[str], **execution_overrides: Any) -> MonitoringConfig:
    """Build a configuration enabling the given modules in the given order."""
    return MonitoringConfig(
        modules={
            module_id: ModuleSettings(enabled=True, priority=index + 1)
            for index, module_id in enumerate(module_ids)
        },
        execution=ExecutionConfig(**execution_overrides),
    )
