"""Core modules for the Diamond Monitor orchestration engine."""

from .aggregator import RunAggregator
from .config import (
    ExecutionConfig,
    ModuleSettings,
    MonitoringConfig,
    ReportingConfig,
    default_config,
    load_config,
)
from .continuous import ALERT_THRESHOLDS, ContinuousMonitor, MonitoringRun
from .connection_pool import TransportCache
from .dependency import DependencyResolver, ResolvedOrder
from .errors import (
    ConfigurationError,
    ModuleRegistrationError,
    ModuleTimeoutError,
    MonitoringError,
)
from .events import EventBus, EventType, MonitoringEvent
from .executor import ExecutionScheduler
from .module import BaseMonitoringModule
from .retry import RetryPolicy, execute_with_retry, run_with_timeout
from .system import DiamondMonitoringSystem
from .types import (
    ConfigRequirement,
    DiamondInfo,
    Issue,
    IssueLocation,
    ModuleDependency,
    ModuleOutcome,
    ModuleResult,
    MonitoringContext,
    NetworkInfo,
    RunReport,
    RunSummary,
    Severity,
    Status,
    ValidationResult,
    derive_status,
)

__all__ = [
    "ALERT_THRESHOLDS",
    "BaseMonitoringModule",
    "ConfigRequirement",
    "ConfigurationError",
    "ContinuousMonitor",
    "DependencyResolver",
    "DiamondInfo",
    "DiamondMonitoringSystem",
    "EventBus",
    "EventType",
    "ExecutionConfig",
    "ExecutionScheduler",
    "Issue",
    "IssueLocation",
    "ModuleDependency",
    "ModuleOutcome",
    "ModuleRegistrationError",
    "ModuleResult",
    "ModuleSettings",
    "ModuleTimeoutError",
    "MonitoringConfig",
    "MonitoringContext",
    "MonitoringError",
    "MonitoringEvent",
    "MonitoringRun",
    "NetworkInfo",
    "ReportingConfig",
    "ResolvedOrder",
    "RetryPolicy",
    "RunAggregator",
    "RunReport",
    "RunSummary",
    "Severity",
    "Status",
    "TransportCache",
    "ValidationResult",
    "default_config",
    "derive_status",
    "execute_with_retry",
    "load_config",
    "run_with_timeout",
]
