"""Diamond Monitor - Orchestrates pluggable health checks over diamond deployments."""

from .core import (
    BaseMonitoringModule,
    DiamondInfo,
    DiamondMonitoringSystem,
    Issue,
    ModuleOutcome,
    MonitoringConfig,
    NetworkInfo,
    RunReport,
    Severity,
    Status,
)

__version__ = "1.0.0"

__all__ = [
    "BaseMonitoringModule",
    "DiamondInfo",
    "DiamondMonitoringSystem",
    "Issue",
    "ModuleOutcome",
    "MonitoringConfig",
    "NetworkInfo",
    "RunReport",
    "Severity",
    "Status",
]
