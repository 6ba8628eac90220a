"""Monitoring Types Module - Data models shared by the engine and check modules."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import total_ordering
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from .config import MonitoringConfig


@total_ordering
class Severity(Enum):
    """Severity levels for monitoring issues, ordered by urgency."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def weight(self) -> int:
        """Get numeric rank for severity."""
        weights = {
            Severity.INFO: 1,
            Severity.WARNING: 2,
            Severity.ERROR: 3,
            Severity.CRITICAL: 4,
        }
        return weights[self]

    @property
    def color(self) -> str:
        """Get color name for severity."""
        colors = {
            Severity.INFO: "blue",
            Severity.WARNING: "yellow",
            Severity.ERROR: "red",
            Severity.CRITICAL: "bold red",
        }
        return colors[self]

    @property
    def is_blocking(self) -> bool:
        """Whether an issue of this severity fails its module."""
        return self in (Severity.ERROR, Severity.CRITICAL)

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.weight < other.weight


class Status(Enum):
    """Status of a module execution or of a whole run."""
    PASS = "PASS"
    FAIL = "FAIL"
    WARNING = "WARNING"
    SKIPPED = "SKIPPED"

    @property
    def icon(self) -> str:
        icons = {
            Status.PASS: "✅",
            Status.FAIL: "❌",
            Status.WARNING: "⚠️",
            Status.SKIPPED: "⏭️",
        }
        return icons[self]


@dataclass(frozen=True)
class IssueLocation:
    """Where in the deployment an issue was found."""
    contract: Optional[str] = None
    function: Optional[str] = None
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"contract": self.contract, "function": self.function, "line": self.line}


@dataclass(frozen=True)
class Issue:
    """A single finding produced by a module during a run."""
    id: str
    title: str
    description: str
    severity: Severity
    category: str
    recommendation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    location: Optional[IssueLocation] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert issue to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "category": self.category,
            "recommendation": self.recommendation,
            "metadata": self.metadata,
            "location": self.location.to_dict() if self.location else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Issue":
        """Create issue from dictionary."""
        location = data.get("location")
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            severity=Severity(data["severity"]),
            category=data.get("category", "general"),
            recommendation=data.get("recommendation"),
            metadata=data.get("metadata", {}),
            location=IssueLocation(**location) if location else None,
        )


def derive_status(issues: List[Issue]) -> Status:
    """Derive a module status from the issues it reported.

    Any ERROR or CRITICAL issue fails the module, any other issue makes it a
    warning, and no issues at all is a pass.
    """
    if any(issue.severity.is_blocking for issue in issues):
        return Status.FAIL
    if issues:
        return Status.WARNING
    return Status.PASS


@dataclass
class ModuleOutcome:
    """What a module returns from a single invocation."""
    status: Status
    issues: List[Issue] = field(default_factory=list)
    execution_time_ms: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "issues": [i.to_dict() for i in self.issues],
            "execution_time_ms": self.execution_time_ms,
            "metadata": self.metadata,
        }


@dataclass
class ModuleResult:
    """A module outcome together with its scheduling metadata."""
    module_id: str
    module_name: str
    status: Status
    outcome: ModuleOutcome
    started_at: datetime
    completed_at: datetime
    error: Optional[BaseException] = None

    @property
    def duration_ms(self) -> int:
        """Elapsed time between start and completion."""
        return max(0, int((self.completed_at - self.started_at).total_seconds() * 1000))

    @property
    def issues(self) -> List[Issue]:
        return self.outcome.issues

    def to_dict(self) -> Dict[str, Any]:
        """Convert module result to dictionary."""
        return {
            "module_id": self.module_id,
            "module_name": self.module_name,
            "status": self.status.value,
            "result": self.outcome.to_dict(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_ms": self.duration_ms,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class NetworkInfo:
    """Network the monitored diamond lives on."""
    name: str
    chain_id: int
    rpc_url: str = ""
    block_explorer_url: Optional[str] = None
    block_explorer_api_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        # API key is never serialized.
        return {
            "name": self.name,
            "chain_id": self.chain_id,
            "rpc_url": self.rpc_url,
            "block_explorer_url": self.block_explorer_url,
        }


@dataclass
class DiamondInfo:
    """Identity of the diamond being monitored."""
    name: str
    address: str
    network: NetworkInfo
    config_path: Optional[str] = None
    deployment_block: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "network": self.network.to_dict(),
            "config_path": self.config_path,
            "deployment_block": self.deployment_block,
        }


@dataclass
class ConfigRequirement:
    """Declaration of a single configuration key a module understands."""
    key: str
    type: str  # string, number, boolean, object or array
    required: bool = False
    description: str = ""
    default: Any = None
    validator: Optional[Callable[[Any], bool]] = None


@dataclass
class ValidationResult:
    """Outcome of validating a configuration."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Combine two validation results."""
        return ValidationResult(
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
        )


@dataclass(frozen=True)
class ModuleDependency:
    """Declares that a module must run after another one."""
    module_id: str
    optional: bool = False


@dataclass
class MonitoringContext:
    """Everything a module needs during execution.

    ``transport`` is handed through untouched; modules decide what it is
    (usually an RPC client). ``module_config`` holds the calling module's own
    configuration slice with declared defaults applied.
    """
    diamond: DiamondInfo
    transport: Any
    config: "MonitoringConfig"
    module_config: Dict[str, Any] = field(default_factory=dict)
    dry_run: bool = False
    verbose: bool = False

    @property
    def network(self) -> NetworkInfo:
        return self.diamond.network


@dataclass
class RunSummary:
    """Counts and overall status for one run."""
    status: Status
    total_checks: int = 0
    passed: int = 0
    failed: int = 0
    warnings: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "total_checks": self.total_checks,
            "passed": self.passed,
            "failed": self.failed,
            "warnings": self.warnings,
            "skipped": self.skipped,
        }


@dataclass
class RunReport:
    """Complete report of one monitoring run."""
    summary: RunSummary
    diamond: DiamondInfo
    network: NetworkInfo
    config: Dict[str, Any]
    timestamp: datetime
    duration_ms: int = 0
    modules: List[ModuleResult] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def status(self) -> Status:
        return self.summary.status

    @property
    def all_issues(self) -> List[Issue]:
        """Get all issues from all module results."""
        issues = []
        for result in self.modules:
            issues.extend(result.issues)
        return issues

    def issues_by_severity(self, severity: Severity) -> List[Issue]:
        return [i for i in self.all_issues if i.severity == severity]

    def get_module_result(self, module_id: str) -> Optional[ModuleResult]:
        for result in self.modules:
            if result.module_id == module_id:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary."""
        return {
            "summary": self.summary.to_dict(),
            "modules": [m.to_dict() for m in self.modules],
            "diamond": self.diamond.to_dict(),
            "network": self.network.to_dict(),
            "config": self.config,
            "timestamp": self.timestamp.isoformat(),
            "duration_ms": self.duration_ms,
            "recommendations": self.recommendations,
            "warnings": self.warnings,
            "error": self.error,
        }
