"""Base Module - Contract every pluggable check module implements."""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .types import (
    ConfigRequirement,
    DiamondInfo,
    Issue,
    IssueLocation,
    ModuleDependency,
    ModuleOutcome,
    MonitoringContext,
    NetworkInfo,
    Severity,
    Status,
    ValidationResult,
    derive_status,
)

_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, (list, tuple)),
}


class BaseMonitoringModule(ABC):
    """Abstract base class for all monitoring modules.

    Subclasses set the identity attributes and implement ``can_monitor`` and
    ``run``. Configuration is declared through ``required_config`` and is
    validated generically by ``validate_config``; override it to add checks
    that cannot be expressed per key, calling ``super()`` first.
    """

    id: str = ""
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    category: str = "general"

    @abstractmethod
    async def can_monitor(self, diamond: DiamondInfo, network: NetworkInfo) -> bool:
        """Check if this module applies to the given diamond.

        Must be cheap and free of side effects.
        """
        pass

    @abstractmethod
    async def run(self, context: MonitoringContext) -> ModuleOutcome:
        """Execute the check.

        Ordinary findings are returned as issues. Raise only for
        infrastructure failures; the engine turns those into a failed result.
        """
        pass

    async def cleanup(self, context: MonitoringContext) -> None:
        """Release anything acquired during ``run``."""
        return None

    def required_config(self) -> List[ConfigRequirement]:
        """Get configuration requirements for this module."""
        return []

    def get_dependencies(self) -> List[ModuleDependency]:
        """Get modules that must run before this one."""
        return []

    def validate_config(self, config: Dict[str, Any]) -> ValidationResult:
        """Validate a configuration slice against ``required_config``.

        Args:
            config: Raw configuration for this module

        Returns:
            ValidationResult with errors and warnings
        """
        result = ValidationResult()
        if config is not None and not isinstance(config, dict):
            result.errors.append(
                f"configuration must be a mapping, got {type(config).__name__}"
            )
            return result
        config = config or {}
        requirements = self.required_config()
        known_keys = {req.key for req in requirements}

        for req in requirements:
            if req.key not in config or config[req.key] is None:
                if req.required and req.default is None:
                    result.errors.append(f"Missing required config '{req.key}'")
                continue

            value = config[req.key]
            type_check = _TYPE_CHECKS.get(req.type)
            if type_check is None:
                result.errors.append(f"Unknown config type '{req.type}' for '{req.key}'")
                continue
            if not type_check(value):
                result.errors.append(f"{req.key} must be of type {req.type}")
                continue
            if req.validator is not None and not req.validator(value):
                result.errors.append(f"{req.key} has an invalid value: {value!r}")

        for key in config:
            if key not in known_keys:
                result.warnings.append(f"Unknown config key '{key}' for module '{self.id}'")

        return result

    def resolve_config(self, config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Merge declared defaults into a raw configuration slice."""
        resolved = {
            req.key: req.default
            for req in self.required_config()
            if req.default is not None
        }
        resolved.update({k: v for k, v in (config or {}).items() if v is not None})
        return resolved

    def _create_issue(
        self,
        issue_id: str,
        title: str,
        description: str,
        severity: Severity,
        category: Optional[str] = None,
        recommendation: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        location: Optional[IssueLocation] = None,
    ) -> Issue:
        """Create an issue attributed to this module's category."""
        return Issue(
            id=issue_id,
            title=title,
            description=description,
            severity=severity,
            category=category or self.category,
            recommendation=recommendation,
            metadata=metadata or {},
            location=location,
        )

    def _complete_outcome(
        self,
        issues: List[Issue],
        started: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ModuleOutcome:
        """Build an outcome with status and timing filled in.

        Args:
            issues: Issues found during the check
            started: ``time.monotonic()`` value taken when the check started
            metadata: Extra module-specific information

        Returns:
            ModuleOutcome for the check
        """
        return ModuleOutcome(
            status=derive_status(issues),
            issues=list(issues),
            execution_time_ms=int((time.monotonic() - started) * 1000),
            metadata=metadata or {},
        )

    def _skipped_outcome(self, reason: str) -> ModuleOutcome:
        return ModuleOutcome(status=Status.SKIPPED, metadata={"reason": reason})

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"
