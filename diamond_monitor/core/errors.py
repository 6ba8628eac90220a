"""Error types raised by the monitoring engine."""

from typing import List, Optional


class MonitoringError(Exception):
    """Base class for monitoring engine errors."""


class ModuleRegistrationError(MonitoringError):
    """Raised when a module cannot be registered."""


class ConfigurationError(MonitoringError):
    """Raised when a run cannot start because its configuration is invalid."""

    def __init__(
        self,
        message: str,
        module_id: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.module_id = module_id
        self.errors = errors or []


class ModuleTimeoutError(MonitoringError, TimeoutError):
    """Raised when a module does not finish within its deadline."""

    def __init__(self, module_name: str, timeout: float):
        self.module_name = module_name
        self.timeout = timeout
        super().__init__(
            f"Module '{module_name}' timed out after {int(timeout * 1000)}ms"
        )
