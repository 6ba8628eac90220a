"""Retry Module - Exponential backoff retry and per-module deadlines."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from .errors import ModuleTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry configuration for module operations.

    Delays are in seconds. The wait after failed attempt ``n`` is
    ``min(base_delay * backoff_multiplier ** (n - 1), max_delay)``.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Get the backoff delay after the given (1-based) failed attempt."""
        return min(
            self.base_delay * (self.backoff_multiplier ** (attempt - 1)),
            self.max_delay,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "backoff_multiplier": self.backoff_multiplier,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetryPolicy":
        defaults = cls()
        return cls(
            max_attempts=data.get("max_attempts", defaults.max_attempts),
            base_delay=data.get("base_delay", defaults.base_delay),
            max_delay=data.get("max_delay", defaults.max_delay),
            backoff_multiplier=data.get("backoff_multiplier", defaults.backoff_multiplier),
        )


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run an async operation, retrying with exponential backoff.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        operation_name: Name used in log messages
        policy: Retry policy (default: RetryPolicy())
        sleep: Coroutine used to wait between attempts

    Returns:
        The operation's result from the first successful attempt

    Raises:
        The last attempt's exception once all attempts are exhausted
    """
    policy = policy or RetryPolicy()
    max_attempts = max(1, policy.max_attempts)

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt == max_attempts:
                logger.error(
                    "%s failed after %d attempts: %s", operation_name, attempt, e
                )
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %dms: %s",
                operation_name,
                attempt,
                max_attempts,
                int(delay * 1000),
                e,
            )
            await sleep(delay)

    raise RuntimeError("unreachable")  # pragma: no cover


async def run_with_timeout(
    awaitable: Awaitable[T],
    timeout: Optional[float],
    module_name: str,
) -> T:
    """Await a module's execution, failing if it overruns its deadline.

    Args:
        awaitable: The module execution to wait for
        timeout: Deadline in seconds (None or <= 0 disables it)
        module_name: Module name used in the timeout message

    Raises:
        ModuleTimeoutError: If the deadline passes first. The overrunning
            task is cancelled; anything it started outside its own task keeps
            running.
    """
    if not timeout or timeout <= 0:
        return await awaitable

    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        raise ModuleTimeoutError(module_name, timeout) from None
