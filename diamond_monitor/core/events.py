"""Event Module - In-process notification of monitoring lifecycle events."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of monitoring events."""
    MONITORING_START = "monitoring_start"
    MONITORING_COMPLETE = "monitoring_complete"
    MODULE_START = "module_start"
    MODULE_COMPLETE = "module_complete"
    MODULE_ERROR = "module_error"
    ISSUE_FOUND = "issue_found"


@dataclass
class MonitoringEvent:
    """A single event delivered to listeners."""
    type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    module_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


EventListener = Callable[[MonitoringEvent], Any]


class EventBus:
    """Delivers events to registered listeners, in registration order."""

    def __init__(self):
        self._listeners: List[EventListener] = []

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)
        logger.debug("Added event listener %r", listener)

    def remove_listener(self, listener: EventListener) -> bool:
        """Remove a listener.

        Returns:
            True if the listener was registered
        """
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        logger.debug("Removed event listener %r", listener)
        return True

    def emit(self, event: MonitoringEvent) -> None:
        """Call every listener with the event.

        A failing listener is logged and skipped; the others still receive
        the event.
        """
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "Error in event listener %r for %s: %s",
                    listener,
                    event.type.value,
                    e,
                )

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
