"""
Structured job events.

Callers subscribe to an EventBus to follow submissions, negotiation and
polling without the core printing anything itself.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    JOB_SUBMITTED = "job_submitted"
    VARIANT_REJECTED = "variant_rejected"
    VARIANT_ACCEPTED = "variant_accepted"
    POLL_TICK = "poll_tick"
    TRANSPORT_RETRY = "transport_retry"
    TERMINAL_STATE = "terminal_state"


@dataclass(frozen=True)
class JobEvent:
    type: EventType
    endpoint_id: Optional[str] = None
    job_id: Optional[str] = None
    variant: Optional[str] = None
    status: Optional[str] = None
    attempt: Optional[int] = None
    detail: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventCallback = Callable[[JobEvent], None]


class EventBus:
    """Fan-out of JobEvents to subscribers."""

    def __init__(self):
        self._subscribers: List[EventCallback] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event_type: EventType, **fields) -> JobEvent:
        """Build a JobEvent and deliver it to every subscriber."""
        event = JobEvent(type=event_type, **fields)
        logger.debug(f"Event {event.type.value}: job={event.job_id} variant={event.variant} status={event.status}")
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                # A broken subscriber must not abort the job flow.
                logger.exception(f"Event subscriber failed on {event.type.value}")
        return event
