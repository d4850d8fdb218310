"""Event channel — explicit change notifications for any front end.

Replaces UI-toolkit bindings: the repository and coordinator publish
``SyncEvent`` models here and listeners re-read whatever state they render.
A failing listener is logged and does not block delivery to the others.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from subsync.models.artifacts import utc_now

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    ARTIFACTS_CHANGED = "artifacts_changed"
    SYNC_STATE_CHANGED = "sync_state_changed"
    SYNC_SUCCEEDED = "sync_succeeded"
    SYNC_FAILED = "sync_failed"


class SyncEvent(BaseModel):
    """A single notification published on the channel."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    action: str = ""  # e.g. "save", "reorder", "upload"
    details: dict[str, Any] = {}
    timestamp_utc: datetime = Field(default_factory=utc_now)


Listener = Callable[[SyncEvent], None]


class EventChannel:
    """Fan-out of ``SyncEvent`` to every subscribed listener.

    Usage
    -----
    >>> channel = EventChannel()
    >>> unsubscribe = channel.subscribe(print)
    >>> channel.publish(SyncEvent(kind=EventKind.ARTIFACTS_CHANGED))
    >>> unsubscribe()
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* and return a callable that removes it.

        Duplicate registration of the same listener is ignored.
        """
        if listener not in self._listeners:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self, event: SyncEvent) -> None:
        """Deliver *event* to all listeners in subscription order."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Listener %r failed for %s event", listener, event.kind.value
                )

    def emit(self, kind: EventKind, action: str = "", **details: Any) -> SyncEvent:
        """Build and publish an event in one call."""
        event = SyncEvent(kind=kind, action=action, details=details)
        self.publish(event)
        return event
