"""
eyetalk/core/events.py — In-process event bus for dwell-engine notifications.

UI bridges, audio and outward signalling subscribe to the ``ON_*`` events
without holding references to the engine internals. Payloads are
JSON-safe dicts.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

EventCallback = Callable[[Dict[str, Any]], None]

# ── Event-name constants ──────────────────────────────────────────────────────

ON_ACTIVE_TARGET_CHANGED = "ON_ACTIVE_TARGET_CHANGED"
"""The dwell candidate changed. Payload: ``{"target_id": str | None}``."""

ON_PROGRESS_UPDATED = "ON_PROGRESS_UPDATED"
"""Dwell progress changed. Payload: ``{"target_id": str | None, "progress": float}``."""

ON_SELECTION_CONFIRMED = "ON_SELECTION_CONFIRMED"
"""A standard target was selected. Payload: id, label, timestamp, gaze point."""

ON_LOCK_STATE_CHANGED = "ON_LOCK_STATE_CHANGED"
"""The lock mode flipped. Payload: ``{"locked": bool, "timestamp": float}``."""

ON_SESSION_STARTED = "ON_SESSION_STARTED"
ON_SESSION_STOPPED = "ON_SESSION_STOPPED"

ALL_EVENTS: tuple[str, ...] = (
    ON_ACTIVE_TARGET_CHANGED,
    ON_PROGRESS_UPDATED,
    ON_SELECTION_CONFIRMED,
    ON_LOCK_STATE_CHANGED,
    ON_SESSION_STARTED,
    ON_SESSION_STOPPED,
)


class EventBus:
    """
    Synchronous publish/subscribe hub.

    Callbacks run in the publisher's thread, in registration order. A
    callback that raises is logged and skipped; it never disrupts the
    remaining subscribers or the publisher.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[EventCallback]] = defaultdict(list)

    def subscribe(self, event: str, callback: EventCallback) -> None:
        """
        Register *callback* to receive payloads whenever *event* is published.

        Args:
            event: One of the ``ON_*`` module-level constants.
            callback: Callable ``(data: dict) → None``.
        """
        with self._lock:
            self._subscribers[event].append(callback)
        logger.debug("Subscribed to %s", event)

    def unsubscribe(self, event: str, callback: EventCallback) -> None:
        with self._lock:
            if callback in self._subscribers.get(event, []):
                self._subscribers[event].remove(callback)

    def publish(self, event: str, data: Dict[str, Any]) -> None:
        """
        Dispatch *event* to all registered callbacks with payload *data*.

        Args:
            event: Event name string (one of the ``ON_*`` constants).
            data: JSON-safe dict payload passed verbatim to each callback.
        """
        with self._lock:
            callbacks = list(self._subscribers.get(event, []))
        for cb in callbacks:
            try:
                cb(data)
            except Exception as exc:  # noqa: BLE001
                logger.error("Event callback for %s raised: %s", event, exc, exc_info=True)
