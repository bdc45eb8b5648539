"""
In-process analytics client.

Mirrors the Segment analytics.js surface the experiment registry depends on:
listeners subscribe to ``"track"`` events with ``on``/``off``, and ``track``
reports an event and echoes it to those listeners.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

import structlog

logger = structlog.get_logger()

AnalyticsHandler = Callable[..., Any]


class Analytics:
    """
    Minimal Segment-style analytics client.

    Example:
        analytics = Analytics()
        analytics.on("track", lambda name, props: print(name, props))
        analytics.track("sign_up", {"plan": "pro"})
    """

    TRACK = "track"
    PAGE = "page"
    IDENTIFY = "identify"

    def __init__(self) -> None:
        self._handlers: dict[str, list[AnalyticsHandler]] = defaultdict(list)

    def on(self, event_type: str, handler: AnalyticsHandler) -> None:
        """Register a handler for an event type."""
        self._handlers[event_type].append(handler)

    def off(self, event_type: str, handler: AnalyticsHandler) -> None:
        """Unregister a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, []))

    def emit(self, event_type: str, *args: Any) -> None:
        """Deliver an event to every handler registered for its type."""
        for handler in list(self._handlers.get(event_type, [])):
            try:
                handler(*args)
            except Exception as e:
                logger.warning(
                    "Analytics handler failed",
                    handler=getattr(handler, "__name__", repr(handler)),
                    event_type=event_type,
                    error=str(e),
                )

    def track(self, event_name: str, properties: dict[str, Any] | None = None) -> None:
        """Record an action performed by the user."""
        properties = dict(properties or {})
        logger.debug("Analytics track", event_name=event_name, properties=properties)
        self.emit(self.TRACK, event_name, properties)

    def page(self, name: str, properties: dict[str, Any] | None = None) -> None:
        """Record a page view."""
        properties = dict(properties or {})
        logger.debug("Analytics page", page=name, properties=properties)
        self.emit(self.PAGE, name, properties)

    def identify(self, user_id: str, traits: dict[str, Any] | None = None) -> None:
        """Tie the current user to a known identity."""
        traits = dict(traits or {})
        logger.debug("Analytics identify", user_id=user_id)
        self.emit(self.IDENTIFY, user_id, traits)
