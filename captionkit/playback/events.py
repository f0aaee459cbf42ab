"""Adapter event names and a small subscribe/emit helper."""

import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

EVENT_READY = "ready"
EVENT_PLAY = "play"
EVENT_PAUSE = "pause"
EVENT_ENDED = "ended"
EVENT_ERROR = "error"
EVENT_TIMEUPDATE = "timeupdate"
EVENT_DURATIONCHANGE = "durationchange"

EVENTS = (
    EVENT_READY,
    EVENT_PLAY,
    EVENT_PAUSE,
    EVENT_ENDED,
    EVENT_ERROR,
    EVENT_TIMEUPDATE,
    EVENT_DURATIONCHANGE,
)

Handler = Callable[..., Any]


class EventEmitter:
    """
    Per-event handler lists. ``subscribe`` returns a disposer that removes
    the handler again; calling it twice is harmless.
    """

    def __init__(self, events=EVENTS):
        self._events = tuple(events)
        self._handlers: Dict[str, List[Handler]] = {name: [] for name in self._events}
        self._lock = threading.Lock()

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        if event not in self._handlers:
            raise ValueError(f"Unknown event: {event}")
        with self._lock:
            self._handlers[event].append(handler)

        def dispose():
            with self._lock:
                if handler in self._handlers[event]:
                    self._handlers[event].remove(handler)

        return dispose

    def emit(self, event: str, *args: Any) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event, ()))
        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Handler for '{event}' raised")

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    def clear(self) -> None:
        with self._lock:
            for handlers in self._handlers.values():
                handlers.clear()
