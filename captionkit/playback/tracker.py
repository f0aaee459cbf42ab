"""
Active-cue matching.

Given the cue track for the selected language and a playback time, pick the
cue that should be on screen. The tracker only signals a change when the
active cue's (start, end, text) identity changes, so overlays do not
re-render on every time sample.
"""

import logging
import threading
from typing import Callable, List, Mapping, Optional, Sequence

from ..models import Cue

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.1

CueHandler = Callable[[Optional[Cue]], None]


def find_active_cue(cues: Sequence[Cue], current_time: float, tolerance: float = DEFAULT_TOLERANCE) -> Optional[Cue]:
    """
    Return the cue active at ``current_time``.

    A cue matches when ``start - tolerance <= current_time <= end + tolerance``.
    When several match, the one whose midpoint is closest wins. Cues need
    not be sorted.
    """
    best: Optional[Cue] = None
    best_distance = 0.0
    for cue in cues:
        if cue.start - tolerance <= current_time <= cue.end + tolerance:
            distance = abs(cue.midpoint - current_time)
            if best is None or distance < best_distance:
                best = cue
                best_distance = distance
    return best


class ActiveCueTracker:
    """Tracks the active cue for one selected language."""

    def __init__(
        self,
        tracks: Optional[Mapping[str, List[Cue]]] = None,
        language: Optional[str] = None,
        tolerance: float = DEFAULT_TOLERANCE,
    ):
        self.tolerance = tolerance
        self._tracks: Mapping[str, List[Cue]] = tracks or {}
        self._language = language
        self._last_time: Optional[float] = None
        self._active: Optional[Cue] = None
        self._listeners: List[CueHandler] = []
        self._lock = threading.RLock()

    @property
    def tracks(self) -> Mapping[str, List[Cue]]:
        return self._tracks

    @property
    def language(self) -> Optional[str]:
        return self._language

    @property
    def active_cue(self) -> Optional[Cue]:
        return self._active

    @property
    def last_time(self) -> Optional[float]:
        return self._last_time

    @property
    def cues(self) -> List[Cue]:
        if self._language is None:
            return []
        return self._tracks.get(self._language) or []

    def update(self, current_time: float) -> bool:
        """Record a playback time sample; True if the active cue changed."""
        with self._lock:
            self._last_time = current_time
            return self._rematch()

    def set_language(self, language: Optional[str]) -> bool:
        with self._lock:
            self._language = language
            return self._rematch()

    def set_tracks(self, tracks: Mapping[str, List[Cue]]) -> bool:
        with self._lock:
            self._tracks = tracks
            return self._rematch()

    def subscribe(self, handler: CueHandler) -> Callable[[], None]:
        self._listeners.append(handler)

        def dispose():
            if handler in self._listeners:
                self._listeners.remove(handler)

        return dispose

    def _rematch(self) -> bool:
        if self._last_time is None:
            cue = None
        else:
            cue = find_active_cue(self.cues, self._last_time, self.tolerance)

        if cue is None and self._active is None:
            return False
        if cue is not None and cue.same_as(self._active):
            return False

        self._active = cue
        for handler in list(self._listeners):
            handler(cue)
        return True
