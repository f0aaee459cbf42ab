"""
Playback adapter interface.

Both adapters expose the same command set and event stream. Caption status
has one shape for both, but only the native adapter can see individual
cues; the iframe adapter reports coarse enabled/language state.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Set

from ..models import PlaybackSession
from .events import EVENT_ERROR, EventEmitter
from .scheduler import Scheduler, ThreadingScheduler, TimerHandle

logger = logging.getLogger(__name__)

MODE_SHOWING = "showing"
MODE_HIDDEN = "hidden"


@dataclass
class TextTrackStatus:
    language: str
    label: str
    mode: str = MODE_HIDDEN
    has_active_cue: bool = False


@dataclass
class CaptionStatus:
    enabled: bool
    language: Optional[str]
    tracks: List[TextTrackStatus] = field(default_factory=list)


@dataclass
class AudioTrack:
    index: int
    language: Optional[str] = None
    name: Optional[str] = None


def match_audio_track(tracks: List[AudioTrack], language: str) -> Optional[AudioTrack]:
    """
    Find the audio track for ``language``.

    An exact language match anywhere in the list wins over a track whose
    name merely contains the code ("en" is inside "French").
    """
    wanted = (language or "").lower()
    if not wanted:
        return None
    for track in tracks:
        if (track.language or "").lower() == wanted:
            return track
    for track in tracks:
        if wanted in (track.name or "").lower():
            return track
    return None


class PlaybackAdapter:
    """
    Base class for playback engines.

    Subclasses implement the commands; this class owns the session, the
    event emitter and every timer and subscription the adapter creates, and
    releases all of them in ``destroy``.
    """

    name = "base"

    def __init__(self, scheduler: Optional[Scheduler] = None):
        self.scheduler = scheduler or ThreadingScheduler()
        self.session = PlaybackSession()
        self.events = EventEmitter()
        self.destroyed = False
        self._timers: Set[TimerHandle] = set()
        self._disposers: List[Callable[[], None]] = []
        self._lock = threading.RLock()

    # Commands

    def play(self) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def seek(self, seconds: float) -> None:
        raise NotImplementedError

    def set_volume(self, volume: float) -> None:
        raise NotImplementedError

    def mute(self) -> None:
        raise NotImplementedError

    def unmute(self) -> None:
        raise NotImplementedError

    def set_audio_track(self, language: str) -> bool:
        raise NotImplementedError

    def get_audio_tracks(self) -> List[AudioTrack]:
        raise NotImplementedError

    def set_caption_track(self, language: Optional[str]) -> None:
        raise NotImplementedError

    def get_caption_status(self) -> CaptionStatus:
        raise NotImplementedError

    def get_current_caption_text(self) -> Optional[str]:
        raise NotImplementedError

    # Queries

    def get_current_time(self) -> float:
        return self.session.current_time

    def get_duration(self) -> float:
        return self.session.duration

    def is_paused(self) -> bool:
        return self.session.paused

    def subscribe(self, event: str, handler: Callable[..., Any]) -> Callable[[], None]:
        return self.events.subscribe(event, handler)

    # Lifecycle

    def destroy(self) -> None:
        with self._lock:
            if self.destroyed:
                return
            self.destroyed = True
            timers = list(self._timers)
            self._timers.clear()
            disposers = self._disposers
            self._disposers = []

        for handle in timers:
            handle.cancel()
        for dispose in disposers:
            dispose()
        self._teardown()
        self.events.clear()
        logger.debug(f"{self.name} adapter destroyed")

    def _teardown(self) -> None:
        """Release engine resources; called once from ``destroy``."""

    # Helpers for subclasses

    def _emit(self, event: str, *args: Any) -> None:
        if not self.destroyed:
            self.events.emit(event, *args)

    def _fail(self, error: Exception) -> None:
        logger.error(f"{self.name} playback failed: {str(error)}")
        self._emit(EVENT_ERROR, error)

    def _track(self, dispose: Optional[Callable[[], None]]) -> None:
        if dispose is not None:
            self._disposers.append(dispose)

    def _schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> Optional[TimerHandle]:
        with self._lock:
            if self.destroyed:
                return None

            scheduled: List[TimerHandle] = []

            def run():
                with self._lock:
                    for fired in scheduled:
                        self._timers.discard(fired)
                if not self.destroyed:
                    callback(*args)

            handle = self.scheduler.call_later(delay, run)
            scheduled.append(handle)
            self._timers.add(handle)
            return handle

    def _cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is None:
            return
        handle.cancel()
        with self._lock:
            self._timers.discard(handle)
