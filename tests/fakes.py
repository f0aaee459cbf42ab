"""In-memory stand-ins for HTTP sessions, timers and playback engines."""

import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from captionkit.playback.base import AudioTrack
from captionkit.playback.scheduler import Scheduler, TimerHandle


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", json_data: Any = None):
        self.status_code = status_code
        self.text = text
        self._json = json_data

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


class FakeSession:
    """
    Routes requests by URL (query string ignored) to a response, an
    exception instance, or a callable returning either. Unrouted URLs 404.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def _respond(self, method: str, url: str, **kwargs: Any):
        with self._lock:
            self.calls.append((method, url, kwargs))
        route = self.routes.get(url, self.routes.get(url.split('?', 1)[0]))
        if callable(route) and not isinstance(route, FakeResponse):
            route = route(url, **kwargs)
        if route is None:
            return FakeResponse(404, "Not Found")
        if isinstance(route, Exception):
            raise route
        return route

    def get(self, url: str, **kwargs: Any):
        return self._respond("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any):
        return self._respond("POST", url, **kwargs)

    def urls(self, method: str = "GET") -> List[str]:
        return [url.split('?', 1)[0] for m, url, _ in self.calls if m == method]


def timeout_error(url: str = "", **_: Any):
    raise requests.Timeout(f"timed out: {url}")


class ManualScheduler(Scheduler):
    """Scheduler driven by ``advance``; callbacks run on the calling thread."""

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, TimerHandle, Callable[..., Any], Tuple[Any, ...]]] = []
        self._seq = 0

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle()
        self._seq += 1
        self._queue.append((self.now + max(0.0, delay), self._seq, handle, callback, args))
        return handle

    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [entry for entry in self._queue if entry[0] <= target + 1e-9]
            if not due:
                break
            entry = min(due, key=lambda e: (e[0], e[1]))
            self._queue.remove(entry)
            when, _, handle, callback, args = entry
            self.now = max(self.now, when)
            if not handle.cancelled:
                callback(*args)
        self.now = target


class _Emitter:
    def __init__(self):
        self.handlers: Dict[str, List[Callable[..., Any]]] = {}

    def on(self, event: str, handler: Callable[..., Any]):
        self.handlers.setdefault(event, []).append(handler)

        def dispose():
            if handler in self.handlers.get(event, []):
                self.handlers[event].remove(handler)

        return dispose

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self.handlers.get(event, [])):
            handler(*args)

    def count(self, event: str) -> int:
        return len(self.handlers.get(event, []))


class FakePipeline(_Emitter):
    def __init__(self, audio_tracks: Optional[List[AudioTrack]] = None):
        super().__init__()
        self.audio_tracks = list(audio_tracks or [])
        self.selected_audio: Optional[int] = None
        self.calls: List[str] = []
        self.source: Optional[str] = None
        self.destroyed = False

    def attach_media(self, media) -> None:
        self.calls.append("attach_media")

    def load_source(self, url: str) -> None:
        self.calls.append("load_source")
        self.source = url

    def start_load(self) -> None:
        self.calls.append("start_load")

    def recover_media_error(self) -> None:
        self.calls.append("recover_media_error")

    def destroy(self) -> None:
        self.calls.append("destroy")
        self.destroyed = True

    def get_audio_tracks(self) -> List[AudioTrack]:
        return self.audio_tracks

    def set_audio_track(self, index: int) -> None:
        self.selected_audio = index


class FakeMedia(_Emitter):
    def __init__(self, duration: float = 0.0):
        super().__init__()
        self.current_time = 0.0
        self.duration = duration
        self.volume = 1.0
        self.muted = False

    def play(self) -> None:
        self.emit("play")

    def pause(self) -> None:
        self.emit("pause")


class FakeRpcPlayer(_Emitter):
    """``rpc_error`` makes the track RPCs raise, as older embeds do."""

    def __init__(
        self,
        duration: float = 120.0,
        audio_tracks: Optional[List[Dict[str, Any]]] = None,
        rpc_error: Optional[Exception] = None,
    ):
        super().__init__()
        self.current_time = 0.0
        self.duration = duration
        self.audio_tracks = list(audio_tracks or [])
        self.rpc_error = rpc_error
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def set_text_track(self, language: str) -> None:
        self.calls.append(("set_text_track", (language,)))
        if self.rpc_error is not None:
            raise self.rpc_error

    def get_audio_tracks(self) -> List[Dict[str, Any]]:
        if self.rpc_error is not None:
            raise self.rpc_error
        return self.audio_tracks

    def set_audio_track(self, index: int) -> None:
        self.calls.append(("set_audio_track", (index,)))
        if self.rpc_error is not None:
            raise self.rpc_error

    def off(self, event: str) -> None:
        self.handlers.pop(event, None)

    def play(self) -> None:
        self.calls.append(("play", ()))
        self.emit("play")

    def pause(self) -> None:
        self.calls.append(("pause", ()))
        self.emit("pause")

    def set_current_time(self, seconds: float) -> None:
        self.calls.append(("set_current_time", (seconds,)))
        self.current_time = seconds

    def get_current_time(self) -> float:
        return self.current_time

    def get_duration(self) -> float:
        return self.duration

    def set_volume(self, volume: int) -> None:
        self.calls.append(("set_volume", (volume,)))

    def mute(self) -> None:
        self.calls.append(("mute", ()))

    def unmute(self) -> None:
        self.calls.append(("unmute", ()))


class FakeIframe(_Emitter):
    def __init__(self):
        super().__init__()
        self.src = ""


class FlakyRpcFactory:
    """Fails ``failures`` times before returning ``player``."""

    def __init__(self, player: FakeRpcPlayer, failures: int = 0):
        self.player = player
        self.failures = failures
        self.attempts = 0

    def __call__(self, iframe) -> FakeRpcPlayer:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise RuntimeError("player.js not loaded yet")
        return self.player
