"""
Native HLS playback adapter.

Wraps an adaptive-streaming pipeline (an hls.js-style engine) attached to a
media element. Captions are not rendered by the engine: cues come from the
resolved cue tracks and an ``ActiveCueTracker`` that is re-sampled on every
``timeupdate`` and on a ~60 Hz frame loop while playing.

Fatal pipeline errors are handled in three tiers: network errors reload the
manifest, media errors run media recovery, anything else (or an exhausted
recovery budget) destroys the pipeline and surfaces ``PlaybackFatalError``.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional

from ..errors import PlaybackFatalError, PlaybackTransientError
from ..models import Cue
from ..retry import RetryPolicy
from .base import (
    MODE_HIDDEN,
    MODE_SHOWING,
    AudioTrack,
    CaptionStatus,
    PlaybackAdapter,
    TextTrackStatus,
    match_audio_track,
)
from .events import (
    EVENT_DURATIONCHANGE,
    EVENT_ENDED,
    EVENT_PAUSE,
    EVENT_PLAY,
    EVENT_READY,
    EVENT_TIMEUPDATE,
)
from .scheduler import Scheduler, TimerHandle
from .tracker import ActiveCueTracker

logger = logging.getLogger(__name__)

FRAME_INTERVAL = 1.0 / 60

ERROR_NETWORK = "network"
ERROR_MEDIA = "media"
ERROR_OTHER = "other"

PIPELINE_MANIFEST_PARSED = "manifest_parsed"
PIPELINE_ERROR = "error"

DEFAULT_NETWORK_POLICY = RetryPolicy(max_attempts=4, delay=1.0, backoff=2.0)
DEFAULT_MEDIA_POLICY = RetryPolicy(max_attempts=3, delay=0.0)


class NativeState(Enum):
    IDLE = "idle"
    LOADING_MANIFEST = "loading_manifest"
    MANIFEST_PARSED = "manifest_parsed"
    RESTORING_POSITION = "restoring_position"
    READY = "ready"
    FAILED = "failed"


@dataclass
class PipelineError:
    """Error reported by the streaming pipeline."""
    type: str
    fatal: bool
    details: str = ""


class MediaPipeline:
    """
    Adaptive-streaming engine interface.

    ``on`` registers a handler for ``manifest_parsed`` or ``error`` (called
    with a ``PipelineError``) and returns a disposer.
    """

    def attach_media(self, media: "MediaElement") -> None:
        raise NotImplementedError

    def load_source(self, url: str) -> None:
        raise NotImplementedError

    def start_load(self) -> None:
        raise NotImplementedError

    def recover_media_error(self) -> None:
        raise NotImplementedError

    def destroy(self) -> None:
        raise NotImplementedError

    def get_audio_tracks(self) -> List[AudioTrack]:
        raise NotImplementedError

    def set_audio_track(self, index: int) -> None:
        raise NotImplementedError

    def on(self, event: str, handler: Callable[..., Any]) -> Callable[[], None]:
        raise NotImplementedError


class MediaElement:
    """
    Media element interface.

    Exposes ``current_time``, ``duration``, ``volume`` and ``muted``
    attributes; ``on`` accepts ``play``, ``pause``, ``ended``,
    ``timeupdate`` and ``durationchange``.
    """

    current_time: float = 0.0
    duration: float = 0.0
    volume: float = 1.0
    muted: bool = False

    def play(self) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def on(self, event: str, handler: Callable[..., Any]) -> Callable[[], None]:
        raise NotImplementedError


class NativeHlsAdapter(PlaybackAdapter):
    """Playback through a direct HLS pipeline with tracker-driven captions."""

    name = "native"

    def __init__(
        self,
        pipeline: MediaPipeline,
        media: MediaElement,
        scheduler: Optional[Scheduler] = None,
        tracks: Optional[Mapping[str, List[Cue]]] = None,
        caption_language: Optional[str] = None,
        audio_language: Optional[str] = None,
        saved_position: Optional[float] = None,
        network_policy: RetryPolicy = DEFAULT_NETWORK_POLICY,
        media_policy: RetryPolicy = DEFAULT_MEDIA_POLICY,
    ):
        super().__init__(scheduler)
        self.pipeline = pipeline
        self.media = media
        self.tracker = ActiveCueTracker(tracks, caption_language)
        self.audio_language = audio_language
        self.saved_position = saved_position
        self.network_policy = network_policy
        self.media_policy = media_policy
        self.state = NativeState.IDLE
        self.session.active_caption_language = caption_language
        self._network_errors = 0
        self._media_errors = 0
        self._frame_handle: Optional[TimerHandle] = None
        self._pipeline_destroyed = False

    def load(self, url: str) -> None:
        """Attach the media element and start loading the manifest."""
        if self.state is not NativeState.IDLE:
            raise PlaybackFatalError(f"Cannot load in state {self.state.value}")

        self._track(self.pipeline.on(PIPELINE_MANIFEST_PARSED, self._on_manifest_parsed))
        self._track(self.pipeline.on(PIPELINE_ERROR, self._on_pipeline_error))
        self._track(self.media.on("play", self._on_play))
        self._track(self.media.on("pause", self._on_pause))
        self._track(self.media.on("ended", self._on_ended))
        self._track(self.media.on("timeupdate", self._on_timeupdate))
        self._track(self.media.on("durationchange", self._on_durationchange))

        self.state = NativeState.LOADING_MANIFEST
        logger.info(f"Loading HLS manifest: {url}")
        self.pipeline.attach_media(self.media)
        self.pipeline.load_source(url)

    def bind_store(self, store) -> None:
        """Follow a ``CueTrackStore`` so new snapshots reach the tracker."""
        self.tracker.set_tracks(store.tracks)
        self._track(store.subscribe(self.tracker.set_tracks))

    # Pipeline events

    def _on_manifest_parsed(self, *_: Any) -> None:
        if self.state is not NativeState.LOADING_MANIFEST:
            return
        self.state = NativeState.MANIFEST_PARSED
        logger.info("HLS manifest parsed")

        if self.audio_language:
            self.set_audio_track(self.audio_language)

        if self.saved_position and self.saved_position > 0:
            self.state = NativeState.RESTORING_POSITION
            logger.info(f"Restoring playback position to {self.saved_position:.1f}s")
            self.media.current_time = self.saved_position
            self._sample()

        self.state = NativeState.READY
        self.session.ready = True
        self._network_errors = 0
        self._media_errors = 0
        self._emit(EVENT_READY)

    def _on_pipeline_error(self, error: PipelineError) -> None:
        if self.state is NativeState.FAILED or self.destroyed:
            return

        if not error.fatal:
            logger.warning(f"Non-fatal {error.type} error: {error.details}")
            return

        if error.type == ERROR_NETWORK:
            self._network_errors += 1
            if self.network_policy.should_retry(self._network_errors):
                self._recover(self.network_policy, self._network_errors, self.pipeline.start_load, error)
                return
        elif error.type == ERROR_MEDIA:
            self._media_errors += 1
            if self.media_policy.should_retry(self._media_errors):
                self._recover(self.media_policy, self._media_errors, self.pipeline.recover_media_error, error)
                return

        self._fail_pipeline(error)

    def _recover(self, policy: RetryPolicy, attempt: int, action: Callable[[], None], error: PipelineError) -> None:
        transient = PlaybackTransientError(f"Fatal {error.type} error, recovering: {error.details}")
        logger.warning(f"{str(transient)} (recovery {attempt})")
        wait = policy.delay_for(attempt)
        if wait > 0:
            self._schedule(wait, action)
        else:
            action()

    def _fail_pipeline(self, error: PipelineError) -> None:
        self.state = NativeState.FAILED
        self.session.ready = False
        self._stop_frame_loop()
        self._destroy_pipeline()
        self._fail(PlaybackFatalError(f"Unrecoverable {error.type} error: {error.details}"))

    def _destroy_pipeline(self) -> None:
        if not self._pipeline_destroyed:
            self._pipeline_destroyed = True
            self.pipeline.destroy()

    # Media events

    def _on_play(self, *_: Any) -> None:
        self.session.paused = False
        self._emit(EVENT_PLAY)
        self._start_frame_loop()

    def _on_pause(self, *_: Any) -> None:
        self.session.paused = True
        self._stop_frame_loop()
        self._sample()
        self._emit(EVENT_PAUSE)

    def _on_ended(self, *_: Any) -> None:
        self.session.paused = True
        self._stop_frame_loop()
        self._emit(EVENT_ENDED)

    def _on_timeupdate(self, *_: Any) -> None:
        self._sample()
        self._emit(EVENT_TIMEUPDATE, self.session.current_time)

    def _on_durationchange(self, *_: Any) -> None:
        self.session.duration = float(self.media.duration or 0.0)
        self._emit(EVENT_DURATIONCHANGE, self.session.duration)

    def _sample(self) -> None:
        current_time = float(self.media.current_time or 0.0)
        self.session.current_time = current_time
        self.tracker.update(current_time)

    # Frame loop

    def _start_frame_loop(self) -> None:
        if self._frame_handle is None:
            self._frame_handle = self._schedule(FRAME_INTERVAL, self._frame)

    def _stop_frame_loop(self) -> None:
        self._cancel(self._frame_handle)
        self._frame_handle = None

    def _frame(self) -> None:
        self._frame_handle = None
        if self.session.paused or self.state is NativeState.FAILED:
            return
        self._sample()
        self._frame_handle = self._schedule(FRAME_INTERVAL, self._frame)

    # Commands

    def _require_usable(self) -> None:
        if self.state is NativeState.FAILED:
            raise PlaybackFatalError("Playback pipeline has failed")

    def play(self) -> None:
        self._require_usable()
        self.media.play()

    def pause(self) -> None:
        self.media.pause()

    def seek(self, seconds: float) -> None:
        self._require_usable()
        target = max(0.0, float(seconds))
        if self.session.duration > 0:
            target = min(target, self.session.duration)
        self.media.current_time = target
        self._sample()

    def set_volume(self, volume: float) -> None:
        self.media.volume = min(1.0, max(0.0, float(volume)))

    def mute(self) -> None:
        self.media.muted = True

    def unmute(self) -> None:
        self.media.muted = False

    def get_audio_tracks(self) -> List[AudioTrack]:
        return list(self.pipeline.get_audio_tracks())

    def set_audio_track(self, language: str) -> bool:
        """
        Switch to the audio track whose language equals ``language``, or
        failing that the first one whose name contains it. Returns False
        without error when nothing matches.
        """
        track = match_audio_track(self.get_audio_tracks(), language)
        if track is None:
            logger.debug(f"No audio track matches {language}")
            return False
        self.pipeline.set_audio_track(track.index)
        self.session.active_audio_track = language
        logger.info(f"Audio track switched to {language} (index {track.index})")
        return True

    def set_caption_track(self, language: Optional[str]) -> None:
        self.session.active_caption_language = language
        self.tracker.set_language(language)

    def get_caption_status(self) -> CaptionStatus:
        current = self.tracker.language
        active = self.tracker.active_cue is not None
        tracks = [
            TextTrackStatus(
                language=language,
                label=language,
                mode=MODE_SHOWING if language == current else MODE_HIDDEN,
                has_active_cue=language == current and active,
            )
            for language in self.tracker.tracks
        ]
        return CaptionStatus(enabled=current is not None, language=current, tracks=tracks)

    def get_current_caption_text(self) -> Optional[str]:
        cue = self.tracker.active_cue
        return cue.text if cue is not None else None

    def _teardown(self) -> None:
        self._frame_handle = None
        self._destroy_pipeline()
