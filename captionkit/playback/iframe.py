"""
Iframe embed playback adapter.

Controls the vendor player inside an iframe through a player.js-style RPC
object. The RPC attach can race the iframe's own load, so attaching is
retried on a bounded policy; giving up is only logged because the embedded
player stays usable by hand. Only a failure to load the iframe itself is
fatal.

Captions are rendered by the vendor player, so caption status is limited to
the enabled flag and the selected language.
"""

import logging
import re
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..errors import PlaybackFatalError, PlayerNotReadyError
from ..models import DEFAULT_LANGUAGES
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

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.25
DEFAULT_EMBED_BASE_URL = "https://iframe.mediadelivery.net"

DEFAULT_ATTACH_POLICY = RetryPolicy(max_attempts=5, delay=0.2)
DEFAULT_READY_POLICY = RetryPolicy(max_attempts=20, delay=0.25)

_PLAY_URL = re.compile(r'/play/(\d+)/([^/?]+)')
_FATAL_MARKERS = ("fatal", "cannot recover")


def pick_caption_language(caption_languages: Iterable[str], locale: str = "en") -> Optional[str]:
    """Locale language if captions exist for it, else English, else the first."""
    languages = list(caption_languages)
    if not languages:
        return None
    preferred = (locale or "")[:2].lower()
    if preferred in languages:
        return preferred
    if "en" in languages:
        return "en"
    return languages[0]


def build_embed_url(
    url: str,
    autoplay: bool = False,
    controls: bool = True,
    locale: str = "en",
    default_audio_track: str = "en",
    caption_languages: Iterable[str] = (),
    supported_audio_languages: Sequence[str] = DEFAULT_LANGUAGES,
    embed_base_url: str = DEFAULT_EMBED_BASE_URL,
) -> str:
    """
    Build the iframe ``src`` for a Bunny embed or play URL.

    ``/play/{library}/{video}`` links are rewritten to the ``/embed/`` form.
    The audio track follows the locale when it is a supported audio
    language; the text track is chosen by ``pick_caption_language``.

    Example:
        >>> build_embed_url("https://iframe.mediadelivery.net/play/12/abc", locale="es")
        'https://iframe.mediadelivery.net/embed/12/abc?autoplay=false&responsive=true&controls=true&defaultAudioTrack=es'
    """
    if not url:
        raise ValueError("An embed or play URL is required")

    final_url = url
    match = _PLAY_URL.search(url)
    if match:
        final_url = f"{embed_base_url.rstrip('/')}/embed/{match.group(1)}/{match.group(2)}"

    separator = "&" if "?" in final_url else "?"
    final_url += (
        f"{separator}autoplay={str(bool(autoplay)).lower()}"
        f"&responsive=true&controls={str(bool(controls)).lower()}"
    )

    locale_language = (locale or "")[:2].lower()
    audio_language = locale_language if locale_language in supported_audio_languages else default_audio_track
    final_url += f"&defaultAudioTrack={audio_language}"

    caption_language = pick_caption_language(caption_languages, locale)
    if caption_language:
        final_url += f"&defaultTextTrack={caption_language}"

    return final_url


class RpcPlayer:
    """
    Player.js-style RPC surface of the embedded player.

    ``on`` accepts ``ready``, ``play``, ``pause``, ``ended`` and ``error``.
    """

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        raise NotImplementedError

    def off(self, event: str) -> None:
        raise NotImplementedError

    def play(self) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def set_current_time(self, seconds: float) -> None:
        raise NotImplementedError

    def get_current_time(self) -> float:
        raise NotImplementedError

    def get_duration(self) -> float:
        raise NotImplementedError

    def set_volume(self, volume: int) -> None:
        """Volume on the player.js 0-100 scale."""
        raise NotImplementedError

    def mute(self) -> None:
        raise NotImplementedError

    def unmute(self) -> None:
        raise NotImplementedError

    def set_text_track(self, language: str) -> None:
        raise NotImplementedError

    def get_audio_tracks(self) -> List[Any]:
        """Track descriptors carrying ``lang``/``language`` and ``name``."""
        raise NotImplementedError

    def set_audio_track(self, index: int) -> None:
        raise NotImplementedError


class IframeElement:
    """Host iframe; ``on`` accepts ``load`` and ``error`` and returns a disposer."""

    src: str = ""

    def on(self, event: str, handler: Callable[..., Any]) -> Callable[[], None]:
        raise NotImplementedError


def _error_message(data: Any) -> str:
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data)
    return str(data)


def _descriptor_field(descriptor: Any, *names: str) -> Optional[str]:
    for name in names:
        if isinstance(descriptor, dict):
            value = descriptor.get(name)
        else:
            value = getattr(descriptor, name, None)
        if value:
            return str(value)
    return None


def _to_audio_track(index: int, descriptor: Any) -> AudioTrack:
    return AudioTrack(
        index=index,
        language=_descriptor_field(descriptor, "lang", "language"),
        name=_descriptor_field(descriptor, "name", "label"),
    )


class IframeAdapter(PlaybackAdapter):
    """Playback through the vendor's iframe embed."""

    name = "iframe"

    def __init__(
        self,
        rpc_factory: Callable[[IframeElement], RpcPlayer],
        iframe: IframeElement,
        scheduler: Optional[Scheduler] = None,
        caption_languages: Iterable[str] = (),
        saved_position: Optional[float] = None,
        attach_policy: RetryPolicy = DEFAULT_ATTACH_POLICY,
        ready_policy: RetryPolicy = DEFAULT_READY_POLICY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(scheduler)
        self.rpc_factory = rpc_factory
        self.iframe = iframe
        self.caption_languages: List[str] = list(caption_languages)
        self.saved_position = saved_position
        self.attach_policy = attach_policy
        self.ready_policy = ready_policy
        self.player: Optional[RpcPlayer] = None
        self.attach_gave_up = False
        self.failed = False
        self.captions_enabled = False
        self._sleep = sleep
        self._attach_attempts = 0
        self._poll_handle: Optional[TimerHandle] = None
        self._volume = 1.0

    def load(self, embed_url: str, caption_language: Optional[str] = None) -> None:
        """Point the iframe at ``embed_url``; attaching starts once it loads."""
        self._track(self.iframe.on("load", self._on_iframe_load))
        self._track(self.iframe.on("error", self._on_iframe_error))
        if caption_language:
            self.captions_enabled = True
            self.session.active_caption_language = caption_language
        logger.info(f"Loading embed player: {embed_url}")
        self.iframe.src = embed_url

    # Attach

    def _on_iframe_load(self, *_: Any) -> None:
        if self.player is None and not self.failed:
            self._attach()

    def _on_iframe_error(self, data: Any = None) -> None:
        self.failed = True
        self._stop_polling()
        self._fail(PlaybackFatalError(f"Embedded player failed to load: {_error_message(data)}"))

    def _attach(self) -> None:
        if self.destroyed or self.player is not None:
            return
        self._attach_attempts += 1
        try:
            player = self.rpc_factory(self.iframe)
        except Exception as e:
            if self.attach_policy.should_retry(self._attach_attempts):
                wait = self.attach_policy.delay_for(self._attach_attempts)
                logger.debug(f"Player RPC attach attempt {self._attach_attempts} failed ({e}), retrying in {wait:.2f}s")
                self._schedule(wait, self._attach)
            else:
                self.attach_gave_up = True
                logger.warning(
                    f"Player RPC did not attach after {self._attach_attempts} attempts; "
                    "the embedded player remains usable directly"
                )
            return

        self.player = player
        player.on("ready", self._on_ready)
        player.on("play", self._on_play)
        player.on("pause", self._on_pause)
        player.on("ended", self._on_ended)
        player.on("error", self._on_player_error)
        logger.info(f"Player RPC attached after {self._attach_attempts} attempt(s)")

    # Player events

    def _on_ready(self, *_: Any) -> None:
        self.session.ready = True
        try:
            duration = float(self.player.get_duration() or 0.0)
        except Exception as e:
            logger.warning(f"Could not read duration: {str(e)}")
        else:
            self.session.duration = duration
            self._emit(EVENT_DURATIONCHANGE, duration)

        if self.saved_position and self.saved_position > 0:
            try:
                self.player.set_current_time(self.saved_position)
                self.session.current_time = self.saved_position
            except Exception as e:
                logger.warning(f"Could not restore position {self.saved_position}: {str(e)}")

        self._emit(EVENT_READY)

    def _on_play(self, *_: Any) -> None:
        self.session.paused = False
        self._emit(EVENT_PLAY)
        self._start_polling()

    def _on_pause(self, *_: Any) -> None:
        self.session.paused = True
        self._stop_polling()
        self._emit(EVENT_PAUSE)

    def _on_ended(self, *_: Any) -> None:
        self.session.paused = True
        self._stop_polling()
        self._emit(EVENT_ENDED)

    def _on_player_error(self, data: Any = None) -> None:
        message = _error_message(data)
        lowered = message.lower()
        if any(marker in lowered for marker in _FATAL_MARKERS):
            self.failed = True
            self._stop_polling()
            self._fail(PlaybackFatalError(f"Embedded player error: {message}"))
        else:
            logger.warning(f"Non-fatal player error, continuing playback: {message}")

    # Time polling

    def _start_polling(self) -> None:
        if self._poll_handle is None:
            self._poll_handle = self._schedule(POLL_INTERVAL, self._poll)

    def _stop_polling(self) -> None:
        self._cancel(self._poll_handle)
        self._poll_handle = None

    def _poll(self) -> None:
        self._poll_handle = None
        if self.session.paused or self.player is None or self.failed:
            return
        try:
            current_time = float(self.player.get_current_time() or 0.0)
        except Exception as e:
            logger.debug(f"Time poll failed: {str(e)}")
        else:
            self.session.current_time = current_time
            self._emit(EVENT_TIMEUPDATE, current_time)
        self._poll_handle = self._schedule(POLL_INTERVAL, self._poll)

    # Commands

    def _command(self, action: str, *args: Any) -> bool:
        if self.player is None:
            logger.debug(f"Ignoring {action}: player RPC not attached")
            return False
        getattr(self.player, action)(*args)
        return True

    def play(self) -> None:
        """
        Start playback, waiting for the RPC attach if needed.

        Raises:
            PlayerNotReadyError: If the player did not attach in time
        """
        if self.failed:
            raise PlaybackFatalError("Embedded player has failed")
        if self.player is None:
            if self.attach_gave_up:
                raise PlayerNotReadyError("Player RPC never attached")
            logger.debug("play() before RPC attach, waiting for player")
            self.ready_policy.wait_until(
                lambda: self.player is not None or self.attach_gave_up,
                sleep=self._sleep,
            )
            if self.player is None:
                raise PlayerNotReadyError("Embedded player did not become ready")
        self.player.play()

    def pause(self) -> None:
        self._command("pause")

    def seek(self, seconds: float) -> None:
        target = max(0.0, float(seconds))
        if self.session.duration > 0:
            target = min(target, self.session.duration)
        if self._command("set_current_time", target):
            self.session.current_time = target

    def set_volume(self, volume: float) -> None:
        self._volume = min(1.0, max(0.0, float(volume)))
        self._command("set_volume", int(round(self._volume * 100)))

    def mute(self) -> None:
        self._command("mute")

    def unmute(self) -> None:
        self._command("unmute")

    def get_audio_tracks(self) -> List[AudioTrack]:
        if self.player is None:
            return []
        try:
            descriptors = self.player.get_audio_tracks() or []
        except Exception as e:
            logger.debug(f"Audio tracks not available over RPC: {str(e)}")
            return []
        return [_to_audio_track(index, descriptor) for index, descriptor in enumerate(descriptors)]

    def set_audio_track(self, language: str) -> bool:
        """
        Switch the embedded player's audio track by language.

        When the player cannot switch (not attached, no matching track, or
        the RPC call fails) the language is still recorded so the next embed
        load can pass it as ``defaultAudioTrack``; False is returned then.
        """
        self.session.active_audio_track = language
        track = match_audio_track(self.get_audio_tracks(), language)
        if track is None:
            logger.debug(f"Audio track {language} recorded for the next embed load")
            return False
        try:
            self.player.set_audio_track(track.index)
        except Exception as e:
            logger.warning(f"Could not switch audio track to {language}: {str(e)}")
            return False
        logger.info(f"Audio track switched to {language} (index {track.index})")
        return True

    def set_caption_track(self, language: Optional[str]) -> None:
        """
        Show captions for ``language`` or hide them with None. A player that
        rejects ``set_text_track`` keeps the selection recorded here.
        """
        self.captions_enabled = language is not None
        self.session.active_caption_language = language
        if language is None or self.player is None:
            return
        try:
            self.player.set_text_track(language)
        except Exception as e:
            logger.warning(f"set_text_track({language}) failed, keeping selection locally: {str(e)}")

    def get_caption_status(self) -> CaptionStatus:
        language = self.session.active_caption_language if self.captions_enabled else None
        tracks = [
            TextTrackStatus(
                language=code,
                label=code,
                mode=MODE_SHOWING if code == language else MODE_HIDDEN,
            )
            for code in self.caption_languages
        ]
        return CaptionStatus(enabled=self.captions_enabled, language=language, tracks=tracks)

    def get_current_caption_text(self) -> Optional[str]:
        return None

    def _teardown(self) -> None:
        self._poll_handle = None
        if self.player is not None:
            for event in ("ready", "play", "pause", "ended", "error"):
                try:
                    self.player.off(event)
                except Exception as e:
                    logger.debug(f"Could not unbind {event}: {str(e)}")
            self.player = None


__all__ = [
    'IframeAdapter',
    'IframeElement',
    'RpcPlayer',
    'build_embed_url',
    'pick_caption_language',
]
