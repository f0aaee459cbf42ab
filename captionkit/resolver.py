"""
Caption resolution for captionkit.

Discovers which caption languages exist for a video, first through the
vendor metadata API and then by probing the raw storage zone with the known
file naming conventions, and parses every hit into cues. Languages are
resolved independently: a failure for one never affects the others.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .bunny.client import BunnyClient
from .bunny.storage import probe_storage_captions
from .cache import Clock, TTLCache
from .errors import CaptionsUnavailableError
from .models import (
    METHOD_VENDOR_METADATA,
    CaptionEntry,
    CaptionSource,
    Cue,
    CueTrack,
    ResolutionResult,
    ResolverConfig,
    Success,
    VendorError,
)
from .subtitles.parser import parse_captions
from .utils import normalize_language_code

logger = logging.getLogger(__name__)

LanguageOutcome = Optional[Tuple[List[Cue], CaptionSource]]


class ResolveRequest:
    """Handle for one in-flight resolution; cancelling it stops further probes."""

    def __init__(self, video_id: str):
        self.video_id = video_id
        self.cancel_event = threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


def _normalize_requested(languages: Iterable[str]) -> List[str]:
    ordered: List[str] = []
    for language in languages:
        code = normalize_language_code(language) or (language or "").strip().lower()
        if code and code not in ordered:
            ordered.append(code)
    return ordered


class CaptionResolver:
    """
    Resolves caption tracks for Bunny.net videos.

    Metadata responses are cached per video in an injected ``TTLCache``.
    Starting a resolution for a new video cancels the one in flight.
    """

    def __init__(
        self,
        client: BunnyClient,
        config: Optional[ResolverConfig] = None,
        cache: Optional[TTLCache] = None,
        clock: Optional[Clock] = None,
    ):
        self.client = client
        self.config = config or ResolverConfig()
        self.cache = cache if cache is not None else TTLCache(self.config.metadata_ttl, clock)
        self._lock = threading.Lock()
        self._active: Optional[ResolveRequest] = None

    def begin(self, video_id: str) -> ResolveRequest:
        """Register a new request, cancelling whatever was in flight."""
        request = ResolveRequest(video_id)
        with self._lock:
            if self._active is not None:
                logger.info(f"Cancelling caption resolution for {self._active.video_id}")
                self._active.cancel()
            self._active = request
        return request

    def cancel(self) -> None:
        with self._lock:
            if self._active is not None:
                self._active.cancel()
                self._active = None

    def resolve(self, video_id: str, requested_languages: Iterable[str]) -> ResolutionResult:
        """
        Resolve captions for a video.

        Args:
            video_id: Bunny video GUID
            requested_languages: Language codes to look for

        Returns:
            ResolutionResult with the tracks and sources that were found;
            languages that could not be found are simply absent

        Raises:
            CaptionsUnavailableError: If nothing resolved and the metadata
                call itself failed
        """
        request = self.begin(video_id)
        try:
            return self._resolve(request, _normalize_requested(requested_languages))
        finally:
            with self._lock:
                if self._active is request:
                    self._active = None

    def load(self, store: "CueTrackStore", video_id: str, requested_languages: Iterable[str]) -> ResolutionResult:
        """
        Switch ``store`` to ``video_id``, resolve and publish the result.

        A total failure degrades to an empty result so playback is never
        blocked by captions.
        """
        store.switch_video(video_id)
        languages = _normalize_requested(requested_languages)
        try:
            result = self.resolve(video_id, languages)
        except CaptionsUnavailableError as e:
            logger.warning(str(e))
            return ResolutionResult(video_id=video_id, requested=languages, metadata_error=e.detail)
        store.publish(result)
        return result

    def _fetch_metadata(self, video_id: str):
        return self.cache.get_or_set(
            video_id,
            lambda: self.client.get_video(video_id, timeout=self.config.metadata_timeout),
            cache_if=lambda result: isinstance(result, Success),
        )

    def _resolve(self, request: ResolveRequest, languages: List[str]) -> ResolutionResult:
        video_id = request.video_id
        result = ResolutionResult(video_id=video_id, requested=languages)
        if not languages:
            return result

        entries_by_language: Dict[str, List[CaptionEntry]] = {}
        metadata = self._fetch_metadata(video_id)
        if isinstance(metadata, Success):
            for entry in metadata.data.captions:
                code = normalize_language_code(entry.language)
                if code in languages:
                    entries_by_language.setdefault(code, []).append(entry)
        elif isinstance(metadata, VendorError):
            result.metadata_error = metadata.detail
            logger.warning(f"Metadata lookup failed for {video_id}: {metadata.detail}")
        else:
            logger.info(f"No metadata for {video_id}, probing storage only")

        outcomes: Dict[str, Tuple[List[Cue], CaptionSource]] = {}
        workers = max(1, min(self.config.max_workers, len(languages)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(self._resolve_language, request, language, entries_by_language.get(language, [])): language
                for language in languages
            }
            for future in as_completed(futures):
                language = futures[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    logger.warning(f"Caption resolution for {video_id}/{language} failed: {str(e)}")
                    continue
                if outcome is not None:
                    outcomes[language] = outcome

        for language in languages:
            if language in outcomes:
                cues, source = outcomes[language]
                result.tracks[language] = cues
                result.sources[language] = source

        if request.cancelled:
            logger.info(f"Discarding caption resolution for {video_id}: superseded")
            result.cancelled = True
            return result

        if result.missing:
            logger.warning(
                f"Captions for {video_id}: resolved {result.available_languages or 'none'}, "
                f"missing {result.missing}"
            )
        else:
            logger.info(f"Captions for {video_id}: resolved all of {languages}")

        if not result.tracks and result.metadata_error is not None:
            raise CaptionsUnavailableError(video_id, result.metadata_error)

        return result

    def _resolve_language(self, request: ResolveRequest, language: str, entries: List[CaptionEntry]) -> LanguageOutcome:
        video_id = request.video_id

        for entry in entries:
            if request.cancelled:
                return None
            outcome = self._from_metadata_entry(video_id, language, entry)
            if outcome is not None:
                return outcome

        if request.cancelled:
            return None

        if not self.client.has_storage_credentials():
            logger.debug(f"No storage credentials configured, skipping storage probe for {language}")
            return None

        source = probe_storage_captions(
            self.client,
            video_id,
            language,
            timeout=self.config.probe_timeout,
            policy=self.config.probe_policy,
            cancel_event=request.cancel_event,
        )
        if source is None:
            return None

        cues = parse_captions(source.content)
        if not cues:
            logger.warning(f"Storage captions for {video_id}/{language} contained no cues")
            return None
        return cues, source

    def _from_metadata_entry(self, video_id: str, language: str, entry: CaptionEntry) -> LanguageOutcome:
        if entry.text:
            cues = parse_captions(entry.text)
            if cues:
                logger.info(f"Using inline {language} captions from metadata for {video_id}")
                return cues, CaptionSource(language=language, method=METHOD_VENDOR_METADATA, url=None, content=entry.text)

        if not entry.url:
            return None

        fetched = self.client.fetch_text(entry.url, timeout=self.config.caption_timeout)
        if not isinstance(fetched, Success):
            logger.warning(f"Could not download {language} captions for {video_id}: {fetched}")
            return None

        cues = parse_captions(fetched.data)
        if not cues:
            logger.warning(f"Downloaded {language} captions for {video_id} contained no cues")
            return None

        logger.info(f"Downloaded {len(cues)} {language} cues for {video_id} from metadata URL")
        return cues, CaptionSource(language=language, method=METHOD_VENDOR_METADATA, url=entry.url, content=fetched.data)


class CueTrackStore:
    """
    Latest-snapshot holder for the cue tracks of the video being played.

    The mapping is never mutated in place: every change swaps in a new
    read-only snapshot, so readers need no locking. Results for a video other
    than the current one, or from cancelled requests, are dropped.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._video_id: Optional[str] = None
        self._tracks: Mapping[str, List[Cue]] = MappingProxyType({})
        self._sources: Mapping[str, CaptionSource] = MappingProxyType({})
        self._listeners: List[Callable[[Mapping[str, List[Cue]]], None]] = []

    @property
    def video_id(self) -> Optional[str]:
        return self._video_id

    @property
    def tracks(self) -> Mapping[str, List[Cue]]:
        return self._tracks

    @property
    def sources(self) -> Mapping[str, CaptionSource]:
        return self._sources

    @property
    def languages(self) -> List[str]:
        return list(self._tracks.keys())

    def switch_video(self, video_id: str) -> None:
        with self._lock:
            if video_id == self._video_id:
                return
            self._video_id = video_id
            self._tracks = MappingProxyType({})
            self._sources = MappingProxyType({})
            snapshot = self._tracks
        self._notify(snapshot)

    def publish(self, result: ResolutionResult) -> bool:
        """
        Install a resolution result. Tracks that are already non-empty for
        the current video are kept as they are.

        Returns:
            True if the snapshot was replaced
        """
        with self._lock:
            if result.cancelled or result.video_id != self._video_id:
                logger.debug(f"Dropping stale caption result for {result.video_id}")
                return False
            tracks: CueTrack = dict(result.tracks)
            sources = dict(result.sources)
            for language, cues in self._tracks.items():
                if cues:
                    tracks[language] = cues
                    if language in self._sources:
                        sources[language] = self._sources[language]
            self._tracks = MappingProxyType(tracks)
            self._sources = MappingProxyType(sources)
            snapshot = self._tracks
        self._notify(snapshot)
        return True

    def subscribe(self, handler: Callable[[Mapping[str, List[Cue]]], None]) -> Callable[[], None]:
        self._listeners.append(handler)

        def dispose():
            if handler in self._listeners:
                self._listeners.remove(handler)

        return dispose

    def _notify(self, snapshot: Mapping[str, List[Cue]]) -> None:
        for handler in list(self._listeners):
            handler(snapshot)
