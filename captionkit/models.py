"""
Data models for captionkit.

Defines the core data structures used throughout the package: cues and
caption sources, vendor call results, playback session state and the
configuration objects for the vendor clients.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .retry import RetryPolicy

METHOD_VENDOR_METADATA = "vendor_metadata"
METHOD_STORAGE_DIRECT = "storage_direct"

DEFAULT_LANGUAGES = ("en", "es", "pt")

LANGUAGE_LABELS = {"en": "English", "es": "Spanish", "pt": "Portuguese"}


@dataclass(frozen=True)
class Cue:
    """A single timed caption."""
    start: float  # seconds
    end: float    # seconds
    text: str
    identifier: Optional[str] = None
    styles: Optional[str] = None

    @property
    def midpoint(self) -> float:
        return (self.start + self.end) / 2

    def same_as(self, other: Optional["Cue"]) -> bool:
        """Identity used for change detection: same start, end and text."""
        return (
            other is not None
            and self.start == other.start
            and self.end == other.end
            and self.text == other.text
        )


# language code -> ordered cues
CueTrack = Dict[str, List[Cue]]


@dataclass(frozen=True)
class WordTimestamp:
    """A word with its timing as reported by a speech-to-text vendor."""
    word: str
    start: float
    end: float


@dataclass
class CaptionSource:
    """A caption document discovered for one language."""
    language: str
    method: str  # METHOD_VENDOR_METADATA or METHOD_STORAGE_DIRECT
    url: Optional[str] = None  # None when the text came inline with metadata
    content: str = ""


@dataclass
class CaptionEntry:
    """One caption entry from the vendor video metadata."""
    language: Optional[str]
    label: Optional[str] = None
    url: Optional[str] = None
    text: Optional[str] = None
    default: bool = False


@dataclass
class VideoMetadata:
    """Typed subset of the vendor video metadata response."""
    video_id: str
    captions: List[CaptionEntry] = field(default_factory=list)
    duration: Optional[float] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Success:
    """Vendor call succeeded."""
    data: Any
    status_code: int = 200


@dataclass
class NotFound:
    """Vendor reported that the resource does not exist."""
    status_code: int = 404


@dataclass
class VendorError:
    """Vendor call failed: network error, timeout or unexpected status."""
    detail: str
    status_code: Optional[int] = None


@dataclass
class ResolutionResult:
    """Outcome of resolving captions for one video."""
    video_id: str
    requested: List[str] = field(default_factory=list)
    tracks: CueTrack = field(default_factory=dict)
    sources: Dict[str, CaptionSource] = field(default_factory=dict)
    metadata_error: Optional[str] = None
    cancelled: bool = False

    @property
    def missing(self) -> List[str]:
        """Requested languages that no method could resolve."""
        return [lang for lang in self.requested if lang not in self.tracks]

    @property
    def available_languages(self) -> List[str]:
        return [lang for lang in self.requested if lang in self.tracks]

    @property
    def source_urls(self) -> Dict[str, Optional[str]]:
        return {lang: source.url for lang, source in self.sources.items()}


@dataclass
class PlaybackSession:
    """Per-adapter playback state. Only the owning adapter writes to it."""
    current_time: float = 0.0
    duration: float = 0.0
    paused: bool = True
    active_audio_track: Optional[str] = None
    active_caption_language: Optional[str] = None
    ready: bool = False


@dataclass
class BunnyConfig:
    """Configuration for the Bunny.net Stream API and storage zone."""
    api_key: Optional[str] = None
    library_id: Optional[str] = None
    storage_zone: Optional[str] = None
    storage_access_key: Optional[str] = None
    cdn_url: Optional[str] = None
    stream_url: Optional[str] = None
    api_base_url: str = "https://video.bunnycdn.com"
    storage_base_url: str = "https://storage.bunnycdn.com"
    embed_base_url: str = "https://iframe.mediadelivery.net"

    @classmethod
    def from_env(cls) -> "BunnyConfig":
        return cls(
            api_key=os.environ.get("BUNNY_API_KEY"),
            library_id=os.environ.get("BUNNY_LIBRARY_ID"),
            storage_zone=os.environ.get("BUNNY_STORAGE_ZONE_NAME"),
            storage_access_key=os.environ.get("BUNNY_STORAGE_ACCESS_KEY"),
            cdn_url=os.environ.get("BUNNY_CDN_URL"),
            stream_url=os.environ.get("BUNNY_STREAM_URL"),
        )


@dataclass
class DeepgramConfig:
    """Configuration for the Deepgram speech-to-text API."""
    api_key: Optional[str] = None
    base_url: str = "https://api.deepgram.com/v1"
    model: str = "nova-2"
    timeout: int = 600

    @classmethod
    def from_env(cls) -> "DeepgramConfig":
        return cls(api_key=os.environ.get("DEEPGRAM_API_KEY"))


@dataclass
class GoogleTranslateConfig:
    """Configuration for the Google Translate v2 REST API."""
    api_key: Optional[str] = None
    base_url: str = "https://translation.googleapis.com/language/translate/v2"
    timeout: int = 30

    @classmethod
    def from_env(cls) -> "GoogleTranslateConfig":
        return cls(api_key=os.environ.get("GOOGLE_TRANSLATE_API_KEY"))


@dataclass
class ResolverConfig:
    """Tuning knobs for the caption resolver."""
    metadata_timeout: int = 30
    caption_timeout: int = 30
    probe_timeout: int = 10
    metadata_ttl: float = 300.0
    max_workers: int = 4
    # None keeps the client's own transport retry policy
    probe_policy: Optional[RetryPolicy] = None
