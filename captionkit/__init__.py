"""
captionkit - Multi-language caption sync for Bunny.net video playback

Discovers, parses and synchronizes caption tracks for videos hosted on
Bunny.net, generates captions from Deepgram word timestamps, and drives
playback through either a native HLS pipeline or the vendor's iframe embed.

Features:
- Parse WebVTT and SRT captions into timed cues
- Resolve caption tracks through the Stream API with storage-zone fallback
- Synthesize WebVTT from word timestamps and translate it line by line
- Track the active cue for the current playback time
- One control surface over native HLS and iframe playback

Example usage:
    >>> from captionkit import BunnyClient, BunnyConfig, CaptionResolver
    >>>
    >>> resolver = CaptionResolver(BunnyClient(BunnyConfig.from_env()))
    >>> result = resolver.resolve("VIDEO_GUID", ["en", "es", "pt"])
    >>> result.available_languages
    ['en', 'es']
"""

import logging

__version__ = "0.1.0"
__author__ = "captionkit Contributors"
__license__ = "MIT"

# Add NullHandler to prevent "No handler found" warnings
# Users should configure logging in their application if they want to see logs
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Core utility functions
from .utils import (
    timestamp_to_seconds,
    seconds_to_timestamp,
    seconds_to_srt_timestamp,
    normalize_language_code,
)

# Subtitle parsing and writing
from .subtitles import (
    parse_captions,
    parse_vtt_cues,
    parse_srt_cues,
    parse_caption_file,
    detect_format,
    clean_cue_text,
    format_vtt_from_cues,
    format_srt_from_cues,
)

# Errors and shared services
from .errors import (
    CaptionkitError,
    VendorRequestError,
    CaptionsUnavailableError,
    TranslationError,
    PlaybackError,
    PlaybackFatalError,
    PlaybackTransientError,
    PlayerNotReadyError,
)
from .retry import RetryPolicy
from .cache import Clock, ManualClock, TTLCache

# Data models
from .models import (
    Cue,
    CueTrack,
    WordTimestamp,
    CaptionSource,
    CaptionEntry,
    VideoMetadata,
    Success,
    NotFound,
    VendorError,
    ResolutionResult,
    PlaybackSession,
    BunnyConfig,
    DeepgramConfig,
    GoogleTranslateConfig,
    ResolverConfig,
)

# Caption resolution
from .bunny import BunnyClient, probe_storage_captions, is_valid_caption_content
from .resolver import CaptionResolver, CueTrackStore, ResolveRequest

# Transcription API
from .transcription import (
    DeepgramClient,
    GoogleTranslator,
    TranscriptionResult,
    get_backend,
    synthesize_webvtt,
    translate_webvtt,
    transcribe_multi_language,
    upload_generated_captions,
)

# Playback
from .playback import (
    ActiveCueTracker,
    find_active_cue,
    PlaybackAdapter,
    NativeHlsAdapter,
    IframeAdapter,
    ThreadingScheduler,
    build_embed_url,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",

    # Core parsing functions
    "parse_captions",
    "parse_vtt_cues",
    "parse_srt_cues",
    "parse_caption_file",
    "detect_format",
    "clean_cue_text",
    "format_vtt_from_cues",
    "format_srt_from_cues",
    "timestamp_to_seconds",
    "seconds_to_timestamp",
    "seconds_to_srt_timestamp",
    "normalize_language_code",

    # Errors
    "CaptionkitError",
    "VendorRequestError",
    "CaptionsUnavailableError",
    "TranslationError",
    "PlaybackError",
    "PlaybackFatalError",
    "PlaybackTransientError",
    "PlayerNotReadyError",

    # Services
    "RetryPolicy",
    "Clock",
    "ManualClock",
    "TTLCache",

    # Models
    "Cue",
    "CueTrack",
    "WordTimestamp",
    "CaptionSource",
    "CaptionEntry",
    "VideoMetadata",
    "Success",
    "NotFound",
    "VendorError",
    "ResolutionResult",
    "PlaybackSession",
    "BunnyConfig",
    "DeepgramConfig",
    "GoogleTranslateConfig",
    "ResolverConfig",

    # Caption resolution
    "BunnyClient",
    "probe_storage_captions",
    "is_valid_caption_content",
    "CaptionResolver",
    "CueTrackStore",
    "ResolveRequest",

    # Transcription API
    "DeepgramClient",
    "GoogleTranslator",
    "TranscriptionResult",
    "get_backend",
    "synthesize_webvtt",
    "translate_webvtt",
    "transcribe_multi_language",
    "upload_generated_captions",

    # Playback
    "ActiveCueTracker",
    "find_active_cue",
    "PlaybackAdapter",
    "NativeHlsAdapter",
    "IframeAdapter",
    "ThreadingScheduler",
    "build_embed_url",
]
