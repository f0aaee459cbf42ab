"""
Shared utility functions for captionkit.

Provides timestamp conversion helpers used by the subtitle parser, the
writer and the transcription synthesizer, plus language code normalization.
"""

import re
from typing import Optional

_LANGUAGE_TAG_PATTERN = re.compile(r'^([A-Za-z]{2})(?:[-_].*)?$')


def timestamp_to_seconds(timestamp: str) -> float:
    """
    Convert a caption timestamp to seconds.

    Accepts HH:MM:SS.mmm, MM:SS.mmm and the SRT variant with a comma
    decimal separator (HH:MM:SS,mmm).

    Args:
        timestamp: Timestamp string

    Returns:
        Time in seconds as float

    Example:
        >>> timestamp_to_seconds("00:01:30.500")
        90.5
        >>> timestamp_to_seconds("00:01:30,500")
        90.5
    """
    parts = timestamp.strip().replace(',', '.').split(':')
    if len(parts) == 3:
        h, m, s = parts
    elif len(parts) == 2:
        h = '0'
        m, s = parts
    else:
        raise ValueError(f"Invalid timestamp: {timestamp!r}")
    return int(h) * 3600 + int(m) * 60 + float(s)


def _split_milliseconds(seconds: float):
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return hours, minutes, secs, millis


def seconds_to_timestamp(seconds: float) -> str:
    """
    Convert seconds to HH:MM:SS.mmm format, rounded to the millisecond.

    Example:
        >>> seconds_to_timestamp(90.5)
        '00:01:30.500'
    """
    hours, minutes, secs, millis = _split_milliseconds(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def seconds_to_srt_timestamp(seconds: float) -> str:
    """Convert seconds to the SRT HH:MM:SS,mmm format."""
    hours, minutes, secs, millis = _split_milliseconds(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def normalize_language_code(tag: Optional[str]) -> Optional[str]:
    """
    Normalize a vendor language tag to a 2-letter lowercase code.

    Example:
        >>> normalize_language_code("en-US")
        'en'
        >>> normalize_language_code("PT")
        'pt'
        >>> normalize_language_code("English") is None
        True
    """
    if not tag:
        return None
    match = _LANGUAGE_TAG_PATTERN.match(tag.strip())
    if not match:
        return None
    return match.group(1).lower()
