"""
WebVTT and SRT serialization for cue lists.
"""

from typing import Iterable, Optional

from ..models import Cue
from ..utils import seconds_to_srt_timestamp, seconds_to_timestamp


def format_vtt_header(language: Optional[str] = None) -> str:
    header = "WEBVTT\n"
    if language:
        header += f"Language: {language}\n"
    return header + "\n"


def format_vtt_from_cues(cues: Iterable[Cue], language: Optional[str] = None) -> str:
    """
    Format cues into WebVTT content with sequential cue numbers.

    Example:
        >>> vtt = format_vtt_from_cues([Cue(1.0, 2.0, "Hello")], language="en")
        >>> vtt.splitlines()[:5]
        ['WEBVTT', 'Language: en', '', '1', '00:00:01.000 --> 00:00:02.000']
    """
    content = format_vtt_header(language)

    for idx, cue in enumerate(cues, start=1):
        content += f"{idx}\n"
        content += f"{seconds_to_timestamp(cue.start)} --> {seconds_to_timestamp(cue.end)}\n"
        content += f"{cue.text}\n\n"

    return content


def format_srt_from_cues(cues: Iterable[Cue]) -> str:
    """Format cues into SRT content."""
    blocks = []
    for idx, cue in enumerate(cues, start=1):
        blocks.append(
            f"{idx}\n"
            f"{seconds_to_srt_timestamp(cue.start)} --> {seconds_to_srt_timestamp(cue.end)}\n"
            f"{cue.text}\n"
        )
    return "\n".join(blocks)
