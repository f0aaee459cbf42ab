"""
Subtitle parsing and serialization package.

Parses WebVTT and SRT payloads into ``Cue`` lists and writes cue lists back
out as WebVTT or SRT.
"""

from .parser import (
    FORMAT_SRT,
    FORMAT_VTT,
    clean_cue_text,
    detect_format,
    merge_punctuation_cues,
    parse_caption_file,
    parse_captions,
    parse_srt_cues,
    parse_vtt_cues,
)
from .writer import format_srt_from_cues, format_vtt_from_cues, format_vtt_header

__all__ = [
    "FORMAT_SRT",
    "FORMAT_VTT",
    "clean_cue_text",
    "detect_format",
    "merge_punctuation_cues",
    "parse_caption_file",
    "parse_captions",
    "parse_srt_cues",
    "parse_vtt_cues",
    "format_srt_from_cues",
    "format_vtt_from_cues",
    "format_vtt_header",
]
