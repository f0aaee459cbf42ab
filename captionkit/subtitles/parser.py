"""
Caption parsing for WebVTT and SRT payloads.

Turns raw caption text into an ordered list of ``Cue`` objects. The format
is auto-detected, inline tags are stripped and punctuation-only cues that
vendors emit as degenerate trailing cues are merged back into the cue they
belong to. Parsing is lenient: malformed blocks are skipped, never raised.
"""

import logging
import re
from dataclasses import replace
from typing import List, Optional, Tuple

from ..models import Cue
from ..utils import timestamp_to_seconds

logger = logging.getLogger(__name__)

FORMAT_VTT = "vtt"
FORMAT_SRT = "srt"

PUNCTUATION_MERGE_WINDOW = 0.1  # seconds
_EPSILON = 1e-9

# Pre-compiled regex patterns
_VTT_TIMESTAMP_PATTERN = re.compile(
    r'^((?:\d+:)?\d{2}:\d{2}\.\d{3})\s*-->\s*((?:\d+:)?\d{2}:\d{2}\.\d{3})(.*)$'
)
_SRT_TIMESTAMP_PATTERN = re.compile(
    r'^(\d+:\d{2}:\d{2}[,.]\d{3})\s*-->\s*(\d+:\d{2}:\d{2}[,.]\d{3})'
)
_NUMERIC_LINE_PATTERN = re.compile(r'^\d+$')
_TAG_PATTERN = re.compile(r'<[^>]*>')
_SPACE_BEFORE_PUNCTUATION_PATTERN = re.compile(r'\s+([.,!?;:])')
_WHITESPACE_PATTERN = re.compile(r'\s+')
_PUNCTUATION_ONLY_PATTERN = re.compile(r'^[.,!?;:…]+$')
_VTT_BLOCK_KEYWORDS = ("NOTE", "STYLE", "REGION")


def _normalize_newlines(content: str) -> str:
    return content.lstrip('\ufeff').replace('\r\n', '\n').replace('\r', '\n')


def detect_format(content: str) -> str:
    """
    Detect whether caption content is WebVTT or SRT.

    SRT is assumed when the first non-blank line is purely numeric or when
    the content does not contain the ``WEBVTT`` token at all.

    Example:
        >>> detect_format("WEBVTT\\n\\n00:00:01.000 --> 00:00:02.000\\nHi")
        'vtt'
        >>> detect_format("1\\n00:00:01,000 --> 00:00:02,000\\nHi")
        'srt'
    """
    content = _normalize_newlines(content or "")
    first_line = next((line.strip() for line in content.split('\n') if line.strip()), "")
    if _NUMERIC_LINE_PATTERN.match(first_line) or "WEBVTT" not in content:
        return FORMAT_SRT
    return FORMAT_VTT


def clean_cue_text(text: str) -> str:
    """
    Strip inline tags and normalize whitespace and punctuation spacing.

    Example:
        >>> clean_cue_text("<c.yellow>Hello</c>   world !")
        'Hello world!'
    """
    text = _TAG_PATTERN.sub('', text)
    text = _WHITESPACE_PATTERN.sub(' ', text)
    text = _SPACE_BEFORE_PUNCTUATION_PATTERN.sub(r'\1', text)
    return text.strip()


def is_punctuation_only(text: str) -> bool:
    return bool(_PUNCTUATION_ONLY_PATTERN.match(text))


def _build_cue(
    start_ts: str,
    end_ts: str,
    text_lines: List[str],
    identifier: Optional[str],
    styles: Optional[str],
) -> Optional[Cue]:
    text = clean_cue_text(' '.join(text_lines))
    if not text:
        return None
    try:
        start = timestamp_to_seconds(start_ts)
        end = timestamp_to_seconds(end_ts)
    except ValueError:
        return None
    if end < start:
        logger.debug(f"Cue ends before it starts ({start_ts} --> {end_ts}), clamping to zero length")
        end = start
    return Cue(start=start, end=end, text=text, identifier=identifier, styles=styles)


def parse_vtt_cues(content: str) -> List[Cue]:
    """
    Parse WebVTT content into cues without merging punctuation cues.

    The header, NOTE/STYLE/REGION blocks and cue identifiers are skipped;
    every other non-blank line between two timestamp lines belongs to the
    cue opened by the first of them.
    """
    lines = [line.strip() for line in _normalize_newlines(content).split('\n')]
    cues: List[Cue] = []

    current: Optional[Tuple[str, str, Optional[str], Optional[str]]] = None
    text_lines: List[str] = []
    skipping_block = False
    pending_identifier: Optional[str] = None

    def flush():
        if current is None:
            return
        cue = _build_cue(current[0], current[1], text_lines, current[2], current[3])
        if cue is not None:
            cues.append(cue)

    for i, line in enumerate(lines):
        if not line:
            skipping_block = False
            continue

        match = _VTT_TIMESTAMP_PATTERN.match(line)
        if match:
            flush()
            settings = match.group(3).strip() or None
            current = (match.group(1), match.group(2), pending_identifier, settings)
            text_lines = []
            pending_identifier = None
            skipping_block = False
            continue

        if skipping_block:
            continue

        if line.startswith("WEBVTT"):
            # Header metadata lines (Kind:, Language:) precede the first cue
            skipping_block = True
            continue

        if line.split(' ', 1)[0] in _VTT_BLOCK_KEYWORDS:
            if i == 0 or not lines[i - 1]:
                # Standalone comment/style block: it closes the running cue
                flush()
                current = None
                skipping_block = True
            continue

        next_line = lines[i + 1] if i + 1 < len(lines) else ""
        if _VTT_TIMESTAMP_PATTERN.match(next_line):
            # A line directly above a timestamp line is the cue identifier
            pending_identifier = line
            continue

        if current is not None:
            text_lines.append(line)

    flush()
    return cues


def parse_srt_cues(content: str) -> List[Cue]:
    """
    Parse SRT content into cues without merging punctuation cues.

    A numeric line opens a block and must be followed by a timestamp line,
    otherwise the block is skipped up to the next blank line.
    """
    lines = [line.strip() for line in _normalize_newlines(content).split('\n')]
    cues: List[Cue] = []
    i = 0

    while i < len(lines):
        line = lines[i]
        if not line:
            i += 1
            continue

        identifier = None
        if _NUMERIC_LINE_PATTERN.match(line):
            identifier = line
            i += 1
            line = lines[i] if i < len(lines) else ""

        match = _SRT_TIMESTAMP_PATTERN.match(line)
        if not match:
            logger.debug(f"Skipping malformed SRT block near line {i + 1}")
            while i < len(lines) and lines[i]:
                i += 1
            continue

        i += 1
        text_lines = []
        while i < len(lines) and lines[i]:
            text_lines.append(lines[i])
            i += 1

        cue = _build_cue(match.group(1), match.group(2), text_lines, identifier, None)
        if cue is not None:
            cues.append(cue)

    return cues


def merge_punctuation_cues(cues: List[Cue], window: float = PUNCTUATION_MERGE_WINDOW) -> List[Cue]:
    """
    Fold punctuation-only cues into the preceding accepted cue.

    A cue whose text is only punctuation and that starts within ``window``
    seconds of the previous accepted cue's end is appended to that cue (no
    separating space) and extends its end time.

    Example:
        >>> merged = merge_punctuation_cues([Cue(0.0, 1.0, "Hello"), Cue(1.05, 1.06, ".")])
        >>> merged[0].text, merged[0].end
        ('Hello.', 1.06)
    """
    merged: List[Cue] = []
    for cue in cues:
        if merged and is_punctuation_only(cue.text):
            previous = merged[-1]
            if abs(cue.start - previous.end) <= window + _EPSILON:
                merged[-1] = replace(
                    previous,
                    text=previous.text + cue.text,
                    end=max(previous.end, cue.end),
                )
                continue
        merged.append(cue)
    return merged


def parse_captions(content: str) -> List[Cue]:
    """
    Parse WebVTT or SRT content into an ordered list of cues.

    Args:
        content: Raw caption document

    Returns:
        List of cues in document order; empty when nothing could be parsed

    Example:
        >>> cues = parse_captions("WEBVTT\\n\\n00:00:01.000 --> 00:00:02.500\\nHello <b>world</b>")
        >>> cues[0].start, cues[0].end, cues[0].text
        (1.0, 2.5, 'Hello world')
    """
    if not content or not content.strip():
        return []

    caption_format = detect_format(content)
    if caption_format == FORMAT_SRT:
        cues = parse_srt_cues(content)
    else:
        cues = parse_vtt_cues(content)

    cues = merge_punctuation_cues(cues)
    logger.debug(f"Parsed {len(cues)} cues ({caption_format})")
    return cues


def parse_caption_file(path: str) -> List[Cue]:
    """Read a caption file from disk and parse it."""
    with open(path, 'r', encoding='utf-8') as f:
        return parse_captions(f.read())
