"""
Shared transcription utilities and backend interface.

Turns word-level timestamps (from Deepgram or faster-whisper) into a WebVTT
document and reads the word list and transcript out of a Deepgram payload.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..models import WordTimestamp
from ..utils import seconds_to_timestamp

logger = logging.getLogger(__name__)

MAX_SEGMENT_DURATION = 7.0
MAX_WORDS_PER_SEGMENT = 15


@dataclass
class TranscriptionBackend:
    """Base backend interface for transcription engines."""
    name: str

    def transcribe(self, source: str, language: str = "en") -> List[WordTimestamp]:
        raise NotImplementedError


def _get_attr(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _first_alternative(payload: Dict[str, Any]) -> Dict[str, Any]:
    try:
        alternative = payload["results"]["channels"][0]["alternatives"][0]
    except (KeyError, IndexError, TypeError):
        return {}
    return alternative if isinstance(alternative, dict) else {}


def extract_words(payload: Dict[str, Any]) -> List[WordTimestamp]:
    """
    Extract word-level timestamps from a Deepgram response.

    The plain ``word`` is preferred over ``punctuated_word``; words without a
    start time are dropped.
    """
    words: List[WordTimestamp] = []
    for raw in _first_alternative(payload).get("words") or []:
        text = _get_attr(raw, "word") or _get_attr(raw, "punctuated_word") or ""
        start = _get_attr(raw, "start")
        if start is None:
            continue
        end = _get_attr(raw, "end")
        words.append(WordTimestamp(
            word=str(text),
            start=float(start),
            end=float(end) if end is not None else float(start),
        ))
    return words


def extract_transcript(payload: Dict[str, Any]) -> str:
    """
    Full transcript text from a Deepgram response.

    Prefers the paragraphs transcript, then the alternative's transcript,
    and finally joins the individual words.
    """
    alternative = _first_alternative(payload)

    paragraphs = alternative.get("paragraphs")
    if isinstance(paragraphs, dict) and isinstance(paragraphs.get("transcript"), str):
        return paragraphs["transcript"].strip()

    if isinstance(alternative.get("transcript"), str):
        return alternative["transcript"].strip()

    words = alternative.get("words") or []
    if words:
        logger.warning(f"Building transcript by joining {len(words)} words")
        return " ".join(
            _get_attr(w, "punctuated_word") or _get_attr(w, "word") or "" for w in words
        ).strip()

    return ""


def format_vtt_timestamp(seconds: float) -> str:
    return seconds_to_timestamp(seconds)


def synthesize_webvtt(words: Sequence[WordTimestamp], language: Optional[str] = "en") -> str:
    """
    Generate a WebVTT document from word timestamps.

    Words are grouped greedily: a cue closes once it spans at least
    ``MAX_SEGMENT_DURATION`` seconds, holds ``MAX_WORDS_PER_SEGMENT`` words,
    or reaches the final word.

    Args:
        words: Word timestamps in spoken order
        language: Value for the ``Language:`` header line; the line is
            left out when no language is given

    Returns:
        WebVTT text; ``"WEBVTT\\n\\n"`` when there are no words
    """
    if not words:
        return "WEBVTT\n\n"

    parts = ["WEBVTT\n", f"Language: {language}\n\n" if language else "\n"]
    segment: List[str] = []
    segment_start: Optional[float] = None
    segment_end = 0.0
    number = 1
    last_index = len(words) - 1

    for index, word in enumerate(words):
        if segment_start is None:
            segment_start = word.start
        segment.append(word.word)
        segment_end = word.end

        if (
            segment_end - segment_start >= MAX_SEGMENT_DURATION
            or len(segment) >= MAX_WORDS_PER_SEGMENT
            or index == last_index
        ):
            parts.append(f"{number}\n")
            parts.append(f"{format_vtt_timestamp(segment_start)} --> {format_vtt_timestamp(segment_end)}\n")
            parts.append(" ".join(segment) + "\n\n")
            segment = []
            segment_start = None
            number += 1

    logger.debug(f"Synthesized {number - 1} cues from {len(words)} words")
    return "".join(parts)


@dataclass
class TranscriptionResult:
    """Result of transcribing one media source."""

    language: str
    transcript: str
    words: List[WordTimestamp]
    vtt: str
    backend: str
