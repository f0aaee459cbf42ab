"""Transcription package with pluggable backends."""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from ..bunny.client import BunnyClient, FetchResult
from ..models import DeepgramConfig, Success
from .base import (
    TranscriptionBackend,
    TranscriptionResult,
    extract_transcript,
    extract_words,
    synthesize_webvtt,
)
from .deepgram_backend import DeepgramClient
from .faster_whisper_backend import FasterWhisperBackend
from .translate import GoogleTranslator, TranslateFn, translate_webvtt

logger = logging.getLogger(__name__)


def get_backend(backend: str = "deepgram", **kwargs: Any) -> TranscriptionBackend:
    """
    Create a transcription backend by name.

    Args:
        backend: ``"deepgram"`` or ``"faster-whisper"``
        **kwargs: Passed to the backend constructor (``config``/``session``
            for Deepgram, ``model_name``/``device``/``compute_type`` for
            faster-whisper)
    """
    if backend == "deepgram":
        config = kwargs.pop("config", None) or DeepgramConfig.from_env()
        return DeepgramClient(config, **kwargs)
    if backend == "faster-whisper":
        return FasterWhisperBackend(**kwargs)
    raise ValueError(f"Unsupported transcription backend: {backend}")


def transcribe_multi_language(
    backend: TranscriptionBackend,
    source: str,
    languages: Iterable[str],
    source_language: str = "en",
    translate_fn: Optional[TranslateFn] = None,
) -> Dict[str, str]:
    """
    Transcribe once in the source language and derive every other language
    by translating the generated WebVTT.

    Args:
        backend: Any transcription backend
        source: Media URL or path understood by the backend
        languages: Target language codes
        source_language: Spoken language of the media
        translate_fn: Line translator; without one, only the source language
            is produced

    Returns:
        Mapping of language code to WebVTT text
    """
    words = backend.transcribe(source, source_language)
    source_vtt = synthesize_webvtt(words, source_language)
    results = {source_language: source_vtt}
    logger.info(f"Transcribed {len(words)} words in {source_language} with {backend.name}")

    for language in languages:
        if language in results:
            continue
        if translate_fn is None:
            logger.warning(f"No translator configured, skipping {language} captions")
            continue
        results[language] = translate_webvtt(source_vtt, language, source_language, translate_fn)
        logger.info(f"Generated {language} captions from {source_language}")

    return results


def upload_generated_captions(
    client: BunnyClient,
    video_id: str,
    documents: Mapping[str, str],
) -> Dict[str, FetchResult]:
    """
    Upload each generated WebVTT document to the video so the resolver can
    discover it. A failed language is logged and does not stop the others.

    Returns:
        Mapping of language code to the upload result
    """
    results: Dict[str, FetchResult] = {}
    for language, vtt in documents.items():
        result = client.upload_captions(video_id, vtt, language)
        if not isinstance(result, Success):
            logger.warning(f"Caption upload for {language} failed: {result.detail}")
        results[language] = result
    uploaded = sum(1 for r in results.values() if isinstance(r, Success))
    logger.info(f"Uploaded {uploaded}/{len(results)} caption tracks for {video_id}")
    return results


__all__ = [
    'DeepgramClient',
    'FasterWhisperBackend',
    'GoogleTranslator',
    'TranscriptionBackend',
    'TranscriptionResult',
    'extract_transcript',
    'extract_words',
    'get_backend',
    'synthesize_webvtt',
    'transcribe_multi_language',
    'translate_webvtt',
    'upload_generated_captions',
]
