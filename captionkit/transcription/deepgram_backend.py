"""Deepgram speech-to-text backend."""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..errors import VendorRequestError
from ..models import DeepgramConfig, WordTimestamp
from .base import (
    TranscriptionBackend,
    TranscriptionResult,
    extract_transcript,
    extract_words,
    synthesize_webvtt,
)

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS: Dict[str, Any] = {
    "punctuate": True,
    "diarize": False,
    "utterances": True,
    "paragraphs": True,
    "smart_format": True,
}


def _flag(value: Any) -> str:
    return "true" if value else "false"


class DeepgramClient(TranscriptionBackend):
    """
    Client for Deepgram pre-recorded transcription of a remote media URL.
    """

    def __init__(self, config: DeepgramConfig, session: Optional[requests.Session] = None) -> None:
        super().__init__(name="deepgram")
        self.config = config
        self.session = session or requests.Session()

    def listen(self, url: str, language: str = "en", **options: Any) -> Dict[str, Any]:
        """
        POST the media URL to ``/listen`` and return the raw JSON payload.

        Raises:
            VendorRequestError: On missing credentials, network failure or a
                non-2xx response
        """
        if not self.config.api_key:
            raise VendorRequestError("DEEPGRAM_API_KEY is not set")

        merged = dict(DEFAULT_OPTIONS)
        merged.update(options)
        params = {
            "language": language,
            "punctuate": _flag(merged["punctuate"]),
            "diarize": _flag(merged["diarize"]),
            "utterances": _flag(merged["utterances"]),
            "paragraphs": _flag(merged["paragraphs"]),
            "smart_format": _flag(merged["smart_format"]),
            "model": merged.get("model") or self.config.model,
        }

        logger.info(f"Deepgram transcription started ({language}): {url}")
        try:
            response = self.session.post(
                f"{self.config.base_url.rstrip('/')}/listen",
                params=params,
                json={"url": url},
                headers={"Authorization": f"Token {self.config.api_key}"},
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise VendorRequestError(f"Deepgram request failed: {str(e)}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Deepgram returned status {response.status_code}")
            raise VendorRequestError(
                f"Deepgram returned status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise VendorRequestError(f"Invalid Deepgram JSON: {str(e)}", status_code=response.status_code) from e

    def transcribe_url(self, url: str, language: str = "en", **options: Any) -> TranscriptionResult:
        """Transcribe a media URL into transcript text, words and WebVTT."""
        payload = self.listen(url, language, **options)
        words = extract_words(payload)
        transcript = extract_transcript(payload)
        logger.info(f"Deepgram transcription completed: {len(words)} words, {len(transcript)} characters")
        return TranscriptionResult(
            language=language,
            transcript=transcript,
            words=words,
            vtt=synthesize_webvtt(words, language),
            backend=self.name,
        )

    def transcribe(self, source: str, language: str = "en") -> List[WordTimestamp]:
        return extract_words(self.listen(source, language))
