"""
Caption translation.

``translate_webvtt`` rewrites only the text lines of a WebVTT document, so
cue timing is preserved exactly. ``GoogleTranslator`` is the default line
translator, backed by the Google Translate v2 REST API.
"""

import logging
import re
from typing import Callable, Optional

import requests

from ..errors import TranslationError
from ..models import GoogleTranslateConfig

logger = logging.getLogger(__name__)

TranslateFn = Callable[[str, str, str], str]

_LANGUAGE_LINE = re.compile(r'^Language:\s*.*$')
_INDEX_LINE = re.compile(r'^\d+$')


def _language_line(target_language: str) -> str:
    return f"Language: {target_language}"


def translate_webvtt(
    vtt: str,
    target_language: str,
    source_language: str,
    translate_fn: TranslateFn,
) -> str:
    """
    Translate the caption text of a WebVTT document line by line.

    Header, ``Language:``, blank, cue index and timing lines pass through
    (``Language:`` gets the target code). Each remaining line is sent to
    ``translate_fn(text, target, source)`` on its own; if that raises or
    returns blank text the original line is kept.
    """
    lines = vtt.split("\n")

    if target_language == source_language:
        return "\n".join(
            _language_line(target_language) if _LANGUAGE_LINE.match(line) else line
            for line in lines
        )

    translated = []
    failures = 0
    for line in lines:
        stripped = line.strip()
        if _LANGUAGE_LINE.match(line):
            translated.append(_language_line(target_language))
        elif (
            not stripped
            or stripped.startswith("WEBVTT")
            or _INDEX_LINE.match(stripped)
            or "-->" in line
        ):
            translated.append(line)
        else:
            try:
                result = translate_fn(stripped, target_language, source_language)
            except Exception as e:
                logger.warning(f"Translation to {target_language} failed, keeping original line: {str(e)}")
                result = None
            if result is None or not result.strip():
                failures += 1
                translated.append(line)
            else:
                translated.append(result)

    if failures:
        logger.warning(f"{failures} caption lines kept untranslated for {target_language}")
    return "\n".join(translated)


class GoogleTranslator:
    """Line translator backed by the Google Translate v2 REST API."""

    def __init__(self, config: GoogleTranslateConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        if not config.api_key:
            logger.warning("Google Translate API key is not set")

    def translate(self, text: str, target_language: str, source_language: str = "en") -> str:
        """
        Translate a single piece of text.

        Returns the input unchanged for blank text or when source and target
        match.

        Raises:
            TranslationError: On missing credentials, HTTP failures or an
                unexpected response
        """
        if source_language == target_language or not text.strip():
            return text
        if not self.config.api_key:
            raise TranslationError("GOOGLE_TRANSLATE_API_KEY is not set")

        try:
            response = self.session.post(
                self.config.base_url,
                params={"key": self.config.api_key},
                json={"q": text, "target": target_language, "source": source_language, "format": "text"},
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise TranslationError(f"Translation request failed: {str(e)}") from e

        if response.status_code != 200:
            message = f"HTTP {response.status_code}"
            try:
                message = response.json().get("error", {}).get("message") or message
            except (ValueError, AttributeError):
                pass
            logger.error(f"Google Translate returned {response.status_code} ({source_language}->{target_language})")
            raise TranslationError(f"Translation API error ({response.status_code}): {message}")

        try:
            return response.json()["data"]["translations"][0]["translatedText"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TranslationError("Unexpected translation response") from e

    def __call__(self, text: str, target_language: str, source_language: str = "en") -> str:
        return self.translate(text, target_language, source_language)
