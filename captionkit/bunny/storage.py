"""
Direct storage probing for caption files.

The storage zone sometimes answers HTTP 200 with an HTML or JSON error body
for objects that do not exist, so a successful status alone does not mean a
caption file was found. ``is_valid_caption_content`` decides whether a body
actually looks like WebVTT/SRT.
"""

import logging
import re
import threading
from typing import List, Optional

from ..models import METHOD_STORAGE_DIRECT, CaptionSource, Success
from ..retry import RetryPolicy
from .client import BunnyClient

logger = logging.getLogger(__name__)

_HTML_PATTERN = re.compile(r'<html|<!DOCTYPE', re.IGNORECASE)
# "404" alone also appears in timestamps like 00:04:04.040, so require the phrase
_NOT_FOUND_PATTERN = re.compile(r'\b404\b\s*[-:]?\s*not\s+found', re.IGNORECASE)
_MISSING_OBJECT_PATTERN = re.compile(r'File Not Found|ObjectNotFound', re.IGNORECASE)
_CUE_TIMESTAMP_PATTERN = re.compile(r'(?:\d+:)?\d{2}:\d{2}[.,]\d{3}\s*-->')


def candidate_filenames(language: str) -> List[str]:
    """
    Storage file names to try for a language, in order.

    Example:
        >>> candidate_filenames("es")
        ['ES.vtt', 'es.vtt', 'ES.srt', 'es.srt']
    """
    upper = language.upper()
    lower = language.lower()
    return [f"{upper}.vtt", f"{lower}.vtt", f"{upper}.srt", f"{lower}.srt"]


def is_valid_caption_content(content: Optional[str]) -> bool:
    """
    Check whether a storage response body is a real caption document.

    Rejects empty bodies, HTML pages, JSON error bodies, "404 Not Found"
    messages and storage "File Not Found"/"ObjectNotFound" errors, then
    requires either the ``WEBVTT`` token or a cue timestamp line.
    """
    if not content or not content.strip():
        return False

    body = content.strip()
    if _HTML_PATTERN.search(body):
        return False
    if body.startswith('[') or body.startswith('{'):
        return False
    if _NOT_FOUND_PATTERN.search(body):
        return False
    if _MISSING_OBJECT_PATTERN.search(body):
        return False

    return 'WEBVTT' in body or bool(_CUE_TIMESTAMP_PATTERN.search(body))


def probe_storage_captions(
    client: BunnyClient,
    video_id: str,
    language: str,
    timeout: float = 10,
    policy: Optional[RetryPolicy] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Optional[CaptionSource]:
    """
    Probe the storage zone for a caption file in one language.

    Candidates are fetched one after another and probing stops at the first
    response that is both successful and valid caption content.

    Args:
        client: Bunny client holding storage credentials
        video_id: Bunny video GUID
        language: 2-letter language code
        timeout: Per-request timeout in seconds
        policy: Optional retry policy for each candidate request
        cancel_event: When set, probing stops before the next candidate

    Returns:
        CaptionSource on success, None when no candidate matched
    """
    for filename in candidate_filenames(language):
        if cancel_event is not None and cancel_event.is_set():
            logger.debug(f"Storage probe for {video_id}/{language} cancelled")
            return None

        url = client.storage_caption_url(video_id, filename)
        result = client.fetch_text(url, timeout=timeout, policy=policy)

        if not isinstance(result, Success):
            logger.debug(f"Storage candidate {filename} for {video_id} unavailable: {result}")
            continue

        if not is_valid_caption_content(result.data):
            logger.warning(f"Storage candidate {filename} for {video_id} returned a non-caption body, skipping")
            continue

        logger.info(f"Found {language} captions for {video_id} in storage as {filename}")
        return CaptionSource(
            language=language,
            method=METHOD_STORAGE_DIRECT,
            url=url,
            content=result.data,
        )

    return None
