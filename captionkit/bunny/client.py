"""
Bunny.net client for captionkit.

Thin wrapper around the Bunny Stream REST API and the raw storage zone
endpoint. Every call returns a ``Success``, ``NotFound`` or ``VendorError``
result instead of raising, so callers must handle absence explicitly.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import quote

import requests

from ..models import (
    LANGUAGE_LABELS,
    BunnyConfig,
    CaptionEntry,
    NotFound,
    Success,
    VendorError,
    VideoMetadata,
)
from ..retry import RetryPolicy

logger = logging.getLogger(__name__)

FetchResult = Union[Success, NotFound, VendorError]

DEFAULT_TRANSPORT_POLICY = RetryPolicy(
    max_attempts=2,
    delay=0.5,
    retry_on=(requests.ConnectionError,),
)


def _is_successful(status_code: int) -> bool:
    return 200 <= status_code < 300


def _parse_caption_entries(data: Dict[str, Any], video_id: str, cdn_url: Optional[str]) -> List[CaptionEntry]:
    """
    Extract caption entries from a video metadata payload.

    Bunny reports captions as ``{srclang, label}`` objects; some payloads also
    carry ``url``/``src`` or inline ``text``, and older ones use a
    ``transcriptions`` array.
    """
    entries: List[CaptionEntry] = []

    for caption in data.get('captions') or []:
        if not isinstance(caption, dict):
            continue
        language = caption.get('srclang') or caption.get('language')
        url = caption.get('url') or caption.get('src')
        if not url and cdn_url and language:
            url = f"https://{cdn_url}/{video_id}/captions/{language}.vtt"
        entries.append(CaptionEntry(
            language=language,
            label=caption.get('label') or language,
            url=url,
            text=caption.get('text'),
            default=bool(caption.get('default', False)),
        ))

    for transcription in data.get('transcriptions') or []:
        if not isinstance(transcription, dict):
            continue
        entries.append(CaptionEntry(
            language=transcription.get('language'),
            label=transcription.get('label') or transcription.get('language'),
            url=transcription.get('src') or transcription.get('url'),
            text=transcription.get('text'),
            default=bool(transcription.get('default', False)),
        ))

    return entries


class BunnyClient:
    """
    Client for the Bunny Stream API and storage zone.

    Handles video metadata lookup, caption downloads and raw storage object
    fetches, plus the playback URL conventions of the Stream CDN.
    """

    def __init__(
        self,
        config: BunnyConfig,
        session: Optional[requests.Session] = None,
        transport_policy: RetryPolicy = DEFAULT_TRANSPORT_POLICY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize Bunny client.

        Args:
            config: Credentials and endpoints
            session: Optional HTTP session (a new ``requests.Session`` by default)
            transport_policy: Retry policy for connection-level failures
            sleep: Sleep function used between retries
        """
        self.config = config
        self.session = session or requests.Session()
        self.transport_policy = transport_policy
        self._sleep = sleep

    def _get(self, url: str, timeout: float, policy: Optional[RetryPolicy] = None, **kwargs: Any):
        policy = policy or self.transport_policy
        return policy.call(self.session.get, url, timeout=timeout, sleep=self._sleep, **kwargs)

    def get_video(self, video_id: str, timeout: float = 30) -> FetchResult:
        """
        Fetch video metadata.

        Returns:
            ``Success(VideoMetadata)``, ``NotFound`` for unknown videos, or
            ``VendorError`` for missing credentials, network failures and
            unexpected statuses
        """
        if not self.config.api_key:
            logger.error("Bunny.net API key is not configured")
            return VendorError("BUNNY_API_KEY is not set")
        if not self.config.library_id:
            logger.error("Bunny.net library ID is not configured")
            return VendorError("BUNNY_LIBRARY_ID is not set")

        url = f"{self.config.api_base_url}/library/{self.config.library_id}/videos/{video_id}"
        logger.info(f"Fetching Bunny.net video metadata: {video_id}")

        try:
            response = self._get(
                url,
                timeout=timeout,
                headers={'AccessKey': self.config.api_key, 'Accept': 'application/json'},
            )
        except requests.RequestException as e:
            logger.error(f"Bunny.net metadata request failed for {video_id}: {str(e)}")
            return VendorError(f"Metadata request failed: {str(e)}")

        if response.status_code == 404:
            logger.warning(f"Bunny.net video not found: {video_id}")
            return NotFound()

        if not _is_successful(response.status_code):
            logger.error(f"Bunny.net API returned status {response.status_code} for {video_id}")
            return VendorError(
                f"Bunny.net API returned status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            return VendorError(f"Invalid metadata JSON: {str(e)}", status_code=response.status_code)
        if not isinstance(data, dict):
            return VendorError("Unexpected metadata payload", status_code=response.status_code)

        metadata = VideoMetadata(
            video_id=video_id,
            captions=_parse_caption_entries(data, video_id, self.config.cdn_url),
            duration=data.get('length') or data.get('duration'),
            raw=data,
        )
        logger.info(f"Bunny.net video {video_id} reports {len(metadata.captions)} caption entries")
        return Success(metadata, status_code=response.status_code)

    def fetch_text(self, url: str, timeout: float = 30, policy: Optional[RetryPolicy] = None) -> FetchResult:
        """
        Download a text document (caption file or storage object).

        Returns:
            ``Success(str)`` for 2xx responses, ``NotFound`` for 404 and
            ``VendorError`` for anything else, including timeouts
        """
        try:
            response = self._get(url, timeout=timeout, policy=policy)
        except requests.RequestException as e:
            logger.debug(f"Request failed for {self._redact(url)}: {str(e)}")
            return VendorError(str(e))

        if response.status_code == 404:
            return NotFound()
        if not _is_successful(response.status_code):
            return VendorError(f"HTTP {response.status_code}", status_code=response.status_code)
        return Success(response.text, status_code=response.status_code)

    def upload_captions(
        self,
        video_id: str,
        content: str,
        language: str = "en",
        label: Optional[str] = None,
        timeout: float = 60,
    ) -> FetchResult:
        """
        Attach a caption document to a video.

        Args:
            video_id: Bunny video GUID
            content: WebVTT text
            language: Caption language code (``srclang``)
            label: Display label; defaults to the language's English name

        Returns:
            ``Success`` carrying the CDN caption URL (None without a CDN host),
            or ``VendorError``
        """
        if not self.config.api_key or not self.config.library_id:
            logger.error("Bunny.net API key or library ID is not configured")
            return VendorError("BUNNY_API_KEY and BUNNY_LIBRARY_ID must be set")

        label = label or LANGUAGE_LABELS.get(language, language)
        url = f"{self.config.api_base_url}/library/{self.config.library_id}/videos/{video_id}/captions"
        logger.info(f"Uploading {language} captions to Bunny.net video {video_id}")

        try:
            response = self.transport_policy.call(
                self.session.post,
                url,
                timeout=timeout,
                sleep=self._sleep,
                headers={'AccessKey': self.config.api_key, 'Content-Type': 'application/json'},
                json={'srclang': language, 'label': label, 'content': content},
            )
        except requests.RequestException as e:
            logger.error(f"Caption upload failed for {video_id} ({language}): {str(e)}")
            return VendorError(f"Caption upload failed: {str(e)}")

        if not _is_successful(response.status_code):
            logger.warning(f"Caption upload for {video_id} ({language}) returned status {response.status_code}")
            return VendorError(
                f"Failed to upload captions: {response.text[:200]}",
                status_code=response.status_code,
            )

        caption_url = self.cdn_caption_url(video_id, language)
        logger.info(f"Uploaded {language} captions for {video_id}")
        return Success(caption_url, status_code=response.status_code)

    def cdn_caption_url(self, video_id: str, language: str) -> Optional[str]:
        if not self.config.cdn_url:
            return None
        return f"https://{self.config.cdn_url}/{video_id}/captions/{language}.vtt"

    def storage_caption_url(self, video_id: str, filename: str) -> str:
        """Raw storage URL for a caption object, carrying the storage access key."""
        base = self.config.storage_base_url.rstrip('/')
        url = f"{base}/{self.config.storage_zone}/{video_id}/captions/{filename}"
        if self.config.storage_access_key:
            url += f"?accessKey={quote(self.config.storage_access_key, safe='')}"
        return url

    def has_storage_credentials(self) -> bool:
        return bool(self.config.storage_zone and self.config.storage_access_key)

    def get_embed_url(self, video_id: str) -> str:
        return f"{self.config.embed_base_url}/embed/{self.config.library_id}/{video_id}"

    def get_hls_url(self, video_id: str) -> str:
        return f"https://{self.config.stream_url}/{video_id}/playlist.m3u8"

    def _redact(self, url: str) -> str:
        key = self.config.storage_access_key
        if key:
            return url.replace(quote(key, safe=''), '***')
        return url
