"""
Bunny.net module for captionkit.

Provides the Stream API client and the storage-zone caption probe.
"""

from .client import BunnyClient, FetchResult
from .storage import candidate_filenames, is_valid_caption_content, probe_storage_captions

__all__ = [
    'BunnyClient',
    'FetchResult',
    'candidate_filenames',
    'is_valid_caption_content',
    'probe_storage_captions',
]
