"""
Object downloader package.

Fetches objects from a private bucket over signed URLs, resuming partial
files with HTTP byte ranges.

Re-exports the public names so ``from downloader import X`` works.
"""

from downloader.signing import UrlSigner, make_base_url

from downloader.core import (
    EMPTY_KEY_NAME,
    DownloadError,
    DownloadResult,
    Downloader,
    content_path,
)

__all__ = [
    # Signing
    "UrlSigner",
    "make_base_url",
    # Core
    "EMPTY_KEY_NAME",
    "DownloadError",
    "DownloadResult",
    "Downloader",
    "content_path",
]
