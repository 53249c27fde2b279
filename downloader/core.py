"""
Resumable object download for the backup agent.

Contains the Downloader, which fetches one object over a signed URL into the
bucket's data directory, continuing a partial file with an HTTP byte range
when a resume offset is given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable

import requests

from downloader.signing import UrlSigner, make_base_url
from utils import escape_key, format_bytes, new_session

logger = logging.getLogger(__name__)


# ---- Configuration ----

EMPTY_KEY_NAME = "_empty"
DIR_MODE = 0o700
CHUNK_SIZE = 64 * 1024


class DownloadError(RuntimeError):
    """A download attempt failed before any body bytes were written.

    ``status_code`` is the HTTP status, or 0 when no response was received.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class DownloadResult:
    """What one attempt left on disk."""

    status_code: int
    downloaded: int
    full_size: int
    mod_time: int
    etag: str
    stream_error: str = ""

    @property
    def complete(self) -> bool:
        return self.downloaded >= self.full_size


# ---- Download helpers ----

def content_path(data_dir: Path, key: str) -> Path:
    """Map an (unescaped) object key to its file under *data_dir*.

    The empty key maps to ``_empty``.  Keys that would land outside the data
    directory, or that the filesystem cannot name, are refused.
    """
    if "\x00" in key:
        raise DownloadError(f"Refusing key with NUL byte: {key!r}")
    rel = PurePosixPath(key or EMPTY_KEY_NAME)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise DownloadError(f"Refusing unsafe key path: {key!r}")
    return Path(data_dir).joinpath(*rel.parts)


def _local_size(path: Path) -> int | None:
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return None


# ---- Downloader ----

class Downloader:
    """Fetches objects of one bucket into a local data directory."""

    def __init__(self, domain: str, data_dir: Path | str, signer: UrlSigner,
                 timeout: float | None = None,
                 session_factory: Callable[[], requests.Session] = new_session) -> None:
        self.domain = domain
        self.data_dir = Path(data_dir)
        self.signer = signer
        self.timeout = timeout
        self.session_factory = session_factory

    def signed_url(self, key: str) -> str:
        return self.signer.sign(make_base_url(self.domain, escape_key(key)))

    def download(self, key: str, resume_offset: int = 0) -> DownloadResult:
        """Download *key*, appending from *resume_offset* when it is positive.

        Raises:
            DownloadError: On a transport failure, a non-2xx status or a
                missing Content-Length.  Nothing on disk changes in that case.
        """
        dest_path = content_path(self.data_dir, key)

        if resume_offset > 0:
            local = _local_size(dest_path)
            if local != resume_offset:
                logger.warning(
                    "Local size of %s is %s, expected %d; restarting from 0",
                    dest_path, "missing" if local is None else local, resume_offset)
                resume_offset = 0

        headers = {"Accept-Encoding": "identity", "Connection": "close"}
        if resume_offset > 0:
            headers["Range"] = f"bytes={resume_offset}-"

        url = self.signed_url(key)
        session = self.session_factory()
        try:
            try:
                resp = session.get(url, headers=headers, stream=True,
                                   timeout=self.timeout)
            except requests.RequestException as exc:
                logger.debug("Request for %s failed: %s", key, exc)
                raise DownloadError(f"Request failed: {exc}") from exc
            try:
                return self._save(resp, key, dest_path, resume_offset)
            finally:
                resp.close()
        finally:
            session.close()

    def _save(self, resp: requests.Response, key: str, dest_path: Path,
              resume_offset: int) -> DownloadResult:
        code = resp.status_code
        logger.debug("ReqId: %s", resp.headers.get("X-Reqid", ""))
        logger.debug("Code: %d", code)
        if code // 100 != 2:
            raise DownloadError(f"Code: {code}", status_code=code)

        try:
            content_length = int(resp.headers.get("Content-Length", ""))
        except ValueError:
            raise DownloadError("No Content-Length in response header",
                                status_code=code) from None

        # Server ignored the range and is sending the whole object
        if resume_offset > 0 and code != 206:
            logger.info("Server ignored range for %s; rewriting from start", key)
            resume_offset = 0

        full_size = content_length + resume_offset
        etag = resp.headers.get("ETag", "")
        mode = "ab" if resume_offset > 0 else "wb"

        try:
            dest_path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            fh = open(dest_path, mode)
        except (OSError, ValueError) as exc:
            raise DownloadError(f"Error opening {dest_path}: {exc}",
                                status_code=code) from exc

        stream_error = ""
        with fh:
            try:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    fh.write(chunk)
            except (requests.RequestException, OSError) as exc:
                # Partial bytes stay on disk for the next run to resume
                stream_error = str(exc)
                logger.warning("Stream for %s ended early: %s", key, exc)

        st = dest_path.stat()
        result = DownloadResult(
            status_code=code,
            downloaded=st.st_size,
            full_size=full_size,
            mod_time=st.st_mtime_ns,
            etag=etag,
            stream_error=stream_error,
        )
        if not result.complete:
            logger.warning("Short write for %s: %s of %s", key,
                           format_bytes(result.downloaded), format_bytes(full_size))
        return result
