"""
Pytest fixtures for the backup agent tests.

Provides a complete ``BackupConfig`` rooted in ``tmp_path``, helpers that
build real ``requests.Response`` objects around an in-memory body, and a
fake session factory that serves queued responses without network access.
"""

import io
import sys
from pathlib import Path

import pytest
import requests
from requests.structures import CaseInsensitiveDict

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.config import BackupConfig  # noqa: E402


# ── Helpers ───────────────────────────────────────────────────────────────────

def _make_response(status_code: int = 200, body: bytes = b"",
                   headers: dict | None = None,
                   content_length: int | None = None,
                   raw=None) -> requests.Response:
    """Build a streaming-capable Response with *body* as its raw stream.

    ``Content-Length`` defaults to ``len(body)``; pass ``content_length=-1``
    to omit the header entirely.
    """
    resp = requests.Response()
    resp.status_code = status_code
    h = CaseInsensitiveDict(headers or {})
    if content_length is None:
        h.setdefault("Content-Length", str(len(body)))
    elif content_length >= 0:
        h["Content-Length"] = str(content_length)
    resp.headers = h
    resp.raw = raw if raw is not None else io.BytesIO(body)
    resp.url = "http://test.example.com/"
    return resp


class BrokenStream(io.BytesIO):
    """Raw body that delivers *good* bytes, then fails like a dropped connection."""

    def __init__(self, good: bytes) -> None:
        super().__init__(good)

    def read(self, size=-1):
        chunk = super().read(size)
        if chunk:
            return chunk
        raise requests.exceptions.ChunkedEncodingError("connection broken")


class _FakeSession:
    def __init__(self, http: "FakeHTTP") -> None:
        self.http = http

    def get(self, url, **kwargs):
        self.http.calls.append({"url": url, **kwargs})
        item = self.http.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.http.sessions_closed += 1


class FakeHTTP:
    """Session factory: each call opens a new fake session over one queue."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []
        self.sessions_opened = 0
        self.sessions_closed = 0

    def __call__(self) -> _FakeSession:
        self.sessions_opened += 1
        return _FakeSession(self)


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep credentials and server settings from the host out of the tests."""
    for var in ("BACKUP_ACCESS_KEY", "BACKUP_SECRET_KEY", "APP_LOG_FORMAT",
                "TRUSTED_PROXIES"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_dict(tmp_path) -> dict:
    return {
        "ips": [],
        "bucket": "test-bucket",
        "domain": "test.example.com",
        "baseDir": str(tmp_path / "backup"),
        "accessKey": "AK",
        "secretKey": "SK",
    }


@pytest.fixture
def backup_config(config_dict) -> BackupConfig:
    return BackupConfig.from_dict(config_dict)


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def broken_stream():
    return BrokenStream


@pytest.fixture
def fake_http():
    return FakeHTTP
