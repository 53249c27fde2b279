"""
Private-bucket URL signing.

Objects in a private bucket are fetched through a time-limited URL::

    http://<domain>/<escaped-key>?e=<deadline>&token=<access-key>:<sign>

where ``sign`` is the URL-safe base64 HMAC-SHA1 of everything before
``&token=``, keyed with the secret key.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import time


def make_base_url(domain: str, escaped_key: str) -> str:
    """Join a bucket domain and an already-escaped key into an object URL.

    A bare host gets ``http://``; a domain that already names its scheme is
    used as given.
    """
    domain = domain.rstrip("/")
    if not domain.startswith(("http://", "https://")):
        domain = f"http://{domain}"
    return f"{domain}/{escaped_key}"


class UrlSigner:
    """Signs object URLs with an access/secret key pair."""

    def __init__(self, access_key: str, secret_key: str, ttl: int = 3600) -> None:
        self.access_key = access_key
        self.secret_key = secret_key.encode("utf-8")
        self.ttl = ttl

    def token(self, data: str) -> str:
        digest = hmac.new(self.secret_key, data.encode("utf-8"), hashlib.sha1).digest()
        return f"{self.access_key}:{base64.urlsafe_b64encode(digest).decode('ascii')}"

    def sign(self, base_url: str, now: float | None = None) -> str:
        """Return *base_url* with a deadline and signature appended."""
        deadline = int(now if now is not None else time.time()) + self.ttl
        sep = "&" if "?" in base_url else "?"
        url = f"{base_url}{sep}e={deadline}"
        return f"{url}&token={self.token(url)}"
