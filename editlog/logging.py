"""
Backup Logging — console setup and per-run outcome accounting.

Provides:
  - configure_logging(): one stream handler, text or JSON lines, INFO or DEBUG.
  - RunReport: lightweight dataclass that captures what a backup run did,
    split into new tasks and redo tasks.

Usage::

    from editlog.logging import configure_logging

    configure_logging(verbose=args.verbose)
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


TEXT_FORMAT = "%(asctime)s %(levelname)s %(filename)s:%(lineno)d %(message)s"


class JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("task_id", "status", "client_ip", "path"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


def configure_logging(verbose: bool = False, log_format: str = "text") -> logging.Handler:
    """Install a single root stream handler and return it."""
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(handlers=[handler], level=level, force=True)
    # urllib3 logs every connection at DEBUG; keep it out of verbose mode
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return handler


# ── Data structures ───────────────────────────────────────────────────────────


@dataclass
class RunReport:
    """Structured summary of one backup run."""

    bucket: str = ""
    status: str = "not_started"               # started | completed | failed
    started_at: str = ""
    elapsed_seconds: float = 0.0
    new_total: int = 0
    new_succeeded: int = 0
    new_failed: int = 0
    redo_total: int = 0
    redo_succeeded: int = 0
    redo_failed: int = 0
    bytes_downloaded: int = 0
    errors: list[str] = field(default_factory=list)
    _t0: float = field(default=0.0, repr=False)

    # ── helpers ───────────────────────────────────────────────────────────

    def start(self) -> None:
        self.status = "started"
        self.started_at = datetime.now(timezone.utc).isoformat()
        self._t0 = time.monotonic()

    def finish(self, status: str = "completed") -> None:
        self.elapsed_seconds = time.monotonic() - self._t0
        self.status = status

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def succeeded(self) -> int:
        return self.new_succeeded + self.redo_succeeded

    @property
    def failed(self) -> int:
        return self.new_failed + self.redo_failed

    def console_summary(self) -> str:
        """One-line summary suitable for the log."""
        parts = [
            f"new: {self.new_succeeded} succeeded, {self.new_failed} failed",
            f"redo: {self.redo_succeeded} succeeded, {self.redo_failed} failed",
        ]
        if self.bytes_downloaded:
            parts.append(f"bytes: {self.bytes_downloaded:,}")
        parts.append(f"{self.elapsed_seconds:.1f}s")
        return " | ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        d = {
            "bucket": self.bucket,
            "status": self.status,
            "started_at": self.started_at,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "new": {"total": self.new_total, "succeeded": self.new_succeeded,
                    "failed": self.new_failed},
            "redo": {"total": self.redo_total, "succeeded": self.redo_succeeded,
                     "failed": self.redo_failed},
            "bytes_downloaded": self.bytes_downloaded,
        }
        if self.errors:
            d["errors"] = self.errors[:20]
        return d
