"""
Append-only ledgers for the backup agent.

Two line-oriented UTF-8 files under ``<baseDir>/<bucket>/log/``:

``keys.log``
    One line per enqueue: ``<escaped-key>:<unix-nanos>``.  This records
    intent ("this key should be backed up").

``history.log``
    One line per finished attempt:
    ``<task-id> <etag> <mod-time-nanos> <downloaded> <full-size>``.
    This records outcome.

A *task id* is ``<escaped-key>:<unix-nanos>`` exactly as it appears in the
keys log.  Both files are never truncated; readers skip malformed lines so a
torn trailing record left by a crashed writer cannot block reconciliation.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path

from utils import escape_key, now_nanos, strip_whitespace


def make_task_id(escaped_key: str, timestamp: int | str) -> str:
    return f"{escaped_key}:{timestamp}"


def split_task_id(task_id: str) -> tuple[str, str]:
    """Split a task id into ``(escaped_key, timestamp)``.

    Raises:
        ValueError: If the id does not contain exactly one ``:``.
    """
    parts = task_id.split(":")
    if len(parts) != 2:
        raise ValueError(f"Error splitting task id: {task_id!r}")
    return parts[0], parts[1]


@dataclass
class HistoryRecord:
    """Outcome of one download attempt."""

    etag: str
    mod_time: int
    downloaded: int
    full_size: int

    @classmethod
    def parse(cls, detail: str) -> "HistoryRecord":
        """Parse the four space-separated fields that follow a task id.

        The etag may be empty, so the split is on single spaces.

        Raises:
            ValueError: On a wrong field count or a non-integer number.
        """
        fields = detail.split(" ")
        if len(fields) != 4:
            raise ValueError(f"Error splitting history detail: {detail!r}")
        etag, mod_time, downloaded, full_size = fields
        return cls(etag, int(mod_time), int(downloaded), int(full_size))

    def to_detail(self) -> str:
        return f"{self.etag} {self.mod_time} {self.downloaded} {self.full_size}"

    @property
    def is_complete(self) -> bool:
        return self.downloaded >= self.full_size


class _AppendOnlyLog:
    """Shared plumbing: create, append one line, read all lines."""

    def __init__(self, path: Path | str, fsync: bool = True) -> None:
        self.path = Path(path)
        self.fsync = fsync
        self._write_lock = threading.Lock()

    def touch(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8"):
            pass

    def _append(self, line: str) -> None:
        # A single write per record under the lock keeps concurrent
        # enqueues from interleaving.
        with self._write_lock:
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(line)
                fh.flush()
                if self.fsync:
                    os.fsync(fh.fileno())

    def _lines(self) -> list[str]:
        text = self.path.read_text(encoding="utf-8", errors="replace")
        return [line for line in text.split("\n") if line]


class KeyLedger(_AppendOnlyLog):
    """The keys log: every key ever enqueued, with its enqueue time."""

    def put(self, key: str) -> str:
        """Escape *key*, append it with the current time, return the task id.

        The empty key is allowed; it is stored under ``_empty`` in the data
        directory.

        Raises:
            ValueError: If the key contains a line break or a NUL byte.
            OSError: If the log cannot be opened or written.
        """
        if "\n" in key or "\r" in key:
            raise ValueError("Keys must not contain line breaks")
        if "\x00" in key:
            raise ValueError("Keys must not contain NUL bytes")
        task_id = make_task_id(escape_key(key), now_nanos())
        self._append(task_id + "\n")
        return task_id

    def list(self) -> dict[str, str]:
        """Return ``{escaped_key: timestamp}`` for every well-formed line.

        A key enqueued more than once keeps its latest timestamp.  The
        empty key is a valid key.
        """
        keys: dict[str, str] = {}
        for line in self._lines():
            parts = line.split(":")
            if len(parts) == 2 and parts[1] != "":
                keys[parts[0]] = parts[1]
        return keys


class HistoryLedger(_AppendOnlyLog):
    """The history log: one line per terminated download attempt."""

    def put(self, task_id: str, etag: str, mod_time: int,
            downloaded: int, full_size: int) -> None:
        """Append the outcome of an attempt.

        Whitespace is removed from the etag so the record keeps five fields.

        Raises:
            OSError: If the log cannot be opened or written.
        """
        record = HistoryRecord(strip_whitespace(etag or ""), int(mod_time),
                               int(downloaded), int(full_size))
        self._append(f"{task_id} {record.to_detail()}\n")

    def list(self) -> dict[str, str]:
        """Return ``{task_id: detail}``; the last line for a task id wins."""
        history: dict[str, str] = {}
        for line in self._lines():
            parts = line.split(" ", 1)
            if len(parts) == 2:
                history[parts[0]] = parts[1]
        return history
