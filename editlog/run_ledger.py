"""
Backup Run Ledger — append-only JSONL history of backup runs.

Every time a backup run finishes, a single JSON line is appended to
``<baseDir>/<bucket>/log/runs.jsonl``::

    tail -5 runs.jsonl | python -m json.tool

Per-task outcomes live in ``history.log``; this file only keeps the counts.
"""

from __future__ import annotations

import json
from pathlib import Path

from editlog.logging import RunReport


def append_to_ledger(report: RunReport, ledger_path: Path) -> Path:
    """Append a one-line JSON record summarising this run to the ledger.

    Returns:
        The path to the ledger file.
    """
    ledger_path.parent.mkdir(parents=True, exist_ok=True)
    with open(ledger_path, "a", encoding="utf-8") as f:
        f.write(json.dumps(report.to_dict(), separators=(",", ":")) + "\n")
    return ledger_path


def read_ledger(ledger_path: Path) -> list[dict]:
    """Return every well-formed run record, oldest first."""
    if not ledger_path.exists():
        return []
    records: list[dict] = []
    for line in ledger_path.read_text(encoding="utf-8").splitlines():
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return records
