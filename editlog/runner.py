"""
Backup orchestration.

``BackupRunner`` turns a task plan into downloads and history records:

1. ``start_backup()`` checks that the ledgers can be planned, then hands the
   run to a daemon worker thread and returns immediately.
2. The worker takes the run lock (a second trigger waits here), plans
   afresh and runs every new task from offset 0, then every redo task from
   its recorded offset, one at a time.
3. Each attempt that streamed a body appends exactly one history line with
   the bytes that landed on disk, so the next plan can resume it.

``EditLog`` wires a ``BackupConfig`` to the ledgers, downloader and runner
and owns the bucket's directory layout.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

import requests

from downloader import DownloadError, Downloader, UrlSigner
from editlog.ledger import HistoryLedger, KeyLedger, split_task_id
from editlog.logging import RunReport
from editlog.planner import TaskPlan, plan_tasks
from editlog.run_ledger import append_to_ledger
from utils import BackupConfig, new_session, unescape_key

logger = logging.getLogger(__name__)

DIR_MODE = 0o700


class BackupRunner:
    """Runs backup passes for one bucket, at most one at a time."""

    def __init__(self, key_ledger: KeyLedger, history_ledger: HistoryLedger,
                 downloader: Downloader, bucket: str = "",
                 runs_path: Path | None = None) -> None:
        self.key_ledger = key_ledger
        self.history_ledger = history_ledger
        self.downloader = downloader
        self.bucket = bucket
        self.runs_path = runs_path
        self._lock = threading.Lock()

    def plan(self) -> TaskPlan:
        return plan_tasks(self.key_ledger, self.history_ledger)

    # ── triggering ────────────────────────────────────────────────────────

    def start_backup(self) -> threading.Thread:
        """Launch a backup run in the background and return its thread.

        Raises:
            OSError: If the ledgers cannot be read; no run is started.
        """
        try:
            pending = len(self.plan())
        except OSError:
            logger.error("Error making tasklists")
            raise
        logger.info("Starting backup tasks, %d pending", pending)
        worker = threading.Thread(target=self._worker, daemon=True,
                                  name=f"backup-{self.bucket or 'run'}")
        worker.start()
        return worker

    def _worker(self) -> None:
        try:
            self.backup()
        except Exception:
            logger.exception("Backup run for %s failed", self.bucket)

    def backup(self) -> RunReport:
        """Plan and run one full pass under the run lock."""
        with self._lock:
            plan = self.plan()
            return self._run(plan.new, plan.redo)

    def run_backup(self, tasks: list[str], redos: dict[str, int]) -> RunReport:
        """Run an explicit work list under the run lock."""
        with self._lock:
            return self._run(tasks, redos)

    # ── execution ─────────────────────────────────────────────────────────

    def _run(self, tasks: list[str], redos: dict[str, int]) -> RunReport:
        report = RunReport(bucket=self.bucket, new_total=len(tasks),
                           redo_total=len(redos))
        report.start()

        logger.info("##### %d file(s) to download #####", len(tasks))
        for task_id in tasks:
            if self.run_task(task_id, 0, report):
                report.new_succeeded += 1
            else:
                report.new_failed += 1
        logger.info("##### Tasks ended with %d succeeded, %d failed #####",
                    report.new_succeeded, report.new_failed)

        logger.info("##### %d file(s) to redo #####", len(redos))
        for task_id, start in redos.items():
            if self.run_task(task_id, start, report):
                report.redo_succeeded += 1
            else:
                report.redo_failed += 1
        logger.info("##### Redos ended with %d succeeded, %d failed #####",
                    report.redo_succeeded, report.redo_failed)

        report.finish()
        logger.info("Backup of %s finished: %s", self.bucket, report.console_summary())
        if self.runs_path is not None:
            try:
                append_to_ledger(report, self.runs_path)
            except OSError as exc:
                logger.error("Failed writing run summary to %s: %s", self.runs_path, exc)
        return report

    def run_task(self, task_id: str, start: int,
                 report: RunReport | None = None) -> bool:
        """Download one task and record it.  True only if the object is complete."""
        try:
            escaped_key, _ = split_task_id(task_id)
            key = unescape_key(escaped_key)
        except ValueError as exc:
            logger.error("%s", exc)
            if report is not None:
                report.add_error(str(exc))
            return False

        entry = f"{self.bucket}:{key}"
        logger.info("Downloading %s", entry)
        try:
            result = self.downloader.download(key, start)
        except DownloadError as exc:
            logger.error("Failed downloading %s : %s", entry, exc)
            if report is not None:
                report.add_error(f"{entry}: {exc}")
            return False

        try:
            self.history_ledger.put(task_id, result.etag, result.mod_time,
                                    result.downloaded, result.full_size)
        except OSError as exc:
            logger.error("Failed logging %s to history: %s", entry, exc)
            if report is not None:
                report.add_error(f"{entry}: history write failed")
            return False
        logger.info("Succeeded logging %s to history", entry)

        if report is not None:
            report.bytes_downloaded += max(0, result.downloaded - start)
        if not result.complete:
            logger.error("Incomplete download %s : %d of %d bytes",
                         entry, result.downloaded, result.full_size)
            if report is not None:
                report.add_error(f"{entry}: incomplete")
            return False
        logger.info("Succeeded downloading %s", entry)
        return True


class EditLog:
    """One bucket's backup state: directories, ledgers, downloader, runner.

    Layout::

        <baseDir>/<bucket>/log/keys.log
        <baseDir>/<bucket>/log/history.log
        <baseDir>/<bucket>/log/runs.jsonl
        <baseDir>/<bucket>/data/<key path>
    """

    def __init__(self, config: BackupConfig,
                 session_factory: Callable[[], requests.Session] = new_session) -> None:
        config.validate()
        self.config = config
        self.log_dir = config.log_dir
        self.data_dir = config.data_dir
        self.keys = KeyLedger(self.log_dir / "keys.log")
        self.history = HistoryLedger(self.log_dir / "history.log")
        self.init()

        signer = UrlSigner(config.access_key, config.secret_key, ttl=int(config.url_ttl))
        self.downloader = Downloader(config.domain, self.data_dir, signer,
                                     timeout=config.timeout,
                                     session_factory=session_factory)
        self.runner = BackupRunner(self.keys, self.history, self.downloader,
                                   bucket=config.bucket,
                                   runs_path=self.log_dir / "runs.jsonl")

    @classmethod
    def from_file(cls, path: Path | str) -> "EditLog":
        """Load, log and validate a config file, then initialise the bucket.

        Raises:
            ConfigError: If the config is missing or incomplete.
            OSError: If the bucket directories cannot be created.
        """
        config = BackupConfig.load(Path(path))
        logger.info(config.describe())
        return cls(config)

    def init(self) -> None:
        for directory in (self.log_dir, self.data_dir):
            try:
                directory.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            except OSError:
                logger.error("Error init dir: %s", directory)
                raise
        for ledger in (self.keys, self.history):
            try:
                ledger.touch()
            except OSError:
                logger.error("Error init log file: %s", ledger.path)
                raise

    @property
    def bucket(self) -> str:
        return self.config.bucket

    @property
    def ips(self) -> list[str]:
        return list(self.config.ips or [])

    def put_key(self, key: str) -> str:
        return self.keys.put(key)

    def start_backup(self) -> threading.Thread:
        return self.runner.start_backup()
