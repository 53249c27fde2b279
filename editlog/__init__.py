"""
Edit-log backup core.

Records which object keys must be backed up (keys log), what happened to
each attempt (history log), and reconciles the two into a work list of new
downloads and resumable partial downloads.

Re-exports key entry points so callers can do::

    from editlog import EditLog, plan_tasks
"""

from editlog.ledger import (
    HistoryLedger,
    HistoryRecord,
    KeyLedger,
    make_task_id,
    split_task_id,
)
from editlog.planner import TaskPlan, plan_tasks
from editlog.logging import RunReport, configure_logging
from editlog.runner import BackupRunner, EditLog

__all__ = [
    "HistoryLedger",
    "HistoryRecord",
    "KeyLedger",
    "make_task_id",
    "split_task_id",
    "TaskPlan",
    "plan_tasks",
    "RunReport",
    "configure_logging",
    "BackupRunner",
    "EditLog",
]
