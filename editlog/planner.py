"""
Task planning: reconcile the keys log against the history log.

For every task id in the keys log:

- no history line          -> **new**, download from offset 0
- downloaded <  full size  -> **redo**, resume from ``downloaded``
- downloaded >= full size  -> done, omitted

A history line whose numbers do not parse drops the task from both lists
rather than retrying it, so corrupt history cannot crash-loop a run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from editlog.ledger import HistoryLedger, HistoryRecord, KeyLedger, make_task_id

logger = logging.getLogger(__name__)


@dataclass
class TaskPlan:
    """Work list for one backup run.  Ordering carries no meaning."""

    new: list[str] = field(default_factory=list)
    redo: dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.new and not self.redo

    def __len__(self) -> int:
        return len(self.new) + len(self.redo)


def plan_tasks(key_ledger: KeyLedger, history_ledger: HistoryLedger) -> TaskPlan:
    """Build the work list for the next run.

    Raises:
        OSError: If either ledger cannot be read.
    """
    keys = key_ledger.list()
    history = history_ledger.list()

    plan = TaskPlan()
    for escaped_key, timestamp in keys.items():
        task_id = make_task_id(escaped_key, timestamp)
        detail = history.get(task_id)
        if detail is None:
            plan.new.append(task_id)
            continue
        try:
            record = HistoryRecord.parse(detail)
        except ValueError as exc:
            logger.debug("Dropping %s, bad history detail: %s", task_id, exc)
            continue
        if not record.is_complete:
            plan.redo[task_id] = record.downloaded

    logger.debug("Planned %d new and %d redo task(s) from %d key(s)",
                 len(plan.new), len(plan.redo), len(keys))
    return plan
