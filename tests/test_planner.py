"""
Tests for task planning — editlog/planner.py

Reconciles a keys log against a history log into new and redo work.
Ordering of the results is unspecified, so comparisons use sets and dicts.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from editlog.ledger import HistoryLedger, KeyLedger
from editlog.planner import TaskPlan, plan_tasks


@pytest.fixture()
def ledgers(tmp_path):
    keys = KeyLedger(tmp_path / "keys.log", fsync=False)
    history = HistoryLedger(tmp_path / "history.log", fsync=False)
    keys.touch()
    history.touch()
    return keys, history


def _write(ledgers, keys_text="", history_text=""):
    keys, history = ledgers
    keys.path.write_text(keys_text)
    history.path.write_text(history_text)
    return plan_tasks(keys, history)


class TestScenarios:
    def test_empty_ledgers(self, ledgers):
        plan = _write(ledgers)
        assert plan.new == []
        assert plan.redo == {}
        assert plan.is_empty
        assert len(plan) == 0

    def test_never_attempted_is_new(self, ledgers):
        plan = _write(ledgers, "foo:100\n")
        assert plan.new == ["foo:100"]
        assert plan.redo == {}

    def test_complete_is_done(self, ledgers):
        plan = _write(ledgers, "foo:100\n", "foo:100 etagX 12345 1000 1000\n")
        assert plan.is_empty

    def test_partial_is_redo(self, ledgers):
        plan = _write(ledgers, "foo:100\n", "foo:100 etagX 12345 500 1000\n")
        assert plan.new == []
        assert plan.redo == {"foo:100": 500}

    def test_empty_key_is_planned(self, ledgers):
        plan = _write(ledgers, ":100\n")
        assert plan.new == [":100"]

    def test_history_for_other_timestamp_does_not_count(self, ledgers):
        plan = _write(ledgers, "foo:200\n", "foo:100 etagX 12345 1000 1000\n")
        assert plan.new == ["foo:200"]

    def test_mixed(self, ledgers):
        plan = _write(
            ledgers,
            "a:1\nb:2\nc:3\nd:4\n",
            "b:2 e 0 10 10\nc:3 e 0 3 10\n",
        )
        assert set(plan.new) == {"a:1", "d:4"}
        assert plan.redo == {"c:3": 3}
        assert len(plan) == 3


class TestCorruption:
    def test_non_numeric_detail_drops_task(self, ledgers):
        plan = _write(ledgers, "foo:100\n", "foo:100 etagX 12345 abc 1000\n")
        assert plan.is_empty

    def test_short_detail_drops_task(self, ledgers):
        plan = _write(ledgers, "foo:100\n", "foo:100 etagX 12345\n")
        assert plan.is_empty

    def test_truncated_trailing_key_line(self, ledgers):
        plan = _write(ledgers, "foo:100\nbar:200\nbaz", "bar:200 e 1 5 10\n")
        assert plan.new == ["foo:100"]
        assert plan.redo == {"bar:200": 5}

    def test_truncated_trailing_history_line(self, ledgers):
        plan = _write(
            ledgers,
            "foo:100\nbar:200\n",
            "foo:100 e 1 1000 1000\nbar:200 e 1 5",
        )
        assert plan.new == []
        assert plan.redo == {}

    def test_latest_history_line_wins(self, ledgers):
        plan = _write(
            ledgers,
            "foo:100\n",
            "foo:100 e 1 500 1000\nfoo:100 e 2 1000 1000\n",
        )
        assert plan.is_empty


class TestProperties:
    def test_planning_is_idempotent(self, ledgers):
        keys_text = "a:1\nb:2\nc:3\n"
        history_text = "b:2 e 0 10 10\nc:3 e 0 3 10\n"
        first = _write(ledgers, keys_text, history_text)
        second = plan_tasks(*ledgers)
        assert set(first.new) == set(second.new)
        assert first.redo == second.redo

    def test_completion_is_monotonic(self, ledgers):
        keys, history = ledgers
        keys.path.write_text("foo:100\n")
        history.put("foo:100", "e", 1, 1000, 1000)
        assert plan_tasks(keys, history).is_empty

        # More keys and unrelated history do not revive the finished task
        keys.path.write_text("foo:100\nbar:5\n")
        history.put("bar:5", "e", 1, 1, 10)
        plan = plan_tasks(keys, history)
        assert "foo:100" not in plan.new
        assert "foo:100" not in plan.redo

    def test_missing_ledger_raises(self, tmp_path):
        keys = KeyLedger(tmp_path / "missing-keys.log")
        history = HistoryLedger(tmp_path / "missing-history.log")
        with pytest.raises(OSError):
            plan_tasks(keys, history)


class TestTaskPlan:
    def test_defaults_are_independent(self):
        a, b = TaskPlan(), TaskPlan()
        a.new.append("x:1")
        assert b.new == []
