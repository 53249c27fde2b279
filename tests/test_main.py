"""
Tests for the command-line entry point — main.py
"""
import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import main as cli
from editlog import EditLog, HistoryRecord


@pytest.fixture()
def conf_path(tmp_path, config_dict):
    path = tmp_path / "backup.json"
    path.write_text(json.dumps(config_dict))
    return path


class TestUsage:
    def test_no_config_prints_usage(self, capsys):
        assert cli.run([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_no_action_prints_usage(self, conf_path, capsys):
        assert cli.run(["-c", str(conf_path)]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_actions_are_exclusive(self, conf_path):
        with pytest.raises(SystemExit):
            cli.run(["-c", str(conf_path), "-b", "-p", "foo"])


class TestConfigErrors:
    def test_missing_config_file(self, tmp_path):
        assert cli.run(["-c", str(tmp_path / "nope.json"), "-b"]) == 1

    def test_incomplete_config(self, tmp_path, config_dict):
        config_dict["bucket"] = ""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(config_dict))
        assert cli.run(["-c", str(path), "-p", "foo"]) == 1


class TestPut:
    def test_put_key(self, conf_path, backup_config):
        assert cli.run(["-c", str(conf_path), "-p", "photos/cat.jpg"]) == 0
        keys_log = backup_config.log_dir / "keys.log"
        assert keys_log.read_text().startswith("photos/cat.jpg:")

    def test_put_empty_key(self, conf_path):
        assert cli.run(["-c", str(conf_path), "-p", ""]) == 1


class TestBackup:
    def test_backup_with_nothing_to_do(self, conf_path, backup_config):
        assert cli.run(["-c", str(conf_path), "-b"]) == 0
        runs = (backup_config.log_dir / "runs.jsonl").read_text().splitlines()
        assert len(runs) == 1

    def test_backup_waits_for_downloads(self, conf_path, backup_config, fake_http,
                                        make_response):
        http = fake_http(make_response(200, b"payload"))
        el = EditLog(backup_config, session_factory=http)
        task_id = el.put_key("foo")

        with patch.object(cli.EditLog, "from_file", return_value=el):
            assert cli.run(["-c", str(conf_path), "-b", "-v"]) == 0

        assert HistoryRecord.parse(el.history.list()[task_id]).is_complete
        assert (backup_config.data_dir / "foo").read_bytes() == b"payload"

    def test_backup_start_failure(self, conf_path):
        with patch.object(cli.EditLog, "from_file") as from_file:
            from_file.return_value.start_backup.side_effect = OSError("unreadable")
            assert cli.run(["-c", str(conf_path), "-b"]) == 1


class TestServe:
    def test_serve_runs_uvicorn(self, conf_path):
        with patch("uvicorn.run") as run:
            assert cli.run(["-c", str(conf_path), "-s", "8080"]) == 0
        run.assert_called_once()
        assert run.call_args.kwargs["port"] == 8080
