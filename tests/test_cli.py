import importlib
import json

import pytest
from click.testing import CliRunner

from tasknotes.cli.main import cli


@pytest.mark.unit
def test_help_does_not_require_config(monkeypatch, tmp_path):
    home = tmp_path / "home"
    xdg = tmp_path / "xdg"

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.delenv("TASKNOTES_HOME", raising=False)

    import tasknotes.cli.main as cli_main

    importlib.reload(cli_main)

    runner = CliRunner()
    result = runner.invoke(cli_main.cli, ["--help"])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert not (xdg / "tasknotes" / "config.toml").exists()


@pytest.mark.unit
class TestCommands:
    def test_parse(self):
        result = CliRunner().invoke(cli, ["parse", "FREQ=WEEKLY;BYDAY=MO,FR;COUNT=4"])
        assert result.exit_code == 0
        assert "FREQ=WEEKLY;INTERVAL=1;BYDAY=MO,FR;COUNT=4" in result.output
        assert "weekly" in result.output

    def test_parse_invalid(self):
        result = CliRunner().invoke(cli, ["parse", "INVALID"])
        assert result.exit_code == 1
        assert "Invalid rule" in result.output

    def test_next(self, task_file):
        path = task_file(
            {
                "scheduled": "2024-01-01",
                "recurrence": "FREQ=DAILY;INTERVAL=1",
                "complete_instances": ["2024-01-01", "2024-01-02"],
            }
        )
        result = CliRunner().invoke(cli, ["next", path])
        assert result.exit_code == 0
        assert result.output.strip().splitlines()[-1] == "2024-01-03"

    def test_next_camel_case_record(self, task_file):
        path = task_file(
            {
                "scheduled": "2024-01-10",
                "recurrence": "FREQ=DAILY",
                "recurrenceAnchor": "completion",
                "completeInstances": ["2024-01-05", "2024-01-01"],
            }
        )
        result = CliRunner().invoke(cli, ["next", path])
        assert result.output.strip().splitlines()[-1] == "2024-01-06"

    def test_next_invalid_rule(self, task_file):
        path = task_file({"scheduled": "2024-01-01", "recurrence": "INVALID"})
        result = CliRunner().invoke(cli, ["next", path])
        assert result.exit_code == 0
        assert result.output.strip().splitlines()[-1] == "none"

    def test_not_json(self, tmp_path):
        path = tmp_path / "task.json"
        path.write_text("scheduled: 2024-01-01")
        result = CliRunner().invoke(cli, ["next", str(path)])
        assert result.exit_code != 0
        assert "not a JSON task record" in result.output

    def test_window_defaults_to_today(self, task_file, frozen_time):
        path = task_file(
            {
                "title": "water plants",
                "scheduled": "2024-01-10",
                "recurrence": "FREQ=DAILY;INTERVAL=2",
                "skipped_instances": ["2024-01-12"],
            }
        )
        result = CliRunner().invoke(cli, ["window", path])
        assert result.exit_code == 0
        assert "water plants" in result.output
        assert "2024-01-10" in result.output
        assert "2024-01-16" in result.output
        assert "2024-01-11" not in result.output
        assert "skipped" in result.output

    def test_window_bad_date(self, task_file):
        path = task_file({"scheduled": "2024-01-10", "recurrence": "FREQ=DAILY"})
        result = CliRunner().invoke(cli, ["window", path, "--start", "soon"])
        assert result.exit_code == 2
        assert "Expected YYYY-MM-DD" in result.output

    def test_complete_prints_updated_record(self, task_file):
        path = task_file(
            {"scheduled": "2024-01-01", "recurrence": "FREQ=DAILY", "tags": ["home"]}
        )
        result = CliRunner().invoke(cli, ["complete", path, "2024-01-01"])
        assert result.exit_code == 0
        start = result.output.index("{")
        record = json.loads(result.output[start:])
        assert record["complete_instances"] == ["2024-01-01"]
        assert record["scheduled"] == "2024-01-02"
        assert record["tags"] == ["home"]

    def test_skip_write(self, task_file):
        path = task_file({"scheduled": "2024-01-01", "recurrence": "FREQ=WEEKLY"})
        result = CliRunner().invoke(cli, ["skip", path, "2024-01-01", "--write"])
        assert result.exit_code == 0
        with open(path, encoding="utf-8") as f:
            record = json.load(f)
        assert record["skipped_instances"] == ["2024-01-01"]
        assert record["scheduled"] == "2024-01-08"

    def test_complete_today_write(self, task_file, freeze_at):
        path = task_file({"scheduled": "2024-03-01", "recurrence": "FREQ=WEEKLY"})
        with freeze_at("2024-03-01 08:00:00"):
            result = CliRunner().invoke(cli, ["complete", path, "today", "--write"])
        assert result.exit_code == 0
        with open(path, encoding="utf-8") as f:
            record = json.load(f)
        assert record["complete_instances"] == ["2024-03-01"]
        assert record["scheduled"] == "2024-03-08"
        assert record["recurrence"] == "DTSTART:20240301;FREQ=WEEKLY"
