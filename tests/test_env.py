import tomllib

import pytest

from tasknotes.env import TasknotesConfig, TasknotesEnvironment, render_config
from tasknotes.rule import try_parse_rule
from tasknotes.shared import (
    bug_msg,
    format_date_range,
    format_time,
    log_msg,
    log_once,
    truncate_string,
)


@pytest.mark.unit
class TestEnvironment:
    def test_home_from_env_var(self, isolated_home):
        assert TasknotesEnvironment().home == isolated_home

    def test_config_in_cwd_wins(self, tmp_path, monkeypatch):
        local = tmp_path / "local"
        local.mkdir()
        (local / "config.toml").write_text(render_config(TasknotesConfig()))
        monkeypatch.chdir(local)
        assert TasknotesEnvironment().home == local

    def test_xdg_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TASKNOTES_HOME")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert TasknotesEnvironment().home == tmp_path / "xdg" / "tasknotes"

    def test_load_creates_default_config(self, isolated_home):
        env = TasknotesEnvironment()
        config = env.load_config()
        assert env.config_path.exists()
        assert env.log_dir == isolated_home / "logs"
        assert config.recurrence.default_time == "09:00"
        assert config.recurrence.yearly_lookahead_days == 800
        assert config.recurrence.maintain_due_offset is True

    def test_rendered_template_is_valid_toml(self):
        data = tomllib.loads(render_config(TasknotesConfig()))
        assert TasknotesConfig.model_validate(data) == TasknotesConfig()

    def test_user_values_are_kept(self, test_env):
        test_env.config_path.write_text(
            '[recurrence]\ndefault_time = "07:45"\n[display]\nampm = true\n'
        )
        config = TasknotesEnvironment().load_config()
        assert config.recurrence.default_time == "07:45"
        assert config.display.ampm is True
        # missing keys are filled back in
        assert "yearly_lookahead_days = 800" in test_env.config_path.read_text()

    def test_invalid_config_falls_back(self, test_env, capsys):
        test_env.config_path.write_text('[recurrence]\ndefault_time = "25:99"\n')
        config = TasknotesEnvironment().load_config()
        assert config.recurrence.default_time == "09:00"
        assert "Config error" in capsys.readouterr().out


@pytest.mark.unit
class TestShared:
    def test_log_msg_writes_under_home(self, isolated_home, frozen_time):
        log_msg("hello from a test")
        log_file = isolated_home / "logs" / "log_240110.md"
        text = log_file.read_text(encoding="utf-8")
        assert "hello from a test" in text
        assert "test_log_msg_writes_under_home" in text

    def test_format_time(self):
        assert format_time("14:30") == "14:30"
        assert format_time("14:30", ampm=True) == "2:30pm"
        assert format_time("09:00", ampm=True) == "9am"
        assert format_time("00:15", ampm=True) == "12:15am"

    def test_format_date_range(self):
        from datetime import date

        assert format_date_range(date(2024, 1, 1), date(2024, 1, 7)) == "Jan 1 - 7, 2024"
        assert (
            format_date_range(date(2024, 1, 29), date(2024, 2, 4))
            == "Jan 29 - Feb 4, 2024"
        )
        assert (
            format_date_range(date(2024, 12, 30), date(2025, 1, 5))
            == "Dec 30, 2024 - Jan 5, 2025"
        )

    def test_truncate_string(self):
        assert truncate_string("short", 10) == "short"
        assert truncate_string("a much longer title", 10) == "a much l …"

    def test_bug_msg_explicit_path(self, tmp_path):
        target = tmp_path / "debug.md"
        bug_msg("checking a value", file_path=target)
        text = target.read_text(encoding="utf-8")
        assert text.startswith("- ")
        assert "bug_msg" in text
        assert "checking a value" in text

    def test_repeated_rule_warning_logged_once(self, isolated_home, frozen_time):
        for _ in range(3):
            assert try_parse_rule("FREQ=FORTNIGHTLY") is None
        log_file = isolated_home / "logs" / "log_240110.md"
        assert log_file.read_text(encoding="utf-8").count("FREQ=FORTNIGHTLY") == 1

        log_once.cache_clear()
        try_parse_rule("FREQ=FORTNIGHTLY")
        assert log_file.read_text(encoding="utf-8").count("FREQ=FORTNIGHTLY") == 2
