"""
Shared pytest fixtures for tasknotes tests.

This module provides common fixtures used across all test files, including:
- An isolated TASKNOTES_HOME so log files never land in the real config dir
- Time freezing utilities
- Task record factories
"""

import json

import pytest
from freezegun import freeze_time

from tasknotes.env import RecurrenceConfig, TasknotesEnvironment
from tasknotes.shared import log_once
from tasknotes.task import Task


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """
    Points TASKNOTES_HOME at a per-test directory.

    log_msg writes under the runtime home, so every test gets its own.
    log_once is re-armed so each test sees its own diagnostics.
    """
    home = tmp_path / "tasknotes-home"
    monkeypatch.setenv("TASKNOTES_HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.chdir(tmp_path)
    log_once.cache_clear()
    return home


@pytest.fixture
def frozen_time():
    """
    Provides a freezegun context that freezes time to 2024-01-10 12:00:00
    for the duration of the test.

    Usage:
        def test_something(frozen_time):
            assert date.today() == date(2024, 1, 10)
            frozen_time.tick(delta=timedelta(days=1))
    """
    with freeze_time("2024-01-10 12:00:00") as frozen:
        yield frozen


@pytest.fixture
def freeze_at():
    """
    Returns a function that freezes time to a specific datetime.

    Usage:
        def test_something(freeze_at):
            with freeze_at("2024-03-01 08:00:00"):
                ...
    """
    return freeze_time


@pytest.fixture
def test_env(isolated_home):
    """A TasknotesEnvironment rooted in the isolated home."""
    env = TasknotesEnvironment()
    env.ensure(init_config=True)
    return env


@pytest.fixture
def recurrence_config():
    return RecurrenceConfig()


@pytest.fixture
def task_factory():
    """
    Provides a factory for Task snapshots.

    Usage:
        def test_something(task_factory):
            task = task_factory("FREQ=DAILY", scheduled="2024-01-01")
    """

    def _create_task(
        recurrence="FREQ=DAILY;INTERVAL=1",
        scheduled="2024-01-01",
        anchor="scheduled",
        complete=(),
        skipped=(),
        due=None,
        title="recurring task",
    ) -> Task:
        return Task.from_dict(
            {
                "title": title,
                "scheduled": scheduled,
                "due": due,
                "recurrence": recurrence,
                "recurrence_anchor": anchor,
                "complete_instances": list(complete),
                "skipped_instances": list(skipped),
            }
        )

    return _create_task


@pytest.fixture
def task_file(tmp_path):
    """
    Returns a function that writes a task record to a JSON file and
    returns its path as a string.
    """

    def _write(record: dict, name: str = "task.json") -> str:
        path = tmp_path / name
        path.write_text(json.dumps(record), encoding="utf-8")
        return str(path)

    return _write
