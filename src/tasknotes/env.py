from pathlib import Path
import os
import tomllib
from pydantic import BaseModel, Field, ValidationError
from typing import Optional
from jinja2 import Template


# ─── Config Schema ─────────────────────────────────────────────────
class RecurrenceConfig(BaseModel):
    default_time: str = Field("09:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    yearly_lookahead_days: int = Field(800, ge=0)
    maintain_due_offset: bool = True


class DisplayConfig(BaseModel):
    ampm: bool = False


class TasknotesConfig(BaseModel):
    title: str = "TaskNotes Recurrence Configuration"
    recurrence: RecurrenceConfig = RecurrenceConfig()
    display: DisplayConfig = DisplayConfig()


# ─── Commented Template ────────────────────────────────────
CONFIG_TEMPLATE = """\
title = "{{ title }}"

[recurrence]
# default_time: str = 'HH:MM'
# Time of day used for pattern instances when neither the rule's
# DTSTART nor the scheduled value carries one.
default_time = "{{ recurrence.default_time }}"

# yearly_lookahead_days: int
# Yearly occurrences are sparse, so the calendar generates this many
# days past the window start before clipping to the visible range.
# Listings are always clipped, so this only sets how far generation
# runs and never changes which occurrences are shown.
yearly_lookahead_days = {{ recurrence.yearly_lookahead_days }}

# maintain_due_offset: bool = true | false
# When completing an instance moves the scheduled date forward, move
# the due date by the same number of days.
maintain_due_offset = {{ recurrence.maintain_due_offset | lower }}

[display]
# ampm: bool = true | false
ampm = {{ display.ampm | lower }}

"""

# ─── Save Config with Comments ───────────────────────────────


def render_config(config: TasknotesConfig) -> str:
    template = Template(CONFIG_TEMPLATE)
    return template.render(**config.model_dump()).strip() + "\n"


def save_config_from_template(config: TasknotesConfig, path: Path):
    path.write_text(render_config(config), encoding="utf-8")
    print(f"✅ Config with comments written to: {path}")


# ─── Main Environment Class ───────────────────────────────


class TasknotesEnvironment:
    def __init__(self):
        self._home = self._resolve_home()
        self._config: Optional[TasknotesConfig] = None

    @property
    def home(self) -> Path:
        return self._home

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    @property
    def log_dir(self) -> Path:
        return self.home / "logs"

    def ensure(self, init_config: bool = True):
        self.home.mkdir(parents=True, exist_ok=True)

        if init_config and not self.config_path.exists():
            save_config_from_template(TasknotesConfig(), self.config_path)

    def load_config(self) -> TasknotesConfig:
        # Step 1: Create the file if it doesn't exist
        if not self.config_path.exists():
            config = TasknotesConfig()
            self.home.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(render_config(config), encoding="utf-8")
            print(f"✅ Created new config file at {self.config_path}")
            self._config = config
            return config

        # Step 2: Try to load and validate the config
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
            config = TasknotesConfig.model_validate(data)
        except (ValidationError, tomllib.TOMLDecodeError) as e:
            print(f"⚠️ Config error in {self.config_path}: {e}\nUsing defaults.")
            config = TasknotesConfig()

        # Step 3: Always regenerate the canonical version
        rendered = render_config(config)
        current_text = self.config_path.read_text(encoding="utf-8")

        if rendered != current_text:
            self.config_path.write_text(rendered, encoding="utf-8")
            print(f"✅ Updated {self.config_path} with any missing defaults.")

        self._config = config
        return config

    @property
    def config(self) -> TasknotesConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def _resolve_home(self) -> Path:
        cwd = Path.cwd()
        if (cwd / "config.toml").exists():
            return cwd

        env_home = os.getenv("TASKNOTES_HOME")
        if env_home:
            return Path(env_home).expanduser()

        xdg_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_home:
            return Path(xdg_home).expanduser() / "tasknotes"
        else:
            return Path.home() / ".config" / "tasknotes"
