import inspect
import textwrap
import shutil
import os
from datetime import date, datetime, time
from functools import lru_cache
from pathlib import Path
from rich import print as rich_print

from tasknotes.env import TasknotesEnvironment

ELLIPSIS_CHAR = "…"

REPEATING = "↻"  # Flag for pattern instances
NEXT_SCHEDULED = "●"  # Flag for the next scheduled occurrence

COMPLETED_COLOR = "gray"
SKIPPED_COLOR = "darkgray"
OPEN_COLOR = "lightskyblue"
NEXT_COLOR = "gold"
LABEL_COLOR = "lightskyblue"
ERROR_COLOR = "red"

STATE_TO_COLOR = {
    "completed": COMPLETED_COLOR,
    "skipped": SKIPPED_COLOR,
    "open": OPEN_COLOR,
}


def truncate_string(s: str, max_length: int) -> str:
    if len(s) > max_length:
        return f"{s[: max_length - 2]} {ELLIPSIS_CHAR}"
    else:
        return s


def format_time(value: time | str, ampm: bool = False) -> str:
    """
    Format a time of day, either a ``time`` or an 'HH:MM' string, using
    24-hour or am/pm notation.
    """
    if isinstance(value, str):
        hours, minutes = (int(x) for x in value.split(":")[:2])
        value = time(hours, minutes)
    if not ampm:
        return value.strftime("%H:%M")
    suffix = "am" if value.hour < 12 else "pm"
    hour = value.hour % 12 or 12
    if value.minute:
        return f"{hour}:{value.minute:02d}{suffix}"
    return f"{hour}{suffix}"


def format_day(day: date) -> str:
    """'Mon 2024-01-08' style label used in CLI tables."""
    return day.strftime("%a %Y-%m-%d")


def format_date_range(start: date, end: date) -> str:
    """
    Compact label for a window:
        same month: 'Jan 1 - 7, 2024'
        same year:  'Jan 29 - Feb 4, 2024'
        otherwise:  'Dec 30, 2024 - Jan 5, 2025'
    """
    if start.year == end.year and start.month == end.month:
        return f"{start.strftime('%b')} {start.day} - {end.day}, {start.year}"
    if start.year == end.year:
        return (
            f"{start.strftime('%b')} {start.day} - "
            f"{end.strftime('%b')} {end.day}, {start.year}"
        )
    return (
        f"{start.strftime('%b')} {start.day}, {start.year} - "
        f"{end.strftime('%b')} {end.day}, {end.year}"
    )


def _get_runtime_home() -> Path:
    override = os.environ.get("TASKNOTES_HOME")
    if override:
        return Path(override).expanduser()
    return TasknotesEnvironment().home


def _resolve_log_file_path(file_path: str | Path) -> Path:
    path = Path(file_path)
    if path.is_absolute():
        return path
    return _get_runtime_home() / path


def _default_log_relative_path(kind: str) -> Path:
    """Return logs/log_<YYMMDD>.md style paths under the runtime home."""
    suffix = datetime.now().strftime("%y%m%d")
    return Path("logs") / f"{kind}_{suffix}.md"


def _caller_name(frame) -> str:
    func_name = frame.f_code.co_name

    # Detect instance/class/static context
    if "self" in frame.f_locals:  # instance method
        cls_name = frame.f_locals["self"].__class__.__name__
        return f"{cls_name}.{func_name}"
    if "cls" in frame.f_locals:  # classmethod
        cls_name = frame.f_locals["cls"].__name__
        return f"{cls_name}.{func_name}"
    return func_name


def _write_entry(
    kind: str,
    caller_name: str,
    msg: str,
    file_path: str | Path | None,
    print_output: bool,
):
    # Format the line header
    lines = [
        f"- {datetime.now().strftime('%H:%M:%S')} {kind}_msg ({caller_name}):  ",
    ]
    # Wrap the message text
    lines.extend(
        [
            f"\n{x}"
            for x in textwrap.wrap(
                msg.strip(),
                width=max(shutil.get_terminal_size()[0] - 6, 40),
                initial_indent="   ",
                subsequent_indent="   ",
            )
        ]
    )
    lines.append("\n\n")

    # Best-effort file logging; fall back to console when the file is unwritable.
    if file_path is None:
        file_path = _default_log_relative_path(kind)
    log_path = _resolve_log_file_path(file_path)

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.writelines(lines)
    except OSError:
        print_output = True

    if print_output:
        print("".join(lines))


def log_msg(
    msg: str,
    file_path: str | Path | None = None,
    print_output: bool = False,
):
    """
    Log a message and save it directly to a file.

    Args:
        msg (str): The message to log.
        file_path (str | Path | None, optional): Overrides the default path when
            provided. Defaults to ``None`` which writes to ``logs/log_<YYMMDD>.md``.
        print_output (bool, optional): If True, also print to console.
    """
    frame = inspect.stack()[1].frame
    _write_entry("log", _caller_name(frame), msg, file_path, print_output)


def bug_msg(
    msg: str,
    file_path: str | Path | None = None,
    print_output: bool = False,
):
    """
    Companion to log_msg for temporary debugging. Writes to
    ``logs/bug_<YYMMDD>.md`` unless ``file_path`` is given.
    """
    frame = inspect.stack()[1].frame
    _write_entry("bug", _caller_name(frame), msg, file_path, print_output)


@lru_cache(maxsize=512)
def log_once(msg: str):
    """
    log_msg for diagnostics raised from queries that repeat on every
    calendar render.  Each distinct message is written once per process;
    ``log_once.cache_clear()`` re-arms them.
    """
    frame = inspect.stack()[1].frame
    _write_entry("log", _caller_name(frame), msg, None, False)


def print_msg(msg: str, print_output: bool = True):
    """
    Print a wrapped message headed by the calling function's name.
    """
    if not print_output:
        return
    caller_name = inspect.stack()[1].function
    rich_print(f"[{LABEL_COLOR}]{caller_name}[/{LABEL_COLOR}]")
    for x in textwrap.wrap(
        msg.strip(),
        width=max(shutil.get_terminal_size()[0] - 6, 40),
        initial_indent="   ",
        subsequent_indent="   ",
    ):
        rich_print(x)
