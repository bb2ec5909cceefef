import json
import os
import sys
import click
from pathlib import Path
from rich import print
from rich.console import Console
from rich.table import Table

from datetime import date, datetime, timedelta

from tasknotes import __version__
from tasknotes.env import TasknotesEnvironment
from tasknotes.resolver import next_uncompleted_occurrence, occurrences_in_window
from tasknotes.rule import RuleParseError, parse_rule
from tasknotes.shared import (
    ERROR_COLOR,
    LABEL_COLOR,
    NEXT_COLOR,
    NEXT_SCHEDULED,
    REPEATING,
    STATE_TO_COLOR,
    format_date_range,
    format_day,
    format_time,
    log_msg,
    print_msg,
    truncate_string,
)
from tasknotes.task import Task
from tasknotes.workflow import toggle_complete, toggle_skipped


class _DateParam(click.ParamType):
    name = "date"

    def convert(self, value, param, ctx):
        if value is None:
            return None
        if isinstance(value, date):
            return value
        s = str(value).strip().lower()
        if s in ("today", "now"):
            return date.today()
        try:
            return datetime.strptime(s, "%Y-%m-%d").date()
        except ValueError:
            self.fail("Expected YYYY-MM-DD or 'today'", param, ctx)


_DATE = _DateParam()


def load_task(path: str) -> Task:
    """Read a task record from a JSON file, or from stdin when path is '-'."""
    if path == "-":
        raw = sys.stdin.read()
    else:
        raw = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{path}: not a JSON task record ({e})")
    if not isinstance(data, dict):
        raise click.ClickException(f"{path}: expected a JSON object")
    return Task.from_dict(data)


def save_task(path: str, task: Task):
    Path(path).write_text(
        json.dumps(task.to_dict(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


@click.group()
@click.version_option(
    __version__, prog_name="tasknotes", message="%(prog)s version %(version)s"
)
@click.option(
    "--home",
    help="Override the TaskNotes workspace directory (equivalent to setting $TASKNOTES_HOME).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, home, verbose):
    """TaskNotes recurrence – resolve recurring task occurrences."""
    if home:
        os.environ["TASKNOTES_HOME"] = (
            home  # Must be set before TasknotesEnvironment is instantiated
        )

    env = TasknotesEnvironment()
    env.ensure(init_config=True)
    config = env.load_config()

    ctx.ensure_object(dict)
    ctx.obj["ENV"] = env
    ctx.obj["CONFIG"] = config
    ctx.obj["VERBOSE"] = verbose


@cli.command("parse")
@click.argument("rule")
@click.pass_context
def parse_cmd(ctx, rule):
    """Show the fields of a recurrence RULE."""
    try:
        parsed = parse_rule(rule)
    except RuleParseError as e:
        print(f"[{ERROR_COLOR}]✘ Invalid rule[/{ERROR_COLOR}]: {e}")
        ctx.exit(1)

    print(f"[bold]{parsed.to_rrule_string()}[/bold]")
    table = Table(show_header=False)
    table.add_column("field", style=LABEL_COLOR)
    table.add_column("value")
    table.add_row("frequency", parsed.frequency.value)
    table.add_row("interval", str(parsed.interval))
    table.add_row("by day", ", ".join(parsed.by_day) or "-")
    table.add_row("by month day", ", ".join(map(str, parsed.by_month_day)) or "-")
    table.add_row("by month", ", ".join(map(str, parsed.by_month)) or "-")
    table.add_row("count", str(parsed.count) if parsed.count is not None else "-")
    table.add_row("until", str(parsed.until) if parsed.until else "-")
    table.add_row("dtstart", str(parsed.dtstart) if parsed.dtstart else "-")
    if not parsed.is_well_formed():
        table.add_row("note", f"[{ERROR_COLOR}]never fires[/{ERROR_COLOR}]")
    Console().print(table)


@cli.command("next")
@click.argument("task_file", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.pass_context
def next_cmd(ctx, task_file):
    """Print the next uncompleted occurrence of the task in TASK_FILE."""
    task = load_task(task_file)
    next_day = next_uncompleted_occurrence(task)
    if ctx.obj["VERBOSE"]:
        print_msg(
            f"anchor={task.recurrence_anchor.value} recurrence={task.recurrence!r} "
            f"scheduled={task.scheduled!r} completed={len(task.complete_instances)}"
        )
    click.echo(next_day.isoformat() if next_day else "none")


@cli.command("window")
@click.argument("task_file", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.option("--start", "start", type=_DATE, default="today", show_default=True)
@click.option("--end", "end", type=_DATE, default=None, help="Defaults to start + 6 days.")
@click.pass_context
def window_cmd(ctx, task_file, start, end):
    """List the occurrences of the task in TASK_FILE between START and END."""
    config = ctx.obj["CONFIG"]
    task = load_task(task_file)
    end = end or start + timedelta(days=6)
    if end < start:
        raise click.BadParameter("--end must not precede --start")

    occurrences = occurrences_in_window(task, start, end, config.recurrence)

    label = truncate_string(task.title or task_file, 40)
    table = Table(title=f"{label}: {format_date_range(start, end)}")
    table.add_column(" ", width=1)
    table.add_column("date", style=LABEL_COLOR)
    table.add_column("time")
    table.add_column("state")
    for occ in occurrences:
        flag = f"[{NEXT_COLOR}]{NEXT_SCHEDULED}[/{NEXT_COLOR}]" if occ.is_next_scheduled else REPEATING
        color = STATE_TO_COLOR[occ.state]
        time_str = (
            format_time(occ.start[11:16], config.display.ampm) if "T" in occ.start else ""
        )
        table.add_row(flag, format_day(occ.date), time_str, f"[{color}]{occ.state}[/{color}]")
    if not occurrences:
        log_msg(f"no occurrences for {task_file} in {start} .. {end}")
    Console().print(table)


def _apply_toggle(ctx, task_file, day, write, toggle):
    config = ctx.obj["CONFIG"]
    task = load_task(task_file)
    updated = toggle(task, day, config.recurrence.maintain_due_offset)
    if write:
        if task_file == "-":
            raise click.BadParameter("--write needs a file, not stdin")
        save_task(task_file, updated)
        print(f"[green]✔ Updated[/green] {task_file}: scheduled={updated.scheduled}")
    else:
        click.echo(json.dumps(updated.to_dict(), indent=2, ensure_ascii=False))


@cli.command("complete")
@click.argument("task_file", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.argument("day", type=_DATE)
@click.option("--write", is_flag=True, help="Write the updated record back to TASK_FILE.")
@click.pass_context
def complete_cmd(ctx, task_file, day, write):
    """Toggle completion of the occurrence on DAY."""
    _apply_toggle(ctx, task_file, day, write, toggle_complete)


@cli.command("skip")
@click.argument("task_file", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.argument("day", type=_DATE)
@click.option("--write", is_flag=True, help="Write the updated record back to TASK_FILE.")
@click.pass_context
def skip_cmd(ctx, task_file, day, write):
    """Toggle the skipped state of the occurrence on DAY."""
    _apply_toggle(ctx, task_file, day, write, toggle_skipped)


if __name__ == "__main__":
    cli()
