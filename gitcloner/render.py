"""
Rendering functions for gitcloner output.

The clone service returns outcomes; this module turns them into the final
summary text, a Rich table, or JSONL for piping.
"""

import getpass
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import SCRIPT_NAME, Configuration
from .domain import CloneOutcome, OutcomeStatus, RunContext
from .log import LogSession, verbosity_description

logger = logging.getLogger(__name__)

_STATUS_STYLES = {
    OutcomeStatus.SUCCESS: "green",
    OutcomeStatus.FAILURE: "red",
    OutcomeStatus.SKIPPED: "yellow",
}

RULE = "=" * 60


def list_directory(path: Path, limit: int = 50) -> List[str]:
    """
    List a directory's entries, directories marked with a trailing slash.

    Returns an empty list if the directory cannot be read.
    """
    try:
        children = sorted(Path(path).iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.debug(f"Cannot list {path}: {e}")
        return []

    lines = [f"{p.name}/" if p.is_dir() else p.name for p in children[:limit]]
    if len(children) > limit:
        lines.append(f"... (+{len(children) - limit} more)")
    return lines


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def format_summary(
    context: RunContext,
    config: Configuration,
    list_file: Optional[Path] = None,
    log_session: Optional[LogSession] = None,
    version: str = __version__,
    user: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Build the end-of-run summary.

    Args:
        context: Counters from the clone service
        config: Configuration the run used
        list_file: Repository list that was processed
        log_session: Active logging session, for the log file paths
        version: Version string shown in the header
        user: User name shown in the header (default: current user)
        now: Execution timestamp (default: now)

    Returns:
        Multi-line summary. Never raises; if the full summary cannot be
        built a minimal one with the counts is returned instead.
    """
    try:
        return _format_full_summary(context, config, list_file, log_session,
                                    version, user, now)
    except Exception as e:
        logger.warning(f"Could not build the full summary: {e}")
        return (f"Summary: {context.successful} succeeded, {context.failed} failed, "
                f"{context.skipped} skipped (of {context.total})")


def _format_full_summary(context, config, list_file, log_session, version, user, now) -> str:
    now = now or datetime.now()
    title = "Execution Summary (DRY RUN)" if context.dry_run else "Execution Summary"

    lines = [
        RULE,
        title,
        RULE,
        f"Script:             {SCRIPT_NAME} {version}",
        f"User:               {user or _current_user()}",
        f"Executed:           {now:%Y-%m-%d %H:%M:%S}",
        f"Duration:           {(now - context.started_at).total_seconds():.1f}s",
        f"Operating system:   {config.os_type.value}",
        f"Repository list:    {list_file if list_file else '-'}",
        f"Clone directory:    {config.clone_dir}",
        "",
        f"Total repositories: {context.total}",
        f"Successful:         {context.successful}",
        f"Skipped:            {context.skipped}",
        f"Failed:             {context.failed}",
    ]

    if log_session is not None:
        lines += [
            "",
            f"Main log:           {log_session.log_file}",
            f"Error log:          {log_session.error_log_file}",
        ]
    lines.append(f"Verbosity:          {config.verbosity} "
                 f"({verbosity_description(config.verbosity)})")

    if context.errors:
        lines += ["", "Errors:"]
        lines += [f"  - {error}" for error in context.errors]

    lines.append("")
    if context.dry_run:
        lines.append("Status: DRY RUN COMPLETE (nothing was changed)")
    elif context.success:
        lines.append("Status: COMPLETED SUCCESSFULLY")
    else:
        lines.append(f"Status: COMPLETED WITH {context.failed} FAILURE(S)")

    if config.verbosity >= 2:
        lines += ["", "Next steps:"]
        if context.dry_run:
            lines.append("  - Run again without --dry-run to apply these actions")
        if context.failed:
            where = log_session.error_log_file if log_session else "the error log"
            lines.append(f"  - Review failures in {where}")
            lines.append("  - Re-run to retry; existing checkouts will be updated")
        lines.append(f"  - Your repositories are in {config.clone_dir}")

    if config.verbosity >= 4:
        listing = list_directory(config.clone_dir)
        lines += ["", f"Contents of {config.clone_dir}:"]
        lines += [f"  {entry}" for entry in listing] or ["  (empty)"]

    lines.append(RULE)
    return "\n".join(lines)


def render_outcomes_table(outcomes: List[CloneOutcome], console: Optional[Console] = None) -> None:
    """
    Render per-repository outcomes as a Rich table.

    Args:
        outcomes: Outcomes in processing order
        console: Console to print on (default: stdout)
    """
    console = console or Console()

    if not outcomes:
        console.print("[yellow]No repositories processed.[/yellow]")
        return

    table = Table(
        title="Repositories",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Repository", style="cyan")
    table.add_column("Status")
    table.add_column("Action")
    table.add_column("Path", style="dim")
    table.add_column("Details")

    for index, outcome in enumerate(outcomes, 1):
        style = _STATUS_STYLES[outcome.status]
        details = outcome.error or ""
        if outcome.details.get('setup_script'):
            details = (details + " " if details else "") + f"setup.sh {outcome.details['setup_script']}"
        table.add_row(
            str(index),
            outcome.entry.target_name,
            f"[{style}]{outcome.status.value}[/{style}]",
            outcome.action,
            outcome.target,
            details,
        )

    console.print(table)


def emit_outcomes_jsonl(outcomes: Iterable[CloneOutcome], stream=None) -> None:
    """Write one JSON object per outcome."""
    stream = stream or sys.stdout
    for outcome in outcomes:
        print(json.dumps(outcome.to_dict(), ensure_ascii=False), file=stream, flush=True)
