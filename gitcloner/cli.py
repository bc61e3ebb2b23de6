#!/usr/bin/env python3
"""
Command-line entry point for gitcloner.

    gitcloner [OPTIONS] [REPOLIST]

Reads the repository list, clones or updates every entry into the clone
directory, and prints a summary. See ``gitcloner --help``.
"""

import json
import logging
import os
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional

import click
from rich.console import Console

from . import __version__
from .config import REPO_LIST_FILENAME, SCRIPT_NAME, Configuration, get_config_path, resolve_config
from .exit_codes import (
    GENERAL_ERROR, INTERRUPTED, SUCCESS, USAGE_ERROR,
    EmptyListError, FatalInitError, ListNotFoundError, ListReadError,
)
from .infra import GitClient
from .log import LogLevel, log, setup_logging, verbosity_description
from .paths import expand_path
from .platform_info import OSType, detect_os
from .render import emit_outcomes_jsonl, format_summary, render_outcomes_table
from .repo_list import parse_repo_list, write_sample_repo_list
from .services import CloneService, decline

logger = logging.getLogger(__name__)

INTERRUPT_SIGNALS = ("SIGINT", "SIGTERM", "SIGHUP")

GIT_INSTALL_HINTS = {
    OSType.LINUX: "Install it with your package manager, e.g. 'sudo apt install git' or 'sudo dnf install git'",
    OSType.MACOS: "Install it with 'xcode-select --install' or 'brew install git'",
    OSType.WINDOWS: "Install Git for Windows from https://git-scm.com/download/win",
    OSType.UNKNOWN: "See https://git-scm.com/downloads",
}


class Interrupted(KeyboardInterrupt):
    """Raised from the signal handler; carries the signal name."""

    def __init__(self, signame: str):
        super().__init__(signame)
        self.signame = signame


@contextmanager
def interrupt_signals():
    """Turn SIGINT, SIGTERM and SIGHUP into Interrupted while the block runs."""
    def handler(signum, frame):
        raise Interrupted(signal.Signals(signum).name)

    previous = {}
    for name in INTERRUPT_SIGNALS:
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        try:
            previous[signum] = signal.signal(signum, handler)
        except (ValueError, OSError) as e:
            # Only the main thread may install handlers
            logger.debug(f"Cannot install handler for {name}: {e}")
    try:
        yield
    finally:
        for signum, prior in previous.items():
            signal.signal(signum, prior)


def make_confirm(config: Configuration) -> Callable[[str], bool]:
    """
    Build the yes/no prompt used for destructive questions.

    Prompts only when stdin is a terminal and warnings are visible; otherwise
    every question is answered "no".
    """
    if config.verbosity < 2 or not sys.stdin.isatty():
        return decline

    def confirm(prompt: str) -> bool:
        try:
            return click.confirm(prompt, default=False, err=True)
        except click.Abort:
            raise KeyboardInterrupt() from None

    return confirm


def check_git(git: GitClient, config: Configuration) -> None:
    """Fail fast when git is missing (a dry run only warns)."""
    if git.is_available():
        logger.debug(f"Found {git.version() or 'git'}")
        return

    message = f"git is not installed or not on PATH. {GIT_INSTALL_HINTS[config.os_type]}"
    if config.dry_run:
        logger.warning(message)
        return
    raise FatalInitError(message)


def prepare_clone_dir(config: Configuration) -> None:
    """Create the clone directory and make sure it is writable."""
    clone_dir = config.clone_dir
    if config.dry_run:
        if not clone_dir.is_dir():
            logger.info(f"[DRY RUN] Would create clone directory: {clone_dir}")
        return

    if not clone_dir.is_dir():
        try:
            clone_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FatalInitError(f"Cannot create clone directory {clone_dir}: {e}") from e
        logger.info(f"Created clone directory: {clone_dir}")

    if not os.access(clone_dir, os.W_OK):
        raise FatalInitError(f"Clone directory is not writable: {clone_dir}")


def run(
    repo_list: Optional[Path] = None,
    dry_run: bool = False,
    retries: Optional[int] = None,
    log_dir: Optional[Path] = None,
    verbosity: Optional[int] = None,
    quiet: bool = False,
    config_file: Optional[Path] = None,
    output_json: bool = False,
    git_client: Optional[GitClient] = None,
    confirm: Optional[Callable[[str], bool]] = None,
) -> int:
    """
    Run one full clone pass and return the exit code.

    Args:
        repo_list: Repository list file (default: REPO_LIST_FILE, else ./repositories.txt)
        dry_run: Plan only
        retries: Override for MAX_RETRIES
        log_dir: Override for LOG_DIR
        verbosity: Override for VERBOSITY
        quiet: Force verbosity 0
        config_file: Configuration file (default: $GITCLONER_CONFIG, else beside the list)
        output_json: Emit outcomes as JSONL instead of a table
        git_client: GitClient to use (creates new if None)
        confirm: Prompt capability (default: interactive when on a terminal)
    """
    os_type = detect_os()
    if config_file is None:
        config_file = get_config_path(repo_list)
    config, warnings = resolve_config(config_file, os_type, write_example=not dry_run)

    list_file = Path(repo_list) if repo_list else (config.repo_list_file or Path.cwd() / REPO_LIST_FILENAME)
    config = config.with_overrides(
        verbosity=0 if quiet else verbosity,
        max_retries=retries,
        log_dir=expand_path(str(log_dir), Path.cwd()) if log_dir else None,
        repo_list_file=list_file,
        dry_run=dry_run,
    )

    try:
        session = setup_logging(config.log_dir, config.verbosity, config.max_log_size_mb,
                                config.max_log_files, SCRIPT_NAME, syslog=True)
    except FatalInitError as e:
        click.echo(f"{click.style('[FATAL]', fg='red', bold=True)} {e}", err=True)
        return e.exit_code

    exit_code = GENERAL_ERROR
    try:
        with interrupt_signals():
            exit_code = _run_logged(config, warnings, list_file, session, output_json,
                                    git_client, confirm)
    except KeyboardInterrupt as e:
        signame = e.signame if isinstance(e, Interrupted) else "SIGINT"
        logger.warning(f"Interrupted by signal {signame}")
        exit_code = INTERRUPTED
    except FatalInitError as e:
        log(LogLevel.FATAL, str(e))
        logger.debug("Stack trace:", exc_info=True)
        exit_code = e.exit_code
    finally:
        logger.info(f"Exiting with status {exit_code}")
        session.close()
    return exit_code


def _run_logged(config, warnings, list_file, session, output_json, git_client, confirm) -> int:
    for warning in warnings:
        logger.warning(warning)

    logger.info(f"Starting {SCRIPT_NAME} {__version__}")
    logger.info(f"Detected operating system: {config.os_type.value}")
    if config.config_path and config.config_path.is_file():
        logger.info(f"Loaded configuration from: {config.config_path}")
    else:
        logger.info(f"No configuration file at {config.config_path}, using defaults")
    logger.debug(f"Clone directory: {config.clone_dir}")
    logger.debug(f"Max retries: {config.max_retries}, retry delay: {config.retry_delay:g}s")
    logger.debug(f"Verbosity: {config.verbosity} ({verbosity_description(config.verbosity)})")
    if config.dry_run:
        logger.info("DRY RUN mode enabled - no changes will be made")

    confirm = confirm or make_confirm(config)
    git = git_client or GitClient(terminal_prompt=confirm is not decline)
    check_git(git, config)
    prepare_clone_dir(config)

    try:
        entries = parse_repo_list(list_file)
    except ListNotFoundError as e:
        logger.error(str(e))
        if config.dry_run:
            logger.info(f"[DRY RUN] Would create a sample repository list at {e.path}")
        else:
            try:
                write_sample_repo_list(Path(e.path))
            except OSError as write_error:
                logger.warning(f"Could not create sample repository list {e.path}: {write_error}")
        return e.exit_code
    except EmptyListError as e:
        logger.error(str(e))
        logger.info(f"Add repository URLs to {e.path} and run again")
        return e.exit_code
    except ListReadError as e:
        logger.error(str(e))
        logger.info(f"Check that {e.path} is readable and saved as UTF-8")
        return e.exit_code

    service = CloneService(config, git_client=git, confirm=confirm)
    outcomes = service.process(entries)
    context = service.last_result

    if output_json:
        emit_outcomes_jsonl(outcomes)
        click.echo(json.dumps(context.to_dict(), ensure_ascii=False))
    elif config.verbosity > 0:
        render_outcomes_table(outcomes, Console())
        click.echo(format_summary(context, config, list_file, session))

    logger.info(f"Completed: {context.successful} successful, {context.skipped} skipped, "
                f"{context.failed} failed")
    return SUCCESS if context.success else GENERAL_ERROR


class GitClonerCommand(click.Command):
    """Command whose usage errors exit with status 1."""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = USAGE_ERROR
            raise


@click.command(cls=GitClonerCommand, context_settings={'help_option_names': ['-h', '--help']})
@click.argument('repo_list', required=False, metavar='REPOLIST',
                type=click.Path(dir_okay=False, path_type=Path))
@click.option('--dry-run', '-d', is_flag=True,
              help='Show what would be done without cloning, updating or moving anything')
@click.option('--retries', '-r', type=click.IntRange(min=1), metavar='N',
              help='Clone attempts per repository (overrides MAX_RETRIES)')
@click.option('--log', '-l', 'log_dir', type=click.Path(file_okay=False, path_type=Path),
              metavar='DIR', help='Log directory (overrides LOG_DIR)')
@click.option('--verbose', '-v', 'verbosity', type=click.IntRange(0, 4), metavar='LEVEL',
              help='Terminal verbosity: 0=FATAL 1=ERROR 2=WARNING 3=INFO 4=DEBUG')
@click.option('--quiet', '-q', is_flag=True, help='Only show fatal errors (verbosity 0)')
@click.option('--config', '-c', 'config_file', type=click.Path(dir_okay=False, path_type=Path),
              metavar='PATH', help='Configuration file (default: config.conf beside REPOLIST)')
@click.option('--json', 'output_json', is_flag=True, help='Output per-repository results as JSONL')
@click.version_option(__version__, '--version', prog_name=SCRIPT_NAME)
def cli(repo_list, dry_run, retries, log_dir, verbosity, quiet, config_file, output_json):
    """gitcloner - Clone or update every repository in a list file.

    REPOLIST holds one repository per line: a URL optionally followed by a
    directory name. Blank lines and lines starting with # are ignored.

    \b
    Examples:
        # Clone everything in ./repositories.txt
        gitcloner
        # Preview with debug output
        gitcloner --dry-run -v 4 my-repos.txt
        # Three attempts per repository, logs in ./logs
        gitcloner -r 3 -l ./logs
    """
    sys.exit(run(
        repo_list=repo_list,
        dry_run=dry_run,
        retries=retries,
        log_dir=log_dir,
        verbosity=verbosity,
        quiet=quiet,
        config_file=config_file,
        output_json=output_json,
    ))


def main():
    cli()


if __name__ == "__main__":
    main()
