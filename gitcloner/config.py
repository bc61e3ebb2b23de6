#!/usr/bin/env python3

import os
import re
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .paths import expand_path
from .platform_info import OSType, default_clone_dir


SCRIPT_NAME = "gitcloner"
CONFIG_FILENAME = "config.conf"
REPO_LIST_FILENAME = "repositories.txt"

VERBOSITY_NAMES = {
    "FATAL": 0,
    "ERROR": 1,
    "WARNING": 2,
    "INFO": 3,
    "DEBUG": 4,
}

_KEY_RE = re.compile(r'^[A-Z_][A-Z0-9_]*$')
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def default_log_dir(home: Optional[Path] = None, today: Optional[datetime] = None) -> Path:
    """Default per-day log directory: ~/logs/gitcloner/logs_YYYYMMDD."""
    home = Path(home) if home is not None else Path.home()
    today = today or datetime.now()
    return home / "logs" / SCRIPT_NAME / f"logs_{today:%Y%m%d}"


@dataclass(frozen=True)
class Configuration:
    """
    Run configuration.

    Built once at startup from defaults, the optional config file and the
    command line; read-only afterwards.
    """
    clone_dir: Path
    log_dir: Path
    verbosity: int = 3
    max_retries: int = 1
    retry_delay: float = 1.0
    max_log_size_mb: int = 10
    max_log_files: int = 30
    run_setup_scripts: bool = True
    repo_list_file: Optional[Path] = None
    include_patterns: Tuple[str, ...] = ()
    exclude_patterns: Tuple[str, ...] = ()
    entry_delay: float = 1.0
    dry_run: bool = False
    config_path: Optional[Path] = None
    os_type: OSType = OSType.UNKNOWN

    def with_overrides(self, **overrides) -> 'Configuration':
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def get_default_config(os_type: OSType, home: Optional[Path] = None) -> Configuration:
    """Get default configuration for a platform."""
    return Configuration(
        clone_dir=default_clone_dir(os_type, home),
        log_dir=default_log_dir(home),
        os_type=os_type,
    )


def get_config_path(repo_list_file: Optional[Path] = None) -> Path:
    """Get the path to the configuration file.

    Checks in order:
    1. GITCLONER_CONFIG environment variable
    2. config.conf beside the repository list file
    3. config.conf in the current directory
    """
    if os.environ.get('GITCLONER_CONFIG'):
        return Path(os.environ['GITCLONER_CONFIG']).expanduser()

    if repo_list_file is not None:
        return Path(repo_list_file).expanduser().resolve().parent / CONFIG_FILENAME

    return Path.cwd() / CONFIG_FILENAME


# ----------------------------------------------------------------------------
# Value parsers. Each returns the parsed value or raises ValueError.
# ----------------------------------------------------------------------------

def _parse_verbosity(value: str, base_dir: Path) -> int:
    if value.upper() in VERBOSITY_NAMES:
        return VERBOSITY_NAMES[value.upper()]
    level = int(value)
    if not 0 <= level <= 4:
        raise ValueError("must be between 0 and 4")
    return level


def _parse_positive_int(value: str, base_dir: Path) -> int:
    number = int(value)
    if number < 1:
        raise ValueError("must be >= 1")
    return number


def _parse_delay(value: str, base_dir: Path) -> float:
    seconds = float(value)
    if seconds < 0:
        raise ValueError("must be >= 0")
    return seconds


def _parse_bool(value: str, base_dir: Path) -> bool:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError("must be true or false")


def _parse_path(value: str, base_dir: Path) -> Path:
    if not value:
        raise ValueError("must not be empty")
    return expand_path(value, base_dir)


def _parse_patterns(value: str, base_dir: Path) -> Tuple[str, ...]:
    return tuple(value.split())


# Config key -> (Configuration field, parser)
CONFIG_KEYS: Dict[str, Tuple[str, Callable[[str, Path], object]]] = {
    "VERBOSITY": ("verbosity", _parse_verbosity),
    "MAX_RETRIES": ("max_retries", _parse_positive_int),
    "RETRY_DELAY": ("retry_delay", _parse_delay),
    "CLONE_DELAY": ("retry_delay", _parse_delay),
    "LOG_DIR": ("log_dir", _parse_path),
    "MAX_LOG_SIZE_MB": ("max_log_size_mb", _parse_positive_int),
    "MAX_LOG_FILES": ("max_log_files", _parse_positive_int),
    "CLONE_DIR": ("clone_dir", _parse_path),
    "RUN_SETUP_SCRIPTS": ("run_setup_scripts", _parse_bool),
    "REPO_LIST_FILE": ("repo_list_file", _parse_path),
    "INCLUDE_PATTERNS": ("include_patterns", _parse_patterns),
    "EXCLUDE_PATTERNS": ("exclude_patterns", _parse_patterns),
}


def _unquote(value: str) -> str:
    """Strip matching quotes, or a trailing ' # comment' from an unquoted value."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    if ' #' in value:
        value = value.split(' #', 1)[0].rstrip()
    return value


def parse_config_lines(lines, base_dir: Path) -> Tuple[Dict[str, object], List[str]]:
    """
    Parse KEY=VALUE lines into Configuration field values.

    Lines are never evaluated. Unknown keys, malformed lines and invalid
    values are reported in the returned warnings and otherwise ignored.

    Args:
        lines: Iterable of raw lines
        base_dir: Directory used for ${SCRIPT_DIR} and relative paths

    Returns:
        Tuple of (field values, warnings)
    """
    values: Dict[str, object] = {}
    warnings: List[str] = []

    for line_number, raw in enumerate(lines, 1):
        line = raw.strip()
        if not line or line.startswith('#'):
            continue

        if line.startswith('export '):
            line = line[len('export '):].lstrip()

        if '=' not in line:
            warnings.append(f"Ignoring malformed config line {line_number}: {line}")
            continue

        key, value = line.split('=', 1)
        key = key.strip()
        value = _unquote(value.strip())

        if not _KEY_RE.match(key):
            warnings.append(f"Ignoring malformed config line {line_number}: {line}")
            continue

        if key not in CONFIG_KEYS:
            warnings.append(f"Unknown config option on line {line_number}: {key}")
            continue

        field_name, parser = CONFIG_KEYS[key]
        try:
            values[field_name] = parser(value, base_dir)
        except ValueError as e:
            warnings.append(f"Invalid value for {key} on line {line_number}: {value!r} ({e})")

    return values, warnings


def resolve_config(
    config_path: Path,
    os_type: OSType,
    write_example: bool = True,
    home: Optional[Path] = None,
) -> Tuple[Configuration, List[str]]:
    """
    Load configuration from file.

    A missing file is not an error: defaults are returned and a commented
    template is written to ``<config_path>.example``.

    Warnings are returned rather than logged because this runs before the
    log files exist.

    Args:
        config_path: Path of the KEY=VALUE config file
        os_type: Detected platform, used for the default clone directory
        write_example: Write the template when the file is missing
        home: Home directory override (tests)

    Returns:
        Tuple of (Configuration, warnings)
    """
    config_path = Path(config_path).expanduser()
    config = replace(get_default_config(os_type, home), config_path=config_path)

    if not config_path.is_file():
        warnings: List[str] = []
        if write_example:
            try:
                generate_config_example(config_path)
            except OSError as e:
                warnings.append(f"Could not write sample configuration {config_path}.example: {e}")
        return config, warnings

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            values, warnings = parse_config_lines(f, config_path.resolve().parent)
    except (OSError, UnicodeDecodeError) as e:
        return config, [f"Could not read configuration {config_path}: {e}"]

    return replace(config, **values), warnings


CONFIG_EXAMPLE = """\
# ============================================================================
# gitcloner configuration file
# ============================================================================
# Copy this file to config.conf and uncomment the options you want to change.
# Format: KEY=VALUE, one per line. Lines starting with # are comments.
# Values are read literally; nothing in this file is executed.

# Verbosity level: 0=FATAL, 1=ERROR, 2=WARNING, 3=INFO, 4=DEBUG
# VERBOSITY=3

# Maximum clone attempts per repository
# MAX_RETRIES=1

# Delay between clone attempts (in seconds)
# RETRY_DELAY=1

# Log directory
# LOG_DIR=~/logs/gitcloner

# Maximum log file size in MB before rotation
# MAX_LOG_SIZE_MB=10

# Maximum number of rotated log files to keep
# MAX_LOG_FILES=30

# Override the OS-specific clone directory
# CLONE_DIR=${SCRIPT_DIR}/repos

# Repository list file used when none is given on the command line
# REPO_LIST_FILE=${SCRIPT_DIR}/repositories.txt

# Run setup.sh after a fresh clone if the repository has one (true/false)
# RUN_SETUP_SCRIPTS=true

# Space-separated glob patterns matched against the URL or target directory
# INCLUDE_PATTERNS=""
# EXCLUDE_PATTERNS="*test* *demo*"
"""


def generate_config_example(config_path: Path) -> Path:
    """Write the commented configuration template beside ``config_path``."""
    example_path = Path(f"{config_path}.example")
    example_path.parent.mkdir(parents=True, exist_ok=True)
    example_path.write_text(CONFIG_EXAMPLE, encoding='utf-8')
    return example_path
