"""
Post-clone setup hook.

A freshly cloned repository may carry a ``setup.sh`` at its root; when it
does, it is run with ``bash`` (else ``sh``) from inside the repository.
"""

import shutil
import subprocess
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)

SETUP_SCRIPT_NAMES = ("setup.sh",)


def find_setup_script(repo_dir: Path) -> Optional[Path]:
    """Return the recognized setup script at the repository root, if any."""
    for name in SETUP_SCRIPT_NAMES:
        candidate = Path(repo_dir) / name
        if candidate.is_file():
            return candidate
    return None


def run_setup_script(script: Path, timeout: Optional[int] = None) -> bool:
    """
    Run a setup script from its own directory.

    Args:
        script: Path to the script
        timeout: Seconds before the script is abandoned (default: none)

    Returns:
        True if the script exited with status 0
    """
    shell = shutil.which("bash") or shutil.which("sh")
    if not shell:
        logger.warning(f"No shell available to run {script}")
        return False

    logger.debug(f"Running command in '{script.parent}': {shell} {script.name}")
    try:
        result = subprocess.run(
            [shell, script.name],
            cwd=str(script.parent),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            stdin=subprocess.DEVNULL,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"Setup script timed out: {script}")
        return False
    except OSError as e:
        logger.warning(f"Could not run setup script {script}: {e}")
        return False

    if result.stdout and result.stdout.strip():
        logger.debug(result.stdout.strip())
    if result.returncode != 0 and result.stderr and result.stderr.strip():
        logger.debug(result.stderr.strip())
    return result.returncode == 0
