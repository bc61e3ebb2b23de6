"""
Standard exit codes for gitcloner.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # Init failure, unreadable list, or a failed repository
USAGE_ERROR = 1          # Unknown option or bad value (usage printed to stderr)
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT) or SIGTERM/SIGHUP


class CommandError(Exception):
    """
    Exception that carries the exit code the driver should terminate with.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class FatalInitError(CommandError):
    """Raised when logging or run setup fails; nothing has been processed yet."""
    def __init__(self, message: str):
        super().__init__(message, GENERAL_ERROR)


class RecoverableInputError(CommandError):
    """
    Raised for missing or unusable input that the driver handles itself.

    The run still ends with a non-zero code, but a sample file may have been
    written so the next run can succeed.
    """
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, GENERAL_ERROR)
        self.path = path


class ListNotFoundError(RecoverableInputError):
    """Raised when the repository list file does not exist."""
    def __init__(self, path: str):
        super().__init__(f"Repository list file not found: {path}", path)


class EmptyListError(RecoverableInputError):
    """Raised when no valid repository remains after parsing the list."""
    def __init__(self, path: str):
        super().__init__(f"No valid repositories found in {path}", path)


class ListReadError(RecoverableInputError):
    """Raised when the repository list exists but cannot be read or decoded."""
    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read repository list {path}: {reason}", path)

