"""
Standard exit codes and error taxonomy for repotimeline.

Following Unix/POSIX conventions for command-line tools. Every error the
core raises is a CommandError so the CLI can map it straight to an exit code.
"""
from typing import Dict, List, Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NOT_FOUND = 64           # Repository not found in the store
API_ERROR = 65           # Hosting API call failed
CONFIG_ERROR = 66        # Configuration file error
DATA_ERROR = 70          # Data format or validation error
PARTIAL_SUCCESS = 71     # Some branches succeeded, some failed
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'ConnectionError': API_ERROR,
    'TimeoutError': API_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    return EXCEPTION_EXIT_CODES.get(exc.__class__.__name__, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that carries the exit code a command should terminate with.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class InvalidReference(CommandError):
    """Raised when a repository reference cannot be parsed into owner/name."""
    def __init__(self, reference: str):
        super().__init__(f"Invalid repository reference: {reference!r}", USAGE_ERROR)
        self.reference = reference


class UpstreamUnavailable(CommandError):
    """Raised when the hosting API fails. Retryable by the caller."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, API_ERROR)
        self.status_code = status_code


class RepositoryNotFound(CommandError):
    """Raised when an operation names a repository the store does not know."""
    def __init__(self, repository: object):
        super().__init__(f"Repository not found: {repository}", NOT_FOUND)
        self.repository = repository


class MalformedEvent(CommandError):
    """Raised when a timeline event lacks a required field."""
    def __init__(self, message: str):
        super().__init__(message, DATA_ERROR)


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class PartialIngestionFailure(CommandError):
    """
    Raised when some branches were ingested and others failed.

    Work for the succeeded branches is already committed.
    """
    def __init__(
        self,
        repository_id: int,
        failed: Dict[str, str],
        succeeded: Optional[List[str]] = None,
    ):
        names = ', '.join(sorted(failed))
        super().__init__(
            f"Ingestion of repository {repository_id} failed for "
            f"{len(failed)} branch(es): {names}",
            PARTIAL_SUCCESS,
        )
        self.repository_id = repository_id
        self.failed = dict(failed)
        self.succeeded = list(succeeded or [])

    @property
    def failed_branches(self) -> List[str]:
        return list(self.failed)
