"""
Standard exit codes and error types for gitqueue commands.

Following Unix/POSIX conventions for command-line tools. Every failure a
queue operation can report is a CommandError subclass carrying its own
exit code, so the CLI layer can map it without inspecting messages.
"""

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NOT_A_REPOSITORY = 64    # Target directory is not a git working tree
LOG_READ_ERROR = 65      # git log failed for a reason other than "no commits yet"
CONFIG_ERROR = 66        # Configuration file error
JOB_ALREADY_PENDING = 67 # create-job while a job is pending
NO_PENDING_JOB = 68      # mark-job-as-done with nothing pending
PUBLISH_REJECTED = 69    # Remote refused the pushed commit
DATA_ERROR = 70          # Data format or validation error
UNRECOGNIZED_EVENT = 71  # Commit classified as a queue message but matching no kind
GPG_ERROR = 72           # gpg / gpg-agent failure
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': GENERAL_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: Exception) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class NotARepositoryError(CommandError):
    """Raised when the queue directory is not a git repository."""
    def __init__(self, repo_dir: str):
        super().__init__(f"Invalid git dir: {repo_dir}", NOT_A_REPOSITORY)
        self.repo_dir = repo_dir


class LogReadError(CommandError):
    """Raised when the commit log cannot be read."""
    def __init__(self, message: str):
        super().__init__(message, LOG_READ_ERROR)


class JobAlreadyPendingError(CommandError):
    """Raised when creating a job while another one is still pending."""
    def __init__(self, commit_hash: str):
        super().__init__(
            f"Can't create a new job. There is already a pending job in commit: {commit_hash}",
            JOB_ALREADY_PENDING,
        )
        self.commit_hash = commit_hash


class NoPendingJobError(CommandError):
    """Raised when marking a job as done while no job is pending."""
    def __init__(self):
        super().__init__("Can't mark job as done. There isn't any pending job", NO_PENDING_JOB)


class PublishRejectedError(CommandError):
    """
    Raised when the remote refuses a push.

    The local branch now holds a commit the remote does not have. Callers
    should re-clone or reset and retry the whole operation.
    """
    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message, PUBLISH_REJECTED)
        self.stderr = stderr


class UnrecognizedEventError(CommandError):
    """Raised when a commit routed to the queue matches no message kind."""
    def __init__(self, commit_hash: str):
        super().__init__(f"Invalid queue message in commit: {commit_hash}", UNRECOGNIZED_EVENT)
        self.commit_hash = commit_hash


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class GpgError(CommandError):
    """Raised when gpg or gpg-connect-agent reports a failure."""
    def __init__(self, message: str):
        super().__init__(message, GPG_ERROR)
