# ABOUTME: Formats fatal exceptions into a single user-facing message
# ABOUTME: Keeps the CLI free of per-exception message plumbing

from core.config import ConfigError
from core.partitioner import InsufficientIpsError
from core.sqlite_database import AccessDatabaseError, StorageUnavailableError, WriteError


def format_user_error(error: BaseException) -> str:
    """Render an exception as the one-line message shown before exiting.

    Args:
        error: Exception that aborted the run

    Returns:
        Human readable message
    """
    if isinstance(error, ConfigError):
        return f"Invalid options: {error}"
    if isinstance(error, StorageUnavailableError):
        return f"Database unavailable: {error}"
    if isinstance(error, WriteError):
        return f"Failed to write to the database (rows written so far are kept): {error}"
    if isinstance(error, AccessDatabaseError):
        return f"Database error: {error}"
    if isinstance(error, InsufficientIpsError):
        return str(error)
    if isinstance(error, FileNotFoundError):
        return f"File not found: {error.filename or error}"
    if isinstance(error, OSError):
        return f"I/O error: {error}"
    return f"Unexpected error: {error.__class__.__name__}: {error}"
