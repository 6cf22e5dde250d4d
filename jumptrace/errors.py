"""Error taxonomy for indexing, configuration, and navigation failures.

Lookup misses are deliberately absent: a missing index entry is a silent no-op.
"""

from __future__ import annotations


class JumpTraceError(Exception):
    """Base class for every error raised by jumptrace."""


class ConfigurationError(JumpTraceError):
    """Configuration cannot be used (bad regex, unresolved workspace path).

    Raising this sets the sticky configuration-error flag on the sync context
    until a reload succeeds.
    """


class NotFoundError(JumpTraceError):
    """A reference file or referenced source file does not exist."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        message = f"Failed to read file: {path}"
        if reason:
            message = f"{message} - {reason}"
        super().__init__(message)


class ReferenceFileNotFound(NotFoundError):
    """The configured reference file is missing or unreadable."""


class NavigationFailure(JumpTraceError):
    """The editor host could not open or show a file.

    The message names only the path; callers add the user-facing prefix.
    """

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        message = path
        if reason:
            message = f"{message} - {reason}"
        super().__init__(message)


__all__ = [
    "ConfigurationError",
    "JumpTraceError",
    "NavigationFailure",
    "NotFoundError",
    "ReferenceFileNotFound",
]
