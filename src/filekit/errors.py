"""
Error taxonomy for the filekit engine.

Every error carries the offending path and the operation that was being
attempted, so the calling layer can map it to exit codes and user-facing text.
Structural errors (an unreadable walk root, invalid criteria) are raised;
per-entry errors are collected into reports instead.
"""

from typing import Optional


class FileKitError(Exception):
    """
    Base class for all engine errors.

    Attributes:
        path: Filesystem path the error relates to (may be empty)
        operation: Operation that was being attempted (e.g. 'walk', 'copy')
        remediation: Optional human-readable hint for fixing the problem
    """

    def __init__(self, message: str, path: str = "", operation: str = "",
                 remediation: str = ""):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path else ""
        self.operation = operation
        self.remediation = remediation

    @property
    def kind(self) -> str:
        """Short machine-friendly name of the error class."""
        return self.__class__.__name__

    def __str__(self) -> str:
        if self.path and self.path not in self.message:
            return f"{self.message} ({self.operation}: {self.path})"
        return self.message


class RootUnavailableError(FileKitError):
    """Raised when the root of a walk cannot be read. Aborts the walk."""


class EntryUnreadableError(FileKitError):
    """A single entry could not be read; attached to that entry, traversal continues."""


class DestinationExistsError(FileKitError):
    """The transfer destination already exists and the policy is REJECT."""


class PartialMoveError(FileKitError):
    """
    A cross-device move copied the data but could not delete the source.

    The destination holds a complete copy and the source still exists.
    """


class PermissionCheckError(FileKitError):
    """Base class for failures classified by the permission validator."""


class PermissionDeniedError(PermissionCheckError):
    """The operation is not permitted for the current user."""


class NotFoundError(PermissionCheckError):
    """The path does not exist."""


class FilesystemError(PermissionCheckError):
    """Any other filesystem failure that is neither a denial nor a missing path."""


class InvalidCriteriaError(FileKitError, ValueError):
    """Malformed size, date or pattern input, detected before any traversal."""

    def __init__(self, message: str, value: Optional[object] = None,
                 operation: str = "parse"):
        super().__init__(message, operation=operation)
        self.value = value
