"""
Permission validator for filekit.

Probes read, write and traverse capability for a path by actually attempting
the operation, rather than trusting mode bits, and classifies failures as
permission denied, not found, or other. Every failed probe carries a
platform-aware remediation hint; hints are advisory and never change control
flow.
"""

import errno
import logging
import os
import sys
import tempfile
from typing import Optional

from ..errors import FilesystemError, NotFoundError, PermissionDeniedError
from ..models.config import EngineConfig
from ..models.permissions import PermissionCheckResult, PermissionFailure, PermissionOperation


logger = logging.getLogger(__name__)

_MODE_LETTERS = {
    PermissionOperation.READ: 'r',
    PermissionOperation.WRITE: 'w',
    PermissionOperation.EXECUTE: 'x',
}


class PermissionValidator:
    """
    Pre-flight capability checks for filesystem operations.

    The validator is stateless apart from its configuration and is safe to
    share between callers.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the permission validator.

        Args:
            config: Engine configuration (used for the write-probe file prefix)
        """
        self.config = config or EngineConfig()

    def check_read(self, path: str) -> PermissionCheckResult:
        """
        Check that a file can be opened for reading, or a directory enumerated.

        Args:
            path: File or directory to probe

        Returns:
            PermissionCheckResult for the READ operation
        """
        path = str(path)
        operation = PermissionOperation.READ
        try:
            if os.path.isdir(path):
                with os.scandir(path) as it:
                    next(it, None)
            else:
                with open(path, 'rb'):
                    pass
        except OSError as e:
            return self._denied(path, operation, _classify(e), e)

        return self._granted(path, operation)

    def check_write(self, directory: str) -> PermissionCheckResult:
        """
        Check that files can be created inside a directory.

        A uniquely named probe file is created and removed again.

        Args:
            directory: Directory to probe

        Returns:
            PermissionCheckResult for the WRITE operation
        """
        directory = str(directory)
        operation = PermissionOperation.WRITE

        if not os.path.exists(directory):
            return self._denied(directory, operation, PermissionFailure.NOT_FOUND,
                                detail="Directory does not exist")
        if not os.path.isdir(directory):
            return self._denied(directory, operation, PermissionFailure.OTHER,
                                detail="Path is not a directory")

        try:
            fd, probe_path = tempfile.mkstemp(prefix=self.config.probe_prefix, dir=directory)
        except OSError as e:
            failure = (PermissionFailure.NOT_FOUND if isinstance(e, FileNotFoundError)
                       else PermissionFailure.PERMISSION_DENIED)
            return self._denied(directory, operation, failure, e)

        try:
            os.close(fd)
            os.unlink(probe_path)
        except OSError as e:
            logger.warning(f"Could not remove write probe {probe_path}: {e}")
            return self._denied(directory, operation, PermissionFailure.PERMISSION_DENIED, e)

        return self._granted(directory, operation)

    def check_traverse(self, directory: str) -> PermissionCheckResult:
        """
        Check that a directory can be traversed (entries inside it reached).

        Args:
            directory: Directory to probe

        Returns:
            PermissionCheckResult for the EXECUTE operation
        """
        directory = str(directory)
        operation = PermissionOperation.EXECUTE

        if not os.path.exists(directory):
            return self._denied(directory, operation, PermissionFailure.NOT_FOUND,
                                detail="Directory does not exist")
        if not os.path.isdir(directory):
            return self._denied(directory, operation, PermissionFailure.OTHER,
                                detail="Path is not a directory")

        try:
            with os.scandir(directory) as it:
                child = next(it, None)
            if child is not None:
                os.stat(child.path, follow_symlinks=False)
                return self._granted(directory, operation)
        except PermissionError:
            # Unlistable directories may still be traversable.
            pass
        except OSError as e:
            return self._denied(directory, operation, _classify(e), e)

        if os.access(directory, os.X_OK):
            return self._granted(directory, operation)
        return self._denied(directory, operation, PermissionFailure.PERMISSION_DENIED,
                            detail="Search permission denied")

    def raise_for_result(self, result: PermissionCheckResult) -> None:
        """
        Raise the error matching a failed check; do nothing if it was granted.

        Raises:
            PermissionDeniedError, NotFoundError or FilesystemError
        """
        if result.granted:
            return

        message = f"{result.operation.value.capitalize()} check failed for {result.path}"
        if result.detail:
            message += f": {result.detail}"

        error_class = {
            PermissionFailure.PERMISSION_DENIED: PermissionDeniedError,
            PermissionFailure.NOT_FOUND: NotFoundError,
        }.get(result.failure, FilesystemError)

        raise error_class(message, path=result.path, operation=result.operation.value,
                          remediation=result.remediation)

    def _granted(self, path: str, operation: PermissionOperation) -> PermissionCheckResult:
        logger.debug(f"{operation.value} granted: {path}")
        return PermissionCheckResult(path=path, operation=operation, granted=True)

    def _denied(self, path: str, operation: PermissionOperation, failure: PermissionFailure,
                error: Optional[OSError] = None, detail: str = "") -> PermissionCheckResult:
        if error is not None and not detail:
            detail = error.strerror or str(error)
        read_only = error is not None and error.errno == errno.EROFS
        logger.debug(f"{operation.value} denied ({failure.value}): {path}: {detail}")
        return PermissionCheckResult(
            path=path,
            operation=operation,
            granted=False,
            failure=failure,
            detail=detail,
            remediation=remediation_hint(path, operation, failure, read_only=read_only),
        )


def _classify(error: OSError) -> PermissionFailure:
    if isinstance(error, PermissionError):
        return PermissionFailure.PERMISSION_DENIED
    if isinstance(error, FileNotFoundError):
        return PermissionFailure.NOT_FOUND
    return PermissionFailure.OTHER


def remediation_hint(path: str, operation: PermissionOperation, failure: PermissionFailure,
                     read_only: bool = False) -> str:
    """
    Build a human-readable hint for fixing a failed capability check.

    Args:
        path: Path that failed the check
        operation: Capability that was probed
        failure: Failure classification
        read_only: Whether the failure came from a read-only filesystem

    Returns:
        Advisory hint text
    """
    if failure is PermissionFailure.NOT_FOUND:
        if operation is PermissionOperation.WRITE:
            return f"Create the directory '{path}' first, or check the destination path for typos"
        return f"Check that '{path}' exists and that the path is spelled correctly"

    if read_only:
        return f"'{path}' is on a read-only filesystem; remount it read-write or choose another location"

    if failure is PermissionFailure.OTHER:
        return f"Check that '{path}' is accessible and that its filesystem is mounted"

    if sys.platform.startswith('win'):
        return (f"Grant your account {operation.value} access to '{path}' in its Security "
                "properties, or run the command from an elevated (Administrator) prompt")

    letter = _MODE_LETTERS[operation]
    if _owned_by_someone_else(path):
        return (f"'{path}' is owned by another user; ask the owner to run "
                f"'chmod o+{letter} {path}', take ownership with 'sudo chown $USER {path}', "
                "or rerun with sudo")
    return f"Add the missing permission with 'chmod u+{letter} {path}'"


def _owned_by_someone_else(path: str) -> bool:
    getuid = getattr(os, 'getuid', None)
    if getuid is None:
        return False
    try:
        return os.stat(path).st_uid != getuid()
    except OSError:
        return False
