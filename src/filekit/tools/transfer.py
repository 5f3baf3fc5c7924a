"""
Transfer engine for filekit.

This module copies and moves files, either one request at a time or as a
filtered batch re-rooted under a destination directory. Every request passes
through validation (with permission pre-flight checks), optional conflict
resolution, and the transfer itself. Copies are streamed into a temporary
sibling file that atomically replaces the destination. Moves try an atomic
rename first and fall back to copy-then-delete across filesystems; a failed
delete after a successful copy is reported as a partial move, never as success.
"""

import errno
import logging
import os
import shutil
import sys
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, TextIO, Union

from ..errors import (
    DestinationExistsError,
    FileKitError,
    FilesystemError,
    NotFoundError,
    PartialMoveError,
)
from ..models.config import EngineConfig
from ..models.entry import Entry
from ..models.filter_spec import FilterSpec
from ..models.transfer import (
    OverwritePolicy,
    TransferMode,
    TransferOutcome,
    TransferReport,
    TransferRequest,
    TransferState,
    TransferStatus,
)
from .path_filter import select_entries
from .permissions import PermissionValidator
from .walker import TreeWalker


logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]

TEMP_SUFFIX = '.filekit-part'


class TransferEngine:
    """
    Executes copy and move requests.

    The engine keeps no state between calls. Batch reports are written only
    by the calling thread, even when transfers run on a worker pool.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 confirm: Optional[ConfirmCallback] = None,
                 validator: Optional[PermissionValidator] = None,
                 walker: Optional[TreeWalker] = None,
                 output: Optional[TextIO] = None):
        """
        Initialize the transfer engine.

        Args:
            config: Engine configuration
            confirm: Callback asked "overwrite?" questions under the PROMPT policy
            validator: Permission validator used for pre-flight checks
            walker: Tree walker used to expand batches
            output: Sink for verbose progress lines (stdout if None)
        """
        self.config = config or EngineConfig()
        self.confirm = confirm
        self.validator = validator or PermissionValidator(self.config)
        self.walker = walker or TreeWalker()
        self.output = output

    def execute(self, request: TransferRequest) -> TransferReport:
        """
        Execute a single transfer request.

        Args:
            request: The transfer to perform

        Returns:
            TransferReport holding exactly one outcome
        """
        report = TransferReport()
        outcome = self._execute_one(request)
        self._record(report, outcome)
        return report

    def execute_batch(self, source_root: str, destination_root: str, spec: FilterSpec,
                      mode: TransferMode = TransferMode.COPY,
                      overwrite_policy: Optional[OverwritePolicy] = None,
                      preserve_permissions: Optional[bool] = None) -> TransferReport:
        """
        Transfer every file under a source root that matches a filter spec.

        Each matching file is re-rooted under the destination root by its path
        relative to the source root. A failure on one file is recorded and
        does not stop the rest of the batch.

        Args:
            source_root: Directory to expand
            destination_root: Directory receiving the re-rooted files
            spec: Filter predicates (including recursion) selecting files
            mode: COPY or MOVE
            overwrite_policy: Destination-exists policy (config default if None)
            preserve_permissions: Copy mode bits (config default if None)

        Returns:
            TransferReport with one outcome per selected file, in walk order

        Raises:
            RootUnavailableError: If the source root cannot be read
        """
        policy = overwrite_policy or self.config.default_overwrite_policy
        preserve = self.config.preserve_permissions if preserve_permissions is None else preserve_permissions
        destination_root = os.path.abspath(os.path.expanduser(str(destination_root)))

        logger.info(f"Batch {mode.value}: {source_root} -> {destination_root} ({spec})")

        # Materialise first so moves never disturb the walk.
        entries = list(select_entries(source_root, spec, self.walker))

        planned: List[Union[TransferRequest, TransferOutcome]] = []
        for entry in entries:
            if entry.is_directory and entry.ok:
                continue
            request = TransferRequest(
                source=entry.path,
                destination=os.path.join(destination_root, *entry.relative_path.split('/')),
                mode=mode,
                overwrite_policy=policy,
                preserve_permissions=preserve,
            )
            if entry.error is not None:
                planned.append(_unreadable_outcome(request, entry))
            else:
                planned.append(request)

        report = TransferReport()
        for outcome in self._run_all(planned, policy):
            self._record(report, outcome)

        logger.info(f"Batch {mode.value} finished: {report.summary()}")
        return report

    def _run_all(self, planned: List[Union[TransferRequest, TransferOutcome]],
                 policy: OverwritePolicy) -> List[TransferOutcome]:
        requests = {i: item for i, item in enumerate(planned) if isinstance(item, TransferRequest)}
        workers = self.config.max_workers

        if workers <= 1 or policy is OverwritePolicy.PROMPT or len(requests) <= 1:
            return [item if isinstance(item, TransferOutcome) else self._execute_one(item)
                    for item in planned]

        results: Dict[int, TransferOutcome] = {}
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(self._execute_one, request): i for i, request in requests.items()}
            for future in as_completed(futures):
                results[futures[future]] = future.result()

        return [results[i] if i in results else item for i, item in enumerate(planned)]

    def _execute_one(self, request: TransferRequest) -> TransferOutcome:
        history = [TransferState.PENDING]
        destination = None

        try:
            history.append(TransferState.VALIDATING)
            destination = self._validate(request)

            if os.path.lexists(destination):
                history.append(TransferState.RESOLVING_CONFLICT)
                if not self._resolve_conflict(request, destination):
                    history.append(TransferState.CANCELLED)
                    logger.info(f"Overwrite declined: {destination}")
                    return TransferOutcome(
                        request=request,
                        destination=destination,
                        status=TransferStatus.CANCELLED,
                        history=history,
                        message="Overwrite declined",
                    )

            history.append(TransferState.TRANSFERRING)
            source = os.path.abspath(request.source)
            if request.is_move:
                self._move(source, destination)
            else:
                self._copy(source, destination, request.preserve_permissions)

            history.append(TransferState.COMPLETED)
            logger.debug(f"{request.mode.value} completed: {source} -> {destination}")
            return TransferOutcome(
                request=request,
                destination=destination,
                status=TransferStatus.COMPLETED,
                history=history,
            )

        except PartialMoveError as e:
            history.append(TransferState.FAILED)
            logger.warning(str(e))
            return TransferOutcome(
                request=request,
                destination=destination,
                status=TransferStatus.PARTIAL_MOVE,
                history=history,
                error_kind=e.kind,
                message=e.message,
                remediation=e.remediation,
            )
        except FileKitError as e:
            history.append(TransferState.FAILED)
            logger.warning(f"{request.mode.value} failed for {request.source}: {e}")
            return TransferOutcome(
                request=request,
                destination=destination,
                status=TransferStatus.FAILED,
                history=history,
                error_kind=e.kind,
                message=e.message,
                remediation=e.remediation,
            )
        except OSError as e:
            history.append(TransferState.FAILED)
            logger.warning(f"{request.mode.value} failed for {request.source}: {e}")
            return TransferOutcome(
                request=request,
                destination=destination,
                status=TransferStatus.FAILED,
                history=history,
                error_kind=FilesystemError.__name__,
                message=str(e),
            )

    def _validate(self, request: TransferRequest) -> str:
        """
        Check the source, resolve and prepare the destination.

        Returns:
            Final destination file path
        """
        source = os.path.abspath(request.source)

        if not os.path.lexists(source):
            raise NotFoundError(f"Source does not exist: {source}", path=source,
                                operation=request.mode.value,
                                remediation="Check that the source path is spelled correctly")
        if os.path.isdir(source):
            raise FilesystemError(f"Source is a directory: {source}", path=source,
                                  operation=request.mode.value,
                                  remediation="Use a batch transfer to copy or move directory trees")

        self.validator.raise_for_result(self.validator.check_read(source))

        destination = os.path.abspath(os.path.expanduser(request.destination))
        if os.path.isdir(destination) or request.destination.endswith(('/', os.sep)):
            destination_dir = destination
            destination = os.path.join(destination, os.path.basename(source))
        else:
            destination_dir = os.path.dirname(destination)

        self._ensure_directory(destination_dir, request.mode.value)
        self.validator.raise_for_result(self.validator.check_write(destination_dir))

        if request.is_move:
            self.validator.raise_for_result(self.validator.check_write(os.path.dirname(source)))

        if os.path.isdir(destination):
            raise FilesystemError(f"Destination is a directory: {destination}", path=destination,
                                  operation=request.mode.value)
        if os.path.exists(destination) and os.path.samefile(source, destination):
            raise FilesystemError(f"Source and destination are the same file: {source}",
                                  path=destination, operation=request.mode.value)

        return destination

    def _ensure_directory(self, directory: str, operation: str) -> None:
        if os.path.isdir(directory):
            return
        try:
            os.makedirs(directory, exist_ok=True)
            logger.debug(f"Created destination directory: {directory}")
        except OSError as e:
            ancestor = directory
            while ancestor and not os.path.exists(ancestor):
                parent = os.path.dirname(ancestor)
                if parent == ancestor:
                    break
                ancestor = parent
            self.validator.raise_for_result(self.validator.check_write(ancestor))
            raise FilesystemError(f"Cannot create destination directory {directory}: {e}",
                                  path=directory, operation=operation) from e

    def _resolve_conflict(self, request: TransferRequest, destination: str) -> bool:
        policy = request.overwrite_policy

        if policy is OverwritePolicy.OVERWRITE:
            logger.debug(f"Overwriting existing destination: {destination}")
            return True

        if policy is OverwritePolicy.PROMPT:
            if self.confirm is None:
                raise DestinationExistsError(
                    f"Destination exists and no confirmation is available: {destination}",
                    path=destination, operation=request.mode.value,
                    remediation="Choose the overwrite policy or remove the existing file",
                )
            return bool(self.confirm(f"Overwrite {destination}?"))

        raise DestinationExistsError(
            f"Destination already exists: {destination}",
            path=destination, operation=request.mode.value,
            remediation="Use the overwrite or prompt policy to replace existing files",
        )

    def _move(self, source: str, destination: str) -> None:
        try:
            os.replace(source, destination)
            return
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise

        logger.info(f"Cross-device move, copying instead: {source} -> {destination}")
        self._copy(source, destination, preserve_permissions=True, preserve_times=True)

        try:
            os.remove(source)
        except OSError as e:
            raise PartialMoveError(
                f"Copied to {destination} but could not delete source {source}: {e.strerror or e}",
                path=source, operation='move',
                remediation=f"Both copies exist; remove '{source}' manually once the copy is verified",
            ) from e

    def _copy(self, source: str, destination: str, preserve_permissions: bool,
              preserve_times: bool = False) -> None:
        """Stream source into a temporary sibling and atomically replace the destination."""
        directory, name = os.path.split(destination)
        temp_path = os.path.join(directory, f".{name}.{uuid.uuid4().hex[:8]}{TEMP_SUFFIX}")

        try:
            fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, 'O_BINARY', 0), 0o666)
            with os.fdopen(fd, 'wb') as dst, open(source, 'rb') as src:
                shutil.copyfileobj(src, dst, self.config.copy_buffer_size)
            if preserve_times:
                shutil.copystat(source, temp_path)
            elif preserve_permissions:
                shutil.copymode(source, temp_path)
            os.replace(temp_path, destination)
        except BaseException:
            if os.path.lexists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError as cleanup_error:
                    logger.warning(f"Could not remove temporary file {temp_path}: {cleanup_error}")
            raise

    def _record(self, report: TransferReport, outcome: TransferOutcome) -> None:
        report.add(outcome)
        if not self.config.verbose:
            return
        output = self.output or sys.stdout
        if outcome.succeeded:
            output.write(f"{outcome.request.source} -> {outcome.destination}\n")
        else:
            output.write(f"{outcome}\n")


def _unreadable_outcome(request: TransferRequest, entry: Entry) -> TransferOutcome:
    return TransferOutcome(
        request=request,
        destination=request.destination,
        status=TransferStatus.FAILED,
        history=[TransferState.PENDING, TransferState.FAILED],
        error_kind=entry.error.kind,
        message=entry.error.message,
        remediation=entry.error.remediation,
    )
