"""
Transfer request data models for filekit.

This module defines the value objects that describe an intended file movement:
the transfer mode, the destination-exists policy, and the request itself.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransferMode(Enum):
    """Whether a transfer leaves the source in place."""
    COPY = "copy"
    MOVE = "move"


class OverwritePolicy(Enum):
    """What to do when the destination file already exists."""
    REJECT = "reject"
    OVERWRITE = "overwrite"
    PROMPT = "prompt"


class TransferRequest(BaseModel):
    """
    Describes one intended file movement.

    Attributes:
        source: Path of the file to transfer
        destination: Target file path, or an existing directory to place the file in
        mode: COPY or MOVE
        overwrite_policy: How to resolve an existing destination file
        preserve_permissions: Apply the source's mode bits to the copied file
    """

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., min_length=1, description="Source file path")
    destination: str = Field(..., min_length=1, description="Destination path")
    mode: TransferMode = Field(TransferMode.COPY, description="Copy or move")
    overwrite_policy: OverwritePolicy = Field(OverwritePolicy.REJECT,
                                              description="Destination-exists policy")
    preserve_permissions: bool = Field(True, description="Copy mode bits to the destination")

    @field_validator('source', 'destination')
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Reject blank paths and expand the user directory."""
        if not v or not v.strip():
            raise ValueError("Path cannot be empty")
        if v.startswith('~'):
            return str(Path(v).expanduser())
        return v

    @field_validator('mode', mode='before')
    @classmethod
    def validate_mode(cls, v) -> TransferMode:
        """Accept mode names as strings."""
        if isinstance(v, str):
            try:
                return TransferMode(v.lower())
            except ValueError:
                raise ValueError(f"Invalid transfer mode: {v}")
        return v

    @field_validator('overwrite_policy', mode='before')
    @classmethod
    def validate_policy(cls, v) -> OverwritePolicy:
        """Accept policy names as strings."""
        if isinstance(v, str):
            try:
                return OverwritePolicy(v.lower())
            except ValueError:
                raise ValueError(f"Invalid overwrite policy: {v}")
        return v

    @property
    def is_move(self) -> bool:
        return self.mode is TransferMode.MOVE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['mode'] = self.mode.value
        data['overwrite_policy'] = self.overwrite_policy.value
        return data

    def __str__(self) -> str:
        return f"{self.mode.value} {self.source} -> {self.destination}"


class TransferState(Enum):
    """Lifecycle states of a single transfer."""
    PENDING = "pending"
    VALIDATING = "validating"
    RESOLVING_CONFLICT = "resolving_conflict"
    TRANSFERRING = "transferring"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class TransferStatus(Enum):
    """Final outcome of a single transfer."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    PARTIAL_MOVE = "partial_move"


class TransferOutcome(BaseModel):
    """
    Result of executing one TransferRequest.

    Attributes:
        request: The request that was executed
        destination: Final resolved destination path (None if never resolved)
        status: Final status
        history: States the transfer passed through, in order
        error_kind: Name of the error class for failures and partial moves
        message: Human-readable description of the failure or cancellation
        remediation: Advisory hint from the permission validator, if any
    """

    request: TransferRequest = Field(..., description="Executed request")
    destination: Optional[str] = Field(None, description="Resolved destination path")
    status: TransferStatus = Field(..., description="Final status")
    history: List[TransferState] = Field(default_factory=list, description="State history")
    error_kind: Optional[str] = Field(None, description="Error class name")
    message: str = Field("", description="Failure or cancellation message")
    remediation: str = Field("", description="Remediation hint")

    @property
    def succeeded(self) -> bool:
        return self.status is TransferStatus.COMPLETED

    @property
    def source(self) -> str:
        return self.request.source

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'request': self.request.to_dict(),
            'destination': self.destination,
            'status': self.status.value,
            'history': [state.value for state in self.history],
            'error_kind': self.error_kind,
            'message': self.message,
            'remediation': self.remediation,
        }

    def __str__(self) -> str:
        target = self.destination or self.request.destination
        line = f"[{self.status.value}] {self.request.source} -> {target}"
        if self.message:
            line += f": {self.message}"
        return line


class TransferReport(BaseModel):
    """
    Aggregated per-entry outcomes of one or more transfers.

    The report is append-only; outcomes are added by a single writer in the
    order the requests were issued.
    """

    outcomes: List[TransferOutcome] = Field(default_factory=list, description="Per-entry outcomes")

    def add(self, outcome: TransferOutcome) -> None:
        """Append an outcome to the report."""
        self.outcomes.append(outcome)

    def extend(self, other: 'TransferReport') -> None:
        """Append all outcomes of another report."""
        self.outcomes.extend(other.outcomes)

    def _count(self, status: TransferStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return self._count(TransferStatus.COMPLETED)

    @property
    def skipped(self) -> int:
        return self._count(TransferStatus.CANCELLED)

    @property
    def failed(self) -> int:
        return self._count(TransferStatus.FAILED)

    @property
    def partial(self) -> int:
        return self._count(TransferStatus.PARTIAL_MOVE)

    @property
    def ok(self) -> bool:
        """True if nothing failed and no move was left partial."""
        return self.failed == 0 and self.partial == 0

    def failures(self) -> List[TransferOutcome]:
        """Outcomes that failed or left a partial move behind."""
        return [
            outcome for outcome in self.outcomes
            if outcome.status in (TransferStatus.FAILED, TransferStatus.PARTIAL_MOVE)
        ]

    def summary(self) -> str:
        """One-line count of succeeded, skipped and failed transfers."""
        line = f"{self.succeeded} succeeded, {self.skipped} skipped, {self.failed} failed"
        if self.partial:
            line += f", {self.partial} partially moved (source left in place)"
        return line

    def format_failures(self) -> str:
        """Detailed listing of failures with remediation hints where available."""
        lines = []
        for outcome in self.failures():
            kind = outcome.error_kind or outcome.status.value
            lines.append(f"- {outcome.request.source}: {kind}: {outcome.message}")
            if outcome.remediation:
                lines.append(f"  hint: {outcome.remediation}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'outcomes': [outcome.to_dict() for outcome in self.outcomes],
            'succeeded': self.succeeded,
            'skipped': self.skipped,
            'failed': self.failed,
            'partial': self.partial,
            'summary': self.summary(),
        }

    def __str__(self) -> str:
        return self.summary()
