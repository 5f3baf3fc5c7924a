"""
Permission check data models for filekit.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class PermissionOperation(Enum):
    """Capability being probed."""
    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"


class PermissionFailure(Enum):
    """Classification of a failed capability probe."""
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    OTHER = "other"


class PermissionCheckResult(BaseModel):
    """
    Outcome of a single capability probe.

    Attributes:
        path: Path that was probed
        operation: Capability that was probed
        granted: Whether the capability is available
        remediation: Advisory hint for fixing a denial (empty if granted)
        failure: Classification of the failure (None if granted)
        detail: Underlying OS error text, if any
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Probed path")
    operation: PermissionOperation = Field(..., description="Probed capability")
    granted: bool = Field(..., description="Whether the capability is available")
    remediation: str = Field("", description="Advisory remediation hint")
    failure: Optional[PermissionFailure] = Field(None, description="Failure classification")
    detail: str = Field("", description="Underlying error text")

    def __bool__(self) -> bool:
        return self.granted

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['operation'] = self.operation.value
        data['failure'] = self.failure.value if self.failure else None
        return data

    def __str__(self) -> str:
        if self.granted:
            return f"{self.operation.value} granted: {self.path}"
        return f"{self.operation.value} denied ({self.failure.value}): {self.path}"
