"""
Entry data model for filekit.

An Entry is one filesystem object discovered during a walk. Entries are
constructed by the tree walker, are immutable, and are never persisted.
"""

import os
import stat
from datetime import datetime
from pathlib import PurePath
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import EntryUnreadableError


class Entry(BaseModel):
    """
    One filesystem object (file or directory) discovered during traversal.

    Attributes:
        path: Absolute path of the entry
        relative_path: POSIX-style path relative to the walk root
        name: Base name of the entry
        size: Size in bytes (0 for directories)
        mode: Raw st_mode bits (permissions and type)
        modified_at: Last modification timestamp
        is_directory: Whether the entry is a directory
        is_symlink: Whether the entry itself is a symbolic link
        error: Recoverable read error attached to this entry, if any
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str = Field(..., min_length=1, description="Absolute path of the entry")
    relative_path: str = Field(..., min_length=1, description="Path relative to the walk root")
    name: str = Field(..., min_length=1, description="Base name")
    size: int = Field(0, ge=0, description="Size in bytes")
    mode: int = Field(0, ge=0, description="Permission and type bits")
    modified_at: datetime = Field(default_factory=lambda: datetime.fromtimestamp(0),
                                  description="Last modification timestamp")
    is_directory: bool = Field(False, description="Whether the entry is a directory")
    is_symlink: bool = Field(False, description="Whether the entry is a symbolic link")
    error: Optional[EntryUnreadableError] = Field(None, description="Attached read error")

    @field_validator('relative_path')
    @classmethod
    def validate_relative_path(cls, v: str) -> str:
        """Store relative paths with forward slashes on every platform."""
        return v.replace(os.sep, '/')

    @classmethod
    def from_stat(cls, path: str, relative_path: str, stat_result: os.stat_result,
                  is_symlink: bool = False,
                  error: Optional[EntryUnreadableError] = None) -> 'Entry':
        """Build an entry from an os.stat_result."""
        is_directory = stat.S_ISDIR(stat_result.st_mode)
        return cls(
            path=path,
            relative_path=relative_path,
            name=PurePath(path).name,
            size=0 if is_directory else stat_result.st_size,
            mode=stat_result.st_mode,
            modified_at=datetime.fromtimestamp(stat_result.st_mtime),
            is_directory=is_directory,
            is_symlink=is_symlink,
            error=error,
        )

    @property
    def ok(self) -> bool:
        """True if the entry was read without error."""
        return self.error is None

    @property
    def is_hidden(self) -> bool:
        """Dot-files and dot-directories are hidden."""
        return self.name.startswith('.')

    @property
    def extension(self) -> Optional[str]:
        """Lower-cased extension including the leading dot, None for directories."""
        if self.is_directory:
            return None
        suffix = PurePath(self.name).suffix
        return suffix.lower() if suffix else None

    @property
    def permissions(self) -> str:
        """Permission bits as an octal string, e.g. '0o644'."""
        return oct(stat.S_IMODE(self.mode))

    def get_size_human_readable(self) -> str:
        """Get entry size in human-readable format."""
        size = float(self.size)
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if size < 1024.0:
                return f"{size:.1f} {unit}"
            size /= 1024.0
        return f"{size:.1f} PB"

    def to_dict(self) -> Dict[str, Any]:
        """Convert entry to dictionary representation."""
        data = self.model_dump(exclude={'error'})
        data['modified_at'] = self.modified_at.isoformat()
        data['permissions'] = self.permissions
        data['size_human'] = self.get_size_human_readable()
        data['error'] = str(self.error) if self.error else None
        return data

    def __str__(self) -> str:
        suffix = '/' if self.is_directory else ''
        if self.error:
            return f"{self.relative_path}{suffix} (error: {self.error})"
        return f"{self.relative_path}{suffix}"
