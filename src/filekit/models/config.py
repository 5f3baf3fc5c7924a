"""
Configuration data models for filekit.

This module defines the engine settings shared by the walker, transfer engine
and search engine: output verbosity, content sampling, copy buffering,
batch parallelism and transfer defaults.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator

from .transfer import OverwritePolicy


class EngineConfig(BaseModel):
    """
    Settings for the filekit engine.

    Attributes:
        verbose: Emit one progress line per processed entry to the output sink
        text_sample_size: Bytes sampled from the start of a file to classify it as text
        copy_buffer_size: Chunk size used when streaming file contents
        max_workers: Upper bound of parallel workers for batch transfers (1 = sequential)
        default_overwrite_policy: Policy used by batch transfers when none is given
        preserve_permissions: Default for copying source mode bits onto destinations
        probe_prefix: Name prefix for the temporary files created by write probes
    """

    verbose: bool = Field(False, description="Emit one progress line per entry")
    text_sample_size: int = Field(512, gt=0, description="Bytes sampled for text detection")
    copy_buffer_size: int = Field(1024 * 1024, gt=0, description="Streaming copy chunk size")
    max_workers: int = Field(1, gt=0, le=64, description="Parallel workers for batch transfers")
    default_overwrite_policy: OverwritePolicy = Field(
        OverwritePolicy.REJECT, description="Default destination-exists policy"
    )
    preserve_permissions: bool = Field(True, description="Copy source mode bits by default")
    probe_prefix: str = Field(".filekit-probe-", min_length=1,
                              description="Prefix for write-probe files")

    @field_validator('default_overwrite_policy', mode='before')
    @classmethod
    def validate_policy(cls, v) -> OverwritePolicy:
        """Validate and convert policy names to the enum."""
        if isinstance(v, str):
            try:
                return OverwritePolicy(v.lower())
            except ValueError:
                raise ValueError(f"Invalid overwrite policy: {v}")
        return v

    @field_validator('probe_prefix')
    @classmethod
    def validate_probe_prefix(cls, v: str) -> str:
        """Probe files are created inside the target directory, so no separators."""
        if '/' in v or '\\' in v:
            raise ValueError(f"Probe prefix cannot contain path separators: {v}")
        return v

    def get_buffer_size_human_readable(self) -> str:
        """Get copy buffer size in human-readable format."""
        size = float(self.copy_buffer_size)
        for unit in ['B', 'KB', 'MB', 'GB']:
            if size < 1024.0:
                return f"{size:.1f} {unit}"
            size /= 1024.0
        return f"{size:.1f} TB"

    def validate_configuration(self) -> List[str]:
        """
        Check for settings that are valid but likely unintended.

        Returns:
            List of warning messages
        """
        warnings = []

        if self.default_overwrite_policy is OverwritePolicy.OVERWRITE:
            warnings.append("Default overwrite policy is 'overwrite' - existing files will be replaced")

        if self.default_overwrite_policy is OverwritePolicy.PROMPT and self.max_workers > 1:
            warnings.append("Prompting batches always run sequentially; max_workers is ignored for them")

        if self.text_sample_size < 64:
            warnings.append(f"Small text sample size ({self.text_sample_size} bytes) may misclassify binary files")

        if self.copy_buffer_size > 64 * 1024 * 1024:
            warnings.append("Very large copy buffer may cause memory pressure")

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['default_overwrite_policy'] = self.default_overwrite_policy.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """Create an EngineConfig from a dictionary."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        parts = [f"Workers: {self.max_workers}"]
        parts.append(f"Overwrite: {self.default_overwrite_policy.value}")
        parts.append(f"Buffer: {self.get_buffer_size_human_readable()}")
        if self.verbose:
            parts.append("Verbose")
        return " | ".join(parts)
