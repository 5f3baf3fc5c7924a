"""
Search results data models for filekit.

This module defines the structures that describe what a search found:
per-line content matches, per-entry search matches, and the ranked,
materialised result set with scan statistics.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .entry import Entry


class MatchLabel(Enum):
    """How an entry came to be in the results."""
    NAME = "name"
    CONTENT = "content"


class LineMatch(BaseModel):
    """
    A single matching line inside a text file.

    Attributes:
        line_number: 1-based line number
        text: Line content without the trailing newline
    """

    model_config = ConfigDict(frozen=True)

    line_number: int = Field(..., ge=1, description="1-based line number")
    text: str = Field(..., description="Line content")

    def as_tuple(self) -> tuple:
        """Return the match as a (line_number, text) pair."""
        return (self.line_number, self.text)

    def __str__(self) -> str:
        return f"{self.line_number}: {self.text}"


class SearchMatch(BaseModel):
    """
    One entry that satisfied the search criteria.

    Name-only searches produce matches with no line matches; content searches
    collect every matching line of a file into a single SearchMatch.

    Attributes:
        entry: The matched entry
        line_matches: Matching lines in file order (empty for name-only matches)
        rank: Position in a ranked result set (1-based), if ranked
    """

    entry: Entry = Field(..., description="The matched entry")
    line_matches: List[LineMatch] = Field(default_factory=list, description="Matching lines")
    rank: Optional[int] = Field(None, ge=1, description="Rank in the result set")

    @property
    def label(self) -> MatchLabel:
        """CONTENT if any lines matched, otherwise NAME."""
        return MatchLabel.CONTENT if self.line_matches else MatchLabel.NAME

    @property
    def path(self) -> str:
        return self.entry.path

    @property
    def match_count(self) -> int:
        return len(self.line_matches)

    def line_pairs(self) -> List[tuple]:
        """Get line matches as (line_number, text) pairs."""
        return [m.as_tuple() for m in self.line_matches]

    def to_dict(self) -> Dict[str, Any]:
        """Convert search match to dictionary representation."""
        return {
            'entry': self.entry.to_dict(),
            'label': self.label.value,
            'rank': self.rank,
            'match_count': self.match_count,
            'line_matches': [m.model_dump() for m in self.line_matches],
        }

    def __str__(self) -> str:
        if self.line_matches:
            return f"{self.entry.relative_path} ({self.match_count} matching lines)"
        return self.entry.relative_path


class SearchResults(BaseModel):
    """
    Materialised results of a search.

    Attributes:
        root: The directory that was searched
        matches: Ranked search matches
        files_scanned: Number of files whose content was inspected
        binary_skipped: Number of files skipped as binary
        execution_time: Time taken in seconds
        timestamp: When the search was executed
        errors: Human-readable descriptions of per-entry errors
    """

    root: str = Field(..., description="Directory that was searched")
    matches: List[SearchMatch] = Field(default_factory=list, description="Ranked matches")
    files_scanned: int = Field(0, ge=0, description="Files whose content was inspected")
    binary_skipped: int = Field(0, ge=0, description="Files skipped as binary")
    execution_time: float = Field(0.0, ge=0.0, description="Search duration in seconds")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the search ran")
    errors: List[str] = Field(default_factory=list, description="Per-entry errors")

    def model_post_init(self, __context) -> None:
        """Rank matches after initialization."""
        self.rank()

    def rank(self) -> None:
        """
        Order matches by relevance and assign 1-based ranks.

        Content matches with more matching lines come first; ties and
        name-only matches are ordered by path.
        """
        self.matches.sort(key=lambda m: (-m.match_count, m.entry.path))
        for i, match in enumerate(self.matches, 1):
            match.rank = i

    def get_match_count(self) -> int:
        return len(self.matches)

    def get_matches_by_label(self, label: MatchLabel) -> List[SearchMatch]:
        """Get all matches with the given label."""
        return [m for m in self.matches if m.label == label]

    def get_total_line_matches(self) -> int:
        """Total number of matching lines across all files."""
        return sum(m.match_count for m in self.matches)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def add_error(self, error: str) -> None:
        """Add an error message to the results."""
        self.errors.append(error)

    def limit_results(self, max_results: int) -> None:
        """Limit the number of results to the specified maximum."""
        if max_results > 0:
            self.matches = self.matches[:max_results]

    def to_dict(self) -> Dict[str, Any]:
        """Convert search results to dictionary representation."""
        return {
            'root': self.root,
            'matches': [m.to_dict() for m in self.matches],
            'match_count': self.get_match_count(),
            'line_match_count': self.get_total_line_matches(),
            'files_scanned': self.files_scanned,
            'binary_skipped': self.binary_skipped,
            'execution_time': self.execution_time,
            'timestamp': self.timestamp.isoformat(),
            'errors': list(self.errors),
        }

    def __str__(self) -> str:
        """String representation of search results."""
        parts = [f"Found {self.get_match_count()} matches"]
        parts.append(f"Scanned {self.files_scanned} files")
        parts.append(f"Took {self.execution_time:.2f}s")

        if self.has_errors():
            parts.append(f"Errors: {len(self.errors)}")

        return " | ".join(parts)
