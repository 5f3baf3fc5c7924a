"""
Search engine for filekit.

This module combines the path filter with content inspection. Candidate
entries come from a filtered walk; when a content pattern is given, each text
file is scanned line by line and every matching line is collected into one
SearchMatch. Files that look binary are skipped without error.
"""

import logging
import sys
import time
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, TextIO

from ..errors import InvalidCriteriaError
from ..models.config import EngineConfig
from ..models.entry import Entry
from ..models.filter_spec import SearchCriteria
from ..models.search_results import LineMatch, SearchMatch, SearchResults
from .path_filter import select_entries
from .walker import TreeWalker


logger = logging.getLogger(__name__)

# Control bytes tolerated in text: tab, newline, carriage return.
_TEXT_CONTROL_BYTES = frozenset(b'\t\n\r')


class ContentKind(Enum):
    """Classification of a file's content."""
    TEXT = "text"
    BINARY = "binary"
    UNKNOWN = "unknown"


def classify_content(path: str, sample_size: int = 512) -> ContentKind:
    """
    Decide whether a file is probably text.

    The first sample_size bytes are inspected; any control byte other than
    tab, newline or carriage return marks the file as binary.

    Args:
        path: File to inspect
        sample_size: Number of leading bytes to sample

    Returns:
        TEXT, BINARY, or UNKNOWN if the file could not be read
    """
    try:
        with open(path, 'rb') as f:
            chunk = f.read(sample_size)
    except OSError as e:
        logger.debug(f"Cannot sample {path}: {e}")
        return ContentKind.UNKNOWN

    for byte in chunk:
        if (byte < 0x20 or byte == 0x7f) and byte not in _TEXT_CONTROL_BYTES:
            return ContentKind.BINARY
    return ContentKind.TEXT


def scan_lines(path: str, matcher: Callable[[str], bool]) -> List[LineMatch]:
    """
    Collect every line of a text file accepted by a matcher.

    Args:
        path: Text file to scan
        matcher: Predicate applied to each line (without its line ending)

    Returns:
        Matching lines with 1-based line numbers, in file order

    Raises:
        OSError: If the file cannot be read
    """
    found = []
    with open(path, 'r', encoding='utf-8', errors='replace', newline='') as f:
        for line_number, line in enumerate(f, 1):
            text = line.rstrip('\r\n')
            if matcher(text):
                found.append(LineMatch(line_number=line_number, text=text))
    return found



class SearchRun:
    """
    Lazy sequence of matches for one search invocation.

    Each run keeps its own statistics and error list, so several searches
    started from the same engine can be consumed side by side.

    Attributes:
        root: The directory being searched
        criteria: The criteria this run applies
    """

    def __init__(self, root: str, criteria: SearchCriteria, candidates: Iterator[Entry],
                 matcher: Optional[Callable[[str], bool]], config: EngineConfig,
                 output: Optional[TextIO] = None):
        self.root = root
        self.criteria = criteria
        self._config = config
        self._output = output
        self._stats = _empty_stats()
        self._errors: List[str] = []
        self._iterator = self._generate(candidates, matcher)

    def __iter__(self) -> Iterator[SearchMatch]:
        return self

    def __next__(self) -> SearchMatch:
        return next(self._iterator)

    def _generate(self, candidates: Iterator[Entry],
                  matcher: Optional[Callable[[str], bool]]) -> Iterator[SearchMatch]:
        for entry in candidates:
            self._stats['candidates'] += 1

            if entry.error is not None:
                self._record_error(f"{entry.path}: {entry.error.message}")
                continue

            if matcher is None:
                yield self._emit(SearchMatch(entry=entry))
                continue

            if entry.is_directory:
                continue

            match = self._inspect(entry, matcher)
            if match is not None:
                yield self._emit(match)

    def _inspect(self, entry: Entry, matcher: Callable[[str], bool]) -> Optional[SearchMatch]:
        kind = classify_content(entry.path, self._config.text_sample_size)

        if kind is ContentKind.BINARY:
            self._stats['binary_skipped'] += 1
            logger.debug(f"Skipping binary file: {entry.path}")
            return None

        if kind is ContentKind.UNKNOWN:
            self._record_error(f"{entry.path}: cannot read file")
            return None

        self._stats['files_scanned'] += 1
        try:
            line_matches = scan_lines(entry.path, matcher)
        except OSError as e:
            self._record_error(f"{entry.path}: {e.strerror or e}")
            return None

        if not line_matches:
            return None
        return SearchMatch(entry=entry, line_matches=line_matches)

    def _emit(self, match: SearchMatch) -> SearchMatch:
        self._stats['matches'] += 1
        if self._config.verbose:
            output = self._output or sys.stdout
            if match.line_matches:
                for line_match in match.line_matches:
                    output.write(f"{match.entry.path}:{line_match.line_number}: {line_match.text}\n")
            else:
                output.write(f"{match.entry.path}\n")
        return match

    def _record_error(self, message: str) -> None:
        logger.warning(f"Search error: {message}")
        self._stats['errors'] += 1
        self._errors.append(message)

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about this search so far.

        Returns:
            Dictionary containing search counters
        """
        return self._stats.copy()

    def get_errors(self) -> List[str]:
        """Per-entry errors recorded by this search so far."""
        return list(self._errors)


class SearchEngine:
    """
    Name, metadata and content search over a directory tree.

    Every call to search() returns an independent SearchRun. The engine's own
    get_stats() and get_errors() report on the most recently started run.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 walker: Optional[TreeWalker] = None,
                 output: Optional[TextIO] = None):
        """
        Initialize the search engine.

        Args:
            config: Engine configuration
            walker: Tree walker used to enumerate candidates
            output: Sink for verbose progress lines (stdout if None)
        """
        self.config = config or EngineConfig()
        self.walker = walker or TreeWalker()
        self.output = output
        self._last_run: Optional[SearchRun] = None

    def search(self, root: str, criteria: SearchCriteria) -> SearchRun:
        """
        Search a directory tree.

        Criteria and the root are validated before this returns; the matches
        themselves are produced lazily.

        Args:
            root: Directory to search
            criteria: Filter predicates plus optional content pattern

        Returns:
            SearchRun iterating over SearchMatch in walk order

        Raises:
            InvalidCriteriaError: If the content pattern is invalid
            RootUnavailableError: If the root cannot be read
        """
        if not isinstance(criteria, SearchCriteria):
            raise InvalidCriteriaError(f"Expected SearchCriteria, got {type(criteria).__name__}",
                                       value=criteria, operation='search')

        matcher = criteria.line_matcher() if criteria.has_content_pattern() else None
        candidates = select_entries(root, criteria, self.walker)

        logger.info(f"Searching {root}: {criteria}")
        search_run = SearchRun(root, criteria, candidates, matcher, self.config, self.output)
        self._last_run = search_run
        return search_run

    def run(self, root: str, criteria: SearchCriteria,
            max_results: Optional[int] = None) -> SearchResults:
        """
        Run a search to completion and return ranked results.

        Args:
            root: Directory to search
            criteria: Filter predicates plus optional content pattern
            max_results: Keep only the top-ranked matches (all if None)

        Returns:
            SearchResults with ranked matches and scan statistics
        """
        started = time.monotonic()
        search_run = self.search(root, criteria)
        matches = list(search_run)
        stats = search_run.get_stats()

        results = SearchResults(
            root=root,
            matches=matches,
            files_scanned=stats['files_scanned'],
            binary_skipped=stats['binary_skipped'],
            execution_time=time.monotonic() - started,
            errors=search_run.get_errors(),
        )
        if max_results:
            results.limit_results(max_results)

        logger.info(f"Search finished: {results}")
        return results

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about the most recently started search.

        Returns:
            Dictionary containing search counters
        """
        if self._last_run is None:
            return _empty_stats()
        return self._last_run.get_stats()

    def get_errors(self) -> List[str]:
        """Per-entry errors recorded by the most recently started search."""
        if self._last_run is None:
            return []
        return self._last_run.get_errors()

    def reset_stats(self) -> None:
        """Forget the most recent search."""
        self._last_run = None


def _empty_stats() -> Dict[str, int]:
    return {
        'candidates': 0,
        'files_scanned': 0,
        'binary_skipped': 0,
        'matches': 0,
        'errors': 0
    }
