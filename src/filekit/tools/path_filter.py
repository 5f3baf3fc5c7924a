"""
Path filter for filekit.

This module decides whether walked entries belong in a result set. Matching is
a pure function of an Entry and a FilterSpec; select_entries() composes it
with the tree walker, pruning hidden directories from traversal.
"""

import fnmatch
import logging
from typing import Iterator, Optional

from ..models.entry import Entry
from ..models.filter_spec import FilterSpec
from .parsing import parse_date, parse_size
from .walker import TreeWalker


logger = logging.getLogger(__name__)

__all__ = ['is_hidden', 'matches', 'select_entries', 'parse_size', 'parse_date']


def is_hidden(name: str) -> bool:
    """Names starting with a dot are hidden."""
    return name.startswith('.')


def matches(entry: Entry, spec: FilterSpec) -> bool:
    """
    Check whether an entry satisfies every predicate present in a spec.

    Size and date ranges only constrain files; directories always pass them.
    An extension predicate never matches a directory.

    Args:
        entry: Entry to check
        spec: Filter predicates

    Returns:
        True if the entry is included
    """
    if not _matches_name(entry, spec):
        return False

    if entry.is_directory:
        return True

    if spec.size_range is not None and not spec.size_range.contains(entry.size):
        return False

    if spec.date_range is not None and not spec.date_range.contains(entry.modified_at):
        return False

    return True


def _matches_name(entry: Entry, spec: FilterSpec) -> bool:
    """Hidden, extension and glob predicates, which need only the name."""
    if not spec.include_hidden and is_hidden(entry.name):
        return False

    if spec.extension is not None:
        if entry.is_directory:
            return False
        if not entry.name.lower().endswith('.' + spec.extension):
            return False

    if spec.name_pattern is not None:
        if not fnmatch.fnmatchcase(entry.name, spec.name_pattern):
            return False

    return True


def select_entries(root: str, spec: FilterSpec,
                   walker: Optional[TreeWalker] = None) -> Iterator[Entry]:
    """
    Walk a tree and yield the entries that match a spec.

    Hidden directories are pruned from traversal unless the filter includes
    hidden entries. Entries carrying a read error are yielded when their
    name passes the filter, so callers can report them; their size and date
    are not trusted for range predicates. Directory listing failures are
    always yielded, since the files they hide might have matched.

    Args:
        root: Directory to walk
        spec: Filter predicates, including the recursion toggle
        walker: Walker to use (a default walker if None)

    Returns:
        Iterator over matching entries

    Raises:
        RootUnavailableError: If the root cannot be read (raised immediately)
    """
    walker = walker or TreeWalker()
    prune = None if spec.include_hidden else (lambda entry: is_hidden(entry.name))
    entries = walker.walk(root, recursive=spec.recursive, prune=prune)
    return _filtered(entries, spec)


def _filtered(entries: Iterator[Entry], spec: FilterSpec) -> Iterator[Entry]:
    for entry in entries:
        if entry.error is not None:
            if entry.error.operation == 'list' or _matches_name(entry, spec):
                yield entry
            continue

        if matches(entry, spec):
            yield entry
        else:
            logger.debug(f"Filtered out: {entry.relative_path}")
