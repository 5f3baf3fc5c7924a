"""
Tree walker for filekit.

This module provides ordered depth-first traversal of a directory tree. A walk
yields one Entry per visited filesystem object, parent before children, with
siblings in filesystem enumeration order. Consumers can stop the walker from
descending into a directory they have just received, and entries that cannot
be read are yielded with an attached error instead of aborting the walk.

A directory is listed only after it has been yielded and the consumer did not
skip it. If the listing fails, the directory entry already handed out stays
clean and a separate error entry for the same path follows it, with
operation 'list' on the attached error.
"""

import logging
import os
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..errors import EntryUnreadableError, RootUnavailableError
from ..models.entry import Entry


logger = logging.getLogger(__name__)

PrunePredicate = Callable[[Entry], bool]


class Walk:
    """
    Lazy, single-use sequence of entries for one walk invocation.

    Iterate over it to receive entries. After receiving a directory entry,
    call skip_subtree() to keep the walk from descending into it.

    Attributes:
        root: Absolute path of the walked root
        recursive: Whether subdirectories are descended into
    """

    def __init__(self, root: str, children: List[os.DirEntry], recursive: bool,
                 prune: Optional[PrunePredicate] = None, follow_symlinks: bool = False):
        self.root = root
        self.recursive = recursive
        self._prune = prune
        self._follow_symlinks = follow_symlinks
        self._current: Optional[Entry] = None
        self._skip_current = False
        self._stats = {
            'directories_traversed': 1,
            'entries_yielded': 0,
            'entries_pruned': 0,
            'errors': 0
        }
        self._iterator = self._generate(children)

    def __iter__(self) -> Iterator[Entry]:
        return self

    def __next__(self) -> Entry:
        return next(self._iterator)

    def skip_subtree(self) -> bool:
        """
        Do not descend into the most recently yielded directory.

        Returns:
            True if the signal applies, False if the last entry was not a directory
        """
        if self._current is None or not self._current.is_directory:
            return False
        self._skip_current = True
        logger.debug(f"Skipping subtree: {self._current.path}")
        return True

    def _generate(self, root_children: List[os.DirEntry]) -> Iterator[Entry]:
        stack: List[Tuple[str, Iterator[os.DirEntry]]] = [('', iter(root_children))]

        while stack:
            prefix, pending = stack[-1]
            dir_entry = next(pending, None)
            if dir_entry is None:
                stack.pop()
                continue

            entry = _stat_entry(dir_entry, prefix + dir_entry.name)
            if entry.error is not None:
                self._stats['errors'] += 1

            self._current = entry
            self._skip_current = False
            self._stats['entries_yielded'] += 1
            yield entry

            # The consumer has now had its chance to call skip_subtree().
            self._current = None
            if not self._should_descend(entry):
                continue

            try:
                children = _list_directory(entry.path)
            except OSError as e:
                self._stats['errors'] += 1
                self._stats['entries_yielded'] += 1
                yield _listing_failure(entry, e)
                continue

            self._stats['directories_traversed'] += 1
            stack.append((entry.relative_path + '/', iter(children)))

    def _should_descend(self, entry: Entry) -> bool:
        if self._skip_current or not (self.recursive and entry.ok and entry.is_directory):
            return False

        if entry.is_symlink and not self._follow_symlinks:
            return False

        if self._prune is not None and self._prune(entry):
            self._stats['entries_pruned'] += 1
            return False

        return True

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about this walk.

        Returns:
            Dictionary containing traversal counters
        """
        return self._stats.copy()


class TreeWalker:
    """
    Depth-first directory walker.

    The walker holds no per-walk state; every call to walk() returns an
    independent Walk.
    """

    def __init__(self, follow_symlinks: bool = False):
        """
        Initialize the tree walker.

        Args:
            follow_symlinks: Descend into symbolic links that point at directories
        """
        self.follow_symlinks = follow_symlinks

    def walk(self, root: str, recursive: bool = False,
             prune: Optional[PrunePredicate] = None) -> Walk:
        """
        Start a walk of a directory tree.

        The root is read immediately, so an unavailable root fails here rather
        than on first iteration. The root itself is not yielded.

        Args:
            root: Directory to walk
            recursive: Descend into subdirectories
            prune: Optional predicate; directories it returns True for are
                yielded but not descended into

        Returns:
            Walk yielding entries in depth-first order

        Raises:
            RootUnavailableError: If the root does not exist, is not a
                directory, or cannot be listed
        """
        root_path = os.path.abspath(os.path.expanduser(str(root)))

        try:
            children = _list_directory(root_path)
        except NotADirectoryError as e:
            raise RootUnavailableError(
                f"Root path is not a directory: {root_path}", path=root_path, operation='walk'
            ) from e
        except FileNotFoundError as e:
            raise RootUnavailableError(
                f"Root directory does not exist: {root_path}", path=root_path, operation='walk'
            ) from e
        except OSError as e:
            raise RootUnavailableError(
                f"Cannot read root directory {root_path}: {e.strerror or e}",
                path=root_path,
                operation='walk',
            ) from e

        logger.info(f"Walking directory tree: {root_path} (recursive={recursive})")
        return Walk(root_path, children, recursive, prune, self.follow_symlinks)


def _list_directory(path: str) -> List[os.DirEntry]:
    with os.scandir(path) as it:
        return list(it)


def _listing_failure(directory: Entry, error: OSError) -> Entry:
    """Error entry reporting that a directory's contents could not be read."""
    logger.warning(f"Cannot list directory {directory.path}: {error}")
    return directory.model_copy(update={'error': EntryUnreadableError(
        f"Cannot list directory: {error.strerror or error}",
        path=directory.path,
        operation='list',
    )})


def _stat_entry(dir_entry: os.DirEntry, relative_path: str) -> Entry:
    """Stat a directory item, falling back to lstat for broken links."""
    try:
        is_symlink = dir_entry.is_symlink()
    except OSError:
        is_symlink = False

    try:
        return Entry.from_stat(dir_entry.path, relative_path, dir_entry.stat(), is_symlink=is_symlink)
    except OSError as e:
        stat_error = e

    if is_symlink:
        message = "Broken symbolic link"
    else:
        message = f"Cannot stat entry: {stat_error.strerror or stat_error}"
    error = EntryUnreadableError(message, path=dir_entry.path, operation='stat')
    logger.warning(f"{message}: {dir_entry.path}")

    try:
        link_stat = dir_entry.stat(follow_symlinks=False)
    except OSError:
        return Entry(path=dir_entry.path, relative_path=relative_path, name=dir_entry.name,
                     is_symlink=is_symlink, error=error)
    return Entry.from_stat(dir_entry.path, relative_path, link_stat, is_symlink=is_symlink, error=error)


_default_walker = TreeWalker()


def walk(root: str, recursive: bool = False, prune: Optional[PrunePredicate] = None) -> Walk:
    """
    Walk a directory tree with the default walker.

    Args:
        root: Directory to walk
        recursive: Descend into subdirectories
        prune: Optional predicate selecting directories not to descend into

    Returns:
        Walk yielding entries in depth-first order

    Raises:
        RootUnavailableError: If the root cannot be read
    """
    return _default_walker.walk(root, recursive=recursive, prune=prune)
