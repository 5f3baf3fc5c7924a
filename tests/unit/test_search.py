"""
Unit tests for the search engine.

Tests name-only searches, substring and regex content searches, binary
detection, eager validation of criteria and roots, and result ranking.
"""

import errno
import io
import os
import tempfile
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest

from filekit.errors import InvalidCriteriaError, RootUnavailableError
from filekit.models.config import EngineConfig
from filekit.models.filter_spec import FilterSpec, SearchCriteria
from filekit.models.search_results import MatchLabel
from filekit.tools.search import ContentKind, SearchEngine, classify_content, scan_lines


class TestContentHelpers:
    """Test cases for content classification and line scanning."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.test_root = Path(self.temp_dir)

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_text_file(self):
        path = self.test_root / "text.txt"
        path.write_bytes(b"line one\r\n\tindented\n")

        assert classify_content(str(path)) is ContentKind.TEXT

    def test_empty_file_is_text(self):
        path = self.test_root / "empty.txt"
        path.write_bytes(b"")

        assert classify_content(str(path)) is ContentKind.TEXT

    def test_nul_byte_is_binary(self):
        path = self.test_root / "blob.bin"
        path.write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")

        assert classify_content(str(path)) is ContentKind.BINARY

    def test_only_the_sample_is_inspected(self):
        path = self.test_root / "late.bin"
        path.write_bytes(b"a" * 600 + b"\x00")

        assert classify_content(str(path), sample_size=512) is ContentKind.TEXT
        assert classify_content(str(path), sample_size=1024) is ContentKind.BINARY

    def test_unreadable_is_unknown(self):
        assert classify_content(str(self.test_root / "missing")) is ContentKind.UNKNOWN

    def test_scan_lines_numbers_from_one(self):
        path = self.test_root / "code.py"
        path.write_text("import os\n\n# TODO: fix\nprint('TODO')\n")

        found = scan_lines(str(path), lambda line: "TODO" in line)

        assert [m.as_tuple() for m in found] == [(3, "# TODO: fix"), (4, "print('TODO')")]

    def test_scan_lines_strips_crlf_and_tolerates_bad_utf8(self):
        path = self.test_root / "mixed.txt"
        path.write_bytes(b"caf\xe9 match\r\nother\r\n")

        found = scan_lines(str(path), lambda line: "match" in line)

        assert len(found) == 1
        assert found[0].line_number == 1
        assert found[0].text.endswith("match")
        assert "\r" not in found[0].text


class TestSearchEngine:
    """Test cases for the SearchEngine class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.test_root = Path(self.temp_dir)
        self._create_test_tree()
        self.engine = SearchEngine()

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _create_test_tree(self):
        (self.test_root / "main.py").write_text("import os\n\n# TODO: fix\n")
        (self.test_root / "util.py").write_text("# TODO one\n# todo two\n# TODO three\n")
        (self.test_root / "README.md").write_text("# Project\nTODO: docs\n")
        (self.test_root / "image.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00TODO\x00")
        (self.test_root / "pkg").mkdir()
        (self.test_root / "pkg" / "core.py").write_text("def run():\n    return 1\n")
        (self.test_root / "pkg" / "notes.txt").write_text("nothing here\n")
        (self.test_root / ".venv").mkdir()
        (self.test_root / ".venv" / "site.py").write_text("# TODO vendored\n")

    def _relative(self, matches):
        return sorted(match.entry.relative_path for match in matches)

    def test_content_search_reports_line_numbers(self):
        criteria = SearchCriteria(name_pattern="main.py", content_pattern="TODO")
        matches = list(self.engine.search(str(self.test_root), criteria))

        assert len(matches) == 1
        assert matches[0].line_pairs() == [(3, "# TODO: fix")]
        assert matches[0].label is MatchLabel.CONTENT

    def test_one_match_per_file_with_all_lines(self):
        criteria = SearchCriteria(extension="py", content_pattern="TODO")
        matches = {m.entry.name: m for m in self.engine.search(str(self.test_root), criteria)}

        assert set(matches) == {"main.py", "util.py"}
        assert [n for n, _ in matches["util.py"].line_pairs()] == [1, 3]

    def test_name_only_search(self):
        """Without a content pattern every filtered entry is a match."""
        criteria = SearchCriteria(name_pattern="*.py", recursive=True)
        matches = list(self.engine.search(str(self.test_root), criteria))

        assert self._relative(matches) == ["main.py", "pkg/core.py", "util.py"]
        assert all(m.label is MatchLabel.NAME and m.line_matches == [] for m in matches)

    def test_name_only_search_includes_directories(self):
        criteria = SearchCriteria(name_pattern="pkg")
        matches = list(self.engine.search(str(self.test_root), criteria))

        assert [m.entry.relative_path for m in matches] == ["pkg"]
        assert matches[0].entry.is_directory

    def test_binary_files_are_skipped(self):
        criteria = SearchCriteria(content_pattern="TODO")
        matches = list(self.engine.search(str(self.test_root), criteria))

        assert "image.png" not in self._relative(matches)
        stats = self.engine.get_stats()
        assert stats['binary_skipped'] == 1
        assert stats['errors'] == 0

    def test_case_insensitive_search(self):
        criteria = SearchCriteria(name_pattern="util.py", content_pattern="todo", case_sensitive=False)
        matches = list(self.engine.search(str(self.test_root), criteria))

        assert [n for n, _ in matches[0].line_pairs()] == [1, 2, 3]

    def test_regex_search(self):
        criteria = SearchCriteria(content_pattern=r"^def \w+\(", use_regex=True, recursive=True)
        matches = list(self.engine.search(str(self.test_root), criteria))

        assert self._relative(matches) == ["pkg/core.py"]
        assert matches[0].line_pairs() == [(1, "def run():")]

    def test_hidden_directories_are_not_searched(self):
        criteria = SearchCriteria(content_pattern="vendored", recursive=True)
        assert list(self.engine.search(str(self.test_root), criteria)) == []

        criteria = SearchCriteria(content_pattern="vendored", recursive=True, include_hidden=True)
        assert self._relative(self.engine.search(str(self.test_root), criteria)) == [".venv/site.py"]

    def test_search_is_lazy(self):
        criteria = SearchCriteria(content_pattern="TODO")
        with patch('filekit.tools.search.scan_lines') as mock_scan:
            iterator = self.engine.search(str(self.test_root), criteria)
            mock_scan.assert_not_called()
            mock_scan.return_value = []
            list(iterator)
            assert mock_scan.called

    def test_missing_root_raises_eagerly(self):
        with pytest.raises(RootUnavailableError):
            self.engine.search(str(self.test_root / "missing"), SearchCriteria(content_pattern="x"))

    def test_invalid_regex_rejected(self):
        with pytest.raises(InvalidCriteriaError):
            SearchCriteria.from_options(content_pattern="(", use_regex=True)

    def test_plain_filter_spec_rejected(self):
        with pytest.raises(InvalidCriteriaError):
            self.engine.search(str(self.test_root), FilterSpec())

    def test_unreadable_file_recorded_as_error(self):
        real_open = open
        blocked = str(self.test_root / "main.py")

        def fake_open(path, *args, **kwargs):
            if str(path) == blocked:
                raise PermissionError(errno.EACCES, "Permission denied", blocked)
            return real_open(path, *args, **kwargs)

        criteria = SearchCriteria(extension="py", content_pattern="TODO")
        with patch('builtins.open', side_effect=fake_open):
            matches = list(self.engine.search(str(self.test_root), criteria))

        assert self._relative(matches) == ["util.py"]
        assert self.engine.get_stats()['errors'] == 1
        assert blocked in self.engine.get_errors()[0]

    def test_unlistable_directory_recorded_as_error(self):
        real_scandir = os.scandir
        blocked = str(self.test_root / "pkg")

        def fake_scandir(path):
            if str(path) == blocked:
                raise PermissionError(errno.EACCES, "Permission denied", blocked)
            return real_scandir(path)

        criteria = SearchCriteria(content_pattern="TODO", recursive=True)
        with patch('filekit.tools.walker.os.scandir', side_effect=fake_scandir):
            matches = list(self.engine.search(str(self.test_root), criteria))

        assert "main.py" in self._relative(matches)
        assert self.engine.get_stats()['errors'] == 1

    @pytest.mark.parametrize("recursive", [False, True])
    def test_name_search_keeps_unlistable_directory(self, recursive):
        """A directory that cannot be listed still matches by name."""
        locked = self.test_root / "locked"
        locked.mkdir()
        (locked / "inner.txt").write_text("hidden from us\n")
        real_scandir = os.scandir

        def fake_scandir(path):
            if str(path) == str(locked):
                raise PermissionError(errno.EACCES, "Permission denied", str(locked))
            return real_scandir(path)

        criteria = SearchCriteria(name_pattern="lock*", recursive=recursive)
        with patch('filekit.tools.walker.os.scandir', side_effect=fake_scandir):
            search_run = self.engine.search(str(self.test_root), criteria)
            matches = list(search_run)

        assert [m.entry.relative_path for m in matches] == ["locked"]
        assert search_run.get_stats()['errors'] == (1 if recursive else 0)

    def test_interleaved_searches_keep_separate_stats(self):
        """Two searches consumed side by side on one engine do not share counters."""
        content_run = self.engine.search(str(self.test_root), SearchCriteria(content_pattern="TODO"))
        first = next(content_run)

        name_run = self.engine.search(str(self.test_root), SearchCriteria(name_pattern="*.py"))
        name_matches = list(name_run)
        content_matches = [first] + list(content_run)

        assert len(name_matches) == 2
        assert name_run.get_stats()['binary_skipped'] == 0
        assert name_run.get_stats()['matches'] == 2
        assert content_run.get_stats()['binary_skipped'] == 1
        assert content_run.get_stats()['matches'] == len(content_matches) == 3
        assert self.engine.get_stats() == name_run.get_stats()

    def test_run_ranks_by_match_count(self):
        criteria = SearchCriteria(content_pattern="TODO")
        results = self.engine.run(str(self.test_root), criteria)

        assert [m.entry.name for m in results.matches] == ["util.py", "README.md", "main.py"]
        assert [m.rank for m in results.matches] == [1, 2, 3]
        assert results.get_total_line_matches() == 4
        assert results.binary_skipped == 1
        assert results.files_scanned == 3
        assert not results.has_errors()

    def test_run_with_max_results(self):
        criteria = SearchCriteria(content_pattern="TODO")
        results = self.engine.run(str(self.test_root), criteria, max_results=1)

        assert results.get_match_count() == 1
        assert results.matches[0].entry.name == "util.py"

    def test_stats_reset_between_searches(self):
        criteria = SearchCriteria(content_pattern="TODO")
        list(self.engine.search(str(self.test_root), criteria))
        list(self.engine.search(str(self.test_root), criteria))

        assert self.engine.get_stats()['binary_skipped'] == 1

    def test_verbose_output(self):
        output = io.StringIO()
        engine = SearchEngine(EngineConfig(verbose=True), output=output)

        list(engine.search(str(self.test_root), SearchCriteria(name_pattern="main.py", content_pattern="TODO")))
        list(engine.search(str(self.test_root), SearchCriteria(name_pattern="*.md")))

        assert output.getvalue().splitlines() == [
            f"{self.test_root / 'main.py'}:3: # TODO: fix",
            f"{self.test_root / 'README.md'}",
        ]
