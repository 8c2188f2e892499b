"""Unit tests for PathSet ordering and deduplication."""

from __future__ import annotations

from pathlib import Path

from cogwork_core.paths import PathSet


class TestPathSetOrder:
    """Tests for precedence order."""

    def test_append_keeps_insertion_order(self, tmp_path: Path) -> None:
        """Appended paths are searched in insertion order."""
        paths = PathSet(tmp_path)
        paths.append("a")
        paths.append("b")
        assert paths.paths == (tmp_path / "a", tmp_path / "b")

    def test_prepend_takes_precedence(self, tmp_path: Path) -> None:
        """Prepended paths come before every appended path."""
        paths = PathSet(tmp_path)
        paths.append("a")
        paths.prepend("p")
        assert list(paths) == [tmp_path / "p", tmp_path / "a"]

    def test_first_prepended_wins_within_group(self, tmp_path: Path) -> None:
        """Within the prepend group the first-inserted path wins."""
        paths = PathSet(tmp_path)
        paths.prepend("p1")
        paths.prepend("p2")
        paths.append("a")
        assert list(paths) == [tmp_path / "p1", tmp_path / "p2", tmp_path / "a"]

    def test_absolute_paths_kept(self, tmp_path: Path) -> None:
        """Absolute paths are not joined with the root."""
        other = tmp_path / "elsewhere"
        paths = PathSet(tmp_path / "root")
        paths.append(other)
        assert paths.paths == (other,)


class TestPathSetIdempotence:
    """Tests for duplicate handling."""

    def test_append_twice_is_append_once(self, tmp_path: Path) -> None:
        """append(p); append(p) equals append(p)."""
        once = PathSet(tmp_path)
        once.append("a")
        twice = PathSet(tmp_path)
        twice.append("a")
        twice.append("a")
        assert once.paths == twice.paths
        assert len(twice) == 1

    def test_relative_and_absolute_forms_are_equal(self, tmp_path: Path) -> None:
        """The same directory given two ways is stored once."""
        paths = PathSet(tmp_path)
        paths.append("a")
        paths.append(tmp_path / "a")
        paths.append("./b/../a")
        assert len(paths) == 1

    def test_prepend_of_appended_path_is_noop(self, tmp_path: Path) -> None:
        """A path present in either group is not moved."""
        paths = PathSet(tmp_path)
        paths.append("a")
        paths.append("b")
        paths.prepend("b")
        assert list(paths) == [tmp_path / "a", tmp_path / "b"]

    def test_contains(self, tmp_path: Path) -> None:
        """Membership accepts relative and absolute forms."""
        paths = PathSet(tmp_path)
        paths.append("a")
        assert "a" in paths
        assert tmp_path / "a" in paths
        assert "b" not in paths
        assert 42 not in paths


class TestPathSetClear:
    """Tests for clearing."""

    def test_clear_removes_everything(self, tmp_path: Path) -> None:
        """clear() drops both groups."""
        paths = PathSet(tmp_path)
        paths.append("a")
        paths.prepend("p")
        paths.clear()
        assert paths.paths == ()
        assert len(paths) == 0
