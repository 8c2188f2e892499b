"""Unit tests for logical name resolution."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path, PurePosixPath

import pytest

from cogwork_core.errors import AssetCollisionError, AssetNotFoundError
from cogwork_core.paths import PathSet
from cogwork_core.resolver import (
    engine_extensions,
    iter_logical_names,
    logical_name_for,
    resolve,
    split_logical_name,
)

ENGINES = frozenset({".scss", ".j2", ".md"})


class TestSplitLogicalName:
    """Tests for logical name validation."""

    def test_nested_name(self) -> None:
        """Sub-directories are split from the file name."""
        assert split_logical_name("layouts/main.html") == (PurePosixPath("layouts"), "main.html")

    @pytest.mark.parametrize("name", ["", "/etc/passwd", "../secret.css", "a/../../b.css", "."])
    def test_rejects_unsafe_names(self, name: str) -> None:
        """Empty, absolute and escaping names are never found."""
        with pytest.raises(AssetNotFoundError):
            split_logical_name(name)


class TestResolve:
    """Tests for resolve()."""

    def test_exact_match(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """A file named exactly like the logical name matches."""
        root = write_tree({"js/app.js": ""})
        paths = PathSet(root)
        paths.append("js")
        assert resolve(paths, "app.js") == root / "js" / "app.js"

    def test_engine_extension_match(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """Trailing engine extensions still match the logical name."""
        root = write_tree({"css/main.css.scss": ""})
        paths = PathSet(root)
        paths.append("css")
        assert resolve(paths, "main.css") == root / "css" / "main.css.scss"

    def test_prefix_is_not_a_match(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """main.css does not match main.cssx."""
        root = write_tree({"css/main.cssx": ""})
        paths = PathSet(root)
        paths.append("css")
        with pytest.raises(AssetNotFoundError):
            resolve(paths, "main.css")

    def test_subdirectory(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """Logical names may include sub-directories."""
        root = write_tree({"views/layouts/main.html.j2": ""})
        paths = PathSet(root)
        paths.append("views")
        assert resolve(paths, "layouts/main.html").name == "main.html.j2"

    def test_first_path_wins(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """Matches in different entries go to the highest precedence one."""
        root = write_tree({"a/app.js": "a", "b/app.js": "b", "p/app.js.j2": "p"})
        paths = PathSet(root)
        paths.append("a")
        paths.append("b")
        assert resolve(paths, "app.js") == root / "a" / "app.js"

        paths.prepend("p")
        assert resolve(paths, "app.js") == root / "p" / "app.js.j2"

    def test_collision_in_one_directory(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """Two matches in the same directory are an error."""
        root = write_tree({"css/main.css": "", "css/main.css.scss": ""})
        paths = PathSet(root)
        paths.append("css")
        with pytest.raises(AssetCollisionError) as exc_info:
            resolve(paths, "main.css", engines=ENGINES)
        assert exc_info.value.directory == root / "css"
        assert len(exc_info.value.candidates) == 2

    def test_unregistered_extension_does_not_collide(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """A source map next to its stylesheet is not a second match."""
        root = write_tree({"css/main.css.scss": "", "css/main.css.map": ""})
        paths = PathSet(root)
        paths.append("css")
        assert resolve(paths, "main.css", engines=ENGINES) == root / "css" / "main.css.scss"

    def test_unregistered_extension_alone_matches(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """Without a better match an unregistered extension is still found."""
        root = write_tree({"js/app.js.coffee": ""})
        paths = PathSet(root)
        paths.append("js")
        assert resolve(paths, "app.js", engines=ENGINES) == root / "js" / "app.js.coffee"

    def test_not_found_names_pipeline(self, tmp_path: Path) -> None:
        """The error carries the pipeline name."""
        paths = PathSet(tmp_path)
        paths.append("missing")
        with pytest.raises(AssetNotFoundError) as exc_info:
            resolve(paths, "app.js", pipeline="assets")
        assert exc_info.value.pipeline == "assets"

    def test_directories_are_not_files(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """A directory named like the asset is ignored."""
        root = write_tree({"js/app.js/inner.js": ""})
        paths = PathSet(root)
        paths.append("js")
        with pytest.raises(AssetNotFoundError):
            resolve(paths, "app.js")


class TestLogicalNames:
    """Tests for logical name discovery."""

    def test_engine_extensions(self) -> None:
        """Extensions after the logical name are returned in file order."""
        assert engine_extensions(Path("main.css.scss.j2"), "main.css") == [".scss", ".j2"]
        assert engine_extensions(Path("main.css"), "main.css") == []

    @pytest.mark.parametrize(
        ("relative", "expected"),
        [
            ("main.css.scss", "main.css"),
            ("main.css", "main.css"),
            ("index.html.md", "index.html"),
            ("deep/page.html.j2", "deep/page.html"),
            ("_partial.scss", None),
            ("sub/_partial.html.j2", None),
            (".hidden.js", None),
            ("README", None),
            ("raw.scss", None),
        ],
    )
    def test_logical_name_for(self, relative: str, expected: str | None) -> None:
        """Engine extensions are stripped from the right."""
        assert logical_name_for(PurePosixPath(relative), ENGINES) == expected

    def test_iter_logical_names_deduplicates(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """A name found in several paths is yielded once."""
        root = write_tree(
            {
                "a/app.js": "",
                "a/_skip.scss": "",
                "b/app.js": "",
                "b/lib/util.js": "",
            }
        )
        paths = PathSet(root)
        paths.append("a")
        paths.append("b")
        paths.append("missing")
        assert list(iter_logical_names(paths, ENGINES)) == ["app.js", "lib/util.js"]
