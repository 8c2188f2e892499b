"""Unit tests for Pipeline resolution, caching and compression."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from cogwork_core.compressors import JAVASCRIPT, STYLESHEET
from cogwork_core.context import ProcessingContext
from cogwork_core.environment import Environment
from cogwork_core.errors import AssetNotFoundError, ConfigurationError, TransformError
from cogwork_core.pipeline import content_type_for

SCRIPTS = {
    "assets/javascripts/main.js": "//= require dep\n",
    "assets/javascripts/dep.js": "var app = {};",
    "assets/stylesheets/site.css": "a { color: red; }\n",
}


class CountingCompressor:
    """Compressor stub recording how often it ran."""

    def __init__(self, output: bytes = b"compressed") -> None:
        self.output = output
        self.calls = 0

    def __call__(self, data: bytes) -> bytes:
        self.calls += 1
        return self.output


@pytest.fixture
def scripts(write_tree: Callable[[dict[str, str]], Path]) -> Path:
    """Project with a bundled script and a plain stylesheet."""
    return write_tree(SCRIPTS)


class TestResolution:
    """Tests for find/resolve."""

    def test_resolve_bundle(self, scripts: Path) -> None:
        """A required file is bundled ahead of the requiring file."""
        environment = Environment(scripts)
        assert environment.assets.resolve("main.js") == b"var app = {};\n"

    def test_find_asset_describes_result(self, scripts: Path) -> None:
        """find_asset returns path, content and content type."""
        environment = Environment(scripts)
        asset = environment.assets.find_asset("site.css")
        assert asset.path == scripts / "assets/stylesheets/site.css"
        assert bytes(asset) == b"a { color: red; }\n"
        assert str(asset) == "a { color: red; }\n"
        assert asset.content_type == "text/css"

    def test_mapping_protocol(self, scripts: Path) -> None:
        """Pipelines support ``in`` and item access."""
        assets = Environment(scripts).assets
        assert "site.css" in assets
        assert "nope.css" not in assets
        assert assets["site.css"] == b"a { color: red; }\n"

    def test_missing_asset(self, scripts: Path) -> None:
        """Unknown names raise AssetNotFoundError."""
        with pytest.raises(AssetNotFoundError):
            Environment(scripts).assets.resolve("nope.js")

    def test_missing_requirement(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """A require of a missing file fails the requiring file."""
        root = write_tree({"assets/javascripts/main.js": "//= require nope\n"})
        with pytest.raises(TransformError, match="nope.js") as exc_info:
            Environment(root).assets.resolve("main.js")
        assert exc_info.value.transform == "directives"
        assert isinstance(exc_info.value.__cause__, AssetNotFoundError)

    def test_source_map_beside_stylesheet(self, scripts: Path) -> None:
        """A .map file next to a stylesheet does not make it ambiguous."""
        (scripts / "assets/stylesheets/site.css.map").write_text("{}")
        assert Environment(scripts).assets.resolve("site.css") == b"a { color: red; }\n"

    def test_logical_names(self, scripts: Path) -> None:
        """Every discoverable name is listed once."""
        assert sorted(Environment(scripts).assets.logical_names()) == ["dep.js", "main.js", "site.css"]

    def test_url_for(self, tmp_path: Path) -> None:
        """URLs join the prefix and the logical name."""
        environment = Environment(tmp_path)
        assert environment.assets.url_for("main.css") == "/assets/main.css"
        assert environment.pages.url_for("index.html") == "/index.html"

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("main.css", "text/css"),
            ("index.html", "text/html"),
            ("blob.unknownext", "application/octet-stream"),
        ],
    )
    def test_content_type(self, name: str, expected: str) -> None:
        """Content types follow the output extension."""
        assert content_type_for(name) == expected


class TestCaching:
    """Tests for cache hits and invalidation."""

    def test_repeated_resolution_hits_cache(self, scripts: Path) -> None:
        """Unchanged files are served from the cache."""
        assets = Environment(scripts).assets
        first = assets.resolve("main.js")
        second = assets.resolve("main.js")
        assert first == second
        assert assets.cache.hits == 1
        assert assets.cache.misses == 1

    def test_edit_invalidates(self, scripts: Path) -> None:
        """Editing the source rebuilds it."""
        assets = Environment(scripts).assets
        assets.resolve("site.css")
        (scripts / "assets/stylesheets/site.css").write_text("b { color: blue; }\n")
        assert assets.resolve("site.css") == b"b { color: blue; }\n"

    def test_edit_of_required_file_invalidates(self, scripts: Path) -> None:
        """Editing a bundled dependency rebuilds the bundle."""
        assets = Environment(scripts).assets
        assets.resolve("main.js")
        (scripts / "assets/javascripts/dep.js").write_text("var app = {ready: true};")
        assert assets.resolve("main.js") == b"var app = {ready: true};\n"

    def test_dependency_edited_during_build(self, scripts: Path) -> None:
        """A dependency changed after it was read is rebuilt on the next request."""
        dep = scripts / "assets/javascripts/dep.js"
        edits: list[Path] = []

        def edit_dependency(data: bytes, context: ProcessingContext) -> bytes:
            if not edits:
                edits.append(dep)
                dep.write_text("var app = {edited: true};")
            return data

        assets = Environment(scripts).assets
        assets.register_postprocessor(".js", edit_dependency)
        assert assets.resolve("main.js") == b"var app = {};\n"
        assert assets.resolve("main.js") == b"var app = {edited: true};\n"

    def test_path_change_clears_cache(self, scripts: Path) -> None:
        """Changing search paths drops cached builds."""
        assets = Environment(scripts).assets
        assets.resolve("site.css")
        assets.append_path("more")
        assert len(assets.cache) == 0


class TestCompression:
    """Tests for compressor selection and invocation."""

    def test_uncompressed_by_default(self, scripts: Path) -> None:
        """Without configuration output is not compressed."""
        assets = Environment(scripts).assets
        assert assets.compressor_for(JAVASCRIPT) is None

    def test_global_compress_uses_defaults(self, scripts: Path) -> None:
        """config.compress selects the default compressors."""
        environment = Environment(scripts, compress=True)
        assert environment.assets.resolve("main.js") == b"var app={};"
        assert environment.assets.resolve("site.css") == b"a{color:red}"

    def test_output_equals_compressor_output(self, scripts: Path) -> None:
        """The compressed asset is exactly what the compressor returns."""
        environment = Environment(scripts, js_compressor="counting")
        compressor = CountingCompressor(b"MINIFIED")
        environment.compressors.register(JAVASCRIPT, "counting", compressor)
        assert environment.assets.resolve("main.js") == b"MINIFIED"

    def test_called_once_per_miss_never_on_hit(self, scripts: Path) -> None:
        """The compressor runs on cache misses only."""
        environment = Environment(scripts, js_compressor="counting")
        compressor = CountingCompressor()
        environment.compressors.register(JAVASCRIPT, "counting", compressor)
        assets = environment.assets

        assets.resolve("main.js")
        assert compressor.calls == 1
        assets.resolve("main.js")
        assets.resolve("main.js")
        assert compressor.calls == 1

        (scripts / "assets/javascripts/main.js").write_text("//= require dep\nvar x = 1;\n")
        assets.resolve("main.js")
        assert compressor.calls == 2

    def test_named_compressor_only_for_its_category(self, scripts: Path) -> None:
        """A javascript compressor leaves stylesheets alone."""
        environment = Environment(scripts, js_compressor="counting")
        environment.compressors.register(JAVASCRIPT, "counting", CountingCompressor())
        assert environment.assets.resolve("site.css") == b"a { color: red; }\n"

    def test_pipeline_setting_overrides_global(self, scripts: Path) -> None:
        """A pipeline-level compressor beats the global one."""
        environment = Environment(scripts, css_compressor="csscompressor")
        environment.compressors.register(STYLESHEET, "local", CountingCompressor(b"LOCAL"))
        styles = environment.append_pipeline(
            "styles",
            css_compressor="local",
            paths=("assets/stylesheets",),
        )
        assert styles.resolve("site.css") == b"LOCAL"
        assert environment.assets.resolve("site.css") == b"a{color:red}"

    def test_pipeline_can_disable_compression(self, scripts: Path) -> None:
        """compress=False on a pipeline opts out of global compression."""
        environment = Environment(scripts, compress=True)
        raw = environment.append_pipeline("raw", compress=False, paths=("assets/stylesheets",))
        assert raw.resolve("site.css") == b"a { color: red; }\n"

    def test_unknown_compressor(self, scripts: Path) -> None:
        """Unknown compressor names are configuration errors."""
        environment = Environment(scripts, js_compressor="uglify")
        with pytest.raises(ConfigurationError, match="uglify"):
            environment.assets.resolve("main.js")

    def test_compressor_failure(self, scripts: Path) -> None:
        """A failing compressor is reported as a TransformError."""

        def broken(data: bytes) -> bytes:
            raise RuntimeError("cannot parse")

        environment = Environment(scripts, js_compressor="broken")
        environment.compressors.register(JAVASCRIPT, "broken", broken)
        with pytest.raises(TransformError) as exc_info:
            environment.assets.resolve("main.js")
        assert exc_info.value.transform == "compressor:broken"


class TestBundling:
    """Tests for require directives resolved through a pipeline."""

    def test_tree_self_and_shared_dependency(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """A dependency shared by several required files is bundled once."""
        root = write_tree(
            {
                "assets/javascripts/main.js": "//= require dep\n//= require_tree ./lib\n//= require_self\nvar main;\n",
                "assets/javascripts/dep.js": "var dep;",
                "assets/javascripts/lib/a.js": "//= require dep\nvar a;",
                "assets/javascripts/lib/b.js": "//= require ../dep\nvar b;",
            }
        )
        assert Environment(root).assets.resolve("main.js") == b"var dep;\nvar a;\nvar b;\nvar main;\n"

    def test_require_self_position(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """require_self places the body where it is declared."""
        root = write_tree(
            {
                "assets/javascripts/main.js": "//= require_self\n//= require dep\nvar main;",
                "assets/javascripts/dep.js": "var dep;",
            }
        )
        assert Environment(root).assets.resolve("main.js") == b"var main;\nvar dep;\n"

    def test_require_directory_is_not_recursive(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """require_directory takes direct children only; require_tree descends."""
        root = write_tree(
            {
                "assets/javascripts/flat.js": "//= require_directory ./lib\n",
                "assets/javascripts/deep.js": "//= require_tree ./lib\n",
                "assets/javascripts/lib/a.js": "var a;",
                "assets/javascripts/lib/nested/c.js": "var c;",
                "assets/javascripts/lib/style.css": "a {}",
            }
        )
        assets = Environment(root).assets
        assert assets.resolve("flat.js") == b"var a;\n"
        assert assets.resolve("deep.js") == b"var a;\nvar c;\n"

    def test_relative_parent_require(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """../ names resolve against the requiring file's directory."""
        root = write_tree(
            {
                "assets/javascripts/app/main.js": "//= require ../shared\nvar app;",
                "assets/javascripts/shared.js": "var shared;",
            }
        )
        assert Environment(root).assets.resolve("app/main.js") == b"var shared;\nvar app;\n"

    def test_tree_including_requiring_file(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """A tree containing the requiring file includes it only once."""
        root = write_tree(
            {
                "assets/javascripts/main.js": "//= require_tree .\nvar main;",
                "assets/javascripts/other.js": "var other;",
            }
        )
        assert Environment(root).assets.resolve("main.js") == b"var other;\nvar main;\n"

    def test_stylesheet_block_comment(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """Stylesheets require through a block comment header."""
        root = write_tree(
            {
                "assets/stylesheets/app.css": "/*\n *= require base\n */\nbody { margin: 0; }\n",
                "assets/stylesheets/base.css": "html { color: red; }",
            }
        )
        assert Environment(root).assets.resolve("app.css") == b"html { color: red; }\n/*\n */\nbody { margin: 0; }\n"

    def test_file_added_to_tree_rebuilds_bundle(self, write_tree: Callable[[dict[str, str]], Path]) -> None:
        """A new file in a required tree invalidates the cached bundle."""
        root = write_tree(
            {
                "assets/javascripts/main.js": "//= require_tree ./lib\n",
                "assets/javascripts/lib/a.js": "var a;",
            }
        )
        assets = Environment(root).assets
        assert assets.resolve("main.js") == b"var a;\n"

        write_tree({"assets/javascripts/lib/b.js": "var b;"})
        assert assets.resolve("main.js") == b"var a;\nvar b;\n"
