"""Compressors for javascripts and stylesheets.

Compressors are ``(bytes) -> bytes`` callables registered by category and
name. Built-in:

- javascript: ``rjsmin`` (default)
- stylesheet: ``csscompressor`` (default)
"""

from __future__ import annotations

from collections.abc import Callable

import csscompressor
import rjsmin

JAVASCRIPT = "javascript"
STYLESHEET = "stylesheet"

CATEGORY_FOR_EXTENSION = {
    ".js": JAVASCRIPT,
    ".css": STYLESHEET,
}

DEFAULT_COMPRESSORS = {
    JAVASCRIPT: "rjsmin",
    STYLESHEET: "csscompressor",
}

Compressor = Callable[[bytes], bytes]


def compress_javascript(data: bytes) -> bytes:
    """Minify javascript with rjsmin."""
    return rjsmin.jsmin(data.decode("utf-8")).encode("utf-8")


def compress_stylesheet(data: bytes) -> bytes:
    """Minify CSS with csscompressor."""
    return csscompressor.compress(data.decode("utf-8")).encode("utf-8")


class UnknownCompressorError(KeyError):
    """Raised when a compressor name is not registered for a category."""


class CompressorRegistry:
    """Named compressors per category.

    Example:
        >>> registry = CompressorRegistry.with_defaults()
        >>> registry.get("javascript", "rjsmin")(b"var a = 1 ;")
        b'var a=1;'
    """

    def __init__(self) -> None:
        self._compressors: dict[str, dict[str, Compressor]] = {}

    @classmethod
    def with_defaults(cls) -> CompressorRegistry:
        """Return a registry holding the built-in compressors."""
        registry = cls()
        registry.register(JAVASCRIPT, "rjsmin", compress_javascript)
        registry.register(STYLESHEET, "csscompressor", compress_stylesheet)
        return registry

    def register(self, category: str, name: str, compressor: Compressor) -> None:
        """Register ``compressor`` under ``name``; replaces any previous one."""
        self._compressors.setdefault(category, {})[name] = compressor

    def get(self, category: str, name: str) -> Compressor:
        """Return the compressor ``name`` of ``category``.

        Raises:
            UnknownCompressorError: If it is not registered.
        """
        try:
            return self._compressors[category][name]
        except KeyError:
            available = ", ".join(sorted(self._compressors.get(category, {}))) or "none"
            msg = f"Unknown {category} compressor '{name}'. Available: {available}"
            raise UnknownCompressorError(msg) from None

    def names(self, category: str) -> list[str]:
        """Registered compressor names of ``category``."""
        return sorted(self._compressors.get(category, {}))
