"""YAML front matter extraction.

A file may start with a block delimited by ``---`` lines::

    ---
    title: About
    layout: wide
    ---
    # About us

The block is parsed with PyYAML, merged into the context's locals and
stripped from the content. Files without the marker pass through unchanged.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import yaml

from cogwork_core.transforms.base import Transform

if TYPE_CHECKING:
    from cogwork_core.context import ProcessingContext

FRONT_MATTER_PATTERN = re.compile(
    rb"\A---[ \t]*\r?\n(?P<block>.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


def split_front_matter(data: bytes) -> tuple[dict[str, Any], bytes]:
    """Split leading front matter from ``data``.

    Args:
        data: Raw file content.

    Returns:
        Tuple of (metadata, body). Metadata is empty and body is ``data``
        unchanged when there is no front matter.

    Raises:
        ValueError: If the block is not a YAML mapping.
        yaml.YAMLError: If the block is not valid YAML.

    Example:
        >>> split_front_matter(b"---\\ntitle: Hi\\n---\\nbody")
        ({'title': 'Hi'}, b'body')
    """
    match = FRONT_MATTER_PATTERN.match(data)
    if match is None:
        return {}, data

    metadata = yaml.safe_load(match.group("block").decode("utf-8"))
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        msg = f"front matter must be a mapping, got {type(metadata).__name__}"
        raise ValueError(msg)
    return metadata, data[match.end():]


class FrontMatterTransform(Transform):
    """Preprocessor storing front matter in ``context.locals``."""

    name = "front_matter"

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        metadata, body = split_front_matter(data)
        context.locals.update(metadata)
        return body
