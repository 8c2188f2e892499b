"""Template and markup engines.

- JinjaTransform: ``.j2``, ``.jinja``, ``.jinja2`` rendered with Jinja2
- MarkdownTransform: ``.md``, ``.markdown`` rendered with Python-Markdown

Templates see every helper of the context's capability bag plus the
locals gathered from front matter (and, for layouts, ``content``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import markdown
from jinja2 import Environment as JinjaEnvironment
from jinja2 import TemplateSyntaxError

from cogwork_core.transforms.base import Transform

if TYPE_CHECKING:
    from cogwork_core.context import ProcessingContext

JINJA_EXTENSIONS = (".j2", ".jinja", ".jinja2")
MARKDOWN_EXTENSIONS = (".md", ".markdown")

DEFAULT_MARKDOWN_EXTENSIONS = ("extra", "sane_lists")


class JinjaTransform(Transform):
    """Renders content as a Jinja2 template."""

    name = "jinja"

    def __init__(self) -> None:
        self._jinja = JinjaEnvironment(
            autoescape=False,
            keep_trailing_newline=True,
        )

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        try:
            template = self._jinja.from_string(data.decode("utf-8"))
        except TemplateSyntaxError as exc:
            msg = f"line {exc.lineno}: {exc.message}"
            raise ValueError(msg) from exc
        return template.render(**context.template_variables()).encode("utf-8")


class MarkdownTransform(Transform):
    """Converts Markdown to HTML."""

    name = "markdown"

    def __init__(self, extensions: tuple[str, ...] = DEFAULT_MARKDOWN_EXTENSIONS) -> None:
        self.extensions = list(extensions)

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        # Markdown instances keep state between conversions
        converter = markdown.Markdown(extensions=self.extensions)
        return converter.convert(data.decode("utf-8")).encode("utf-8")
