"""Layout wrapping for pages.

After a page's engines produced its body, the body is embedded into a
layout template from the ``views`` pipeline:

- ``layout: name`` in front matter selects ``layouts/name<ext>``;
- without it, the environment's ``config.layout`` default is used;
- ``layout: false`` (or null) disables wrapping.

The layout runs through its own transform chain with ``content`` bound to
the page body and the page's locals visible. A layout declared in front
matter that cannot be found is fatal; a missing default layout is skipped.
The layout directories are recorded as dependencies, so a layout added
later re-wraps cached pages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from cogwork_core.errors import AssetNotFoundError, LayoutNotFoundError
from cogwork_core.transforms.base import Transform

if TYPE_CHECKING:
    from cogwork_core.context import ProcessingContext

logger = structlog.get_logger(__name__)

LAYOUT_KEY = "layout"
LAYOUTS_DIRECTORY = "layouts"
VIEWS_PIPELINE = "views"


class LayoutTransform(Transform):
    """Postprocessor embedding page bodies in their layout."""

    name = "layout"

    def __init__(self, views: str = VIEWS_PIPELINE) -> None:
        self.views = views

    def apply(self, data: bytes, context: ProcessingContext) -> bytes:
        explicit = LAYOUT_KEY in context.locals
        layout = context.locals[LAYOUT_KEY] if explicit else context.environment.config.layout
        if layout is None or layout is False:
            return data

        views = context.environment.get_pipeline(self.views)
        logical = f"{LAYOUTS_DIRECTORY}/{layout}{context.output_extension}"
        for root in views.paths:
            context.depend_on((root / logical).parent)
        try:
            physical = views.find(logical)
        except AssetNotFoundError:
            if explicit:
                raise LayoutNotFoundError(str(layout), context.path) from None
            logger.debug("default_layout_missing", layout=layout, page=str(context.path))
            return data

        locals = {**context.locals, "content": data.decode("utf-8")}
        child = context.child(views, physical, logical, locals)
        return views.run_chain(child)
