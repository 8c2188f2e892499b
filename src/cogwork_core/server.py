"""Live HTTP serving of pipelines.

AssetServer is a WSGI application mapping request paths to logical asset
names through the pipelines' URL prefixes (longest prefix first):

- ``/`` and paths ending in ``/`` map to ``index.html``;
- extension-less paths try ``<name>.html``, then ``<name>/index.html``.

Responses: 200 with the compiled bytes, 404 when nothing matches, 500 on
any other cogwork error (details hidden in production mode).
"""

from __future__ import annotations

import html
from collections.abc import Callable, Iterable, Iterator
from pathlib import PurePosixPath
from socketserver import ThreadingMixIn
from typing import TYPE_CHECKING, Any
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

import structlog

from cogwork_core.errors import AssetNotFoundError, CogworkError

if TYPE_CHECKING:
    from cogwork_core.environment import Environment
    from cogwork_core.pipeline import Asset, Pipeline

logger = structlog.get_logger(__name__)

INDEX = "index.html"
TEXT_TYPES = ("application/javascript", "application/json", "image/svg+xml")

StartResponse = Callable[..., Any]


def _with_charset(content_type: str) -> str:
    if content_type.startswith("text/") or content_type in TEXT_TYPES:
        return f"{content_type}; charset=utf-8"
    return content_type


class AssetServer:
    """WSGI application serving an Environment's pipelines.

    Example:
        >>> app = AssetServer(environment)
        >>> serve(environment, port=3000)
    """

    def __init__(self, environment: Environment) -> None:
        self.environment = environment

    def candidates(self, path: str) -> Iterator[tuple[Pipeline, str]]:
        """Yield ``(pipeline, logical_name)`` pairs a request path may map to."""
        served = [p for p in self.environment.pipelines if p.url is not None]
        served.sort(key=lambda p: len(p.url or ""), reverse=True)

        for pipeline in served:
            prefix = pipeline.url or "/"
            if prefix == "/":
                rest = path.lstrip("/")
            elif path == prefix or path.startswith(prefix + "/"):
                rest = path[len(prefix):].lstrip("/")
            else:
                continue

            if rest == "" or rest.endswith("/"):
                yield pipeline, rest + INDEX
            elif not PurePosixPath(rest).suffix:
                yield pipeline, f"{rest}.html"
                yield pipeline, f"{rest}/{INDEX}"
            else:
                yield pipeline, rest

    def lookup(self, path: str) -> Asset:
        """Return the compiled asset for a request path.

        Raises:
            AssetNotFoundError: If no pipeline has a match.
        """
        for pipeline, logical_name in self.candidates(path):
            try:
                return pipeline.find_asset(logical_name)
            except AssetNotFoundError:
                continue
        raise AssetNotFoundError(path)

    def __call__(self, environ: dict[str, Any], start_response: StartResponse) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET").upper()
        path = environ.get("PATH_INFO") or "/"

        if method not in ("GET", "HEAD"):
            return self._error(start_response, "405 Method Not Allowed", "Method not allowed")

        try:
            asset = self.lookup(path)
        except AssetNotFoundError:
            logger.info("request_not_found", path=path)
            return self._error(start_response, "404 Not Found", f"Not found: {path}")
        except CogworkError as exc:
            logger.error("request_failed", path=path, error=exc.user_message)
            if self.environment.config.production:
                detail = "Internal server error"
            else:
                detail = f"{exc.__class__.__name__}: {exc.user_message}"
            return self._error(start_response, "500 Internal Server Error", detail)

        headers = [
            ("Content-Type", _with_charset(asset.content_type)),
            ("Content-Length", str(len(asset.content))),
            ("Cache-Control", "no-cache"),
        ]
        start_response("200 OK", headers)
        logger.debug("request_served", path=path, asset=asset.logical_name)
        return [b""] if method == "HEAD" else [asset.content]

    def _error(self, start_response: StartResponse, status: str, message: str) -> list[bytes]:
        body = f"<h1>{html.escape(status)}</h1>\n<pre>{html.escape(message)}</pre>\n".encode()
        start_response(
            status,
            [
                ("Content-Type", "text/html; charset=utf-8"),
                ("Content-Length", str(len(body))),
            ],
        )
        return [body]


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each connection in its own thread."""

    daemon_threads = True


class LoggingRequestHandler(WSGIRequestHandler):
    """Routes access logs through structlog instead of stderr."""

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.info("http_request", client=self.address_string(), message=format % args)


def make_asset_server(environment: Environment, host: str = "127.0.0.1", port: int = 3000) -> WSGIServer:
    """Create (but do not start) a threaded server for ``environment``."""
    return make_server(
        host,
        port,
        AssetServer(environment),
        server_class=ThreadingWSGIServer,
        handler_class=LoggingRequestHandler,
    )


def serve(environment: Environment, host: str = "127.0.0.1", port: int = 3000) -> None:
    """Serve ``environment`` until interrupted."""
    server = make_asset_server(environment, host, port)
    logger.info("server_started", host=host, port=port)
    try:
        server.serve_forever()
    finally:
        server.server_close()
        logger.info("server_stopped")
