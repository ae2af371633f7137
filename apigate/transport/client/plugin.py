"""Replacement of backend request executors by registered client plugins."""

from __future__ import annotations

import io
from typing import Any, Callable, Dict, List, Tuple
from urllib.parse import unquote, urlsplit
from wsgiref.util import setup_testing_defaults

from apigate.transport.client.executor import HTTPRequest, HTTPRequestExecutor, HTTPResponse

NAMESPACE = "github.com/devopsfaith/krakend/transport/http/client/executor"

ClientFactory = Callable[[Dict[str, Any]], Callable]

_clients: Dict[str, ClientFactory] = {}


def register_client(name: str, factory: ClientFactory) -> None:
    """Register a factory building a WSGI handler that replaces the HTTP client."""
    _clients[name] = factory


def _log(logger: Any, level: str, *parts: Any) -> None:
    if logger is not None:
        getattr(logger, level)(" ".join(str(p) for p in parts))


def _serve(app: Callable, request: HTTPRequest) -> HTTPResponse:
    parts = urlsplit(request.url)
    body = request.body or b""
    environ: Dict[str, Any] = {
        "REQUEST_METHOD": request.method.upper(),
        "PATH_INFO": unquote(parts.path) or "/",
        "QUERY_STRING": parts.query,
        "SERVER_NAME": parts.hostname or "localhost",
        "SERVER_PORT": str(parts.port or (443 if parts.scheme == "https" else 80)),
        "CONTENT_LENGTH": str(len(body)),
        "wsgi.input": io.BytesIO(body),
        "wsgi.url_scheme": parts.scheme or "http",
    }
    for name, value in request.headers.items():
        key = name.upper().replace("-", "_")
        if key == "CONTENT_TYPE":
            environ[key] = value
        else:
            environ["HTTP_" + key] = value
    setup_testing_defaults(environ)

    state: Dict[str, Any] = {"status": "200 OK", "headers": []}
    chunks: List[bytes] = []

    def start_response(status: str, headers: List[Tuple[str, str]], exc_info: Any = None):
        state["status"], state["headers"] = status, headers
        return chunks.append

    result = app(environ, start_response)
    try:
        chunks.extend(result)
    finally:
        close = getattr(result, "close", None)
        if close is not None:
            close()
    headers: Dict[str, List[str]] = {}
    for name, value in state["headers"]:
        headers.setdefault(name, []).append(value)
    return HTTPResponse(int(state["status"].split()[0]), headers, b"".join(chunks))


def http_request_executor(
    logger: Any, next_factory: Callable[[Any], HTTPRequestExecutor]
) -> Callable[[Any], HTTPRequestExecutor]:
    """Wrap an executor factory so configured plugins replace the HTTP client."""

    def factory(cfg: Any) -> HTTPRequestExecutor:
        prefix = f"[BACKEND: {getattr(cfg, 'url_pattern', '') or ''}]"
        extra_config = getattr(cfg, "extra_config", None) or {}
        if NAMESPACE not in extra_config:
            return next_factory(cfg)
        extra = extra_config[NAMESPACE]
        if not isinstance(extra, dict):
            _log(logger, "debug", prefix, f"[{NAMESPACE}]", "Wrong extra config type for backend")
            return next_factory(cfg)
        if not _clients:
            _log(logger, "debug", prefix, "No plugins registered for the module")
            return next_factory(cfg)
        name = extra.get("name")
        if not isinstance(name, str):
            _log(logger, "debug", prefix, "No name defined in the extra config for",
                 getattr(cfg, "url_pattern", ""))
            return next_factory(cfg)
        client = _clients.get(name)
        if client is None:
            _log(logger, "debug", prefix, "No plugin registered as", name)
            return next_factory(cfg)
        if not callable(client):
            _log(logger, "warning", prefix, "Wrong plugin handler type:", name)
            return next_factory(cfg)
        try:
            app = client(extra)
        except Exception as err:  # noqa: BLE001
            _log(logger, "warning", prefix, "Error getting the plugin handler:", err)
            return next_factory(cfg)
        _log(logger, "debug", prefix, "Injecting plugin", name)

        def execute(request: HTTPRequest) -> HTTPResponse:
            return _serve(app, request)

        return execute

    return factory