"""Injection of registered handler plugins in front of the server."""

from __future__ import annotations

from typing import Any, Callable, Dict, List

NAMESPACE = "github_com/devopsfaith/krakend/transport/http/server/handler"
_LOG_PREFIX = "[PLUGIN: Server]"

HandlerFactory = Callable[[Dict[str, Any], Callable], Callable]
RunServer = Callable[..., Any]

_handlers: Dict[str, HandlerFactory] = {}


def register_handler(name: str, factory: HandlerFactory) -> None:
    """Register a factory wrapping the server handler under ``name``."""
    _handlers[name] = factory


def _log(logger: Any, level: str, *parts: Any) -> None:
    if logger is not None:
        getattr(logger, level)(" ".join(str(p) for p in parts))


def new(logger: Any, next_run: RunServer) -> RunServer:
    """Wrap ``next_run`` so the configured plugins wrap the handler first."""

    def run(cfg: Any, handler: Callable, *args: Any, **kwargs: Any) -> Any:
        extra_config = getattr(cfg, "extra_config", None) or {}
        if NAMESPACE not in extra_config:
            return next_run(cfg, handler, *args, **kwargs)
        extra = extra_config[NAMESPACE]
        if not isinstance(extra, dict):
            _log(logger, "debug", _LOG_PREFIX, "Wrong extra_config type")
            return next_run(cfg, handler, *args, **kwargs)
        if not _handlers:
            _log(logger, "debug", _LOG_PREFIX, "No plugins registered for the module")
            return next_run(cfg, handler, *args, **kwargs)

        raw = extra.get("name")
        if isinstance(raw, str):
            names: List[str] = [raw]
        elif isinstance(raw, list):
            names = [n for n in raw if isinstance(n, str)]
        else:
            _log(logger, "debug", _LOG_PREFIX, "No plugins required in the extra config")
            return next_run(cfg, handler, *args, **kwargs)

        for name in names:
            factory = _handlers.get(name)
            if factory is None:
                _log(logger, "debug", _LOG_PREFIX, "No plugin resgistered as", name)
                return next_run(cfg, handler, *args, **kwargs)
            if not callable(factory):
                _log(logger, "warning", _LOG_PREFIX, "Wrong plugin handler type:", name)
                return next_run(cfg, handler, *args, **kwargs)
            try:
                wrapped = factory(extra, handler)
            except Exception as err:  # noqa: BLE001
                _log(logger, "warning", _LOG_PREFIX, "Error getting the plugin handler:", err)
                continue
            _log(logger, "debug", _LOG_PREFIX, "Injecting plugin", name)
            handler = wrapped
        return next_run(cfg, handler, *args, **kwargs)

    return run