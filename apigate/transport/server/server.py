"""HTTP server creation and TLS configuration for the gateway."""

from __future__ import annotations

import logging
import socket
import ssl
import threading
import urllib.request
from http import HTTPStatus
from types import SimpleNamespace
from typing import Any, Callable, List, Optional, Sequence
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

HEADER_COMPLETE_RESPONSE_VALUE = "true"
HEADER_INCOMPLETE_RESPONSE_VALUE = "false"
COMPLETE_RESPONSE_HEADER_NAME = "X-Krakend-Completed"
HEADERS_TO_SEND = ["Content-Type"]

_LOGGER_PREFIX = "[SERVICE: HTTP Server]"
_access_log = logging.getLogger(__name__)

CURVE_P256 = 23
CURVE_P384 = 24
CURVE_P521 = 25

DEFAULT_CURVES = [CURVE_P521, CURVE_P384, CURVE_P256]
DEFAULT_CIPHER_SUITES = [0xC02F, 0xC02B, 0xC030, 0xC02C, 0xCCA8, 0xCCA9]

_VERSIONS = {
    "SSL3.0": ssl.TLSVersion.SSLv3,
    "TLS10": ssl.TLSVersion.TLSv1,
    "TLS11": ssl.TLSVersion.TLSv1_1,
    "TLS12": ssl.TLSVersion.TLSv1_2,
    "TLS13": ssl.TLSVersion.TLSv1_3,
}

_CIPHER_NAMES = {
    0xC02F: "ECDHE-RSA-AES128-GCM-SHA256",
    0xC02B: "ECDHE-ECDSA-AES128-GCM-SHA256",
    0xC030: "ECDHE-RSA-AES256-GCM-SHA384",
    0xC02C: "ECDHE-ECDSA-AES256-GCM-SHA384",
    0xCCA8: "ECDHE-RSA-CHACHA20-POLY1305",
    0xCCA9: "ECDHE-ECDSA-CHACHA20-POLY1305",
}

_CURVE_NAMES = {CURVE_P256: "prime256v1", CURVE_P384: "secp384r1", CURVE_P521: "secp521r1"}


class PublicKeyError(Exception):
    """Raised when TLS is enabled but no public key is defined."""

    def __init__(self, message: str = "public key not defined") -> None:
        super().__init__(message)


class PrivateKeyError(Exception):
    """Raised when TLS is enabled but no private key is defined."""

    def __init__(self, message: str = "private key not defined") -> None:
        super().__init__(message)


class _NoOpLogger:
    def __getattr__(self, _name: str) -> Callable[..., None]:
        return lambda *args, **kwargs: None


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if obj is None:
        return default
    value = getattr(obj, name, default)
    return default if value is None else value


def default_to_http_error(error: Exception) -> int:
    """Translate any error into an internal server error status."""
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    return status.value


def parse_tls_version(key: str) -> ssl.TLSVersion:
    """Map a version name to its TLS version; unknown names mean TLS 1.3."""
    return _VERSIONS.get(key, ssl.TLSVersion.TLSv1_3)


def parse_curve_ids(curve_preferences: Optional[Sequence[int]]) -> List[int]:
    """Return the given curve ids, or the defaults when none are given."""
    if not curve_preferences:
        return list(DEFAULT_CURVES)
    return [int(c) for c in curve_preferences]


def parse_cipher_suites(cipher_suites: Optional[Sequence[int]]) -> List[int]:
    """Return the given cipher suite ids, or the defaults when none are given."""
    if not cipher_suites:
        return list(DEFAULT_CIPHER_SUITES)
    return [int(c) for c in cipher_suites]


def _apply_common(ctx: ssl.SSLContext, cfg: Any) -> None:
    for attr, key in (("minimum_version", "min_version"), ("maximum_version", "max_version")):
        try:
            setattr(ctx, attr, parse_tls_version(_get(cfg, key, "")))
        except (ValueError, ssl.SSLError):
            pass
    names = [_CIPHER_NAMES[c] for c in parse_cipher_suites(_get(cfg, "cipher_suites")) if c in _CIPHER_NAMES]
    if names:
        try:
            ctx.set_ciphers(":".join(names))
        except ssl.SSLError:
            pass
    curves = [_CURVE_NAMES[c] for c in parse_curve_ids(_get(cfg, "curve_preferences")) if c in _CURVE_NAMES]
    if curves:
        try:
            ctx.set_ecdh_curve(curves[0])
        except (ValueError, ssl.SSLError):
            pass


def _load_cert_pool(ctx: ssl.SSLContext, disable_system: bool, ca_certs: Sequence[str], logger: Any) -> None:
    if not disable_system:
        try:
            ctx.load_default_certs()
        except (OSError, ssl.SSLError) as err:
            logger.error(f"{_LOGGER_PREFIX} Cannot load system CA pool: {err}")
    for path in ca_certs or []:
        try:
            ctx.load_verify_locations(cafile=path)
        except (OSError, ssl.SSLError) as err:
            logger.error(f"{_LOGGER_PREFIX} Cannot load certificate CA {path}: {err}")


def parse_tls_config(cfg: Any, logger: Any = None) -> Optional[ssl.SSLContext]:
    """Build the server TLS context from the TLS section, or None when disabled."""
    if cfg is None or _get(cfg, "is_disabled", False):
        return None
    logger = logger or _NoOpLogger()
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    _apply_common(ctx, cfg)
    if not _get(cfg, "enable_mtls", False):
        return ctx
    _load_cert_pool(ctx, _get(cfg, "disable_system_ca_pool", False), _get(cfg, "ca_certs", []), logger)
    public_key = _get(cfg, "public_key", "")
    try:
        ctx.load_verify_locations(cafile=public_key)
    except (OSError, ssl.SSLError) as err:
        logger.error(f"{_LOGGER_PREFIX} Cannot load public key {public_key}: {err}")
        return ctx
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def parse_client_tls_config(cfg: Any, logger: Any = None) -> Optional[ssl.SSLContext]:
    """Build the client TLS context from the client TLS section, or None."""
    if cfg is None:
        return None
    logger = logger or _NoOpLogger()
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    if _get(cfg, "allow_insecure_connections", False):
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    _load_cert_pool(ctx, _get(cfg, "disable_system_ca_pool", False), _get(cfg, "ca_certs", []), logger)
    _apply_common(ctx, cfg)
    for pair in _get(cfg, "client_certs", []):
        cert, key = _get(pair, "certificate", ""), _get(pair, "private_key", "")
        try:
            ctx.load_cert_chain(cert, key)
        except (OSError, ssl.SSLError) as err:
            logger.error(f"{_LOGGER_PREFIX} Cannot load client certificate {cert}, {key}: {err}")
    return ctx


_transport_lock = threading.Lock()
_transport_configured = False
default_client_tls: Optional[ssl.SSLContext] = None


def init_http_default_transport(cfg: Any, logger: Any = None) -> None:
    """Configure the process-wide HTTP transport; only the first call has effect."""
    global _transport_configured, default_client_tls
    logger = logger or _NoOpLogger()
    if _get(cfg, "allow_insecure_connections", False):
        if getattr(cfg, "client_tls", None) is None:
            cfg.client_tls = SimpleNamespace()
        cfg.client_tls.allow_insecure_connections = True
    with _transport_lock:
        if _transport_configured:
            return
        _transport_configured = True
        default_client_tls = parse_client_tls_config(getattr(cfg, "client_tls", None), logger)
        handlers = [urllib.request.HTTPSHandler(context=default_client_tls)] if default_client_tls else []
        urllib.request.install_opener(urllib.request.build_opener(*handlers))


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:
        _access_log.debug("%s %s", self.address_string(), format % args)


def _join_host_port(host: str, port: int) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


class HTTPServer:
    """A WSGI server bound lazily when served."""

    def __init__(self, address: str, port: int, handler: Callable, tls_context: Optional[ssl.SSLContext] = None,
                 read_timeout: Optional[float] = None) -> None:
        self.address = address
        self.port = port
        self.handler = handler
        self.tls_context = tls_context
        self.read_timeout = read_timeout
        self._server: Optional[WSGIServer] = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def addr(self) -> str:
        return _join_host_port(self.address, self.port)

    @property
    def server_port(self) -> Optional[int]:
        return self._server.server_port if self._server else None

    def serve(self, certfile: Optional[str] = None, keyfile: Optional[str] = None) -> None:
        """Bind and serve until shut down."""
        if self.tls_context is not None and certfile:
            self.tls_context.load_cert_chain(certfile, keyfile)
        server = make_server(self.address, self.port, self.handler, handler_class=_QuietHandler)
        if self.read_timeout:
            server.timeout = self.read_timeout
        if self.tls_context is not None and certfile:
            server.socket = self.tls_context.wrap_socket(server.socket, server_side=True)
        with self._lock:
            if self._closed:
                server.server_close()
                return
            self._server = server
        try:
            server.serve_forever(poll_interval=0.05)
        finally:
            server.server_close()

    def shutdown(self) -> None:
        """Stop serving."""
        with self._lock:
            self._closed = True
            server = self._server
        if server is not None:
            server.shutdown()


def new_server(cfg: Any, handler: Callable, logger: Any = None) -> HTTPServer:
    """Return a server ready to serve the handler with the service config."""
    return HTTPServer(
        _get(cfg, "address", ""),
        int(_get(cfg, "port", 0)),
        handler,
        parse_tls_config(getattr(cfg, "tls", None), logger),
        _get(cfg, "read_timeout"),
    )


def run_server(cfg: Any, handler: Callable, stop_event: Optional[threading.Event] = None, logger: Any = None) -> None:
    """Serve the handler until ``stop_event`` is set; serving errors are raised."""
    server = new_server(cfg, handler, logger)
    certfile = keyfile = None
    if server.tls_context is not None:
        tls = cfg.tls
        certfile, keyfile = _get(tls, "public_key", ""), _get(tls, "private_key", "")
        if not certfile:
            raise PublicKeyError()
        if not keyfile:
            raise PrivateKeyError()
    if stop_event is None:
        server.serve(certfile, keyfile)
        return
    errors: List[BaseException] = []

    def target() -> None:
        try:
            server.serve(certfile, keyfile)
        except BaseException as err:  # noqa: BLE001
            errors.append(err)

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    while thread.is_alive():
        if stop_event.wait(0.05):
            server.shutdown()
            thread.join()
            return
    if errors:
        raise errors[0]


def free_port() -> int:
    """Return a currently unused local TCP port."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]