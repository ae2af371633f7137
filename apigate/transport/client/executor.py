"""HTTP request executors and the client they run on."""

from __future__ import annotations

import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional


@dataclass
class HTTPRequest:
    """An outgoing HTTP request."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    timeout: Optional[float] = None


@dataclass
class HTTPResponse:
    """A fully read HTTP response."""

    status_code: int
    headers: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def _collect_headers(items) -> Dict[str, List[str]]:
    headers: Dict[str, List[str]] = {}
    for name, value in items:
        headers.setdefault(name, []).append(value)
    return headers


class HTTPClient:
    """Performs HTTP requests; any status code is returned as a response."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout

    def do(self, request: HTTPRequest) -> HTTPResponse:
        """Send the request and return the response; transport failures raise."""
        raw = urllib.request.Request(
            request.url,
            data=request.body,
            headers=dict(request.headers),
            method=request.method.upper(),
        )
        timeout = request.timeout if request.timeout is not None else self.timeout
        kwargs = {} if timeout is None else {"timeout": timeout}
        try:
            with urllib.request.urlopen(raw, **kwargs) as resp:
                return HTTPResponse(
                    status_code=resp.status,
                    headers=_collect_headers(resp.headers.items()),
                    body=resp.read(),
                )
        except urllib.error.HTTPError as err:
            with err:
                body = err.read() if err.fp is not None else b""
                return HTTPResponse(
                    status_code=err.code,
                    headers=_collect_headers(err.headers.items() if err.headers else []),
                    body=body,
                )


HTTPClientFactory = Callable[[], HTTPClient]
HTTPRequestExecutor = Callable[[HTTPRequest], HTTPResponse]

_DEFAULT_CLIENT = HTTPClient()


def new_http_client() -> HTTPClient:
    """Return the shared default client."""
    return _DEFAULT_CLIENT


def default_http_request_executor(client_factory: HTTPClientFactory) -> HTTPRequestExecutor:
    """Build an executor that sends each request with a client from the factory."""

    def execute(request: HTTPRequest) -> HTTPResponse:
        return client_factory().do(request)

    return execute