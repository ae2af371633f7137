"""Policies deciding how backend HTTP status codes are treated."""

from __future__ import annotations

from typing import Callable, Dict, Optional

from apigate.transport.client.executor import HTTPResponse

NAMESPACE = "github.com/devopsfaith/krakend/http"

HTTPStatusHandler = Callable[[HTTPResponse], HTTPResponse]


class InvalidStatusCodeError(Exception):
    """Raised when the backend status code is neither 200 nor 201."""

    def __init__(self, message: str = "invalid status code") -> None:
        super().__init__(message)


class HTTPResponseError(Exception):
    """Backend error carrying the status code and the response body."""

    def __init__(self, code: int, msg: str, response: Optional[HTTPResponse] = None) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg
        self.response = response

    def __str__(self) -> str:
        return self.msg

    def status_code(self) -> int:
        """The status code returned by the backend."""
        return self.code

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"http_status_code": self.code}
        if self.msg:
            data["http_body"] = self.msg
        return data


class NamedHTTPResponseError(HTTPResponseError):
    """HTTPResponseError tagged with the name of the failing backend."""

    def __init__(
        self, code: int, msg: str, name: str, response: Optional[HTTPResponse] = None
    ) -> None:
        super().__init__(code, msg, response)
        self._name = name

    def name(self) -> str:
        """The name of the backend where the error happened."""
        return self._name


def get_http_status_handler(remote) -> HTTPStatusHandler:
    """Pick the status handler configured in the backend's extra config."""
    extra = getattr(remote, "extra_config", None) or {}
    section = extra.get(NAMESPACE)
    if isinstance(section, dict):
        if "return_error_details" in section:
            name = section["return_error_details"]
            if isinstance(name, str) and name:
                return detailed_http_status_handler(name)
        elif section.get("return_error_code") is True:
            return error_http_status_handler
    return default_http_status_handler


def _is_success(response: HTTPResponse) -> bool:
    return response.status_code in (200, 201)


def default_http_status_handler(response: HTTPResponse) -> HTTPResponse:
    """Accept 200 and 201; raise InvalidStatusCodeError otherwise."""
    if not _is_success(response):
        raise InvalidStatusCodeError()
    return response


def _body_text(response: HTTPResponse) -> str:
    return (response.body or b"").decode("utf-8", errors="replace")


def error_http_status_handler(response: HTTPResponse) -> HTTPResponse:
    """Raise an HTTPResponseError with the status code and body on failure."""
    if _is_success(response):
        return response
    raise HTTPResponseError(response.status_code, _body_text(response), response)


def no_op_http_status_handler(response: HTTPResponse) -> HTTPResponse:
    """Accept every response."""
    return response


def detailed_http_status_handler(name: str) -> HTTPStatusHandler:
    """Handler raising NamedHTTPResponseError tagged with ``name`` on failure."""

    def handle(response: HTTPResponse) -> HTTPResponse:
        if _is_success(response):
            return response
        raise NamedHTTPResponseError(
            response.status_code, _body_text(response), name, response
        )

    return handle