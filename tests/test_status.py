from http import HTTPStatus
from types import SimpleNamespace

import pytest

from apigate.transport.client.executor import HTTPResponse
from apigate.transport.client.status import (
    NAMESPACE,
    HTTPResponseError,
    InvalidStatusCodeError,
    NamedHTTPResponseError,
    default_http_status_handler,
    get_http_status_handler,
    no_op_http_status_handler,
)

STATUS_CODES = [
    400, 401, 402, 403, 404, 405, 406, 407, 408, 409, 410, 411, 412, 413, 414,
    415, 416, 417, 418, 422, 423, 424, 426, 428, 429, 431, 451,
    500, 501, 502, 503, 504, 505, 506, 507, 508, 510, 511,
]


def _backend(extra=None):
    return SimpleNamespace(extra_config=extra or {})


@pytest.mark.parametrize("code", [200, 201])
def test_detailed_handler_success(code):
    handler = get_http_status_handler(
        _backend({NAMESPACE: {"return_error_details": "some"}})
    )
    resp = HTTPResponse(code, body=b'{"foo":"bar"}')
    assert handler(resp) is resp


@pytest.mark.parametrize("code", STATUS_CODES)
def test_detailed_handler_errors(code):
    handler = get_http_status_handler(
        _backend({NAMESPACE: {"return_error_details": "some"}})
    )
    msg = HTTPStatus(code).phrase
    resp = HTTPResponse(code, body=msg.encode())
    with pytest.raises(NamedHTTPResponseError) as info:
        handler(resp)
    err = info.value
    assert err.response is resp
    assert err.status_code() == code
    assert str(err) == msg
    assert err.name() == "some"


@pytest.mark.parametrize("code", [200, 201])
def test_default_handler_success(code):
    handler = get_http_status_handler(_backend())
    resp = HTTPResponse(code, body=b'{"foo":"bar"}')
    assert handler(resp) is resp


@pytest.mark.parametrize("code", STATUS_CODES)
def test_default_handler_errors(code):
    handler = get_http_status_handler(_backend())
    resp = HTTPResponse(code, body=HTTPStatus(code).phrase.encode())
    with pytest.raises(InvalidStatusCodeError):
        handler(resp)


def test_return_error_code_handler():
    handler = get_http_status_handler(_backend({NAMESPACE: {"return_error_code": True}}))
    resp = HTTPResponse(500, body=b"boom")
    with pytest.raises(HTTPResponseError) as info:
        handler(resp)
    assert not isinstance(info.value, NamedHTTPResponseError)
    assert info.value.status_code() == 500
    assert info.value.to_dict() == {"http_status_code": 500, "http_body": "boom"}


def test_empty_details_name_falls_back_to_default():
    handler = get_http_status_handler(
        _backend({NAMESPACE: {"return_error_details": "", "return_error_code": True}})
    )
    assert handler is default_http_status_handler


def test_no_op_handler_accepts_errors():
    resp = HTTPResponse(503)
    assert no_op_http_status_handler(resp) is resp