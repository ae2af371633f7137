import html
import ssl
import threading
import time
import urllib.request
from types import SimpleNamespace

import pytest

from apigate.transport.server import server as srv


def dummy_handler(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [f'Hello, "{html.escape(environ["PATH_INFO"])}"'.encode()]


@pytest.mark.parametrize(
    "key,expected",
    [
        ("SSL3.0", 0x0300),
        ("TLS10", 0x0301),
        ("TLS11", 0x0302),
        ("TLS12", 0x0303),
        ("TLS13", 0x0304),
        ("Unknown", 0x0304),
    ],
)
def test_parse_tls_version(key, expected):
    assert int(srv.parse_tls_version(key)) == expected


def test_parse_curve_ids():
    assert srv.parse_curve_ids([1, 2, 3]) == [1, 2, 3]
    assert srv.parse_curve_ids([]) == srv.DEFAULT_CURVES


def test_parse_cipher_suites():
    assert srv.parse_cipher_suites([1, 2, 3]) == [1, 2, 3]
    assert srv.parse_cipher_suites(None) == srv.DEFAULT_CIPHER_SUITES


def test_default_to_http_error():
    assert srv.default_to_http_error(ValueError("x")) == 500


def test_parse_tls_config_disabled():
    assert srv.parse_tls_config(None) is None
    assert srv.parse_tls_config(SimpleNamespace(is_disabled=True)) is None


def test_parse_tls_config_enabled():
    ctx = srv.parse_tls_config(SimpleNamespace())
    assert ctx.minimum_version == ssl.TLSVersion.TLSv1_3
    assert ctx.verify_mode == ssl.CERT_NONE


def test_parse_client_tls_insecure():
    ctx = srv.parse_client_tls_config(
        SimpleNamespace(allow_insecure_connections=True, disable_system_ca_pool=True)
    )
    assert ctx.verify_mode == ssl.CERT_NONE
    assert srv.parse_client_tls_config(None) is None


def test_new_server_addr():
    s = srv.new_server(SimpleNamespace(address="localhost", port=8080), dummy_handler)
    assert s.addr == "localhost:8080"
    assert s.tls_context is None


@pytest.mark.parametrize(
    "tls,error",
    [
        (SimpleNamespace(), srv.PublicKeyError),
        (SimpleNamespace(public_key="placeholder"), srv.PrivateKeyError),
        (SimpleNamespace(public_key="placeholder", private_key="placeholder"), FileNotFoundError),
    ],
)
def test_run_server_err(tls, error):
    with pytest.raises(error):
        srv.run_server(SimpleNamespace(tls=tls), dummy_handler, threading.Event())


def _run_and_get(cfg):
    stop = threading.Event()
    result = {}

    def target():
        try:
            srv.run_server(cfg, dummy_handler, stop)
            result["ok"] = True
        except Exception as err:
            result["err"] = err

    thread = threading.Thread(target=target)
    thread.start()
    body, status = None, None
    for _ in range(100):
        try:
            with urllib.request.urlopen(f"http://127.0.0.1:{cfg.port}/foo", timeout=2) as resp:
                status, body = resp.status, resp.read()
            break
        except OSError:
            time.sleep(0.05)
    stop.set()
    thread.join(5)
    return status, body, result


def test_run_server_plain():
    status, body, result = _run_and_get(SimpleNamespace(address="127.0.0.1", port=srv.free_port()))
    assert status == 200
    assert body == b'Hello, "/foo"'
    assert result == {"ok": True}


def test_run_server_disabled_tls():
    cfg = SimpleNamespace(address="127.0.0.1", port=srv.free_port(), tls=SimpleNamespace(is_disabled=True))
    status, _, result = _run_and_get(cfg)
    assert status == 200
    assert result == {"ok": True}