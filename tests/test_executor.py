import threading
import urllib.error
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from apigate.transport.client.executor import (
    HTTPClient,
    HTTPRequest,
    default_http_request_executor,
    new_http_client,
)


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path == "/missing":
            body = b"not here"
            self.send_response(404)
        else:
            body = b"Hello, client\n"
            self.send_response(200)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args):
        pass


@pytest.fixture
def server_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def test_default_http_request_executor(server_url):
    execute = default_http_request_executor(new_http_client)
    resp = execute(HTTPRequest("GET", server_url, body=b""))
    assert resp.status_code == 200
    assert resp.text == "Hello, client\n"


def test_error_status_is_returned_not_raised(server_url):
    execute = default_http_request_executor(lambda: HTTPClient(timeout=5))
    resp = execute(HTTPRequest("GET", server_url + "/missing"))
    assert resp.status_code == 404
    assert resp.body == b"not here"


def test_new_http_client_is_shared_and_works(server_url):
    client = new_http_client()
    resp = client.do(HTTPRequest("GET", server_url))
    assert resp.status_code == 200
    assert resp.body == b"Hello, client\n"
    assert new_http_client() is client


def test_unreachable_host_raises():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    port = server.server_address[1]
    server.server_close()
    execute = default_http_request_executor(new_http_client)
    with pytest.raises(urllib.error.URLError):
        execute(HTTPRequest("GET", f"http://127.0.0.1:{port}/", timeout=2))