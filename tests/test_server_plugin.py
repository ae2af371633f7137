import html
from types import SimpleNamespace
from wsgiref.util import setup_testing_defaults

from apigate.transport.server import plugin


class RecordingLogger:
    def __init__(self):
        self.messages = []

    def debug(self, msg):
        self.messages.append(("debug", msg))

    def warning(self, msg):
        self.messages.append(("warning", msg))


def hello_factory(extra, _next):
    def app(environ, start_response):
        start_response("200 OK", [])
        return [f'Hello, "{html.escape(environ["PATH_INFO"])}"'.encode()]

    return app


def failing_factory(extra, _next):
    raise RuntimeError("boom")


def original(environ, start_response):
    start_response("500 Internal Server Error", [])
    return [b"original"]


def call(app, path):
    environ = {"PATH_INFO": path}
    setup_testing_defaults(environ)
    status = {}
    body = b"".join(app(environ, lambda s, h, e=None: status.setdefault("s", s)))
    return status["s"], body


def capture_runner():
    seen = {}

    def run(cfg, handler):
        seen["handler"] = handler
        return "done"

    return run, seen


def cfg_with(name):
    return SimpleNamespace(extra_config={plugin.NAMESPACE: {"name": name}})


def test_plugin_wraps_handler():
    plugin.register_handler("server-example", hello_factory)
    run, seen = capture_runner()
    logger = RecordingLogger()
    assert plugin.new(logger, run)(cfg_with("server-example"), original) == "done"
    status, body = call(seen["handler"], "/path")
    assert status.startswith("200")
    assert body == b'Hello, "/path"'
    assert ("debug", "[PLUGIN: Server] Injecting plugin server-example") in logger.messages


def test_no_config_passes_handler():
    run, seen = capture_runner()
    plugin.new(RecordingLogger(), run)(SimpleNamespace(extra_config={}), original)
    assert seen["handler"] is original


def test_unknown_plugin_passes_original():
    plugin.register_handler("server-example", hello_factory)
    run, seen = capture_runner()
    plugin.new(RecordingLogger(), run)(cfg_with(["missing"]), original)
    assert seen["handler"] is original


def test_failing_factory_is_skipped():
    plugin.register_handler("server-fail", failing_factory)
    plugin.register_handler("server-example", hello_factory)
    run, seen = capture_runner()
    logger = RecordingLogger()
    plugin.new(logger, run)(cfg_with(["server-fail", "server-example"]), original)
    assert call(seen["handler"], "/x")[1] == b'Hello, "/x"'
    assert any(level == "warning" for level, _ in logger.messages)