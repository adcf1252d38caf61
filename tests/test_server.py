import threading
import urllib.request
from wsgiref.util import setup_testing_defaults

import pytest

from burrowhttp.messages import ApplicationContext, LogLevel, StorageRequestType
from burrowhttp.server import Coordinator, validate_host_port
from burrowhttp.settings import Settings


@pytest.fixture
def coordinator():
    app = ApplicationContext(timeout=5)
    coord = Coordinator(app, Settings())
    coord.configure()
    return coord


def _answer_storage(app, *replies):
    seen = []

    def run():
        for reply in replies:
            request = app.storage_channel.get(timeout=5)
            seen.append(request)
            request.respond(reply)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, seen


def test_handle_admin(coordinator):
    response = coordinator.handle("GET", "/burrow/admin")
    assert response.status == 200
    assert response.text() == "GOOD"


def test_handle_ready(coordinator):
    response = coordinator.handle("GET", "/burrow/admin/ready")
    assert response.status == 503
    assert response.text() == "STARTING"

    coordinator.app.app_ready = True
    response = coordinator.handle("GET", "/burrow/admin/ready")
    assert response.status == 200
    assert response.text() == "READY"


def test_cors_header_on_admin():
    settings = Settings()
    settings.set("general.access-control-allow-origin", "*")
    coord = Coordinator(ApplicationContext(timeout=5), settings)
    coord.configure()
    response = coord.handle("GET", "/burrow/admin")
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_get_log_level(coordinator):
    response = coordinator.handle("GET", "/v3/admin/loglevel")
    assert response.status == 200
    data = response.json()
    assert data["error"] is False
    assert data["level"] == "info"


def test_set_log_level(coordinator):
    response = coordinator.handle("POST", "/v3/admin/loglevel", b'{"level": "debug"}')
    assert response.status == 200
    assert response.json()["error"] is False
    assert coordinator.app.log_level == LogLevel.DEBUG


@pytest.mark.parametrize(
    "word, level",
    [("trace", LogLevel.DEBUG), ("WARNING", LogLevel.WARN), ("fatal", LogLevel.FATAL)],
)
def test_set_log_level_aliases(coordinator, word, level):
    body = ('{"level": "%s"}' % word).encode()
    response = coordinator.handle("POST", "/v3/admin/loglevel", body)
    assert response.status == 200
    assert coordinator.app.log_level == level


def test_set_unknown_log_level(coordinator):
    response = coordinator.handle("POST", "/v3/admin/loglevel", b'{"level": "loud"}')
    assert response.status == 404
    assert response.json()["message"] == "unknown log level"
    assert coordinator.app.log_level == LogLevel.INFO


def test_set_log_level_bad_body(coordinator):
    response = coordinator.handle("POST", "/v3/admin/loglevel", b"not json")
    assert response.status == 400
    assert response.json()["message"] == "could not decode message body"


def test_default_handler(coordinator):
    response = coordinator.handle("GET", "/v3/no/such/uri")
    assert response.status == 404
    assert response.json()["error"] is True


def test_method_not_allowed(coordinator):
    response = coordinator.handle("POST", "/v3/kafka")
    assert response.status == 405
    assert "GET" in response.headers["Allow"]


def test_trailing_slash_redirect(coordinator):
    response = coordinator.handle("GET", "/v3/kafka/")
    assert response.status == 301
    assert response.headers["Location"] == "/v3/kafka"


def test_cluster_list_route(coordinator):
    thread, seen = _answer_storage(coordinator.app, ["testcluster"])
    response = coordinator.handle("GET", "/v3/kafka")
    thread.join(5)
    assert response.status == 200
    assert response.json()["clusters"] == ["testcluster"]
    assert seen[0].request_type == StorageRequestType.FETCH_CLUSTERS


def test_consumer_delete_route(coordinator):
    response = coordinator.handle("DELETE", "/v3/kafka/testcluster/consumer/testgroup")
    assert response.status == 200
    assert response.json()["error"] is False
    request = coordinator.app.storage_channel.get_nowait()
    assert request.request_type == StorageRequestType.SET_DELETE_GROUP
    assert (request.cluster, request.group, request.topic) == ("testcluster", "testgroup", "")


def test_metrics_route(coordinator):
    thread, _ = _answer_storage(coordinator.app, ["c"], [], ["t"], [7])
    response = coordinator.handle("GET", "/metrics")
    thread.join(5)
    assert response.status == 200
    assert 'burrow_kafka_topic_partition_offset{cluster="c",partition="0",topic="t"} 7' in (
        response.text()
    )


def test_wsgi_call(coordinator):
    environ = {"PATH_INFO": "/burrow/admin"}
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(coordinator(environ, start_response))
    assert captured["status"] == "200 OK"
    assert body == b"GOOD"
    assert captured["headers"]["Content-Length"] == "4"


def test_configure_adds_default_listener(coordinator):
    assert coordinator.settings.get_string("httpserver.default.address") == ":0"
    assert coordinator.listeners["default"].timeout == 300


def test_configure_rejects_bad_address():
    settings = Settings()
    settings.set("httpserver.bad.address", "nohostport")
    with pytest.raises(ValueError, match="invalid HTTP server listener address"):
        Coordinator(ApplicationContext(), settings).configure()


def test_configure_tls_missing_certificate():
    settings = Settings()
    settings.set("httpserver.secure.address", ":8443")
    settings.set("httpserver.secure.tls", "web")
    settings.set("tls.web.keyfile", "key.pem")
    with pytest.raises(ValueError, match="missing certificate or key"):
        Coordinator(ApplicationContext(), settings).configure()


def test_configure_tls_unreadable_ca(tmp_path):
    settings = Settings()
    settings.set("httpserver.secure.address", ":8443")
    settings.set("httpserver.secure.tls", "web")
    settings.set("tls.web.cafile", str(tmp_path / "missing.pem"))
    with pytest.raises(ValueError, match="cannot read TLS CA file"):
        Coordinator(ApplicationContext(), settings).configure()


def test_handle_before_configure():
    with pytest.raises(RuntimeError):
        Coordinator(ApplicationContext()).handle("GET", "/burrow/admin")


@pytest.mark.parametrize(
    "address, blank, expected",
    [
        (":0", True, True),
        (":0", False, False),
        ("localhost:8000", False, True),
        ("127.0.0.1:65535", False, True),
        ("[::1]:80", False, True),
        ("localhost:65536", False, False),
        ("localhost", True, False),
        ("bad_host!:80", False, False),
        ("localhost:abc", False, False),
    ],
)
def test_validate_host_port(address, blank, expected):
    assert validate_host_port(address, blank) is expected


def test_start_serves_and_stop():
    settings = Settings()
    settings.set("httpserver.local.address", "127.0.0.1:0")
    coord = Coordinator(ApplicationContext(timeout=5), settings)
    coord.configure()
    coord.start()
    try:
        port = coord.servers["local"].server_address[1]
        with urllib.request.urlopen(f"http://127.0.0.1:{port}/burrow/admin", timeout=5) as r:
            assert r.status == 200
            assert r.read() == b"GOOD"
    finally:
        coord.stop()
    assert coord.servers == {}