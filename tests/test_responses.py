import math
import socket

import pytest

from burrowhttp.messages import ConsumerOffset, Lag, Status
from burrowhttp.responses import (
    RequestInfo,
    Response,
    error_response,
    json_response,
    make_request_info,
    text_response,
)
from burrowhttp.settings import Settings


@pytest.fixture
def settings():
    return Settings()


def test_make_request_info_uses_path_and_hostname():
    info = make_request_info("/v3/kafka")
    assert info.url == "/v3/kafka"
    assert info.host == socket.gethostname()
    assert info.to_dict() == {"url": "/v3/kafka", "host": socket.gethostname()}


def test_json_response_round_trip(settings):
    payload = {"error": False, "message": "cluster list returned", "clusters": ["testcluster"]}
    response = json_response(settings, 200, payload)
    assert response.status == 200
    assert response.headers["Content-Type"] == "application/json"
    assert response.json() == payload


def test_json_response_without_cors_has_no_origin_header(settings):
    response = json_response(settings, 200, {"a": 1})
    assert "Access-Control-Allow-Origin" not in response.headers


def test_json_response_adds_cors_header(settings):
    settings.set("general.access-control-allow-origin", "*")
    response = json_response(settings, 200, {"a": 1})
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_json_response_encodes_request_info(settings):
    info = RequestInfo(url="/v3/config", host="somehost")
    response = json_response(settings, 200, {"request": info})
    assert response.json() == {"request": {"url": "/v3/config", "host": "somehost"}}


def test_unencodable_payload_gives_500(settings):
    response = json_response(settings, 200, {"bad": object()})
    assert response.status == 500
    assert response.body == b'{"error":true,"message":"could not encode JSON","result":{}}'
    assert response.headers["Content-Type"] == "application/json"


def test_nan_payload_gives_500(settings):
    response = json_response(settings, 200, {"value": math.nan})
    assert response.status == 500
    assert response.json()["error"] is True


def test_error_response_structure(settings):
    response = error_response(settings, 404, "cluster not found", "/v3/kafka/nocluster/topic")
    assert response.status == 404
    body = response.json()
    assert body["error"] is True
    assert body["message"] == "cluster not found"
    assert body["request"]["url"] == "/v3/kafka/nocluster/topic"
    assert body["request"]["host"] == socket.gethostname()


def test_text_response(settings):
    response = text_response(settings, 503, "STARTING")
    assert response.status == 503
    assert response.text() == "STARTING"
    assert response.body == b"STARTING"


def test_text_response_cors(settings):
    settings.set("general.access-control-allow-origin", "http://localhost")
    response = text_response(settings, 200, "GOOD")
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost"
    assert response.text() == "GOOD"


def test_response_defaults_are_independent():
    first = Response(status=200)
    second = Response(status=200)
    first.headers["X"] = "1"
    assert second.headers == {}
    assert first.body == b""