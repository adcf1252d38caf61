"""JSON and plain-text HTTP responses with the common request description."""

from __future__ import annotations

import enum
import json
import socket
from dataclasses import dataclass, field
from typing import Any

from burrowhttp.settings import Settings

_CORS_KEY = "general.access-control-allow-origin"
_ENCODE_FAILURE = b'{"error":true,"message":"could not encode JSON","result":{}}'


@dataclass(frozen=True)
class RequestInfo:
    """The path that was requested and the host that answered it."""

    url: str
    host: str

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "host": self.host}


@dataclass
class Response:
    """A finished HTTP response: status code, headers and body bytes."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        """The body decoded as JSON."""
        return json.loads(self.body.decode("utf-8"))

    def text(self) -> str:
        """The body decoded as UTF-8 text."""
        return self.body.decode("utf-8")


def _hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return ""


def make_request_info(path: str) -> RequestInfo:
    """Describe a request by its path and this machine's host name."""
    return RequestInfo(url=path, host=_hostname())


def _base_headers(settings: Settings) -> dict[str, str]:
    headers: dict[str, str] = {}
    origin = settings.get_string(_CORS_KEY)
    if origin:
        headers["Access-Control-Allow-Origin"] = origin
    return headers


def _encode_default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, enum.Enum):
        return str(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")


def json_response(settings: Settings, status: int, payload: Any) -> Response:
    """Encode a payload as JSON; an unencodable payload gives a 500 error body."""
    headers = _base_headers(settings)
    headers["Content-Type"] = "application/json"
    try:
        body = json.dumps(
            payload,
            default=_encode_default,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf-8")
    except (TypeError, ValueError):
        return Response(status=500, headers=headers, body=_ENCODE_FAILURE)
    return Response(status=status, headers=headers, body=body)


def error_response(settings: Settings, status: int, message: str, path: str) -> Response:
    """A JSON error body with the given status and message."""
    return json_response(
        settings,
        status,
        {"error": True, "message": message, "request": make_request_info(path)},
    )


def text_response(settings: Settings, status: int, text: str) -> Response:
    """A plain-text body, carrying the CORS header when one is configured."""
    headers = _base_headers(settings)
    headers["Content-Type"] = "text/plain; charset=utf-8"
    return Response(status=status, headers=headers, body=text.encode("utf-8"))