"""The HTTP API coordinator: listener configuration, request routing and serving."""

from __future__ import annotations

import ipaddress
import json
import logging
import re
import socket
import ssl
import threading
from dataclasses import dataclass
from http import HTTPStatus
from socketserver import ThreadingMixIn
from typing import Any, Callable, Optional
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer

from burrowhttp import configview, kafka
from burrowhttp.messages import ApplicationContext, LogLevel
from burrowhttp.metrics import MetricsRegistry
from burrowhttp.responses import (
    Response,
    error_response,
    json_response,
    make_request_info,
    text_response,
)
from burrowhttp.settings import Settings

_log = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 300
_NOT_FOUND_BODY = '{"error":true,"message":"invalid request type","result":{}}\n'
_METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

_HOSTNAME = re.compile(
    r"^(?=.{1,255}$)[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*\.?$"
)

_LOG_LEVELS = {
    "debug": LogLevel.DEBUG,
    "trace": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "warning": LogLevel.WARN,
    "warn": LogLevel.WARN,
    "error": LogLevel.ERROR,
    "fatal": LogLevel.FATAL,
}

Handler = Callable[[str, dict[str, str], bytes], Response]


def _split_host_port(address: str) -> tuple[str, str]:
    """Split "host:port" or "[v6host]:port"; raise ValueError if malformed."""
    if address.startswith("["):
        end = address.find("]")
        if end < 0 or address[end + 1 : end + 2] != ":":
            raise ValueError(f"malformed address {address!r}")
        host, port = address[1:end], address[end + 2 :]
        if "[" in host or "]" in port or "[" in port:
            raise ValueError(f"malformed address {address!r}")
        return host, port
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    if ":" in host or "[" in host or "]" in host:
        raise ValueError(f"too many colons in address {address!r}")
    return host, port


def _valid_host(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return bool(_HOSTNAME.match(host))


def validate_host_port(address: str, allow_blank_host: bool = False) -> bool:
    """Whether an address is "host:port" with a valid host (or a blank one, if allowed)."""
    try:
        host, port = _split_host_port(address)
    except ValueError:
        return False
    if not host:
        if not allow_blank_host:
            return False
    elif not _valid_host(host):
        return False
    if not port.isdigit():
        return False
    return 0 <= int(port) <= 65535


@dataclass
class ListenerConfig:
    """One configured HTTP listener."""

    name: str
    address: str
    timeout: int = _DEFAULT_TIMEOUT
    certfile: str = ""
    keyfile: str = ""
    ssl_context: Optional[ssl.SSLContext] = None


class _QuietHandler(WSGIRequestHandler):
    def setup(self) -> None:
        self.timeout = getattr(self.server, "request_timeout", None)
        super().setup()

    def log_message(self, format: str, *args: Any) -> None:
        _log.debug("%s - %s", self.address_string(), format % args)


class _Server(ThreadingMixIn, WSGIServer):
    daemon_threads = True
    keepalive = 0
    request_timeout: Optional[float] = None
    ssl_context: Optional[ssl.SSLContext] = None

    def get_request(self):
        conn, addr = super().get_request()
        if self.keepalive > 0:
            try:
                conn.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
                for option in ("TCP_KEEPIDLE", "TCP_KEEPINTVL"):
                    if hasattr(socket, option):
                        conn.setsockopt(
                            socket.IPPROTO_TCP, getattr(socket, option), int(self.keepalive)
                        )
            except OSError:
                pass
        if self.ssl_context is not None:
            conn = self.ssl_context.wrap_socket(
                conn, server_side=True, do_handshake_on_connect=False
            )
        return conn, addr


class _Server6(_Server):
    address_family = socket.AF_INET6


class Coordinator:
    """Runs the HTTP interface, managing every configured listener."""

    def __init__(
        self,
        app: ApplicationContext,
        settings: Optional[Settings] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.app = app
        self.settings = settings if settings is not None else Settings()
        self.metrics = metrics if metrics is not None else MetricsRegistry()
        self.listeners: dict[str, ListenerConfig] = {}
        self.servers: dict[str, _Server] = {}
        self._threads: list[threading.Thread] = []
        self._routes: Optional[list[tuple[str, list[str], Handler]]] = None

    # Configuration

    def _listener(self, name: str) -> ListenerConfig:
        settings = self.settings
        root = f"httpserver.{name}"
        address = settings.get_string(f"{root}.address")
        if not validate_host_port(address, True):
            raise ValueError("invalid HTTP server listener address")
        settings.set_default(f"{root}.timeout", _DEFAULT_TIMEOUT)
        listener = ListenerConfig(
            name=name, address=address, timeout=settings.get_int(f"{root}.timeout")
        )
        if settings.is_set(f"{root}.tls"):
            tls_name = settings.get_string(f"{root}.tls")
            certfile = settings.get_string(f"tls.{tls_name}.certfile")
            keyfile = settings.get_string(f"tls.{tls_name}.keyfile")
            cafile = settings.get_string(f"tls.{tls_name}.cafile")
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
            if cafile:
                try:
                    context.load_verify_locations(cafile=cafile)
                except (OSError, ssl.SSLError) as exc:
                    raise ValueError(f"cannot read TLS CA file: {exc}") from exc
            if not certfile or not keyfile:
                raise ValueError("TLS HTTP server specified with missing certificate or key")
            try:
                context.load_cert_chain(certfile, keyfile)
            except (OSError, ssl.SSLError) as exc:
                raise ValueError(f"cannot read TLS certificate or key file: {exc}") from exc
            listener.certfile = certfile
            listener.keyfile = keyfile
            listener.ssl_context = context
        return listener

    def configure(self) -> None:
        """Validate every listener and build the routes; raise ValueError on bad config."""
        _log.info("configuring")
        servers = self.settings.get_mapping("httpserver")
        if not servers:
            self.settings.set("httpserver.default.address", ":0")
            servers = self.settings.get_mapping("httpserver")
        self.listeners = {name: self._listener(name) for name in sorted(servers)}
        self._routes = self._build_routes()

    def _build_routes(self) -> list[tuple[str, list[str], Handler]]:
        app, s = self.app, self.settings
        table: list[tuple[str, str, Handler]] = [
            ("GET", "/burrow/admin", self._admin),
            ("GET", "/burrow/admin/ready", self._ready),
            ("GET", "/metrics", self._metrics),
            ("GET", "/v3/kafka", lambda path, p, b: kafka.cluster_list(app, s, path)),
            (
                "GET",
                "/v3/kafka/:cluster",
                lambda path, p, b: kafka.cluster_detail(s, path, p["cluster"]),
            ),
            (
                "GET",
                "/v3/kafka/:cluster/topic",
                lambda path, p, b: kafka.topic_list(app, s, path, p["cluster"]),
            ),
            (
                "GET",
                "/v3/kafka/:cluster/topic/:topic",
                lambda path, p, b: kafka.topic_detail(app, s, path, p["cluster"], p["topic"]),
            ),
            (
                "GET",
                "/v3/kafka/:cluster/topic/:topic/consumers",
                lambda path, p, b: kafka.topic_consumers(
                    app, s, path, p["cluster"], p["topic"]
                ),
            ),
            (
                "GET",
                "/v3/kafka/:cluster/consumer",
                lambda path, p, b: kafka.consumer_list(app, s, path, p["cluster"]),
            ),
            (
                "GET",
                "/v3/kafka/:cluster/consumer/:consumer",
                lambda path, p, b: kafka.consumer_detail(
                    app, s, path, p["cluster"], p["consumer"]
                ),
            ),
            (
                "GET",
                "/v3/kafka/:cluster/consumer/:consumer/status",
                lambda path, p, b: kafka.consumer_status(
                    app, s, path, p["cluster"], p["consumer"], False
                ),
            ),
            (
                "GET",
                "/v3/kafka/:cluster/consumer/:consumer/lag",
                lambda path, p, b: kafka.consumer_status(
                    app, s, path, p["cluster"], p["consumer"], True
                ),
            ),
            ("GET", "/v3/config", lambda path, p, b: configview.main_config(s, path)),
            (
                "GET",
                "/v3/config/storage",
                lambda path, p, b: configview.module_list(s, path, "storage"),
            ),
            (
                "GET",
                "/v3/config/storage/:name",
                lambda path, p, b: configview.storage_detail(s, path, p["name"]),
            ),
            (
                "GET",
                "/v3/config/evaluator",
                lambda path, p, b: configview.module_list(s, path, "evaluator"),
            ),
            (
                "GET",
                "/v3/config/evaluator/:name",
                lambda path, p, b: configview.evaluator_detail(s, path, p["name"]),
            ),
            (
                "GET",
                "/v3/config/cluster",
                lambda path, p, b: configview.module_list(s, path, "cluster"),
            ),
            (
                "GET",
                "/v3/config/cluster/:cluster",
                lambda path, p, b: kafka.cluster_detail(s, path, p["cluster"]),
            ),
            (
                "GET",
                "/v3/config/consumer",
                lambda path, p, b: configview.module_list(s, path, "consumer"),
            ),
            (
                "GET",
                "/v3/config/consumer/:name",
                lambda path, p, b: configview.consumer_detail(s, path, p["name"]),
            ),
            (
                "GET",
                "/v3/config/notifier",
                lambda path, p, b: configview.module_list(s, path, "notifier"),
            ),
            (
                "GET",
                "/v3/config/notifier/:name",
                lambda path, p, b: configview.notifier_detail(s, path, p["name"]),
            ),
            (
                "DELETE",
                "/v3/kafka/:cluster/consumer/:consumer",
                lambda path, p, b: kafka.consumer_delete(
                    app, s, path, p["cluster"], p["consumer"], ""
                ),
            ),
            (
                "DELETE",
                "/v3/kafka/:cluster/consumer/:consumer/topic/:topic",
                lambda path, p, b: kafka.consumer_delete(
                    app, s, path, p["cluster"], p["consumer"], p["topic"]
                ),
            ),
            ("GET", "/v3/admin/loglevel", self._get_log_level),
            ("POST", "/v3/admin/loglevel", self._set_log_level),
        ]
        return [(method, pattern.split("/")[1:], fn) for method, pattern, fn in table]

    # Serving

    def start(self) -> None:
        """Open every listener and serve on each; on failure close the opened ones and raise."""
        _log.info("starting")
        started: dict[str, _Server] = {}
        for name, listener in self.listeners.items():
            host, port = _split_host_port(listener.address)
            server_class = _Server6 if ":" in host else _Server
            try:
                server = server_class((host, int(port)), _QuietHandler)
            except OSError:
                _log.error("failed to listen on %s", listener.address, exc_info=True)
                for opened in started.values():
                    try:
                        opened.server_close()
                    except OSError:
                        _log.error("could not close listener", exc_info=True)
                raise
            server.set_app(self)
            server.keepalive = listener.timeout
            server.request_timeout = listener.timeout if listener.timeout > 0 else None
            server.ssl_context = listener.ssl_context
            _log.info("started listener %s", server.server_address)
            started[name] = server
        self.servers = started
        for server in started.values():
            thread = threading.Thread(target=server.serve_forever, daemon=True)
            thread.start()
            self._threads.append(thread)

    def stop(self) -> None:
        """Close every listener; raise RuntimeError if any failed to close."""
        _log.info("shutdown")
        failures: list[BaseException] = []
        for server in self.servers.values():
            try:
                server.shutdown()
                server.server_close()
            except Exception as exc:  # collected and reported together
                failures.append(exc)
        self.servers = {}
        self._threads = []
        if failures:
            _log.error("errors shutting down: %s", failures)
            raise RuntimeError("error shutting down HTTP servers")

    # Routing

    @staticmethod
    def _match(pattern: list[str], parts: list[str]) -> Optional[dict[str, str]]:
        if len(pattern) != len(parts):
            return None
        params: dict[str, str] = {}
        for segment, part in zip(pattern, parts):
            if segment.startswith(":"):
                if not part:
                    return None
                params[segment[1:]] = part
            elif segment != part:
                return None
        return params

    def _find(self, method: str, path: str) -> Optional[tuple[Handler, dict[str, str]]]:
        if not path.startswith("/") or self._routes is None:
            return None
        parts = path.split("/")[1:]
        for route_method, pattern, fn in self._routes:
            if route_method != method:
                continue
            params = self._match(pattern, parts)
            if params is not None:
                return fn, params
        return None

    def _allowed(self, path: str, exclude: str) -> list[str]:
        methods = {
            route_method
            for route_method, _, _ in self._routes or []
            if route_method != exclude and self._find(route_method, path) is not None
        }
        if methods:
            methods.add("OPTIONS")
        return sorted(methods)

    def handle(self, method: str, path: str, body: bytes = b"") -> Response:
        """Route one request and return its response."""
        if self._routes is None:
            raise RuntimeError("coordinator is not configured")
        method = method.upper()
        path = path.split("?", 1)[0] or "/"
        found = self._find(method, path)
        if found is not None:
            fn, params = found
            return fn(path, params, body or b"")

        if method != "CONNECT" and path != "/":
            alternative = path[:-1] if path.endswith("/") else path + "/"
            if self._find(method, alternative) is not None:
                code = 301 if method == "GET" else 308
                return Response(status=code, headers={"Location": alternative})

        if method == "OPTIONS":
            allowed = self._allowed(path, "OPTIONS")
            if allowed:
                return Response(status=200, headers={"Allow": ", ".join(allowed)})

        allowed = self._allowed(path, method)
        if allowed:
            return Response(
                status=405,
                headers={
                    "Allow": ", ".join(allowed),
                    "Content-Type": "text/plain; charset=utf-8",
                    "X-Content-Type-Options": "nosniff",
                },
                body=b"Method Not Allowed\n",
            )

        return Response(
            status=404,
            headers={
                "Content-Type": "text/plain; charset=utf-8",
                "X-Content-Type-Options": "nosniff",
            },
            body=_NOT_FOUND_BODY.encode("utf-8"),
        )

    def __call__(self, environ: dict[str, Any], start_response: Callable) -> list[bytes]:
        """WSGI entry point."""
        method = environ.get("REQUEST_METHOD", "GET")
        raw_path = environ.get("SCRIPT_NAME", "") + (environ.get("PATH_INFO", "") or "/")
        path = raw_path.encode("latin-1", "replace").decode("utf-8", "replace")
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        body = environ["wsgi.input"].read(length) if length > 0 else b""
        response = self.handle(method, path, body)
        try:
            reason = HTTPStatus(response.status).phrase
        except ValueError:
            reason = "Unknown"
        headers = list(response.headers.items())
        headers.append(("Content-Length", str(len(response.body))))
        start_response(f"{response.status} {reason}", headers)
        return [response.body]

    # Handlers

    def _admin(self, path: str, params: dict[str, str], body: bytes) -> Response:
        return text_response(self.settings, 200, "GOOD")

    def _ready(self, path: str, params: dict[str, str], body: bytes) -> Response:
        if self.app.app_ready:
            return text_response(self.settings, 200, "READY")
        return text_response(self.settings, 503, "STARTING")

    def _metrics(self, path: str, params: dict[str, str], body: bytes) -> Response:
        self.metrics.collect(self.app)
        return Response(
            status=200,
            headers={"Content-Type": _METRICS_CONTENT_TYPE},
            body=self.metrics.render().encode("utf-8"),
        )

    def _get_log_level(self, path: str, params: dict[str, str], body: bytes) -> Response:
        return json_response(
            self.settings,
            200,
            {
                "error": False,
                "message": "log level returned",
                "level": str(self.app.log_level),
                "request": make_request_info(path),
            },
        )

    @staticmethod
    def _decode_level(body: bytes) -> str:
        text = body.decode("utf-8", "replace").lstrip(" \t\r\n")
        document, _ = json.JSONDecoder().raw_decode(text)
        if document is None:
            return ""
        if not isinstance(document, dict):
            raise ValueError("message body is not an object")
        if "level" in document:
            value = document["level"]
        else:
            value = next(
                (v for k, v in document.items() if k.lower() == "level"), None
            )
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("level is not a string")
        return value

    def _set_log_level(self, path: str, params: dict[str, str], body: bytes) -> Response:
        try:
            requested = self._decode_level(body)
        except ValueError:
            return error_response(self.settings, 400, "could not decode message body", path)
        level = _LOG_LEVELS.get(requested.lower())
        if level is None:
            return error_response(self.settings, 404, "unknown log level", path)
        self.app.log_level = level
        return json_response(
            self.settings,
            200,
            {"error": False, "message": "set log level", "request": make_request_info(path)},
        )