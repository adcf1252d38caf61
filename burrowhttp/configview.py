"""Handlers that show the running configuration."""

from __future__ import annotations

from typing import Any

from burrowhttp.kafka import client_profile
from burrowhttp.responses import (
    Response,
    error_response,
    json_response,
    make_request_info,
)
from burrowhttp.settings import Settings

_OK = 200
_NOT_FOUND = 404


def _int32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


def _detail(settings: Settings, path: str, message: str, module: dict[str, Any]) -> Response:
    return json_response(
        settings,
        _OK,
        {
            "error": False,
            "message": message,
            "module": module,
            "request": make_request_info(path),
        },
    )


def main_config(settings: Settings, path: str) -> Response:
    """The general, logging, zookeeper and HTTP listener settings."""
    general = {
        "pidfile": settings.get_string("general.pidfile"),
        "stdout-logfile": settings.get_string("general.stdout-logfile"),
        "access-control-allow-origin": settings.get_string(
            "general.access-control-allow-origin"
        ),
    }
    logging = {
        "filename": settings.get_string("logging.filename"),
        "max-size": settings.get_int("logging.maxsize"),
        "max-backups": settings.get_int("logging.maxbackups"),
        "max-age": settings.get_int("logging.maxage"),
        "use-local-time": settings.get_bool("logging.use-localtime"),
        "use-compression": settings.get_bool("logging.use-compression"),
        "level": settings.get_string("logging.level"),
    }
    zookeeper = {
        "servers": settings.get_string_list("zookeeper.servers"),
        "timeout": settings.get_int("zookeeper.timeout"),
        "root-path": settings.get_string("zookeeper.root-path"),
    }
    servers = {
        name: {
            "address": settings.get_string(f"httpserver.{name}.address"),
            "tls": settings.get_string(f"httpserver.{name}.tls"),
            "timeout": settings.get_int(f"httpserver.{name}.timeout"),
        }
        for name in settings.get_mapping("httpserver")
    }
    return json_response(
        settings,
        _OK,
        {
            "error": False,
            "message": "main config returned",
            "request": make_request_info(path),
            "general": general,
            "logging": logging,
            "zookeeper": zookeeper,
            "httpserver": servers,
        },
    )


def module_list(settings: Settings, path: str, coordinator: str) -> Response:
    """The names of the modules configured for a coordinator, in sorted order."""
    return json_response(
        settings,
        _OK,
        {
            "error": False,
            "message": "module list returned",
            "request": make_request_info(path),
            "coordinator": coordinator,
            "modules": sorted(settings.get_mapping(coordinator)),
        },
    )


def storage_detail(settings: Settings, path: str, name: str) -> Response:
    root = f"storage.{name}"
    if not settings.is_set(root):
        return error_response(settings, _NOT_FOUND, "storage module not found", path)
    return _detail(
        settings,
        path,
        "storage module detail returned",
        {
            "class-name": settings.get_string(f"{root}.class-name"),
            "intervals": settings.get_int(f"{root}.intervals"),
            "min-distance": settings.get_int(f"{root}.min-distance"),
            "group-allowlist": settings.get_string(f"{root}.group-allowlist"),
            "expire-group": settings.get_int(f"{root}.expire-group"),
        },
    )


def consumer_detail(settings: Settings, path: str, name: str) -> Response:
    root = f"consumer.{name}"
    if not settings.is_set(root):
        return error_response(settings, _NOT_FOUND, "consumer module not found", path)
    return _detail(
        settings,
        path,
        "consumer module detail returned",
        {
            "class-name": settings.get_string(f"{root}.class-name"),
            "cluster": settings.get_string(f"{root}.cluster"),
            "servers": settings.get_string_list(f"{root}.servers"),
            "group-allowlist": settings.get_string(f"{root}.group-allowlist"),
            "zookeeper-path": settings.get_string(f"{root}.zookeeper-path"),
            "zookeeper-timeout": _int32(settings.get_int(f"{root}.zookeeper-timeout")),
            "client-profile": client_profile(
                settings, settings.get_string(f"{root}.client-profile")
            ),
            "offsets-topic": settings.get_string(f"{root}.offsets-topic"),
            "start-latest": settings.get_bool(f"{root}.start-latest"),
        },
    )


def evaluator_detail(settings: Settings, path: str, name: str) -> Response:
    root = f"evaluator.{name}"
    if not settings.is_set(root):
        return error_response(settings, _NOT_FOUND, "evaluator module not found", path)
    return _detail(
        settings,
        path,
        "evaluator module detail returned",
        {
            "class-name": settings.get_string(f"{root}.class-name"),
            "expire-cache": settings.get_int(f"{root}.expire-cache"),
        },
    )


def _notifier_common(settings: Settings, root: str) -> dict[str, Any]:
    return {
        "class-name": settings.get_string(f"{root}.class-name"),
        "group-allowlist": settings.get_string(f"{root}.group-allowlist"),
        "interval": settings.get_int(f"{root}.interval"),
        "threshold": settings.get_int(f"{root}.threshold"),
    }


def _templates(settings: Settings, root: str) -> dict[str, Any]:
    return {
        "template-open": settings.get_string(f"{root}.template-open"),
        "template-close": settings.get_string(f"{root}.template-close"),
        "extra": settings.get_string_mapping(f"{root}.extras"),
        "send-close": settings.get_bool(f"{root}.send-close"),
    }


def _http_notifier(settings: Settings, root: str) -> dict[str, Any]:
    return {
        **_notifier_common(settings, root),
        "timeout": settings.get_int(f"{root}.timeout"),
        "keepalive": settings.get_int(f"{root}.keepalive"),
        "url-open": settings.get_string(f"{root}.url-open"),
        "url-close": settings.get_string(f"{root}.url-close"),
        "method-open": settings.get_string(f"{root}.method-open"),
        "method-close": settings.get_string(f"{root}.method-close"),
        **_templates(settings, root),
        "extra-ca": settings.get_string(f"{root}.extra-ca"),
        "noverify": settings.get_string(f"{root}.noverify"),
    }


def _slack_notifier(settings: Settings, root: str) -> dict[str, Any]:
    return {
        **_notifier_common(settings, root),
        "timeout": settings.get_int(f"{root}.timeout"),
        "keepalive": settings.get_int(f"{root}.keepalive"),
        **_templates(settings, root),
        "channel": settings.get_string(f"{root}.channel"),
        "username": settings.get_string(f"{root}.username"),
        "icon-url": settings.get_string(f"{root}.icon-url"),
        "icon-emoji": settings.get_string(f"{root}.icon-emoji"),
    }


def _email_notifier(settings: Settings, root: str) -> dict[str, Any]:
    return {
        **_notifier_common(settings, root),
        **_templates(settings, root),
        "server": settings.get_string(f"{root}.server"),
        "port": settings.get_int(f"{root}.port"),
        "auth-type": settings.get_string(f"{root}.auth-type"),
        "username": settings.get_string(f"{root}.username"),
        "from": settings.get_string(f"{root}.from"),
        "to": settings.get_string(f"{root}.to"),
        "extra-ca": settings.get_string(f"{root}.extra-ca"),
        "noverify": settings.get_string(f"{root}.noverify"),
    }


def _null_notifier(settings: Settings, root: str) -> dict[str, Any]:
    return {**_notifier_common(settings, root), **_templates(settings, root)}


_NOTIFIER_VIEWS = {
    "http": _http_notifier,
    "email": _email_notifier,
    "slack": _slack_notifier,
    "null": _null_notifier,
}


def notifier_detail(settings: Settings, path: str, name: str) -> Response:
    """Show a notifier module using the fields of its class."""
    root = f"notifier.{name}"
    if not settings.is_set(root):
        return error_response(settings, _NOT_FOUND, "notifier module not found", path)
    view = _NOTIFIER_VIEWS.get(settings.get_string(f"{root}.class-name"))
    if view is None:
        # An unknown notifier class produces an empty successful response.
        return Response(status=_OK)
    return _detail(settings, path, "notifier module detail returned", view(settings, root))