"""Handlers for the cluster, topic and consumer endpoints."""

from __future__ import annotations

from typing import Any, Optional

from burrowhttp.messages import (
    ApplicationContext,
    Status,
    StorageRequest,
    StorageRequestType,
)
from burrowhttp.responses import (
    Response,
    error_response,
    json_response,
    make_request_info,
)
from burrowhttp.settings import Settings

_OK = 200
_NOT_FOUND = 404


def tls_profile(settings: Settings, name: str) -> Optional[dict[str, Any]]:
    """The named TLS profile as shown by the API, or None if it is not configured."""
    root = f"tls.{name}"
    if not name or not settings.is_set(root):
        return None
    return {
        "name": name,
        "noverify": settings.get_bool(f"{root}.noverify"),
        "certfile": settings.get_string(f"{root}.certfile"),
        "keyfile": settings.get_string(f"{root}.keyfile"),
        "cafile": settings.get_string(f"{root}.cafile"),
    }


def sasl_profile(settings: Settings, name: str) -> Optional[dict[str, Any]]:
    """The named SASL profile as shown by the API, or None if it is not configured."""
    root = f"sasl.{name}"
    if not name or not settings.is_set(root):
        return None
    return {
        "name": name,
        "handshake-first": settings.get_bool(f"{root}.handshake-first"),
        "username": settings.get_string(f"{root}.username"),
    }


def client_profile(settings: Settings, name: str) -> dict[str, Any]:
    """The named client profile, with its TLS and SASL profiles resolved."""
    root = f"client-profile.{name}"
    return {
        "name": name,
        "client-id": settings.get_string(f"{root}.client-id"),
        "kafka-version": settings.get_string(f"{root}.kafka-version"),
        "tls": tls_profile(settings, settings.get_string(f"{root}.tls")),
        "sasl": sasl_profile(settings, settings.get_string(f"{root}.sasl")),
    }


def _ok(settings: Settings, path: str, message: str, **fields: Any) -> Response:
    payload: dict[str, Any] = {"error": False, "message": message}
    payload.update(fields)
    payload["request"] = make_request_info(path)
    return json_response(settings, _OK, payload)


def cluster_list(app: ApplicationContext, settings: Settings, path: str) -> Response:
    """List the clusters known to storage."""
    clusters = app.ask_storage(StorageRequestType.FETCH_CLUSTERS)
    return _ok(settings, path, "cluster list returned", clusters=list(clusters or []))


def cluster_detail(settings: Settings, path: str, cluster: str) -> Response:
    """Show the configuration of one cluster module."""
    root = f"cluster.{cluster}"
    if not settings.is_set(root):
        return error_response(settings, _NOT_FOUND, "cluster module not found", path)
    module = {
        "class-name": settings.get_string(f"{root}.class-name"),
        "servers": settings.get_string_list(f"{root}.servers"),
        "client-profile": client_profile(
            settings, settings.get_string(f"{root}.client-profile")
        ),
        "topic-refresh": settings.get_int(f"{root}.topic-refresh"),
        "offset-refresh": settings.get_int(f"{root}.offset-refresh"),
    }
    return _ok(settings, path, "cluster module detail returned", module=module)


def topic_list(
    app: ApplicationContext, settings: Settings, path: str, cluster: str
) -> Response:
    """List the topics of a cluster."""
    topics = app.ask_storage(StorageRequestType.FETCH_TOPICS, cluster=cluster)
    if topics is None:
        return error_response(settings, _NOT_FOUND, "cluster not found", path)
    return _ok(settings, path, "topic list returned", topics=list(topics))


def topic_detail(
    app: ApplicationContext, settings: Settings, path: str, cluster: str, topic: str
) -> Response:
    """Show the latest offsets of each partition of a topic."""
    offsets = app.ask_storage(
        StorageRequestType.FETCH_TOPIC, cluster=cluster, topic=topic
    )
    if offsets is None:
        return error_response(settings, _NOT_FOUND, "cluster or topic not found", path)
    return _ok(settings, path, "topic offsets returned", offsets=list(offsets))


def topic_consumers(
    app: ApplicationContext, settings: Settings, path: str, cluster: str, topic: str
) -> Response:
    """List the consumer groups that consume a topic."""
    consumers = app.ask_storage(
        StorageRequestType.FETCH_CONSUMERS_FOR_TOPIC, cluster=cluster, topic=topic
    )
    if consumers is None:
        return error_response(settings, _NOT_FOUND, "cluster not found", path)
    return _ok(settings, path, "consumers of topic returned", consumers=list(consumers))


def consumer_list(
    app: ApplicationContext, settings: Settings, path: str, cluster: str
) -> Response:
    """List the consumer groups of a cluster."""
    consumers = app.ask_storage(StorageRequestType.FETCH_CONSUMERS, cluster=cluster)
    if consumers is None:
        return error_response(settings, _NOT_FOUND, "cluster not found", path)
    return _ok(settings, path, "consumer list returned", consumers=list(consumers))


def consumer_detail(
    app: ApplicationContext, settings: Settings, path: str, cluster: str, group: str
) -> Response:
    """Show the stored offsets of a consumer group, by topic and partition."""
    topics = app.ask_storage(
        StorageRequestType.FETCH_CONSUMER, cluster=cluster, group=group
    )
    if topics is None:
        return error_response(
            settings, _NOT_FOUND, "cluster or consumer not found", path
        )
    return _ok(settings, path, "consumer detail returned", topics=dict(topics))


def consumer_status(
    app: ApplicationContext,
    settings: Settings,
    path: str,
    cluster: str,
    group: str,
    show_all: bool,
) -> Response:
    """Show the evaluated status of a group; 404 when the evaluator cannot find it."""
    status = app.ask_evaluator(cluster, group, show_all)
    if status is None:
        raise RuntimeError("evaluator returned no status")
    code = _NOT_FOUND if status.status == Status.NOT_FOUND else _OK
    return json_response(
        settings,
        code,
        {
            "error": False,
            "message": "consumer status returned",
            "status": status,
            "request": make_request_info(path),
        },
    )


def consumer_delete(
    app: ApplicationContext,
    settings: Settings,
    path: str,
    cluster: str,
    group: str,
    topic: str = "",
) -> Response:
    """Ask storage to forget a consumer group, or one topic of it, without waiting."""
    app.send_storage(
        StorageRequest(
            request_type=StorageRequestType.SET_DELETE_GROUP,
            cluster=cluster,
            group=group,
            topic=topic,
        )
    )
    return _ok(settings, path, "consumer group removed")