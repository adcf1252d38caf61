"""Request and status types exchanged with the storage and evaluator subsystems."""

from __future__ import annotations

import enum
import queue
from dataclasses import dataclass, field
from typing import Any, Optional


class StorageRequestType(enum.Enum):
    """Kinds of request the storage subsystem answers."""

    FETCH_CLUSTERS = enum.auto()
    FETCH_CONSUMERS = enum.auto()
    FETCH_TOPICS = enum.auto()
    FETCH_CONSUMER = enum.auto()
    FETCH_TOPIC = enum.auto()
    FETCH_CONSUMERS_FOR_TOPIC = enum.auto()
    SET_DELETE_GROUP = enum.auto()


_STATUS_LABELS = ("NOTFOUND", "OK", "WARN", "ERR", "STOP", "STALL", "REWIND")


class Status(enum.IntEnum):
    """Consumer status, ordered from least to most severe."""

    NOT_FOUND = 0
    OK = 1
    WARN = 2
    ERR = 3
    STOP = 4
    STALL = 5
    REWIND = 6

    def __str__(self) -> str:
        return _STATUS_LABELS[self.value]


class LogLevel(enum.Enum):
    """Application log levels that can be selected at run time."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"

    def __str__(self) -> str:
        return self.value


@dataclass
class Lag:
    value: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value}


@dataclass
class ConsumerOffset:
    offset: int = 0
    timestamp: int = 0
    lag: Optional[Lag] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "offset": self.offset,
            "timestamp": self.timestamp,
            "lag": self.lag.to_dict() if self.lag is not None else None,
        }


@dataclass
class ConsumerPartition:
    offsets: list[Optional[ConsumerOffset]] = field(default_factory=list)
    owner: str = ""
    client_id: str = ""
    current_lag: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "offsets": [o.to_dict() if o is not None else None for o in self.offsets],
            "owner": self.owner,
            "client_id": self.client_id,
            "current-lag": self.current_lag,
        }


@dataclass
class PartitionStatus:
    topic: str = ""
    partition: int = 0
    status: Status = Status.NOT_FOUND
    start: Optional[ConsumerOffset] = None
    end: Optional[ConsumerOffset] = None
    current_lag: int = 0
    complete: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "partition": self.partition,
            "status": str(self.status),
            "start": self.start.to_dict() if self.start is not None else None,
            "end": self.end.to_dict() if self.end is not None else None,
            "current_lag": self.current_lag,
            "complete": self.complete,
        }


@dataclass
class ConsumerGroupStatus:
    cluster: str = ""
    group: str = ""
    status: Status = Status.NOT_FOUND
    complete: float = 0.0
    partitions: list[PartitionStatus] = field(default_factory=list)
    total_partitions: int = 0
    maxlag: Optional[PartitionStatus] = None
    total_lag: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cluster": self.cluster,
            "group": self.group,
            "status": str(self.status),
            "complete": self.complete,
            "partitions": [p.to_dict() for p in self.partitions],
            "partition_count": self.total_partitions,
            "maxlag": self.maxlag.to_dict() if self.maxlag is not None else None,
            "totallag": self.total_lag,
        }


@dataclass
class StorageRequest:
    """A request for the storage subsystem; the answer, if any, arrives on ``reply``."""

    request_type: StorageRequestType
    cluster: str = ""
    topic: str = ""
    group: str = ""
    reply: Optional[queue.Queue] = None

    def respond(self, value: Any) -> None:
        """Deliver the answer; None means nothing was found."""
        if self.reply is None:
            raise RuntimeError("request does not expect a reply")
        self.reply.put(value)


@dataclass
class EvaluatorRequest:
    """A request for a consumer group's evaluated status."""

    cluster: str
    group: str
    show_all: bool = False
    reply: queue.Queue = field(default_factory=queue.Queue)

    def respond(self, value: Optional[ConsumerGroupStatus]) -> None:
        self.reply.put(value)


@dataclass
class ApplicationContext:
    """Shared state: the queues to the storage and evaluator subsystems and run-time flags."""

    storage_channel: queue.Queue = field(default_factory=queue.Queue)
    evaluator_channel: queue.Queue = field(default_factory=queue.Queue)
    log_level: LogLevel = LogLevel.INFO
    app_ready: bool = False
    timeout: Optional[float] = None

    def _wait(self, reply: queue.Queue) -> Any:
        try:
            return reply.get(timeout=self.timeout)
        except queue.Empty:
            raise TimeoutError("no reply received in time") from None

    def send_storage(self, request: StorageRequest) -> None:
        """Hand a request to storage without waiting for an answer."""
        self.storage_channel.put(request)

    def ask_storage(
        self,
        request_type: StorageRequestType,
        cluster: str = "",
        topic: str = "",
        group: str = "",
    ) -> Any:
        """Send a request to storage and wait for its answer."""
        request = StorageRequest(
            request_type=request_type,
            cluster=cluster,
            topic=topic,
            group=group,
            reply=queue.Queue(),
        )
        self.storage_channel.put(request)
        return self._wait(request.reply)

    def ask_evaluator(
        self, cluster: str, group: str, show_all: bool = False
    ) -> Optional[ConsumerGroupStatus]:
        """Ask the evaluator for a group's status and wait for it."""
        request = EvaluatorRequest(cluster=cluster, group=group, show_all=show_all)
        self.evaluator_channel.put(request)
        return self._wait(request.reply)