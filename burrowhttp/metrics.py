"""Prometheus gauges describing consumer lag and topic offsets."""

from __future__ import annotations

import math
import threading
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from burrowhttp.messages import (
    ApplicationContext,
    ConsumerGroupStatus,
    Status,
    StorageRequestType,
)


def _format_value(value: float) -> str:
    """Format a sample value the way the Prometheus text format writes it."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign, digits, exponent = Decimal(repr(float(value))).normalize().as_tuple()
    count = len(digits)
    point = count + exponent
    power = point - 1
    precision = 6
    if precision > count and count >= point:
        precision = count
    prefix = "-" if sign else ""
    text = "".join(str(d) for d in digits)
    if power < -4 or power >= precision:
        mantissa = text[0] + ("." + text[1:] if count > 1 else "")
        return f"{prefix}{mantissa}e{'-' if power < 0 else '+'}{abs(power):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{text}"
    if point >= count:
        return f"{prefix}{text}{'0' * (point - count)}"
    return f"{prefix}{text[:point]}.{text[point:]}"


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


class GaugeVec:
    """A family of gauges sharing a name and a fixed set of label names."""

    def __init__(self, name: str, description: str, label_names: Iterable[str]) -> None:
        self.name = name
        self.description = description
        self.label_names = tuple(label_names)
        self._values: dict[tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def _key(self, labels: Mapping[str, object]) -> tuple[str, ...]:
        if len(labels) != len(self.label_names) or set(labels) != set(self.label_names):
            raise ValueError(
                f"{self.name} expects labels {sorted(self.label_names)}, got {sorted(labels)}"
            )
        return tuple(str(labels[name]) for name in self.label_names)

    def set(self, labels: Mapping[str, object], value: float) -> None:
        """Set the gauge with exactly these labels to a value."""
        key = self._key(labels)
        with self._lock:
            self._values[key] = float(value)

    def delete(self, labels: Mapping[str, object]) -> bool:
        """Remove the gauge with exactly these labels; False if there was none."""
        try:
            key = self._key(labels)
        except ValueError:
            return False
        with self._lock:
            return self._values.pop(key, None) is not None

    def delete_partial_match(self, labels: Mapping[str, object]) -> int:
        """Remove every gauge carrying all the given label values; returns how many."""
        positions = []
        for name, value in labels.items():
            if name not in self.label_names:
                return 0
            positions.append((self.label_names.index(name), str(value)))
        with self._lock:
            doomed = [
                key
                for key in self._values
                if all(key[index] == value for index, value in positions)
            ]
            for key in doomed:
                del self._values[key]
        return len(doomed)

    def samples(self) -> list[tuple[dict[str, str], float]]:
        """Current gauges as (labels, value), ordered by label values."""
        order = sorted(range(len(self.label_names)), key=lambda i: self.label_names[i])
        with self._lock:
            items = list(self._values.items())
        items.sort(key=lambda item: tuple(item[0][i] for i in order))
        return [(dict(zip(self.label_names, key)), value) for key, value in items]

    def render(self) -> str:
        """The family in Prometheus text exposition format; empty when it has no gauges."""
        samples = self.samples()
        if not samples:
            return ""
        lines = [
            f"# HELP {self.name} {_escape_help(self.description)}",
            f"# TYPE {self.name} gauge",
        ]
        for labels, value in samples:
            pairs = ",".join(
                f'{name}="{_escape_label(labels[name])}"' for name in sorted(labels)
            )
            lines.append(f"{self.name}{{{pairs}}} {_format_value(value)}")
        return "\n".join(lines) + "\n"


class MetricsRegistry:
    """The gauges exported on the metrics endpoint."""

    def __init__(self) -> None:
        self.consumer_total_lag = GaugeVec(
            "burrow_kafka_consumer_lag_total",
            "The sum of all partition current lag values for the group",
            ["cluster", "consumer_group"],
        )
        self.consumer_status = GaugeVec(
            "burrow_kafka_consumer_status",
            "The status of the consumer group. It is calculated from the highest status "
            "for the individual partitions. Statuses are an index list from NOTFOUND, OK, "
            "WARN, ERR, STOP, STALL, REWIND",
            ["cluster", "consumer_group"],
        )
        self.consumer_partition_current_offset = GaugeVec(
            "burrow_kafka_consumer_current_offset",
            "Latest offset that Burrow is storing for this partition",
            ["cluster", "consumer_group", "topic", "partition"],
        )
        self.consumer_partition_lag = GaugeVec(
            "burrow_kafka_consumer_partition_lag",
            "Number of messages the consumer group is behind by for a partition as "
            "reported by Burrow",
            ["cluster", "consumer_group", "topic", "partition"],
        )
        self.topic_partition_offset = GaugeVec(
            "burrow_kafka_topic_partition_offset",
            "Latest offset the topic that Burrow is storing for this partition",
            ["cluster", "topic", "partition"],
        )

    @property
    def gauges(self) -> list[GaugeVec]:
        return [
            self.consumer_total_lag,
            self.consumer_status,
            self.consumer_partition_current_offset,
            self.consumer_partition_lag,
            self.topic_partition_offset,
        ]

    def delete_consumer_metrics(self, cluster: str, consumer: str) -> None:
        """Drop every gauge labelled with this consumer group."""
        labels = {"cluster": cluster, "consumer_group": consumer}
        self.consumer_total_lag.delete(labels)
        self.consumer_status.delete(labels)
        self.consumer_partition_lag.delete_partial_match(labels)
        self.consumer_partition_current_offset.delete_partial_match(labels)

    def delete_topic_metrics(self, cluster: str, topic: str) -> None:
        """Drop every gauge labelled with this topic, consumer gauges included."""
        labels = {"cluster": cluster, "topic": topic}
        self.topic_partition_offset.delete_partial_match(labels)
        self.consumer_partition_lag.delete_partial_match(labels)
        self.consumer_partition_current_offset.delete_partial_match(labels)
        self.consumer_total_lag.delete_partial_match(labels)
        self.consumer_status.delete_partial_match(labels)

    def collect(self, app: ApplicationContext) -> None:
        """Refresh the gauges from the storage and evaluator subsystems."""
        for cluster in list_clusters(app):
            for consumer in list_consumers(app, cluster):
                status = get_full_consumer_status(app, cluster, consumer)
                if status is None or status.status == Status.NOT_FOUND:
                    continue
                labels = {"cluster": cluster, "consumer_group": consumer}
                self.consumer_total_lag.set(labels, status.total_lag)
                self.consumer_status.set(labels, int(status.status))
                for partition in status.partitions:
                    partition_labels = {
                        "cluster": cluster,
                        "consumer_group": consumer,
                        "topic": partition.topic,
                        "partition": str(partition.partition),
                    }
                    self.consumer_partition_lag.set(partition_labels, partition.current_lag)
                    if partition.complete == 1.0 and partition.end is not None:
                        self.consumer_partition_current_offset.set(
                            partition_labels, partition.end.offset
                        )
            for topic in list_topics(app, cluster):
                for number, offset in enumerate(get_topic_detail(app, cluster, topic)):
                    self.topic_partition_offset.set(
                        {"cluster": cluster, "topic": topic, "partition": str(number)},
                        offset,
                    )

    def render(self) -> str:
        """All gauge families in text exposition format, ordered by name."""
        return "".join(g.render() for g in sorted(self.gauges, key=lambda g: g.name))


def list_clusters(app: ApplicationContext) -> list[str]:
    response = app.ask_storage(StorageRequestType.FETCH_CLUSTERS)
    return list(response) if response is not None else []


def list_consumers(app: ApplicationContext, cluster: str) -> list[str]:
    response = app.ask_storage(StorageRequestType.FETCH_CONSUMERS, cluster=cluster)
    return list(response) if response is not None else []


def get_full_consumer_status(
    app: ApplicationContext, cluster: str, consumer: str
) -> Optional[ConsumerGroupStatus]:
    return app.ask_evaluator(cluster, consumer, True)


def list_topics(app: ApplicationContext, cluster: str) -> list[str]:
    response = app.ask_storage(StorageRequestType.FETCH_TOPICS, cluster=cluster)
    return list(response) if response is not None else []


def get_topic_detail(app: ApplicationContext, cluster: str, topic: str) -> list[int]:
    response = app.ask_storage(StorageRequestType.FETCH_TOPIC, cluster=cluster, topic=topic)
    return list(response) if response is not None else []