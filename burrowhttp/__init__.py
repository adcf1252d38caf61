"""HTTP API, configuration views and Prometheus metrics for a Kafka consumer lag monitor."""

__version__ = "1.0.0"

__all__ = ["configview", "kafka", "messages", "metrics", "responses", "server", "settings"]