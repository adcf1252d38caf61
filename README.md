# burrowhttp

The HTTP interface of a Kafka consumer lag monitor. It answers questions
about the clusters, topics and consumer groups being watched, shows the
running configuration, lets an operator read and change the log level, and
exports Prometheus gauges for consumer lag and topic offsets.

It uses only the standard library. `Coordinator` is a plain WSGI
application, so any WSGI server can host it; it can also open its own
listeners.

## Modules

- `burrowhttp.settings` – `Settings`, a case-insensitive configuration store
  addressed by dotted keys: `set`, `set_default`, `is_set`, `get`,
  `get_string`, `get_int`, `get_bool`, `get_string_list`, `get_mapping`,
  `get_string_mapping` and `reset`. Explicit values override defaults, and
  mappings merge explicit values over defaults.
- `burrowhttp.messages` – the data exchanged with the storage and evaluator
  subsystems: `StorageRequest`, `EvaluatorRequest`, `ConsumerGroupStatus`,
  `PartitionStatus`, `ConsumerPartition`, `ConsumerOffset`, `Lag`, the
  `Status`, `StorageRequestType` and `LogLevel` enums, and
  `ApplicationContext`, which holds the storage and evaluator queues, the
  current log level and the ready flag. `ask_storage` and `ask_evaluator`
  put a request on a queue and wait for its reply (raising `TimeoutError`
  if `timeout` is set and passes); `send_storage` does not wait.
- `burrowhttp.responses` – `Response` (status, headers, body, with `json()`
  and `text()`), `RequestInfo`, and `json_response`, `error_response`,
  `text_response` and `make_request_info`. When
  `general.access-control-allow-origin` is set, responses carry it as an
  `Access-Control-Allow-Origin` header. A payload that cannot be encoded
  gives a 500 response.
- `burrowhttp.kafka` – the `/v3/kafka/...` views and the `tls_profile`,
  `sasl_profile` and `client_profile` lookups.
- `burrowhttp.configview` – the `/v3/config/...` views.
- `burrowhttp.metrics` – `GaugeVec` and `MetricsRegistry`, which refreshes
  its gauges from the storage and evaluator queues (`collect`) and renders
  the Prometheus text format (`render`).
- `burrowhttp.server` – `Coordinator` (`configure`, `handle`, `start`,
  `stop`, and the WSGI `__call__`), `ListenerConfig` and
  `validate_host_port`.

## Usage

```python
from burrowhttp.messages import ApplicationContext
from burrowhttp.server import Coordinator
from burrowhttp.settings import Settings

settings = Settings()
settings.set("httpserver.main.address", "127.0.0.1:8000")
settings.set("cluster.local.class-name", "kafka")

app = ApplicationContext(timeout=5.0)
coordinator = Coordinator(app, settings)
coordinator.configure()

response = coordinator.handle("GET", "/burrow/admin")
print(response.status, response.text())   # 200 GOOD

coordinator.start()   # serve on every configured listener in background threads
...
coordinator.stop()
```

Requests that reach storage or the evaluator are placed on
`app.storage_channel` and `app.evaluator_channel`; whatever answers them
takes each request off the queue and calls its `respond` method. For
storage, a reply of `None` means "not found".

## Endpoints

| Method | Path | Answer |
| ------ | ---- | ------ |
| GET | `/burrow/admin` | `GOOD` |
| GET | `/burrow/admin/ready` | `READY`, or `STARTING` with status 503 |
| GET | `/metrics` | Prometheus gauges |
| GET | `/v3/kafka` | cluster list |
| GET | `/v3/kafka/:cluster` | cluster module configuration |
| GET | `/v3/kafka/:cluster/topic` | topic list |
| GET | `/v3/kafka/:cluster/topic/:topic` | partition offsets |
| GET | `/v3/kafka/:cluster/topic/:topic/consumers` | groups consuming the topic |
| GET | `/v3/kafka/:cluster/consumer` | consumer group list |
| GET | `/v3/kafka/:cluster/consumer/:consumer` | stored offsets of a group |
| GET | `/v3/kafka/:cluster/consumer/:consumer/status` | evaluated status |
| GET | `/v3/kafka/:cluster/consumer/:consumer/lag` | status with every partition |
| DELETE | `/v3/kafka/:cluster/consumer/:consumer` | remove a group |
| DELETE | `/v3/kafka/:cluster/consumer/:consumer/topic/:topic` | remove one topic of a group |
| GET | `/v3/config` | general, logging, zookeeper and listener settings |
| GET | `/v3/config/{storage,evaluator,cluster,consumer,notifier}` | module names, sorted |
| GET | `/v3/config/{storage,evaluator,cluster,consumer,notifier}/:name` | module detail |
| GET, POST | `/v3/admin/loglevel` | read or set the log level |

A missing module, cluster, topic or group answers 404 with a JSON error
body. The status endpoints answer 404 when the evaluator reports
`Status.NOT_FOUND`. A notifier whose class is not `http`, `email`, `slack`
or `null` gets an empty 200 response. Delete requests are handed to
storage without waiting for an answer.

A path that matches no route answers 404 with
`{"error":true,"message":"invalid request type","result":{}}`. A path that
matches only with or without a trailing slash is redirected (301 for GET,
308 otherwise); a path that exists for another method answers 405 with an
`Allow` header, and `OPTIONS` lists the allowed methods.

Setting the log level takes a JSON body such as `{"level": "debug"}` and
accepts `debug`/`trace`, `info`, `warn`/`warning`, `error` and `fatal`, in
any case. A body that cannot be decoded answers 400; any other level
answers 404 `unknown log level`.

## Metrics

`/metrics` asks storage for every cluster, its consumer groups and topics,
and the evaluator for each group's full status, then exports:

- `burrow_kafka_consumer_lag_total` and `burrow_kafka_consumer_status` per
  cluster and group (status as the index of NOTFOUND, OK, WARN, ERR, STOP,
  STALL, REWIND);
- `burrow_kafka_consumer_partition_lag` per partition, and
  `burrow_kafka_consumer_current_offset` for partitions whose evaluation is
  complete;
- `burrow_kafka_topic_partition_offset` per topic partition.

Groups the evaluator cannot find are skipped. `delete_consumer_metrics` and
`delete_topic_metrics` remove the gauges of a group or topic.

## Listeners

`configure` reads listeners from `httpserver.<name>.address`, with an
optional `httpserver.<name>.timeout` in seconds (300 when unset) and
`httpserver.<name>.tls` naming a `tls.<profile>` with `certfile`, `keyfile`
and `cafile`. An invalid address, or a TLS profile with a missing or
unreadable certificate or key, raises `ValueError`. When no listener is
configured, a `default` listener on `:0` is added, so the operating system
picks the port. `start` re-raises the error of a listener that cannot be
opened after closing those already opened; `stop` raises `RuntimeError` if
any listener failed to close.

## What it does not do

This package is only the HTTP layer. It contains no storage or evaluator:
nothing here talks to Kafka or ZooKeeper, keeps offsets or computes
consumer status, so something else must answer the requests placed on the
`ApplicationContext` queues. It has no command-line entry point and does
not load configuration files; settings are supplied through `Settings`.
The metrics endpoint exports only the gauges listed above.