import queue
import threading

import pytest

from burrowhttp.messages import (
    ApplicationContext,
    ConsumerGroupStatus,
    ConsumerOffset,
    ConsumerPartition,
    EvaluatorRequest,
    Lag,
    LogLevel,
    PartitionStatus,
    Status,
    StorageRequest,
    StorageRequestType,
)


def _answer(channel, answer, seen):
    def run():
        request = channel.get(timeout=5)
        seen.append(request)
        request.respond(answer)

    thread = threading.Thread(target=run)
    thread.start()
    return thread


def test_status_order_and_labels():
    labels = [
        ConsumerGroupStatus(cluster="c", group="g", status=s).to_dict()["status"]
        for s in sorted(Status)
    ]
    assert labels == ["NOTFOUND", "OK", "WARN", "ERR", "STOP", "STALL", "REWIND"]
    partition = PartitionStatus(topic="t", status=Status.OK).to_dict()
    assert partition["status"] == "OK"
    assert int(Status.OK) == 1


def test_log_level_strings():
    assert str(LogLevel.INFO) == "info"
    assert LogLevel("debug") is LogLevel.DEBUG


def test_consumer_offset_to_dict():
    offset = ConsumerOffset(offset=9837458, timestamp=12837487, lag=Lag(2355))
    assert offset.to_dict() == {
        "offset": 9837458,
        "timestamp": 12837487,
        "lag": {"value": 2355},
    }


def test_consumer_partition_to_dict():
    partition = ConsumerPartition(
        offsets=[ConsumerOffset(offset=1, timestamp=2), None], owner="somehost", current_lag=2345
    )
    data = partition.to_dict()
    assert data["owner"] == "somehost"
    assert data["current-lag"] == 2345
    assert data["offsets"][0]["lag"] is None
    assert data["offsets"][1] is None


def test_group_status_to_dict_keys():
    maxlag = PartitionStatus(
        topic="testtopic", status=Status.OK, end=ConsumerOffset(offset=22663), complete=1.0
    )
    status = ConsumerGroupStatus(
        cluster="testcluster",
        group="testgroup",
        status=Status.OK,
        complete=1.0,
        partitions=[maxlag],
        total_partitions=2134,
        maxlag=maxlag,
        total_lag=2345,
    )
    data = status.to_dict()
    assert data["status"] == "OK"
    assert data["partition_count"] == 2134
    assert data["totallag"] == 2345
    assert data["maxlag"] == data["partitions"][0]
    assert data["partitions"][0]["end"]["offset"] == 22663
    assert data["partitions"][0]["start"] is None
    assert set(data["partitions"][0]) == {
        "topic", "partition", "status", "start", "end", "current_lag", "complete",
    }


def test_not_found_status_serialises_empty():
    data = ConsumerGroupStatus(cluster="nocluster", group="testgroup").to_dict()
    assert data["status"] == "NOTFOUND"
    assert data["maxlag"] is None
    assert data["partitions"] == []


def test_storage_request_without_reply_cannot_respond():
    request = StorageRequest(StorageRequestType.SET_DELETE_GROUP, cluster="c", group="g")
    with pytest.raises(RuntimeError):
        request.respond(None)


def test_respond_puts_on_reply_queue():
    request = EvaluatorRequest(cluster="c", group="g")
    request.respond(None)
    assert request.reply.get_nowait() is None


def test_ask_storage_round_trip():
    app = ApplicationContext(timeout=5)
    seen = []
    thread = _answer(app.storage_channel, ["testtopic"], seen)
    result = app.ask_storage(StorageRequestType.FETCH_TOPICS, cluster="testcluster")
    thread.join()
    assert result == ["testtopic"]
    assert seen[0].request_type is StorageRequestType.FETCH_TOPICS
    assert seen[0].cluster == "testcluster"


def test_ask_storage_not_found_returns_none():
    app = ApplicationContext(timeout=5)
    seen = []
    thread = _answer(app.storage_channel, None, seen)
    result = app.ask_storage(StorageRequestType.FETCH_TOPIC, cluster="nocluster", topic="testtopic")
    thread.join()
    assert result is None
    assert seen[0].topic == "testtopic"


def test_ask_evaluator_round_trip():
    app = ApplicationContext(timeout=5)
    seen = []
    answer = ConsumerGroupStatus(cluster="testcluster", group="testgroup", status=Status.OK)
    thread = _answer(app.evaluator_channel, answer, seen)
    result = app.ask_evaluator("testcluster", "testgroup", show_all=True)
    thread.join()
    assert result is answer
    assert seen[0].show_all is True
    assert seen[0].group == "testgroup"


def test_send_storage_does_not_wait():
    app = ApplicationContext()
    request = StorageRequest(StorageRequestType.SET_DELETE_GROUP, cluster="testcluster", group="testgroup")
    app.send_storage(request)
    assert app.storage_channel.get_nowait() is request


def test_ask_times_out_without_answer():
    app = ApplicationContext(timeout=0.05)
    with pytest.raises(TimeoutError):
        app.ask_storage(StorageRequestType.FETCH_CLUSTERS)
    assert isinstance(app.storage_channel.get_nowait().reply, queue.Queue)


def test_context_defaults():
    app = ApplicationContext()
    assert app.log_level is LogLevel.INFO
    assert app.app_ready is False