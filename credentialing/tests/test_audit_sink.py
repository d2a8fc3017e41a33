import threading
from datetime import datetime, timedelta, timezone

import pytest

from credentialing.app.audit.sink import ForwardingAuditSink, MemoryAuditSink
from credentialing.app.schemas.audit import AuditLogEntry

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_entry(index: int, **overrides) -> AuditLogEntry:
    values = dict(
        timestamp=BASE_TIME + timedelta(seconds=index),
        user_id=f"user-{index % 3}",
        ip_address="10.0.0.1",
        user_agent="pytest",
        action="view_banking",
        resource="provider_banking",
        resource_id=f"phys-{index}",
        route="/providers/{physician_id}/banking",
        method="GET",
        success=True,
    )
    values.update(overrides)
    return AuditLogEntry(**values)


def test_query_is_most_recent_first_and_limited():
    sink = MemoryAuditSink()
    for i in range(5):
        sink.append(make_entry(i))

    entries = sink.query(limit=3)

    assert [e.resource_id for e in entries] == ["phys-4", "phys-3", "phys-2"]


def test_default_limit_is_100():
    sink = MemoryAuditSink()
    for i in range(150):
        sink.append(make_entry(i))

    assert len(sink.query()) == 100


def test_non_positive_limit_returns_nothing():
    sink = MemoryAuditSink()
    sink.append(make_entry(0))

    assert sink.query(limit=0) == []


def test_filter_on_failures_regardless_of_insertion_order():
    sink = MemoryAuditSink()
    outcomes = [True, False, True, True, False, False, True]
    for i, success in enumerate(outcomes):
        sink.append(make_entry(i, success=success))

    failed = sink.query(filters={"success": False})

    assert [e.resource_id for e in failed] == ["phys-5", "phys-4", "phys-1"]
    assert all(e.success is False for e in failed)


def test_filter_requires_every_field_to_match():
    sink = MemoryAuditSink()
    sink.append(make_entry(0, action="update_banking", success=False))
    sink.append(make_entry(1, action="view_banking", success=False))
    sink.append(make_entry(2, action="update_banking", success=True))

    entries = sink.query(filters={"action": "update_banking", "success": False})

    assert [e.resource_id for e in entries] == ["phys-0"]


def test_filter_accepts_camel_case_keys_and_is_exact():
    sink = MemoryAuditSink()
    sink.append(make_entry(0, resource_id="phys-10"))
    sink.append(make_entry(1, resource_id="phys-1"))

    entries = sink.query(filters={"resourceId": "phys-1"})

    assert [e.resource_id for e in entries] == ["phys-1"]


def test_boolean_filter_does_not_match_integers():
    sink = MemoryAuditSink()
    sink.append(make_entry(0, success=True))

    assert sink.query(filters={"success": 1}) == []


def test_unknown_filter_field_is_rejected():
    sink = MemoryAuditSink()

    with pytest.raises(ValueError, match="Unknown audit log field"):
        sink.query(filters={"severity": "high"})


def test_capacity_evicts_oldest():
    sink = MemoryAuditSink(capacity=3)
    for i in range(5):
        sink.append(make_entry(i))

    assert len(sink) == 3
    assert sink.evicted == 2
    assert [e.resource_id for e in sink.query()] == ["phys-4", "phys-3", "phys-2"]


def test_invalid_capacity():
    with pytest.raises(ValueError):
        MemoryAuditSink(capacity=0)


def test_concurrent_appends_are_all_kept():
    sink = MemoryAuditSink(capacity=10_000)
    writers, per_writer = 8, 250
    start = threading.Barrier(writers)

    def write(worker: int) -> None:
        start.wait()
        for i in range(per_writer):
            sink.append(make_entry(i, user_id=f"worker-{worker}"))

    threads = [threading.Thread(target=write, args=(w,)) for w in range(writers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(sink) == writers * per_writer
    for worker in range(writers):
        assert len(
            sink.query(limit=10_000, filters={"userId": f"worker-{worker}"})
        ) == per_writer


def test_query_snapshot_is_isolated_from_later_appends():
    sink = MemoryAuditSink()
    sink.append(make_entry(0))
    snapshot = sink.query()
    sink.append(make_entry(1))

    assert len(snapshot) == 1


def test_forwarding_sink_queues_and_drains_in_order():
    inner = MemoryAuditSink()
    sink = ForwardingAuditSink(inner, pending_capacity=10)
    for i in range(5):
        sink.append(make_entry(i))

    assert len(sink) == 5
    assert sink.query(limit=1)[0].resource_id == "phys-4"

    first = sink.drain(3)
    rest = sink.drain(10)

    assert [e.resource_id for e in first] == ["phys-0", "phys-1", "phys-2"]
    assert [e.resource_id for e in rest] == ["phys-3", "phys-4"]
    assert sink.pending == 0
    # Draining never removes entries from local queries
    assert len(inner) == 5


def test_forwarding_sink_drops_oldest_pending_on_overflow():
    sink = ForwardingAuditSink(MemoryAuditSink(), pending_capacity=2)
    for i in range(4):
        sink.append(make_entry(i))

    assert sink.dropped == 2
    assert [e.resource_id for e in sink.drain(10)] == ["phys-2", "phys-3"]


def test_forwarding_sink_ships_in_local_order_under_concurrency():
    inner = MemoryAuditSink(capacity=10_000)
    sink = ForwardingAuditSink(inner, pending_capacity=10_000)
    writers, per_writer = 8, 200
    start = threading.Barrier(writers)

    def write(worker: int) -> None:
        start.wait()
        for i in range(per_writer):
            sink.append(make_entry(i, resource_id=f"w{worker}-{i}"))

    threads = [threading.Thread(target=write, args=(w,)) for w in range(writers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    shipped = [e.resource_id for e in sink.drain(10_000)]
    local = [e.resource_id for e in inner.snapshot()]

    assert len(shipped) == writers * per_writer
    assert shipped == local
