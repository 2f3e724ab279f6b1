from __future__ import annotations

from datetime import datetime, timedelta

import pytest

pytestmark = pytest.mark.integration

from skiipper.core.events.event_bus import EventBus
from skiipper.core.events.event_models import EventRecord
from skiipper.extensions import db
from skiipper.skiipper_platform.outbox import EventBusAdapter, claim_ready, dispatch_ready, enqueue
from skiipper.skiipper_platform.outbox.models import OutboxMessage
from skiipper.skiipper_platform.worker import dispatcher
from skiipper.skiipper_platform.worker.config import DispatchConfig


def _config(**overrides) -> DispatchConfig:
    defaults = {
        "batch_size": 5,
        "poll_interval": 0,
        "max_attempts": 2,
        "backoff_seconds": 3,
        "backoff_multiplier": 2,
    }
    defaults.update(overrides)
    return DispatchConfig(**defaults)


def _enqueue(event_type: str = "test.event", available_at: datetime | None = None) -> OutboxMessage:
    msg = enqueue(
        event_type,
        {"hello": "world"},
        user_id=None,
        available_at=available_at or datetime.utcnow() - timedelta(seconds=1),
    )
    db.session.commit()
    return msg


def test_backoff_grows_per_attempt():
    cfg = _config(backoff_seconds=4, backoff_multiplier=3)

    assert [cfg.backoff_for(n) for n in (1, 2, 3)] == [4, 12, 36]


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("OUTBOX_BATCH_SIZE", "7")
    monkeypatch.setenv("OUTBOX_MAX_ATTEMPTS", "9")

    cfg = DispatchConfig.from_env()

    assert cfg.batch_size == 7
    assert cfg.max_attempts == 9


def test_successful_dispatch_marks_sent_and_increments_attempts(app):
    msg = _enqueue()
    sent_ids: list[int] = []

    processed = dispatcher.process_ready_batch(lambda m: sent_ids.append(m.id), _config())

    db.session.refresh(msg)
    assert processed == 1
    assert sent_ids == [msg.id]
    assert msg.status == "sent"
    assert msg.attempts == 1
    assert msg.last_error is None


def test_future_messages_wait(app):
    msg = _enqueue(available_at=datetime.utcnow() + timedelta(hours=1))

    claimed = claim_ready(db.session)

    assert claimed == []
    db.session.refresh(msg)
    assert msg.status == "pending"


def test_failed_dispatch_applies_backoff_and_honors_max_attempts(app):
    msg = _enqueue()
    cfg = _config(max_attempts=2, backoff_seconds=4, backoff_multiplier=2)

    def _send_fail(_):
        raise RuntimeError("boom")

    start = datetime.utcnow()
    dispatcher.process_ready_batch(_send_fail, cfg)
    db.session.refresh(msg)
    assert msg.attempts == 1
    assert msg.status == "retry"
    assert msg.available_at >= start + timedelta(seconds=cfg.backoff_seconds)
    assert msg.last_error == "boom"

    msg.available_at = datetime.utcnow() - timedelta(seconds=1)
    db.session.commit()

    dispatcher.process_ready_batch(_send_fail, cfg)
    db.session.refresh(msg)
    assert msg.attempts == 2
    assert msg.status == "dead"


def test_already_sent_message_is_not_dispatched_twice(app):
    msg = _enqueue()
    sent_ids: list[int] = []
    dispatcher.process_ready_batch(lambda m: sent_ids.append(m.id), _config())

    def _should_not_run(_):
        raise AssertionError("duplicate dispatch attempted")

    dispatcher.process_ready_batch(_should_not_run, _config())

    db.session.refresh(msg)
    assert sent_ids == [msg.id]
    assert msg.status == "sent"


def test_run_dispatcher_stops_after_max_batches(app):
    _enqueue()
    _enqueue(event_type="other.event")
    seen: list[str] = []

    dispatcher.run_dispatcher(_config(), send_fn=lambda m: seen.append(m.event_type), max_batches=2)

    assert sorted(seen) == ["other.event", "test.event"]


def test_dispatch_ready_publishes_to_bus(app):
    bus = EventBus()
    received = []
    bus.subscribe("test.event", received.append)
    msg = _enqueue()

    sent = dispatch_ready(bus_adapter=EventBusAdapter(bus))

    assert sent == [msg.id]
    assert received[0].payload == {"hello": "world", "event_id": msg.id}
    assert dispatch_ready(bus_adapter=EventBusAdapter(bus)) == []

    record = EventRecord.query.one()
    assert record.event_type == "test.event"
    assert record.payload["event_id"] == msg.id


def test_dispatch_ready_marks_failures_for_retry(app):
    bus = EventBus()

    def _explode(event):
        raise RuntimeError("subscriber down")

    bus.subscribe("test.event", _explode)
    msg = _enqueue()

    sent = dispatch_ready(bus_adapter=EventBusAdapter(bus))

    assert sent == []
    db.session.refresh(msg)
    assert msg.status == "retry"
    assert msg.last_error == "subscriber down"
    assert EventRecord.query.count() == 0


def test_adapter_skips_redelivery(app):
    bus = EventBus()
    received = []
    bus.subscribe("test.event", received.append)
    adapter = EventBusAdapter(bus)
    msg = OutboxMessage(event_type="test.event", payload={}, user_id=None)
    msg.id = 42

    adapter.dispatch(msg)
    adapter.dispatch(msg)

    assert len(received) == 1


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe("test.event", received.append)
    bus.subscribe("test.event", received.append)

    assert len(bus.handlers_for("test.event")) == 1
    unsubscribe()
    assert bus.handlers_for("test.event") == []
