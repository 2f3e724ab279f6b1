"""Outbox staging, claiming and the event bus adapter."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Set

from skiipper.core.events.event_bus import event_bus
from skiipper.core.events.event_models import EventRecord
from skiipper.extensions import db
from skiipper.skiipper_platform.outbox.models import OutboxMessage

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_SENDING = "sending"
STATUS_SENT = "sent"
STATUS_RETRY = "retry"
STATUS_DEAD = "dead"

MAX_DISPATCH_ATTEMPTS = 5
DEFAULT_RETRY_IN = timedelta(minutes=5)


class EventBusAdapter:
    """Publish outbox messages to the in-process bus.

    Each delivered message is kept as an ``EventRecord`` row; the caller that
    marks the batch sent commits it.
    """

    def __init__(self, bus=None) -> None:
        self.bus = bus or event_bus
        self._delivered: Set[int] = set()

    def dispatch(self, message: OutboxMessage) -> None:
        if message.id in self._delivered:
            return
        payload = dict(message.payload or {})
        payload.setdefault("event_id", message.id)

        event = EventRecord(
            event_type=message.event_type,
            payload=payload,
            user_id=message.user_id,
            created_at=message.created_at or datetime.utcnow(),
        )

        self.bus.publish(event)
        db.session.add(event)
        self._delivered.add(message.id)


def enqueue(
    event_name: str,
    payload: dict,
    user_id: Optional[int],
    available_at: Optional[datetime] = None,
) -> OutboxMessage:
    """Stage an event in the outbox. Caller commits alongside domain changes."""
    message = OutboxMessage(
        event_type=event_name,
        payload=payload or {},
        user_id=user_id,
        available_at=available_at or datetime.utcnow(),
        status=STATUS_PENDING,
        attempts=0,
    )
    db.session.add(message)
    return message


def claim_ready(session, limit: int = 50, now: Optional[datetime] = None) -> List[OutboxMessage]:
    """Lock ready rows (pending or retry), move them to 'sending' and bump attempts.

    The caller owns the commit.
    """
    now = now or datetime.utcnow()
    ready = (
        session.query(OutboxMessage)
        .filter(
            OutboxMessage.available_at <= now,
            OutboxMessage.status.in_((STATUS_PENDING, STATUS_RETRY)),
        )
        .order_by(OutboxMessage.available_at, OutboxMessage.id)
        .with_for_update(skip_locked=True)
        .limit(limit)
        .all()
    )
    for message in ready:
        message.status = STATUS_SENDING
        message.attempts = (message.attempts or 0) + 1
    return ready


def mark_sent(ids: Sequence[int]) -> int:
    if not ids:
        return 0
    updated = OutboxMessage.query.filter(
        OutboxMessage.id.in_(list(ids)),
        OutboxMessage.status == STATUS_SENDING,
    ).update({"status": STATUS_SENT, "last_error": None}, synchronize_session=False)
    db.session.commit()
    return updated


def mark_failed(
    message_id: int,
    err: Exception | str,
    retry_in: timedelta = DEFAULT_RETRY_IN,
) -> Optional[OutboxMessage]:
    message = OutboxMessage.query.filter(
        OutboxMessage.id == message_id,
        OutboxMessage.status == STATUS_SENDING,
    ).one_or_none()
    if not message:
        return None

    message.last_error = str(err)
    next_available = datetime.utcnow() + retry_in
    message.available_at = max(message.available_at or next_available, next_available)
    message.status = STATUS_DEAD if message.attempts >= MAX_DISPATCH_ATTEMPTS else STATUS_RETRY
    db.session.commit()
    return message


def dispatch_ready(
    limit: int = 50,
    retry_in: timedelta = DEFAULT_RETRY_IN,
    bus_adapter: Optional[EventBusAdapter] = None,
) -> List[int]:
    """Publish one batch of ready messages synchronously; returns the sent ids."""
    adapter = bus_adapter or EventBusAdapter()
    messages = claim_ready(db.session, limit=limit)
    db.session.commit()
    sent_ids: List[int] = []

    for message in messages:
        try:
            adapter.dispatch(message)
            sent_ids.append(message.id)
        except Exception as err:
            logger.exception("Outbox dispatch failed for %s (id=%s)", message.event_type, message.id)
            mark_failed(message.id, err, retry_in=retry_in)

    mark_sent(sent_ids)
    return sent_ids
