"""Outbox dispatcher worker loop."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from skiipper.extensions import db
from skiipper.skiipper_platform.outbox.models import OutboxMessage
from skiipper.skiipper_platform.outbox.services import (
    STATUS_DEAD,
    STATUS_RETRY,
    STATUS_SENT,
    EventBusAdapter,
    claim_ready,
)
from skiipper.skiipper_platform.worker.config import DispatchConfig

logger = logging.getLogger(__name__)


def _apply_failure_backoff(message: OutboxMessage, exc: Exception, config: DispatchConfig) -> None:
    attempts = message.attempts or 1
    next_available = datetime.utcnow() + timedelta(seconds=config.backoff_for(attempts))

    message.last_error = str(exc)
    message.available_at = max(message.available_at or next_available, next_available)
    message.status = STATUS_DEAD if attempts >= config.max_attempts else STATUS_RETRY


def process_ready_batch(
    send_fn: Callable[[OutboxMessage], None],
    config: DispatchConfig,
    session=None,
) -> int:
    """Claim ready messages, dispatch via ``send_fn`` and update statuses.

    Returns the number of messages processed (sent or failed).
    """
    session = session or db.session
    try:
        messages = claim_ready(session, limit=config.batch_size)
        processed = 0
        for message in messages:
            try:
                send_fn(message)
                message.status = STATUS_SENT
                message.last_error = None
            except Exception as exc:
                logger.warning("Dispatch of %s (id=%s) failed: %s", message.event_type, message.id, exc)
                _apply_failure_backoff(message, exc, config)
            processed += 1
        session.commit()
        return processed
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Database error while processing outbox batch")
        return 0


def run_dispatcher(
    config: Optional[DispatchConfig] = None,
    send_fn: Optional[Callable[[OutboxMessage], None]] = None,
    max_batches: Optional[int] = None,
) -> None:
    """Poll the outbox; defaults to publishing to the in-process bus."""
    cfg = config or DispatchConfig.from_env()
    dispatch_callable = send_fn or EventBusAdapter().dispatch

    logger.info(
        "Starting outbox dispatcher (batch_size=%s, poll_interval=%ss, max_attempts=%s)",
        cfg.batch_size,
        cfg.poll_interval,
        cfg.max_attempts,
    )

    batches = 0
    try:
        while max_batches is None or batches < max_batches:
            processed = process_ready_batch(dispatch_callable, cfg)
            batches += 1
            if processed == 0:
                time.sleep(cfg.poll_interval)
            else:
                time.sleep(min(0.1, cfg.poll_interval))
    except KeyboardInterrupt:
        logger.info("Dispatcher stopped by user")
