"""Transactional outbox: stage events with domain writes, publish them later."""

from skiipper.skiipper_platform.outbox.services import (
    EventBusAdapter,
    claim_ready,
    dispatch_ready,
    enqueue,
    mark_failed,
    mark_sent,
)

__all__ = [
    "EventBusAdapter",
    "claim_ready",
    "dispatch_ready",
    "enqueue",
    "mark_failed",
    "mark_sent",
]
