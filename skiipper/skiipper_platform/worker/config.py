"""Configuration helpers for the outbox dispatcher worker."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class DispatchConfig:
    """Runtime knobs for the dispatcher loop."""

    batch_size: int = 50
    poll_interval: float = 5.0
    max_attempts: int = 5
    backoff_seconds: float = 5.0
    backoff_multiplier: float = 2.0

    @classmethod
    def from_env(cls) -> "DispatchConfig":
        return cls(
            batch_size=int(os.environ.get("OUTBOX_BATCH_SIZE", "50")),
            poll_interval=float(os.environ.get("OUTBOX_POLL_INTERVAL", "5")),
            max_attempts=int(os.environ.get("OUTBOX_MAX_ATTEMPTS", "5")),
            backoff_seconds=float(os.environ.get("OUTBOX_BACKOFF_SECONDS", "5")),
            backoff_multiplier=float(os.environ.get("OUTBOX_BACKOFF_MULTIPLIER", "2")),
        )

    def backoff_for(self, attempts: int) -> float:
        """Exponential backoff in seconds for a 1-indexed attempt number."""
        return self.backoff_seconds * self.backoff_multiplier ** max(attempts - 1, 0)
