"""Worker runtime and dispatch loop for the platform outbox."""

from skiipper.skiipper_platform.worker.config import DispatchConfig
from skiipper.skiipper_platform.worker.dispatcher import process_ready_batch, run_dispatcher

__all__ = [
    "DispatchConfig",
    "process_ready_batch",
    "run_dispatcher",
]
