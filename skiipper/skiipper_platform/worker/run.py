"""CLI entrypoint to run the outbox dispatcher worker."""

from __future__ import annotations

import logging
import os

from skiipper import create_app
from skiipper.skiipper_platform.worker.config import DispatchConfig
from skiipper.skiipper_platform.worker.dispatcher import run_dispatcher


def main() -> None:
    logging.basicConfig(level=os.environ.get("WORKER_LOGLEVEL", "INFO"))
    app = create_app(os.environ.get("APP_ENV", "development"))
    with app.app_context():
        run_dispatcher(DispatchConfig.from_env())


if __name__ == "__main__":
    main()
