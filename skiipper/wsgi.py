"""WSGI entrypoint for Skiipper."""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Ensure project root is on sys.path when running this file directly
PARENT = Path(__file__).resolve().parent.parent
if str(PARENT) not in sys.path:
    sys.path.insert(0, str(PARENT))

from skiipper import create_app  # noqa: E402

app = create_app(os.environ.get("APP_ENV"))

if __name__ == "__main__":
    host = os.environ.get("FLASK_RUN_HOST", "127.0.0.1")
    port = int(os.environ.get("FLASK_RUN_PORT", "5001"))
    app.run(host=host, port=port)  # nosec B104
