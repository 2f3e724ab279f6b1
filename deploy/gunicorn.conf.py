"""
Gunicorn configuration for Skiipper.
All settings are driven from environment variables for container deployment.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

# ===== Server Binding =====
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
backlog = int(os.environ.get("GUNICORN_BACKLOG", "2048"))

# ===== Worker Settings =====
# Wizard ledgers live in process memory, so one process serves a session;
# scale with threads rather than workers unless sessions are pinned upstream.
worker_class = os.environ.get("GUNICORN_WORKER_CLASS", "gthread")
workers = int(os.environ.get("GUNICORN_WORKERS", "1"))
threads = int(os.environ.get("GUNICORN_THREADS", "8"))
max_requests = int(os.environ.get("GUNICORN_MAX_REQUESTS", "0"))
worker_tmp_dir = os.environ.get("GUNICORN_WORKER_TMP_DIR", "/dev/shm")

# ===== Timeouts =====
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "60"))
graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.environ.get("GUNICORN_KEEPALIVE", "5"))

# ===== Logging =====
accesslog = os.environ.get("GUNICORN_ACCESSLOG", "-")
errorlog = os.environ.get("GUNICORN_ERRORLOG", "-")
loglevel = os.environ.get("GUNICORN_LOGLEVEL", "info")
capture_output = True

access_log_format = os.environ.get(
    "GUNICORN_ACCESS_LOG_FORMAT",
    '{"timestamp": "%(t)s", "remote": "%(h)s", "request": "%(r)s", '
    '"status": %(s)s, "bytes": %(b)s, "response_time": %(D)s, "pid": %(p)s}',
)

logconfig_path = Path(os.environ.get("GUNICORN_LOGCONFIG", "/app/deploy/logging.conf"))
if logconfig_path.exists():
    logconfig = str(logconfig_path)

# ===== Server Mechanics =====
daemon = False
preload_app = os.environ.get("GUNICORN_PRELOAD", "false").lower() in ("1", "true", "yes")
limit_request_line = int(os.environ.get("GUNICORN_LIMIT_REQUEST_LINE", "8190"))
limit_request_fields = int(os.environ.get("GUNICORN_LIMIT_REQUEST_FIELDS", "100"))
forwarded_allow_ips = os.environ.get("GUNICORN_FORWARDED_ALLOW_IPS", "*")

proc_name = os.environ.get("GUNICORN_PROC_NAME", "skiipper")


def on_starting(server):
    logging.getLogger(__name__).info(
        "Gunicorn starting: workers=%s, threads=%s, worker_class=%s, timeout=%ss",
        workers,
        threads,
        worker_class,
        timeout,
    )


def when_ready(server):
    logging.getLogger(__name__).info("Gunicorn ready. Listening on %s", bind)


def worker_abort(worker):
    logging.getLogger(__name__).warning("Worker %s timed out (>%ss), aborting", worker.pid, timeout)
