"""Reports domain event catalog."""

from __future__ import annotations

REPORTS_EMAIL_WEEKLY_REPORT = "reports.email.weekly_report"

EVENT_CATALOG = {
    REPORTS_EMAIL_WEEKLY_REPORT: {
        "version": "v1",
        "payload": {
            "email": "str",
            "skips": "int",
            "savings": "decimal",
            "week_start": "datetime",
            "week_end": "datetime",
            "requested_by": "int?",
        },
    },
}
