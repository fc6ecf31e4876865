# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import copy
import logging
from os import getenv, getpid

HEALTHCHECK_PATHS = ("/health", "/healthcheck", "/api/health", "/api/healthcheck")

class MultiLineFormatter(logging.Formatter):
    """Formatter that repeats the record prefix on every line of a multi-line message."""
    def format(self, record):
        message = record.getMessage()
        if "\n" not in message:
            return super().format(record)

        parts = message.splitlines()
        lines = []
        for i, line in enumerate(parts):
            line_record = copy.copy(record)
            line_record.msg = line
            line_record.args = None
            # Only the last line carries the traceback
            if i < len(parts) - 1:
                line_record.exc_info = None
                line_record.exc_text = None
                line_record.stack_info = None
            lines.append(super().format(line_record))
        return "\n".join(lines)

class GunicornWorkerFilter(logging.Filter):
    """Filter to add the Gunicorn worker ID to log records."""

    def filter(self, record):
        worker_id = getenv("GUNICORN_WORKER_ID", "unknown")

        if worker_id != "unknown":
            record.worker_id = "worker" + worker_id
        else:
            record.worker_id = f"PID {getpid()}"
        return True

class HealthcheckAccessFilter(logging.Filter):
    """Drop request-log records produced by health probes.

    The request logger passes the request path as ``extra={"path": ...}``.
    """

    def filter(self, record):
        return getattr(record, "path", None) not in HEALTHCHECK_PATHS
