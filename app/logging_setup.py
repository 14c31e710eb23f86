# Copyright (c) 2026 Mohammed Hassan. All rights reserved.
# Proprietary and confidential. Unauthorized copying, modification, distribution, or use is prohibited.

import atexit
import contextvars
import json
import logging
import logging.handlers
import queue
import re
import sys
from datetime import datetime, timezone
from typing import Any

import requests
from pythonjsonlogger import jsonlogger

from app.config import settings

SERVICE_NAME = "nofap-admin"

# One mutable dict per request. Dependencies run in worker threads with a
# copied context, so they update the dict in place instead of re-setting it.
log_context_var: contextvars.ContextVar[dict | None] = contextvars.ContextVar("log_context", default=None)

SECRET_FIELD_RE = re.compile(r"password|secret|token|api_key|authorization|cookie", re.IGNORECASE)
REDACTED = "***REDACTED***"


def start_log_context(**fields) -> contextvars.Token:
    return log_context_var.set({k: v for k, v in fields.items() if v is not None})


def end_log_context(token: contextvars.Token) -> None:
    log_context_var.reset(token)


def bind_log_context(**fields) -> None:
    """Adds fields (e.g. the authenticated admin) to the current request's log lines."""
    context = log_context_var.get()
    if context is not None:
        context.update({k: v for k, v in fields.items() if v is not None})


def current_request_id() -> str | None:
    context = log_context_var.get()
    return context.get("request_id") if context else None


class AdminJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            created = datetime.fromtimestamp(record.created, timezone.utc)
            log_record["timestamp"] = created.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
        log_record["level"] = record.levelname
        log_record["service_name"] = SERVICE_NAME
        log_record["environment"] = "production" if settings.axiom_token else "local"

        for key, value in (log_context_var.get() or {}).items():
            log_record.setdefault(key, value)

        for key, value in list(log_record.items()):
            if isinstance(value, str) and SECRET_FIELD_RE.search(key):
                log_record[key] = REDACTED


class ContextQueueHandler(logging.handlers.QueueHandler):
    """Copies the request log context onto the record before it changes threads."""

    def prepare(self, record):
        record = super().prepare(record)
        for key, value in (log_context_var.get() or {}).items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return record


class AxiomBatchHandler(logging.handlers.BufferingHandler):
    """
    Posts formatted records to the Axiom ingest API in batches. Runs behind a
    QueueListener, so the HTTP call never happens on a request thread.
    """

    def __init__(self, capacity: int = 50, max_age_seconds: float = 3.0):
        super().__init__(capacity)
        self.max_age_seconds = max_age_seconds

    def shouldFlush(self, record):
        if len(self.buffer) >= self.capacity:
            return True
        return record.created - self.buffer[0].created >= self.max_age_seconds

    def flush(self):
        self.acquire()
        try:
            batch, self.buffer = self.buffer, []
        finally:
            self.release()
        if batch:
            self.ship([json.loads(self.format(record)) for record in batch])

    def ship(self, entries: list[dict]) -> None:
        url = f"{settings.axiom_url.rstrip('/')}/v1/datasets/{settings.axiom_dataset}/ingest"
        headers = {"Authorization": f"Bearer {settings.axiom_token}"}
        if settings.axiom_org_id:
            headers["X-Axiom-Org-Id"] = settings.axiom_org_id
        try:
            requests.post(url, headers=headers, json=entries, timeout=5.0)
        except requests.RequestException as e:
            sys.stderr.write(f"Axiom shipping failed: {e}\n")


_axiom_listener: logging.handlers.QueueListener | None = None


def _axiom_handler(formatter: logging.Formatter) -> logging.Handler:
    global _axiom_listener
    shipper = AxiomBatchHandler()
    shipper.setFormatter(formatter)
    log_queue: queue.Queue = queue.Queue(maxsize=10000)
    _axiom_listener = logging.handlers.QueueListener(log_queue, shipper)
    _axiom_listener.start()
    atexit.register(_axiom_listener.stop)
    return ContextQueueHandler(log_queue)


def setup_logging():
    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    formatter = AdminJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.axiom_token and settings.axiom_dataset and _axiom_listener is None:
        root.addHandler(_axiom_handler(formatter))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def log_event(event: str, level: str = "info", **fields: Any):
    """Logs a named admin event with its fields as top-level JSON keys."""
    fields["event"] = event
    logging.getLogger(SERVICE_NAME).log(
        logging.getLevelName(level.upper()),
        event,
        extra={k: v for k, v in fields.items() if v is not None},
    )
