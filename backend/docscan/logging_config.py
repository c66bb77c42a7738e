"""Logging setup for the OCR service.

Every record carries the id of the HTTP request it was emitted under, taken
from a context variable that the request-id middleware binds. On Cloud Run
records are JSON (python-json-logger) with the Python level reported as
``severity`` and the request id as a Cloud Logging label, so one upload's
normalize/submit/poll/persist lines can be filtered together.
"""
from __future__ import annotations

import logging
import os
import uuid
from contextvars import ContextVar, Token

from pythonjsonlogger.json import JsonFormatter

NO_REQUEST = "-"

_request_id: ContextVar[str] = ContextVar("docscan_request_id", default=NO_REQUEST)


def bind_request_id(request_id: str) -> Token:
    """Make ``request_id`` the id attached to log records in the current context."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def current_request_id() -> str:
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Stamp ``record.request_id`` from the bound context (``-`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = current_request_id()
        return True


class CloudRunJsonFormatter(JsonFormatter):
    """JSON formatter with GCP ``severity`` and the request id as a log label."""

    def add_fields(
        self,
        log_record: dict[str, object],
        record: logging.LogRecord,
        message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["severity"] = record.levelname
        log_record.pop("levelname", None)
        request_id = getattr(record, "request_id", NO_REQUEST)
        if request_id != NO_REQUEST:
            log_record["logging.googleapis.com/labels"] = {"request_id": request_id}


def setup_logging(*, level: str = "INFO", json_output: bool | None = None) -> None:
    """Install one stderr handler on the root logger.

    JSON when ``json_output`` is true (default: only when running on Cloud Run,
    detected via ``K_SERVICE``), plain text otherwise. Pipeline messages
    already start with ``[request_id]``, so the plain format leaves it out.
    """
    if json_output is None:
        json_output = bool(os.getenv("K_SERVICE"))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    if json_output:
        handler.setFormatter(CloudRunJsonFormatter(
            fmt="%(message)s %(name)s %(request_id)s",
            rename_fields={"name": "logger"},
        ))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s  %(message)s",
            datefmt="%H:%M:%S",
        ))

    root.addHandler(handler)
    # httpx logs every request line at INFO, which would include the poll URL each second
    logging.getLogger("httpx").setLevel(max(root.level, logging.WARNING))


def generate_request_id() -> str:
    """Short unique id used for ``x-request-id`` and the stored record."""
    return uuid.uuid4().hex[:16]
