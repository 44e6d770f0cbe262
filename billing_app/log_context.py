"""Context variables that tag log records with the request and workflow."""

from __future__ import annotations

import logging
from contextvars import ContextVar


request_id_ctx_var: ContextVar[str] = ContextVar("request_id", default="-")
workflow_id_ctx_var: ContextVar[str] = ContextVar("workflow_id", default="-")


class LogContextFilter(logging.Filter):
    """Copies the current request and workflow ids onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.request_id = request_id_ctx_var.get()
        record.workflow_id = workflow_id_ctx_var.get()
        return True
