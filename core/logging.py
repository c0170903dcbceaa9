"""
Logging helpers for request-scoped correlation.

Overview
--------
- `request_id_var` is a `contextvars.ContextVar` holding the current request id
  for the lifetime of a request (set by `core.middleware.RequestIDLogMiddleware`).
- `RequestIDFilter` injects `request_id` onto every `LogRecord`, so formatters
  using `%(request_id)s` work for log lines emitted by services, management
  commands and the exception handler alike ("-" outside a request).
- `ContextFilter` fills `%(context)s` for the `app` formatter. Services pass
  structured data through `extra={...}`; any non-standard record attributes are
  rendered as `key=value` pairs.

Configure both filters on handlers in Django `LOGGING` (see `backoffice.settings.base`).
"""

from __future__ import annotations

import logging
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED = frozenset(
    vars(logging.LogRecord("x", logging.INFO, "x", 0, "x", None, None)).keys()
) | {"message", "asctime", "request_id", "context"}


class RequestIDFilter(logging.Filter):
    """Ensure `%(request_id)s` is present on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        return True


class ContextFilter(logging.Filter):
    """Render `extra=` fields into a single `%(context)s` string."""

    def filter(self, record: logging.LogRecord) -> bool:
        extra = {k: v for k, v in vars(record).items() if k not in _RESERVED}
        explicit = getattr(record, "context", None)
        if isinstance(explicit, dict):
            extra.update(explicit)
        record.context = " ".join(f"{k}={v}" for k, v in sorted(extra.items())) or "-"
        return True
