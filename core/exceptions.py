from __future__ import annotations

"""
Error taxonomy and the DRF exception handler.

Classes
-------
- `ValidationError` (422): bad filter/sort/body input, reported with field detail.
- `NotFoundError` (404): referenced entity absent.
- `ConflictError` (409): a business rule blocks the operation (e.g. deleting a
  city that still has organizations). Raised before any mutation.
- `StoreError` (503): the database failed; logged with context, never retried.

All errors render the same envelope:
    {"detail": "...", "code": "...", "errors": {...}}   # errors only when present

`api_exception_handler` is wired through `REST_FRAMEWORK["EXCEPTION_HANDLER"]`.
It also reshapes DRF's own serializer `ValidationError` into the 422 envelope
and turns stray `DatabaseError`s into `StoreError`.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional, Sequence

from django.db import DatabaseError
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger("backoffice.errors")


class ConsoleError(drf_exceptions.APIException):
    """Base for console errors; carries an optional field -> messages map."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed."
    default_code = "error"

    def __init__(self, detail: Optional[str] = None, *, errors: Optional[Mapping[str, Sequence[str]]] = None):
        super().__init__(detail=detail or self.default_detail, code=self.default_code)
        self.errors = {k: list(v) for k, v in (errors or {}).items()}

    def payload(self) -> dict:
        body = {"detail": str(self.detail), "code": self.default_code}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ConsoleError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Validation failed."
    default_code = "validation_error"


class NotFoundError(ConsoleError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class ConflictError(ConsoleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Operation conflicts with existing records."
    default_code = "conflict"


class StoreError(ConsoleError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The data store is unavailable. Please try again later."
    default_code = "store_unavailable"


@contextmanager
def store_guard(operation: str, **context) -> Iterator[None]:
    """
    Translate `DatabaseError` raised inside the block into `StoreError`.

    The original exception is logged with `operation` and `context` and chained
    as `__cause__`.
    """
    try:
        yield
    except DatabaseError as exc:
        logger.exception("Store failure during %s", operation, extra={"context": context})
        raise StoreError() from exc


def _flatten_drf_errors(detail) -> dict:
    """Normalize DRF's nested ErrorDetail structure into {field: [messages]}."""
    if isinstance(detail, Mapping):
        out = {}
        for field, msgs in detail.items():
            if isinstance(msgs, (list, tuple)):
                out[field] = [str(m) for m in msgs]
            elif isinstance(msgs, Mapping):
                out[field] = [f"{k}: {v}" for k, v in _flatten_drf_errors(msgs).items()]
            else:
                out[field] = [str(msgs)]
        return out
    if isinstance(detail, (list, tuple)):
        return {"non_field_errors": [str(m) for m in detail]}
    return {"non_field_errors": [str(detail)]}


def api_exception_handler(exc, context):
    """
    DRF exception handler producing the console error envelope.

    Order:
        1) Console errors render their own payload.
        2) DRF serializer validation errors become 422 with field messages.
        3) Database errors become 503 (`StoreError`).
        4) Everything else falls back to DRF's default handler.
    """
    if isinstance(exc, ConsoleError):
        return Response(exc.payload(), status=exc.status_code)

    if isinstance(exc, drf_exceptions.ValidationError):
        err = ValidationError(errors=_flatten_drf_errors(exc.detail))
        return Response(err.payload(), status=err.status_code)

    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.exception("Unhandled store failure in %s", view.__class__.__name__ if view else "-")
        err = StoreError()
        return Response(err.payload(), status=err.status_code)

    return drf_exception_handler(exc, context)
