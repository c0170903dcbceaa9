"""
Request guards and per-request telemetry for the console API.

`RequestSizeLimitMiddleware` turns away write requests whose declared
`Content-Length` exceeds `MAX_REQUEST_BYTES` (413, JSON body) before DRF parses
anything.

`RequestIDLogMiddleware` tags each request with a correlation id, emits one
`backoffice.request` log record when the response is ready and feeds the
sample to `core.metrics` for the performance dashboard.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable, Optional

from django.conf import settings
from django.http import HttpRequest, HttpResponse
from django.utils import timezone
from rest_framework.renderers import JSONRenderer
from rest_framework.response import Response

from core import metrics
from core.logging import request_id_var

logger = logging.getLogger("backoffice.request")

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._\-]{1,200}$")
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Probes, static assets and API docs never reach the dashboard sample.
UNSAMPLED_PREFIXES = ("/health/", "/static/", "/api/schema/", "/api/docs/", "/api/redoc/")

GetResponse = Callable[[HttpRequest], HttpResponse]


def resolve_request_id(incoming: Optional[str]) -> str:
    """Keep a well-formed incoming id, otherwise mint a fresh uuid4 hex."""
    if incoming and REQUEST_ID_RE.match(incoming):
        return incoming
    return uuid.uuid4().hex


def _declared_length(request: HttpRequest) -> Optional[int]:
    try:
        return int(request.META["CONTENT_LENGTH"])
    except (KeyError, TypeError, ValueError):
        return None


def _too_large(limit: int) -> Response:
    resp = Response(
        {
            "detail": f"Request entity too large. Max {limit} bytes.",
            "code": "request_too_large",
            "max_bytes": limit,
        },
        status=413,
    )
    # Rendered here: no DRF view will run for this request.
    resp.accepted_renderer = JSONRenderer()
    resp.accepted_media_type = "application/json"
    resp.renderer_context = {}
    return resp.render()


class RequestSizeLimitMiddleware:
    """413 for POST/PUT/PATCH bodies above `MAX_REQUEST_BYTES` (0 disables the check)."""

    def __init__(self, get_response: GetResponse) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        limit = int(getattr(settings, "MAX_REQUEST_BYTES", 2_000_000))
        if limit > 0 and request.method.upper() in BODY_METHODS:
            length = _declared_length(request)
            if length is not None and length > limit:
                return _too_large(limit)
        return self.get_response(request)


class RequestIDLogMiddleware:
    def __init__(self, get_response: GetResponse) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.request_id = request_id
        ctx_token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = self.get_response(request)
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            response.headers[REQUEST_ID_HEADER] = request_id
            self._observe(request, response, request_id, elapsed_ms)
            return response
        finally:
            request_id_var.reset(ctx_token)

    @staticmethod
    def _observe(request: HttpRequest, response: HttpResponse, request_id: str, elapsed_ms: int) -> None:
        user = getattr(request, "user", None)
        user_id = user.pk if user is not None and user.is_authenticated else None
        status_code = getattr(response, "status_code", 0)

        logger.info(
            "request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.path,
                "status": status_code,
                "user_id": user_id,
                "duration_ms": elapsed_ms,
            },
        )
        if request.path.startswith(UNSAMPLED_PREFIXES):
            return
        metrics.record_request(
            method=request.method,
            path=request.path,
            status=status_code,
            duration_ms=elapsed_ms,
            timestamp=timezone.now().isoformat(),
            user_id=user_id,
            request_id=request_id,
        )
