"""Readiness probe for the console backend; no authentication, no session."""

from django.db import connection
from django.http import JsonResponse
from django.utils.timezone import now
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_GET


def _database_state():
    try:
        connection.ensure_connection()
    except Exception as exc:
        return "down", str(exc)
    return "ok", None


@never_cache
@require_GET
def health(request):
    """`GET /health/`: 200 while the database answers, 503 otherwise."""
    db_state, error = _database_state()
    body = {"app": "backoffice", "time": now().isoformat(), "db": db_state}
    if error is not None:
        body["error"] = error
    return JsonResponse(body, status=200 if error is None else 503)
