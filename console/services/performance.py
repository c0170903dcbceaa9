from __future__ import annotations

"""
Performance dashboard data.

- cache: backend class, a set/get round-trip probe, and the recorded-metrics size.
- database: vendor, connection check, and row counts for the console tables.
- requests: recent request samples recorded by `RequestIDLogMiddleware`.
"""

import logging
import platform
import sys
import time

import django
from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection

from core import metrics

logger = logging.getLogger("backoffice.performance")

_PROBE_KEY = "backoffice:performance_probe"


def cache_stats() -> dict:
    backend = settings.CACHES.get("default", {}).get("BACKEND", "")
    start = time.perf_counter()
    try:
        cache.set(_PROBE_KEY, "ok", 10)
        ok = cache.get(_PROBE_KEY) == "ok"
    except Exception:
        logger.exception("Cache probe failed")
        ok = False
    return {
        "backend": backend.rsplit(".", 1)[-1],
        "status": "connected" if ok else "error",
        "probe_ms": round((time.perf_counter() - start) * 1000, 3),
        "recorded_requests": len(metrics.recent_requests()),
    }


def database_stats() -> dict:
    from accounts.models import User
    from console.models import ActivityLog, NewsletterSubscription, Organization, Translation
    from geography.models import City, Country

    payload = {"vendor": connection.vendor, "status": "connected"}
    try:
        start = time.perf_counter()
        connection.ensure_connection()
        payload["tables"] = {
            "users": User.objects.count(),
            "countries": Country.objects.count(),
            "cities": City.objects.count(),
            "organizations": Organization.objects.count(),
            "newsletter_subscriptions": NewsletterSubscription.objects.count(),
            "translations": Translation.objects.count(),
            "activity_logs": ActivityLog.objects.count(),
        }
        payload["query_ms"] = round((time.perf_counter() - start) * 1000, 3)
    except DatabaseError:
        logger.exception("Database stats failed")
        payload["status"] = "error"
    return payload


def system_info() -> dict:
    return {
        "python_version": platform.python_version(),
        "django_version": django.get_version(),
        "platform": sys.platform,
        "debug": settings.DEBUG,
        "metrics_enabled": metrics.metrics_enabled(),
    }


def dashboard(limit: int = 20) -> dict:
    recent = metrics.recent_requests()
    return {
        "cache": cache_stats(),
        "database": database_stats(),
        "requests": metrics.summarize(recent),
        "recent_requests": recent[:limit],
        "system": system_info(),
    }


def clear_cache(*, actor_id=None) -> None:
    cache.clear()
    logger.info("Cache cleared", extra={"actor_id": actor_id})
