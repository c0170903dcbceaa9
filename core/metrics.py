"""
Request metrics kept in the Django cache for the performance dashboard.

- `record_request()` prepends one entry per request and trims the list to
  `PERFORMANCE_METRICS_MAX` (default 100). Newest first.
- `recent_requests()` reads it back; `summarize()` derives averages and the
  slowest entries.

The list lives under a single cache key. Concurrent writers may drop an entry
(read-modify-write without a lock); acceptable for a monitoring sample.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.cache import cache

METRICS_CACHE_KEY = "backoffice:performance_metrics"
METRICS_TTL_SECONDS = 60 * 60 * 24


def metrics_enabled() -> bool:
    return bool(getattr(settings, "PERFORMANCE_METRICS_ENABLED", True))


def _max_entries() -> int:
    return max(1, int(getattr(settings, "PERFORMANCE_METRICS_MAX", 100)))


def record_request(
    *,
    method: str,
    path: str,
    status: int,
    duration_ms: int,
    timestamp: str,
    user_id: Optional[int] = None,
    request_id: str = "-",
) -> None:
    if not metrics_enabled():
        return
    entry = {
        "method": method,
        "path": path,
        "status": status,
        "duration_ms": duration_ms,
        "timestamp": timestamp,
        "user_id": user_id,
        "request_id": request_id,
    }
    entries = cache.get(METRICS_CACHE_KEY) or []
    entries.insert(0, entry)
    cache.set(METRICS_CACHE_KEY, entries[: _max_entries()], METRICS_TTL_SECONDS)


def recent_requests(limit: Optional[int] = None) -> List[Dict[str, Any]]:
    entries = cache.get(METRICS_CACHE_KEY) or []
    return entries[:limit] if limit else list(entries)


def summarize(entries: List[Dict[str, Any]], slowest: int = 5) -> Dict[str, Any]:
    if not entries:
        return {"count": 0, "avg_duration_ms": None, "max_duration_ms": None, "error_rate": None, "slowest": []}
    durations = [e.get("duration_ms", 0) for e in entries]
    errors = sum(1 for e in entries if int(e.get("status", 0)) >= 500)
    return {
        "count": len(entries),
        "avg_duration_ms": round(sum(durations) / len(durations), 2),
        "max_duration_ms": max(durations),
        "error_rate": round(errors / len(entries), 4),
        "slowest": sorted(entries, key=lambda e: e.get("duration_ms", 0), reverse=True)[:slowest],
    }


def clear() -> None:
    cache.delete(METRICS_CACHE_KEY)
