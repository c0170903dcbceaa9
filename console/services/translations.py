"""
Translation management rules and reporting.

- Keys are unique per (locale, group, namespace); duplicates are rejected by
  the serializer before reaching the database constraint.
- System translations cannot be deleted (403).
- A translation is *missing* when its value is empty and *needs review* when it
  is missing or contains a placeholder marker (TODO, TRANSLATE, MISSING, `{{`,
  `}}`, `[PLACEHOLDER]`).
- Locale progress is measured against the number of base-locale (`en`) keys.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

from django.db import transaction
from django.db.models import Count
from rest_framework.exceptions import PermissionDenied

from core.exceptions import store_guard
from console.models import (
    BASE_LOCALE,
    SUPPORTED_LOCALES,
    Translation,
    missing_value_q,
    needs_review_q,
)
from console.services.activity_log import ActivityLogService, snapshot_model

logger = logging.getLogger("backoffice.translations")


def delete_translation(translation: Translation, *, actor, log: ActivityLogService) -> None:
    if translation.is_system:
        raise PermissionDenied("System translations cannot be deleted.")
    snapshot = snapshot_model(translation)
    snapshot["id"] = translation.pk
    with store_guard("translation.delete", pk=translation.pk), transaction.atomic():
        translation.delete()
        log.log_deleted(actor, translation, snapshot, full_key=translation.full_key)
    logger.info("Translation deleted", extra={"object_id": snapshot["id"], "locale": translation.locale})


def locale_progress(locale: str) -> Dict[str, float]:
    qs = Translation.objects.filter(locale=locale)
    with store_guard("translation.progress", locale=locale):
        total = Translation.objects.filter(locale=BASE_LOCALE).count()
        translated = qs.exclude(missing_value_q()).count()
        review = qs.filter(needs_review_q()).count()
    return {
        "total": total,
        "translated": translated,
        "needs_review": review,
        "percentage": round(translated / total * 100, 2) if total else 0,
    }


def progress_for(locales: Optional[Iterable[str]] = None) -> Dict[str, dict]:
    return {locale: locale_progress(locale) for locale in (locales or SUPPORTED_LOCALES)}


def translation_stats(*, now: datetime) -> dict:
    qs = Translation.objects.all()
    with store_guard("translation.stats"):
        total = qs.count()
        active = qs.filter(is_active=True).count()
        review = qs.filter(needs_review_q()).count()
        missing = qs.filter(missing_value_q()).count()
        groups = {
            row["group"]: row["count"]
            for row in qs.exclude(group="").values("group").annotate(count=Count("id")).order_by("group")
        }
        recent = qs.filter(created_at__gte=now - timedelta(days=7)).count()
        locales_in_use = sorted(qs.order_by().values_list("locale", flat=True).distinct())
    return {
        "total": total,
        "active": active,
        "needs_review": review,
        "missing": missing,
        "locale_stats": progress_for(locales_in_use),
        "group_distribution": groups,
        "recent_translations": recent,
        "completion_rate": round((total - missing) / total * 100, 2) if total else 0,
    }
