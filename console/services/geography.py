"""
Country / city write rules.

- A city cannot be deleted while organizations, users or events reference it.
- A country cannot be deleted while cities or users reference it.

Both checks run before any mutation: a blocked delete raises `ConflictError`
and leaves neither a deletion nor an activity entry behind.
"""

from __future__ import annotations

import logging
from typing import Dict

from django.db import transaction

from accounts.models import User
from core.exceptions import ConflictError, store_guard
from console.models import Event, Organization
from console.services.activity_log import ActivityLogService, snapshot_model
from geography.models import City, Country, GeoStatus

logger = logging.getLogger("backoffice.geography")


def city_dependents(city: City) -> Dict[str, int]:
    with store_guard("city.dependents", city_id=city.pk):
        return {
            "organizations": Organization.objects.filter(city=city).count(),
            "users": User.objects.filter(city=city).count(),
            "events": Event.objects.filter(city=city).count(),
        }


def country_dependents(country: Country) -> Dict[str, int]:
    with store_guard("country.dependents", country_id=country.pk):
        return {
            "cities": City.objects.filter(country=country).count(),
            "users": User.objects.filter(country=country).count(),
        }


def _raise_if_referenced(label: str, dependents: Dict[str, int]) -> None:
    blocking = {name: n for name, n in dependents.items() if n}
    if blocking:
        raise ConflictError(
            f"Cannot delete {label} with associated records.",
            errors={name: [f"{n} associated {name}."] for name, n in blocking.items()},
        )


def _delete(instance, *, actor, log: ActivityLogService) -> None:
    snapshot = snapshot_model(instance)
    snapshot["id"] = instance.pk
    with store_guard(f"{instance._meta.model_name}.delete", pk=instance.pk), transaction.atomic():
        instance.delete()
        log.log_deleted(actor, instance, snapshot)
    logger.info(
        "%s deleted", instance._meta.verbose_name.capitalize(),
        extra={"object_id": snapshot["id"], "actor_id": getattr(actor, "pk", None)},
    )


def delete_city(city: City, *, actor, log: ActivityLogService) -> None:
    _raise_if_referenced("city", city_dependents(city))
    _delete(city, actor=actor, log=log)


def delete_country(country: Country, *, actor, log: ActivityLogService) -> None:
    _raise_if_referenced("country", country_dependents(country))
    _delete(country, actor=actor, log=log)


def toggle_status(instance, *, actor, log: ActivityLogService):
    """
    Flip `active` <-> `inactive` (any other status becomes `active`).

    Works for countries, cities and users, which share the `status` field.
    """
    old = instance.status
    new = GeoStatus.INACTIVE if old == GeoStatus.ACTIVE else GeoStatus.ACTIVE
    instance.status = new
    update_fields = ["status"]
    if hasattr(instance, "stamp"):
        instance.stamp(log.now)
        update_fields.append("updated_at")
    with store_guard(f"{instance._meta.model_name}.toggle_status", pk=instance.pk), transaction.atomic():
        instance.save(update_fields=update_fields)
        log.log_status_change(actor, instance, old, str(new))
    return instance
