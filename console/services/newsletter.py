"""
Newsletter subscriptions and sends.

Mail goes through Django's configured email backend (console backend in dev,
locmem in tests). A failed delivery is logged and counted, never raised: one
bad address must not abort a send to every other subscriber.

Rules
-----
- subscribe: new email -> active subscription; an inactive one is reactivated
  with the new preferences; an already active one is a conflict.
- unsubscribe: unknown email (or wrong token) -> not found.
- send: disabled service, already-sent content, or no active subscriber -> conflict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from smtplib import SMTPException
from typing import Any, Dict, List, Optional, Sequence

from django.conf import settings
from django.core.mail import EmailMessage
from django.db import transaction

from core.exceptions import ConflictError, NotFoundError, store_guard
from console.models import (
    ActivityAction,
    ContentStatus,
    NewsletterContent,
    NewsletterSubscription,
    SubscriptionStatus,
)
from console.services.activity_log import ActivityLogService

logger = logging.getLogger("backoffice.newsletter")

BULK_SUBSCRIBE = "subscribe"
BULK_UNSUBSCRIBE = "unsubscribe"
BULK_DELETE = "delete"
BULK_ACTIONS = (BULK_SUBSCRIBE, BULK_UNSUBSCRIBE, BULK_DELETE)


@dataclass
class SendResult:
    sent: int = 0
    failed: int = 0
    total_subscribers: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)


def _deliver(subject: str, body: str, to: str) -> None:
    EmailMessage(subject=subject, body=body, from_email=settings.DEFAULT_FROM_EMAIL, to=[to]).send()


def _send_welcome(subscription: NewsletterSubscription) -> None:
    try:
        _deliver(
            "Welcome to our newsletter",
            "Thanks for subscribing. You can unsubscribe at any time.",
            subscription.email,
        )
    except (SMTPException, OSError):
        logger.exception("Welcome email failed", extra={"email": subscription.email})


def subscribe(email: str, preferences: Optional[dict] = None, *, now: datetime) -> NewsletterSubscription:
    email = email.strip().lower()
    preferences = preferences or {}
    with store_guard("newsletter.subscribe"):
        existing = NewsletterSubscription.objects.filter(email=email).first()
    if existing is not None:
        if existing.status == SubscriptionStatus.ACTIVE:
            raise ConflictError("Email is already subscribed to the newsletter.")
        existing.status = SubscriptionStatus.ACTIVE
        existing.preferences = preferences
        existing.subscribed_at = now
        existing.unsubscribed_at = None
        existing.stamp(now)
        with store_guard("newsletter.subscribe"):
            existing.save()
        logger.info("Newsletter subscription reactivated", extra={"subscription_id": existing.pk})
        return existing

    subscription = NewsletterSubscription(
        email=email,
        status=SubscriptionStatus.ACTIVE,
        preferences=preferences,
        subscribed_at=now,
    ).stamp(now)
    with store_guard("newsletter.subscribe"):
        subscription.save()
    _send_welcome(subscription)
    logger.info("Newsletter subscription created", extra={"subscription_id": subscription.pk})
    return subscription


def unsubscribe(email: str, token: Optional[str] = None, *, now: datetime) -> NewsletterSubscription:
    qs = NewsletterSubscription.objects.filter(email=email.strip().lower())
    if token:
        qs = qs.filter(verification_token=token)
    with store_guard("newsletter.unsubscribe"):
        subscription = qs.first()
    if subscription is None:
        raise NotFoundError("Subscription not found.")
    subscription.status = SubscriptionStatus.UNSUBSCRIBED
    subscription.unsubscribed_at = now
    subscription.stamp(now)
    with store_guard("newsletter.unsubscribe"):
        subscription.save(update_fields=["status", "unsubscribed_at", "updated_at"])
    return subscription


def bulk_action(action: str, emails: Sequence[str], *, now: datetime, actor, log: ActivityLogService) -> dict:
    """Apply `action` to each email; per-email failures are reported, not raised."""
    results: List[Dict[str, Any]] = []
    for email in emails:
        try:
            if action == BULK_SUBSCRIBE:
                subscribe(email, now=now)
            elif action == BULK_UNSUBSCRIBE:
                unsubscribe(email, now=now)
            else:
                with store_guard("newsletter.bulk_delete"):
                    deleted, _ = NewsletterSubscription.objects.filter(email=email.strip().lower()).delete()
                if not deleted:
                    raise NotFoundError("Subscription not found.")
            results.append({"email": email, "success": True})
        except (ConflictError, NotFoundError) as exc:
            results.append({"email": email, "success": False, "detail": str(exc.detail)})

    successful = sum(1 for r in results if r["success"])
    summary = {"action": action, "total": len(results), "successful": successful, "failed": len(results) - successful}
    log.record(actor, ActivityAction.BULK_ACTION, {"resource": "newsletter_subscribers", **summary})
    return {**summary, "results": results}


def create_content(data: dict, *, actor, now: datetime, log: ActivityLogService) -> NewsletterContent:
    content = NewsletterContent(created_by=actor if getattr(actor, "is_authenticated", False) else None, **data)
    content.stamp(now)
    with store_guard("newsletter.create_content"), transaction.atomic():
        content.save()
        log.log_created(actor, content)
    return content


def send_newsletter(content: NewsletterContent, *, actor, now: datetime, log: ActivityLogService) -> SendResult:
    if not getattr(settings, "NEWSLETTER_ENABLED", True):
        raise ConflictError("Newsletter sending is disabled.")
    if content.status == ContentStatus.SENT:
        raise ConflictError("Newsletter has already been sent.")

    subscribers = NewsletterSubscription.objects.filter(status=SubscriptionStatus.ACTIVE).order_by("id")
    with store_guard("newsletter.send", content_id=content.pk):
        total = subscribers.count()
    if total == 0:
        raise ConflictError("No active subscribers found.")

    result = SendResult(total_subscribers=total)
    for subscriber in subscribers.iterator():
        try:
            _deliver(content.subject, content.content, subscriber.email)
            result.sent += 1
        except (SMTPException, OSError) as exc:
            result.failed += 1
            result.errors.append({"email": subscriber.email, "error": str(exc)})
            logger.exception(
                "Newsletter delivery failed", extra={"email": subscriber.email, "content_id": content.pk}
            )

    content.status = ContentStatus.SENT
    content.sent_at = now
    content.sent_count = result.sent
    content.failed_count = result.failed
    content.stamp(now)
    with store_guard("newsletter.send", content_id=content.pk), transaction.atomic():
        content.save(update_fields=["status", "sent_at", "sent_count", "failed_count", "updated_at"])
        log.record(
            actor,
            ActivityAction.SENT,
            {"sent": result.sent, "failed": result.failed, "total_subscribers": total},
            subject=content,
        )
    logger.info("Newsletter sent", extra={"content_id": content.pk, "sent": result.sent, "failed": result.failed})
    return result


def newsletter_stats(*, now: datetime) -> dict:
    recent_start = now - timedelta(days=30)
    previous_start = now - timedelta(days=60)
    subs = NewsletterSubscription.objects
    with store_guard("newsletter.stats"):
        stats = {
            "total_subscribers": subs.count(),
            "active_subscribers": subs.filter(status=SubscriptionStatus.ACTIVE).count(),
            "unsubscribed": subs.filter(status=SubscriptionStatus.UNSUBSCRIBED).count(),
            "pending_verification": subs.filter(status=SubscriptionStatus.PENDING).count(),
            "total_newsletters_sent": NewsletterContent.objects.filter(status=ContentStatus.SENT).count(),
            "recent_subscriptions": subs.filter(subscribed_at__gte=recent_start).count(),
            "recent_unsubscriptions": subs.filter(unsubscribed_at__gte=recent_start).count(),
        }
        previous = subs.filter(subscribed_at__gte=previous_start, subscribed_at__lt=recent_start).count()
    if previous:
        stats["growth_rate"] = round((stats["recent_subscriptions"] - previous) / previous * 100, 2)
    else:
        stats["growth_rate"] = 100 if stats["recent_subscriptions"] else 0
    return stats
