"""
Email background tasks.

Email verification, offer interest and booking request notices.
"""

from __future__ import annotations

import logging

import resend
from celery import Task

from truk.core.config import settings
from truk.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


def _send(to_email: str, subject: str, html: str) -> dict[str, str]:
    resend.api_key = settings.RESEND_API_KEY
    params: resend.Emails.SendParams = {
        "from": settings.EMAIL_FROM,
        "to": [to_email],
        "subject": subject,
        "html": html,
    }
    response = resend.Emails.send(params)
    return {"status": "sent", "message_id": response["id"]}


@celery_app.task(name="truk.workers.email_tasks.send_verification_email", bind=True, max_retries=3)
def send_verification_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    name: str,
    token: str,
    frontend_url: str,
) -> dict[str, str]:
    """
    Send the email-verification link via Resend.

    Args:
        to_email: Recipient email address.
        name: Recipient display name.
        token: Verification token stored in Redis.
        frontend_url: Frontend base URL for constructing the link.
    """
    try:
        verify_url = f"{frontend_url}/verify-email?token={token}"
        return _send(
            to_email,
            "Verify your email on Truk",
            f"""
                <h2>Welcome to Truk, {name}</h2>
                <p>Confirm your email address to start offering and contributing.</p>
                <p>
                    <a href="{verify_url}"
                       style="background:#16a34a;color:#fff;padding:12px 24px;
                              border-radius:6px;text-decoration:none;display:inline-block;">
                        Verify email
                    </a>
                </p>
                <p>This link expires in {settings.EMAIL_VERIFICATION_EXPIRE_HOURS} hours.</p>
            """,
        )
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(name="truk.workers.email_tasks.send_offer_interest_email", bind=True, max_retries=3)
def send_offer_interest_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    owner_name: str,
    interested_name: str,
    offer_title: str,
    offer_id: str,
    frontend_url: str,
) -> dict[str, str]:
    """Tell an offer owner that someone is interested in their offer."""
    try:
        offer_url = f"{frontend_url}/offers/{offer_id}"
        return _send(
            to_email,
            f"{interested_name} is interested in \"{offer_title}\"",
            f"""
                <h2>Hi {owner_name},</h2>
                <p><strong>{interested_name}</strong> is interested in your offer
                <strong>{offer_title}</strong>.</p>
                <p><a href="{offer_url}">View offer</a></p>
            """,
        )
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(name="truk.workers.email_tasks.send_booking_request_email", bind=True, max_retries=3)
def send_booking_request_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    owner_name: str,
    guest_name: str,
    listing_title: str,
    booking_kind: str,
    frontend_url: str,
) -> dict[str, str]:
    """Tell a space owner or host that a booking is waiting for approval."""
    try:
        return _send(
            to_email,
            f"New booking request for \"{listing_title}\"",
            f"""
                <h2>Hi {owner_name},</h2>
                <p><strong>{guest_name}</strong> requested a {booking_kind} booking for
                <strong>{listing_title}</strong>.</p>
                <p><a href="{frontend_url}/housing/bookings">Review the request</a></p>
            """,
        )
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


def queue_email(task: Task, **kwargs: str) -> None:
    """
    Fire-and-forget: enqueue an email task.

    Broker failures are logged; the calling request still succeeds.
    """
    try:
        task.delay(**kwargs)
    except Exception:
        logger.warning("Could not enqueue %s", task.name, exc_info=True)
