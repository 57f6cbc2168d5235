from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.core.mail.message import make_msgid
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from .models import ParticipantType

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def send_email(to: Optional[str], subject: str, html: str, from_email: Optional[str] = None) -> EmailResult:
    """
    Deliver a single HTML email through the configured Django email backend.

    Transport failures are returned as data (`success=False`, `error=...`),
    never raised, so callers can treat them as per-recipient outcomes.
    """
    sender = from_email or getattr(settings, "DEFAULT_FROM_EMAIL", None)
    original_to = to
    override = getattr(settings, "TEST_EMAIL_OVERRIDE", "")
    if override:
        to = override
        logger.info("Overriding invitation recipient", extra={"original_to": original_to, "to": to})

    if not to:
        return EmailResult(success=False, error="Recipient email address required")

    message_id = make_msgid(domain=(sender or "localhost").rsplit("@", 1)[-1].strip(">") or None)
    msg = EmailMultiAlternatives(
        subject=subject,
        body=strip_tags(html),
        from_email=sender,
        to=[to],
        headers={"Message-ID": message_id},
    )
    msg.attach_alternative(html, "text/html")

    try:
        with get_connection(fail_silently=False) as conn:
            sent = conn.send_messages([msg]) or 0
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning(
            "Email transport failed. Host=%s Port=%s TLS=%s SSL=%s From=%s",
            getattr(settings, "EMAIL_HOST", None),
            getattr(settings, "EMAIL_PORT", None),
            getattr(settings, "EMAIL_USE_TLS", None),
            getattr(settings, "EMAIL_USE_SSL", None),
            sender,
        )
        return EmailResult(success=False, error=str(exc) or exc.__class__.__name__)

    if not sent:
        return EmailResult(success=False, error="Email backend accepted no messages")
    return EmailResult(success=True, message_id=message_id)


def render_invitation_email(name: str, survey_url: str, participant_type: str, custom_message: Optional[str] = None) -> str:
    participant_text = "conference delegate" if participant_type == ParticipantType.DELEGATE else "exhibitor"
    return render_to_string(
        "emails/invitation.html",
        {
            "name": name,
            "survey_url": survey_url,
            "participant_text": participant_text,
            "custom_message": (custom_message or "").strip(),
        },
    )
