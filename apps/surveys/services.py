from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.contacts.models import Contact
from apps.core.exceptions import DeliveryError, NotFoundError, PersistenceError, ServiceError

from .email import render_invitation_email, send_email
from .models import ParticipantType, Survey, SurveyInvitation, SurveyStatus
from .tokens import generate_token

logger = logging.getLogger(__name__)


def invitation_ttl() -> timedelta:
    return timedelta(days=settings.SURVEY_INVITATION_TTL_DAYS)


def get_active_survey() -> Survey:
    survey = Survey.objects.filter(status=SurveyStatus.ACTIVE).first()
    if survey is None:
        raise NotFoundError("No active survey found")
    return survey


def classify_participant_type(tag_names: Iterable[str]) -> str:
    """Delegate wins when a contact carries both conference tags; anything else is an exhibitor."""
    if settings.SURVEY_DELEGATE_TAG in set(tag_names):
        return ParticipantType.DELEGATE
    return ParticipantType.EXHIBITOR


def has_conference_tag(tag_names: Iterable[str]) -> bool:
    tags = set(tag_names)
    return bool(tags & {settings.SURVEY_DELEGATE_TAG, settings.SURVEY_EXHIBITOR_TAG})


# ---- Issuance -----------------------------------------------------------------

def issue_or_refresh(contact: Contact, survey: Survey, now: Optional[datetime] = None) -> SurveyInvitation:
    """
    Issue an invitation for (contact, survey), or re-issue the live one.

    Re-issuance keeps the invitation id but replaces its token (the old link
    stops resolving) and restarts the expiry window from `now`. Expired
    invitations are left untouched and a fresh row is inserted.

    Raises:
        - PersistenceError if the store rejects the write (including token collisions).
    """
    now = now or timezone.now()
    expires_at = now + invitation_ttl()
    participant_type = classify_participant_type(contact.tag_names)

    try:
        with transaction.atomic():
            inv = (
                SurveyInvitation.objects
                .select_for_update()
                .filter(survey=survey, contact=contact, expires_at__gte=now)
                .order_by("-sent_at", "-id")
                .first()
            )
            if inv is not None:
                inv.token = generate_token()
                inv.email = contact.email
                inv.participant_type = participant_type
                inv.sent_at = now
                inv.expires_at = expires_at
                inv.save(update_fields=["token", "email", "participant_type", "sent_at", "expires_at", "updated_at"])
                logger.info("Invitation refreshed", extra={"invitation_id": inv.id, "contact_id": contact.id})
                return inv

            inv = SurveyInvitation.objects.create(
                survey=survey,
                contact=contact,
                email=contact.email,
                participant_type=participant_type,
                token=generate_token(),
                sent_at=now,
                expires_at=expires_at,
            )
            logger.info("Invitation issued", extra={"invitation_id": inv.id, "contact_id": contact.id})
            return inv
    except DatabaseError as exc:
        # IntegrityError included: a token collision must never be accepted
        raise PersistenceError(f"Failed to store invitation: {exc}") from exc


# ---- Batch distribution -------------------------------------------------------

@dataclass
class RecipientError:
    contact_id: int
    email: Optional[str]
    error: str

    def as_dict(self) -> Dict[str, Any]:
        return {"contact_id": self.contact_id, "email": self.email, "error": self.error}


@dataclass
class BatchResult:
    success: int = 0
    failed: int = 0
    errors: List[RecipientError] = field(default_factory=list)

    def ok(self) -> "BatchResult":
        self.success += 1
        return self

    def fail(self, contact_id: int, email: Optional[str], error: str) -> "BatchResult":
        self.failed += 1
        self.errors.append(RecipientError(contact_id, email, error))
        return self

    def as_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "failed": self.failed, "errors": [e.as_dict() for e in self.errors]}


def deliver_invitation(contact: Contact, survey: Survey, subject: Optional[str] = None, message: Optional[str] = None) -> SurveyInvitation:
    """
    Issue (or refresh) the contact's invitation, then email the link.

    The token is committed before the email goes out, so a delivery failure
    still leaves a valid invitation behind.

    Raises:
        - DeliveryError if the contact has no address or the transport rejects the message.
        - PersistenceError if the invitation could not be stored.
    """
    if not contact.email:
        raise DeliveryError("Contact has no email address on file")

    inv = issue_or_refresh(contact, survey)

    html = render_invitation_email(contact.display_name, inv.survey_url, inv.participant_type, message)
    result = send_email(
        to=contact.email,
        subject=subject or settings.SURVEY_DEFAULT_SUBJECT,
        html=html,
    )
    if not result.success:
        raise DeliveryError(result.error or "Unknown error")
    logger.info("Sent survey invitation", extra={"contact_id": contact.id, "message_id": result.message_id})
    return inv


def send_batch(contact_ids: List[int], subject: Optional[str] = None, message: Optional[str] = None) -> BatchResult:
    """
    Send (or re-send) invitations to every contact in `contact_ids`.

    Recipients are processed one at a time and independently: a failure for
    one contact is recorded in the result and never stops the others.

    Raises (wholesale failures only):
        - NotFoundError if no survey is active or none of the contacts exist.
        - PersistenceError if the contact lookup itself fails.
    """
    survey = get_active_survey()

    try:
        by_id = {c.id: c for c in Contact.objects.filter(id__in=contact_ids)}
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to fetch contacts: {exc}") from exc
    if not by_id:
        raise NotFoundError("No contacts found")

    result = BatchResult()
    for contact_id in dict.fromkeys(contact_ids):
        contact = by_id.get(contact_id)
        if contact is None:
            result = result.fail(contact_id, None, "Contact not found")
            continue
        try:
            deliver_invitation(contact, survey, subject, message)
        except ServiceError as exc:
            logger.warning("Failed to send invitation to contact %s: %s", contact.id, exc)
            result = result.fail(contact.id, contact.email, str(exc.detail))
        except Exception as exc:
            logger.exception("Unexpected error sending invitation to contact %s", contact.id)
            result = result.fail(contact.id, contact.email, str(exc) or "Unknown error")
        else:
            result = result.ok()

    logger.info(
        "Invitation batch finished",
        extra={"survey_id": survey.id, "success": result.success, "failed": result.failed},
    )
    return result


# ---- Distribution list --------------------------------------------------------

def distribution_list() -> List[Dict[str, Any]]:
    """
    Contacts eligible for the conference survey with their invitation status
    for the active survey (if any).
    """
    contacts = Contact.objects.exclude(email__isnull=True).exclude(email="").order_by("name", "id")
    survey = Survey.objects.filter(status=SurveyStatus.ACTIVE).first()

    status_by_contact: Dict[int, SurveyInvitation] = {}
    if survey is not None:
        for inv in SurveyInvitation.objects.filter(survey=survey, contact__isnull=False).order_by("sent_at", "id"):
            # Latest invitation per contact wins
            status_by_contact[inv.contact_id] = inv

    rows = []
    for contact in contacts:
        tags = contact.tag_names
        if not has_conference_tag(tags):
            continue
        inv = status_by_contact.get(contact.id)
        rows.append({
            "id": contact.id,
            "email": contact.email,
            "name": contact.display_name,
            "participant_type": classify_participant_type(tags),
            "sent_at": inv.sent_at if inv else None,
            "opened_at": inv.opened_at if inv else None,
            "responded_at": inv.responded_at if inv else None,
            "has_responded": bool(inv and inv.responded_at),
        })
    logger.debug("Distribution list built", extra={"count": len(rows)})
    return rows
