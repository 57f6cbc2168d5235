from __future__ import annotations

import logging
from typing import Optional

from django.db import DatabaseError, transaction
from django.db.models import QuerySet

from apps.core.exceptions import NotFoundError, PersistenceError
from apps.surveys.models import ParticipantType, SurveyInvitation

from .models import SurveyResponse

logger = logging.getLogger(__name__)


def list_responses(participant_type: Optional[str] = None) -> QuerySet:
    """Completed responses, newest first; an unknown or empty filter means all."""
    qs = SurveyResponse.objects.select_related("contact", "survey", "invitation").order_by("-completed_at", "-id")
    if participant_type in ParticipantType.values:
        qs = qs.filter(participant_type=participant_type)
    return qs


def delete_response(response_id: int) -> int:
    """
    Delete a response and reopen the invitation(s) it closed.

    Every invitation of the response's (contact, survey) pair gets its
    responded/progress fields cleared, so the contact can take the survey
    again with the same link. A response without a contact, or a pair with
    no invitation left, only deletes the response.

    Returns the number of invitations reopened.

    Raises:
        - NotFoundError if no response has this id.
        - PersistenceError if the store rejects the change.
    """
    try:
        with transaction.atomic():
            response = SurveyResponse.objects.select_for_update().filter(pk=response_id).first()
            if response is None:
                raise NotFoundError("Response not found")

            contact_id, survey_id = response.contact_id, response.survey_id
            response.delete()

            reopened = 0
            if contact_id is not None:
                reopened = (
                    SurveyInvitation.objects
                    .filter(contact_id=contact_id, survey_id=survey_id)
                    .update(responded_at=None, current_page=None, partial_responses=None)
                )
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to delete response: {exc}") from exc

    logger.info("Response deleted", extra={"response_id": response_id, "reopened": reopened})
    return reopened
