from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.core.exceptions import ConflictError, NotFoundError, PersistenceError, SessionClosedError, ValidationError
from apps.responses.models import SurveyResponse
from apps.surveys.catalog import Page
from apps.surveys.models import SurveyInvitation

from .state import InProgress, SessionState, Submitted, classify, merge_answers, validate_page

logger = logging.getLogger(__name__)


@dataclass
class ResumedSession:
    invitation: SurveyInvitation
    state: SessionState

    @property
    def pages(self) -> Tuple[Page, ...]:
        return self.invitation.survey.definition.pages_for(self.invitation.participant_type)


def _load(token: str, for_update: bool = False) -> SurveyInvitation:
    if not token:
        raise NotFoundError("Invalid invitation")
    qs = SurveyInvitation.objects.select_related("survey", "contact")
    if for_update:
        qs = qs.select_for_update(of=("self",))
    inv = qs.filter(token=token).first()
    if inv is None:
        raise NotFoundError("Invalid invitation")
    return inv


def _require_in_progress(inv: SurveyInvitation, now: datetime) -> InProgress:
    state = classify(inv, inv.survey, now)
    if not isinstance(state, InProgress):
        raise SessionClosedError(state.name)
    return state


def resume(token: str, now: Optional[datetime] = None) -> ResumedSession:
    """
    Resolve a token into its session state.

    The first resume of a resumable invitation stamps `opened_at`; later
    resumes leave it alone. Terminal states are returned, not raised.

    Raises:
        - NotFoundError if the token does not resolve to an invitation.
    """
    now = now or timezone.now()
    inv = _load(token)
    state = classify(inv, inv.survey, now)

    if isinstance(state, InProgress) and inv.opened_at is None:
        SurveyInvitation.objects.filter(pk=inv.pk, opened_at__isnull=True).update(opened_at=now)
        inv.opened_at = now
        logger.info("Invitation opened", extra={"invitation_id": inv.id})

    return ResumedSession(invitation=inv, state=state)


def advance(token: str, page: int, answers: Any, now: Optional[datetime] = None) -> InProgress:
    """
    Checkpoint the answers of `page` and move the session to `page + 1`.

    `page` may be the saved checkpoint or any page before it (after a local
    `back()`). Required questions on `page` are checked against the merged
    answers; on failure nothing is written and the checkpoint stays put.

    Raises:
        - NotFoundError for an unknown token.
        - SessionClosedError if the invitation is not resumable.
        - ValidationError (with `missing`) for unanswered required questions
          or a page that cannot be advanced from.
        - PersistenceError if the checkpoint could not be stored.
    """
    now = now or timezone.now()
    try:
        with transaction.atomic():
            inv = _load(token, for_update=True)
            state = _require_in_progress(inv, now)
            pages = inv.survey.definition.pages_for(inv.participant_type)

            if not isinstance(page, int) or page < 0 or page >= len(pages) - 1:
                raise ValidationError(f"Cannot advance from page {page}")
            # pages past the checkpoint have not been answered yet
            if page > state.page:
                raise ValidationError(f"Cannot advance from page {page}; the survey is on page {state.page}")

            merged = merge_answers(state.answers, answers)
            validate_page(pages[page], merged)

            inv.current_page = page + 1
            inv.partial_responses = merged
            inv.save(update_fields=["current_page", "partial_responses", "updated_at"])
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to save progress: {exc}") from exc

    logger.debug("Session advanced", extra={"invitation_id": inv.id, "page": page + 1})
    return InProgress(page=page + 1, answers=merged)


def submit(token: str, answers: Any, now: Optional[datetime] = None) -> Submitted:
    """
    Finish the session: store the complete response and close the invitation.

    The invitation is marked responded (and its progress cleared) with a
    conditional update, so of two concurrent submits exactly one creates a
    response; the other gets ConflictError.

    Raises:
        - NotFoundError for an unknown token.
        - SessionClosedError if the invitation is not resumable.
        - ValidationError if the checkpoint is not on the final page, or (with
          `missing`) for unanswered required questions on the final page.
        - ConflictError if the invitation was submitted concurrently.
        - PersistenceError if the response could not be stored.
    """
    now = now or timezone.now()
    try:
        with transaction.atomic():
            inv = _load(token, for_update=True)
            state = _require_in_progress(inv, now)
            pages = inv.survey.definition.pages_for(inv.participant_type)

            if state.page != len(pages) - 1:
                raise ValidationError(f"Cannot submit from page {state.page}; complete the remaining pages first")

            merged = merge_answers(state.answers, answers)
            validate_page(pages[-1], merged)

            closed = (
                SurveyInvitation.objects
                .filter(pk=inv.pk, responded_at__isnull=True)
                .update(responded_at=now, current_page=None, partial_responses=None, updated_at=now)
            )
            if not closed:
                raise ConflictError()

            response = SurveyResponse.objects.create(
                survey=inv.survey,
                contact=inv.contact,
                invitation=inv,
                participant_type=inv.participant_type,
                responses=merged,
                completed_at=now,
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Failed to save response: {exc}") from exc

    logger.info("Survey submitted", extra={"invitation_id": inv.id, "response_id": response.id})
    return Submitted(response_id=response.id)


def state_payload(session: ResumedSession) -> Dict[str, Any]:
    """JSON shape shared by the session API and the public page."""
    state = session.state
    if not isinstance(state, InProgress):
        return {"state": state.name}

    inv = session.invitation
    contact = inv.contact
    return {
        "state": state.name,
        "page": state.page,
        "answers": state.answers,
        "participant_type": inv.participant_type,
        "name": contact.display_name if contact else inv.email,
        "survey": {"id": inv.survey_id, "title": inv.survey.title},
        "pages": [p.to_dict() for p in session.pages],
    }
