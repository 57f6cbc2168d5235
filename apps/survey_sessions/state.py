"""
Survey session states.

A respondent's traversal is decided once, on resume, by `classify`: the
invitation either lands in one of the terminal states or in `InProgress`
at its last checkpointed page. `InProgress.back()` is a purely local move;
only `advance`/`submit` in `services` ever persist anything.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from apps.core.exceptions import ValidationError
from apps.core.utility import is_present
from apps.surveys.catalog import Page


class SessionState:
    name = ""
    terminal = True


@dataclass(frozen=True)
class Unavailable(SessionState):
    name = "unavailable"


@dataclass(frozen=True)
class Expired(SessionState):
    name = "expired"


@dataclass(frozen=True)
class AlreadyResponded(SessionState):
    name = "already_responded"


@dataclass(frozen=True)
class Submitted(SessionState):
    name = "submitted"
    response_id: int = 0


@dataclass(frozen=True)
class InProgress(SessionState):
    name = "in_progress"
    terminal = False
    page: int = 0
    answers: Dict[str, Any] = field(default_factory=dict)

    def back(self) -> "InProgress":
        return InProgress(page=max(self.page - 1, 0), answers=self.answers)


def classify(invitation, survey, now: datetime) -> SessionState:
    if survey is None or not survey.is_active:
        return Unavailable()
    if invitation.expires_at and invitation.expires_at < now:
        return Expired()
    if invitation.responded_at:
        return AlreadyResponded()
    return InProgress(
        page=invitation.current_page or 0,
        answers=dict(invitation.partial_responses or {}),
    )


def missing_required(page: Page, answers: Dict[str, Any]) -> List[str]:
    return [qid for qid in page.required_ids() if not is_present(answers.get(qid))]


def validate_page(page: Page, answers: Dict[str, Any]) -> None:
    missing = missing_required(page, answers)
    if missing:
        raise ValidationError("Please answer all required questions before continuing.", missing=missing)


def merge_answers(saved: Dict[str, Any], incoming: Any) -> Dict[str, Any]:
    if incoming is None:
        incoming = {}
    if not isinstance(incoming, dict):
        raise ValidationError("Answers must be an object keyed by question id.")
    return {**saved, **incoming}

