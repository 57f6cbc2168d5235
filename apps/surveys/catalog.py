"""
Static, versioned survey definitions.

A definition is a tree of pages -> questions per participant type. Surveys
reference a definition by `Survey.definition_version`; the lifecycle only
reads it, it never generates or edits it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from apps.core.exceptions import NotFoundError


class QuestionKind:
    SCALE = "scale"
    TEXTAREA = "textarea"
    RATING_GROUP = "rating_group"

    ALL = (SCALE, TEXTAREA, RATING_GROUP)


RATING_LABELS = {"1": "Poor", "2": "Fair", "3": "Good", "4": "Very Good", "5": "Excellent"}


@dataclass(frozen=True)
class Question:
    id: str
    kind: str
    prompt: str
    required: bool = False
    label: str = ""
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_label(self) -> str:
        return self.label or self.id.replace("_", " ").title()

    @property
    def scale_range(self) -> Tuple[int, int]:
        return int(self.options.get("min", 1)), int(self.options.get("max", 5))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "question": self.prompt,
            "label": self.display_label,
            "required": self.required,
            "options": dict(self.options),
        }


@dataclass(frozen=True)
class Page:
    title: str
    questions: Tuple[Question, ...]

    def required_ids(self) -> List[str]:
        return [q.id for q in self.questions if q.required]

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "questions": [q.to_dict() for q in self.questions]}


@dataclass(frozen=True)
class SurveyDefinition:
    version: str
    pages_by_type: Dict[str, Tuple[Page, ...]]

    def pages_for(self, participant_type: str) -> Tuple[Page, ...]:
        try:
            return self.pages_by_type[participant_type]
        except KeyError:
            raise NotFoundError(f"No pages defined for participant type '{participant_type}'")

    def questions(self, participant_type: Optional[str] = None) -> List[Question]:
        """Questions in page order; without a type, the union over all types (first occurrence wins)."""
        types = [participant_type] if participant_type else list(self.pages_by_type)
        seen: Dict[str, Question] = {}
        for ptype in types:
            for page in self.pages_for(ptype):
                for q in page.questions:
                    seen.setdefault(q.id, q)
        return list(seen.values())


def _scale(qid: str, prompt: str, label: str, required: bool = True) -> Question:
    return Question(qid, QuestionKind.SCALE, prompt, required, label, {"min": 1, "max": 5, "labels": RATING_LABELS})


def _text(qid: str, prompt: str, label: str = "") -> Question:
    return Question(qid, QuestionKind.TEXTAREA, prompt, False, label)


def _group(qid: str, prompt: str, label: str, items: List[str], include_not_attended: bool = False) -> Question:
    return Question(
        qid, QuestionKind.RATING_GROUP, prompt, False, label,
        {"min": 1, "max": 5, "labels": RATING_LABELS, "items": items, "include_not_attended": include_not_attended},
    )


_OVERALL = _scale("overall_experience", "Overall, how was the conference for you?", "Overall Experience")
_VENUE = _scale("venue_rating", "How was the venue?", "Venue Rating")
_FOOD = _scale("food_rating", "How was the food?", "Food Rating")
_SCHEDULE = _scale("schedule_rating", "How was the schedule?", "Schedule Rating")

_LOGISTICS = Page("Logistics", (
    _VENUE,
    _text("hotel_feedback", "Any specific feedback about the hotel?", "Hotel Feedback"),
    _FOOD,
    _text("food_feedback", "Any specific feedback about the food?", "Food Feedback"),
    _SCHEDULE,
    _text("schedule_feedback", "Any specific feedback about the schedule?", "Schedule Feedback"),
))

_FINAL = Page("Final Thoughts", (
    _text("one_thing_change", "If you were running the 2027 conference, what's ONE thing you would do?", "What to Do for 2027"),
    _text(
        "honest_feedback",
        "This is your chance. Please, tell us honestly what you need us to hear. "
        "We read every single one of these, and the feedback you give means a lot.",
        "Honest Feedback",
    ),
))

CONFERENCE_2026 = SurveyDefinition(
    version="conference-2026",
    pages_by_type={
        "delegate": (
            Page("Overall Thoughts", (
                _OVERALL,
                _text("what_worked", "What aspects of the conference were most valuable to you?", "What Worked Well"),
                _text("waste_of_time", "What aspects of the conference could be improved or eliminated?", "What Felt Like a Waste"),
                _text("stop_doing", "What's one thing we should stop doing?", "What to Stop Doing"),
                _text("what_was_missing", "What was missing?", "What Was Missing"),
            )),
            _LOGISTICS,
            Page("Content", (
                _group(
                    "sessions_rating",
                    "Give us a general sense of how you felt about the sessions you attended:",
                    "Session Ratings",
                    [
                        "Manager's & Director's Summit",
                        "Meet & Greet Event",
                        "JCWG Benchmarking Session",
                        "Custom Orders Session",
                        "Disrupt & Delight Session",
                        "Hot Products Session",
                        "Speed Pitch Session",
                        "Trade Show",
                    ],
                    include_not_attended=True,
                ),
                _text("sessions_feedback", "Did you have any feedback on any of the above sessions?", "Session Feedback"),
            )),
            _FINAL,
        ),
        "exhibitor": (
            Page("Overall Thoughts", (_OVERALL,)),
            _LOGISTICS,
            Page("Logistics", (
                _group(
                    "services_rating",
                    "Let us know what you thought about the following:",
                    "Service Ratings",
                    [
                        "Sign up",
                        "Your booth",
                        "The name badges",
                        "The map",
                        "Communication with CSC",
                        "Stronco (set up)",
                        "Encore (lighting/electrical/AV)",
                    ],
                ),
                _text("services_feedback", "Did you have any feedback on any of the above services from the conference?", "Service Feedback"),
            )),
            _FINAL,
        ),
    },
)

CATALOG: Dict[str, SurveyDefinition] = {
    CONFERENCE_2026.version: CONFERENCE_2026,
}

DEFAULT_VERSION = CONFERENCE_2026.version


def get_definition(version: str) -> SurveyDefinition:
    try:
        return CATALOG[version]
    except KeyError:
        raise NotFoundError(f"Unknown survey definition '{version}'")
