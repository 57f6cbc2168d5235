"""
Response aggregation.

Pure functions over completed answer documents (question id -> raw JSON
answer). Answers are stored untyped; they are interpreted against the
question kind here and nowhere else. Values that do not fit the kind are
ignored rather than rejected, so a malformed document never breaks a
summary.

Identical input always yields identical output: ordering depends only on
document order and counts.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from apps.surveys.catalog import Question, QuestionKind, SurveyDefinition

TOP_WORDS = 15
MIN_WORD_LENGTH = 4

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "as", "is", "was", "are", "were", "been", "be",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "can", "it", "its", "i", "we", "they",
    "them", "their", "my", "your", "our",
})

_NON_WORD = re.compile(r"[^\w\s]")


# ---- Answer interpretation -------------------------------------------------------

@dataclass(frozen=True)
class RatingAnswer:
    value: Decimal


@dataclass(frozen=True)
class TextAnswer:
    text: str


@dataclass(frozen=True)
class GroupAnswer:
    ratings: Tuple[Tuple[str, Decimal], ...]


Answer = Union[RatingAnswer, TextAnswer, GroupAnswer]


def _as_number(raw: Any) -> Optional[Decimal]:
    # bool is an int subclass; a checkbox-ish True is not a rating
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    if isinstance(raw, float) and not math.isfinite(raw):
        return None
    return Decimal(str(raw))


def interpret_answer(kind: str, raw: Any) -> Optional[Answer]:
    """Map a raw stored answer onto the shape its question kind expects, or None."""
    if kind == QuestionKind.SCALE:
        value = _as_number(raw)
        return RatingAnswer(value) if value is not None else None

    if kind == QuestionKind.TEXTAREA:
        if isinstance(raw, str) and raw.strip():
            return TextAnswer(raw)
        return None

    if kind == QuestionKind.RATING_GROUP:
        if not isinstance(raw, Mapping):
            return None
        ratings = []
        for item, rating in raw.items():
            value = _as_number(rating)
            # null / "na" mean the item was not attended
            if value is not None:
                ratings.append((str(item), value))
        return GroupAnswer(tuple(ratings))

    return None


def _answers(question: Question, documents: Iterable[Mapping[str, Any]]) -> List[Answer]:
    found = []
    for doc in documents:
        if not isinstance(doc, Mapping):
            continue
        answer = interpret_answer(question.kind, doc.get(question.id))
        if answer is not None:
            found.append(answer)
    return found


def format_mean(values: List[Decimal]) -> str:
    """Arithmetic mean to two decimals (half-up); "0" for no values."""
    if not values:
        return "0"
    mean = sum(values, Decimal(0)) / Decimal(len(values))
    return str(mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


# ---- Metrics ---------------------------------------------------------------------

def numeric_metric(question: Question, documents: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    values = [a.value for a in _answers(question, documents) if isinstance(a, RatingAnswer)]
    low, high = question.scale_range
    distribution = [
        {"rating": rating, "count": sum(1 for v in values if v == rating)}
        for rating in range(low, high + 1)
    ]
    return {
        "id": question.id,
        "label": question.display_label,
        "average": format_mean(values),
        "count": len(values),
        "distribution": distribution,
    }


def rating_group_metric(question: Question, documents: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Per-item mean rating across documents, best first.

    Items keep first-encounter order among equal means.
    """
    by_item: Dict[str, List[Decimal]] = {}
    for answer in _answers(question, documents):
        if not isinstance(answer, GroupAnswer):
            continue
        for item, value in answer.ratings:
            by_item.setdefault(item, []).append(value)

    items = [
        {"item": item, "average": format_mean(values), "count": len(values)}
        for item, values in by_item.items()
    ]
    items.sort(key=lambda row: Decimal(row["average"]), reverse=True)
    return {"id": question.id, "label": question.display_label, "items": items}


def word_frequencies(texts: Iterable[str], limit: int = TOP_WORDS) -> List[Dict[str, Any]]:
    counts: Dict[str, int] = {}
    for text in texts:
        for word in _NON_WORD.sub("", text.lower()).split():
            if len(word) < MIN_WORD_LENGTH or word in STOP_WORDS:
                continue
            counts[word] = counts.get(word, 0) + 1
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [{"word": word, "count": count} for word, count in ranked[:limit]]


def text_metric(question: Question, documents: Iterable[Mapping[str, Any]], single_view: bool = False) -> Dict[str, Any]:
    texts = [a.text for a in _answers(question, documents) if isinstance(a, TextAnswer)]
    metric: Dict[str, Any] = {
        "id": question.id,
        "label": question.display_label,
        "response_count": len(texts),
    }
    if single_view:
        metric["answer"] = texts[0] if texts else None
        return metric
    metric["top_words"] = word_frequencies(texts)
    metric["responses"] = texts
    return metric


def summarize(
    definition: SurveyDefinition,
    documents: Iterable[Mapping[str, Any]],
    participant_type: Optional[str] = None,
    single_view: bool = False,
) -> Dict[str, Any]:
    """All metrics for the questions of `definition` (every participant type when unfiltered)."""
    documents = list(documents)
    summary: Dict[str, Any] = {
        "participant_type": participant_type or "all",
        "response_count": len(documents),
        "numeric": [],
        "rating_groups": [],
        "text": [],
    }
    for question in definition.questions(participant_type):
        if question.kind == QuestionKind.SCALE:
            summary["numeric"].append(numeric_metric(question, documents))
        elif question.kind == QuestionKind.RATING_GROUP:
            summary["rating_groups"].append(rating_group_metric(question, documents))
        elif question.kind == QuestionKind.TEXTAREA:
            summary["text"].append(text_metric(question, documents, single_view))
    return summary
