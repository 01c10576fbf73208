from __future__ import annotations

import math
from typing import Any, Mapping

from prep_coach.models.evaluation import (
    DetailedFeedback,
    EvaluatedBy,
    EvaluationResult,
    StarScores,
)

MIN_SCORE = 1
MAX_SCORE = 5
DEFAULT_SCORE = 3

DEFAULT_STRENGTHS = ("Clear communication",)
DEFAULT_WEAKNESSES = ("Could include more specific details",)
DEFAULT_SUGGESTIONS = ("Use the STAR method to structure your answer",)
DEFAULT_MODEL_ANSWER = (
    "Describe the Situation, explain your Task, walk through the Actions you took, "
    "and finish with the measurable Result you achieved."
)


def clamp_score(value: Any, default: float = DEFAULT_SCORE) -> float:
    """Round to one decimal and clamp into [1, 5]; integral values come back as int."""
    number = float(default)
    if isinstance(value, (int, float, str)) and not isinstance(value, bool):
        try:
            number = float(value)
        except (ValueError, OverflowError):
            number = float(default)
    if math.isnan(number) or math.isinf(number):
        number = float(default)
    number = min(float(MAX_SCORE), max(float(MIN_SCORE), round(number, 1)))
    return int(number) if number.is_integer() else number


def _feedback_items(value: Any, default: tuple[str, ...]) -> list[str]:
    if isinstance(value, str):
        value = [value]
    items: list[str] = []
    if isinstance(value, (list, tuple)):
        items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return items or list(default)


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def validate_result(candidate: Mapping[str, Any], evaluated_by: EvaluatedBy) -> EvaluationResult:
    star = candidate.get("starScores")
    if not isinstance(star, Mapping):
        star = {}
    feedback = candidate.get("detailedFeedback")
    if not isinstance(feedback, Mapping):
        feedback = {}

    return EvaluationResult(
        star_scores=StarScores(
            situation=clamp_score(star.get("situation")),
            task=clamp_score(star.get("task")),
            action=clamp_score(star.get("action")),
            result=clamp_score(star.get("result")),
            overall=clamp_score(star.get("overall")),
        ),
        detailed_feedback=DetailedFeedback(
            strengths=_feedback_items(feedback.get("strengths"), DEFAULT_STRENGTHS),
            weaknesses=_feedback_items(feedback.get("weaknesses"), DEFAULT_WEAKNESSES),
            suggestions=_feedback_items(feedback.get("suggestions"), DEFAULT_SUGGESTIONS),
            cultural_relevance=_text(feedback.get("culturalRelevance")),
        ),
        model_answer=_text(candidate.get("modelAnswer")) or DEFAULT_MODEL_ANSWER,
        relevance_score=clamp_score(candidate.get("relevanceScore")),
        communication_score=clamp_score(candidate.get("communicationScore")),
        completeness_score=clamp_score(candidate.get("completenessScore")),
        evaluated_by=evaluated_by,
    )
