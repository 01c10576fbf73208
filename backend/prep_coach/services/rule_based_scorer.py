from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any

from prep_coach.models.evaluation import EvaluationRequest

STAR_KEYWORDS = MappingProxyType(
    {
        "situation": ("situation", "when", "context", "background"),
        "task": ("task", "responsible", "responsibility", "goal", "objective"),
        "action": ("action", "implemented", "decided", "developed", "organised", "organized"),
        "result": ("result", "outcome", "achieved", "improved", "increased"),
    }
)
_CONTEXT_HINTS = ("situation", "when", "context")
_OUTCOME_HINTS = ("result", "outcome", "achieved")

MODEL_ANSWERS = MappingProxyType(
    {
        "leadership": (
            "When our product launch was slipping (Situation), I was asked to get the "
            "team back on schedule (Task). I re-planned the backlog, ran short daily "
            "check-ins and delegated work by strength (Action). We shipped one week early "
            "and cut defects by 30% (Result)."
        ),
        "problem-solving": (
            "Customer complaints about slow checkout rose sharply one quarter (Situation). "
            "I owned finding the root cause (Task). I analysed logs, identified a database "
            "bottleneck and introduced caching with the platform team (Action). Checkout "
            "time fell by 60% and complaints dropped by half (Result)."
        ),
        "teamwork": (
            "Two departments disagreed on a shared reporting process (Situation). I was "
            "responsible for aligning both teams (Task). I organised a joint workshop, "
            "mapped each team's needs and drafted a compromise workflow (Action). Both "
            "teams adopted it and reporting errors fell by 40% (Result)."
        ),
    }
)

_DIGIT = re.compile(r"\d")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def _clamp(value: float, low: float = 1.0, high: float = 5.0) -> float:
    return round(min(high, max(low, value)), 1)


def _count_keywords(text: str, keywords: tuple[str, ...]) -> int:
    return sum(len(re.findall(rf"\b{re.escape(keyword)}", text)) for keyword in keywords)


def _word_count(text: str) -> int:
    return len(text.split())


def base_score(text: str) -> float:
    lowered = text.lower()
    words = _word_count(text)
    score = 3.0
    if words > 100:
        score += 0.5
    if words < 20:
        score -= 1
    if any(hint in lowered for hint in _CONTEXT_HINTS):
        score += 0.3
    if any(hint in lowered for hint in _OUTCOME_HINTS):
        score += 0.3
    if _DIGIT.search(text):
        score += 0.2
    return _clamp(score)


def star_component_score(text: str, component: str) -> float:
    lowered = text.lower()
    occurrences = _count_keywords(lowered, STAR_KEYWORDS[component])
    score = 2.0
    if occurrences:
        score += 1
        score += 0.5 * max(0, occurrences - 2)
    if component == "result" and _DIGIT.search(text):
        score += 0.5
    return min(5.0, score)


def communication_score(text: str) -> float:
    sentences = [part.strip() for part in _SENTENCE_SPLIT.split(text) if part.strip()]
    score = 3.0
    if sentences:
        average_length = sum(len(sentence) for sentence in sentences) / len(sentences)
        if average_length < 30 or average_length > 150:
            score -= 1
    else:
        score -= 1
    if len(sentences) >= 3:
        score += 0.5
    if "," in text and "." in text:
        score += 0.5
    return _clamp(score)


def completeness_score(text: str) -> float:
    words = _word_count(text)
    if words < 30:
        score = 1.5
    elif words < 50:
        score = 2.5
    elif words < 100:
        score = 3.5
    elif words < 150:
        score = 4.0
    else:
        score = 4.5
    if _DIGIT.search(text):
        score += 0.3
    if "%" in text:
        score += 0.2
    return _clamp(score)


def model_answer(question_category: str, job_position: str) -> str:
    key = (question_category or "").strip().lower().replace("_", "-").replace(" ", "-")
    if key in MODEL_ANSWERS:
        return MODEL_ANSWERS[key]
    return (
        f"For the {job_position} role, describe a specific Situation you faced, the Task "
        "you were responsible for, the Actions you personally took, and the measurable "
        "Result you achieved."
    )


def _feedback(
    text: str,
    star: dict[str, float],
    communication: float,
    *,
    star_method_relevant: bool,
) -> dict[str, list[str]]:
    words = _word_count(text)
    has_numbers = bool(_DIGIT.search(text))
    strengths: list[str] = []
    weaknesses: list[str] = []
    suggestions: list[str] = []

    if star["overall"] >= 3.5:
        strengths.append("Good use of structured storytelling")
    if has_numbers:
        strengths.append("Included specific, measurable details")
    if communication >= 3.5:
        strengths.append("Clear and well-organised communication")

    if star["situation"] < 3:
        weaknesses.append("The context of the example is not clearly set out")
    if star["result"] < 3:
        weaknesses.append("Outcomes and results are not clearly described")
    if words < 50:
        weaknesses.append("The response is too brief to demonstrate impact")

    if star_method_relevant and star["overall"] < 3.5:
        suggestions.append("Use the STAR method: Situation, Task, Action, Result")
    if not has_numbers:
        suggestions.append("Quantify your results with numbers or percentages")
    if words < 50:
        suggestions.append("Expand your answer with one concrete example")

    return {
        "strengths": strengths or ["Engaged with the question"],
        "weaknesses": weaknesses or ["Could be more detailed"],
        "suggestions": suggestions or ["Connect your experience to the role requirements"],
    }


def score_response(request: EvaluationRequest) -> dict[str, Any]:
    """Score a response from its text alone, without any network call.

    Returns a candidate dict in the same shape as a parsed model reply so it
    can go through the same validation step.
    """
    text = request.response_text or ""
    star = {
        component: star_component_score(text, component) for component in STAR_KEYWORDS
    }
    star["overall"] = round(sum(star.values()) / len(STAR_KEYWORDS), 1)
    communication = communication_score(text)

    return {
        "starScores": star,
        "detailedFeedback": _feedback(
            text,
            star,
            communication,
            star_method_relevant=request.star_method_relevant,
        ),
        "modelAnswer": model_answer(request.question_category, request.job_position),
        "relevanceScore": base_score(text),
        "communicationScore": communication,
        "completenessScore": completeness_score(text),
    }
