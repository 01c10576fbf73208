from __future__ import annotations

from types import MappingProxyType
from typing import Any

from prep_coach.models.evaluation import (
    EvaluationRequest,
    EvaluationResult,
    SessionContext,
    SessionEvaluation,
    SessionResponse,
    SessionSummary,
)
from prep_coach.services import evaluation_service
from prep_coach.services.evaluation_service import EvaluationError
from prep_coach.services.score_validator import validate_result

PASS_THRESHOLD = 3.5
BORDERLINE_THRESHOLD = 3.0

CRITERIA = MappingProxyType(
    {
        "relevance": "Response Relevance",
        "starStructure": "STAR Structure",
        "communication": "Communication",
        "completeness": "Completeness",
    }
)

IMPROVEMENT_STEPS = MappingProxyType(
    {
        "relevance": "Practise staying on-topic and answering the question that was asked",
        "starStructure": "Master the STAR method: Situation, Task, Action, Result",
        "communication": "Practise clear, concise sentences without filler words",
        "completeness": "Give fuller answers with specific metrics and outcomes",
    }
)

SENIOR_STEP = "Focus on leadership and strategic thinking examples in your responses"


def _criterion_scores(evaluation: EvaluationResult) -> dict[str, float]:
    return {
        "relevance": evaluation.relevance_score,
        "starStructure": evaluation.star_scores.overall,
        "communication": evaluation.communication_score,
        "completeness": evaluation.completeness_score,
    }


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def overall_rating(score: float) -> str:
    if score >= PASS_THRESHOLD:
        return "Pass"
    if score >= BORDERLINE_THRESHOLD:
        return "Borderline"
    return "Needs Improvement"


def _label(criterion: str, score: float) -> str:
    return f"{CRITERIA[criterion]} ({score:.1f}/5)"


def _next_steps(averages: dict[str, float], context: SessionContext) -> list[str]:
    steps = [
        IMPROVEMENT_STEPS[criterion]
        for criterion, score in sorted(averages.items(), key=lambda item: item[1])[:3]
        if score < PASS_THRESHOLD
    ]
    if "senior" in context.job_position.lower() or context.experience_level == "advanced":
        steps.append(SENIOR_STEP)
    return steps[:5]


def summarise_session(
    evaluations: list[EvaluationResult], context: SessionContext
) -> SessionSummary:
    if not evaluations:
        raise EvaluationError("No evaluations to summarise")
    per_response = [_criterion_scores(evaluation) for evaluation in evaluations]
    averages = {
        criterion: round(_mean([scores[criterion] for scores in per_response]), 1)
        for criterion in CRITERIA
    }
    overall = round(_mean(list(averages.values())), 1)
    key_strengths = [
        _label(criterion, score)
        for criterion, score in averages.items()
        if score >= 4.0
    ][:3]
    critical = [
        _label(criterion, score)
        for criterion, score in sorted(averages.items(), key=lambda item: item[1])
        if score < BORDERLINE_THRESHOLD
    ][:3]
    return SessionSummary(
        total_responses=len(evaluations),
        average_scores=averages,
        overall_score=overall,
        overall_rating=overall_rating(overall),
        key_strengths=key_strengths,
        critical_improvements=critical,
        next_steps=_next_steps(averages, context),
    )


def _unique(items: list[str], limit: int) -> list[str]:
    return list(dict.fromkeys(items))[:limit]


def aggregate_evaluations(evaluations: list[EvaluationResult]) -> EvaluationResult:
    if not evaluations:
        raise EvaluationError("No evaluations to aggregate")

    def average(getter) -> float:
        return round(_mean([getter(evaluation) for evaluation in evaluations]), 1)

    suggestions = [
        item for evaluation in evaluations for item in evaluation.detailed_feedback.suggestions
    ]
    cultural = next(
        (
            evaluation.detailed_feedback.cultural_relevance
            for evaluation in evaluations
            if evaluation.detailed_feedback.cultural_relevance
        ),
        None,
    )
    candidate: dict[str, Any] = {
        "starScores": {
            "situation": average(lambda e: e.star_scores.situation),
            "task": average(lambda e: e.star_scores.task),
            "action": average(lambda e: e.star_scores.action),
            "result": average(lambda e: e.star_scores.result),
            "overall": average(lambda e: e.star_scores.overall),
        },
        "detailedFeedback": {
            "strengths": _unique(
                [s for e in evaluations for s in e.detailed_feedback.strengths], 5
            ),
            "weaknesses": _unique(
                [w for e in evaluations for w in e.detailed_feedback.weaknesses], 3
            ),
            "suggestions": _unique(suggestions, 5),
            "culturalRelevance": cultural,
        },
        "modelAnswer": (
            f"Based on your {len(evaluations)} responses, focus on: "
            + ", ".join(_unique(suggestions, 3))
            + "."
        ),
        "relevanceScore": average(lambda e: e.relevance_score),
        "communicationScore": average(lambda e: e.communication_score),
        "completenessScore": average(lambda e: e.completeness_score),
    }
    return validate_result(candidate, evaluations[0].evaluated_by)


async def evaluate_session_responses(
    responses: list[SessionResponse],
    context: SessionContext,
    **evaluate_kwargs: Any,
) -> SessionEvaluation:
    if not responses:
        raise EvaluationError("No responses to evaluate")
    evaluations: list[EvaluationResult] = []
    for response in responses:
        request = EvaluationRequest(
            question_text=response.question_text,
            question_category=response.question_category,
            question_type=response.question_type,
            response_text=response.response_text,
            response_language=context.response_language,
            job_position=context.job_position,
            experience_level=context.experience_level,
            star_method_relevant=True,
            cultural_context=context.cultural_context,
        )
        evaluations.append(
            await evaluation_service.evaluate_response(request, **evaluate_kwargs)
        )
    return SessionEvaluation(
        overall=aggregate_evaluations(evaluations),
        responses=evaluations,
        summary=summarise_session(evaluations, context),
    )
