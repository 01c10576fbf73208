from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, status

from prep_coach.models.evaluation import (
    EvaluationRequestBody,
    EvaluationResult,
    SessionEvaluationBody,
    SessionSummary,
)
from prep_coach.services.evaluation_service import EvaluationError, evaluate_response
from prep_coach.services.session_evaluation import evaluate_session_responses

router = APIRouter(prefix="/evaluations", tags=["evaluations"])


def _evaluation_response(result: EvaluationResult) -> dict[str, Any]:
    star = result.star_scores
    feedback = result.detailed_feedback
    return {
        "starScores": {
            "situation": star.situation,
            "task": star.task,
            "action": star.action,
            "result": star.result,
            "overall": star.overall,
        },
        "detailedFeedback": {
            "strengths": feedback.strengths,
            "weaknesses": feedback.weaknesses,
            "suggestions": feedback.suggestions,
            "culturalRelevance": feedback.cultural_relevance,
        },
        "modelAnswer": result.model_answer,
        "relevanceScore": result.relevance_score,
        "communicationScore": result.communication_score,
        "completenessScore": result.completeness_score,
        "evaluatedBy": result.evaluated_by.value,
    }


def _summary_response(summary: SessionSummary) -> dict[str, Any]:
    return {
        "totalResponses": summary.total_responses,
        "averageScores": summary.average_scores,
        "overallScore": summary.overall_score,
        "overallRating": summary.overall_rating,
        "keyStrengths": summary.key_strengths,
        "criticalImprovements": summary.critical_improvements,
        "nextSteps": summary.next_steps,
    }


@router.post("")
async def create_evaluation(payload: EvaluationRequestBody):
    try:
        result = await evaluate_response(payload.to_request())
    except EvaluationError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to evaluate response",
        )
    return _evaluation_response(result)


@router.post("/session")
async def create_session_evaluation(payload: SessionEvaluationBody):
    responses, context = payload.to_session()
    try:
        evaluation = await evaluate_session_responses(responses, context)
    except EvaluationError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to evaluate response",
        )
    return {
        "overallScores": _evaluation_response(evaluation.overall),
        "responseEvaluations": [_evaluation_response(item) for item in evaluation.responses],
        "sessionSummary": _summary_response(evaluation.summary),
    }
