from __future__ import annotations

import json

import httpx
import pytest

from prep_coach.models.evaluation import EvaluatedBy, EvaluationRequest
from prep_coach.services import evaluation_service
from prep_coach.services.evaluation_service import (
    EvaluationError,
    FallbackOutcome,
    RemoteOutcome,
    evaluate_response,
    run_evaluation,
)

MODEL_REPLY = {
    "starScores": {"situation": 4, "task": 4, "action": 5, "result": 3, "overall": 4},
    "relevanceScore": 5,
    "communicationScore": 4,
    "completenessScore": 3.5,
    "detailedFeedback": {
        "strengths": ["Concrete actions"],
        "weaknesses": ["Result lacks numbers"],
        "suggestions": ["Quantify the impact"],
        "culturalRelevance": "Shows consensus building",
    },
    "modelAnswer": "I organised a cross-team review and we cut incidents by 30%.",
}


DEFAULT_RESPONSE = (
    "When two engineers disagreed on the release plan, I was responsible for "
    "aligning them. I organised a short workshop and we agreed on a phased "
    "rollout, which improved delivery time by 20%."
)


def _request(language="id", text=DEFAULT_RESPONSE):
    return EvaluationRequest(
        question_text="Tell me about a time you resolved a conflict in your team.",
        question_category="teamwork",
        question_type="behavioral",
        response_text=text,
        response_language=language,
        job_position="Engineering Lead",
        experience_level="intermediate",
    )


def _reply(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


@pytest.mark.asyncio
async def test_unsupported_language_uses_rule_based_without_remote_call(make_sealion_client):
    calls = {"count": 0}

    async def handler(request):
        calls["count"] += 1
        return _reply(json.dumps(MODEL_REPLY))

    client = make_sealion_client(handler)

    outcome = await run_evaluation(_request(language="xx"), client=client)

    assert isinstance(outcome, FallbackOutcome)
    assert outcome.reason == "unsupported_language"
    assert outcome.result.evaluated_by is EvaluatedBy.RULE_BASED
    assert calls["count"] == 0


@pytest.mark.asyncio
async def test_network_error_falls_back_to_rule_based(make_sealion_client):
    async def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_sealion_client(handler)

    outcome = await run_evaluation(_request(), client=client)

    assert isinstance(outcome, FallbackOutcome)
    assert outcome.reason == "remote_error"
    assert outcome.result.evaluated_by is EvaluatedBy.RULE_BASED


@pytest.mark.asyncio
async def test_well_formed_reply_is_returned_unchanged(make_sealion_client):
    seen = {}

    async def handler(request):
        payload = json.loads(request.content)
        seen["payload"] = payload
        return _reply(json.dumps(MODEL_REPLY))

    client = make_sealion_client(handler)

    result = await evaluate_response(_request(), client=client)

    assert result.evaluated_by is EvaluatedBy.SEALION
    star = result.star_scores
    assert (star.situation, star.task, star.action, star.result, star.overall) == (4, 4, 5, 3, 4)
    assert result.relevance_score == 5
    assert result.communication_score == 4
    assert result.completeness_score == 3.5
    assert result.detailed_feedback.strengths == ["Concrete actions"]
    assert result.detailed_feedback.cultural_relevance == "Shows consensus building"
    assert result.model_answer == MODEL_REPLY["modelAnswer"]
    assert seen["payload"]["max_tokens"] == 2000
    assert seen["payload"]["temperature"] == 0.2
    assert "INDONESIAN CULTURAL CONTEXT" in seen["payload"]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_unparseable_reply_falls_back(make_sealion_client):
    async def handler(request):
        return _reply("I am unable to help with that request.")

    client = make_sealion_client(handler)

    outcome = await run_evaluation(_request(language="th"), client=client)

    assert isinstance(outcome, FallbackOutcome)
    assert outcome.reason == "unparseable_reply"
    assert outcome.result.evaluated_by is EvaluatedBy.RULE_BASED


@pytest.mark.asyncio
async def test_openai_client_is_reported(make_openai_client):
    async def handler(request):
        return _reply("```json\n" + json.dumps(MODEL_REPLY) + "\n```")

    client = make_openai_client(handler)

    outcome = await run_evaluation(_request(language="ms"), client=client)

    assert isinstance(outcome, RemoteOutcome)
    assert outcome.result.evaluated_by is EvaluatedBy.OPENAI


@pytest.mark.asyncio
async def test_unconfigured_remote_falls_back():
    outcome = await run_evaluation(_request(language="id"))

    assert isinstance(outcome, FallbackOutcome)
    assert outcome.reason == "remote_unconfigured"


@pytest.mark.asyncio
async def test_fallback_failure_raises_evaluation_error(monkeypatch):
    def _broken(request):
        raise ValueError("scorer exploded")

    monkeypatch.setattr(evaluation_service, "score_response", _broken)

    with pytest.raises(EvaluationError) as exc:
        await evaluate_response(_request(language="xx"))

    assert str(exc.value) == "Failed to evaluate response: scorer exploded"
    assert isinstance(exc.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_completion_event_is_emitted(caplog):
    caplog.set_level("INFO", logger="prep_coach.telemetry")

    await evaluate_response(_request(language="xx"))

    events = [
        json.loads(record.message)
        for record in caplog.records
        if record.name == "prep_coach.telemetry"
    ]
    completed = [item for item in events if item.get("name") == "evaluation.completed"]
    assert completed
    assert completed[-1]["attributes"] == {
        "evaluatedBy": "rule-based",
        "language": "xx",
        "fallbackReason": "unsupported_language",
    }
    assert any(item.get("name") == "evaluation.latency_ms" for item in events)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "text",
    [
        "",
        "ok",
        "result " * 40 + "increased 300% " * 10,
        "When I joined, the context was chaotic. " * 30,
        "Saya memimpin tim, dan hasilnya meningkat 50%.",
    ],
)
async def test_rule_based_scores_stay_in_range(text):
    result = await evaluate_response(_request(language="en", text=text))

    scores = [
        result.star_scores.situation,
        result.star_scores.task,
        result.star_scores.action,
        result.star_scores.result,
        result.star_scores.overall,
        result.relevance_score,
        result.communication_score,
        result.completeness_score,
    ]
    assert all(1 <= score <= 5 for score in scores)
    assert result.evaluated_by is EvaluatedBy.RULE_BASED
    assert result.detailed_feedback.strengths
    assert result.model_answer


@pytest.mark.asyncio
async def test_deeply_nested_reply_falls_back(make_sealion_client):
    async def handler(request):
        return _reply('{"a":' * 5000 + "1" + "}" * 5000)

    client = make_sealion_client(handler)

    result = await evaluate_response(_request(), client=client)

    assert result.evaluated_by is EvaluatedBy.RULE_BASED


@pytest.mark.asyncio
async def test_empty_response_returns_complete_result():
    result = await evaluate_response(_request(language="xx", text=""))

    assert result.evaluated_by is EvaluatedBy.RULE_BASED
    assert result.star_scores.overall == 2
    assert result.completeness_score == 1.5
    assert result.detailed_feedback.weaknesses
    assert result.detailed_feedback.suggestions
