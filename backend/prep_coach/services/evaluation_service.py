from __future__ import annotations

from dataclasses import dataclass
import logging
import time

import httpx

from prep_coach.clients.llm import (
    LLMError,
    OpenAIClient,
    SeaLionClient,
    openai_client_from_settings,
    sealion_client_from_settings,
)
from prep_coach.config import Settings, load_settings
from prep_coach.models.evaluation import EvaluatedBy, EvaluationRequest, EvaluationResult
from prep_coach.services.evaluation_parser import ParseError, parse_evaluation_reply
from prep_coach.services.evaluation_prompt import build_evaluation_prompt
from prep_coach.services.rule_based_scorer import score_response
from prep_coach.services.score_validator import validate_result
from prep_coach.telemetry.otel import start_span
from prep_coach.telemetry.tracing import emit_event, emit_metric

logger = logging.getLogger(__name__)

REMOTE_LANGUAGES = frozenset(
    {"id", "ms", "th", "vi", "tl", "my", "km", "lo", "bn", "hi", "zh", "ta"}
)

RemoteClient = SeaLionClient | OpenAIClient


class EvaluationError(RuntimeError):
    pass


@dataclass(frozen=True)
class RemoteOutcome:
    result: EvaluationResult


@dataclass(frozen=True)
class FallbackOutcome:
    result: EvaluationResult
    reason: str


EvaluationOutcome = RemoteOutcome | FallbackOutcome


def should_use_remote(language: str) -> bool:
    return (language or "").strip().lower() in REMOTE_LANGUAGES


def _evaluated_by(client: RemoteClient) -> EvaluatedBy:
    if client.provider == OpenAIClient.provider:
        return EvaluatedBy.OPENAI
    return EvaluatedBy.SEALION


def _client_from_settings(settings: Settings) -> RemoteClient | None:
    return sealion_client_from_settings(settings) or openai_client_from_settings(settings)


async def _remote_reply(request: EvaluationRequest, client: RemoteClient) -> str:
    prompt = build_evaluation_prompt(request)
    with start_span(
        "evaluation.llm_request",
        {"provider": client.provider, "language": request.response_language},
    ):
        return await client.complete(
            [{"role": "user", "content": prompt}],
            max_tokens=2000,
            temperature=0.2,
        )


async def _try_remote(
    request: EvaluationRequest,
    *,
    settings: Settings | None,
    client: RemoteClient | None,
) -> RemoteOutcome | str:
    if not should_use_remote(request.response_language):
        return "unsupported_language"
    owned = client is None
    if client is None:
        client = _client_from_settings(settings or load_settings())
    if client is None:
        return "remote_unconfigured"
    try:
        try:
            reply = await _remote_reply(request, client)
        except (LLMError, httpx.HTTPError, OSError) as exc:
            logger.warning(
                "Remote evaluation failed provider=%s error=%s status=%s",
                client.provider,
                exc,
                getattr(exc, "status_code", None),
            )
            return "remote_error"
    finally:
        if owned:
            await client.close()

    with start_span("evaluation.parse", {"provider": client.provider}):
        parsed = parse_evaluation_reply(reply)
    if isinstance(parsed, ParseError):
        logger.warning("Remote evaluation reply unusable: %s", parsed.reason)
        return "unparseable_reply"
    return RemoteOutcome(validate_result(parsed.candidate, _evaluated_by(client)))


def _fallback(request: EvaluationRequest, reason: str) -> FallbackOutcome:
    logger.info(
        "Using rule-based evaluation (language=%s reason=%s)",
        request.response_language,
        reason,
    )
    candidate = score_response(request)
    return FallbackOutcome(validate_result(candidate, EvaluatedBy.RULE_BASED), reason)


async def run_evaluation(
    request: EvaluationRequest,
    *,
    settings: Settings | None = None,
    client: RemoteClient | None = None,
) -> EvaluationOutcome:
    remote = await _try_remote(request, settings=settings, client=client)
    if isinstance(remote, RemoteOutcome):
        return remote
    return _fallback(request, remote)


async def evaluate_response(
    request: EvaluationRequest,
    *,
    settings: Settings | None = None,
    client: RemoteClient | None = None,
) -> EvaluationResult:
    logger.info("Evaluating response for %s question", request.question_category)
    started = time.perf_counter()
    try:
        outcome = await run_evaluation(request, settings=settings, client=client)
    except Exception as exc:
        logger.exception("Error evaluating response")
        raise EvaluationError(f"Failed to evaluate response: {exc}") from exc

    attributes = {
        "evaluatedBy": outcome.result.evaluated_by.value,
        "language": request.response_language,
    }
    if isinstance(outcome, FallbackOutcome):
        attributes["fallbackReason"] = outcome.reason
    emit_event("evaluation.completed", attributes=attributes)
    emit_metric(
        "evaluation.latency_ms",
        round((time.perf_counter() - started) * 1000, 3),
        attributes={"evaluatedBy": outcome.result.evaluated_by.value},
    )
    return outcome.result
