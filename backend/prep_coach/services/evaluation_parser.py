from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import math
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

STAR_COMPONENTS = ("situation", "task", "action", "result")
_SCORE_LABELS = STAR_COMPONENTS + ("overall", "relevance", "communication", "completeness")
_FEEDBACK_SECTIONS = {
    "strengths": "strengths",
    "strength": "strengths",
    "weaknesses": "weaknesses",
    "weakness": "weaknesses",
    "areas for improvement": "weaknesses",
    "improvements": "weaknesses",
    "suggestions": "suggestions",
    "suggestion": "suggestions",
    "recommendations": "suggestions",
}

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)
_SCORE_LINE = re.compile(
    r"^\W*(" + "|".join(_SCORE_LABELS) + r")\b"
    # a parenthesised scale such as "(1-5)" is skipped; a bare "(4)" is a score
    r"(?:\((?!\s*[1-5](?:\.\d)?\s*\))[^)\n]*\)|[^0-9\n])*?"
    r"([1-5](?:\.\d)?)(?!\d|\.\d)",
    re.IGNORECASE,
)
_HEADER_LINE = re.compile(
    r"^\W*(" + "|".join(sorted(_FEEDBACK_SECTIONS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)
_BULLET_LINE = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s+(.+?)\s*$")


@dataclass(frozen=True)
class ParseOk:
    candidate: dict[str, Any]
    strategy: Literal["json", "text"]


@dataclass(frozen=True)
class ParseError:
    reason: str


ParseOutcome = ParseOk | ParseError


def _coerce_score(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        match = re.search(r"\d+(?:\.\d+)?", value)
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _coerce_text_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class _StarScoresPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    situation: float | None = None
    task: float | None = None
    action: float | None = None
    result: float | None = None
    overall: float | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _score(cls, value: Any) -> float | None:
        return _coerce_score(value)


class _FeedbackPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    culturalRelevance: str | None = None

    @field_validator("strengths", "weaknesses", "suggestions", mode="before")
    @classmethod
    def _items(cls, value: Any) -> list[str]:
        return _coerce_text_list(value)

    @field_validator("culturalRelevance", mode="before")
    @classmethod
    def _cultural(cls, value: Any) -> str | None:
        return value.strip() or None if isinstance(value, str) else None


class _EvaluationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    starScores: _StarScoresPayload = Field(default_factory=_StarScoresPayload)
    detailedFeedback: _FeedbackPayload = Field(default_factory=_FeedbackPayload)
    modelAnswer: str | None = None
    relevanceScore: float | None = None
    communicationScore: float | None = None
    completenessScore: float | None = None

    @field_validator("starScores", "detailedFeedback", mode="before")
    @classmethod
    def _nested(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("relevanceScore", "communicationScore", "completenessScore", mode="before")
    @classmethod
    def _score(cls, value: Any) -> float | None:
        return _coerce_score(value)

    @field_validator("modelAnswer", mode="before")
    @classmethod
    def _answer(cls, value: Any) -> str | None:
        return value.strip() or None if isinstance(value, str) else None


def strip_reasoning(raw: str) -> str:
    text = _THINK_BLOCK.sub("", raw)
    if "</think>" in text.lower():
        text = re.split(r"</think>", text, flags=re.IGNORECASE)[-1]
    return text.strip()


def repair_json_strings(text: str) -> str:
    """Replace raw newlines, carriage returns and tabs inside string literals."""
    repaired: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if char == '"' and not escaped:
            in_string = not in_string
        if in_string and not escaped and char in "\n\r\t":
            repaired.append(" ")
        else:
            repaired.append(char)
        escaped = char == "\\" and not escaped
    return "".join(repaired)


def _has_content(candidate: dict[str, Any]) -> bool:
    star = candidate.get("starScores", {})
    feedback = candidate.get("detailedFeedback", {})
    scores = [star.get(name) for name in STAR_COMPONENTS + ("overall",)]
    scores += [
        candidate.get("relevanceScore"),
        candidate.get("communicationScore"),
        candidate.get("completenessScore"),
    ]
    if any(score is not None for score in scores):
        return True
    return any(feedback.get(section) for section in ("strengths", "weaknesses", "suggestions"))


def _fill_star_defaults(candidate: dict[str, Any]) -> dict[str, Any]:
    star = dict(candidate.get("starScores") or {})
    fallback = star.get("overall")
    if fallback is None:
        fallback = 3
    for name in STAR_COMPONENTS:
        if star.get(name) is None:
            star[name] = fallback
    if star.get("overall") is None:
        star["overall"] = fallback
    return {**candidate, "starScores": star}


def _parse_json(text: str) -> dict[str, Any] | None:
    match = _JSON_SPAN.search(text)
    if not match:
        return None
    try:
        decoded = json.loads(repair_json_strings(match.group(0)))
    except (json.JSONDecodeError, RecursionError) as exc:
        logger.debug("Evaluation reply JSON decode failed: %s", exc)
        return None
    if not isinstance(decoded, dict):
        return None
    try:
        payload = _EvaluationPayload.model_validate(decoded)
    except ValidationError as exc:
        logger.debug("Evaluation reply failed schema validation: %s", exc)
        return None
    candidate = payload.model_dump()
    return candidate if _has_content(candidate) else None


def _parse_text(text: str) -> dict[str, Any] | None:
    star: dict[str, float] = {}
    scores: dict[str, float] = {}
    feedback: dict[str, list[str]] = {"strengths": [], "weaknesses": [], "suggestions": []}
    section: str | None = None

    for line in text.splitlines():
        if not line.strip():
            continue
        bullet = _BULLET_LINE.match(line)
        if bullet and section:
            feedback[section].append(bullet.group(1))
            continue
        score = _SCORE_LINE.match(line)
        if score:
            label = score.group(1).lower()
            value = float(score.group(2))
            if label in STAR_COMPONENTS or label == "overall":
                star.setdefault(label, value)
            else:
                scores.setdefault(f"{label}Score", value)
            continue
        header = _HEADER_LINE.match(line)
        if header:
            section = _FEEDBACK_SECTIONS[header.group(1).lower()]

    candidate: dict[str, Any] = {
        "starScores": star,
        "detailedFeedback": feedback,
        "modelAnswer": None,
        "relevanceScore": scores.get("relevanceScore"),
        "communicationScore": scores.get("communicationScore"),
        "completenessScore": scores.get("completenessScore"),
    }
    return candidate if _has_content(candidate) else None


def parse_evaluation_reply(raw: str) -> ParseOutcome:
    if not raw or not raw.strip():
        return ParseError("empty reply")
    text = _CODE_FENCE.sub("", strip_reasoning(raw))

    candidate = _parse_json(text)
    if candidate is not None:
        return ParseOk(_fill_star_defaults(candidate), "json")

    candidate = _parse_text(text)
    if candidate is not None:
        return ParseOk(_fill_star_defaults(candidate), "text")

    return ParseError("no scores or feedback recovered from reply")
