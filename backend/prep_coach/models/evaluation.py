from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class EvaluatedBy(str, Enum):
    SEALION = "sealion"
    OPENAI = "openai"
    RULE_BASED = "rule-based"


@dataclass(frozen=True)
class EvaluationRequest:
    question_text: str
    question_category: str
    question_type: str
    response_text: str
    response_language: str
    job_position: str
    experience_level: str
    star_method_relevant: bool = True
    cultural_context: str | None = None


@dataclass(frozen=True)
class StarScores:
    situation: float
    task: float
    action: float
    result: float
    overall: float


@dataclass(frozen=True)
class DetailedFeedback:
    strengths: list[str]
    weaknesses: list[str]
    suggestions: list[str]
    cultural_relevance: str | None = None


@dataclass(frozen=True)
class EvaluationResult:
    star_scores: StarScores
    detailed_feedback: DetailedFeedback
    model_answer: str
    relevance_score: float
    communication_score: float
    completeness_score: float
    evaluated_by: EvaluatedBy


@dataclass(frozen=True)
class SessionResponse:
    question_text: str
    response_text: str
    question_category: str = "general"
    question_type: str = "behavioral"


@dataclass(frozen=True)
class SessionContext:
    job_position: str
    experience_level: str
    response_language: str
    company_name: str | None = None
    cultural_context: str | None = None


@dataclass(frozen=True)
class SessionSummary:
    total_responses: int
    average_scores: dict[str, float]
    overall_score: float
    overall_rating: str
    key_strengths: list[str] = field(default_factory=list)
    critical_improvements: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SessionEvaluation:
    overall: EvaluationResult
    responses: list[EvaluationResult]
    summary: SessionSummary


class EvaluationRequestBody(BaseModel):
    questionText: str = Field(..., min_length=1)
    questionCategory: str = "general"
    questionType: str = "behavioral"
    responseText: str = ""
    responseLanguage: str = Field("en", min_length=1)
    culturalContext: str | None = None
    jobPosition: str = Field(..., min_length=1)
    experienceLevel: str = "intermediate"
    starMethodRelevant: bool = True

    def to_request(self) -> EvaluationRequest:
        return EvaluationRequest(
            question_text=self.questionText,
            question_category=self.questionCategory,
            question_type=self.questionType,
            response_text=self.responseText,
            response_language=self.responseLanguage,
            job_position=self.jobPosition,
            experience_level=self.experienceLevel,
            star_method_relevant=self.starMethodRelevant,
            cultural_context=self.culturalContext,
        )


class SessionResponseBody(BaseModel):
    questionText: str = Field(..., min_length=1)
    responseText: str = ""
    questionCategory: str = "general"
    questionType: str = "behavioral"


class SessionEvaluationBody(BaseModel):
    responses: list[SessionResponseBody]
    jobPosition: str = Field(..., min_length=1)
    companyName: str | None = None
    experienceLevel: str = "intermediate"
    responseLanguage: str = Field("en", min_length=1)
    culturalContext: str | None = None

    @model_validator(mode="after")
    def validate_responses(self) -> "SessionEvaluationBody":
        if not self.responses:
            raise ValueError("responses must not be empty")
        return self

    def to_session(self) -> tuple[list[SessionResponse], SessionContext]:
        responses = [
            SessionResponse(
                question_text=item.questionText,
                response_text=item.responseText,
                question_category=item.questionCategory,
                question_type=item.questionType,
            )
            for item in self.responses
        ]
        context = SessionContext(
            job_position=self.jobPosition,
            experience_level=self.experienceLevel,
            response_language=self.responseLanguage,
            company_name=self.companyName,
            cultural_context=self.culturalContext,
        )
        return responses, context
