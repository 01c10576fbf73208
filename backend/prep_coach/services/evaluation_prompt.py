from __future__ import annotations

from types import MappingProxyType

from prep_coach.models.evaluation import EvaluationRequest

DEFAULT_GUIDANCE_KEY = "en"

CULTURAL_GUIDANCE = MappingProxyType(
    {
        "id": (
            "INDONESIAN CULTURAL CONTEXT:\n"
            "- Values gotong royong (mutual assistance) and consensus building\n"
            "- Respects hierarchy while showing initiative\n"
            "- Emphasizes relationship building and collaboration\n"
            "- Consider how the response demonstrates cultural awareness"
        ),
        "ms": (
            "MALAYSIAN CULTURAL CONTEXT:\n"
            "- Values harmony and face-saving (muka)\n"
            "- Emphasizes relationship building before business\n"
            "- Respects diversity and inclusive approaches\n"
            "- Consider cultural sensitivity in the response"
        ),
        "th": (
            "THAI CULTURAL CONTEXT:\n"
            "- Values kreng jai (consideration for others)\n"
            "- Respects hierarchy and seniority\n"
            "- Emphasizes maintaining harmonious relationships\n"
            "- Consider how the response shows cultural understanding"
        ),
        "vi": (
            "VIETNAMESE CULTURAL CONTEXT:\n"
            "- Values collective success and loyalty to the team\n"
            "- Respects seniority and indirect disagreement\n"
            "- Emphasizes diligence and long-term relationships\n"
            "- Consider how the response balances initiative with respect"
        ),
        "tl": (
            "FILIPINO CULTURAL CONTEXT:\n"
            "- Values pakikisama (getting along) and bayanihan (community spirit)\n"
            "- Respects hierarchy and polite, indirect communication\n"
            "- Emphasizes warmth and personal relationships at work\n"
            "- Consider how the response reflects team harmony"
        ),
        DEFAULT_GUIDANCE_KEY: (
            "ASEAN BUSINESS CONTEXT:\n"
            "- Values relationship building and trust\n"
            "- Respects cultural diversity and inclusion\n"
            "- Emphasizes collaborative problem-solving\n"
            "- Consider regional business culture awareness"
        ),
    }
)

STAR_CRITERIA = MappingProxyType(
    {
        "situation": "Did they clearly describe the context and background?",
        "task": "Did they explain their specific responsibility or challenge?",
        "action": "Did they detail the concrete steps they took?",
        "result": "Did they quantify the outcomes and impact?",
        "overall": "How well structured and compelling was the STAR response?",
    }
)

RESPONSE_SCHEMA = """{
  "starScores": {"situation": 1-5, "task": 1-5, "action": 1-5, "result": 1-5, "overall": 1-5},
  "relevanceScore": 1-5,
  "communicationScore": 1-5,
  "completenessScore": 1-5,
  "detailedFeedback": {
    "strengths": ["specific strength 1", "specific strength 2"],
    "weaknesses": ["specific weakness 1", "specific weakness 2"],
    "suggestions": ["actionable suggestion 1", "actionable suggestion 2"],
    "culturalRelevance": "cultural context assessment"
  },
  "modelAnswer": "example of a strong answer to this question"
}"""


def cultural_guidance(language: str) -> str:
    key = (language or "").strip().lower()
    return CULTURAL_GUIDANCE.get(key, CULTURAL_GUIDANCE[DEFAULT_GUIDANCE_KEY])


def _star_rubric() -> str:
    lines = ["STAR METHOD EVALUATION:"]
    for component, question in STAR_CRITERIA.items():
        lines.append(f"- {component.capitalize()} (1-5): {question}")
    return "\n".join(lines)


def build_evaluation_prompt(request: EvaluationRequest) -> str:
    sections = [
        "You are an expert interview coach specialising in Southeast Asian business "
        "contexts. Evaluate the candidate's interview response.",
        (
            "INTERVIEW CONTEXT:\n"
            f'Question: "{request.question_text}"\n'
            f"Category: {request.question_category}\n"
            f"Question type: {request.question_type}\n"
            f"Job Position: {request.job_position}\n"
            f"Experience Level: {request.experience_level}\n"
            f"Response Language: {request.response_language}"
        ),
    ]
    if request.cultural_context:
        sections.append(f"Additional cultural context: {request.cultural_context}")
    sections.append(f'CANDIDATE RESPONSE:\n"{request.response_text}"')
    if request.star_method_relevant:
        sections.append(_star_rubric())
    sections.append(cultural_guidance(request.response_language))
    sections.append(
        "SCORING GUIDELINES:\n"
        "- Score every criterion from 1 (poor) to 5 (excellent)\n"
        "- Base each score on evidence from the response\n"
        "- Be constructive and culturally sensitive"
    )
    sections.append(
        "Return ONLY valid JSON in exactly this format, with every string on a "
        "single line:\n" + RESPONSE_SCHEMA
    )
    return "\n\n".join(sections)
