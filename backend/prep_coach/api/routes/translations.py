from __future__ import annotations

from fastapi import APIRouter

from prep_coach.models.translation import ContentSafetyBody, TranslationRequestBody
from prep_coach.services.content_safety import check_content_safety
from prep_coach.services.translation_service import translate_content, translate_to_english

router = APIRouter(tags=["language"])


@router.post("/translations")
async def translate(payload: TranslationRequestBody):
    if payload.direction == "to_english":
        translated = await translate_to_english(payload.text, payload.language)
        return {"original": payload.text, "translated": translated, "language": "en"}
    result = await translate_content(payload.text, payload.language)
    return {
        "original": result.original,
        "translated": result.translated,
        "language": result.language,
    }


@router.post("/content-safety")
async def content_safety(payload: ContentSafetyBody):
    verdict = await check_content_safety(payload.content)
    return {"safe": verdict.safe, "reason": verdict.reason}
