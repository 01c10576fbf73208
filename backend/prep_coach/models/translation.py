from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class TranslationResult:
    original: str
    translated: str
    language: str


class TranslationRequestBody(BaseModel):
    text: str
    language: str = Field(..., min_length=1)
    direction: Literal["from_english", "to_english"] = "from_english"


class ContentSafetyBody(BaseModel):
    content: str = Field(..., min_length=1)
