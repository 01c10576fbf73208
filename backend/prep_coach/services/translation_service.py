from __future__ import annotations

import logging
import re
from types import MappingProxyType

import httpx

from prep_coach.clients.llm import LLMError, SeaLionClient, sealion_client_from_settings
from prep_coach.config import load_settings
from prep_coach.models.translation import TranslationResult
from prep_coach.services.evaluation_parser import strip_reasoning
from prep_coach.telemetry.otel import start_span

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = MappingProxyType(
    {
        "ms": "Bahasa Malaysia",
        "id": "Bahasa Indonesia",
        "th": "Thai (ไทย)",
        "vi": "Vietnamese (Tiếng Việt)",
        "tl": "Filipino",
        "fil": "Filipino",
        "my": "Myanmar (မြန်မာ)",
        "km": "Khmer (ខ្មែរ)",
        "lo": "Lao (ລາວ)",
        "zh-sg": "Chinese - Singapore (中文)",
    }
)

_EXPLANATION_MARKERS = ("translation", "check", "make sure", "final", "the user", "i need")
_EDGE_NOISE = " \t\"'*`“”‘’:"
_TERMINAL_PUNCTUATION = re.compile(r"[.!?。！？]$")


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def _is_english(code: str | None) -> bool:
    return not code or code.lower() == "en"


def extract_translation(reply: str, *, skip_commentary: bool = True) -> str:
    """Pick the translated line out of a reply that may contain reasoning.

    Lines that read like translator notes are skipped when ``skip_commentary``
    is set. English output is read with it off.
    """
    text = strip_reasoning(reply)
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    for line in reversed(lines):
        lowered = line.lower()
        if len(line) <= 5:
            continue
        if skip_commentary and any(marker in lowered for marker in _EXPLANATION_MARKERS):
            continue
        return line.strip(_EDGE_NOISE)
    return text.strip(_EDGE_NOISE)


def _looks_truncated(translation: str, original: str) -> bool:
    return (
        not _TERMINAL_PUNCTUATION.search(translation)
        and len(translation) < len(original) * 0.3
        and len(translation) < 100
    )


async def _complete(client: SeaLionClient | None, prompt: str, max_tokens: int) -> str:
    owned = client is None
    if client is None:
        client = sealion_client_from_settings(load_settings())
    if client is None:
        raise LLMError("SeaLion is not configured")
    try:
        return await client.complete(
            [{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=0.1,
        )
    finally:
        if owned:
            await client.close()


async def translate_text(
    text: str, target_language: str, *, client: SeaLionClient | None = None
) -> str:
    if _is_english(target_language) or not text.strip():
        return text
    name = language_name(target_language)
    prompt = (
        f"You are a professional translator specialising in {name}.\n\n"
        f"Translate this EXACTLY into {name}:\n\n\"{text}\"\n\n"
        "Requirements:\n"
        f"- Only {name} text in your reply\n"
        "- No explanations, reasoning or extra text\n"
        "- Professional interview tone\n"
        '- Keep terms like "STAR method" unchanged\n\n'
        f"{name} translation:"
    )
    try:
        with start_span("translation.request", {"language": target_language}):
            reply = await _complete(client, prompt, 2000)
    except (LLMError, httpx.HTTPError) as exc:
        logger.warning("Translation to %s failed: %s", target_language, exc)
        return text
    translation = extract_translation(reply)
    if not translation:
        return text
    if _looks_truncated(translation, text):
        logger.warning("Translation to %s looks truncated: %r", target_language, translation)
        return text
    return translation


async def translate_to_english(
    text: str, source_language: str, *, client: SeaLionClient | None = None
) -> str:
    if _is_english(source_language) or not text.strip():
        return text
    name = language_name(source_language)
    prompt = (
        f"You are a professional translator. Translate this {name} text to English, "
        "keeping a professional interview tone.\n\n"
        "Rules:\n"
        "- Output ONLY the English translation\n"
        "- No explanations or reasoning\n\n"
        f'{name} text: "{text}"\n\n'
        "English translation:"
    )
    try:
        with start_span("translation.request", {"language": "en", "source": source_language}):
            reply = await _complete(client, prompt, 1000)
    except (LLMError, httpx.HTTPError) as exc:
        logger.warning("Translation from %s failed: %s", source_language, exc)
        return text
    return extract_translation(reply, skip_commentary=False) or text


async def translate_content(
    content: str, target_language: str, *, client: SeaLionClient | None = None
) -> TranslationResult:
    translated = await translate_text(content, target_language, client=client)
    return TranslationResult(original=content, translated=translated, language=target_language)


async def translate_batch(
    contents: list[str], target_language: str, *, client: SeaLionClient | None = None
) -> list[TranslationResult]:
    results: list[TranslationResult] = []
    for content in contents:
        results.append(await translate_content(content, target_language, client=client))
    return results
