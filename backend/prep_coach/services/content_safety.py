from __future__ import annotations

from dataclasses import dataclass
import logging

import httpx

from prep_coach.clients.llm import LLMError, SeaLionClient, sealion_client_from_settings
from prep_coach.config import load_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SafetyVerdict:
    safe: bool
    reason: str | None = None


async def check_content_safety(
    content: str, *, client: SeaLionClient | None = None
) -> SafetyVerdict:
    """Ask the guard model whether ``content`` is safe. Fails open."""
    owned = client is None
    if client is None:
        client = sealion_client_from_settings(load_settings())
    if client is None:
        return SafetyVerdict(safe=True)
    try:
        verdict = await client.complete(
            [{"role": "user", "content": content}],
            max_tokens=10,
            temperature=0.0,
            model=client.guard_model,
        )
    except (LLMError, httpx.HTTPError) as exc:
        logger.warning("Content safety check failed; treating as safe: %s", exc)
        return SafetyVerdict(safe=True)
    finally:
        if owned:
            await client.close()

    verdict = verdict.strip().lower()
    if verdict == "unsafe":
        return SafetyVerdict(safe=False, reason="Content flagged as potentially harmful")
    return SafetyVerdict(safe=verdict == "safe")
