from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from prep_coach.clients.rate_limit import RequestSpacer, shared_spacer
from prep_coach.config import Settings


@dataclass
class LLMError(Exception):
    message: str
    status_code: int | None = None
    body: str | None = None

    def __str__(self) -> str:
        return self.message


def _require_field(payload: dict[str, Any], field: str, context: str) -> None:
    if field not in payload:
        raise LLMError(f"Missing '{field}' in {context} response")


def _message_content(payload: dict[str, Any], context: str) -> str:
    _require_field(payload, "choices", context)
    choices = payload.get("choices") or []
    first = choices[0] if isinstance(choices, list) and choices else None
    if not isinstance(first, dict):
        raise LLMError(f"Empty 'choices' in {context} response")
    message = first.get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content.strip():
        raise LLMError(f"Missing message content in {context} response")
    return content


class _BaseLLMClient:
    provider = "llm"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 10.0,
        retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._retries = retries
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    @property
    def model(self) -> str:
        return self._model

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        last_error: Exception | None = None
        for _ in range(self._retries + 1):
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.RequestError as exc:
                last_error = exc
            else:
                if response.status_code >= 500:
                    last_error = LLMError(
                        f"{self.provider} error {response.status_code}",
                        status_code=response.status_code,
                        body=response.text,
                    )
                else:
                    return response
        raise LLMError(f"{self.provider} request failed") from last_error

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        response = await self._request(method, path, **kwargs)
        if not response.is_success:
            raise LLMError(
                f"{self.provider} error {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise LLMError(
                f"{self.provider} returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        if not isinstance(payload, dict):
            raise LLMError(f"{self.provider} returned an unexpected envelope")
        return payload

    async def generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request_json("POST", "/chat/completions", json=payload)
        _require_field(response, "choices", self.provider)
        return response

    def _completion_payload(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        model: str | None,
    ) -> dict[str, Any]:
        return {
            "model": model or self._model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        model: str | None = None,
    ) -> str:
        payload = self._completion_payload(
            messages, max_tokens=max_tokens, temperature=temperature, model=model
        )
        response = await self.generate(payload)
        return _message_content(response, self.provider)


class SeaLionClient(_BaseLLMClient):
    provider = "sealion"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        model: str,
        guard_model: str,
        timeout: float = 30.0,
        retries: int = 0,
        spacer: RequestSpacer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            api_key=api_key,
            model=model,
            timeout=timeout,
            retries=retries,
            transport=transport,
        )
        self._guard_model = guard_model
        self._spacer = spacer or shared_spacer()

    @property
    def guard_model(self) -> str:
        return self._guard_model

    async def generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        await self._spacer.wait()
        return await super().generate(payload)

    def _completion_payload(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        model: str | None,
    ) -> dict[str, Any]:
        payload = super()._completion_payload(
            messages, max_tokens=max_tokens, temperature=temperature, model=model
        )
        payload["top_p"] = 0.9
        payload["stream"] = False
        return payload


class OpenAIClient(_BaseLLMClient):
    provider = "openai"


def sealion_client_from_settings(
    settings: Settings, *, retries: int = 0
) -> SeaLionClient | None:
    if not settings.sealion_api_key:
        return None
    return SeaLionClient(
        base_url=settings.sealion_api_base,
        api_key=settings.sealion_api_key,
        model=settings.sealion_model,
        guard_model=settings.sealion_guard_model,
        timeout=settings.llm_timeout_seconds,
        retries=retries,
        spacer=shared_spacer(settings.sealion_min_interval_seconds),
    )


def openai_client_from_settings(
    settings: Settings, *, retries: int = 0
) -> OpenAIClient | None:
    if not settings.openai_api_key:
        return None
    return OpenAIClient(
        base_url=settings.openai_api_base,
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout=settings.llm_timeout_seconds,
        retries=retries,
    )
