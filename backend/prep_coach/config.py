from __future__ import annotations

from dataclasses import dataclass
import os
from urllib.parse import urlparse

DEFAULT_SEALION_API_BASE = "https://api.sea-lion.ai/v1"
DEFAULT_SEALION_MODEL = "aisingapore/Llama-SEA-LION-v3.5-8B-R"
DEFAULT_SEALION_GUARD_MODEL = "aisingapore/Llama-SEA-Guard-Prompt-v1"
DEFAULT_OPENAI_API_BASE = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


class SettingsError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    sealion_api_key: str | None
    sealion_api_base: str
    sealion_model: str
    sealion_guard_model: str
    openai_api_key: str | None
    openai_api_base: str
    openai_model: str
    llm_timeout_seconds: float
    sealion_min_interval_seconds: float
    cors_origins: tuple[str, ...]


def _optional_env(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _env_with_default(name: str, default: str) -> str:
    return _optional_env(name) or default


def _require_url(name: str, value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise SettingsError(f"Invalid URL for {name}: {value}")
    return value.rstrip("/")


def _non_negative_float(name: str, default: float) -> float:
    raw = _optional_env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise SettingsError(f"Invalid number for {name}: {raw}") from exc
    if value < 0:
        raise SettingsError(f"{name} must not be negative: {raw}")
    return value


def _cors_origins() -> tuple[str, ...]:
    raw = _optional_env("CORS_ORIGINS")
    if raw is None:
        return DEFAULT_CORS_ORIGINS
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


def load_settings() -> Settings:
    sealion_api_key = _optional_env("SEALION_API_KEY") or _optional_env("SEA_LION_API_KEY")
    sealion_api_base = _require_url(
        "SEALION_API_BASE",
        _env_with_default("SEALION_API_BASE", DEFAULT_SEALION_API_BASE),
    )
    openai_api_base = _require_url(
        "OPENAI_API_BASE",
        _env_with_default("OPENAI_API_BASE", DEFAULT_OPENAI_API_BASE),
    )
    llm_timeout_seconds = _non_negative_float("LLM_TIMEOUT_SECONDS", 30.0)
    if llm_timeout_seconds == 0:
        raise SettingsError("LLM_TIMEOUT_SECONDS must be greater than zero")

    return Settings(
        sealion_api_key=sealion_api_key,
        sealion_api_base=sealion_api_base,
        sealion_model=_env_with_default("SEALION_MODEL", DEFAULT_SEALION_MODEL),
        sealion_guard_model=_env_with_default(
            "SEALION_GUARD_MODEL", DEFAULT_SEALION_GUARD_MODEL
        ),
        openai_api_key=_optional_env("OPENAI_API_KEY"),
        openai_api_base=openai_api_base,
        openai_model=_env_with_default("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
        llm_timeout_seconds=llm_timeout_seconds,
        sealion_min_interval_seconds=_non_negative_float(
            "SEALION_MIN_INTERVAL_SECONDS", 1.0
        ),
        cors_origins=_cors_origins(),
    )
