"""Insight gateway: classifies thoughts and derives the daily focus."""

from __future__ import annotations

import json
import logging
import re
import textwrap
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...config import Locale, Settings, load_settings
from . import gemini_client, prompts

logger = logging.getLogger(__name__)

__all__ = [
    "Credentials",
    "GeminiInsightProvider",
    "Insight",
    "InsightError",
    "InsightProvider",
    "StubInsightProvider",
    "build_insight_provider",
    "parse_insight",
]

Priority = Literal["low", "medium", "high"]
CredentialSource = Literal["personal", "shared"]

RETRYABLE_FAILURES = {
    gemini_client.NETWORK_ERROR,
    gemini_client.QUOTA_EXCEEDED,
    gemini_client.SERVER_ERROR,
}


class Insight(BaseModel):
    """Structured enrichment attached to an entry when it is created."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    category: str = Field(min_length=1)
    priority: Priority
    summary: str
    next_steps: List[str] = Field(alias="nextSteps")

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def to_metadata(self) -> Dict[str, Any]:
        """Return the stored metadata shape (camelCase keys)."""

        return self.model_dump(by_alias=True)


class InsightError(RuntimeError):
    """Raised when an insight cannot be produced; never carries partial data."""

    def __init__(self, message: str, *, code: str, retryable: bool) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.details: Dict[str, Any] = {}


@dataclass(frozen=True)
class Credentials:
    """API key used for one provider call and where it came from."""

    api_key: Optional[str]
    source: CredentialSource = "shared"

    @classmethod
    def select(
        cls, personal_key: Optional[str], shared_key: Optional[str]
    ) -> "Credentials":
        """Prefer the caller's personal key, else fall back to the shared one."""

        personal = (personal_key or "").strip()
        if personal:
            return cls(api_key=personal, source="personal")
        return cls(api_key=(shared_key or "").strip() or None, source="shared")


class InsightProvider(Protocol):  # pragma: no cover - interface only
    """Capability interface the entry service and view state depend on."""

    def classify(
        self, text: str, *, credentials: Credentials, locale: Locale
    ) -> Insight: ...

    def summarize_focus(
        self,
        recent_contents: Sequence[str],
        *,
        credentials: Credentials,
        locale: Locale,
    ) -> str: ...

    def validate_credentials(self, candidate: str) -> bool: ...


def parse_insight(raw_text: str) -> Insight:
    """Validate a JSON reply into an Insight or raise ``InsightError``."""

    if not raw_text or not raw_text.strip():
        raise InsightError(
            "insight response is empty",
            code="insight_response_invalid",
            retryable=False,
        )
    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise InsightError(
            "insight response is not valid JSON",
            code="insight_response_invalid",
            retryable=False,
        ) from exc
    if not isinstance(payload, dict):
        raise InsightError(
            "insight response payload must be a JSON object",
            code="insight_response_invalid",
            retryable=False,
        )
    try:
        return Insight.model_validate(payload)
    except ValidationError as exc:
        raise InsightError(
            f"insight response is missing required fields: {exc.error_count()} error(s)",
            code="insight_response_invalid",
            retryable=False,
        ) from exc


class GeminiInsightProvider(InsightProvider):
    """Insight provider backed by the Gemini API."""

    def __init__(self, *, model: str) -> None:
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    def classify(
        self, text: str, *, credentials: Credentials, locale: Locale
    ) -> Insight:
        api_key = _require_api_key(credentials)
        normalized = (text or "").strip()
        if not normalized:
            raise InsightError(
                "insight prompt text is empty",
                code="insight_prompt_empty",
                retryable=False,
            )
        logger.debug(
            "insight_classify_request_prepared",
            extra={
                "model": self._model,
                "locale": locale,
                "credential_source": credentials.source,
                "chars": len(normalized),
            },
        )
        try:
            reply = gemini_client.generate_text(
                api_key=api_key,
                model=self._model,
                contents=prompts.classify_prompt(normalized, locale),
                system_instruction=prompts.SYSTEM_INSTRUCTIONS[locale],
                response_schema=prompts.INSIGHT_RESPONSE_SCHEMA,
            )
        except gemini_client.GeminiClientError as exc:
            logger.warning(
                "insight_classify_failed",
                extra={
                    "model": self._model,
                    "kind": exc.kind,
                    "status_code": exc.status_code,
                    "credential_source": credentials.source,
                },
            )
            raise InsightError(
                str(exc),
                code=f"insight_{exc.kind}",
                retryable=exc.kind in RETRYABLE_FAILURES,
            ) from exc

        insight = parse_insight(reply.text)
        logger.info(
            "insight_classify_completed",
            extra={
                "model": reply.model_id,
                "category": insight.category,
                "priority": insight.priority,
                "usage": reply.usage,
            },
        )
        return insight

    def summarize_focus(
        self,
        recent_contents: Sequence[str],
        *,
        credentials: Credentials,
        locale: Locale,
    ) -> str:
        fallback = prompts.default_focus(locale)
        if not credentials.api_key or not prompts.join_focus_context(recent_contents):
            return fallback
        try:
            reply = gemini_client.generate_text(
                api_key=credentials.api_key,
                model=self._model,
                contents=prompts.focus_prompt(recent_contents, locale),
            )
        except gemini_client.GeminiClientError as exc:
            logger.warning(
                "insight_focus_degraded",
                extra={"model": self._model, "kind": exc.kind, "locale": locale},
            )
            return fallback
        return reply.text.strip() or fallback

    def validate_credentials(self, candidate: str) -> bool:
        key = (candidate or "").strip()
        if not key:
            return False
        try:
            gemini_client.generate_text(
                api_key=key,
                model=self._model,
                contents=prompts.VALIDATION_PROBE,
                max_output_tokens=1,
            )
        except gemini_client.GeminiClientError as exc:
            logger.info(
                "insight_credentials_rejected",
                extra={"kind": exc.kind, "status_code": exc.status_code},
            )
            return False
        return True


STUB_CATEGORY_KEYWORDS: Dict[str, Sequence[str]] = {
    "work": ("meeting", "report", "project", "client", "deadline", "email",
             "réunion", "rapport", "projet", "travail"),
    "health": ("run", "gym", "sleep", "doctor", "workout", "walk",
               "santé", "sport", "dormir", "médecin"),
    "creative": ("idea", "write", "draw", "design", "music", "paint",
                 "idée", "écrire", "dessin", "musique"),
}
STUB_CATEGORY_LABELS: Dict[str, Dict[str, str]] = {
    "en": {"work": "work", "health": "health", "creative": "creative", "personal": "personal"},
    "fr": {"work": "travail", "health": "santé", "creative": "créatif", "personal": "personnel"},
}
STUB_HIGH_PRIORITY = ("urgent", "asap", "today", "tonight", "deadline", "aujourd'hui", "vite")
STUB_LOW_PRIORITY = ("someday", "maybe", "eventually", "un jour", "peut-être")
STUB_NEXT_STEPS: Dict[str, Sequence[str]] = {
    "en": ("Write down the first concrete action", "Block time for it this week"),
    "fr": ("Notez la première action concrète", "Réservez un créneau cette semaine"),
}


class StubInsightProvider(InsightProvider):
    """Deterministic provider for offline development; no network access."""

    def classify(
        self, text: str, *, credentials: Credentials, locale: Locale
    ) -> Insight:
        normalized = _normalize_whitespace(text)
        if not normalized:
            raise InsightError(
                "insight prompt text is empty",
                code="insight_prompt_empty",
                retryable=False,
            )
        lowered = normalized.lower()
        category = "personal"
        for candidate, keywords in STUB_CATEGORY_KEYWORDS.items():
            if any(keyword in lowered for keyword in keywords):
                category = candidate
                break
        if any(word in lowered for word in STUB_HIGH_PRIORITY):
            priority: Priority = "high"
        elif any(word in lowered for word in STUB_LOW_PRIORITY):
            priority = "low"
        else:
            priority = "medium"
        logger.info(
            "insight_stub_used",
            extra={"category": category, "priority": priority, "locale": locale},
        )
        return Insight(
            category=STUB_CATEGORY_LABELS[locale][category],
            priority=priority,
            summary=_first_sentence(normalized),
            next_steps=list(STUB_NEXT_STEPS[locale]),
        )

    def summarize_focus(
        self,
        recent_contents: Sequence[str],
        *,
        credentials: Credentials,
        locale: Locale,
    ) -> str:
        for content in recent_contents:
            sentence = _first_sentence(_normalize_whitespace(content))
            if sentence:
                return sentence
        return prompts.default_focus(locale)

    def validate_credentials(self, candidate: str) -> bool:
        return bool((candidate or "").strip())


def build_insight_provider(settings: Optional[Settings] = None) -> InsightProvider:
    """Return the provider named in configuration."""

    settings = settings or load_settings()
    provider = settings.llm.provider
    if provider == "gemini":
        return GeminiInsightProvider(model=settings.llm.model)
    if provider != "stub":
        logger.warning(
            "insight_provider_unimplemented",
            extra={"provider": provider},
        )
    return StubInsightProvider()


def _require_api_key(credentials: Credentials) -> str:
    if not credentials.api_key:
        raise InsightError(
            "no API key configured for insight requests",
            code="insight_credentials_missing",
            retryable=False,
        )
    return credentials.api_key


def _normalize_whitespace(text: str) -> str:
    collapsed = re.sub(r"\s+", " ", text or "")
    return collapsed.strip()


def _first_sentence(text: str) -> str:
    if not text:
        return ""
    sentence = re.split(r"(?<=[.!?])\s+", text)[0]
    return textwrap.shorten(sentence, width=160, placeholder="…")
