"""Insight endpoints: daily focus, classification, and key validation."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from ...api.dependencies import (
    CallerContext,
    get_caller_context,
    get_credentials,
    get_entry_service,
    get_insight_provider,
    get_settings,
)
from ...config import Locale, Settings
from ...domain.entries import EntryService
from ...infra.llm_gateway import Credentials, InsightError, InsightProvider
from ...infra.logging import get_logger
from .entries import insight_http_error

router = APIRouter(prefix="/api", tags=["insights"])
logger = get_logger(__name__)


class ClassifyRequest(BaseModel):
    text: str
    locale: Optional[Locale] = None


class FocusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recent_contents: List[str] = Field(default_factory=list, alias="recentContents")
    locale: Optional[Locale] = None


class CredentialsValidateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="apiKey")


@router.get("/focus")
def daily_focus(
    locale: Optional[Locale] = Query(default=None),
    caller: CallerContext = Depends(get_caller_context),
    service: EntryService = Depends(get_entry_service),
    settings: Settings = Depends(get_settings),
) -> Dict[str, str]:
    """Focus sentence derived from the caller's most recent entries."""

    try:
        focus = service.daily_focus(
            credentials=caller.credentials,
            locale=locale or settings.client.default_locale,
            user_id=caller.user_id,
        )
    except InsightError as exc:
        raise insight_http_error(exc) from exc
    return {"focus": focus}


@router.post("/insights/classify")
def classify_text(
    payload: ClassifyRequest,
    provider: InsightProvider = Depends(get_insight_provider),
    credentials: Credentials = Depends(get_credentials),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    try:
        insight = provider.classify(
            payload.text,
            credentials=credentials,
            locale=payload.locale or settings.client.default_locale,
        )
    except InsightError as exc:
        raise insight_http_error(exc) from exc
    return insight.to_metadata()


@router.post("/insights/focus")
def summarize_focus(
    payload: FocusRequest,
    provider: InsightProvider = Depends(get_insight_provider),
    credentials: Credentials = Depends(get_credentials),
    settings: Settings = Depends(get_settings),
) -> Dict[str, str]:
    try:
        focus = provider.summarize_focus(
            payload.recent_contents,
            credentials=credentials,
            locale=payload.locale or settings.client.default_locale,
        )
    except InsightError as exc:
        raise insight_http_error(exc) from exc
    return {"focus": focus}


@router.post("/credentials/validate")
def validate_credentials(
    payload: CredentialsValidateRequest,
    provider: InsightProvider = Depends(get_insight_provider),
) -> Dict[str, bool]:
    valid = provider.validate_credentials(payload.api_key)
    logger.info("credentials_validated", extra={"valid": valid})
    return {"valid": valid}
