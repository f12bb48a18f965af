"""Shared API dependencies."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from ..config import Settings, load_settings
from ..domain.entries import EntryService
from ..domain.entrystore import EntryStoreGateway, build_entry_store_gateway
from ..infra.llm_gateway import Credentials, InsightProvider, build_insight_provider

__all__ = [
    "API_KEY_HEADER",
    "CallerContext",
    "get_caller_context",
    "get_credentials",
    "get_entry_gateway",
    "get_entry_service",
    "get_insight_provider",
    "get_settings",
    "resolve_user_id",
]

API_KEY_HEADER = "x-lumina-api-key"


@dataclass(frozen=True)
class CallerContext:
    """Who is calling and which key their insight requests should use."""

    user_id: Optional[str]
    credentials: Credentials


@lru_cache()
def _settings_singleton() -> Settings:
    return load_settings()


def get_settings() -> Settings:
    """Return the process-wide settings loaded from the active profile."""

    return _settings_singleton()


@lru_cache()
def _entry_gateway_singleton() -> EntryStoreGateway:
    return build_entry_store_gateway(get_settings(), fallback_to_memory=True)


def get_entry_gateway() -> EntryStoreGateway:
    """Return the process-wide entry store gateway instance."""

    return _entry_gateway_singleton()


@lru_cache()
def _insight_provider_singleton() -> InsightProvider:
    return build_insight_provider(get_settings())


def get_insight_provider() -> InsightProvider:
    """Return the configured insight provider."""

    return _insight_provider_singleton()


def get_entry_service(
    gateway: EntryStoreGateway = Depends(get_entry_gateway),
    provider: InsightProvider = Depends(get_insight_provider),
    settings: Settings = Depends(get_settings),
) -> EntryService:
    return EntryService(
        gateway=gateway,
        provider=provider,
        focus_recent_limit=settings.entries.focus_recent_limit,
    )


def get_credentials(
    request: Request, settings: Settings = Depends(get_settings)
) -> Credentials:
    """Prefer the caller's personal key header over the shared key."""

    return Credentials.select(
        request.headers.get(API_KEY_HEADER), settings.shared_api_key
    )


def resolve_user_id(user_id: Optional[str], settings: Settings) -> Optional[str]:
    """Normalize the caller id, rejecting its absence when identity is required."""

    normalized = (user_id or "").strip() or None
    if normalized is None and settings.entries.require_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error_code": "user_id_required",
                "message": "userId is required",
                "details": {},
            },
        )
    return normalized


def get_caller_context(
    request: Request,
    credentials: Credentials = Depends(get_credentials),
    settings: Settings = Depends(get_settings),
) -> CallerContext:
    """Caller context for GET endpoints, where ``userId`` is a query parameter."""

    user_id = resolve_user_id(request.query_params.get("userId"), settings)
    return CallerContext(user_id=user_id, credentials=credentials)
