"""Entry endpoints: list, create, delete, and classify-then-store."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, status
from pydantic import BaseModel, ConfigDict, Field

from ...api.dependencies import (
    CallerContext,
    get_caller_context,
    get_credentials,
    get_entry_service,
    get_settings,
    resolve_user_id,
)
from ...config import Locale, Settings
from ...domain.entries import EntryService
from ...domain.entrystore import DEFAULT_ENTRY_TYPE
from ...domain.errors import EntryValidationError, StorageError
from ...infra.llm_gateway import Credentials, InsightError
from ...infra.logging import get_logger
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api/entries", tags=["entries"])
logger = get_logger(__name__)
metrics = get_metrics_client()


class EntryCreateRequest(BaseModel):
    """Body for POST /api/entries; the insight was produced by the caller."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    content: str
    type: str = DEFAULT_ENTRY_TYPE
    metadata: Dict[str, Any] = Field(default_factory=dict)


class EntrySubmitRequest(BaseModel):
    """Body for POST /api/entries/submit; the server classifies the content."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    content: str
    type: str = DEFAULT_ENTRY_TYPE
    locale: Optional[Locale] = None


@router.get("")
def list_entries(
    caller: CallerContext = Depends(get_caller_context),
    service: EntryService = Depends(get_entry_service),
) -> List[Dict[str, Any]]:
    try:
        entries = service.list_all(user_id=caller.user_id)
    except StorageError as exc:
        raise _storage_error(exc) from exc
    return [entry.to_record() for entry in entries]


@router.post("")
def create_entry(
    payload: EntryCreateRequest,
    service: EntryService = Depends(get_entry_service),
    settings: Settings = Depends(get_settings),
) -> Dict[str, int]:
    user_id = resolve_user_id(payload.user_id, settings)
    try:
        entry = service.create(
            content=payload.content,
            entry_type=payload.type,
            metadata=payload.metadata,
            user_id=user_id,
        )
    except EntryValidationError as exc:
        raise _http_error(status.HTTP_400_BAD_REQUEST, exc.code, exc.message) from exc
    except StorageError as exc:
        raise _storage_error(exc) from exc
    return {"id": entry.id}


@router.post("/submit")
def submit_entry(
    payload: EntrySubmitRequest,
    service: EntryService = Depends(get_entry_service),
    credentials: Credentials = Depends(get_credentials),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    user_id = resolve_user_id(payload.user_id, settings)
    locale = payload.locale or settings.client.default_locale
    try:
        entry = service.submit(
            payload.content,
            payload.type,
            credentials=credentials,
            locale=locale,
            user_id=user_id,
        )
    except EntryValidationError as exc:
        raise _http_error(status.HTTP_400_BAD_REQUEST, exc.code, exc.message) from exc
    except InsightError as exc:
        metrics.increment("entries_api_insight_failed_total")
        raise insight_http_error(exc) from exc
    except StorageError as exc:
        raise _storage_error(exc) from exc
    return entry.to_record()


@router.delete("/{entry_id}")
def delete_entry(
    entry_id: int = Path(...),
    service: EntryService = Depends(get_entry_service),
) -> Dict[str, bool]:
    try:
        service.remove(entry_id)
    except StorageError as exc:
        raise _storage_error(exc) from exc
    return {"success": True}


def insight_http_error(exc: InsightError) -> HTTPException:
    details = dict(exc.details)
    details["retryable"] = exc.retryable
    return _http_error(status.HTTP_502_BAD_GATEWAY, exc.code, str(exc), details)


def _storage_error(exc: StorageError) -> HTTPException:
    logger.error(
        "entries_api_storage_failed",
        extra={"code": exc.code, "error": exc.message},
    )
    metrics.increment("entries_api_storage_failed_total")
    return _http_error(
        status.HTTP_500_INTERNAL_SERVER_ERROR, exc.code, exc.message, exc.details
    )


def _http_error(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error_code": error_code,
            "message": message,
            "details": details or {},
        },
    )
