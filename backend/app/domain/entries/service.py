"""Entry service: validates, enriches, and persists captured thoughts."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...config import Locale
from ...infra.llm_gateway import Credentials, InsightError, InsightProvider
from ...infra.logging import get_logger
from ...infra.metrics import MetricsClient, get_metrics_client
from ..entrystore import DEFAULT_ENTRY_TYPE, Entry, EntryStoreGateway
from ..errors import EntryValidationError
from ..messages import message_for

logger = get_logger(__name__)

DEFAULT_FOCUS_RECENT_LIMIT = 5


class EntryService:
    """Mediates between callers, the insight provider, and the entry store."""

    def __init__(
        self,
        *,
        gateway: EntryStoreGateway,
        provider: InsightProvider,
        metrics: MetricsClient | None = None,
        focus_recent_limit: int = DEFAULT_FOCUS_RECENT_LIMIT,
    ) -> None:
        self._gateway = gateway
        self._provider = provider
        self._metrics = metrics or get_metrics_client()
        self._focus_recent_limit = focus_recent_limit

    def submit(
        self,
        content: str,
        entry_type: str = DEFAULT_ENTRY_TYPE,
        *,
        credentials: Credentials,
        locale: Locale,
        user_id: Optional[str] = None,
    ) -> Entry:
        """Classify ``content`` and store it; nothing is written if classification fails."""

        normalized = _require_content(content)
        self._metrics.increment("entry_submit_attempt_total")
        try:
            insight = self._provider.classify(
                normalized, credentials=credentials, locale=locale
            )
        except InsightError as exc:
            self._metrics.increment("entry_submit_insight_failed_total")
            logger.warning(
                "entry_submit_insight_failed",
                extra={
                    "code": exc.code,
                    "retryable": exc.retryable,
                    "credential_source": credentials.source,
                    "locale": locale,
                },
            )
            raise

        entry = self._gateway.insert_entry(
            content=normalized,
            entry_type=entry_type or DEFAULT_ENTRY_TYPE,
            metadata=insight.to_metadata(),
            user_id=user_id,
        )
        self._metrics.increment("entry_submit_success_total")
        logger.info(
            "entry_submit_completed",
            extra={
                "entry_id": entry.id,
                "category": insight.category,
                "priority": insight.priority,
                "user_id": user_id,
            },
        )
        return entry

    def create(
        self,
        *,
        content: str,
        entry_type: str = DEFAULT_ENTRY_TYPE,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> Entry:
        """Store an entry whose insight was produced elsewhere."""

        normalized = _require_content(content)
        entry = self._gateway.insert_entry(
            content=normalized,
            entry_type=entry_type or DEFAULT_ENTRY_TYPE,
            metadata=metadata,
            user_id=user_id,
        )
        self._metrics.increment("entry_create_total")
        logger.info(
            "entry_created",
            extra={"entry_id": entry.id, "type": entry.type, "user_id": user_id},
        )
        return entry

    def list_all(self, *, user_id: Optional[str] = None) -> List[Entry]:
        entries = self._gateway.list_entries(user_id=user_id)
        self._metrics.gauge("entry_list_size", len(entries))
        return entries

    def remove(self, entry_id: int) -> None:
        self._gateway.delete_entry(entry_id)
        self._metrics.increment("entry_delete_total")
        logger.info("entry_deleted", extra={"entry_id": entry_id})

    def daily_focus(
        self,
        *,
        credentials: Credentials,
        locale: Locale,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> str:
        """Summarize the most recent entries into a single focus sentence."""

        window = self._focus_recent_limit if limit is None else limit
        recent = self.list_all(user_id=user_id)[: max(window, 0)]
        if not recent:
            return message_for(locale, "definingIntention")
        return self._provider.summarize_focus(
            [entry.content for entry in recent],
            credentials=credentials,
            locale=locale,
        )


def _require_content(content: str) -> str:
    normalized = (content or "").strip()
    if not normalized:
        logger.warning("entry_submit_rejected_empty")
        raise EntryValidationError("content must not be empty")
    return normalized
