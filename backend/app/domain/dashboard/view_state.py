"""Dashboard view state: cached entries, submit status, daily focus, settings.

The state is a plain object so it can drive any front end (the CLI in
``scripts/capture_thought.py``, a template, or tests) without rendering.
Entries come from an ``EntrySource``: either ``EntryService`` in-process or
``LuminaApiClient`` over HTTP. Every successful mutation is followed by a
full re-fetch; the cache is never patched optimistically.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Protocol, Tuple

from ...config import SUPPORTED_LOCALES, Locale
from ...infra.llm_gateway import Credentials, InsightError, InsightProvider
from ...infra.logging import get_logger
from ..entries import DEFAULT_FOCUS_RECENT_LIMIT
from ..entrystore import DEFAULT_ENTRY_TYPE, Entry
from ..errors import EntryValidationError, StorageError
from ..messages import message_for
from .settings_store import ClientPreferences, SettingsStore

logger = get_logger(__name__)


class EntrySource(Protocol):  # pragma: no cover - interface only
    def list_all(self) -> List[Entry]: ...

    def submit(
        self,
        content: str,
        entry_type: str = DEFAULT_ENTRY_TYPE,
        *,
        credentials: Credentials,
        locale: Locale,
    ) -> Entry: ...

    def remove(self, entry_id: int) -> None: ...


class SubmitStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILURE = "failure"


class SubmitEvent(str, Enum):
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    RESET = "reset"


SUBMIT_TRANSITIONS: Dict[Tuple[SubmitStatus, SubmitEvent], SubmitStatus] = {
    (SubmitStatus.IDLE, SubmitEvent.STARTED): SubmitStatus.SUBMITTING,
    (SubmitStatus.SUCCESS, SubmitEvent.STARTED): SubmitStatus.SUBMITTING,
    (SubmitStatus.FAILURE, SubmitEvent.STARTED): SubmitStatus.SUBMITTING,
    (SubmitStatus.SUBMITTING, SubmitEvent.SUCCEEDED): SubmitStatus.SUCCESS,
    (SubmitStatus.SUBMITTING, SubmitEvent.FAILED): SubmitStatus.FAILURE,
    (SubmitStatus.IDLE, SubmitEvent.RESET): SubmitStatus.IDLE,
    (SubmitStatus.SUCCESS, SubmitEvent.RESET): SubmitStatus.IDLE,
    (SubmitStatus.FAILURE, SubmitEvent.RESET): SubmitStatus.IDLE,
}


class InvalidTransitionError(RuntimeError):
    """Raised when an event is not allowed from the current submit status."""

    def __init__(self, status: SubmitStatus, event: SubmitEvent) -> None:
        super().__init__(f"cannot apply {event.value!r} while {status.value!r}")
        self.status = status
        self.event = event


def next_status(status: SubmitStatus, event: SubmitEvent) -> SubmitStatus:
    try:
        return SUBMIT_TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransitionError(status, event) from None


class DashboardViewState:
    """Client-side model of the Lumina dashboard."""

    def __init__(
        self,
        *,
        source: EntrySource,
        provider: InsightProvider,
        settings_store: SettingsStore,
        shared_api_key: Optional[str] = None,
        focus_limit: int = DEFAULT_FOCUS_RECENT_LIMIT,
    ) -> None:
        self._source = source
        self._provider = provider
        self._settings_store = settings_store
        self._shared_api_key = shared_api_key
        self._focus_limit = focus_limit
        self._preferences: ClientPreferences = settings_store.load()
        self._entries: List[Entry] = []
        self._status = SubmitStatus.IDLE
        self._alert: Optional[str] = None
        self._focus = self._message("definingIntention")

    @property
    def entries(self) -> List[Entry]:
        return list(self._entries)

    @property
    def status(self) -> SubmitStatus:
        return self._status

    @property
    def alert(self) -> Optional[str]:
        return self._alert

    @property
    def daily_focus(self) -> str:
        return self._focus

    @property
    def locale(self) -> Locale:
        return self._preferences.locale

    @property
    def personal_api_key(self) -> Optional[str]:
        return self._preferences.api_key

    @property
    def credential_mode(self) -> str:
        return self.credentials().source

    @property
    def credential_label(self) -> str:
        if self.credential_mode == "personal":
            return self._message("personalKey")
        return self._message("sharedQuota")

    def credentials(self) -> Credentials:
        return Credentials.select(self._preferences.api_key, self._shared_api_key)

    def refresh(self) -> List[Entry]:
        """Re-fetch the entry list from the source and recompute the focus."""

        try:
            self._entries = list(self._source.list_all())
        except (StorageError, EntryValidationError) as exc:
            logger.warning(
                "dashboard_refresh_failed",
                extra={"code": exc.code, "error": exc.message},
            )
            self._alert = self._message("errorStorage")
            return self.entries
        self.recompute_focus()
        return self.entries

    def submit(self, text: str, entry_type: str = DEFAULT_ENTRY_TYPE) -> Optional[Entry]:
        """Send one thought through the source; blank input is ignored."""

        if not (text or "").strip():
            return None
        self._apply(SubmitEvent.STARTED)
        self._alert = None
        try:
            entry = self._source.submit(
                text,
                entry_type,
                credentials=self.credentials(),
                locale=self.locale,
            )
        except (InsightError, EntryValidationError) as exc:
            self._fail("errorProcess", exc)
            return None
        except StorageError as exc:
            self._fail("errorStorage", exc)
            return None
        except Exception as exc:
            logger.exception("dashboard_submit_crashed")
            self._fail("errorProcess", exc)
            return None
        self._apply(SubmitEvent.SUCCEEDED)
        logger.info("dashboard_submit_succeeded", extra={"entry_id": entry.id})
        self.refresh()
        return entry

    def acknowledge(self) -> None:
        """Return to idle after a success or failure has been shown."""

        self._apply(SubmitEvent.RESET)
        self._alert = None

    def delete(self, entry_id: int) -> bool:
        try:
            self._source.remove(entry_id)
        except StorageError as exc:
            logger.warning(
                "dashboard_delete_failed",
                extra={"entry_id": entry_id, "code": exc.code},
            )
            self._alert = self._message("errorStorage")
            return False
        self.refresh()
        return True

    def recompute_focus(self) -> str:
        if not self._entries:
            self._focus = self._message("definingIntention")
            return self._focus
        recent = [entry.content for entry in self._entries[: self._focus_limit]]
        try:
            self._focus = self._provider.summarize_focus(
                recent, credentials=self.credentials(), locale=self.locale
            )
        except InsightError as exc:
            logger.warning(
                "dashboard_focus_failed",
                extra={"code": exc.code, "credential_source": self.credential_mode},
            )
            self._focus = self._message("errorQuota")
        return self._focus

    def set_locale(self, locale: str) -> None:
        if locale not in SUPPORTED_LOCALES:
            raise ValueError(f"unsupported locale: {locale!r}")
        self._save(self._preferences.with_locale(locale))  # type: ignore[arg-type]
        self.recompute_focus()

    def toggle_locale(self) -> Locale:
        self.set_locale("en" if self.locale == "fr" else "fr")
        return self.locale

    def set_api_key(self, candidate: str) -> bool:
        """Validate ``candidate`` and persist it only when the provider accepts it."""

        key = (candidate or "").strip()
        valid = bool(key) and self._provider.validate_credentials(key)
        if not valid:
            self._alert = self._message("invalidKey")
            logger.info("dashboard_api_key_rejected")
            return False
        self._save(self._preferences.with_api_key(key))
        self._alert = self._message("validKey")
        self.recompute_focus()
        return True

    def clear_api_key(self) -> None:
        self._save(self._preferences.with_api_key(None))
        self.recompute_focus()

    def _save(self, preferences: ClientPreferences) -> None:
        self._settings_store.save(preferences)
        self._preferences = preferences

    def _apply(self, event: SubmitEvent) -> None:
        self._status = next_status(self._status, event)

    def _fail(self, message_key: str, exc: Exception) -> None:
        self._apply(SubmitEvent.FAILED)
        self._alert = self._message(message_key)
        logger.warning(
            "dashboard_submit_failed",
            extra={"code": getattr(exc, "code", None), "error": str(exc)},
        )

    def _message(self, key: str) -> str:
        return message_for(self._preferences.locale, key)
