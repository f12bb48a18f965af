"""Persisted client preferences: display locale and personal API key."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from ...config import SUPPORTED_LOCALES, Locale
from ...infra.logging import get_logger
from ..errors import StorageError

logger = get_logger(__name__)

LOCALE_KEY = "lumina_lang"
API_KEY_KEY = "lumina_api_key"
DEFAULT_LOCALE: Locale = "fr"


@dataclass(frozen=True)
class ClientPreferences:
    locale: Locale = DEFAULT_LOCALE
    api_key: Optional[str] = None

    def with_locale(self, locale: Locale) -> "ClientPreferences":
        return replace(self, locale=locale)

    def with_api_key(self, api_key: Optional[str]) -> "ClientPreferences":
        return replace(self, api_key=(api_key or "").strip() or None)

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {LOCALE_KEY: self.locale}
        if self.api_key:
            record[API_KEY_KEY] = self.api_key
        return record


class SettingsStore:
    """JSON file holding the preferences; unreadable files fall back to defaults."""

    def __init__(
        self, path: str | Path, *, default_locale: Locale = DEFAULT_LOCALE
    ) -> None:
        self._path = Path(path).expanduser()
        self._default_locale = default_locale
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ClientPreferences:
        with self._lock:
            record = self._read_record()
        locale = record.get(LOCALE_KEY)
        if locale not in SUPPORTED_LOCALES:
            locale = self._default_locale
        api_key = record.get(API_KEY_KEY)
        if not isinstance(api_key, str):
            api_key = None
        return ClientPreferences(locale=locale).with_api_key(api_key)

    def save(self, preferences: ClientPreferences) -> None:
        payload = json.dumps(preferences.to_record(), ensure_ascii=False, indent=2)
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=str(self._path.parent), prefix=".settings-", suffix=".json"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as handle:
                        handle.write(payload)
                    os.replace(tmp_name, self._path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as exc:
                logger.error(
                    "client_settings_write_failed",
                    extra={"path": str(self._path), "error": str(exc)},
                )
                raise StorageError(
                    "unable to persist client settings",
                    code="settings_write_failed",
                    details={"path": str(self._path)},
                ) from exc
        logger.debug(
            "client_settings_saved",
            extra={"path": str(self._path), "locale": preferences.locale},
        )

    def _read_record(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "client_settings_unreadable",
                extra={"path": str(self._path), "error": str(exc)},
            )
            return {}
        return data if isinstance(data, dict) else {}
