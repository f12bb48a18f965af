"""Profile-based configuration loader for the Lumina backend."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml

DEFAULT_ENVIRONMENT = "dev"
DEFAULT_DATABASE_URL = "sqlite+pysqlite:///lumina.db"
DEFAULT_ENTRY_STORE_BACKEND = "sql"
DEFAULT_BLOB_PATH = "~/.lumina/entries.json"
DEFAULT_FOCUS_RECENT_LIMIT = 5
DEFAULT_LLM_PROVIDER = "gemini"
DEFAULT_LLM_MODEL = "gemini-3-flash-preview"
DEFAULT_LOCALE = "fr"
DEFAULT_CLIENT_SETTINGS_PATH = "~/.lumina/settings.json"
DEFAULT_API_BASE_URL = "http://localhost:3000"
DEFAULT_LOG_LEVEL = "INFO"
SUPPORTED_LOCALES = ("fr", "en")
Locale = Literal["fr", "en"]
ENTRY_STORE_BACKENDS = ("sql", "blob", "memory")

DEFAULT_PROFILE_DICT: dict[str, Any] = {
    "environment": DEFAULT_ENVIRONMENT,
    "database": {"url": DEFAULT_DATABASE_URL},
    "entries": {
        "backend": DEFAULT_ENTRY_STORE_BACKEND,
        "blob_path": DEFAULT_BLOB_PATH,
        "require_user_id": False,
        "focus_recent_limit": DEFAULT_FOCUS_RECENT_LIMIT,
    },
    "llm": {"provider": DEFAULT_LLM_PROVIDER, "model": DEFAULT_LLM_MODEL},
    "client": {
        "settings_path": DEFAULT_CLIENT_SETTINGS_PATH,
        "api_base_url": DEFAULT_API_BASE_URL,
        "default_locale": DEFAULT_LOCALE,
    },
    "logging": {"level": DEFAULT_LOG_LEVEL},
}
CONFIG_PROFILE_ENV = "LUMINA_CONFIG_PROFILE"
CONFIG_DIR_ENV = "LUMINA_CONFIG_DIR"
DEFAULT_PROFILE = "dev"
DEFAULT_CONFIG_ROOT = Path(__file__).resolve().parents[3] / "config" / "profiles"
CONFIG_EXTENSIONS = (".yaml", ".yml")
TRUTHY_VALUES = {"1", "true", "yes", "on"}


@dataclass
class EntryStoreConfig:
    backend: str = DEFAULT_ENTRY_STORE_BACKEND
    blob_path: str = DEFAULT_BLOB_PATH
    require_user_id: bool = False
    focus_recent_limit: int = DEFAULT_FOCUS_RECENT_LIMIT


@dataclass
class LlmConfig:
    provider: str = DEFAULT_LLM_PROVIDER
    model: str = DEFAULT_LLM_MODEL
    api_key: str | None = None


@dataclass
class ClientConfig:
    settings_path: str = DEFAULT_CLIENT_SETTINGS_PATH
    api_base_url: str = DEFAULT_API_BASE_URL
    default_locale: str = DEFAULT_LOCALE


@dataclass
class Settings:
    environment: str = DEFAULT_ENVIRONMENT
    database_url: str = DEFAULT_DATABASE_URL
    entries: EntryStoreConfig = field(default_factory=EntryStoreConfig)
    llm: LlmConfig = field(default_factory=LlmConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    log_level: str = DEFAULT_LOG_LEVEL
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def shared_api_key(self) -> str | None:
        """Return the shared default credential, if one is configured."""

        return self.llm.api_key or None


def load_settings(
    profile: str | None = None, config_dir: str | Path | None = None
) -> Settings:
    """Load settings from the requested profile or fall back to defaults."""

    profile_name = profile or os.getenv(CONFIG_PROFILE_ENV, DEFAULT_PROFILE)
    config_root = Path(
        config_dir or os.getenv(CONFIG_DIR_ENV, DEFAULT_CONFIG_ROOT)
    ).expanduser()
    config_data = _load_profile_dict(profile_name, config_root)
    if not config_data:
        config_data = copy.deepcopy(DEFAULT_PROFILE_DICT)

    database_cfg = config_data.get("database") or {}
    database_url = os.getenv(
        "DATABASE_URL", database_cfg.get("url", DEFAULT_DATABASE_URL)
    )
    logging_cfg = config_data.get("logging") or {}
    log_level = os.getenv(
        "LUMINA_LOG_LEVEL", logging_cfg.get("level", DEFAULT_LOG_LEVEL)
    )

    return Settings(
        environment=config_data.get("environment", DEFAULT_ENVIRONMENT),
        database_url=database_url,
        entries=_build_entry_store_config(config_data.get("entries")),
        llm=_build_llm_config(config_data.get("llm")),
        client=_build_client_config(config_data.get("client")),
        log_level=str(log_level).upper(),
        raw=config_data,
    )


def _load_profile_dict(profile_name: str, config_root: Path) -> dict[str, Any]:
    """Load the YAML profile if available, otherwise return an empty dict."""

    if not config_root.exists():
        return {}

    for extension in CONFIG_EXTENSIONS:
        candidate = config_root / f"{profile_name}{extension}"
        if not candidate.exists():
            continue
        try:
            with candidate.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise RuntimeError(
                f"Failed to parse config profile {candidate}: {exc}"
            ) from exc
        if not isinstance(loaded, dict):
            raise RuntimeError(
                f"Config profile {candidate} must be a mapping at the root"
            )
        return loaded

    return {}


def _build_entry_store_config(entries_cfg: dict[str, Any] | None) -> EntryStoreConfig:
    entries_cfg = entries_cfg or {}
    backend = str(
        os.getenv(
            "LUMINA_ENTRY_STORE",
            entries_cfg.get("backend", DEFAULT_ENTRY_STORE_BACKEND),
        )
    ).lower()
    if backend not in ENTRY_STORE_BACKENDS:
        raise RuntimeError(
            f"entries.backend must be one of {', '.join(ENTRY_STORE_BACKENDS)}; got '{backend}'"
        )
    require_env = os.getenv("LUMINA_REQUIRE_USER_ID")
    if require_env is not None and require_env.strip():
        require_user_id = require_env.strip().lower() in TRUTHY_VALUES
    else:
        require_user_id = bool(entries_cfg.get("require_user_id", False))
    return EntryStoreConfig(
        backend=backend,
        blob_path=str(entries_cfg.get("blob_path", DEFAULT_BLOB_PATH)),
        require_user_id=require_user_id,
        focus_recent_limit=int(
            entries_cfg.get("focus_recent_limit", DEFAULT_FOCUS_RECENT_LIMIT)
        ),
    )


def _build_llm_config(llm_cfg: dict[str, Any] | None) -> LlmConfig:
    llm_cfg = llm_cfg or {}
    api_key = os.getenv("GEMINI_API_KEY") or llm_cfg.get("api_key") or None
    return LlmConfig(
        provider=str(llm_cfg.get("provider", DEFAULT_LLM_PROVIDER)).lower(),
        model=str(llm_cfg.get("model", DEFAULT_LLM_MODEL)),
        api_key=str(api_key) if api_key else None,
    )


def _build_client_config(client_cfg: dict[str, Any] | None) -> ClientConfig:
    client_cfg = client_cfg or {}
    default_locale = str(
        os.getenv("LUMINA_LOCALE", client_cfg.get("default_locale", DEFAULT_LOCALE))
    ).lower()
    if default_locale not in SUPPORTED_LOCALES:
        raise RuntimeError(
            f"client.default_locale must be one of {', '.join(SUPPORTED_LOCALES)}; got '{default_locale}'"
        )
    return ClientConfig(
        settings_path=str(
            client_cfg.get("settings_path", DEFAULT_CLIENT_SETTINGS_PATH)
        ),
        api_base_url=str(client_cfg.get("api_base_url", DEFAULT_API_BASE_URL)),
        default_locale=default_locale,
    )
