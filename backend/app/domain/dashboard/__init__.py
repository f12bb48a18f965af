"""Dashboard client state package."""

from .settings_store import ClientPreferences, SettingsStore
from .view_state import (
    DashboardViewState,
    EntrySource,
    InvalidTransitionError,
    SubmitEvent,
    SubmitStatus,
    next_status,
)

__all__ = [
    "ClientPreferences",
    "DashboardViewState",
    "EntrySource",
    "InvalidTransitionError",
    "SettingsStore",
    "SubmitEvent",
    "SubmitStatus",
    "next_status",
]
