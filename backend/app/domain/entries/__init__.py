"""Entry capture domain package."""

from .service import DEFAULT_FOCUS_RECENT_LIMIT, EntryService

__all__ = ["DEFAULT_FOCUS_RECENT_LIMIT", "EntryService"]
