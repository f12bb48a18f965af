"""Domain exceptions propagated to API handlers and view state."""

from __future__ import annotations

from typing import Any, Dict

__all__ = ["LuminaError", "EntryValidationError", "StorageError"]


class LuminaError(Exception):
    """Base class carrying a stable error code for API envelopes."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class EntryValidationError(LuminaError, ValueError):
    """Raised before any side effect when submitted input is unusable."""

    def __init__(self, message: str, *, code: str = "entry_content_empty") -> None:
        super().__init__(message, code=code)


class StorageError(LuminaError):
    """Raised when the entry store cannot persist a mutation."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "storage_write_failed",
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
