"""Entry store data models."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "DEFAULT_ENTRY_TYPE",
    "Entry",
    "coerce_metadata",
    "parse_timestamp",
    "utcnow",
]

DEFAULT_ENTRY_TYPE = "thought"


def utcnow() -> datetime:
    """Return timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Entry:
    """A captured thought plus the insight produced when it was stored."""

    id: int
    content: str
    type: str
    created_at: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None

    def sort_key(self) -> tuple[datetime, int]:
        """Key for newest-first ordering; id breaks timestamp ties."""

        return (self.created_at, self.id)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the JSON shape shared by the blob store and the API."""

        record: Dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "type": self.type,
            "created_at": self.created_at.isoformat(),
            "metadata": dict(self.metadata),
        }
        if self.user_id is not None:
            record["user_id"] = self.user_id
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Entry":
        """Rebuild an Entry from a stored or transmitted JSON record."""

        return cls(
            id=int(record["id"]),
            content=str(record["content"]),
            type=str(record.get("type") or DEFAULT_ENTRY_TYPE),
            created_at=parse_timestamp(record["created_at"]),
            metadata=coerce_metadata(record.get("metadata")),
            user_id=record.get("user_id") or record.get("userId"),
        )


def coerce_metadata(value: Any) -> Dict[str, Any]:
    """Return metadata as a dict; missing or corrupt values become ``{}``."""

    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (str, bytes)):
        try:
            decoded = json.loads(value or "{}")
        except (TypeError, ValueError):
            return {}
        return dict(decoded) if isinstance(decoded, dict) else {}
    return {}


def parse_timestamp(value: Any) -> datetime:
    """Parse ISO strings or datetimes, assuming UTC when no zone is present."""

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # SQLite CURRENT_TIMESTAMP uses a space separator.
        parsed = datetime.fromisoformat(text.replace(" ", "T", 1))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
