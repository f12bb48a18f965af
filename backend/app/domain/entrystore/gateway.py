"""Entry store gateway implementations."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    delete,
    insert,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ...config import Settings, load_settings
from ...infra.db import build_engine
from ...infra.logging import get_logger
from ..errors import StorageError
from .models import DEFAULT_ENTRY_TYPE, Entry, coerce_metadata, parse_timestamp, utcnow

__all__ = [
    "EntryStoreGateway",
    "InMemoryEntryStoreGateway",
    "LocalBlobEntryStoreGateway",
    "SqlEntryStoreGateway",
    "build_entries_table",
    "build_entry_store_gateway",
    "next_entry_id",
]

logger = get_logger(__name__)


class EntryStoreGateway(Protocol):  # pragma: no cover
    """Storage contract shared by every entry store backing."""

    def list_entries(self, *, user_id: Optional[str] = None) -> List[Entry]: ...

    def insert_entry(
        self,
        *,
        content: str,
        entry_type: str = DEFAULT_ENTRY_TYPE,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> Entry: ...

    def delete_entry(self, entry_id: int) -> None: ...

    def get_entry(self, entry_id: int) -> Entry: ...


def next_entry_id(entries: Iterable[Entry]) -> int:
    """Return ``max(existing ids) + 1``, or ``0`` for an empty collection."""

    ids = [entry.id for entry in entries]
    if not ids:
        return 0
    return max(ids) + 1


def _record_id(record: Any) -> Optional[int]:
    if not isinstance(record, Mapping):
        return None
    try:
        return int(record["id"])
    except (KeyError, TypeError, ValueError):
        return None


def _next_record_id(records: Iterable[Any]) -> int:
    """Like ``next_entry_id`` but over raw blob records, including unparsable ones."""

    ids = [entry_id for entry_id in map(_record_id, records) if entry_id is not None]
    if not ids:
        return 0
    return max(ids) + 1


def _newest_first(entries: Iterable[Entry], user_id: Optional[str]) -> List[Entry]:
    selected = [
        entry for entry in entries if user_id is None or entry.user_id == user_id
    ]
    return sorted(selected, key=Entry.sort_key, reverse=True)


def _ensure_serializable(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    payload = dict(metadata or {})
    try:
        json.dumps(payload)
    except (TypeError, ValueError) as exc:
        raise StorageError(
            f"entry metadata is not JSON serializable: {exc}",
            code="storage_serialization_failed",
        ) from exc
    return payload


class InMemoryEntryStoreGateway(EntryStoreGateway):
    """Process-local entry store used for development and tests."""

    def __init__(self, entries: Optional[Iterable[Entry]] = None) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[int, Entry] = {entry.id: entry for entry in entries or ()}
        self._next_id = next_entry_id(self._entries.values())

    def list_entries(self, *, user_id: Optional[str] = None) -> List[Entry]:
        with self._lock:
            return _newest_first(self._entries.values(), user_id)

    def insert_entry(
        self,
        *,
        content: str,
        entry_type: str = DEFAULT_ENTRY_TYPE,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> Entry:
        payload = _ensure_serializable(metadata)
        with self._lock:
            entry = Entry(
                id=self._next_id,
                content=content,
                type=entry_type,
                created_at=utcnow(),
                metadata=payload,
                user_id=user_id,
            )
            self._entries[entry.id] = entry
            self._next_id += 1
        return entry

    def delete_entry(self, entry_id: int) -> None:
        with self._lock:
            self._entries.pop(entry_id, None)

    def get_entry(self, entry_id: int) -> Entry:
        with self._lock:
            record = self._entries.get(entry_id)
        if record is None:
            raise KeyError(f"Entry {entry_id} not found")
        return record


class LocalBlobEntryStoreGateway(EntryStoreGateway):
    """Entry store persisted as one JSON array in a local file.

    The file is the source of truth and is re-read for every operation. The
    id counter is seeded from the file once at construction and never moves
    backwards, so ids handed out in this session are not reissued even if
    the newest entry is deleted.

    Records that cannot be parsed are skipped when listing but written back
    untouched. A file that cannot be parsed at all reads as empty, and
    mutations refuse to overwrite it.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()
        self._next_id = _next_record_id(self._read_records(strict=False))
        logger.debug(
            "blob_entry_store_loaded",
            extra={"path": str(self._path), "next_id": self._next_id},
        )

    @property
    def path(self) -> Path:
        return self._path

    def list_entries(self, *, user_id: Optional[str] = None) -> List[Entry]:
        with self._lock:
            records = self._read_records(strict=False)
        return _newest_first(self._parse_records(records), user_id)

    def insert_entry(
        self,
        *,
        content: str,
        entry_type: str = DEFAULT_ENTRY_TYPE,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> Entry:
        payload = _ensure_serializable(metadata)
        with self._lock:
            records = self._read_records(strict=True)
            entry_id = max(self._next_id, _next_record_id(records))
            entry = Entry(
                id=entry_id,
                content=content,
                type=entry_type,
                created_at=utcnow(),
                metadata=payload,
                user_id=user_id,
            )
            records.append(entry.to_record())
            self._write_records(records)
            self._next_id = entry_id + 1
        return entry

    def delete_entry(self, entry_id: int) -> None:
        with self._lock:
            records = self._read_records(strict=True)
            remaining = [
                record for record in records if _record_id(record) != entry_id
            ]
            if len(remaining) == len(records):
                return
            self._write_records(remaining)

    def get_entry(self, entry_id: int) -> Entry:
        with self._lock:
            records = self._read_records(strict=False)
        for entry in self._parse_records(records):
            if entry.id == entry_id:
                return entry
        raise KeyError(f"Entry {entry_id} not found")

    def _read_records(self, *, strict: bool) -> List[Any]:
        if not self._path.exists():
            return []
        try:
            raw = self._path.read_text(encoding="utf-8")
            records = json.loads(raw) if raw.strip() else []
            if not isinstance(records, list):
                raise ValueError("entry blob must hold a JSON array")
        except (OSError, ValueError) as exc:
            if strict:
                logger.error(
                    "blob_entry_store_overwrite_refused",
                    extra={"path": str(self._path), "error": str(exc)},
                )
                raise StorageError(
                    f"refusing to overwrite unreadable entry blob {self._path}: {exc}",
                    details={"path": str(self._path)},
                ) from exc
            logger.warning(
                "blob_entry_store_unreadable",
                extra={"path": str(self._path)},
                exc_info=True,
            )
            return []
        return records

    def _parse_records(self, records: List[Any]) -> List[Entry]:
        entries: List[Entry] = []
        for position, record in enumerate(records):
            try:
                entries.append(Entry.from_record(record))
            except (KeyError, TypeError, ValueError):
                logger.warning(
                    "blob_entry_record_skipped",
                    extra={"path": str(self._path), "position": position},
                )
        return entries

    def _write_records(self, records: List[Any]) -> None:
        try:
            serialized = json.dumps(records, ensure_ascii=False, indent=2)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(serialized)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            logger.error(
                "blob_entry_store_write_failed",
                extra={"path": str(self._path), "error": str(exc)},
            )
            raise StorageError(
                f"failed to persist entries to {self._path}: {exc}",
                details={"path": str(self._path)},
            ) from exc


def build_entries_table(metadata: MetaData) -> Table:
    """Declare the ``entries`` table; metadata is stored as serialized JSON text."""

    return Table(
        "entries",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("content", Text, nullable=False),
        Column("type", String(64), nullable=False),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("metadata", Text, nullable=True),
        Column("user_id", String(128), nullable=True, index=True),
        sqlite_autoincrement=True,
    )


class SqlEntryStoreGateway(EntryStoreGateway):
    """SQLAlchemy-backed adapter that persists entries to a relational table."""

    def __init__(
        self,
        engine: Optional[Engine] = None,
        *,
        table: Optional[Table] = None,
        create_schema: bool = True,
    ) -> None:
        self._engine = engine or build_engine(load_settings().database_url)
        if table is not None:
            self._entries = table
            self._metadata = table.metadata
        else:
            self._metadata = MetaData()
            self._entries = build_entries_table(self._metadata)
        if create_schema:
            self.ensure_schema()

    def ensure_schema(self) -> None:
        """Create the entries table when it does not exist yet."""

        self._metadata.create_all(self._engine, tables=[self._entries])

    def list_entries(self, *, user_id: Optional[str] = None) -> List[Entry]:
        table = self._entries
        stmt = select(table).order_by(table.c.created_at.desc(), table.c.id.desc())
        if user_id is not None:
            stmt = stmt.where(table.c.user_id == user_id)
        try:
            with self._engine.begin() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"failed to read entries: {exc}", code="storage_read_failed"
            ) from exc
        return [_row_to_entry(row) for row in rows]

    def insert_entry(
        self,
        *,
        content: str,
        entry_type: str = DEFAULT_ENTRY_TYPE,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> Entry:
        payload = _ensure_serializable(metadata)
        created_at = utcnow()
        stmt = insert(self._entries).values(
            content=content,
            type=entry_type,
            created_at=created_at,
            metadata=json.dumps(payload, ensure_ascii=False),
            user_id=user_id,
        )
        try:
            with self._engine.begin() as conn:
                result = conn.execute(stmt)
                entry_id = int(result.inserted_primary_key[0])
        except SQLAlchemyError as exc:
            logger.error(
                "sql_entry_store_insert_failed",
                extra={"error": str(exc)},
            )
            raise StorageError(f"failed to insert entry: {exc}") from exc
        return Entry(
            id=entry_id,
            content=content,
            type=entry_type,
            created_at=created_at,
            metadata=payload,
            user_id=user_id,
        )

    def delete_entry(self, entry_id: int) -> None:
        stmt = delete(self._entries).where(self._entries.c.id == entry_id)
        try:
            with self._engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError(
                f"failed to delete entry {entry_id}: {exc}",
                code="storage_delete_failed",
            ) from exc

    def get_entry(self, entry_id: int) -> Entry:
        stmt = select(self._entries).where(self._entries.c.id == entry_id)
        try:
            with self._engine.begin() as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"failed to read entry {entry_id}: {exc}", code="storage_read_failed"
            ) from exc
        if row is None:
            raise KeyError(f"Entry {entry_id} not found")
        return _row_to_entry(row)


def build_entry_store_gateway(
    settings: Optional[Settings] = None,
    *,
    fallback_to_memory: bool = False,
) -> EntryStoreGateway:
    """Factory that returns the configured entry store implementation."""

    settings = settings or load_settings()
    backend = settings.entries.backend
    if backend == "memory":
        return InMemoryEntryStoreGateway()
    if backend == "blob":
        return LocalBlobEntryStoreGateway(settings.entries.blob_path)
    try:
        return SqlEntryStoreGateway(build_engine(settings.database_url))
    except SQLAlchemyError:
        if not fallback_to_memory:
            raise
        logger.warning(
            "sql_entry_store_unavailable_falling_back",
            exc_info=True,
        )
    return InMemoryEntryStoreGateway()


def _row_to_entry(row: Mapping[str, Any]) -> Entry:
    return Entry(
        id=int(row["id"]),
        content=row["content"],
        type=row["type"],
        created_at=parse_timestamp(row["created_at"]),
        metadata=coerce_metadata(row.get("metadata")),
        user_id=row.get("user_id"),
    )
