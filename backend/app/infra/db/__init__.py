"""Database connection helpers."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

__all__ = ["build_engine"]


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared across the threadpool."""

    connect_args: dict[str, object] = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url, echo=False, future=True, connect_args=connect_args
    )
