"""Entry store package: models plus the storage gateways."""

from .gateway import (
    EntryStoreGateway,
    InMemoryEntryStoreGateway,
    LocalBlobEntryStoreGateway,
    SqlEntryStoreGateway,
    build_entry_store_gateway,
)
from .models import DEFAULT_ENTRY_TYPE, Entry

__all__ = [
    "DEFAULT_ENTRY_TYPE",
    "Entry",
    "EntryStoreGateway",
    "InMemoryEntryStoreGateway",
    "LocalBlobEntryStoreGateway",
    "SqlEntryStoreGateway",
    "build_entry_store_gateway",
]
