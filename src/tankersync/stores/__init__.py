"""Local and remote store implementations for tankersync."""

from tankersync.stores.in_memory import InMemoryLocalStore, InMemoryRemoteStore
from tankersync.stores.interface import LocalStore, RemoteStore
from tankersync.stores.postgresql import PostgreSQLRemoteStore, encode_natural_key
from tankersync.stores.schema import (
    NATURAL_KEY_COLUMN,
    generate_full_schema,
    generate_indexes,
    generate_schema,
)
from tankersync.stores.sqlite import SQLiteLocalStore

__all__ = [
    # Abstract base classes
    "LocalStore",
    "RemoteStore",
    # Concrete implementations
    "InMemoryLocalStore",
    "InMemoryRemoteStore",
    "SQLiteLocalStore",
    "PostgreSQLRemoteStore",
    # Schema
    "NATURAL_KEY_COLUMN",
    "encode_natural_key",
    "generate_schema",
    "generate_indexes",
    "generate_full_schema",
]
