"""
PostgreSQL remote store.

Writes migrated records into the backend's ``users``, ``addresses``,
``vehicles`` and ``bookings`` tables through SQLAlchemy's async engine
(asyncpg driver). Each row carries an engine-maintained ``natural_key``
column so existence checks are a single indexed lookup.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from tankersync.entities.base import Entity
from tankersync.entities.records import entity_class
from tankersync.exceptions import DuplicateRecordError, RemoteStoreError, RemoteUnavailableError
from tankersync.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_ENTITY_TYPE,
    ATTR_RECORD_ID,
    Tracer,
    create_tracer,
)
from tankersync.serialization import json_dumps, json_loads
from tankersync.stores._connection import execute_with_connection
from tankersync.stores.interface import RemoteStore
from tankersync.stores.schema import (
    NATURAL_KEY_COLUMN,
    generate_full_schema,
    json_field_names,
)
from tankersync.types import EntityType, NaturalKey, RemoteId

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def encode_natural_key(key: NaturalKey) -> str:
    """Stable text form of a natural key, as stored in the ``natural_key`` column."""
    return json_dumps(list(key))


class PostgreSQLRemoteStore(RemoteStore):
    """
    RemoteStore implementation for a PostgreSQL backend.

    Example:
        >>> engine = create_async_engine("postgresql+asyncpg://localhost/tanker")
        >>> store = PostgreSQLRemoteStore(engine)
        >>> await store.initialize()
        >>> await store.count(EntityType.USER)
        0

    Note:
        - Table names come from ``Entity.table_name()``
        - JSON fields are written as JSONB and decoded on read
        - Enum fields are stored as their string value
    """

    def __init__(
        self,
        conn: AsyncConnection | AsyncEngine,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._conn = conn

    async def initialize(self) -> None:
        """Create the remote tables and indexes if they do not exist."""
        async with execute_with_connection(self._conn) as conn:
            for statement in generate_full_schema().split(";"):
                if statement.strip():
                    await conn.execute(text(statement))
        logger.info("Initialized remote PostgreSQL schema")

    async def ping(self) -> None:
        with self._tracer.span(
            "tankersync.remote_store.ping",
            {ATTR_DB_SYSTEM: "postgresql", ATTR_DB_OPERATION: "SELECT"},
        ):
            try:
                async with execute_with_connection(self._conn, transactional=False) as conn:
                    await conn.execute(text("SELECT 1"))
            except (SQLAlchemyError, OSError) as e:
                raise RemoteUnavailableError(str(e)) from e

    async def find_by_natural_key(
        self,
        entity_type: EntityType,
        key: NaturalKey,
    ) -> Entity | None:
        model = entity_class(entity_type)
        query = text(f"""
            SELECT {", ".join(model.remote_field_names())}
            FROM {model.table_name()}
            WHERE {NATURAL_KEY_COLUMN} = :natural_key
            ORDER BY created_at
            LIMIT 1
        """)  # nosec B608 - table and columns come from the entity model

        with self._tracer.span(
            "tankersync.remote_store.find_by_natural_key",
            {
                ATTR_ENTITY_TYPE: entity_type.value,
                ATTR_DB_SYSTEM: "postgresql",
                ATTR_DB_OPERATION: "SELECT",
            },
        ):
            row = await self._fetch_one(entity_type, query, {"natural_key": encode_natural_key(key)})
        return self._row_to_entity(entity_type, row) if row is not None else None

    async def create(self, entity_type: EntityType, record: Entity) -> RemoteId:
        model = entity_class(entity_type)
        json_fields = json_field_names(model)
        columns = model.remote_field_names()
        placeholders = [
            f"CAST(:{name} AS JSONB)" if name in json_fields else f":{name}" for name in columns
        ]
        query = text(f"""
            INSERT INTO {model.table_name()} ({", ".join(columns)}, {NATURAL_KEY_COLUMN})
            VALUES ({", ".join(placeholders)}, :{NATURAL_KEY_COLUMN})
        """)  # nosec B608 - table and columns come from the entity model
        params = self._entity_to_params(record, json_fields)
        params[NATURAL_KEY_COLUMN] = encode_natural_key(record.natural_key())

        with self._tracer.span(
            "tankersync.remote_store.create",
            {
                ATTR_ENTITY_TYPE: entity_type.value,
                ATTR_RECORD_ID: record.id,
                ATTR_DB_SYSTEM: "postgresql",
                ATTR_DB_OPERATION: "INSERT",
            },
        ):
            try:
                async with execute_with_connection(self._conn) as conn:
                    await conn.execute(query, params)
            except IntegrityError as e:
                if _sqlstate(e) == UNIQUE_VIOLATION:
                    raise DuplicateRecordError(entity_type, record.id) from e
                raise RemoteStoreError(entity_type, f"integrity error for {record.id}: {e.orig}") from e
            except SQLAlchemyError as e:
                raise RemoteStoreError(entity_type, f"insert failed for {record.id}: {e}") from e

        logger.debug("Inserted %s %s", entity_type.value, record.id)
        return record.id

    async def count(self, entity_type: EntityType) -> int:
        query = text(f"SELECT COUNT(*) FROM {entity_class(entity_type).table_name()}")  # nosec B608
        with self._tracer.span(
            "tankersync.remote_store.count",
            {
                ATTR_ENTITY_TYPE: entity_type.value,
                ATTR_DB_SYSTEM: "postgresql",
                ATTR_DB_OPERATION: "SELECT",
            },
        ):
            try:
                async with execute_with_connection(self._conn, transactional=False) as conn:
                    result = await conn.execute(query)
                    return int(result.scalar_one())
            except SQLAlchemyError as e:
                raise RemoteStoreError(entity_type, f"count failed: {e}") from e

    async def get_by_id(self, entity_type: EntityType, record_id: RemoteId) -> Entity | None:
        model = entity_class(entity_type)
        query = text(f"""
            SELECT {", ".join(model.remote_field_names())}
            FROM {model.table_name()}
            WHERE id = :id
        """)  # nosec B608
        row = await self._fetch_one(entity_type, query, {"id": record_id})
        return self._row_to_entity(entity_type, row) if row is not None else None

    async def list_all(self, entity_type: EntityType) -> list[Entity]:
        model = entity_class(entity_type)
        query = text(f"""
            SELECT {", ".join(model.remote_field_names())}
            FROM {model.table_name()}
            ORDER BY created_at, id
        """)  # nosec B608
        with self._tracer.span(
            "tankersync.remote_store.list_all",
            {
                ATTR_ENTITY_TYPE: entity_type.value,
                ATTR_DB_SYSTEM: "postgresql",
                ATTR_DB_OPERATION: "SELECT",
            },
        ):
            try:
                async with execute_with_connection(self._conn, transactional=False) as conn:
                    result = await conn.execute(query)
                    rows = result.fetchall()
            except SQLAlchemyError as e:
                raise RemoteStoreError(entity_type, f"list failed: {e}") from e
        return [self._row_to_entity(entity_type, row) for row in rows]

    async def _fetch_one(self, entity_type: EntityType, query: Any, params: dict[str, Any]) -> Any:
        try:
            async with execute_with_connection(self._conn, transactional=False) as conn:
                result = await conn.execute(query, params)
                return result.fetchone()
        except SQLAlchemyError as e:
            raise RemoteStoreError(entity_type, f"query failed: {e}") from e

    @staticmethod
    def _entity_to_params(record: Entity, json_fields: set[str]) -> dict[str, Any]:
        params: dict[str, Any] = {}
        for name, value in record.to_remote_row().items():
            if name in json_fields:
                params[name] = json_dumps(value)
            elif isinstance(value, Enum):
                params[name] = value.value
            else:
                params[name] = value
        return params

    @staticmethod
    def _row_to_entity(entity_type: EntityType, row: Any) -> Entity:
        model = entity_class(entity_type)
        data = dict(zip(model.remote_field_names(), row, strict=True))
        for name in json_field_names(model):
            if isinstance(data.get(name), str):
                data[name] = json_loads(data[name])
        return model.model_validate(data)


def _sqlstate(error: IntegrityError) -> str | None:
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
