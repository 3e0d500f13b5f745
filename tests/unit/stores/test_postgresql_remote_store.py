"""
Unit tests for PostgreSQLRemoteStore.

All database interactions are mocked using unittest.mock: the store is
given an ``AsyncConnection`` mock, so every statement goes straight to
``conn.execute``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection

from tankersync.entities import Booking, User, Vehicle
from tankersync.entities.base import Entity
from tankersync.exceptions import DuplicateRecordError, RemoteStoreError, RemoteUnavailableError
from tankersync.observability import MockTracer
from tankersync.serialization import json_dumps
from tankersync.stores.postgresql import PostgreSQLRemoteStore, encode_natural_key
from tankersync.types import EntityType
from tests.fixtures import make_booking, make_user, make_vehicle


class FakePgError(Exception):
    def __init__(self, sqlstate: str) -> None:
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


def row_for(record: Entity) -> tuple[Any, ...]:
    """A result row as asyncpg returns it: JSONB already decoded, enums as text."""
    data = record.to_remote_row()
    values = (data[name] for name in type(record).remote_field_names())
    return tuple(value.value if isinstance(value, Enum) else value for value in values)


@pytest.fixture
def conn() -> AsyncMock:
    connection = AsyncMock(spec=AsyncConnection)
    connection.execute.return_value = MagicMock()
    return connection


@pytest.fixture
def store(conn: AsyncMock) -> PostgreSQLRemoteStore:
    return PostgreSQLRemoteStore(conn, enable_tracing=False)


def executed_sql(conn: AsyncMock, call_index: int = -1) -> str:
    return str(conn.execute.await_args_list[call_index].args[0])


def executed_params(conn: AsyncMock, call_index: int = -1) -> dict[str, Any]:
    return conn.execute.await_args_list[call_index].args[1]


class TestInitialize:
    async def test_executes_every_schema_statement(
        self, store: PostgreSQLRemoteStore, conn: AsyncMock
    ) -> None:
        await store.initialize()

        # 4 tables, natural key index per table, plus 6 foreign key indexes
        assert conn.execute.await_count == 14
        assert "CREATE TABLE IF NOT EXISTS users" in executed_sql(conn, 0)


class TestPing:
    async def test_ping(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        await store.ping()
        assert executed_sql(conn) == "SELECT 1"

    async def test_ping_failure(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        conn.execute.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))

        with pytest.raises(RemoteUnavailableError):
            await store.ping()

    async def test_ping_os_error(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        conn.execute.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(RemoteUnavailableError, match="refused"):
            await store.ping()


class TestCreate:
    async def test_insert_statement_and_params(
        self, store: PostgreSQLRemoteStore, conn: AsyncMock
    ) -> None:
        vehicle = make_vehicle("v1", "a1", vehicle_number="ka01ab1234")

        remote_id = await store.create(EntityType.VEHICLE, vehicle)

        assert remote_id == "v1"
        sql = executed_sql(conn)
        assert "INSERT INTO vehicles" in sql
        assert ":vehicle_number" in sql
        params = executed_params(conn)
        assert params["id"] == "v1"
        assert params["agency_id"] == "a1"
        assert params["natural_key"] == '["KA01AB1234"]'

    async def test_enums_and_json_fields_are_encoded(
        self, store: PostgreSQLRemoteStore, conn: AsyncMock
    ) -> None:
        booking = make_booking("b1", "u1", delivery_address={"address": "12 Lake Road"})

        await store.create(EntityType.BOOKING, booking)

        sql = executed_sql(conn)
        params = executed_params(conn)
        assert "CAST(:delivery_address AS JSONB)" in sql
        assert params["delivery_address"] == json_dumps({"address": "12 Lake Road"})
        assert params["status"] == "pending"
        assert type(params["status"]) is str

    async def test_local_only_fields_are_not_written(
        self, store: PostgreSQLRemoteStore, conn: AsyncMock
    ) -> None:
        await store.create(EntityType.USER, make_user("u1", password="secret-1"))

        assert "password" not in executed_params(conn)
        assert "password" not in executed_sql(conn)

    async def test_unique_violation_is_duplicate(
        self, store: PostgreSQLRemoteStore, conn: AsyncMock
    ) -> None:
        conn.execute.side_effect = IntegrityError("INSERT", {}, FakePgError("23505"))

        with pytest.raises(DuplicateRecordError) as exc_info:
            await store.create(EntityType.USER, make_user("u1"))

        assert exc_info.value.record_id == "u1"

    async def test_other_integrity_error(
        self, store: PostgreSQLRemoteStore, conn: AsyncMock
    ) -> None:
        conn.execute.side_effect = IntegrityError("INSERT", {}, FakePgError("23502"))

        with pytest.raises(RemoteStoreError) as exc_info:
            await store.create(EntityType.USER, make_user("u1"))

        assert not isinstance(exc_info.value, DuplicateRecordError)

    async def test_operational_error(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        conn.execute.side_effect = OperationalError("INSERT", {}, Exception("lost"))

        with pytest.raises(RemoteStoreError, match="insert failed for v1"):
            await store.create(EntityType.VEHICLE, make_vehicle("v1"))

    async def test_create_span(self, conn: AsyncMock, mock_tracer: MockTracer) -> None:
        store = PostgreSQLRemoteStore(conn, tracer=mock_tracer)

        await store.create(EntityType.VEHICLE, make_vehicle("v1"))

        name, attributes = mock_tracer.spans[-1]
        assert name == "tankersync.remote_store.create"
        assert attributes is not None
        assert attributes["db.operation"] == "INSERT"
        assert attributes["tankersync.record.id"] == "v1"


class TestReads:
    async def test_find_by_natural_key(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        vehicle = make_vehicle("v1", "a1")
        conn.execute.return_value.fetchone.return_value = row_for(vehicle)

        found = await store.find_by_natural_key(EntityType.VEHICLE, vehicle.natural_key())

        assert isinstance(found, Vehicle)
        assert found == vehicle
        assert executed_params(conn) == {"natural_key": encode_natural_key(vehicle.natural_key())}
        assert "WHERE natural_key = :natural_key" in executed_sql(conn)

    async def test_find_missing(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        conn.execute.return_value.fetchone.return_value = None

        assert await store.find_by_natural_key(EntityType.USER, ("555", "customer")) is None

    async def test_json_text_is_decoded(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        booking = make_booking("b1", "u1", delivery_address={"address": "12 Lake Road"})
        row = list(row_for(booking))
        row[Booking.remote_field_names().index("delivery_address")] = '{"address": "12 Lake Road"}'
        conn.execute.return_value.fetchone.return_value = tuple(row)

        found = await store.get_by_id(EntityType.BOOKING, "b1")

        assert isinstance(found, Booking)
        assert found.delivery_address == {"address": "12 Lake Road"}

    async def test_count(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        conn.execute.return_value.scalar_one.return_value = 7

        assert await store.count(EntityType.BOOKING) == 7
        assert executed_sql(conn) == "SELECT COUNT(*) FROM bookings"

    async def test_list_all(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        users = [make_user("u1"), make_user("u2")]
        conn.execute.return_value.fetchall.return_value = [row_for(u) for u in users]

        listed = await store.list_all(EntityType.USER)

        assert listed == users
        assert all(isinstance(u, User) for u in listed)

    async def test_read_failure(self, store: PostgreSQLRemoteStore, conn: AsyncMock) -> None:
        conn.execute.side_effect = OperationalError("SELECT", {}, Exception("lost"))

        with pytest.raises(RemoteStoreError):
            await store.count(EntityType.USER)
        with pytest.raises(RemoteStoreError):
            await store.list_all(EntityType.USER)
        with pytest.raises(RemoteStoreError):
            await store.get_by_id(EntityType.USER, "u1")
