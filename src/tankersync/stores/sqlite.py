"""
SQLite-backed local store.

Reads the device's key-value database in the layout React Native
AsyncStorage uses on Android: a single ``catalystLocalStorage`` table of
``(key, value)`` rows where each value is a JSON document. The app keeps
whole collections under one key each:

- ``users_collection``: list of users (customers carry ``savedAddresses``)
- ``vehicles_collection``: list of vehicles
- ``bookings``: list of bookings
- ``current_user``: the signed-in user, whose saved addresses may be newer
  than the copy in ``users_collection``

Addresses are not stored as a collection; they are flattened out of the
customers' saved addresses.
"""

from __future__ import annotations

import logging
from typing import Any

import aiosqlite
from pydantic import ValidationError

from tankersync.entities.base import Entity
from tankersync.entities.records import Address, User, UserRole, entity_class
from tankersync.exceptions import LocalStoreError
from tankersync.observability import (
    ATTR_DB_NAME,
    ATTR_DB_SYSTEM,
    ATTR_ENTITY_TYPE,
    Tracer,
    create_tracer,
)
from tankersync.serialization import json_dumps, json_loads
from tankersync.stores.interface import LocalStore
from tankersync.types import EntityType

logger = logging.getLogger(__name__)

STORAGE_TABLE = "catalystLocalStorage"

USERS_KEY = "users_collection"
VEHICLES_KEY = "vehicles_collection"
BOOKINGS_KEY = "bookings"
CURRENT_USER_KEY = "current_user"

_COLLECTION_KEYS: dict[EntityType, str] = {
    EntityType.USER: USERS_KEY,
    EntityType.VEHICLE: VEHICLES_KEY,
    EntityType.BOOKING: BOOKINGS_KEY,
}

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {STORAGE_TABLE} (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SQLiteLocalStore(LocalStore):
    """
    Local store reading an AsyncStorage SQLite database via aiosqlite.

    Records that fail model validation are logged and left out of the
    listing rather than failing the whole read.

    Example:
        >>> async with SQLiteLocalStore("/data/app/RKStorage") as store:
        ...     users = await store.list_all(EntityType.USER)

    Attributes:
        _database: Path to the database file or ':memory:'
        _busy_timeout: Milliseconds to wait on a locked database
        _connection: The aiosqlite connection (set after connect)
    """

    def __init__(
        self,
        database: str,
        *,
        busy_timeout: int = 5000,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._database = database
        self._busy_timeout = busy_timeout
        self._connection: aiosqlite.Connection | None = None
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    async def __aenter__(self) -> SQLiteLocalStore:
        await self._connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def _connect(self) -> None:
        if self._connection is not None:
            return

        self._connection = await aiosqlite.connect(self._database)
        await self._connection.execute(f"PRAGMA busy_timeout = {self._busy_timeout}")
        self._connection.row_factory = aiosqlite.Row

        logger.debug("Connected to local SQLite store: %s", self._database)

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.debug("Closed local SQLite store: %s", self._database)

    async def initialize(self) -> None:
        """Create the key-value table if it does not exist."""
        if self._connection is None:
            await self._connect()
        assert self._connection is not None

        await self._connection.executescript(_SCHEMA)
        await self._connection.commit()

    def _ensure_connected(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError(
                "Not connected to database. Use 'async with store:' or call 'initialize()' first."
            )
        return self._connection

    async def get_item(self, key: str) -> Any:
        """
        Read and decode one key, mirroring ``AsyncStorage.getItem``.

        Returns:
            The decoded JSON value, or None if the key is absent

        Raises:
            LocalStoreError: If the database cannot be read or the value is
                not valid JSON
        """
        conn = self._ensure_connected()
        try:
            cursor = await conn.execute(
                f"SELECT value FROM {STORAGE_TABLE} WHERE key = ?",  # nosec B608
                (key,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise LocalStoreError(f"cannot read key {key!r}: {e}") from e

        if row is None:
            return None
        try:
            return json_loads(row["value"])
        except ValueError as e:
            raise LocalStoreError(f"key {key!r} does not hold valid JSON: {e}") from e

    async def set_item(self, key: str, value: Any) -> None:
        """Encode and store one key, mirroring ``AsyncStorage.setItem``."""
        conn = self._ensure_connected()
        await conn.execute(
            f"""
            INSERT INTO {STORAGE_TABLE} (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,  # nosec B608
            (key, json_dumps(value)),
        )
        await conn.commit()

    async def list_all(self, entity_type: EntityType) -> list[Entity]:
        with self._tracer.span(
            "tankersync.local_store.list_all",
            {
                ATTR_ENTITY_TYPE: entity_type.value,
                ATTR_DB_SYSTEM: "sqlite",
                ATTR_DB_NAME: self._database,
            },
        ):
            if entity_type is EntityType.ADDRESS:
                return await self._list_addresses()
            raw = await self._get_collection(_COLLECTION_KEYS[entity_type])
            return self._decode_all(entity_type, raw)

    async def get_by_id(self, entity_type: EntityType, record_id: str) -> Entity | None:
        for record in await self.list_all(entity_type):
            if record.id == record_id:
                return record
        return None

    async def _get_collection(self, key: str) -> list[dict[str, Any]]:
        value = await self.get_item(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise LocalStoreError(f"key {key!r} holds {type(value).__name__}, expected a list")
        return value

    def _decode_all(self, entity_type: EntityType, raw: list[dict[str, Any]]) -> list[Entity]:
        model = entity_class(entity_type)
        records: list[Entity] = []
        for index, item in enumerate(raw):
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "Ignoring malformed local %s at index %d: %s",
                    entity_type.value,
                    index,
                    e.errors(include_url=False),
                )
        return records

    async def _list_addresses(self) -> list[Entity]:
        users = self._decode_all(EntityType.USER, await self._get_collection(USERS_KEY))

        current = await self.get_item(CURRENT_USER_KEY)
        if isinstance(current, dict):
            try:
                current_user = User.model_validate(current)
            except ValidationError:
                logger.warning("Ignoring malformed current_user entry")
            else:
                users = [u for u in users if u.id != current_user.id] + [current_user]

        addresses: list[Entity] = []
        seen: set[str] = set()
        for user in users:
            assert isinstance(user, User)
            if user.role is not UserRole.CUSTOMER:
                continue
            for index, saved in enumerate(user.saved_addresses):
                address = _address_from_saved(user, index, saved)
                if address is None or address.id in seen:
                    continue
                seen.add(address.id)
                addresses.append(address)
        return addresses


def _address_from_saved(user: User, index: int, saved: dict[str, Any]) -> Address | None:
    """Build an Address from one entry of a customer's ``savedAddresses``."""
    text = saved.get("address") or ", ".join(
        str(saved[part]) for part in ("street", "city", "state", "pincode") if saved.get(part)
    )
    payload = {
        "id": saved.get("id") or f"{user.id}:address:{index}",
        "userId": user.id,
        "label": saved.get("label") or text or f"address {index + 1}",
        "address": text,
        "latitude": saved.get("latitude") or 0.0,
        "longitude": saved.get("longitude") or 0.0,
        "isDefault": bool(saved.get("isDefault", False)),
        "createdAt": saved.get("createdAt") or user.created_at,
        "updatedAt": saved.get("updatedAt") or user.updated_at,
    }
    try:
        return Address.model_validate(payload)
    except ValidationError as e:
        logger.warning(
            "Ignoring malformed saved address %d of user %s: %s",
            index,
            user.id,
            e.errors(include_url=False),
        )
        return None
