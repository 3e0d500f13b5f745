"""
In-memory store implementations.

Fast, dependency-free stores for tests, dry demonstrations and embedding.
The remote store supports failure injection so partial-failure behavior
can be exercised without a real backend.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from tankersync.entities.base import Entity
from tankersync.exceptions import (
    DuplicateRecordError,
    LocalStoreError,
    RemoteStoreError,
    RemoteUnavailableError,
)
from tankersync.observability import (
    ATTR_ENTITY_TYPE,
    ATTR_RECORD_ID,
    Tracer,
    create_tracer,
)
from tankersync.stores.interface import LocalStore, RemoteStore
from tankersync.types import EntityType, NaturalKey, RemoteId

logger = logging.getLogger(__name__)


class InMemoryLocalStore(LocalStore):
    """
    Local store backed by plain lists.

    Example:
        >>> store = InMemoryLocalStore([alice, bob, tanker_1])
        >>> await store.list_all(EntityType.USER)
        [User(id=u1), User(id=u2)]

    Attributes:
        fail_reads: When True every read raises ``LocalStoreError``
    """

    def __init__(self, records: Iterable[Entity] = ()) -> None:
        self._records: dict[EntityType, list[Entity]] = {t: [] for t in EntityType}
        self.fail_reads = False
        self.add(*records)

    def add(self, *records: Entity) -> None:
        """Append records to their entity type's list."""
        for record in records:
            self._records[record.entity_type].append(record)

    async def list_all(self, entity_type: EntityType) -> list[Entity]:
        if self.fail_reads:
            raise LocalStoreError(f"cannot read {entity_type.plural} from local store")
        return list(self._records[entity_type])

    async def get_by_id(self, entity_type: EntityType, record_id: str) -> Entity | None:
        if self.fail_reads:
            raise LocalStoreError(f"cannot read {entity_type.value} {record_id} from local store")
        for record in self._records[entity_type]:
            if record.id == record_id:
                return record
        return None


class InMemoryRemoteStore(RemoteStore):
    """
    Remote store held in a dictionary keyed by entity type and id.

    Thread-safe for concurrent coroutines via ``asyncio.Lock``.

    Failure injection:
        reachable: When False, ``ping`` and every other call raise
            ``RemoteUnavailableError``
        fail_create_ids: Record ids whose ``create`` raises ``RemoteStoreError``
        fail_list_types: Entity types whose ``list_all`` raises

    Inspection:
        create_calls: Every ``(entity_type, record_id)`` passed to ``create``,
            including failed attempts
    """

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._records: dict[EntityType, dict[RemoteId, Entity]] = {t: {} for t in EntityType}
        self._lock = asyncio.Lock()
        self.reachable = True
        self.fail_create_ids: set[str] = set()
        self.fail_list_types: set[EntityType] = set()
        self.create_calls: list[tuple[EntityType, str]] = []

    def seed(self, *records: Entity) -> None:
        """Insert records directly, bypassing ``create`` bookkeeping."""
        for record in records:
            self._records[record.entity_type][record.id] = record

    def clear(self) -> None:
        for table in self._records.values():
            table.clear()
        self.create_calls.clear()

    def _check_reachable(self) -> None:
        if not self.reachable:
            raise RemoteUnavailableError("in-memory remote store marked unreachable")

    async def ping(self) -> None:
        self._check_reachable()

    async def find_by_natural_key(
        self,
        entity_type: EntityType,
        key: NaturalKey,
    ) -> Entity | None:
        self._check_reachable()
        async with self._lock:
            for record in self._records[entity_type].values():
                if record.natural_key() == key:
                    return record
        return None

    async def create(self, entity_type: EntityType, record: Entity) -> RemoteId:
        with self._tracer.span(
            "tankersync.remote_store.create",
            {ATTR_ENTITY_TYPE: entity_type.value, ATTR_RECORD_ID: record.id},
        ):
            self._check_reachable()
            async with self._lock:
                self.create_calls.append((entity_type, record.id))
                if record.id in self.fail_create_ids:
                    raise RemoteStoreError(entity_type, f"write rejected for record {record.id}")
                table = self._records[entity_type]
                if record.id in table:
                    raise DuplicateRecordError(entity_type, record.id)
                table[record.id] = record
                logger.debug("Stored %s %s", entity_type.value, record.id)
                return record.id

    async def count(self, entity_type: EntityType) -> int:
        self._check_reachable()
        async with self._lock:
            return len(self._records[entity_type])

    async def get_by_id(self, entity_type: EntityType, record_id: RemoteId) -> Entity | None:
        self._check_reachable()
        async with self._lock:
            return self._records[entity_type].get(record_id)

    async def list_all(self, entity_type: EntityType) -> list[Entity]:
        self._check_reachable()
        if entity_type in self.fail_list_types:
            raise RemoteStoreError(entity_type, "listing failed")
        async with self._lock:
            return list(self._records[entity_type].values())
