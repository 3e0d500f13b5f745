"""
Store interfaces for the migration engine.

This module defines the two collaborators the engine reads from and writes to:

- LocalStore: read-only, device-resident source of truth
- RemoteStore: server-side backend that receives the migrated records

Both are async and work in terms of ``Entity`` models, so the engine never
sees wire formats, SQL or key-value layouts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tankersync.entities.base import Entity
    from tankersync.types import EntityType, NaturalKey, RemoteId


class LocalStore(ABC):
    """
    Abstract base class for the device-resident store.

    The engine treats it as immutable input: it is only ever read, and a
    fresh read happens at the start of every run.
    """

    @abstractmethod
    async def list_all(self, entity_type: EntityType) -> list[Entity]:
        """
        List every local record of one entity type.

        Args:
            entity_type: Entity type to list

        Returns:
            Records in their stored order

        Raises:
            LocalStoreError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def get_by_id(self, entity_type: EntityType, record_id: str) -> Entity | None:
        """
        Get a single local record.

        Args:
            entity_type: Entity type of the record
            record_id: Local record id

        Returns:
            The record, or None if absent
        """
        pass


class RemoteStore(ABC):
    """
    Abstract base class for the remote backend.

    ``create`` preserves the record's id as the remote primary key and
    raises ``DuplicateRecordError`` when that id is already taken.
    """

    @abstractmethod
    async def ping(self) -> None:
        """
        Check that the backend is reachable.

        Raises:
            RemoteUnavailableError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def find_by_natural_key(
        self,
        entity_type: EntityType,
        key: NaturalKey,
    ) -> Entity | None:
        """
        Find a remote record equivalent to a local one.

        Args:
            entity_type: Entity type to search
            key: Natural key as produced by ``Entity.natural_key()``

        Returns:
            The first matching remote record, or None
        """
        pass

    @abstractmethod
    async def create(self, entity_type: EntityType, record: Entity) -> RemoteId:
        """
        Write a new record.

        Args:
            entity_type: Entity type of the record
            record: Record with references already resolved to remote ids

        Returns:
            The remote id the record was stored under

        Raises:
            DuplicateRecordError: If the id already exists
            RemoteStoreError: On any other write failure
        """
        pass

    @abstractmethod
    async def count(self, entity_type: EntityType) -> int:
        """Number of remote records of one entity type."""
        pass

    @abstractmethod
    async def get_by_id(self, entity_type: EntityType, record_id: RemoteId) -> Entity | None:
        """Get a remote record by its remote id, or None if absent."""
        pass

    @abstractmethod
    async def list_all(self, entity_type: EntityType) -> list[Entity]:
        """List every remote record of one entity type."""
        pass
