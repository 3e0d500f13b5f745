"""Natural-key existence checks against the remote store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tankersync.entities.base import Entity
    from tankersync.stores.interface import RemoteStore

logger = logging.getLogger(__name__)


class ExistenceChecker:
    """
    Decides whether a local record already has an equivalent remote record.

    Records must be passed with their references already resolved to remote
    ids, because dependent natural keys embed parent ids.
    """

    def __init__(self, remote_store: RemoteStore) -> None:
        self._remote_store = remote_store

    async def find_existing(self, record: Entity) -> Entity | None:
        """
        Return the remote record matching ``record``'s natural key, if any.

        Raises:
            RemoteStoreError: If the lookup fails
        """
        existing = await self._remote_store.find_by_natural_key(
            record.entity_type, record.natural_key()
        )
        if existing is not None:
            logger.debug(
                "%s %s matches remote %s by natural key",
                record.entity_type.value,
                record.id,
                existing.id,
            )
        return existing

