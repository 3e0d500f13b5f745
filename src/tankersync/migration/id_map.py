"""
Local id to remote id mapping for one migration run.

Dependent migrators resolve their foreign keys through the map, so a parent
is resolvable exactly when it was migrated, or matched to an existing remote
record, earlier in the same run.
"""

from __future__ import annotations

from tankersync.exceptions import IdMapConflictError
from tankersync.types import EntityType, LocalId, RemoteId


class IdMap:
    """
    Write-once mapping of ``(entity_type, local_id) -> remote_id``.

    Setting a key again with the same remote id is a no-op; setting it to a
    different remote id raises ``IdMapConflictError``.
    """

    def __init__(self) -> None:
        self._entries: dict[EntityType, dict[LocalId, RemoteId]] = {t: {} for t in EntityType}

    def set(self, entity_type: EntityType, local_id: LocalId, remote_id: RemoteId) -> None:
        entries = self._entries[entity_type]
        existing = entries.get(local_id)
        if existing is not None and existing != remote_id:
            raise IdMapConflictError(entity_type, local_id, existing, remote_id)
        entries[local_id] = remote_id

    def get(self, entity_type: EntityType, local_id: LocalId) -> RemoteId | None:
        return self._entries[entity_type].get(local_id)

