"""
MigrationValidator - post-hoc integrity check of the remote dataset.

The validator can run at any time, not only right after a migration. It
performs no writes and reports everything it finds as issue strings:

- COUNT: distinct local ids and remote record counts per entity type
- REFERENCES: every non-null foreign key of a remote address, vehicle or
  booking points at an existing remote parent, and a vehicle's agency is
  an admin user
- DUPLICATES: no two remote users share a natural key (phone and role)

Usage:
    >>> validator = MigrationValidator(local_store, remote_store)
    >>> result = await validator.validate()
    >>> for issue in result.issues:
    ...     print(issue)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import TYPE_CHECKING

from tankersync.migration.results import ValidationResult
from tankersync.observability import ATTR_ISSUE_COUNT, Tracer, create_tracer
from tankersync.types import MIGRATION_ORDER, EntityType

if TYPE_CHECKING:
    from tankersync.entities.base import Entity
    from tankersync.stores.interface import LocalStore, RemoteStore
    from tankersync.types import NaturalKey

logger = logging.getLogger(__name__)

DEPENDENT_TYPES: tuple[EntityType, ...] = (
    EntityType.ADDRESS,
    EntityType.VEHICLE,
    EntityType.BOOKING,
)


class MigrationValidator:
    """
    Checks completeness and referential integrity of the remote data.

    ``validate`` never raises: a store that cannot be read produces an
    issue naming the failed read.

    Args:
        local_store: Device-resident store to compare against
        remote_store: Backend to check
        tracer: Optional custom Tracer
        enable_tracing: Whether to create an OpenTelemetry tracer
    """

    def __init__(
        self,
        local_store: LocalStore,
        remote_store: RemoteStore,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._local_store = local_store
        self._remote_store = remote_store
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    async def validate(self) -> ValidationResult:
        """
        Run every check.

        Returns:
            ValidationResult whose ``valid`` is True exactly when no issue
            was found
        """
        with self._tracer.span("tankersync.validator.validate") as span:
            issues: list[str] = []
            for entity_type in MIGRATION_ORDER:
                issues.extend(await self._check_count(entity_type))

            # Parent lookups are shared across dependent types
            known_parents: dict[tuple[EntityType, str], Entity | None] = {}
            for entity_type in DEPENDENT_TYPES:
                issues.extend(await self._check_references(entity_type, known_parents))

            issues.extend(await self._check_duplicate_users())

            if span is not None:
                span.set_attribute(ATTR_ISSUE_COUNT, len(issues))

        if issues:
            logger.warning("Validation found %d issues", len(issues))
            for issue in issues:
                logger.debug("Validation issue: %s", issue)
        else:
            logger.info("Validation passed")
        return ValidationResult.from_issues(issues)

    async def _check_count(self, entity_type: EntityType) -> list[str]:
        name = entity_type.plural
        try:
            # A repeated local id is migrated once
            local_count = len({r.id for r in await self._local_store.list_all(entity_type)})
        except Exception as e:
            logger.warning("Cannot read local %s: %s", name, e)
            return [f"{name}: cannot read local store ({e})"]
        try:
            remote_count = await self._remote_store.count(entity_type)
        except Exception as e:
            logger.warning("Cannot count remote %s: %s", name, e)
            return [f"{name}: cannot count remote records ({e})"]

        if local_count == remote_count:
            return []
        return [
            f"{name}: local count {local_count}, remote count {remote_count} "
            f"(difference {abs(local_count - remote_count)})"
        ]

    async def _check_references(
        self,
        entity_type: EntityType,
        known_parents: dict[tuple[EntityType, str], Entity | None],
    ) -> list[str]:
        try:
            records = await self._remote_store.list_all(entity_type)
        except Exception as e:
            logger.warning("Cannot list remote %s: %s", entity_type.plural, e)
            return [f"{entity_type.plural}: cannot list remote records ({e})"]

        issues: list[str] = []
        for record in records:
            for fk in record.foreign_key_fields:
                parent_id = getattr(record, fk.field)
                if parent_id is None:
                    continue
                key = (fk.parent, parent_id)
                if key not in known_parents:
                    try:
                        known_parents[key] = await self._remote_store.get_by_id(
                            fk.parent, parent_id
                        )
                    except Exception as e:
                        issues.append(
                            f"{entity_type.value} {record.id}: cannot look up "
                            f"{fk.parent.value} {parent_id} ({e})"
                        )
                        continue
                parent = known_parents[key]
                if parent is None:
                    issues.append(
                        f"{entity_type.value} {record.id}: {fk.field} references missing "
                        f"{fk.parent.value} {parent_id}"
                    )
                elif fk.parent_role is not None:
                    role = _role_of(parent)
                    if role != fk.parent_role:
                        issues.append(
                            f"{entity_type.value} {record.id}: {fk.field} references "
                            f"{fk.parent.value} {parent_id} with role {role}, "
                            f"expected {fk.parent_role}"
                        )
        return issues

    async def _check_duplicate_users(self) -> list[str]:
        try:
            users = await self._remote_store.list_all(EntityType.USER)
        except Exception as e:
            logger.warning("Cannot list remote users: %s", e)
            return [f"users: cannot list remote records ({e})"]

        by_key: dict[NaturalKey, list[str]] = defaultdict(list)
        for user in users:
            by_key[user.natural_key()].append(user.id)

        return [
            f"users: {len(ids)} remote users share contact {key[0]} with role {key[1]} "
            f"({', '.join(sorted(ids))})"
            for key, ids in by_key.items()
            if len(ids) > 1
        ]


def _role_of(entity: Entity) -> str | None:
    role = getattr(entity, "role", None)
    return role.value if isinstance(role, Enum) else role
