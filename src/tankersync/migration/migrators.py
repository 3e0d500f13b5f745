"""
Per-entity-type migrators.

Each migrator copies the local records of one entity type to the remote
store. For every record it:

1. Resolves foreign keys through the run's ``IdMap``. A required parent
   that was not migrated skips the record with a warning; an optional one
   is cleared with a warning.
2. Looks for an equivalent record by natural key: first among the records
   of this type already handled in the run, then in the remote store. Dry
   runs and real runs match the same records.
3. Leaves an existing record alone when ``skip_existing`` is set, mapping
   the local id onto the existing remote id so dependents still resolve.
4. Otherwise writes the record (or simulates the write under dry run) and
   records the new mapping.

Records of one type are processed concurrently up to ``max_concurrency``;
outcomes are returned in input order. A migrator never raises for a record:
every failure becomes a ``RecordOutcome``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, ClassVar

from tankersync.entities.records import User
from tankersync.exceptions import IdMapConflictError, StoreError
from tankersync.migration.existence import ExistenceChecker
from tankersync.migration.results import OutcomeKind, RecordOutcome
from tankersync.observability import (
    ATTR_DRY_RUN,
    ATTR_ENTITY_TYPE,
    ATTR_ERROR_COUNT,
    ATTR_MAX_CONCURRENCY,
    ATTR_MIGRATED_COUNT,
    ATTR_RECORD_COUNT,
    ATTR_WARNING_COUNT,
    Tracer,
    create_tracer,
)
from tankersync.types import EntityType, NaturalKey, RemoteId

if TYPE_CHECKING:
    from tankersync.entities.base import Entity
    from tankersync.identity.provisioner import IdentityProvisioner
    from tankersync.migration.id_map import IdMap
    from tankersync.migration.options import MigrationOptions
    from tankersync.stores.interface import RemoteStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


class EntityMigrator:
    """
    Base migrator for one entity type.

    Subclasses set ``entity_type`` and may override ``_after_write`` to add
    work that follows a successful write.

    Args:
        remote_store: Target store
        id_map: The run's id map, shared by all migrators of the run
        max_concurrency: Records of this type processed at once
        existence_checker: Defaults to one over ``remote_store``
        tracer: Optional custom Tracer
        enable_tracing: Whether to create an OpenTelemetry tracer
    """

    entity_type: ClassVar[EntityType]

    def __init__(
        self,
        remote_store: RemoteStore,
        id_map: IdMap,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        existence_checker: ExistenceChecker | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self._remote_store = remote_store
        self._id_map = id_map
        self._max_concurrency = max_concurrency
        self._existence = existence_checker or ExistenceChecker(remote_store)
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    async def migrate(
        self,
        records: Sequence[Entity],
        options: MigrationOptions,
    ) -> list[RecordOutcome]:
        """
        Migrate every record of this migrator's type.

        Args:
            records: Local records, in local store order
            options: Run options

        Returns:
            One outcome per input record, in input order
        """
        type_name = self.entity_type.value
        with self._tracer.span(
            f"tankersync.migrator.{type_name}",
            {
                ATTR_ENTITY_TYPE: type_name,
                ATTR_RECORD_COUNT: len(records),
                ATTR_DRY_RUN: options.dry_run,
                ATTR_MAX_CONCURRENCY: self._max_concurrency,
            },
        ) as span:
            semaphore = asyncio.Semaphore(self._max_concurrency)
            claims: dict[NaturalKey, asyncio.Future[RemoteId | None]] = {}

            async def bounded(record: Entity) -> RecordOutcome:
                async with semaphore:
                    return await self._migrate_record(record, options, claims)

            async def duplicate(record: Entity) -> RecordOutcome:
                return self._duplicate(record)

            seen: set[str] = set()
            tasks = []
            for record in records:
                if record.id in seen:
                    tasks.append(duplicate(record))
                else:
                    seen.add(record.id)
                    tasks.append(bounded(record))

            outcomes = list(await asyncio.gather(*tasks))

            if span is not None:
                span.set_attribute(
                    ATTR_MIGRATED_COUNT, sum(1 for o in outcomes if o.counted)
                )
                span.set_attribute(ATTR_ERROR_COUNT, sum(1 for o in outcomes if o.error))
                span.set_attribute(ATTR_WARNING_COUNT, sum(len(o.warnings) for o in outcomes))

        return outcomes

    def _duplicate(self, record: Entity) -> RecordOutcome:
        warning = (
            f"{self.entity_type.value} {record.id} skipped: "
            "duplicate local id already processed in this run"
        )
        logger.warning(warning)
        return RecordOutcome(
            entity_type=self.entity_type,
            local_id=record.id,
            kind=OutcomeKind.SKIPPED_DUPLICATE,
            warnings=(warning,),
        )

    async def _migrate_record(
        self,
        record: Entity,
        options: MigrationOptions,
        claims: dict[NaturalKey, asyncio.Future[RemoteId | None]],
    ) -> RecordOutcome:
        try:
            outcome = await self._process(record, options, claims)
        except Exception as e:
            logger.exception(
                "Unexpected failure migrating %s %s", self.entity_type.value, record.id
            )
            outcome = self._failed(record, f"unexpected error: {e}")

        for warning in outcome.warnings:
            logger.warning(warning)
        if outcome.error is not None:
            logger.error(outcome.error)
        logger.debug(
            "%s %s -> %s", self.entity_type.value, record.id, outcome.kind.value
        )
        return outcome

    async def _process(
        self,
        record: Entity,
        options: MigrationOptions,
        claims: dict[NaturalKey, asyncio.Future[RemoteId | None]],
    ) -> RecordOutcome:
        warnings: list[str] = []
        type_name = self.entity_type.value

        updates: dict[str, str | None] = {}
        for fk in record.foreign_key_fields:
            local_parent = getattr(record, fk.field)
            if local_parent is None:
                continue
            remote_parent = self._id_map.get(fk.parent, local_parent)
            if remote_parent is not None:
                updates[fk.field] = remote_parent
            elif fk.required:
                warnings.append(
                    f"{type_name} {record.id} skipped: {fk.parent.value} {local_parent} not migrated"
                )
                return RecordOutcome(
                    entity_type=self.entity_type,
                    local_id=record.id,
                    kind=OutcomeKind.SKIPPED_DEPENDENCY,
                    warnings=tuple(warnings),
                )
            else:
                warnings.append(
                    f"{type_name} {record.id}: {fk.field} cleared, "
                    f"{fk.parent.value} {local_parent} not migrated"
                )
                updates[fk.field] = None
        resolved = record.with_references(**updates) if updates else record

        # The first record of the run with a natural key claims it; later
        # records with the same key wait for the claimant's remote id.
        key = resolved.natural_key()
        claim = claims.get(key)
        if claim is not None:
            claimed_id = await claim
            if claimed_id is not None and options.skip_existing:
                logger.info(
                    "%s %s matches %s %s written earlier in this run, skipping",
                    type_name,
                    record.id,
                    type_name,
                    claimed_id,
                )
                return self._skipped_existing(record, claimed_id, warnings)
            return await self._write(record, resolved, options, warnings)

        claim = claims[key] = asyncio.get_running_loop().create_future()
        try:
            outcome = await self._write(record, resolved, options, warnings)
        except BaseException:
            claim.set_result(None)
            raise
        claim.set_result(outcome.remote_id)
        return outcome

    async def _write(
        self,
        record: Entity,
        resolved: Entity,
        options: MigrationOptions,
        warnings: list[str],
    ) -> RecordOutcome:
        try:
            existing = await self._existence.find_existing(resolved)
        except StoreError as e:
            return self._failed(record, f"existence check failed: {e}", warnings)

        if existing is not None and options.skip_existing:
            logger.info(
                "%s %s already exists remotely as %s, skipping",
                self.entity_type.value,
                record.id,
                existing.id,
            )
            return self._skipped_existing(record, existing.id, warnings)

        if options.dry_run:
            remote_id = resolved.id
        else:
            try:
                remote_id = await self._remote_store.create(self.entity_type, resolved)
            except StoreError as e:
                return self._failed(record, str(e), warnings)

        try:
            self._id_map.set(self.entity_type, record.id, remote_id)
        except IdMapConflictError as e:
            return self._failed(record, str(e), warnings)

        account_id = await self._after_write(record, options, warnings)
        return RecordOutcome(
            entity_type=self.entity_type,
            local_id=record.id,
            kind=OutcomeKind.MIGRATED,
            remote_id=remote_id,
            account_id=account_id,
            warnings=tuple(warnings),
        )

    def _skipped_existing(
        self,
        record: Entity,
        remote_id: RemoteId,
        warnings: list[str],
    ) -> RecordOutcome:
        try:
            self._id_map.set(self.entity_type, record.id, remote_id)
        except IdMapConflictError as e:
            return self._failed(record, str(e), warnings)
        return RecordOutcome(
            entity_type=self.entity_type,
            local_id=record.id,
            kind=OutcomeKind.SKIPPED_EXISTING,
            remote_id=remote_id,
            warnings=tuple(warnings),
        )

    async def _after_write(
        self,
        record: Entity,
        options: MigrationOptions,
        warnings: list[str],
    ) -> str | None:
        """Hook run after a successful write. Returns an identity account id, if any."""
        return None

    def _failed(
        self,
        record: Entity,
        reason: str,
        warnings: list[str] | None = None,
    ) -> RecordOutcome:
        return RecordOutcome(
            entity_type=self.entity_type,
            local_id=record.id,
            kind=OutcomeKind.FAILED,
            error=f"{self.entity_type.value} {record.id}: {reason}",
            warnings=tuple(warnings or ()),
        )


class UserMigrator(EntityMigrator):
    """
    Migrates users and, when requested, registers their login accounts.

    Account registration happens after the row is written. A failed
    registration leaves the row in place and adds a warning.
    """

    entity_type = EntityType.USER

    def __init__(
        self,
        remote_store: RemoteStore,
        id_map: IdMap,
        *,
        provisioner: IdentityProvisioner | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        existence_checker: ExistenceChecker | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        super().__init__(
            remote_store,
            id_map,
            max_concurrency=max_concurrency,
            existence_checker=existence_checker,
            tracer=tracer,
            enable_tracing=enable_tracing,
        )
        self._provisioner = provisioner

    async def _after_write(
        self,
        record: Entity,
        options: MigrationOptions,
        warnings: list[str],
    ) -> str | None:
        if not options.create_auth_accounts:
            return None
        assert isinstance(record, User)

        if not record.email or not record.password:
            warnings.append(
                f"user {record.id}: auth account not created, email or password missing"
            )
            return None
        if options.dry_run:
            logger.debug("Dry run: not registering account for user %s", record.id)
            return None
        if self._provisioner is None:
            warnings.append(
                f"user {record.id}: auth account not created, no identity service configured"
            )
            return None

        result = await self._provisioner.provision(record.email, record.password)
        if not result.ok:
            warnings.append(f"user {record.id}: auth account not created ({result.error})")
            return None
        return result.account_id


class AddressMigrator(EntityMigrator):
    """Migrates customers' saved addresses. Requires the owning user."""

    entity_type = EntityType.ADDRESS


class VehicleMigrator(EntityMigrator):
    """Migrates agency vehicles. Requires the owning agency user."""

    entity_type = EntityType.VEHICLE


class BookingMigrator(EntityMigrator):
    """
    Migrates bookings.

    The customer and (when set) the vehicle are required parents. The
    assigned agency and driver are optional: if they were not migrated the
    booking is still written with those references cleared.
    """

    entity_type = EntityType.BOOKING


MIGRATOR_CLASSES: dict[EntityType, type[EntityMigrator]] = {
    EntityType.USER: UserMigrator,
    EntityType.ADDRESS: AddressMigrator,
    EntityType.VEHICLE: VehicleMigrator,
    EntityType.BOOKING: BookingMigrator,
}
