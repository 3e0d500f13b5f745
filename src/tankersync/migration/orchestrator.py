"""
MigrationOrchestrator - top-level driver of a migration run.

A run checks that the remote store is reachable, reads every local record,
then migrates the entity types in dependency order:

    users -> addresses -> vehicles -> bookings

Each type finishes completely before the next one starts, so a dependent
record always sees the final state of its parents in the run's ``IdMap``.

Usage:
    >>> orchestrator = MigrationOrchestrator(local_store, remote_store, identity)
    >>> result = await orchestrator.migrate_all(
    ...     MigrationOptions(skip_existing=True, create_auth_accounts=True, dry_run=False)
    ... )
    >>> result.migrated.users
    12
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tankersync.config import EngineConfig
from tankersync.exceptions import MigrationInProgressError
from tankersync.identity.provisioner import IdentityProvisioner
from tankersync.migration.id_map import IdMap
from tankersync.migration.migrators import (
    MIGRATOR_CLASSES,
    EntityMigrator,
    UserMigrator,
)
from tankersync.migration.results import MigrationResult, ResultAggregator
from tankersync.observability import (
    ATTR_CREATE_AUTH_ACCOUNTS,
    ATTR_DRY_RUN,
    ATTR_ERROR_COUNT,
    ATTR_MIGRATED_COUNT,
    ATTR_SKIP_EXISTING,
    ATTR_WARNING_COUNT,
    Tracer,
    create_tracer,
)
from tankersync.types import MIGRATION_ORDER, EntityType

if TYPE_CHECKING:
    from tankersync.entities.base import Entity
    from tankersync.identity.interface import IdentityService
    from tankersync.migration.options import MigrationOptions
    from tankersync.stores.interface import LocalStore, RemoteStore

logger = logging.getLogger(__name__)


class MigrationOrchestrator:
    """
    Runs whole migrations from a local store to a remote store.

    ``migrate_all`` never raises for data or connectivity problems: they
    come back in the result. The one exception is calling it again while a
    run is still in flight on the same orchestrator, which raises
    ``MigrationInProgressError``.

    Args:
        local_store: Device-resident source of truth (read only)
        remote_store: Target backend
        identity_service: Used when a run asks for auth accounts
        config: Engine configuration (default: ``EngineConfig()``)
        tracer: Optional custom Tracer
    """

    def __init__(
        self,
        local_store: LocalStore,
        remote_store: RemoteStore,
        identity_service: IdentityService | None = None,
        *,
        config: EngineConfig | None = None,
        tracer: Tracer | None = None,
    ) -> None:
        self._local_store = local_store
        self._remote_store = remote_store
        self._config = config or EngineConfig()
        self._provisioner = (
            IdentityProvisioner(identity_service) if identity_service is not None else None
        )
        self._tracer = tracer or create_tracer(__name__, self._config.enable_tracing)
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        """True while a ``migrate_all`` call is running."""
        return self._in_progress

    async def migrate_all(self, options: MigrationOptions) -> MigrationResult:
        """
        Migrate every local record to the remote store.

        Args:
            options: Run options, all three switches explicit

        Returns:
            MigrationResult with per-type counts, errors and warnings

        Raises:
            MigrationInProgressError: If a run is already in flight
        """
        if self._in_progress:
            raise MigrationInProgressError()
        self._in_progress = True
        try:
            return await self._run(options)
        finally:
            self._in_progress = False

    async def _run(self, options: MigrationOptions) -> MigrationResult:
        with self._tracer.span(
            "tankersync.orchestrator.migrate_all",
            {
                ATTR_SKIP_EXISTING: options.skip_existing,
                ATTR_CREATE_AUTH_ACCOUNTS: options.create_auth_accounts,
                ATTR_DRY_RUN: options.dry_run,
            },
        ) as span:
            logger.info(
                "Starting migration (skip_existing=%s, create_auth_accounts=%s, dry_run=%s)",
                options.skip_existing,
                options.create_auth_accounts,
                options.dry_run,
            )

            try:
                await self._remote_store.ping()
            except Exception as e:
                logger.error("Remote store unreachable, aborting migration: %s", e)
                return MigrationResult.fatal(f"cannot reach remote store: {e}")

            try:
                local_records = await self._load_local_records()
            except Exception as e:
                logger.error("Local store unreadable, aborting migration: %s", e)
                return MigrationResult.fatal(f"cannot read local store: {e}")

            aggregator = ResultAggregator()
            migrators = self._build_migrators(IdMap())
            for entity_type in MIGRATION_ORDER:
                records = local_records[entity_type]
                logger.info("Migrating %d %s", len(records), entity_type.plural)
                outcomes = await migrators[entity_type].migrate(records, options)
                aggregator.record_all(outcomes)
                logger.info(
                    "Finished %s: %d migrated",
                    entity_type.plural,
                    aggregator.migrated_count(entity_type),
                )

            result = aggregator.build()
            if span is not None:
                span.set_attribute(ATTR_MIGRATED_COUNT, result.migrated.total())
                span.set_attribute(ATTR_ERROR_COUNT, len(result.errors))
                span.set_attribute(ATTR_WARNING_COUNT, len(result.warnings))

            logger.info(
                "Migration %s: %s, %d errors, %d warnings",
                "succeeded" if result.success else "finished with errors",
                result.migrated.to_dict(),
                len(result.errors),
                len(result.warnings),
            )
            return result

    async def _load_local_records(self) -> dict[EntityType, list[Entity]]:
        """Read every entity type up front so a read failure stops the run before any write."""
        records: dict[EntityType, list[Entity]] = {}
        for entity_type in MIGRATION_ORDER:
            records[entity_type] = await self._local_store.list_all(entity_type)
        return records

    def _build_migrators(self, id_map: IdMap) -> dict[EntityType, EntityMigrator]:
        migrators: dict[EntityType, EntityMigrator] = {}
        for entity_type, migrator_class in MIGRATOR_CLASSES.items():
            if migrator_class is UserMigrator:
                migrators[entity_type] = UserMigrator(
                    self._remote_store,
                    id_map,
                    provisioner=self._provisioner,
                    max_concurrency=self._config.max_concurrency,
                    tracer=self._tracer,
                )
            else:
                migrators[entity_type] = migrator_class(
                    self._remote_store,
                    id_map,
                    max_concurrency=self._config.max_concurrency,
                    tracer=self._tracer,
                )
        return migrators
