"""
Migration engine: orchestrator, per-type migrators and validator.

Usage:
    >>> from tankersync.migration import MigrationOptions, MigrationOrchestrator
    >>>
    >>> orchestrator = MigrationOrchestrator(local_store, remote_store)
    >>> result = await orchestrator.migrate_all(
    ...     MigrationOptions(skip_existing=True, create_auth_accounts=False, dry_run=True)
    ... )
"""

from tankersync.migration.existence import ExistenceChecker
from tankersync.migration.id_map import IdMap
from tankersync.migration.migrators import (
    MIGRATOR_CLASSES,
    AddressMigrator,
    BookingMigrator,
    EntityMigrator,
    UserMigrator,
    VehicleMigrator,
)
from tankersync.migration.options import MigrationOptions
from tankersync.migration.orchestrator import MigrationOrchestrator
from tankersync.migration.results import (
    MigratedCounts,
    MigrationResult,
    OutcomeKind,
    RecordOutcome,
    ResultAggregator,
    ValidationResult,
)
from tankersync.migration.validator import MigrationValidator

__all__ = [
    # Orchestration
    "MigrationOrchestrator",
    "MigrationOptions",
    "MigrationValidator",
    # Migrators
    "EntityMigrator",
    "UserMigrator",
    "AddressMigrator",
    "VehicleMigrator",
    "BookingMigrator",
    "MIGRATOR_CLASSES",
    "ExistenceChecker",
    "IdMap",
    # Results
    "OutcomeKind",
    "RecordOutcome",
    "MigratedCounts",
    "MigrationResult",
    "ValidationResult",
    "ResultAggregator",
]
