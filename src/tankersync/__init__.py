"""
tankersync - Data migration and validation engine for the tanker delivery app.

This library provides:
- Entity models for users, addresses, vehicles and bookings
- Local stores for the device key-value database (SQLite) and in-memory use
- Remote stores for PostgreSQL and in-memory use
- Identity provisioning through Supabase Auth
- A dependency-ordered, idempotent migration orchestrator with dry run
- A post-hoc validator for counts and foreign keys
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tankersync")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from tankersync.config import EngineConfig, IdentitySettings, RemoteSettings
from tankersync.entities import (
    Address,
    Booking,
    BookingStatus,
    Entity,
    ForeignKey,
    User,
    UserRole,
    Vehicle,
)
from tankersync.exceptions import (
    AccountAlreadyExistsError,
    ConfigurationError,
    DuplicateRecordError,
    IdentityNetworkError,
    IdentityServiceError,
    IdMapConflictError,
    LocalStoreError,
    MigrationInProgressError,
    RemoteStoreError,
    RemoteUnavailableError,
    StoreError,
    TankerSyncError,
    WeakPasswordError,
)
from tankersync.identity import (
    IdentityProvisioner,
    IdentityService,
    InMemoryIdentityService,
    ProvisionResult,
    SupabaseIdentityService,
)
from tankersync.migration import (
    IdMap,
    MigratedCounts,
    MigrationOptions,
    MigrationOrchestrator,
    MigrationResult,
    MigrationValidator,
    OutcomeKind,
    RecordOutcome,
    ValidationResult,
)
from tankersync.stores import (
    InMemoryLocalStore,
    InMemoryRemoteStore,
    LocalStore,
    PostgreSQLRemoteStore,
    RemoteStore,
    SQLiteLocalStore,
)
from tankersync.types import MIGRATION_ORDER, EntityType

__all__ = [
    "__version__",
    # Types
    "EntityType",
    "MIGRATION_ORDER",
    # Entities
    "Entity",
    "ForeignKey",
    "User",
    "UserRole",
    "Address",
    "Vehicle",
    "Booking",
    "BookingStatus",
    # Stores
    "LocalStore",
    "RemoteStore",
    "InMemoryLocalStore",
    "InMemoryRemoteStore",
    "SQLiteLocalStore",
    "PostgreSQLRemoteStore",
    # Identity
    "IdentityService",
    "InMemoryIdentityService",
    "SupabaseIdentityService",
    "IdentityProvisioner",
    "ProvisionResult",
    # Migration
    "MigrationOptions",
    "MigrationOrchestrator",
    "MigrationValidator",
    "MigrationResult",
    "MigratedCounts",
    "ValidationResult",
    "RecordOutcome",
    "OutcomeKind",
    "IdMap",
    # Configuration
    "EngineConfig",
    "RemoteSettings",
    "IdentitySettings",
    # Exceptions
    "TankerSyncError",
    "ConfigurationError",
    "StoreError",
    "LocalStoreError",
    "RemoteStoreError",
    "RemoteUnavailableError",
    "DuplicateRecordError",
    "IdentityServiceError",
    "AccountAlreadyExistsError",
    "WeakPasswordError",
    "IdentityNetworkError",
    "IdMapConflictError",
    "MigrationInProgressError",
]
