"""
Library exceptions for the tankersync package.

Exception Hierarchy:
    TankerSyncError (base)
    +-- ConfigurationError
    +-- StoreError
    |   +-- LocalStoreError
    |   +-- RemoteStoreError
    |       +-- RemoteUnavailableError
    |       +-- DuplicateRecordError
    +-- IdentityServiceError
    |   +-- AccountAlreadyExistsError
    |   +-- WeakPasswordError
    |   +-- IdentityNetworkError
    +-- IdMapConflictError
    +-- MigrationInProgressError

Stores and the identity service raise these. Migrators turn them into
per-record outcomes, so none of them escape ``migrate_all`` or ``validate``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tankersync.types import EntityType


class TankerSyncError(Exception):
    """Base exception for tankersync."""

    pass


class ConfigurationError(TankerSyncError):
    """Raised when required configuration is missing or invalid."""

    pass


class StoreError(TankerSyncError):
    """Raised when a local or remote store operation fails."""

    pass


class LocalStoreError(StoreError):
    """Raised when the device-resident store cannot be read or decoded."""

    pass


class RemoteStoreError(StoreError):
    """Raised when a remote backend operation fails."""

    def __init__(self, entity_type: EntityType | None, message: str) -> None:
        self.entity_type = entity_type
        prefix = f"{entity_type.value}: " if entity_type is not None else ""
        super().__init__(f"{prefix}{message}")


class RemoteUnavailableError(RemoteStoreError):
    """Raised when the remote backend cannot be reached at all."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(None, f"remote store unreachable: {reason}")


class DuplicateRecordError(RemoteStoreError):
    """Raised when a create collides with an existing primary key."""

    def __init__(self, entity_type: EntityType, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(entity_type, f"record {record_id} already exists")


class IdentityServiceError(TankerSyncError):
    """Raised when the identity service refuses or fails to register an account."""

    def __init__(self, email: str, reason: str) -> None:
        self.email = email
        self.reason = reason
        super().__init__(f"account registration failed for {email}: {reason}")


class AccountAlreadyExistsError(IdentityServiceError):
    """Raised when the email is already registered."""

    def __init__(self, email: str) -> None:
        super().__init__(email, "email already registered")


class WeakPasswordError(IdentityServiceError):
    """Raised when the identity service rejects the credential."""

    def __init__(self, email: str, detail: str | None = None) -> None:
        super().__init__(email, f"weak password{f' ({detail})' if detail else ''}")


class IdentityNetworkError(IdentityServiceError):
    """Raised when the identity service could not be reached."""

    pass


class IdMapConflictError(TankerSyncError):
    """Raised when an IdMap key would be remapped to a different remote id."""

    def __init__(self, entity_type: EntityType, local_id: str, existing: str, attempted: str) -> None:
        self.entity_type = entity_type
        self.local_id = local_id
        self.existing = existing
        self.attempted = attempted
        super().__init__(
            f"{entity_type.value} {local_id} is already mapped to {existing}, "
            f"refusing to remap to {attempted}"
        )


class MigrationInProgressError(TankerSyncError):
    """Raised when migrate_all is called while a run is already in flight."""

    def __init__(self) -> None:
        super().__init__("a migration run is already in progress on this orchestrator")
