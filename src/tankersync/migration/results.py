"""
Result types for migration and validation runs.

Migrators report one ``RecordOutcome`` per local record instead of raising;
``ResultAggregator`` folds the outcomes of a whole run into a single
immutable ``MigrationResult``.

Models in this module:
    - OutcomeKind: What happened to one record
    - RecordOutcome: Per-record outcome, including its errors and warnings
    - MigratedCounts: Newly written records per entity type
    - MigrationResult: Final result of ``migrate_all``
    - ValidationResult: Final result of ``validate``
    - ResultAggregator: Accumulates outcomes into a MigrationResult
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from tankersync.types import EntityType, LocalId, RemoteId


class OutcomeKind(Enum):
    """
    What happened to one local record during a run.

    Attributes:
        MIGRATED: Written to the remote store (or simulated under dry run)
        SKIPPED_EXISTING: Already present remotely and ``skip_existing`` set
        SKIPPED_DEPENDENCY: A required parent was not migrated
        SKIPPED_DUPLICATE: Same local id already processed in this run
        FAILED: The remote write or lookup failed
    """

    MIGRATED = "migrated"
    SKIPPED_EXISTING = "skipped_existing"
    SKIPPED_DEPENDENCY = "skipped_dependency"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    FAILED = "failed"


@dataclass(frozen=True)
class RecordOutcome:
    """
    Outcome of migrating one local record.

    Attributes:
        entity_type: Type of the record
        local_id: Id of the record in the local store
        kind: What happened
        remote_id: Remote id the record maps to (migrated or existing)
        account_id: Identity account registered for a user, if any
        error: Error string when ``kind`` is FAILED
        warnings: Warning strings raised while processing the record
    """

    entity_type: EntityType
    local_id: LocalId
    kind: OutcomeKind
    remote_id: RemoteId | None = None
    account_id: str | None = None
    error: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def counted(self) -> bool:
        """True when the record was newly written this run."""
        return self.kind is OutcomeKind.MIGRATED


@dataclass(frozen=True)
class MigratedCounts:
    """Number of records newly written per entity type."""

    users: int = 0
    addresses: int = 0
    vehicles: int = 0
    bookings: int = 0

    def get(self, entity_type: EntityType) -> int:
        return int(getattr(self, entity_type.plural))

    def total(self) -> int:
        return self.users + self.addresses + self.vehicles + self.bookings

    def to_dict(self) -> dict[str, int]:
        return {
            "users": self.users,
            "addresses": self.addresses,
            "vehicles": self.vehicles,
            "bookings": self.bookings,
        }


@dataclass(frozen=True)
class MigrationResult:
    """
    Final result of one ``migrate_all`` run.

    ``success`` is True exactly when ``errors`` is empty. Warnings never
    affect it.

    Attributes:
        success: Whether the run finished without errors
        migrated: Newly written records per entity type
        errors: One string per failed record or fatal setup failure
        warnings: Skipped dependents, cleared references, identity failures
    """

    success: bool
    migrated: MigratedCounts
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def fatal(cls, error: str) -> MigrationResult:
        """Result of a run that stopped before writing anything."""
        return cls(success=False, migrated=MigratedCounts(), errors=(error,))

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary representation suitable for JSON.
        """
        return {
            "success": self.success,
            "migrated": self.migrated.to_dict(),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class ValidationResult:
    """
    Result of ``MigrationValidator.validate``.

    Attributes:
        valid: True exactly when ``issues`` is empty
        issues: Human-readable description of every problem found
    """

    valid: bool
    issues: tuple[str, ...] = ()

    @classmethod
    def from_issues(cls, issues: list[str]) -> ValidationResult:
        return cls(valid=not issues, issues=tuple(issues))

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "issues": list(self.issues)}


class ResultAggregator:
    """
    Accumulates outcomes, errors and warnings for one run.

    Errors and warnings are append-only and keep the order they were added
    in, so a run over the same input always produces the same result.

    Example:
        >>> aggregator = ResultAggregator()
        >>> aggregator.record_all(user_outcomes)
        >>> aggregator.record_all(vehicle_outcomes)
        >>> result = aggregator.build()
    """

    def __init__(self) -> None:
        self._counts: dict[EntityType, int] = {t: 0 for t in EntityType}
        self._errors: list[str] = []
        self._warnings: list[str] = []

    def record(self, outcome: RecordOutcome) -> None:
        """Fold one record outcome into the totals."""
        if outcome.counted:
            self._counts[outcome.entity_type] += 1
        if outcome.error is not None:
            self._errors.append(outcome.error)
        self._warnings.extend(outcome.warnings)

    def record_all(self, outcomes: list[RecordOutcome]) -> None:
        for outcome in outcomes:
            self.record(outcome)

    def migrated_count(self, entity_type: EntityType) -> int:
        return self._counts[entity_type]

    def build(self) -> MigrationResult:
        """Snapshot the accumulated state as an immutable result."""
        return MigrationResult(
            success=not self._errors,
            migrated=MigratedCounts(
                users=self._counts[EntityType.USER],
                addresses=self._counts[EntityType.ADDRESS],
                vehicles=self._counts[EntityType.VEHICLE],
                bookings=self._counts[EntityType.BOOKING],
            ),
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
        )
