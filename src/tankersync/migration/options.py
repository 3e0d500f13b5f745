"""Options controlling a single migration run."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MigrationOptions:
    """
    Caller-supplied switches for ``MigrationOrchestrator.migrate_all``.

    All three are required: there is no implicit default for whether a run
    writes, skips or provisions accounts.

    Attributes:
        skip_existing: Leave records that already exist remotely (by natural
            key) untouched and map dependents onto the existing remote id
        create_auth_accounts: Register a login account for every migrated user
        dry_run: Run the full algorithm but perform no remote writes and no
            account registrations
    """

    skip_existing: bool
    create_auth_accounts: bool
    dry_run: bool
