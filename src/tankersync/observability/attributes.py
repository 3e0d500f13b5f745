"""
Standard span attribute names.

Database attributes follow the OpenTelemetry semantic conventions; the
``tankersync.*`` names are specific to the migration engine.
"""

# Database (OpenTelemetry semantic conventions)
ATTR_DB_SYSTEM = "db.system"
ATTR_DB_NAME = "db.name"
ATTR_DB_OPERATION = "db.operation"

# Entities
ATTR_ENTITY_TYPE = "tankersync.entity.type"
ATTR_RECORD_ID = "tankersync.record.id"
ATTR_RECORD_COUNT = "tankersync.record.count"

# Migration run
ATTR_DRY_RUN = "tankersync.migration.dry_run"
ATTR_SKIP_EXISTING = "tankersync.migration.skip_existing"
ATTR_CREATE_AUTH_ACCOUNTS = "tankersync.migration.create_auth_accounts"
ATTR_MIGRATED_COUNT = "tankersync.migration.migrated"
ATTR_ERROR_COUNT = "tankersync.migration.errors"
ATTR_WARNING_COUNT = "tankersync.migration.warnings"
ATTR_MAX_CONCURRENCY = "tankersync.migration.max_concurrency"

# Validation
ATTR_ISSUE_COUNT = "tankersync.validation.issues"

__all__ = [
    "ATTR_DB_SYSTEM",
    "ATTR_DB_NAME",
    "ATTR_DB_OPERATION",
    "ATTR_ENTITY_TYPE",
    "ATTR_RECORD_ID",
    "ATTR_RECORD_COUNT",
    "ATTR_DRY_RUN",
    "ATTR_SKIP_EXISTING",
    "ATTR_CREATE_AUTH_ACCOUNTS",
    "ATTR_MIGRATED_COUNT",
    "ATTR_ERROR_COUNT",
    "ATTR_WARNING_COUNT",
    "ATTR_MAX_CONCURRENCY",
    "ATTR_ISSUE_COUNT",
]
