#!/usr/bin/env python3
"""
Migrate the delivery app's on-device data to the remote backend.

Reads users, saved addresses, vehicles and bookings from the app's
AsyncStorage SQLite database and writes them to PostgreSQL, optionally
registering login accounts with Supabase and validating the result.

Usage:
    python scripts/migrate.py RKStorage --dry-run
    python scripts/migrate.py RKStorage --skip-existing --create-auth-accounts
    python scripts/migrate.py RKStorage --skip-existing --validate

Environment variables:
    TANKERSYNC_DATABASE_URL: Remote database URL (postgresql+asyncpg://...)
    SUPABASE_URL: Supabase project URL (with --create-auth-accounts)
    SUPABASE_SERVICE_ROLE_KEY: Service-role key (with --create-auth-accounts)
    TANKERSYNC_MAX_CONCURRENCY: Records migrated at once per type (1-8)

Exit status is 0 when the migration (and validation, if requested) found
no errors, 1 otherwise, and 2 for configuration problems.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy.ext.asyncio import create_async_engine

from tankersync import (
    ConfigurationError,
    EngineConfig,
    IdentitySettings,
    MigrationOptions,
    MigrationOrchestrator,
    MigrationValidator,
    PostgreSQLRemoteStore,
    RemoteSettings,
    SQLiteLocalStore,
    SupabaseIdentityService,
)
from tankersync.identity import IdentityService
from tankersync.serialization import TankerSyncJSONEncoder
from tankersync.stores import LocalStore, RemoteStore

logger = logging.getLogger("tankersync.scripts.migrate")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Migrate device data (users, addresses, vehicles, bookings) to the backend."
    )
    parser.add_argument(
        "local_database",
        help="Path to the app's AsyncStorage SQLite database",
    )
    parser.add_argument(
        "--skip-existing",
        action="store_true",
        help="Leave records that already exist remotely untouched",
    )
    parser.add_argument(
        "--create-auth-accounts",
        action="store_true",
        help="Register a login account for every migrated user with email and password",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be migrated without writing anything",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the remote data after migrating",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create the remote tables if missing (ignored with --dry-run)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every record",
    )
    return parser


def options_from_args(args: argparse.Namespace) -> MigrationOptions:
    return MigrationOptions(
        skip_existing=args.skip_existing,
        create_auth_accounts=args.create_auth_accounts,
        dry_run=args.dry_run,
    )


def identity_settings_for(
    args: argparse.Namespace, env: Mapping[str, str] | None = None
) -> IdentitySettings | None:
    """Identity settings, only when a run will actually register accounts."""
    if not args.create_auth_accounts or args.dry_run:
        return None
    return IdentitySettings.from_env(env)


async def run_migration(
    local_store: LocalStore,
    remote_store: RemoteStore,
    identity_service: IdentityService | None,
    options: MigrationOptions,
    *,
    config: EngineConfig,
    validate: bool,
) -> dict[str, Any]:
    """Run one migration, optionally followed by validation, and build a report."""
    orchestrator = MigrationOrchestrator(
        local_store, remote_store, identity_service, config=config
    )
    result = await orchestrator.migrate_all(options)
    report: dict[str, Any] = {"migration": result.to_dict()}

    if validate:
        validator = MigrationValidator(
            local_store, remote_store, enable_tracing=config.enable_tracing
        )
        report["validation"] = (await validator.validate()).to_dict()
    return report


def exit_status(report: Mapping[str, Any]) -> int:
    if not report["migration"]["success"]:
        return 1
    if not report.get("validation", {}).get("valid", True):
        return 1
    return 0


async def run(args: argparse.Namespace, env: Mapping[str, str] | None = None) -> dict[str, Any]:
    config = EngineConfig.from_env(env)
    remote_settings = RemoteSettings.from_env(env)
    identity_settings = identity_settings_for(args, env)

    engine = create_async_engine(remote_settings.database_url)
    identity_service = (
        SupabaseIdentityService(
            identity_settings.url,
            identity_settings.service_role_key,
            enable_tracing=config.enable_tracing,
        )
        if identity_settings is not None
        else None
    )
    try:
        async with SQLiteLocalStore(
            args.local_database, enable_tracing=config.enable_tracing
        ) as local_store:
            remote_store = PostgreSQLRemoteStore(engine, enable_tracing=config.enable_tracing)
            if args.create_schema and not args.dry_run:
                await remote_store.initialize()
            return await run_migration(
                local_store,
                remote_store,
                identity_service,
                options_from_args(args),
                config=config,
                validate=args.validate,
            )
    finally:
        if identity_service is not None:
            await identity_service.aclose()
        await engine.dispose()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        report = asyncio.run(run(args))
    except ConfigurationError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(report, indent=2, cls=TankerSyncJSONEncoder))
    return exit_status(report)


if __name__ == "__main__":
    sys.exit(main())
