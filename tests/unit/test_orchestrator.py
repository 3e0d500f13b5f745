"""
Unit tests for MigrationOrchestrator.

Tests cover:
- The documented end-to-end scenarios
- Idempotent reruns and skip-existing counts
- Dry run leaves every remote count unchanged
- Fatal pre-flight failures (remote unreachable, local unreadable)
- Dependency order across entity types
- The per-instance in-progress guard
- Tracing
"""

from __future__ import annotations

import asyncio

import pytest

from tankersync.config import EngineConfig
from tankersync.entities.base import Entity
from tankersync.exceptions import MigrationInProgressError
from tankersync.identity import InMemoryIdentityService
from tankersync.migration import MigrationOptions, MigrationOrchestrator, MigrationValidator
from tankersync.observability import MockTracer
from tankersync.stores import InMemoryLocalStore, InMemoryRemoteStore
from tankersync.types import EntityType, RemoteId
from tests.fixtures import make_agency, make_booking, make_user, make_vehicle

CONFIG = EngineConfig(enable_tracing=False)


def options(*, skip_existing: bool = True, accounts: bool = False, dry_run: bool = False):
    return MigrationOptions(
        skip_existing=skip_existing, create_auth_accounts=accounts, dry_run=dry_run
    )


async def remote_counts(store: InMemoryRemoteStore) -> dict[EntityType, int]:
    return {t: await store.count(t) for t in EntityType}


class TestScenarios:
    async def test_three_new_users(self, remote_store: InMemoryRemoteStore) -> None:
        local = InMemoryLocalStore([make_user("u1"), make_user("u2"), make_user("u3")])
        orchestrator = MigrationOrchestrator(local, remote_store, config=CONFIG)

        result = await orchestrator.migrate_all(options())

        assert result.migrated.users == 3
        assert result.errors == ()
        assert result.success is True

    async def test_rerun_migrates_nothing(self, remote_store: InMemoryRemoteStore) -> None:
        local = InMemoryLocalStore([make_user("u1"), make_user("u2"), make_user("u3")])
        orchestrator = MigrationOrchestrator(local, remote_store, config=CONFIG)

        await orchestrator.migrate_all(options())
        second = await orchestrator.migrate_all(options())

        assert second.migrated.users == 0
        assert second.success is True

    async def test_identity_failure_for_one_user_is_a_warning(
        self, remote_store: InMemoryRemoteStore
    ) -> None:
        identity = InMemoryIdentityService(min_password_length=6)
        local = InMemoryLocalStore(
            [
                make_user("u1", email="u1@example.com", password="secret-1"),
                make_user("u2", email="u2@example.com", password="123"),
                make_user("u3", email="u3@example.com", password="secret-3"),
            ]
        )
        orchestrator = MigrationOrchestrator(local, remote_store, identity, config=CONFIG)

        result = await orchestrator.migrate_all(options(accounts=True))

        assert result.migrated.users == 3
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("user u2: auth account not created (weak password")
        assert result.success is True

    async def test_dry_run_bookings_against_migrated_vehicle(
        self, remote_store: InMemoryRemoteStore
    ) -> None:
        customer = make_user("u1")
        agency = make_agency("a1")
        vehicle = make_vehicle("v1", "a1")
        remote_store.seed(customer, agency, vehicle)
        bookings = [make_booking(f"b{i}", "u1", vehicle_id="v1") for i in range(5)]
        local = InMemoryLocalStore([customer, agency, vehicle, *bookings])
        orchestrator = MigrationOrchestrator(local, remote_store, config=CONFIG)
        before = await remote_store.count(EntityType.BOOKING)

        result = await orchestrator.migrate_all(options(dry_run=True))

        assert result.migrated.bookings == 5
        assert await remote_store.count(EntityType.BOOKING) == before

    async def test_vehicle_write_failures_then_validate(
        self, remote_store: InMemoryRemoteStore
    ) -> None:
        local = InMemoryLocalStore(
            [make_agency("a1"), *(make_vehicle(f"v{i}", "a1") for i in range(5))]
        )
        remote_store.fail_create_ids = {"v1", "v3"}
        orchestrator = MigrationOrchestrator(local, remote_store, config=CONFIG)

        result = await orchestrator.migrate_all(options())
        validation = await MigrationValidator(local, remote_store, enable_tracing=False).validate()

        assert result.migrated.vehicles == 3
        assert len(result.errors) == 2
        assert result.success is False
        assert validation.valid is False
        assert "vehicles: local count 5, remote count 3 (difference 2)" in validation.issues


class TestProperties:
    @pytest.mark.parametrize("existing", [0, 1, 4])
    async def test_skip_existing_counts_only_new_users(
        self, remote_store: InMemoryRemoteStore, existing: int
    ) -> None:
        users = [make_user(f"u{i}") for i in range(4)]
        remote_store.seed(*users[:existing])
        orchestrator = MigrationOrchestrator(InMemoryLocalStore(users), remote_store, config=CONFIG)

        result = await orchestrator.migrate_all(options())

        assert result.migrated.users == 4 - existing

    @pytest.mark.parametrize("skip_existing", [True, False])
    @pytest.mark.parametrize("accounts", [True, False])
    async def test_dry_run_never_changes_remote_counts(
        self,
        populated_local_store: InMemoryLocalStore,
        remote_store: InMemoryRemoteStore,
        identity_service: InMemoryIdentityService,
        skip_existing: bool,
        accounts: bool,
    ) -> None:
        remote_store.seed(make_user("u1", email="u1@example.com"))
        orchestrator = MigrationOrchestrator(
            populated_local_store, remote_store, identity_service, config=CONFIG
        )
        before = await remote_counts(remote_store)

        await orchestrator.migrate_all(
            options(skip_existing=skip_existing, accounts=accounts, dry_run=True)
        )

        assert await remote_counts(remote_store) == before
        assert identity_service.register_calls == []

    async def test_dry_run_reports_what_a_real_run_migrates(self) -> None:
        local = InMemoryLocalStore(
            [
                make_agency("a1"),
                make_user("u1", phone="555"),
                make_user("u2", phone="555"),
                make_vehicle("v1", "a1", vehicle_number="KA01AB1234"),
                make_vehicle("v2", "a1", vehicle_number="ka01ab1234"),
                make_booking("b1", "u2", vehicle_id="v2", agency_id="a1"),
            ]
        )

        dry = await MigrationOrchestrator(
            local, InMemoryRemoteStore(enable_tracing=False), config=CONFIG
        ).migrate_all(options(dry_run=True))
        real = await MigrationOrchestrator(
            local, InMemoryRemoteStore(enable_tracing=False), config=CONFIG
        ).migrate_all(options())

        assert dry.migrated == real.migrated
        assert real.migrated.to_dict() == {
            "users": 2,
            "addresses": 0,
            "vehicles": 1,
            "bookings": 1,
        }
        assert dry.errors == real.errors == ()

    async def test_full_dataset_then_validate(
        self,
        orchestrator: MigrationOrchestrator,
        validator: MigrationValidator,
        write_options: MigrationOptions,
    ) -> None:
        result = await orchestrator.migrate_all(write_options)

        assert result.success is True
        assert result.migrated.to_dict() == {
            "users": 4,
            "addresses": 3,
            "vehicles": 2,
            "bookings": 2,
        }
        validation = await validator.validate()
        assert validation.valid is True, validation.issues

    async def test_second_run_is_idempotent_for_every_type(
        self, orchestrator: MigrationOrchestrator, write_options: MigrationOptions
    ) -> None:
        await orchestrator.migrate_all(write_options)
        second = await orchestrator.migrate_all(write_options)

        assert second.migrated.total() == 0
        assert second.success is True
        assert second.warnings == ()

    async def test_booking_with_failed_vehicle_never_dangles(
        self,
        populated_local_store: InMemoryLocalStore,
        remote_store: InMemoryRemoteStore,
        validator: MigrationValidator,
        write_options: MigrationOptions,
    ) -> None:
        remote_store.fail_create_ids = {"v1"}
        orchestrator = MigrationOrchestrator(populated_local_store, remote_store, config=CONFIG)

        result = await orchestrator.migrate_all(write_options)

        assert result.migrated.bookings == 1
        assert "booking b1 skipped: vehicle v1 not migrated" in result.warnings
        assert len(result.errors) == 1
        validation = await validator.validate()
        assert not any("references missing" in issue for issue in validation.issues)

    async def test_success_matches_errors(
        self,
        populated_local_store: InMemoryLocalStore,
        remote_store: InMemoryRemoteStore,
        write_options: MigrationOptions,
    ) -> None:
        remote_store.fail_create_ids = {"addr2", "b2"}
        orchestrator = MigrationOrchestrator(populated_local_store, remote_store, config=CONFIG)

        result = await orchestrator.migrate_all(write_options)

        assert result.success == (len(result.errors) == 0)
        assert result.errors == (
            "address addr2: address: write rejected for record addr2",
            "booking b2: booking: write rejected for record b2",
        )


class TestFatalFailures:
    async def test_unreachable_remote_aborts_before_anything(
        self,
        populated_local_store: InMemoryLocalStore,
        remote_store: InMemoryRemoteStore,
        write_options: MigrationOptions,
    ) -> None:
        remote_store.reachable = False
        orchestrator = MigrationOrchestrator(populated_local_store, remote_store, config=CONFIG)

        result = await orchestrator.migrate_all(write_options)

        assert result.success is False
        assert len(result.errors) == 1
        assert result.errors[0].startswith("cannot reach remote store")
        assert result.migrated.total() == 0
        assert remote_store.create_calls == []

    async def test_unreadable_local_store_aborts_before_writes(
        self,
        populated_local_store: InMemoryLocalStore,
        remote_store: InMemoryRemoteStore,
        write_options: MigrationOptions,
    ) -> None:
        populated_local_store.fail_reads = True
        orchestrator = MigrationOrchestrator(populated_local_store, remote_store, config=CONFIG)

        result = await orchestrator.migrate_all(write_options)

        assert result.success is False
        assert result.errors[0].startswith("cannot read local store")
        assert remote_store.create_calls == []


class TestOrdering:
    async def test_types_run_in_dependency_order(
        self,
        populated_local_store: InMemoryLocalStore,
        remote_store: InMemoryRemoteStore,
        write_options: MigrationOptions,
    ) -> None:
        orchestrator = MigrationOrchestrator(populated_local_store, remote_store, config=CONFIG)

        await orchestrator.migrate_all(write_options)

        types_in_call_order = [entity_type for entity_type, _ in remote_store.create_calls]
        first_seen = list(dict.fromkeys(types_in_call_order))
        assert first_seen == [
            EntityType.USER,
            EntityType.ADDRESS,
            EntityType.VEHICLE,
            EntityType.BOOKING,
        ]
        # Each type completes before the next starts
        assert types_in_call_order == sorted(
            types_in_call_order, key=lambda t: list(EntityType).index(t)
        )


class TestInProgressGuard:
    async def test_concurrent_run_on_same_instance_raises(
        self,
        populated_local_store: InMemoryLocalStore,
        write_options: MigrationOptions,
    ) -> None:
        release = asyncio.Event()

        class GatedStore(InMemoryRemoteStore):
            async def create(self, entity_type: EntityType, record: Entity) -> RemoteId:
                await release.wait()
                return await super().create(entity_type, record)

        orchestrator = MigrationOrchestrator(
            populated_local_store, GatedStore(enable_tracing=False), config=CONFIG
        )

        first = asyncio.create_task(orchestrator.migrate_all(write_options))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert orchestrator.in_progress is True

        with pytest.raises(MigrationInProgressError):
            await orchestrator.migrate_all(write_options)

        release.set()
        result = await first
        assert result.success is True
        assert orchestrator.in_progress is False

    async def test_separate_instances_do_not_interfere(
        self, populated_local_store: InMemoryLocalStore, write_options: MigrationOptions
    ) -> None:
        first = MigrationOrchestrator(
            populated_local_store, InMemoryRemoteStore(enable_tracing=False), config=CONFIG
        )
        second = MigrationOrchestrator(
            populated_local_store, InMemoryRemoteStore(enable_tracing=False), config=CONFIG
        )

        results = await asyncio.gather(
            first.migrate_all(write_options), second.migrate_all(write_options)
        )

        assert all(r.success for r in results)

    async def test_flag_cleared_after_fatal_result(
        self,
        populated_local_store: InMemoryLocalStore,
        remote_store: InMemoryRemoteStore,
        write_options: MigrationOptions,
    ) -> None:
        remote_store.reachable = False
        orchestrator = MigrationOrchestrator(populated_local_store, remote_store, config=CONFIG)

        await orchestrator.migrate_all(write_options)

        assert orchestrator.in_progress is False


class TestTracing:
    async def test_run_and_migrator_spans(
        self,
        populated_local_store: InMemoryLocalStore,
        remote_store: InMemoryRemoteStore,
        mock_tracer: MockTracer,
        write_options: MigrationOptions,
    ) -> None:
        orchestrator = MigrationOrchestrator(
            populated_local_store, remote_store, config=CONFIG, tracer=mock_tracer
        )

        await orchestrator.migrate_all(write_options)

        assert mock_tracer.span_names == [
            "tankersync.orchestrator.migrate_all",
            "tankersync.migrator.user",
            "tankersync.migrator.address",
            "tankersync.migrator.vehicle",
            "tankersync.migrator.booking",
        ]
