"""
Shared pytest fixtures for the tankersync tests.

This module provides:
- Store fixtures (local_store, remote_store) with failure injection
- Identity fixtures (identity_service)
- Option fixtures for the common run modes
- A small complete dataset (populated_local_store)
- Tracer fixtures (mock_tracer)
"""

from __future__ import annotations

import pytest

from tankersync.config import EngineConfig
from tankersync.identity import InMemoryIdentityService
from tankersync.migration import MigrationOptions, MigrationOrchestrator, MigrationValidator
from tankersync.observability import MockTracer
from tankersync.stores import InMemoryLocalStore, InMemoryRemoteStore
from tests.fixtures import (
    make_address,
    make_agency,
    make_booking,
    make_driver,
    make_user,
    make_vehicle,
)

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for tests."""
    config.addinivalue_line("markers", "sqlite: marks tests that use an aiosqlite database")


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def local_store() -> InMemoryLocalStore:
    """Empty in-memory local store."""
    return InMemoryLocalStore()


@pytest.fixture
def remote_store() -> InMemoryRemoteStore:
    """Empty in-memory remote store with tracing disabled."""
    return InMemoryRemoteStore(enable_tracing=False)


@pytest.fixture
def identity_service() -> InMemoryIdentityService:
    return InMemoryIdentityService()


@pytest.fixture
def populated_local_store() -> InMemoryLocalStore:
    """
    A complete small dataset.

    - agency a1 owning vehicles v1, v2
    - driver d1
    - customers u1 (two addresses) and u2 (one address)
    - bookings b1 (u1, v1, a1, d1), b2 (u2, v2, a1)
    """
    return InMemoryLocalStore(
        [
            make_agency("a1", email="agency@example.com", password="agency-pass"),
            make_driver("d1", email="driver@example.com", password="driver-pass"),
            make_user("u1", email="u1@example.com", password="secret-1"),
            make_user("u2", email="u2@example.com", password="secret-2"),
            make_address("addr1", "u1", label="home"),
            make_address("addr2", "u1", label="work"),
            make_address("addr3", "u2", label="home"),
            make_vehicle("v1", "a1"),
            make_vehicle("v2", "a1"),
            make_booking("b1", "u1", vehicle_id="v1", agency_id="a1", driver_id="d1"),
            make_booking("b2", "u2", vehicle_id="v2", agency_id="a1"),
        ]
    )


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def mock_tracer() -> MockTracer:
    return MockTracer()


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(max_concurrency=4, enable_tracing=False)


@pytest.fixture
def orchestrator(
    populated_local_store: InMemoryLocalStore,
    remote_store: InMemoryRemoteStore,
    identity_service: InMemoryIdentityService,
    engine_config: EngineConfig,
) -> MigrationOrchestrator:
    return MigrationOrchestrator(
        populated_local_store,
        remote_store,
        identity_service,
        config=engine_config,
    )


@pytest.fixture
def validator(
    populated_local_store: InMemoryLocalStore,
    remote_store: InMemoryRemoteStore,
) -> MigrationValidator:
    return MigrationValidator(populated_local_store, remote_store, enable_tracing=False)


# ============================================================================
# Option Fixtures
# ============================================================================


@pytest.fixture
def write_options() -> MigrationOptions:
    """Real run, skipping existing records, no auth accounts."""
    return MigrationOptions(skip_existing=True, create_auth_accounts=False, dry_run=False)


@pytest.fixture
def dry_run_options() -> MigrationOptions:
    return MigrationOptions(skip_existing=True, create_auth_accounts=True, dry_run=True)
