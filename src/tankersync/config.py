"""
Engine and connection configuration.

``EngineConfig`` tunes how the engine runs. ``RemoteSettings`` and
``IdentitySettings`` describe where it connects and can be loaded from the
environment:

- ``TANKERSYNC_DATABASE_URL``: SQLAlchemy URL of the remote backend
- ``SUPABASE_URL`` / ``SUPABASE_SERVICE_ROLE_KEY``: identity service
- ``TANKERSYNC_MAX_CONCURRENCY``: records migrated at once per type (1-8)

Run-level switches (skip existing, dry run, auth accounts) are not
configuration: they are passed explicitly with every run as
``MigrationOptions``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from tankersync.exceptions import ConfigurationError

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 8
DEFAULT_CONCURRENCY = 4

ENV_DATABASE_URL = "TANKERSYNC_DATABASE_URL"
ENV_MAX_CONCURRENCY = "TANKERSYNC_MAX_CONCURRENCY"
ENV_SUPABASE_URL = "SUPABASE_URL"
ENV_SUPABASE_SERVICE_ROLE_KEY = "SUPABASE_SERVICE_ROLE_KEY"


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigurationError(f"environment variable {name} is not set")
    return value


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration for the migration engine.

    Attributes:
        max_concurrency: Records of one entity type in flight at once
            (default: 4, allowed 1-8)
        enable_tracing: Enable OpenTelemetry tracing if available (default: True)
    """

    max_concurrency: int = DEFAULT_CONCURRENCY
    enable_tracing: bool = True

    def __post_init__(self) -> None:
        if not MIN_CONCURRENCY <= self.max_concurrency <= MAX_CONCURRENCY:
            raise ConfigurationError(
                f"max_concurrency must be between {MIN_CONCURRENCY} and "
                f"{MAX_CONCURRENCY}, got {self.max_concurrency}"
            )

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> EngineConfig:
        env = os.environ if env is None else env
        raw = env.get(ENV_MAX_CONCURRENCY, "").strip()
        if not raw:
            return cls()
        try:
            max_concurrency = int(raw)
        except ValueError as e:
            raise ConfigurationError(f"{ENV_MAX_CONCURRENCY} must be an integer, got {raw!r}") from e
        return cls(max_concurrency=max_concurrency)


@dataclass(frozen=True)
class RemoteSettings:
    """
    Location of the remote backend.

    Attributes:
        database_url: SQLAlchemy async URL, e.g. ``postgresql+asyncpg://...``
    """

    database_url: str

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> RemoteSettings:
        env = os.environ if env is None else env
        return cls(database_url=_require(env, ENV_DATABASE_URL))


@dataclass(frozen=True)
class IdentitySettings:
    """
    Location and credentials of the identity service.

    Attributes:
        url: Supabase project URL
        service_role_key: Service-role key used for admin registration
    """

    url: str
    service_role_key: str

    def __repr__(self) -> str:
        return f"IdentitySettings(url={self.url!r}, service_role_key='***')"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> IdentitySettings:
        env = os.environ if env is None else env
        return cls(
            url=_require(env, ENV_SUPABASE_URL),
            service_role_key=_require(env, ENV_SUPABASE_SERVICE_ROLE_KEY),
        )
