"""
Identity provisioning for migrated users.

``IdentityProvisioner`` wraps an ``IdentityService`` and turns every
outcome into a ``ProvisionResult`` value. A failed registration is a
warning for the migration, never a reason to drop the user row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tankersync.exceptions import IdentityServiceError
from tankersync.identity.interface import IdentityService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisionResult:
    """
    Outcome of one provisioning attempt.

    Exactly one of ``account_id`` and ``error`` is set.
    """

    account_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, account_id: str) -> ProvisionResult:
        return cls(account_id=account_id)

    @classmethod
    def failure(cls, reason: str) -> ProvisionResult:
        return cls(error=reason)


class IdentityProvisioner:
    """Registers login accounts for users and reports failures as values."""

    def __init__(self, identity_service: IdentityService) -> None:
        self._identity_service = identity_service

    async def provision(self, email: str, password: str) -> ProvisionResult:
        """
        Register an account for ``email``.

        Never raises: refusals and transport failures come back as a
        failed ``ProvisionResult`` whose ``error`` names the reason.
        """
        try:
            account_id = await self._identity_service.register(email, password)
        except IdentityServiceError as e:
            logger.debug("Identity provisioning failed for %s: %s", email, e.reason)
            return ProvisionResult.failure(e.reason)
        except Exception as e:
            logger.exception("Unexpected identity service failure for %s", email)
            return ProvisionResult.failure(f"unexpected error: {e}")
        return ProvisionResult.success(account_id)
