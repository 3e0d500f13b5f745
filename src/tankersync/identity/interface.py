"""
Identity service interface.

The identity service owns login accounts (email + credential). It is
separate from the remote record store: a user row can exist without an
account, which is the degraded mode the migration tolerates.
"""

from abc import ABC, abstractmethod


class IdentityService(ABC):
    """Abstract base class for account registration backends."""

    @abstractmethod
    async def register(self, email: str, password: str) -> str:
        """
        Register a login account.

        Args:
            email: Account email
            password: Plain credential as stored on the device

        Returns:
            The account id assigned by the identity service

        Raises:
            AccountAlreadyExistsError: If the email is already registered
            WeakPasswordError: If the credential is rejected
            IdentityNetworkError: If the service cannot be reached
            IdentityServiceError: On any other refusal
        """
        pass
