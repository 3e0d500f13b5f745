"""In-memory identity service for tests and dry demonstrations."""

from __future__ import annotations

import asyncio
from uuid import uuid4

from tankersync.exceptions import (
    AccountAlreadyExistsError,
    IdentityNetworkError,
    WeakPasswordError,
)
from tankersync.identity.interface import IdentityService


class InMemoryIdentityService(IdentityService):
    """
    Identity service keeping accounts in a dictionary.

    Failure injection:
        reachable: When False every call raises ``IdentityNetworkError``
        min_password_length: Shorter credentials raise ``WeakPasswordError``

    Attributes:
        accounts: Registered ``email -> account_id``
        register_calls: Every email passed to ``register``, in call order
    """

    def __init__(self, *, min_password_length: int = 6) -> None:
        self.accounts: dict[str, str] = {}
        self.register_calls: list[str] = []
        self.reachable = True
        self.min_password_length = min_password_length
        self._lock = asyncio.Lock()

    async def register(self, email: str, password: str) -> str:
        async with self._lock:
            self.register_calls.append(email)
            if not self.reachable:
                raise IdentityNetworkError(email, "identity service unreachable")
            key = email.strip().lower()
            if key in self.accounts:
                raise AccountAlreadyExistsError(email)
            if len(password) < self.min_password_length:
                raise WeakPasswordError(
                    email, f"at least {self.min_password_length} characters required"
                )
            account_id = str(uuid4())
            self.accounts[key] = account_id
            return account_id
