"""
Supabase Auth identity service.

Registers accounts through the GoTrue admin endpoint
(``POST {url}/auth/v1/admin/users``) with the project's service-role key,
so accounts are created already confirmed and no email is sent.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tankersync.exceptions import (
    AccountAlreadyExistsError,
    IdentityNetworkError,
    IdentityServiceError,
    WeakPasswordError,
)
from tankersync.identity.interface import IdentityService
from tankersync.observability import Tracer, create_tracer

logger = logging.getLogger(__name__)

ADMIN_USERS_PATH = "/auth/v1/admin/users"

_ALREADY_REGISTERED_CODES = frozenset({"email_exists", "user_already_exists"})
_WEAK_PASSWORD_CODES = frozenset({"weak_password"})


class SupabaseIdentityService(IdentityService):
    """
    IdentityService backed by Supabase Auth.

    Example:
        >>> async with SupabaseIdentityService(url, service_role_key) as identity:
        ...     account_id = await identity.register("a@example.com", "s3cret!")

    Args:
        url: Project URL, e.g. ``https://abc.supabase.co``
        service_role_key: Service-role API key (admin rights)
        client: Optional pre-configured ``httpx.AsyncClient``; when omitted
            one is created and closed by this service
        timeout: Request timeout in seconds for the owned client
    """

    def __init__(
        self,
        url: str,
        service_role_key: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._url = url.rstrip("/")
        self._service_role_key = service_role_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=5.0))
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    async def __aenter__(self) -> SupabaseIdentityService:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
            "Content-Type": "application/json",
        }

    async def register(self, email: str, password: str) -> str:
        with self._tracer.span("tankersync.identity.register", {"http.method": "POST"}):
            try:
                response = await self._client.post(
                    f"{self._url}{ADMIN_USERS_PATH}",
                    headers=self._headers(),
                    json={"email": email, "password": password, "email_confirm": True},
                )
            except httpx.TransportError as e:
                raise IdentityNetworkError(email, f"{type(e).__name__}: {e}") from e

        if response.is_success:
            account_id = _json_body(response).get("id")
            if not account_id:
                raise IdentityServiceError(email, "response carried no account id")
            logger.debug("Registered identity account %s", account_id)
            return str(account_id)

        raise _error_from_response(email, response)


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_from_response(email: str, response: httpx.Response) -> IdentityServiceError:
    """Map a GoTrue error response onto the identity exception hierarchy."""
    body = _json_body(response)
    code = str(body.get("error_code") or body.get("code") or "")
    message = str(body.get("msg") or body.get("message") or body.get("error_description") or "")
    lowered = message.lower()

    if response.status_code in (400, 422):
        if code in _ALREADY_REGISTERED_CODES or "already" in lowered:
            return AccountAlreadyExistsError(email)
        if code in _WEAK_PASSWORD_CODES or "password" in lowered:
            return WeakPasswordError(email, message or None)
    if response.status_code >= 500:
        return IdentityNetworkError(email, f"HTTP {response.status_code}")
    return IdentityServiceError(email, f"HTTP {response.status_code}: {message or 'rejected'}")
