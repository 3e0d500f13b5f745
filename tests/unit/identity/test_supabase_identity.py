"""
Unit tests for SupabaseIdentityService.

HTTP traffic is served by ``httpx.MockTransport``.
"""

from __future__ import annotations

import json

import httpx
import pytest

from tankersync.exceptions import (
    AccountAlreadyExistsError,
    IdentityNetworkError,
    IdentityServiceError,
    WeakPasswordError,
)
from tankersync.identity import SupabaseIdentityService

URL = "https://project.supabase.co"
KEY = "service-role-key"


def service_with(handler) -> SupabaseIdentityService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseIdentityService(URL, KEY, client=client, enable_tracing=False)


async def test_register_posts_to_admin_endpoint() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "acct-123", "email": "a@example.com"})

    service = service_with(handler)

    account_id = await service.register("a@example.com", "secret-1")

    assert account_id == "acct-123"
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == f"{URL}/auth/v1/admin/users"
    assert request.headers["apikey"] == KEY
    assert request.headers["authorization"] == f"Bearer {KEY}"
    assert json.loads(request.content) == {
        "email": "a@example.com",
        "password": "secret-1",
        "email_confirm": True,
    }


async def test_trailing_slash_in_url() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"id": "acct-1"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = SupabaseIdentityService(f"{URL}/", KEY, client=client, enable_tracing=False)

    await service.register("a@example.com", "secret-1")

    assert seen == [f"{URL}/auth/v1/admin/users"]


@pytest.mark.parametrize(
    ("status", "body", "error_type"),
    [
        (422, {"error_code": "email_exists", "msg": "Email address already registered"}, AccountAlreadyExistsError),
        (422, {"msg": "A user with this email address has already been registered"}, AccountAlreadyExistsError),
        (422, {"error_code": "weak_password", "msg": "Password should be at least 6 characters"}, WeakPasswordError),
        (400, {"msg": "Password is too weak"}, WeakPasswordError),
        (401, {"msg": "Invalid API key"}, IdentityServiceError),
        (503, {"msg": "upstream unavailable"}, IdentityNetworkError),
    ],
)
async def test_error_responses_are_mapped(
    status: int, body: dict, error_type: type[IdentityServiceError]
) -> None:
    service = service_with(lambda request: httpx.Response(status, json=body))

    with pytest.raises(error_type) as exc_info:
        await service.register("a@example.com", "pw")

    assert type(exc_info.value) is error_type
    assert exc_info.value.email == "a@example.com"


async def test_transport_error_is_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    service = service_with(handler)

    with pytest.raises(IdentityNetworkError, match="ConnectError"):
        await service.register("a@example.com", "secret-1")


async def test_success_without_id_is_an_error() -> None:
    service = service_with(lambda request: httpx.Response(200, json={"email": "a@example.com"}))

    with pytest.raises(IdentityServiceError, match="no account id"):
        await service.register("a@example.com", "secret-1")


async def test_non_json_error_body() -> None:
    service = service_with(lambda request: httpx.Response(404, text="not found"))

    with pytest.raises(IdentityServiceError, match="HTTP 404"):
        await service.register("a@example.com", "secret-1")


async def test_owned_client_is_closed() -> None:
    service = SupabaseIdentityService(URL, KEY, enable_tracing=False)

    async with service:
        pass

    assert service._client.is_closed


async def test_injected_client_is_left_open() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

    async with SupabaseIdentityService(URL, KEY, client=client, enable_tracing=False):
        pass

    assert not client.is_closed
    await client.aclose()
