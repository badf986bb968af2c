"""Tests for permission catalog adapters."""

import httpx
import pytest

from academy.core.rbac.permissions import SUPERADMIN_PERMISSION
from academy.services.catalog import (
    DirectoryPermissionCatalog,
    HttpPermissionCatalog,
    PermissionFetchError,
    parse_permissions_response,
)
from tests.factories import make_actor


class TestDirectoryPermissionCatalog:
    """Test the in-memory directory."""

    @pytest.mark.asyncio
    async def test_fetch_effective_permissions(self):
        actor = make_actor("u1", "read:users", "block:users", blocked=["block:users"])
        catalog = DirectoryPermissionCatalog([actor])
        assert await catalog.fetch_effective_permissions("u1") == frozenset(["read:users"])

    @pytest.mark.asyncio
    async def test_unknown_actor(self):
        catalog = DirectoryPermissionCatalog()
        with pytest.raises(PermissionFetchError) as exc_info:
            await catalog.fetch_effective_permissions("ghost")
        assert exc_info.value.actor_id == "ghost"

    @pytest.mark.asyncio
    async def test_remove(self):
        catalog = DirectoryPermissionCatalog([make_actor("u1")])
        catalog.remove("u1")
        catalog.remove("u1")
        with pytest.raises(PermissionFetchError):
            await catalog.fetch_effective_permissions("u1")


class TestParsePermissionsResponse:
    """Test directory response parsing."""

    def test_permission_names(self):
        assert parse_permissions_response({"permissionNames": ["a:b", "c:d"]}) == frozenset(["a:b", "c:d"])

    def test_available_permissions(self):
        payload = {"availablePermissions": [{"id": 1, "name": "read:users"}, {"id": 2, "name": "audit:logs"}]}
        assert parse_permissions_response(payload) == frozenset(["read:users", "audit:logs"])

    def test_empty_list_is_valid(self):
        assert parse_permissions_response({"permissionNames": []}) == frozenset()

    def test_superadmin_role_adds_override(self):
        payload = {"availablePermissions": [], "role": {"name": "SuperAdmin"}}
        assert parse_permissions_response(payload) == frozenset([SUPERADMIN_PERMISSION])

    def test_role_name_string(self):
        payload = {"permissionNames": ["read:users"], "roleName": "superadmin"}
        assert SUPERADMIN_PERMISSION in parse_permissions_response(payload)

    @pytest.mark.parametrize("payload", [
        [],
        {},
        {"permissionNames": "read:users"},
        {"permissionNames": [1]},
        {"availablePermissions": [{"id": 1}]},
    ])
    def test_invalid_payloads(self, payload):
        with pytest.raises(ValueError):
            parse_permissions_response(payload)


class TestHttpPermissionCatalog:
    """Test fetching over HTTP."""

    @pytest.mark.asyncio
    async def test_fetch(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"permissionNames": ["read:users"]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            catalog = HttpPermissionCatalog("http://directory.test/api/", client=client)
            permissions = await catalog.fetch_effective_permissions("42")

        assert permissions == frozenset(["read:users"])
        assert seen == ["/api/users/42/permissions"]

    def test_permissions_url(self):
        catalog = HttpPermissionCatalog("http://directory.test/api/")
        assert catalog.permissions_url("7") == "http://directory.test/api/users/7/permissions"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403, 404, 500])
    async def test_any_error_status_is_a_fetch_error(self, status_code):
        transport = httpx.MockTransport(lambda request: httpx.Response(status_code))
        async with httpx.AsyncClient(transport=transport) as client:
            catalog = HttpPermissionCatalog("http://directory.test", client=client)
            with pytest.raises(PermissionFetchError):
                await catalog.fetch_effective_permissions("42")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            catalog = HttpPermissionCatalog("http://directory.test", client=client)
            with pytest.raises(PermissionFetchError):
                await catalog.fetch_effective_permissions("42")

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="not json"))
        async with httpx.AsyncClient(transport=transport) as client:
            catalog = HttpPermissionCatalog("http://directory.test", client=client)
            with pytest.raises(PermissionFetchError):
                await catalog.fetch_effective_permissions("42")
