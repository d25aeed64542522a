"""Unit tests — hive_tenancy.resolution.locator.TenantLocator"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from hive_tenancy.core.exceptions import StorageError
from hive_tenancy.resolution.locator import TenantLocator

pytestmark = pytest.mark.unit


class TestLocate:
    async def test_mapped_domain(self, seeded, acme):
        locator = TenantLocator(seeded)
        assert await locator.locate("acme.example.com") == acme.id
        assert seeded.reads["get_domain"] == 1
        assert seeded.reads["get_tenant_by_slug"] == 0

    async def test_unmapped_domain_returns_none(self, seeded):
        locator = TenantLocator(seeded)
        assert await locator.locate("unknown.example.com") is None

    async def test_subdomain_is_not_matched(self, seeded):
        locator = TenantLocator(seeded)
        assert await locator.locate("www.acme.example.com") is None

    @pytest.mark.parametrize("host", ["localhost", "127.0.0.1", "::1", ""])
    async def test_local_hosts_resolve_to_default_tenant(self, seeded, central, host):
        locator = TenantLocator(seeded)
        assert await locator.locate(host) == central.id
        assert seeded.reads["get_domain"] == 0

    async def test_default_tenant_missing_returns_none(self, mem_store):
        locator = TenantLocator(mem_store)
        assert await locator.locate("localhost") is None

    async def test_custom_default_slug_and_local_hosts(self, seeded, acme):
        locator = TenantLocator(seeded, default_tenant_slug="acme", local_hosts=["dev.local"])
        assert await locator.locate("dev.local") == acme.id
        # localhost is no longer special and has no mapping
        assert await locator.locate("localhost") is None

    async def test_storage_errors_propagate(self):
        store = AsyncMock()
        store.get_domain.side_effect = StorageError("get_domain", "OperationalError")
        locator = TenantLocator(store)
        with pytest.raises(StorageError):
            await locator.locate("acme.example.com")
        store.get_domain.assert_awaited_once_with("acme.example.com")


class TestIsDefaultHost:
    def test_empty_host(self, mem_store):
        assert TenantLocator(mem_store).is_default_host("") is True

    def test_public_host(self, mem_store):
        assert TenantLocator(mem_store).is_default_host("acme.example.com") is False
