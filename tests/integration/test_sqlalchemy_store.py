"""Integration tests — hive_tenancy.storage.database.SQLAlchemyLookupStore

Runs against SQLite :memory: through aiosqlite, so no external database is
needed.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from hive_tenancy.core.config import HiveTenancyConfig
from hive_tenancy.core.context import RequestContext
from hive_tenancy.core.exceptions import ConfigurationError, StorageError
from hive_tenancy.core.types import (
    BrandingSettings,
    Membership,
    MembershipStatus,
    Tenant,
    TenantDomain,
)
from hive_tenancy.manager import HiveTenancy
from hive_tenancy.storage.database import SQLAlchemyLookupStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

pytestmark = pytest.mark.integration

_T0 = datetime(2024, 1, 1, tzinfo=UTC)
_T1 = datetime(2024, 6, 1, tzinfo=UTC)


@pytest_asyncio.fixture
async def sqlite_store() -> AsyncIterator[SQLAlchemyLookupStore]:
    s = SQLAlchemyLookupStore("sqlite+aiosqlite:///:memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def populated(sqlite_store: SQLAlchemyLookupStore) -> SQLAlchemyLookupStore:
    await sqlite_store.add_tenant(
        Tenant(id="t-central", slug="central-hive", name="Central Hive", created_at=_T0)
    )
    await sqlite_store.add_tenant(Tenant(id="t-acme", slug="acme", name="Acme", created_at=_T1))
    await sqlite_store.add_domain(TenantDomain(domain="acme.example.com", tenant_id="t-acme"))
    await sqlite_store.add_branding(
        BrandingSettings(
            id="b-default",
            is_default=True,
            title_text="Hive Default",
            favicon_url="favicon.ico",
            created_at=_T0,
        )
    )
    await sqlite_store.add_branding(
        BrandingSettings(
            id="b-acme",
            tenant_id="t-acme",
            title_text="Acme Hive",
            logo_dark_url="dark.png",
            created_at=_T1,
        )
    )
    await sqlite_store.add_membership(
        Membership(tenant_id="t-acme", user_id="u-ada", role_key="admin")
    )
    return sqlite_store


class TestReads:
    async def test_tenant_lookups(self, populated):
        by_slug = await populated.get_tenant_by_slug("central-hive")
        assert by_slug.id == "t-central"
        assert by_slug.created_at.tzinfo is not None
        assert (await populated.get_tenant_by_id("t-acme")).slug == "acme"
        assert (await populated.get_first_tenant()).id == "t-central"

    async def test_domain_lookup(self, populated):
        assert (await populated.get_domain("acme.example.com")).tenant_id == "t-acme"
        assert await populated.get_domain("other.example.com") is None

    async def test_branding_lookups(self, populated):
        assert (await populated.get_branding_for_tenant("t-acme")).title_text == "Acme Hive"
        assert await populated.get_branding_for_tenant("t-central") is None
        default = await populated.get_default_branding()
        assert default.id == "b-default"
        assert default.is_default is True

    async def test_default_branding_without_flag(self, sqlite_store):
        await sqlite_store.add_branding(BrandingSettings(id="b-late", created_at=_T1))
        await sqlite_store.add_branding(BrandingSettings(id="b-early", created_at=_T0))
        assert (await sqlite_store.get_default_branding()).id == "b-early"

    async def test_membership(self, populated):
        membership = await populated.get_membership("t-acme", "u-ada")
        assert membership.role_key == "admin"
        assert membership.status == MembershipStatus.ACTIVE
        assert await populated.get_membership("t-central", "u-ada") is None

    async def test_empty_store(self, sqlite_store):
        assert await sqlite_store.get_first_tenant() is None
        assert await sqlite_store.get_default_branding() is None


class TestWrites:
    async def test_duplicate_slug_rejected(self, populated):
        with pytest.raises(ValueError, match="already exists"):
            await populated.add_tenant(Tenant(id="t-new", slug="acme", name="Dup"))

    async def test_duplicate_domain_rejected(self, populated):
        with pytest.raises(ValueError, match="already mapped"):
            await populated.add_domain(
                TenantDomain(domain="acme.example.com", tenant_id="t-central")
            )

    async def test_second_branding_row_for_tenant_rejected(self, populated):
        with pytest.raises(ValueError):
            await populated.add_branding(BrandingSettings(id="b-2", tenant_id="t-acme"))

    async def test_membership_upsert(self, populated):
        await populated.add_membership(
            Membership(
                tenant_id="t-acme",
                user_id="u-ada",
                role_key="viewer",
                status=MembershipStatus.SUSPENDED,
            )
        )
        membership = await populated.get_membership("t-acme", "u-ada")
        assert membership.role_key == "viewer"
        assert membership.status == MembershipStatus.SUSPENDED


class TestFailures:
    async def test_missing_tables_raise_storage_error(self):
        store = SQLAlchemyLookupStore("sqlite+aiosqlite:///:memory:")
        try:
            with pytest.raises(StorageError) as exc_info:
                await store.get_domain("acme.example.com")
            assert exc_info.value.operation == "get_domain"
        finally:
            await store.close()


class TestFromConfig:
    async def test_echo_flag_reaches_engine(self):
        config = HiveTenancyConfig(database_url="sqlite+aiosqlite:///:memory:", database_echo=True)
        store = SQLAlchemyLookupStore.from_config(config)
        try:
            assert store._engine.sync_engine.echo is True
            await store.initialize()
            assert await store.get_default_branding() is None
        finally:
            await store.close()

    async def test_echo_off_by_default(self):
        store = SQLAlchemyLookupStore.from_config(
            HiveTenancyConfig(database_url="sqlite+aiosqlite:///:memory:")
        )
        try:
            assert store._engine.sync_engine.echo is False
        finally:
            await store.close()

    def test_missing_url_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            SQLAlchemyLookupStore.from_config(HiveTenancyConfig(database_url=None))
        assert exc_info.value.parameter == "database_url"


class TestEndToEnd:
    async def test_branding_through_facade(self, populated, provider):
        hive = HiveTenancy(
            HiveTenancyConfig(jwt_secret="s" * 32), populated, session_provider=provider
        )
        acme = await hive.get_brand_for_request(RequestContext({"host": "acme.example.com"}))
        assert acme.title_text == "Acme Hive"
        assert acme.logo_dark_url == "/dark.png"
        assert acme.favicon_url is None

        local = await hive.get_brand_for_request(RequestContext({"host": "localhost:3000"}))
        assert local.title_text == "Hive Default"
        assert local.favicon_url == "/favicon.ico"
