"""Shared pytest fixtures for the hive-tenancy test suite.

Hierarchy
---------
mem_store               fresh InMemoryLookupStore per test
central                 the default tenant ("central-hive") seeded into mem_store
acme                    second tenant, mapped to acme.example.com, with its own branding
default_branding        global default branding row
provider                FakeSessionProvider counting get_session calls
config                  HiveTenancyConfig with a test JWT secret
hive                    HiveTenancy over mem_store + provider
asgi_app                minimal FastAPI + RequestContextMiddleware
http_client             httpx.AsyncClient → asgi_app
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from httpx import ASGITransport, AsyncClient
import pytest
import pytest_asyncio

from hive_tenancy.core.config import HiveTenancyConfig
from hive_tenancy.core.types import (
    BrandingSettings,
    Membership,
    MembershipStatus,
    Session,
    Tenant,
    TenantDomain,
    User,
)
from hive_tenancy.manager import HiveTenancy
from hive_tenancy.middleware.request_context import RequestContextMiddleware
from hive_tenancy.storage.memory import InMemoryLookupStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

TEST_JWT_SECRET = "test-secret-that-is-at-least-32-characters-long"

T0 = datetime(2024, 1, 1, tzinfo=UTC)
T1 = datetime(2024, 2, 1, tzinfo=UTC)


####################
# Session provider #
####################


class FakeSessionProvider:
    """Session provider keyed on ``Authorization: Bearer <user-id>``.

    ``Bearer broken`` raises, any other bearer value yields a session for
    that user id, and no header yields ``None``.
    """

    def __init__(self) -> None:
        self.calls = 0
        self.seen: list[Mapping[str, str]] = []

    async def get_session(self, headers: Mapping[str, str]) -> Any:
        self.calls += 1
        self.seen.append(headers)
        auth = headers.get("authorization", "")
        if not auth.startswith("Bearer "):
            return None
        token = auth.removeprefix("Bearer ")
        if token == "broken":
            raise RuntimeError("session backend unavailable")
        return Session(id=f"s-{token}", user=User(id=token, email=f"{token}@example.com"))


@pytest.fixture
def provider() -> FakeSessionProvider:
    return FakeSessionProvider()


###################
# In-memory store #
###################


@pytest.fixture
def mem_store() -> InMemoryLookupStore:
    return InMemoryLookupStore()


@pytest_asyncio.fixture
async def central(mem_store: InMemoryLookupStore) -> Tenant:
    return await mem_store.add_tenant(
        Tenant(id="t-central", slug="central-hive", name="Central Hive", created_at=T0)
    )


@pytest_asyncio.fixture
async def default_branding(mem_store: InMemoryLookupStore) -> BrandingSettings:
    return await mem_store.add_branding(
        BrandingSettings(
            id="b-default",
            is_default=True,
            title_text="Hive Default",
            logo_light_url="logos/light.svg",
            favicon_url="/favicon-default.ico",
            created_at=T0,
        )
    )


@pytest_asyncio.fixture
async def acme(mem_store: InMemoryLookupStore) -> Tenant:
    tenant = await mem_store.add_tenant(
        Tenant(id="t-acme", slug="acme", name="Acme", created_at=T1)
    )
    await mem_store.add_domain(TenantDomain(domain="acme.example.com", tenant_id=tenant.id))
    await mem_store.add_branding(
        BrandingSettings(
            id="b-acme",
            tenant_id=tenant.id,
            title_text="Acme Hive",
            logo_light_url="https://cdn.acme.test/light.png",
            logo_dark_url="acme/dark.png",
            created_at=T1,
        )
    )
    await mem_store.add_membership(
        Membership(tenant_id=tenant.id, user_id="u-ada", role_key="admin")
    )
    await mem_store.add_membership(
        Membership(
            tenant_id=tenant.id,
            user_id="u-sus",
            role_key="member",
            status=MembershipStatus.SUSPENDED,
        )
    )
    return tenant


@pytest_asyncio.fixture
async def seeded(
    mem_store: InMemoryLookupStore,
    central: Tenant,
    default_branding: BrandingSettings,
    acme: Tenant,
) -> InMemoryLookupStore:
    """Store holding both tenants and the default branding; read counters reset."""
    mem_store.reads.clear()
    return mem_store


###########
# Configs #
###########


@pytest.fixture
def config() -> HiveTenancyConfig:
    return HiveTenancyConfig(jwt_secret=TEST_JWT_SECRET)


###########
# Facade  #
###########


@pytest_asyncio.fixture
async def hive(
    config: HiveTenancyConfig,
    mem_store: InMemoryLookupStore,
    provider: FakeSessionProvider,
) -> AsyncIterator[HiveTenancy]:
    h = HiveTenancy(config, mem_store, session_provider=provider)
    await h.initialize()
    yield h
    await h.close()


##########################
# ASGI app + HTTP client #
##########################


@pytest_asyncio.fixture
async def asgi_app(hive: HiveTenancy):
    """Return a minimal FastAPI app wrapped in RequestContextMiddleware."""
    from fastapi import Depends, FastAPI  # noqa: PLC0415

    from hive_tenancy.dependencies import (  # noqa: PLC0415
        make_brand_dependency,
        make_require_user_dependency,
        make_session_dependency,
        make_tenant_and_user_dependency,
    )

    get_brand = make_brand_dependency(hive)
    get_session = make_session_dependency(hive)
    get_user = make_require_user_dependency(hive)
    get_member = make_tenant_and_user_dependency(hive)

    app = FastAPI()
    app.add_middleware(
        RequestContextMiddleware,
        hive=hive,
        excluded_paths=["/health"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/brand")
    async def brand(record: Any = Depends(get_brand)):
        return record.model_dump()

    @app.get("/layout")
    async def layout(
        record: Any = Depends(get_brand),
        session: Any = Depends(get_session),
    ):
        # Handler asks again on top of the dependencies.
        again = await hive.get_brand_for_request()
        user = session.user
        return {
            "title": record.title_text,
            "same_brand": again is record,
            "user": user.id if user is not None else None,
        }

    @app.get("/me")
    async def me(user: Any = Depends(get_user)):
        return {"id": user.id}

    @app.get("/workspace")
    async def workspace(member: Any = Depends(get_member)):
        return {
            "tenant": member.tenant.slug,
            "role": member.role_key,
            "host": member.host,
        }

    return app


@pytest_asyncio.fixture
async def http_client(asgi_app, seeded: InMemoryLookupStore) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=asgi_app),
        base_url="http://acme.example.com",
    ) as client:
        yield client
