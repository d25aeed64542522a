"""
Basic Example 1 — Hive Dashboard
================================
One dashboard process serving several tenants, each on its own domain, with
per-tenant branding and a signed session cookie.

What you'll learn
-----------------
- Wiring HiveTenancy, its lifespan, and RequestContextMiddleware
- Branding resolution: tenant row → default row → built-in fallback
- Session resolution and the require-user / membership guards
- How every value is computed once per request, however often it is asked for

Run
---
    pip install "hive-tenancy[sqlite]"
    pip install "fastapi[standard]"
    export HIVE_JWT_SECRET="change-me-to-a-long-random-secret-value"
    uvicorn main:app --reload

Test (simulating domains via the Host header)
----
    # Local host → central-hive tenant, default branding
    curl http://localhost:8000/branding

    # Mapped domain → Acme branding
    curl http://localhost:8000/branding -H "Host: acme.example.com"

    # Unknown domain → default branding (no error)
    curl http://localhost:8000/branding -H "Host: nobody.example.com"

    # Issue a token, then call an authenticated route
    TOKEN=$(python generate_token.py u-ada)
    curl http://localhost:8000/workspace -H "Host: acme.example.com" \\
         -H "Authorization: Bearer $TOKEN"

    # Anonymous → 303 to /sign-in?callbackURL=/workspace
    curl -i http://localhost:8000/workspace -H "Host: acme.example.com"
"""
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI

from hive_tenancy import (
    BrandingRecord,
    BrandingSettings,
    HiveTenancy,
    HiveTenancyConfig,
    Membership,
    RequestContextMiddleware,
    SessionResult,
    Tenant,
    TenantAndUser,
    TenantDomain,
)
from hive_tenancy.dependencies import (
    make_brand_dependency,
    make_session_dependency,
    make_tenant_and_user_dependency,
)
from hive_tenancy.storage.database import SQLAlchemyLookupStore

config = HiveTenancyConfig(
    database_url="sqlite+aiosqlite:///:memory:",
    unauthorized_redirect="/sign-in",
)

store = SQLAlchemyLookupStore.from_config(config)
hive = HiveTenancy(config, store)

get_brand = make_brand_dependency(hive)
get_session = make_session_dependency(hive)
get_member = make_tenant_and_user_dependency(hive)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with hive.create_lifespan()(app):
        await store.add_tenant(Tenant(id="t1", slug="central-hive", name="Central Hive"))
        await store.add_tenant(Tenant(id="t2", slug="acme", name="Acme Corp"))
        await store.add_domain(TenantDomain(domain="acme.example.com", tenant_id="t2"))
        await store.add_branding(
            BrandingSettings(id="b1", is_default=True, title_text="Hive", favicon_url="favicon.ico")
        )
        await store.add_branding(
            BrandingSettings(
                id="b2",
                tenant_id="t2",
                title_text="Acme Hive",
                logo_light_url="https://cdn.acme.example.com/logo-light.svg",
                logo_dark_url="acme/logo-dark.svg",
            )
        )
        await store.add_membership(Membership(tenant_id="t2", user_id="u-ada", role_key="admin"))
        yield


app = FastAPI(title="Hive Dashboard Demo", lifespan=lifespan)
app.add_middleware(
    RequestContextMiddleware,
    hive=hive,
    excluded_paths=["/health", "/sign-in"],
)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/sign-in")
async def sign_in(callbackURL: str = "/"):  # noqa: N803
    return {"message": "Sign in, then continue", "callbackURL": callbackURL}


@app.get("/branding")
async def branding(brand: Annotated[BrandingRecord, Depends(get_brand)]):
    return brand


@app.get("/layout")
async def layout(
    brand: Annotated[BrandingRecord, Depends(get_brand)],
    session: Annotated[SessionResult, Depends(get_session)],
) -> dict[str, Any]:
    # The header, the sidebar, and the page all read the same per-request values.
    header_brand = await hive.get_brand_for_request()
    return {
        "title": brand.title_text,
        "logo": brand.logo_light_url,
        "shared": header_brand is brand,
        "signed_in": session.is_authenticated,
    }


@app.get("/workspace")
async def workspace(member: Annotated[TenantAndUser, Depends(get_member)]):
    return {
        "tenant": member.tenant.name,
        "user": member.user.id,
        "role": member.role_key,
        "central_superadmin": member.is_central_superadmin,
    }
