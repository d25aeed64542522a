"""``HiveTenancy`` — the request-time tenant & identity resolution facade.

The facade wires the lookup store, the tenant locator, the branding resolver,
and the session resolver together, and exposes the per-request operations the
rest of the dashboard consumes:

* :meth:`HiveTenancy.get_brand_for_request` — memoized branding record
* :meth:`HiveTenancy.get_current_session` — memoized session / user pair
* :meth:`HiveTenancy.require_user` — user or :class:`UnauthorizedError`
* :meth:`HiveTenancy.get_tenant_id` — memoized tenant id for the host
* :meth:`HiveTenancy.get_tenant_and_user` — tenant + user + membership guard

Every per-request method takes the request's
:class:`~hive_tenancy.core.context.RequestContext`.  When omitted, the
context published by the middleware is used.  Within one context each value is
computed at most once, however many components ask for it and whether they
ask sequentially or concurrently.

Typical setup::

    from fastapi import FastAPI
    from hive_tenancy import HiveTenancy, HiveTenancyConfig, RequestContextMiddleware
    from hive_tenancy.storage.database import SQLAlchemyLookupStore

    config = HiveTenancyConfig()                      # reads HIVE_* env vars
    store = SQLAlchemyLookupStore.from_config(config)
    hive = HiveTenancy(config, store)                 # JWT provider from config

    app = FastAPI(lifespan=hive.create_lifespan())
    app.add_middleware(RequestContextMiddleware, hive=hive, excluded_paths=["/health"])

Minimal setup — in-memory store and a custom provider::

    hive = HiveTenancy(HiveTenancyConfig(), InMemoryLookupStore(), session_provider=MyProvider())
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from hive_tenancy.core.context import RequestContext
from hive_tenancy.core.exceptions import (
    ConfigurationError,
    ForbiddenError,
    TenantNotFoundError,
    UnauthorizedError,
)
from hive_tenancy.core.types import BrandingRecord, SessionResult, TenantAndUser
from hive_tenancy.resolution.branding import FALLBACK_BRANDING, BrandingResolver
from hive_tenancy.resolution.host import parse_bare_host
from hive_tenancy.resolution.locator import TenantLocator
from hive_tenancy.resolution.session import SessionResolver, require_user, user_id_of

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from hive_tenancy.core.config import HiveTenancyConfig
    from hive_tenancy.core.types import SessionProvider, Tenant
    from hive_tenancy.storage.lookup_store import LookupStore

logger = logging.getLogger(__name__)

TENANT_ID_SLOT = "hive.tenant_id"
TENANT_SLOT = "hive.tenant"
BRANDING_SLOT = "hive.branding"
SESSION_SLOT = "hive.session"


def _build_session_provider(config: HiveTenancyConfig) -> SessionProvider:
    """Instantiate the session provider described by *config*.

    Raises:
        ConfigurationError: When no provider can be built.
    """
    if not config.jwt_secret:
        raise ConfigurationError(
            parameter="jwt_secret",
            reason=(
                "No session_provider was passed to HiveTenancy and jwt_secret is "
                "not configured for the built-in JWTSessionProvider."
            ),
        )
    from hive_tenancy.resolution.jwt import JWTSessionProvider  # noqa: PLC0415

    return JWTSessionProvider(
        secret=config.jwt_secret,
        algorithm=config.jwt_algorithm,
        cookie_name=config.session_cookie_name,
    )


class HiveTenancy:
    """Per-request tenant, branding, and session resolution.

    Args:
        config: Resolution configuration.
        store: Lookup store backend.
        session_provider: Authentication backend.  When ``None`` a
            :class:`~hive_tenancy.resolution.jwt.JWTSessionProvider` is built
            from ``config.jwt_secret``.

    Attributes:
        config: The configuration this instance was built with.
        store: The underlying lookup store.
        locator: Host → tenant id.
        branding: Tenant id → branding record.
        sessions: Headers → session result.
    """

    def __init__(
        self,
        config: HiveTenancyConfig,
        store: LookupStore,
        session_provider: SessionProvider | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.locator = TenantLocator(
            store,
            default_tenant_slug=config.default_tenant_slug,
            local_hosts=config.local_hosts,
        )
        fallback = FALLBACK_BRANDING.model_copy(
            update={
                "title_text": config.fallback_title,
                "favicon_url": config.fallback_favicon_url,
            }
        )
        self.branding = BrandingResolver(store, fallback=fallback)
        provider = (
            session_provider if session_provider is not None
            else _build_session_provider(config)
        )
        self.sessions = SessionResolver(provider)
        logger.info(
            "HiveTenancy created store=%s session_provider=%s",
            type(store).__name__,
            type(provider).__name__,
        )

    #############
    # Lifecycle #
    #############

    async def initialize(self) -> None:
        """Initialise the store (create tables if applicable).  Idempotent."""
        await self.store.initialize()
        logger.info("Store initialised: %s", type(self.store).__name__)

    async def close(self) -> None:
        await self.store.close()
        logger.info("HiveTenancy shut down cleanly")

    def create_lifespan(self) -> Any:
        """Return an async context manager for FastAPI's ``lifespan`` parameter."""
        from contextlib import asynccontextmanager  # noqa: PLC0415

        @asynccontextmanager
        async def _lifespan(app: Any) -> AsyncIterator[None]:
            await self.initialize()
            try:
                yield
            finally:
                await self.close()

        return _lifespan

    ##########################
    # Per-request operations #
    ##########################

    def bare_host(self, ctx: RequestContext | None = None) -> str:
        """Return the request's bare host (pure, not memoized)."""
        ctx = ctx or RequestContext.current()
        return parse_bare_host(ctx.headers, trust_x_forwarded=self.config.trust_x_forwarded)

    async def get_tenant_id(self, ctx: RequestContext | None = None) -> str | None:
        """Return the id of the tenant owning the request's host, or ``None``."""
        ctx = ctx or RequestContext.current()

        async def _locate() -> str | None:
            return await self.locator.locate(self.bare_host(ctx))

        return await ctx.memoize(TENANT_ID_SLOT, _locate)

    async def get_brand_for_request(self, ctx: RequestContext | None = None) -> BrandingRecord:
        """Return the request's branding record."""
        ctx = ctx or RequestContext.current()

        async def _brand() -> BrandingRecord:
            tenant_id = await self.get_tenant_id(ctx)
            return await self.branding.resolve(tenant_id)

        return await ctx.memoize(BRANDING_SLOT, _brand)

    async def get_current_session(self, ctx: RequestContext | None = None) -> SessionResult:
        """Return the request's session and user.  Never raises."""
        ctx = ctx or RequestContext.current()

        async def _session() -> SessionResult:
            return await self.sessions.resolve(ctx.headers)

        return await ctx.memoize(SESSION_SLOT, _session)

    async def require_user(self, ctx: RequestContext | None = None) -> Any:
        """Return the authenticated user.

        Raises:
            UnauthorizedError: When the request is not authenticated.
        """
        return require_user(await self.get_current_session(ctx))

    async def resolve(
        self, ctx: RequestContext | None = None
    ) -> tuple[BrandingRecord, SessionResult]:
        """Resolve branding and session concurrently."""
        ctx = ctx or RequestContext.current()
        brand, session = await asyncio.gather(
            self.get_brand_for_request(ctx),
            self.get_current_session(ctx),
        )
        return brand, session

    async def get_tenant(self, ctx: RequestContext | None = None) -> Tenant | None:
        """Return the full tenant record for the request.

        Tries the host's tenant first, then the default tenant slug, then the
        earliest tenant in the store.  ``None`` only when no tenant exists.
        """
        ctx = ctx or RequestContext.current()

        async def _tenant() -> Tenant | None:
            tenant_id = await self.get_tenant_id(ctx)
            tenant = await self.store.get_tenant_by_id(tenant_id) if tenant_id else None
            if tenant is None and not self.locator.is_default_host(self.bare_host(ctx)):
                tenant = await self.store.get_tenant_by_slug(self.config.default_tenant_slug)
            if tenant is None:
                tenant = await self.store.get_first_tenant()
                if tenant is not None:
                    logger.warning(
                        "Falling back to first tenant %s for host %r",
                        tenant.id,
                        self.bare_host(ctx),
                    )
            return tenant

        return await ctx.memoize(TENANT_SLOT, _tenant)

    async def get_tenant_and_user(
        self,
        ctx: RequestContext | None = None,
        *,
        allow_guest: bool = False,
        require_membership: bool = True,
    ) -> TenantAndUser | None:
        """Return the tenant, user, and membership for an authenticated request.

        Args:
            ctx: The request context.
            allow_guest: Return ``None`` instead of raising for anonymous
                requests.
            require_membership: Require an active membership of the user in
                the resolved tenant.

        Raises:
            UnauthorizedError: Anonymous request and ``allow_guest`` is false.
            TenantNotFoundError: No tenant is provisioned at all.
            ForbiddenError: Membership missing or not active.
        """
        ctx = ctx or RequestContext.current()
        session = await self.get_current_session(ctx)
        user_id = user_id_of(session.user)
        if user_id is None:
            if allow_guest:
                return None
            raise UnauthorizedError()

        host = self.bare_host(ctx)
        tenant = await self.get_tenant(ctx)
        if tenant is None:
            raise TenantNotFoundError(
                host=host,
                details={"hint": "Seed at least one tenant (e.g. the default tenant)."},
            )

        membership = await self.store.get_membership(tenant.id, user_id)
        role_key = membership.role_key if membership is not None else None

        if require_membership:
            if membership is None:
                raise ForbiddenError("membership_required", tenant_id=tenant.id)
            if not membership.is_active():
                raise ForbiddenError(
                    "membership_inactive",
                    tenant_id=tenant.id,
                    details={"status": membership.status.value},
                )

        return TenantAndUser(
            user=session.user,
            tenant=tenant,
            host=host,
            membership=membership,
            role_key=role_key,
            is_central_superadmin=role_key == self.config.central_superadmin_role,
        )

    ##################
    # Origin checks  #
    ##################

    async def is_trusted_origin(self, origin: str | None) -> bool:
        """Return ``True`` when *origin* may make credentialed requests.

        Trusted origins are the configured ``base_url``, ``localhost`` /
        ``*.localhost`` outside production, and any origin whose hostname has
        a domain mapping.
        """
        if not origin:
            return False
        try:
            parts = urlsplit(origin)
            hostname = (parts.hostname or "").lower()
        except ValueError:
            return False
        if not parts.scheme or not hostname:
            return False

        normalized = f"{parts.scheme}://{parts.netloc}".lower()
        if self.config.base_url and normalized == self.config.base_url.rstrip("/").lower():
            return True
        if not self.config.production and (
            hostname == "localhost" or hostname.endswith(".localhost")
        ):
            return True
        return await self.store.get_domain(hostname) is not None


__all__ = [
    "BRANDING_SLOT",
    "SESSION_SLOT",
    "TENANT_ID_SLOT",
    "TENANT_SLOT",
    "HiveTenancy",
]
