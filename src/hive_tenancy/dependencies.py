"""FastAPI dependency factories for branding, session, and user resolution.

Closure-based factories
-----------------------
Every factory captures the :class:`~hive_tenancy.manager.HiveTenancy`
instance in a closure at startup, so no ``app.state`` lookup is needed and
the dependencies work regardless of application startup order.

The request's :class:`~hive_tenancy.core.context.RequestContext` is read from
``request.state`` (populated by
:class:`~hive_tenancy.middleware.request_context.RequestContextMiddleware`).
A route that bypassed the middleware still works: a context is created for
that request and cached on its state, then closed when the request finishes.

Usage pattern::

    from typing import Annotated
    from fastapi import Depends

    get_brand = make_brand_dependency(hive)
    get_user = make_require_user_dependency(hive)

    @app.get("/dashboard")
    async def dashboard(
        brand: Annotated[BrandingRecord, Depends(get_brand)],
        user: Annotated[User, Depends(get_user)],
    ):
        ...

However many dependencies (or nested sub-dependencies) ask for the brand or
the session within one request, each is resolved exactly once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends, Request

from hive_tenancy.core.context import RequestContext
from hive_tenancy.core.types import BrandingRecord, SessionResult, TenantAndUser
from hive_tenancy.middleware.request_context import STATE_KEY, context_from_state

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from hive_tenancy.manager import HiveTenancy


async def request_context(request: Request) -> AsyncIterator[RequestContext]:
    """FastAPI dependency — yield the request's :class:`RequestContext`.

    A context created here (no middleware ran for the request) is closed
    once the request's dependencies are torn down.
    """
    ctx = context_from_state(request.state)
    created = ctx is None
    if ctx is None:
        ctx = RequestContext(request.headers)
        setattr(request.state, STATE_KEY, ctx)
    try:
        yield ctx
    finally:
        if created:
            ctx.close()


#: Annotated alias for the request context dependency.
RequestContextDep = Annotated[RequestContext, Depends(request_context)]


def make_brand_dependency(hive: HiveTenancy) -> Any:
    """Create a dependency returning the request's branding record."""

    async def _get_brand(ctx: RequestContextDep) -> BrandingRecord:
        return await hive.get_brand_for_request(ctx)

    return _get_brand


def make_session_dependency(hive: HiveTenancy) -> Any:
    """Create a dependency returning the request's session result (never raises)."""

    async def _get_session(ctx: RequestContextDep) -> SessionResult:
        return await hive.get_current_session(ctx)

    return _get_session


def make_require_user_dependency(hive: HiveTenancy) -> Any:
    """Create a dependency returning the authenticated user.

    Raises ``UnauthorizedError`` for anonymous requests, which the middleware
    answers with ``401`` (or a sign-in redirect).
    """

    async def _require_user(ctx: RequestContextDep) -> Any:
        return await hive.require_user(ctx)

    return _require_user


def make_tenant_and_user_dependency(
    hive: HiveTenancy,
    *,
    allow_guest: bool = False,
    require_membership: bool = True,
) -> Any:
    """Create a dependency returning tenant, user, and membership.

    Args:
        hive: The configured facade.
        allow_guest: Yield ``None`` instead of raising for anonymous requests.
        require_membership: Require an active membership in the tenant.
    """

    async def _get_tenant_and_user(ctx: RequestContextDep) -> TenantAndUser | None:
        return await hive.get_tenant_and_user(
            ctx,
            allow_guest=allow_guest,
            require_membership=require_membership,
        )

    return _get_tenant_and_user


__all__ = [
    "RequestContextDep",
    "make_brand_dependency",
    "make_require_user_dependency",
    "make_session_dependency",
    "make_tenant_and_user_dependency",
    "request_context",
]
