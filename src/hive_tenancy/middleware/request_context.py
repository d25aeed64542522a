"""Raw ASGI middleware that gives every request its own resolution context.

For each HTTP / WebSocket connection the middleware:

1. builds a fresh :class:`~hive_tenancy.core.context.RequestContext` from the
   request headers;
2. publishes it through the context variable and on ``scope["state"]`` (as
   ``hive_context``) so dependencies and handlers can reach it;
3. runs the downstream app;
4. closes the context (cancelling any still-running computation) and
   restores the previous context variable value, even on error.

Nothing is resolved eagerly: tenant, branding, and session are computed the
first time something asks for them and then shared for the rest of the
request.

Why raw ASGI instead of ``BaseHTTPMiddleware``
----------------------------------------------
``BaseHTTPMiddleware`` buffers streaming responses and does not propagate
``ContextVar`` mutations to background tasks (Starlette issue #1001).  The
raw ASGI callable has neither problem.

Error handling
--------------
- ``UnauthorizedError`` → ``401`` JSON, or ``303`` to
  ``unauthorized_redirect?callbackURL=<path>`` when configured
- ``ForbiddenError`` → ``403 Forbidden``
- ``TenantNotFoundError`` → ``404 Not Found``
- Any other ``HiveTenancyError`` → ``500 Internal Server Error``

Error bodies have a stable ``{"detail": "..."}`` shape.  When the downstream
app already started its response the error is only logged.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from starlette.datastructures import Headers

from hive_tenancy.core.context import RequestContext
from hive_tenancy.core.exceptions import (
    ForbiddenError,
    HiveTenancyError,
    TenantNotFoundError,
    UnauthorizedError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

STATE_KEY = "hive_context"


def _json_response(
    send: Send,
    status_code: int,
    detail: str,
    extra_headers: list[tuple[bytes, bytes]] | None = None,
) -> Awaitable[None]:
    """Build and send a minimal JSON error response."""
    body = json.dumps({"detail": detail}).encode("utf-8")
    headers: list[tuple[bytes, bytes]] = [
        (b"content-type", b"application/json"),
        (b"content-length", str(len(body)).encode()),
    ]
    if extra_headers:
        headers.extend(extra_headers)

    async def _send() -> None:
        await send({"type": "http.response.start", "status": status_code, "headers": headers})
        await send({"type": "http.response.body", "body": body, "more_body": False})

    return _send()


def _redirect_response(send: Send, location: str) -> Awaitable[None]:
    async def _send() -> None:
        await send(
            {
                "type": "http.response.start",
                "status": 303,
                "headers": [
                    (b"location", location.encode("latin-1")),
                    (b"content-length", b"0"),
                ],
            }
        )
        await send({"type": "http.response.body", "body": b"", "more_body": False})

    return _send()


class RequestContextMiddleware:
    """Create, publish, and close a :class:`RequestContext` per request.

    Args:
        app: The downstream ASGI application.
        hive: The configured :class:`~hive_tenancy.manager.HiveTenancy`.
        excluded_paths: URL path prefixes that bypass the middleware
            (e.g. ``["/health", "/static"]``).

    Example::

        app.add_middleware(
            RequestContextMiddleware,
            hive=hive,
            excluded_paths=["/health", "/docs", "/openapi.json"],
        )
    """

    def __init__(
        self,
        app: ASGIApp,
        hive: Any,  # HiveTenancy
        excluded_paths: list[str] | None = None,
    ) -> None:
        self._app = app
        self._hive = hive
        self._excluded: list[str] = excluded_paths or []

    def _is_excluded(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self._excluded)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self._app(scope, receive, send)
            return

        path: str = scope.get("path", "/")
        if self._is_excluded(path):
            await self._app(scope, receive, send)
            return

        await self._handle(scope, receive, send)

    async def _handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        ctx = RequestContext(Headers(scope=scope))

        response_started = False

        async def _send_wrapper(message: dict[str, Any]) -> None:
            nonlocal response_started
            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        # Starlette wraps scope["state"] in a State object on first access.
        state = scope.setdefault("state", {})
        if isinstance(state, dict):
            state[STATE_KEY] = ctx
        else:
            setattr(state, STATE_KEY, ctx)

        token = RequestContext.set(ctx)
        try:
            await self._app(scope, receive, _send_wrapper)  # type: ignore[arg-type]
        except HiveTenancyError as exc:
            if scope["type"] != "http":
                raise
            if response_started:
                logger.exception(
                    "%s raised after response already started for request %s "
                    "; cannot send error response",
                    type(exc).__name__,
                    ctx.request_id,
                )
            else:
                await self._send_error(exc, scope, send, ctx)
        finally:
            ctx.close()
            RequestContext.reset(token)

    async def _send_error(
        self,
        exc: HiveTenancyError,
        scope: Scope,
        send: Send,
        ctx: RequestContext,
    ) -> None:
        """Answer the client for *exc*."""
        if isinstance(exc, UnauthorizedError):
            redirect = self._hive.config.unauthorized_redirect
            if redirect:
                logger.debug("Unauthenticated request %s redirected", ctx.request_id)
                location = f"{redirect}?callbackURL={quote(path_with_query(scope), safe='')}"
                await _redirect_response(send, location)
                return
            await _json_response(
                send,
                401,
                "Authentication required",
                extra_headers=[(b"www-authenticate", b"Bearer")],
            )
        elif isinstance(exc, ForbiddenError):
            logger.info("Forbidden request %s: %s", ctx.request_id, exc.reason)
            await _json_response(send, 403, "Forbidden")
        elif isinstance(exc, TenantNotFoundError):
            logger.warning("No tenant for request %s: %s", ctx.request_id, exc)
            await _json_response(send, 404, "Tenant not found")
        else:
            logger.error("Unhandled tenancy error for request %s: %s", ctx.request_id, exc)
            await _json_response(send, 500, "Internal tenancy error")


def path_with_query(scope: Scope) -> str:
    """Return the request path plus query string from an ASGI scope."""
    path: str = scope.get("path", "/")
    query: bytes = scope.get("query_string", b"")
    return f"{path}?{query.decode('latin-1')}" if query else path


def context_from_state(state: Any) -> RequestContext | None:
    """Return the context stored on a Starlette ``State`` (or dict), if any."""
    if isinstance(state, dict):
        return state.get(STATE_KEY)
    return getattr(state, STATE_KEY, None)


__all__ = [
    "STATE_KEY",
    "RequestContextMiddleware",
    "context_from_state",
    "path_with_query",
]
