"""Per-request resolution context.

A :class:`RequestContext` is created for every incoming request (by
:class:`~hive_tenancy.middleware.request_context.RequestContextMiddleware`,
or explicitly in tests and background jobs).  It carries the raw request
headers and the request's memoization slots, and is passed explicitly to
every resolution call::

    ctx = RequestContext(request.headers)
    brand = await hive.get_brand_for_request(ctx)
    session = await hive.get_current_session(ctx)

A new request always gets a fresh context, so nothing computed for one
request can be observed by another.  There is no process-wide cache.

For code that cannot receive the context as an argument, the middleware also
publishes it through a :class:`~contextvars.ContextVar`:
:meth:`RequestContext.current` returns it, and :func:`request_scoped` builds
zero-argument memoized functions on top of it.  Each asyncio task receives
its own copy of the variable, so concurrent requests never see each other's
context.
"""

from __future__ import annotations

import functools
import logging
import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Any, TypeVar

from hive_tenancy.core.memo import MemoSlot

if TYPE_CHECKING:
    from hive_tenancy.core.types import HeadersLike

logger = logging.getLogger(__name__)

T = TypeVar("T")

_request_ctx: ContextVar[RequestContext | None] = ContextVar(
    "hive_request_context", default=None
)


class RequestContext:
    """Headers plus memoization slots for one request.

    Args:
        headers: The request's header collection (Starlette ``Headers``, a
            plain ``dict``, or ``None`` for a header-less request).
        request_id: Optional correlation id; a random one is generated when
            omitted.

    Attributes:
        headers: The raw header collection.  Untrusted input.
        request_id: Correlation id used in log messages.
    """

    def __init__(
        self,
        headers: HeadersLike | None = None,
        request_id: str | None = None,
    ) -> None:
        self.headers = headers if headers is not None else {}
        self.request_id = request_id or uuid.uuid4().hex
        self._slots: dict[str, MemoSlot[Any]] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Memoization
    # ------------------------------------------------------------------

    def slot(self, key: str, factory: Callable[[], Awaitable[T]]) -> MemoSlot[T]:
        """Return the slot for *key*, creating it with *factory* if absent.

        When the slot already exists *factory* is ignored: the first
        registration wins for the lifetime of the request.
        """
        existing = self._slots.get(key)
        if existing is not None:
            return existing
        if self._closed:
            raise RuntimeError(
                f"RequestContext {self.request_id} is closed; cannot compute {key!r}"
            )
        created: MemoSlot[T] = MemoSlot(key, factory)
        self._slots[key] = created
        return created

    async def memoize(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Compute ``await factory()`` at most once per request under *key*."""
        return await self.slot(key, factory).get()

    def has_slot(self, key: str) -> bool:
        return key in self._slots

    def close(self) -> None:
        """End the request: cancel computations that are still running."""
        self._closed = True
        cancelled = sum(1 for s in self._slots.values() if s.cancel())
        if cancelled:
            logger.debug(
                "Request %s closed with %d in-flight computation(s) cancelled",
                self.request_id,
                cancelled,
            )

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Current-context accessors
    # ------------------------------------------------------------------

    @staticmethod
    def set(ctx: RequestContext) -> Token[RequestContext | None]:
        """Make *ctx* the current context; pass the token to :meth:`reset`."""
        return _request_ctx.set(ctx)

    @staticmethod
    def reset(token: Token[RequestContext | None]) -> None:
        _request_ctx.reset(token)

    @staticmethod
    def current() -> RequestContext:
        """Return the active context.

        Raises:
            RuntimeError: When called outside a request handled by the
                middleware (or outside :meth:`scope`).
        """
        ctx = _request_ctx.get()
        if ctx is None:
            raise RuntimeError(
                "No RequestContext is active. Ensure the request passed through "
                "RequestContextMiddleware or wrap the call in RequestContext.scope()."
            )
        return ctx

    @staticmethod
    def current_optional() -> RequestContext | None:
        return _request_ctx.get()

    # ------------------------------------------------------------------
    # Scope context manager
    # ------------------------------------------------------------------

    class scope:
        """Activate a context for a ``with`` / ``async with`` block.

        The context is closed and the previous one restored on exit, even
        if the block raises::

            async with RequestContext.scope(RequestContext({"host": "acme.io"})) as ctx:
                brand = await hive.get_brand_for_request(ctx)
        """

        def __init__(self, ctx: RequestContext | None = None) -> None:
            self._ctx = ctx if ctx is not None else RequestContext()
            self._token: Token[RequestContext | None] | None = None

        async def __aenter__(self) -> RequestContext:
            self._token = _request_ctx.set(self._ctx)
            return self._ctx

        async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            self._exit()

        def __enter__(self) -> RequestContext:
            self._token = _request_ctx.set(self._ctx)
            return self._ctx

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            self._exit()

        def _exit(self) -> None:
            self._ctx.close()
            if self._token is not None:
                _request_ctx.reset(self._token)

    def __repr__(self) -> str:
        return f"RequestContext(request_id={self.request_id!r}, slots={sorted(self._slots)})"


def request_scoped(
    factory: Callable[[], Awaitable[T]] | None = None,
    *,
    key: str | None = None,
) -> Any:
    """Memoize a zero-argument coroutine function per request.

    The wrapped function computes its value once in the current
    :class:`RequestContext`; every later call in the same request, from any
    component, returns the same value::

        @request_scoped
        async def load_feature_flags() -> dict[str, bool]:
            return await flags_client.fetch()

    Args:
        factory: The coroutine function to wrap.
        key: Slot key; defaults to the function's qualified name.
    """

    def _decorate(fn: Callable[[], Awaitable[T]]) -> Callable[[], Awaitable[T]]:
        slot_key = key or f"{fn.__module__}.{fn.__qualname__}"

        @functools.wraps(fn)
        async def _memoized() -> T:
            return await RequestContext.current().memoize(slot_key, fn)

        return _memoized

    if factory is not None:
        return _decorate(factory)
    return _decorate


def get_request_context() -> RequestContext:
    """FastAPI dependency — return the active :class:`RequestContext`."""
    return RequestContext.current()


__all__ = [
    "RequestContext",
    "get_request_context",
    "request_scoped",
]
