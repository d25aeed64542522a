"""Single-flight memoization slot for one request.

A :class:`MemoSlot` holds at most one computed value.  The first call to
:meth:`MemoSlot.get` schedules the factory as an :class:`asyncio.Task`;
every later call, sequential or concurrent, awaits that same task.  Because
the check-and-schedule step contains no ``await``, two coroutines touching an
empty slot "simultaneously" can never both start a computation.

Waiters await the task through :func:`asyncio.shield`: cancelling one waiter
(e.g. a client disconnect in one branch of a ``gather``) does not cancel the
computation the other waiters depend on.  The owning
:class:`~hive_tenancy.core.context.RequestContext` cancels whatever is still
running when the request ends.

Failures are memoized as well.  Every waiter observes the same exception and
the factory is never re-invoked within the slot's lifetime.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _consume_outcome(task: asyncio.Future[object]) -> None:
    """Mark the task's exception as retrieved.

    Waiters may all be cancelled before the task finishes; the failure is
    still memoized and must not be reported as unhandled.
    """
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Memoized computation failed: %r", task.exception())


class MemoSlot(Generic[T]):
    """A per-request cache cell populated on first access.

    Args:
        name: Slot key, used in log messages.
        factory: Zero-argument callable returning an awaitable.  Invoked at
            most once.

    Example::

        slot = MemoSlot("branding", lambda: resolver.resolve(tenant_id))
        a, b = await asyncio.gather(slot.get(), slot.get())
        assert a is b
    """

    def __init__(self, name: str, factory: Callable[[], Awaitable[T]]) -> None:
        self.name = name
        self._factory = factory
        self._task: asyncio.Future[T] | None = None

    @property
    def started(self) -> bool:
        """``True`` once the factory has been invoked."""
        return self._task is not None

    @property
    def done(self) -> bool:
        """``True`` once the computation finished (successfully or not)."""
        return self._task is not None and self._task.done()

    async def get(self) -> T:
        """Return the slot value, computing it on first access.

        Raises:
            Exception: Whatever the factory raised, re-raised to every waiter.
        """
        if self._task is None:
            logger.debug("Memo slot %r: computing", self.name)
            self._task = asyncio.ensure_future(self._factory())
            self._task.add_done_callback(_consume_outcome)
        else:
            logger.debug("Memo slot %r: reusing", self.name)
        return await asyncio.shield(self._task)

    def cancel(self) -> bool:
        """Cancel an unfinished computation.

        Returns:
            ``True`` when a running computation was cancelled.
        """
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        logger.debug("Memo slot %r: cancelled", self.name)
        return True

    def __repr__(self) -> str:
        state = "done" if self.done else ("pending" if self.started else "empty")
        return f"MemoSlot(name={self.name!r}, state={state})"


__all__ = ["MemoSlot"]
