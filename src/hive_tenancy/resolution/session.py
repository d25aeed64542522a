"""Session resolution against an opaque session provider.

The session resolver converts the request's header collection into a plain
``str → str`` mapping and hands it to a
:class:`~hive_tenancy.core.types.SessionProvider`.

Failure model
-------------
Any exception raised by the provider (invalid / expired / malformed token,
network or storage error inside the provider) is swallowed and reported as
``SessionResult(session=None, user=None)``.  "Unauthenticated" and "provider
error" are therefore indistinguishable to callers; the resolver never retries.

:func:`require_user` is the one place where an absent user becomes a hard
failure (:class:`~hive_tenancy.core.exceptions.UnauthorizedError`).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from hive_tenancy.core.exceptions import UnauthorizedError
from hive_tenancy.core.types import SessionResult

if TYPE_CHECKING:
    from hive_tenancy.core.types import HeadersLike, SessionProvider

logger = logging.getLogger(__name__)

ANONYMOUS = SessionResult(session=None, user=None)


def headers_to_mapping(headers: HeadersLike | None) -> dict[str, str]:
    """Copy a header collection into a plain dict.

    Entries whose name or value is not a non-empty string are dropped.  Names
    are lowercased; repeated names are joined with ``", "`` as HTTP allows.
    ``None`` or an object without ``items()`` yields ``{}``.
    """
    if headers is None:
        return {}
    try:
        entries = list(headers.items())
    except (AttributeError, TypeError):
        return {}

    out: dict[str, str] = {}
    for entry in entries:
        try:
            name, value = entry
        except (TypeError, ValueError):
            continue
        if not isinstance(name, str) or not name:
            continue
        if not isinstance(value, str) or not value:
            continue
        key = name.lower()
        out[key] = f"{out[key]}, {value}" if key in out else value
    return out


def _user_of(session: Any) -> Any:
    if session is None:
        return None
    if isinstance(session, Mapping):
        return session.get("user")
    return getattr(session, "user", None)


def user_id_of(user: Any) -> str | None:
    """Return ``user.id`` (attribute or mapping key) when it is a non-empty value."""
    if user is None:
        return None
    raw = user.get("id") if isinstance(user, Mapping) else getattr(user, "id", None)
    if raw is None or raw == "":
        return None
    return str(raw)


class SessionResolver:
    """Resolve the session for a request's headers.

    Args:
        provider: The authentication backend.

    Example::

        resolver = SessionResolver(JWTSessionProvider(secret))
        result = await resolver.resolve(request.headers)
        if result.is_authenticated:
            ...
    """

    def __init__(self, provider: SessionProvider) -> None:
        self._provider = provider

    @property
    def provider(self) -> SessionProvider:
        return self._provider

    async def resolve(self, headers: HeadersLike | None) -> SessionResult:
        """Return the request's session and user, or an anonymous result."""
        mapping = headers_to_mapping(headers)
        try:
            session = await self._provider.get_session(mapping)
        except Exception as exc:  # noqa: BLE001
            logger.debug(
                "Session provider %s failed (%s); treating request as anonymous",
                type(self._provider).__name__,
                type(exc).__name__,
            )
            return ANONYMOUS

        if session is None:
            return ANONYMOUS
        user = _user_of(session)
        if user is None:
            logger.debug("Session without user from %s", type(self._provider).__name__)
            return ANONYMOUS
        return SessionResult(session=session, user=user)


def require_user(result: SessionResult) -> Any:
    """Return the authenticated user of *result*.

    Raises:
        UnauthorizedError: When the result carries no user or the user has no
            ``id``.
    """
    if user_id_of(result.user) is None:
        raise UnauthorizedError()
    return result.user


__all__ = [
    "ANONYMOUS",
    "SessionResolver",
    "headers_to_mapping",
    "require_user",
    "user_id_of",
]
