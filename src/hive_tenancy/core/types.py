"""Domain types and data models for hive-tenancy.

This module is the single source of truth for the library's domain
vocabulary.  All other modules import *from* this module, never the reverse.

Design notes
------------
* Stored rows (:class:`Tenant`, :class:`TenantDomain`,
  :class:`BrandingSettings`, :class:`Membership`) and computed results
  (:class:`BrandingRecord`, :class:`SessionResult`, :class:`TenantAndUser`)
  are Pydantic ``frozen=True`` models, so one resolved value can be shared by
  every consumer of a request without risk of mutation.
* :class:`User` and :class:`Session` allow extra fields: they describe the
  shape produced by the bundled session providers, while the resolution core
  treats whatever a provider returns as opaque.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class MembershipStatus(StrEnum):
    """Lifecycle status of a user's membership in a tenant."""

    ACTIVE = "ACTIVE"
    INVITED = "INVITED"
    SUSPENDED = "SUSPENDED"


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


class Tenant(BaseModel):
    """Immutable tenant record.

    Attributes:
        id: Opaque unique identifier.  Stable for the lifetime of the tenant
            and never reused after deletion.
        slug: Human-readable unique slug (e.g. ``"central-hive"``).
        name: Display name.
        created_at: Creation timestamp in UTC.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=255, description="Opaque tenant id.")
    slug: str = Field(..., min_length=1, max_length=255, description="Unique slug.")
    name: str = Field(..., min_length=1, max_length=255, description="Display name.")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Creation timestamp (UTC).",
    )


class TenantDomain(BaseModel):
    """Mapping of one bare host to the tenant that owns it."""

    model_config = ConfigDict(frozen=True)

    domain: str = Field(..., min_length=1, max_length=255)
    tenant_id: str = Field(..., min_length=1, max_length=255)


class BrandingSettings(BaseModel):
    """A stored branding row, exactly as persisted.

    URL fields are *raw*: they may be bare relative paths, blank, or padded
    with whitespace.  :class:`~hive_tenancy.resolution.branding.BrandingResolver`
    turns a row into a normalized :class:`BrandingRecord`.

    Attributes:
        id: Row identifier.
        tenant_id: Owning tenant, or ``None`` for a global row.
        is_default: Marks the global default row used when a tenant has no
            branding of its own.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=255)
    tenant_id: str | None = None
    is_default: bool = False
    title_text: str | None = None
    logo_light_url: str | None = None
    logo_dark_url: str | None = None
    favicon_url: str | None = None
    sidebar_icon_url: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Membership(BaseModel):
    """A user's membership in a tenant, with the role it grants."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    role_key: str | None = None
    status: MembershipStatus = MembershipStatus.ACTIVE

    def is_active(self) -> bool:
        """Return ``True`` when the membership grants access."""
        return self.status == MembershipStatus.ACTIVE


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class User(BaseModel):
    """Authenticated user as produced by the bundled session providers."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(..., min_length=1)
    email: str | None = None
    name: str | None = None


class Session(BaseModel):
    """Validated session as produced by the bundled session providers."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str | None = None
    user: User
    expires_at: datetime | None = None


# ---------------------------------------------------------------------------
# Computed per-request results
# ---------------------------------------------------------------------------


class BrandingRecord(BaseModel):
    """Normalized branding for one request.

    Every URL field is either ``None``, a ``data:`` URI, an absolute
    ``http(s)`` URL, or a root-relative path, never a bare relative path.
    """

    model_config = ConfigDict(frozen=True)

    title_text: str
    logo_light_url: str | None = None
    logo_dark_url: str | None = None
    favicon_url: str | None = None
    sidebar_icon_url: str | None = None


class SessionResult(BaseModel):
    """Outcome of session resolution.

    ``user`` is non-null iff ``session`` is non-null and the provider
    validated it.  Both ``None`` simply means "unauthenticated".
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    session: Any = None
    user: Any = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


class TenantAndUser(BaseModel):
    """Combined tenant, user, and membership for an authenticated request."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    user: Any
    tenant: Tenant
    host: str
    membership: Membership | None = None
    role_key: str | None = None
    is_central_superadmin: bool = False


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class HeadersLike(Protocol):
    """Read-only header collection.

    Satisfied by :class:`starlette.datastructures.Headers` and by plain
    ``dict`` objects.
    """

    def get(self, key: str, default: Any = None) -> Any: ...

    def items(self) -> Iterable[tuple[Any, Any]]: ...


@runtime_checkable
class SessionProvider(Protocol):
    """The authentication backend consulted for every request.

    Implementations validate whatever credentials the headers carry (bearer
    token, session cookie, …) and return a session object, or ``None`` when
    the request carries no credentials.  They may raise on invalid, expired,
    or malformed credentials; the session resolver treats any exception as
    "no session".
    """

    async def get_session(self, headers: Mapping[str, str]) -> Any: ...


__all__ = [
    "BrandingRecord",
    "BrandingSettings",
    "HeadersLike",
    "Membership",
    "MembershipStatus",
    "Session",
    "SessionProvider",
    "SessionResult",
    "Tenant",
    "TenantAndUser",
    "TenantDomain",
    "User",
]
