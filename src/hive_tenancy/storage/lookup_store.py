"""Abstract lookup store — the repository pattern for resolution reads.

``LookupStore`` defines the point-read contract the resolution layer needs:
tenant by slug / id, domain mapping by domain string, branding by tenant,
the global default branding row, and membership by ``(tenant, user)``.
Each read returns **at most one record, or** ``None``.  A miss is a
legitimate outcome and never raises.

Implementations must be:

- **Fully async** — every method is a coroutine.
- **Concurrency-safe** — instances are created once at startup and shared
  across all requests.
- **Wrap unexpected errors** — unexpected storage failures are raised as
  :class:`~hive_tenancy.core.exceptions.StorageError`.

The seeding writes (``add_*``) exist for fixtures, seed scripts, and admin
tooling; the resolution layer never calls them.

Default branding selection
--------------------------
Nothing stops several rows from being flagged ``is_default``.  Every backend
resolves ties the same way: flagged rows first, then earliest ``created_at``,
then lowest ``id``.  When no row is flagged the earliest row overall is used.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hive_tenancy.core.types import (
        BrandingSettings,
        Membership,
        Tenant,
        TenantDomain,
    )

logger = logging.getLogger(__name__)


class LookupStore(ABC):
    """Abstract base class for lookup storage backends."""

    ##############
    # Point reads #
    ##############

    @abstractmethod
    async def get_tenant_by_id(self, tenant_id: str) -> Tenant | None:
        """Return the tenant with *tenant_id*, or ``None``."""

    @abstractmethod
    async def get_tenant_by_slug(self, slug: str) -> Tenant | None:
        """Return the tenant with *slug*, or ``None``."""

    @abstractmethod
    async def get_first_tenant(self) -> Tenant | None:
        """Return the earliest-created tenant, or ``None`` when none exist.

        Used only as a last-resort fallback when neither the host mapping nor
        the default slug yields a tenant.
        """

    @abstractmethod
    async def get_domain(self, domain: str) -> TenantDomain | None:
        """Return the mapping whose domain equals *domain* exactly, or ``None``.

        No wildcard or subdomain matching is performed.
        """

    @abstractmethod
    async def get_branding_for_tenant(self, tenant_id: str) -> BrandingSettings | None:
        """Return the branding row scoped to *tenant_id*, or ``None``."""

    @abstractmethod
    async def get_default_branding(self) -> BrandingSettings | None:
        """Return the global default branding row, or ``None``.

        See the module docstring for tie-breaking.
        """

    @abstractmethod
    async def get_membership(self, tenant_id: str, user_id: str) -> Membership | None:
        """Return the membership of *user_id* in *tenant_id*, or ``None``."""

    ############
    # Seeding  #
    ############

    @abstractmethod
    async def add_tenant(self, tenant: Tenant) -> Tenant:
        """Persist a tenant.

        Raises:
            ValueError: When the id or slug already exists.
        """

    @abstractmethod
    async def add_domain(self, domain: TenantDomain) -> TenantDomain:
        """Persist a domain mapping.

        Raises:
            ValueError: When the domain is already mapped.
        """

    @abstractmethod
    async def add_branding(self, branding: BrandingSettings) -> BrandingSettings:
        """Persist a branding row.

        Raises:
            ValueError: When the id already exists, or the tenant already has
                a branding row.
        """

    @abstractmethod
    async def add_membership(self, membership: Membership) -> Membership:
        """Persist (or replace) a membership."""

    #############
    # Lifecycle #
    #############

    async def initialize(self) -> None:  # noqa: B027
        """Prepare the backend (create tables, open pools).  No-op by default."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources.  No-op by default."""


__all__ = ["LookupStore"]
