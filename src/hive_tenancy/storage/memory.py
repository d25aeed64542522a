"""In-memory lookup store for testing and development.

Warning:
    This store holds all data in Python dictionaries.  Every record is
    **lost when the process exits**.  Use it for unit tests, local
    development, and demos; use ``SQLAlchemyLookupStore`` in production.

Design notes
------------
- No async I/O: all operations complete synchronously, wrapped in
  ``async def`` to satisfy the ``LookupStore`` interface.
- O(1) point reads: every lookup key (id, slug, domain, tenant branding,
  ``(tenant, user)`` membership) has its own dict index.
- ``reads`` counts every read call per method name so tests can assert how
  many storage round-trips a request performed.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import TYPE_CHECKING

from hive_tenancy.storage.lookup_store import LookupStore

if TYPE_CHECKING:
    from hive_tenancy.core.types import (
        BrandingSettings,
        Membership,
        Tenant,
        TenantDomain,
    )

logger = logging.getLogger(__name__)


class InMemoryLookupStore(LookupStore):
    """In-memory lookup store.

    Example — seeded store::

        store = InMemoryLookupStore()
        await store.add_tenant(Tenant(id="t1", slug="central-hive", name="Central"))
        await store.add_domain(TenantDomain(domain="acme.example.com", tenant_id="t1"))

        assert (await store.get_domain("acme.example.com")).tenant_id == "t1"
        assert store.reads["get_domain"] == 1
    """

    def __init__(self) -> None:
        self._tenants: dict[str, Tenant] = {}
        self._slug_map: dict[str, str] = {}  # slug → tenant_id
        self._domains: dict[str, TenantDomain] = {}
        self._branding: dict[str, BrandingSettings] = {}  # id → row
        self._tenant_branding: dict[str, str] = {}  # tenant_id → branding id
        self._memberships: dict[tuple[str, str], Membership] = {}
        self._lock: asyncio.Lock = asyncio.Lock()
        self.reads: Counter[str] = Counter()
        logger.debug("InMemoryLookupStore initialised")

    ###################
    # Read operations #
    ###################

    async def get_tenant_by_id(self, tenant_id: str) -> Tenant | None:
        self.reads["get_tenant_by_id"] += 1
        return self._tenants.get(tenant_id)

    async def get_tenant_by_slug(self, slug: str) -> Tenant | None:
        self.reads["get_tenant_by_slug"] += 1
        tenant_id = self._slug_map.get(slug)
        return self._tenants.get(tenant_id) if tenant_id is not None else None

    async def get_first_tenant(self) -> Tenant | None:
        self.reads["get_first_tenant"] += 1
        if not self._tenants:
            return None
        return min(self._tenants.values(), key=lambda t: (t.created_at, t.id))

    async def get_domain(self, domain: str) -> TenantDomain | None:
        self.reads["get_domain"] += 1
        return self._domains.get(domain)

    async def get_branding_for_tenant(self, tenant_id: str) -> BrandingSettings | None:
        self.reads["get_branding_for_tenant"] += 1
        branding_id = self._tenant_branding.get(tenant_id)
        return self._branding.get(branding_id) if branding_id is not None else None

    async def get_default_branding(self) -> BrandingSettings | None:
        self.reads["get_default_branding"] += 1
        if not self._branding:
            return None
        flagged = [b for b in self._branding.values() if b.is_default]
        if len(flagged) > 1:
            logger.warning(
                "%d branding rows are flagged is_default; using the earliest",
                len(flagged),
            )
        candidates = flagged or list(self._branding.values())
        return min(candidates, key=lambda b: (b.created_at, b.id))

    async def get_membership(self, tenant_id: str, user_id: str) -> Membership | None:
        self.reads["get_membership"] += 1
        return self._memberships.get((tenant_id, user_id))

    ####################
    # Write operations #
    ####################

    async def add_tenant(self, tenant: Tenant) -> Tenant:
        async with self._lock:
            if tenant.id in self._tenants:
                raise ValueError(f"Tenant id={tenant.id!r} already exists.")
            if tenant.slug in self._slug_map:
                raise ValueError(f"Tenant slug={tenant.slug!r} already exists.")
            self._tenants[tenant.id] = tenant
            self._slug_map[tenant.slug] = tenant.id
        logger.info("Added tenant id=%s slug=%s", tenant.id, tenant.slug)
        return tenant

    async def add_domain(self, domain: TenantDomain) -> TenantDomain:
        async with self._lock:
            if domain.domain in self._domains:
                raise ValueError(f"Domain {domain.domain!r} is already mapped.")
            self._domains[domain.domain] = domain
        logger.info("Mapped domain %s → tenant %s", domain.domain, domain.tenant_id)
        return domain

    async def add_branding(self, branding: BrandingSettings) -> BrandingSettings:
        async with self._lock:
            if branding.id in self._branding:
                raise ValueError(f"Branding id={branding.id!r} already exists.")
            if branding.tenant_id is not None:
                if branding.tenant_id in self._tenant_branding:
                    raise ValueError(
                        f"Tenant {branding.tenant_id!r} already has a branding row."
                    )
                self._tenant_branding[branding.tenant_id] = branding.id
            self._branding[branding.id] = branding
        logger.info("Added branding id=%s tenant=%s", branding.id, branding.tenant_id)
        return branding

    async def add_membership(self, membership: Membership) -> Membership:
        async with self._lock:
            self._memberships[(membership.tenant_id, membership.user_id)] = membership
        return membership

    #############
    # Utilities #
    #############

    def clear(self) -> None:
        """Remove all records and reset read counters."""
        self._tenants.clear()
        self._slug_map.clear()
        self._domains.clear()
        self._branding.clear()
        self._tenant_branding.clear()
        self._memberships.clear()
        self.reads.clear()
        logger.debug("InMemoryLookupStore cleared")

    @property
    def total_reads(self) -> int:
        return sum(self.reads.values())


__all__ = ["InMemoryLookupStore"]
