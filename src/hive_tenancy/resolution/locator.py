"""Host-based tenant location.

Maps a bare host to the id of the tenant that owns it:

* Empty host, or a configured local host (``localhost``, ``127.0.0.1``,
  ``::1``) → the reserved default tenant, looked up by its well-known slug.
* Anything else → the domain mapping whose domain equals the host exactly.
  No wildcard or subdomain matching is performed.

Each call is a single point read with no retry.  A miss returns ``None``,
which is a legitimate "no tenant for this host" outcome.  Storage exceptions
propagate: an outage during tenant location has no safe default.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hive_tenancy.storage.lookup_store import LookupStore

logger = logging.getLogger(__name__)

DEFAULT_TENANT_SLUG = "central-hive"
LOCAL_HOSTS: frozenset[str] = frozenset({"localhost", "127.0.0.1", "::1"})


class TenantLocator:
    """Resolve a bare host to a tenant id.

    Args:
        store: Lookup store used for the slug and domain reads.
        default_tenant_slug: Slug of the tenant served on local / empty hosts.
        local_hosts: Hosts routed to the default tenant.

    Example::

        locator = TenantLocator(store)
        await locator.locate("acme.example.com")   # → "t-acme" or None
        await locator.locate("localhost")          # → id of "central-hive"
    """

    def __init__(
        self,
        store: LookupStore,
        default_tenant_slug: str = DEFAULT_TENANT_SLUG,
        local_hosts: Iterable[str] = LOCAL_HOSTS,
    ) -> None:
        self._store = store
        self._default_slug = default_tenant_slug
        self._local_hosts = frozenset(local_hosts)

    def is_default_host(self, bare_host: str) -> bool:
        """Return ``True`` when *bare_host* is served by the default tenant."""
        return not bare_host or bare_host in self._local_hosts

    async def locate(self, bare_host: str) -> str | None:
        """Return the tenant id owning *bare_host*, or ``None``."""
        if self.is_default_host(bare_host):
            tenant = await self._store.get_tenant_by_slug(self._default_slug)
            if tenant is None:
                logger.info(
                    "Default tenant slug=%r is not provisioned (host=%r)",
                    self._default_slug,
                    bare_host,
                )
                return None
            logger.debug("Host %r → default tenant %s", bare_host, tenant.id)
            return tenant.id

        mapping = await self._store.get_domain(bare_host)
        if mapping is None:
            logger.info("No domain mapping for host %r", bare_host)
            return None
        logger.debug("Host %r → tenant %s", bare_host, mapping.tenant_id)
        return mapping.tenant_id


__all__ = ["DEFAULT_TENANT_SLUG", "LOCAL_HOSTS", "TenantLocator"]
