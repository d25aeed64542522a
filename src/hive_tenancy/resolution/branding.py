"""Branding resolution with an explicit fallback chain.

Given a tenant id (or ``None``), produce a normalized
:class:`~hive_tenancy.core.types.BrandingRecord`.

Fallback chain
--------------
The chain is an ordered tuple of :class:`BrandingStep` entries, each pairing
an applicability predicate with a single storage read.  Steps run in order
and the first one that applies *and* finds a row wins::

    1. tenant   — applies when a tenant id is known; branding row of that tenant
    2. default  — always applies; the global default branding row

When no step finds a row, the hardcoded fallback record is returned
unchanged.  Otherwise the source row is normalized:

* ``title_text`` — the row's value, or the fallback title when it is ``None``.
* URL fields — passed through :func:`normalize_url`.
* ``favicon_url`` — falls back to the fallback record's favicon (``None``
  unless ``fallback_favicon_url`` is configured).

Storage exceptions propagate to the caller.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, NamedTuple

from hive_tenancy.core.types import BrandingRecord, BrandingSettings

if TYPE_CHECKING:
    from hive_tenancy.storage.lookup_store import LookupStore

logger = logging.getLogger(__name__)

FALLBACK_BRANDING = BrandingRecord(
    title_text="Hive",
    logo_light_url=None,
    logo_dark_url=None,
    favicon_url=None,
    sidebar_icon_url=None,
)

_ABSOLUTE_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_url(value: Any) -> str | None:
    """Normalize a stored asset URL.

    * blank / missing → ``None``
    * ``data:`` URI → unchanged
    * absolute ``http(s)://`` URL (any case) → unchanged
    * anything else → root-relative (``"logo.png"`` → ``"/logo.png"``)

    Never raises; non-string input yields ``None``.
    """
    if not isinstance(value, str):
        return None
    url = value.strip()
    if not url:
        return None
    if url.startswith("data:"):
        return url
    if _ABSOLUTE_HTTP_RE.match(url):
        return url
    return url if url.startswith("/") else f"/{url}"


class BrandingStep(NamedTuple):
    """One link of the fallback chain.

    Attributes:
        name: Step name used in logs (``"tenant"``, ``"default"``).
        applies: Predicate on the tenant id; the step is skipped when false.
        lookup: Single storage read for the tenant id.
    """

    name: str
    applies: Callable[[str | None], bool]
    lookup: Callable[[str | None], Awaitable[BrandingSettings | None]]


class BrandingResolver:
    """Resolve the branding record for a tenant.

    Args:
        store: Lookup store for the branding reads.
        fallback: Record returned when no branding row exists at all.
        steps: Override the fallback chain.  Defaults to
            :meth:`default_steps`.

    Example::

        resolver = BrandingResolver(store)
        brand = await resolver.resolve("t-acme")
        brand.title_text  # "Acme" or the default row's title or "Hive"
    """

    def __init__(
        self,
        store: LookupStore,
        fallback: BrandingRecord = FALLBACK_BRANDING,
        steps: Sequence[BrandingStep] | None = None,
    ) -> None:
        self._store = store
        self._fallback = fallback
        self.steps: tuple[BrandingStep, ...] = (
            tuple(steps) if steps is not None else self.default_steps()
        )

    def default_steps(self) -> tuple[BrandingStep, ...]:
        """Return the standard chain: tenant row, then global default row."""

        async def _tenant_row(tenant_id: str | None) -> BrandingSettings | None:
            if tenant_id is None:
                return None
            return await self._store.get_branding_for_tenant(tenant_id)

        async def _default_row(_tenant_id: str | None) -> BrandingSettings | None:
            return await self._store.get_default_branding()

        return (
            BrandingStep("tenant", lambda tenant_id: tenant_id is not None, _tenant_row),
            BrandingStep("default", lambda _tenant_id: True, _default_row),
        )

    @property
    def fallback(self) -> BrandingRecord:
        return self._fallback

    async def find_source(self, tenant_id: str | None) -> BrandingSettings | None:
        """Walk the chain and return the first branding row found, or ``None``."""
        for step in self.steps:
            if not step.applies(tenant_id):
                continue
            row = await step.lookup(tenant_id)
            if row is not None:
                logger.debug(
                    "Branding for tenant=%s from step %r (row %s)",
                    tenant_id,
                    step.name,
                    row.id,
                )
                return row
        return None

    def build(self, source: BrandingSettings) -> BrandingRecord:
        """Turn a stored row into a normalized record."""
        title = source.title_text
        if title is None:
            title = self._fallback.title_text
        return BrandingRecord(
            title_text=title,
            logo_light_url=normalize_url(source.logo_light_url),
            logo_dark_url=normalize_url(source.logo_dark_url),
            favicon_url=normalize_url(source.favicon_url) or self._fallback.favicon_url,
            sidebar_icon_url=normalize_url(source.sidebar_icon_url),
        )

    async def resolve(self, tenant_id: str | None) -> BrandingRecord:
        """Return the branding record for *tenant_id*."""
        source = await self.find_source(tenant_id)
        if source is None:
            logger.debug("No branding row for tenant=%s; using fallback", tenant_id)
            return self._fallback
        return self.build(source)


__all__ = [
    "FALLBACK_BRANDING",
    "BrandingResolver",
    "BrandingStep",
    "normalize_url",
]
