"""Request-time resolution components.

Leaf-first:

:func:`parse_bare_host`
    Canonical bare host from ``X-Forwarded-Host`` / ``Host``.

:class:`TenantLocator`
    Bare host → tenant id (default tenant for local hosts, domain mapping
    otherwise).

:class:`BrandingResolver`
    Tenant id → normalized branding record through an explicit fallback
    chain.

:class:`SessionResolver`
    Headers → session and user via a pluggable session provider.

:class:`JWTSessionProvider`
    Session provider validating signed session tokens.
"""

from hive_tenancy.resolution.branding import (
    FALLBACK_BRANDING,
    BrandingResolver,
    BrandingStep,
    normalize_url,
)
from hive_tenancy.resolution.host import normalize_host, parse_bare_host
from hive_tenancy.resolution.jwt import JWTSessionProvider
from hive_tenancy.resolution.locator import TenantLocator
from hive_tenancy.resolution.session import (
    SessionResolver,
    headers_to_mapping,
    require_user,
)

__all__ = [
    "FALLBACK_BRANDING",
    "BrandingResolver",
    "BrandingStep",
    "JWTSessionProvider",
    "SessionResolver",
    "TenantLocator",
    "headers_to_mapping",
    "normalize_host",
    "normalize_url",
    "parse_bare_host",
    "require_user",
]
