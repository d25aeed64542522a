"""hive-tenancy — request-time tenant & identity resolution for the Hive dashboard.

Given an inbound request, the package determines which tenant owns it from
host information, resolves that tenant's branding through a deterministic
fallback chain, resolves the authenticated session, and guarantees each of
these is computed at most once per request, however many components ask.

Quick start
-----------
.. code-block:: python

    from fastapi import Depends, FastAPI
    from hive_tenancy import HiveTenancy, HiveTenancyConfig, RequestContextMiddleware
    from hive_tenancy.dependencies import make_brand_dependency
    from hive_tenancy.storage.database import SQLAlchemyLookupStore

    config = HiveTenancyConfig()          # HIVE_DATABASE_URL, HIVE_JWT_SECRET, ...
    store = SQLAlchemyLookupStore.from_config(config)
    hive = HiveTenancy(config, store)

    app = FastAPI(lifespan=hive.create_lifespan())
    app.add_middleware(RequestContextMiddleware, hive=hive, excluded_paths=["/health"])

    get_brand = make_brand_dependency(hive)

Public surface
--------------
The symbols exported below form the stable public API.
"""

from hive_tenancy.core.config import HiveTenancyConfig
from hive_tenancy.core.context import RequestContext, request_scoped
from hive_tenancy.core.exceptions import (
    ConfigurationError,
    ForbiddenError,
    HiveTenancyError,
    StorageError,
    TenantNotFoundError,
    UnauthorizedError,
)
from hive_tenancy.core.memo import MemoSlot
from hive_tenancy.core.types import (
    BrandingRecord,
    BrandingSettings,
    Membership,
    MembershipStatus,
    Session,
    SessionProvider,
    SessionResult,
    Tenant,
    TenantAndUser,
    TenantDomain,
    User,
)
from hive_tenancy.manager import HiveTenancy
from hive_tenancy.middleware.request_context import RequestContextMiddleware
from hive_tenancy.resolution.branding import FALLBACK_BRANDING, BrandingResolver, normalize_url
from hive_tenancy.resolution.host import parse_bare_host
from hive_tenancy.resolution.jwt import JWTSessionProvider
from hive_tenancy.resolution.locator import TenantLocator
from hive_tenancy.resolution.session import SessionResolver, require_user
from hive_tenancy.storage.database import SQLAlchemyLookupStore
from hive_tenancy.storage.lookup_store import LookupStore
from hive_tenancy.storage.memory import InMemoryLookupStore

try:
    from importlib.metadata import version as _pkg_version
    __version__: str = _pkg_version("hive-tenancy")
except Exception:  # pragma: no cover  # package not installed
    __version__ = "0.0.0.dev0"

__all__ = [  # NOQA
    # Version
    "__version__",
    # Configuration
    "HiveTenancyConfig",
    # Facade
    "HiveTenancy",
    # Domain types
    "BrandingRecord",
    "BrandingSettings",
    "Membership",
    "MembershipStatus",
    "Session",
    "SessionProvider",
    "SessionResult",
    "Tenant",
    "TenantAndUser",
    "TenantDomain",
    "User",
    # Context
    "MemoSlot",
    "RequestContext",
    "request_scoped",
    # Exceptions
    "ConfigurationError",
    "ForbiddenError",
    "HiveTenancyError",
    "StorageError",
    "TenantNotFoundError",
    "UnauthorizedError",
    # Resolution
    "FALLBACK_BRANDING",
    "BrandingResolver",
    "JWTSessionProvider",
    "SessionResolver",
    "TenantLocator",
    "normalize_url",
    "parse_bare_host",
    "require_user",
    # Storage
    "InMemoryLookupStore",
    "LookupStore",
    "SQLAlchemyLookupStore",
    # Middleware
    "RequestContextMiddleware",
]
