"""Core abstractions — types, config, request context, and exceptions."""

from hive_tenancy.core.config import HiveTenancyConfig
from hive_tenancy.core.context import RequestContext, get_request_context, request_scoped
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
    HeadersLike,
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

__all__ = [
    # Config
    "HiveTenancyConfig",
    # Context
    "MemoSlot",
    "RequestContext",
    "get_request_context",
    "request_scoped",
    # Exceptions
    "ConfigurationError",
    "ForbiddenError",
    "HiveTenancyError",
    "StorageError",
    "TenantNotFoundError",
    "UnauthorizedError",
    # Types
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
