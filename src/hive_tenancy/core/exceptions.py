"""Custom exceptions for hive-tenancy.

All exceptions derive from ``HiveTenancyError`` so callers can catch the
entire family with a single ``except HiveTenancyError`` clause while still
being able to handle individual sub-types.

Exception hierarchy::

    HiveTenancyError
    ├── UnauthorizedError
    ├── ForbiddenError
    ├── TenantNotFoundError
    ├── ConfigurationError
    └── StorageError

Lookup misses (no tenant for a host, no branding row, no session) are *not*
errors in this library: they are represented as ``None`` or as a default
value.  The only user-visible failure of the resolution layer is
``UnauthorizedError``, raised by ``require_user`` when no authenticated user
is attached to the request.

Every exception carries a structured ``details`` dict that is safe to log.
It must never contain raw tokens, cookies, or user PII.
"""

from __future__ import annotations

from typing import Any


class HiveTenancyError(Exception):
    """Base exception for all hive-tenancy errors.

    Attributes:
        message: Human-readable description of the error.
        details: Supplementary key-value context.  Safe to log.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.details: dict[str, Any] = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return ``human-readable`` string."""
        if self.details:
            return f"{self.message} | details={self.details}"
        return self.message

    def __repr__(self) -> str:
        """Return ``repr`` string for debugging purpose."""
        return f"{type(self).__name__}(message={self.message!r})"


class UnauthorizedError(HiveTenancyError):
    """Raised when a code path requires an authenticated user and none is present.

    This is the single point at which an absent session becomes a hard
    failure.  The middleware turns it into ``401`` (or a redirect to the
    configured sign-in page).
    """

    def __init__(
        self,
        message: str = "Authentication required",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)


class ForbiddenError(HiveTenancyError):
    """Raised when an authenticated user may not act on the resolved tenant.

    Attributes:
        reason: Machine-readable reason code (e.g. ``"membership_required"``,
            ``"membership_inactive"``).
        tenant_id: The tenant the user tried to access.
    """

    def __init__(
        self,
        reason: str,
        tenant_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"Forbidden: {reason}"
        if tenant_id:
            message += f" (tenant: {tenant_id!r})"
        super().__init__(message, details)
        self.reason = reason
        self.tenant_id = tenant_id


class TenantNotFoundError(HiveTenancyError):
    """Raised when a code path needs a tenant and none can be found at all.

    The tenant locator itself never raises this (a miss is a legitimate
    ``None``); it is used by guards such as
    :meth:`~hive_tenancy.manager.HiveTenancy.get_tenant_and_user` when not a
    single tenant is provisioned.

    Attributes:
        host: The bare host the lookup started from.
    """

    def __init__(
        self,
        host: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"No tenant found for host {host!r}" if host else "No tenant found"
        super().__init__(message, details)
        self.host = host


class ConfigurationError(HiveTenancyError):
    """Raised when the configuration contains an invalid or inconsistent value.

    Attributes:
        parameter: The name of the invalid configuration field.
        reason: Why the current value is invalid.
    """

    def __init__(
        self,
        parameter: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Invalid configuration for {parameter!r}: {reason}", details)
        self.parameter = parameter
        self.reason = reason


class StorageError(HiveTenancyError):
    """Raised when the lookup store fails unexpectedly.

    Storage failures during tenant or branding resolution have no safe
    default, so they propagate to the caller wrapped in this type.

    Attributes:
        operation: The store operation that failed (e.g. ``"get_domain"``).
    """

    def __init__(
        self,
        operation: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Storage operation {operation!r} failed: {reason}", details)
        self.operation = operation
        self.reason = reason


__all__ = [
    "ConfigurationError",
    "ForbiddenError",
    "HiveTenancyError",
    "StorageError",
    "TenantNotFoundError",
    "UnauthorizedError",
]
