"""ASGI middleware for hive-tenancy."""

from hive_tenancy.middleware.request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
