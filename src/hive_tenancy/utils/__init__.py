"""Internal utilities."""

from hive_tenancy.utils.db_compat import DbDialect, detect_dialect, requires_static_pool

__all__ = ["DbDialect", "detect_dialect", "requires_static_pool"]
