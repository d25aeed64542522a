"""Lookup storage backends for hive-tenancy.

All backends implement :class:`~hive_tenancy.storage.lookup_store.LookupStore`
and are fully interchangeable.

Backends
--------
:class:`~hive_tenancy.storage.database.SQLAlchemyLookupStore`
    Production backend.  Async SQLAlchemy 2.0 supporting PostgreSQL
    (asyncpg), SQLite (aiosqlite), and MySQL (aiomysql).

:class:`~hive_tenancy.storage.memory.InMemoryLookupStore`
    In-memory store for tests and local development.

Example — testing::

    from hive_tenancy.storage import InMemoryLookupStore

    store = InMemoryLookupStore()
    await store.add_tenant(Tenant(id="t1", slug="central-hive", name="Central Hive"))
"""

from hive_tenancy.storage.database import SQLAlchemyLookupStore
from hive_tenancy.storage.lookup_store import LookupStore
from hive_tenancy.storage.memory import InMemoryLookupStore

__all__ = [
    "InMemoryLookupStore",
    "LookupStore",
    "SQLAlchemyLookupStore",
]
