"""SQLAlchemy async lookup store — multi-database compatible.

This module provides the production persistence layer behind the resolution
layer.  It works with any database that has an async SQLAlchemy driver:

+------------------+-------------------------------+
| Database         | URL scheme                    |
+==================+===============================+
| PostgreSQL       | ``postgresql+asyncpg://``     |
+------------------+-------------------------------+
| SQLite           | ``sqlite+aiosqlite://``       |
+------------------+-------------------------------+
| MySQL / MariaDB  | ``mysql+aiomysql://``         |
+------------------+-------------------------------+

Tables
------
``tenants``, ``tenant_domains``, ``branding_settings``, ``memberships``.
Every resolution read is a single ``SELECT … LIMIT 1`` keyed on a unique or
indexed column.

Timezone handling
-----------------
``created_at`` columns use ``DateTime(timezone=True)``.  SQLite returns naive
datetimes; ``to_domain`` coerces them to UTC-aware.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from hive_tenancy.core.exceptions import ConfigurationError, StorageError
from hive_tenancy.core.types import (
    BrandingSettings,
    Membership,
    MembershipStatus,
    Tenant,
    TenantDomain,
)
from hive_tenancy.storage.lookup_store import LookupStore
from hive_tenancy.utils.db_compat import detect_dialect, requires_static_pool

if TYPE_CHECKING:
    from hive_tenancy.core.config import HiveTenancyConfig

logger = logging.getLogger(__name__)


def _ensure_utc(dt: datetime | None) -> datetime:
    if dt is None:
        return datetime.now(UTC)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ---------------------------------------------------------------------------
# ORM layer
# ---------------------------------------------------------------------------


class _Base(DeclarativeBase):
    """Private declarative base scoped to this module."""


class TenantModel(_Base):
    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def to_domain(self) -> Tenant:
        return Tenant(
            id=self.id,
            slug=self.slug,
            name=self.name,
            created_at=_ensure_utc(self.created_at),
        )


class TenantDomainModel(_Base):
    __tablename__ = "tenant_domains"

    domain: Mapped[str] = mapped_column(String(255), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )

    def to_domain(self) -> TenantDomain:
        return TenantDomain(domain=self.domain, tenant_id=self.tenant_id)


class BrandingSettingsModel(_Base):
    """``branding_settings`` table.

    ``tenant_id`` is unique: a tenant has at most one branding row.  Global
    rows carry ``NULL``.  ``is_default`` is *not* constrained to a single row;
    see :class:`~hive_tenancy.storage.lookup_store.LookupStore` for the
    tie-breaking order.
    """

    __tablename__ = "branding_settings"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    tenant_id: Mapped[str | None] = mapped_column(
        String(255),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        unique=True,
        nullable=True,
    )
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0", index=True
    )
    title_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    logo_light_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_dark_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    favicon_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    sidebar_icon_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def to_domain(self) -> BrandingSettings:
        return BrandingSettings(
            id=self.id,
            tenant_id=self.tenant_id,
            is_default=bool(self.is_default),
            title_text=self.title_text,
            logo_light_url=self.logo_light_url,
            logo_dark_url=self.logo_dark_url,
            favicon_url=self.favicon_url,
            sidebar_icon_url=self.sidebar_icon_url,
            created_at=_ensure_utc(self.created_at),
        )


class MembershipModel(_Base):
    __tablename__ = "memberships"

    tenant_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("tenants.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    role_key: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=MembershipStatus.ACTIVE.value
    )

    def to_domain(self) -> Membership:
        return Membership(
            tenant_id=self.tenant_id,
            user_id=self.user_id,
            role_key=self.role_key,
            status=MembershipStatus(self.status),
        )


# ---------------------------------------------------------------------------
# Store implementation
# ---------------------------------------------------------------------------


class SQLAlchemyLookupStore(LookupStore):
    """Async SQLAlchemy-backed lookup store.

    Lifecycle::

        store = SQLAlchemyLookupStore.from_config(config)   # HIVE_DATABASE_URL
        await store.initialize()      # create tables if not exist

        # ... serve requests ...

        await store.close()           # dispose pool on shutdown

    Args:
        database_url: Async SQLAlchemy connection URL.
        pool_size: Number of persistent connections in the pool.
        max_overflow: Extra connections allowed under burst load.
        pool_pre_ping: Verify connections before checkout.
        echo: Log every SQL statement (development only).
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ) -> None:
        dialect = detect_dialect(database_url)
        kw: dict[str, Any] = {"echo": echo}

        if requires_static_pool(dialect):
            kw["poolclass"] = StaticPool
            kw["connect_args"] = {"check_same_thread": False}
        else:
            kw["pool_size"] = pool_size
            kw["max_overflow"] = max_overflow
            kw["pool_pre_ping"] = pool_pre_ping
            kw["pool_recycle"] = 3600

        self._engine: AsyncEngine = create_async_engine(database_url, **kw)
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("SQLAlchemyLookupStore ready dialect=%s", dialect.value)

    @classmethod
    def from_config(cls, config: HiveTenancyConfig, **kwargs: Any) -> SQLAlchemyLookupStore:
        """Build a store from ``database_url`` and ``database_echo``.

        Raises:
            ConfigurationError: When ``database_url`` is not set.
        """
        if not config.database_url:
            raise ConfigurationError(
                parameter="database_url",
                reason="SQLAlchemyLookupStore needs a database URL (HIVE_DATABASE_URL).",
            )
        return cls(config.database_url, echo=config.database_echo, **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create all tables if they do not already exist (idempotent)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(_Base.metadata.create_all)
        logger.info("Lookup tables ready")

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("SQLAlchemyLookupStore closed")

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def _first(self, operation: str, query: Any) -> Any:
        """Execute *query* and return the first ORM row, or ``None``."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(query.limit(1))
                return result.scalars().first()
        except SQLAlchemyError as exc:
            raise StorageError(operation, type(exc).__name__) from exc

    async def get_tenant_by_id(self, tenant_id: str) -> Tenant | None:
        model = await self._first(
            "get_tenant_by_id", select(TenantModel).where(TenantModel.id == tenant_id)
        )
        return model.to_domain() if model is not None else None

    async def get_tenant_by_slug(self, slug: str) -> Tenant | None:
        model = await self._first(
            "get_tenant_by_slug", select(TenantModel).where(TenantModel.slug == slug)
        )
        return model.to_domain() if model is not None else None

    async def get_first_tenant(self) -> Tenant | None:
        model = await self._first(
            "get_first_tenant",
            select(TenantModel).order_by(TenantModel.created_at.asc(), TenantModel.id.asc()),
        )
        return model.to_domain() if model is not None else None

    async def get_domain(self, domain: str) -> TenantDomain | None:
        model = await self._first(
            "get_domain",
            select(TenantDomainModel).where(TenantDomainModel.domain == domain),
        )
        return model.to_domain() if model is not None else None

    async def get_branding_for_tenant(self, tenant_id: str) -> BrandingSettings | None:
        model = await self._first(
            "get_branding_for_tenant",
            select(BrandingSettingsModel).where(BrandingSettingsModel.tenant_id == tenant_id),
        )
        return model.to_domain() if model is not None else None

    async def get_default_branding(self) -> BrandingSettings | None:
        model = await self._first(
            "get_default_branding",
            select(BrandingSettingsModel).order_by(
                BrandingSettingsModel.is_default.desc(),
                BrandingSettingsModel.created_at.asc(),
                BrandingSettingsModel.id.asc(),
            ),
        )
        return model.to_domain() if model is not None else None

    async def get_membership(self, tenant_id: str, user_id: str) -> Membership | None:
        model = await self._first(
            "get_membership",
            select(MembershipModel).where(
                MembershipModel.tenant_id == tenant_id,
                MembershipModel.user_id == user_id,
            ),
        )
        return model.to_domain() if model is not None else None

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def _add(self, operation: str, model: _Base, conflict: str) -> Any:
        async with self._session_factory() as session:
            session.add(model)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ValueError(conflict)  # noqa: B904
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StorageError(operation, type(exc).__name__) from exc
            await session.refresh(model)
            return model

    async def add_tenant(self, tenant: Tenant) -> Tenant:
        model = await self._add(
            "add_tenant",
            TenantModel(
                id=tenant.id,
                slug=tenant.slug,
                name=tenant.name,
                created_at=tenant.created_at,
            ),
            f"Tenant id={tenant.id!r} or slug={tenant.slug!r} already exists.",
        )
        logger.info("Added tenant id=%s slug=%s", tenant.id, tenant.slug)
        return model.to_domain()

    async def add_domain(self, domain: TenantDomain) -> TenantDomain:
        model = await self._add(
            "add_domain",
            TenantDomainModel(domain=domain.domain, tenant_id=domain.tenant_id),
            f"Domain {domain.domain!r} is already mapped.",
        )
        logger.info("Mapped domain %s → tenant %s", domain.domain, domain.tenant_id)
        return model.to_domain()

    async def add_branding(self, branding: BrandingSettings) -> BrandingSettings:
        model = await self._add(
            "add_branding",
            BrandingSettingsModel(
                id=branding.id,
                tenant_id=branding.tenant_id,
                is_default=branding.is_default,
                title_text=branding.title_text,
                logo_light_url=branding.logo_light_url,
                logo_dark_url=branding.logo_dark_url,
                favicon_url=branding.favicon_url,
                sidebar_icon_url=branding.sidebar_icon_url,
                created_at=branding.created_at,
            ),
            f"Branding id={branding.id!r} or tenant={branding.tenant_id!r} already exists.",
        )
        logger.info("Added branding id=%s tenant=%s", branding.id, branding.tenant_id)
        return model.to_domain()

    async def add_membership(self, membership: Membership) -> Membership:
        async with self._session_factory() as session:
            try:
                await session.merge(
                    MembershipModel(
                        tenant_id=membership.tenant_id,
                        user_id=membership.user_id,
                        role_key=membership.role_key,
                        status=membership.status.value,
                    )
                )
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StorageError("add_membership", type(exc).__name__) from exc
        return membership


__all__ = [
    "BrandingSettingsModel",
    "MembershipModel",
    "SQLAlchemyLookupStore",
    "TenantDomainModel",
    "TenantModel",
]
