"""
iCanGrow API — Persistence Gateway
====================================

What:  Async SQLAlchemy engines, session factories, and the FastAPI session
       dependency, grouped behind a `Gateway` with two access tiers.
Why:   The store enforces row-level rules for ordinary callers; a handful of
       operations (record services acting after an authorization check) need
       to bypass them. Keeping both handles on one object makes the tier an
       explicit argument instead of a choice between two module globals.
How:   The app lifespan builds one Gateway, calls initialize(), and stores it on
       app.state. Dependencies read it from the request; nothing imports an
       engine at module level.

Tiers:
    restricted  DATABASE_URL. On PostgreSQL each transaction runs
                SET LOCAL ROLE <DATABASE_RESTRICTED_ROLE> and publishes the
                caller id through set_config('request.jwt.claim.sub', ...).
    privileged  DATABASE_ADMIN_URL (falls back to the restricted engine).
                Only handed out by dependencies.get_privileged_session, which
                requires an authenticated caller first.

Connection Pooling:
    pool_size / max_overflow / pool_pre_ping come from settings.
    pool_recycle=3600 recycles connections every hour.
    SQLite URLs (tests, local tooling) use a StaticPool so an in-memory
    database survives across sessions.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from icangrow.config import Settings
from icangrow.exceptions import GatewayNotInitializedError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata feeds Alembic."""
    pass


def _build_engine(url: str, settings: Settings) -> AsyncEngine:
    echo = settings.log_level == "DEBUG"
    if make_url(url).get_backend_name() == "sqlite":
        return create_async_engine(url, poolclass=StaticPool, echo=echo)
    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        echo=echo,
    )


class Gateway:
    """
    Owns both access tiers for the lifetime of the application.

    Usage:
        gateway = Gateway(settings)
        gateway.initialize()
        async with gateway.session(privileged=True) as db:
            ...
        await gateway.dispose()
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._restricted_engine: Optional[AsyncEngine] = None
        self._privileged_engine: Optional[AsyncEngine] = None
        self._restricted_factory: Optional[async_sessionmaker] = None
        self._privileged_factory: Optional[async_sessionmaker] = None

    @property
    def initialized(self) -> bool:
        return self._restricted_factory is not None

    def initialize(self) -> None:
        """
        Create engines and session factories. Idempotent.

        Raises:
            ValueError: DATABASE_URL is empty (fatal at startup).
        """
        if self.initialized:
            return
        if not self._settings.database_url:
            raise ValueError("DATABASE_URL is required to initialize the database gateway")

        self._restricted_engine = _build_engine(self._settings.database_url, self._settings)
        admin_url = self._settings.admin_database_url
        if admin_url == self._settings.database_url:
            self._privileged_engine = self._restricted_engine
        else:
            self._privileged_engine = _build_engine(admin_url, self._settings)

        # expire_on_commit=False: response serialization reads attributes
        # after the dependency has committed
        self._restricted_factory = async_sessionmaker(
            self._restricted_engine, class_=AsyncSession, expire_on_commit=False
        )
        self._privileged_factory = async_sessionmaker(
            self._privileged_engine, class_=AsyncSession, expire_on_commit=False
        )
        logger.info(
            "Database gateway initialized (shared engine: %s)",
            self._privileged_engine is self._restricted_engine,
        )

    def restricted(self) -> async_sessionmaker:
        if self._restricted_factory is None:
            raise GatewayNotInitializedError("restricted")
        return self._restricted_factory

    def privileged(self) -> async_sessionmaker:
        if self._privileged_factory is None:
            raise GatewayNotInitializedError("privileged")
        return self._privileged_factory

    @property
    def engine(self) -> AsyncEngine:
        """Privileged engine; used for health checks and schema management."""
        if self._privileged_engine is None:
            raise GatewayNotInitializedError("privileged")
        return self._privileged_engine

    @asynccontextmanager
    async def session(
        self,
        *,
        privileged: bool = False,
        actor_id: Optional[str] = None,
    ) -> AsyncGenerator[AsyncSession, None]:
        """
        One session, one transaction: commit on success, rollback on any error.
        """
        factory = self.privileged() if privileged else self.restricted()
        async with factory() as session:
            try:
                if not privileged:
                    await self._apply_caller_identity(session, actor_id)
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _apply_caller_identity(
        self, session: AsyncSession, actor_id: Optional[str]
    ) -> None:
        if session.bind.dialect.name != "postgresql":
            return
        role = self._settings.database_restricted_role
        if role:
            # Identifier, not a bind parameter; validated by Settings
            await session.execute(text(f'SET LOCAL ROLE "{role}"'))
        if actor_id:
            await session.execute(
                text("SELECT set_config('request.jwt.claim.sub', :sub, true)"),
                {"sub": actor_id},
            )

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def wait_until_ready(self) -> bool:
        """
        Probe connectivity with bounded exponential backoff before serving.

        Returns False (after logging) instead of raising so the process can
        still answer /health with database=disconnected.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.db_connect_attempts),
            wait=wait_exponential(
                multiplier=self._settings.db_connect_wait,
                max=self._settings.db_connect_wait * 8,
            ),
            retry=retry_if_exception_type((SQLAlchemyError, OSError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self.ping()
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Database unreachable after %d attempts: %s",
                self._settings.db_connect_attempts,
                type(e).__name__,
            )
            return False
        return True

    async def dispose(self) -> None:
        """Close pooled connections for both tiers (once when shared)."""
        if self._privileged_engine is not None and self._privileged_engine is not self._restricted_engine:
            await self._privileged_engine.dispose()
        if self._restricted_engine is not None:
            await self._restricted_engine.dispose()


# ── Dependencies ──────────────────────────────────────────────────────────

def get_gateway(request: Request) -> Gateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise GatewayNotInitializedError("restricted")
    return gateway


async def get_restricted_session(
    gateway: Gateway = Depends(get_gateway),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Restricted-tier session for routes that run before a caller is known
    (signup, login, token refresh, password reset).
    """
    async with gateway.session() as session:
        yield session
