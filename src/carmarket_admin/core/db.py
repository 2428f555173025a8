# src/carmarket_admin/core/db.py
import asyncio
import logging
from typing import AsyncGenerator, Optional
from contextlib import suppress

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy import text
from sqlmodel import SQLModel

from carmarket_admin.core.config import settings, async_retry


# Logger
logger = logging.getLogger("db_core")
logger.setLevel(logging.DEBUG if settings.MODE == "development" else logging.INFO)
if not logger.handlers:
    ch = logging.StreamHandler()
    ch.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
    logger.addHandler(ch)


# Globals
async_engine: Optional[AsyncEngine] = None
async_session_factory: Optional[sessionmaker] = None
DB_SEMAPHORE: Optional[asyncio.Semaphore] = None


def _build_async_engine(db_url: str) -> AsyncEngine:
    if db_url.startswith("sqlite"):
        return create_async_engine(db_url, future=True)
    return create_async_engine(
        db_url,
        echo=False,
        pool_size=settings.POOL_SIZE,
        max_overflow=5,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
        future=True,
    )


async def _validate_async_engine(engine: AsyncEngine):
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


@async_retry(max_attempts=4, base_delay=0.5, max_delay=3.0)
async def create_async_db_engine() -> None:
    global async_engine, async_session_factory, DB_SEMAPHORE

    engine = _build_async_engine(settings.DATABASE_URL)
    session_factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False, future=True)

    await _validate_async_engine(engine)

    async_engine = engine
    async_session_factory = session_factory

    if DB_SEMAPHORE is None:
        DB_SEMAPHORE = asyncio.Semaphore(settings.POOL_SIZE)
    logger.info("Async engine ready (pool=%d)", settings.POOL_SIZE)


# Session Providers
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    if async_session_factory is None:
        await create_async_db_engine()
    assert DB_SEMAPHORE is not None
    async with DB_SEMAPHORE:
        async with async_session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


# Initialize DB tables
async def init_db():
    if async_engine is None:
        await create_async_db_engine()
    # table registration
    from carmarket_admin.models.admin import Admin  # noqa: F401
    from carmarket_admin.models.login_event import LoginEvent  # noqa: F401
    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Async DB initialized")


async def shutdown():
    global async_engine, async_session_factory
    if async_engine:
        with suppress(Exception):
            await async_engine.dispose()
    async_engine = None
    async_session_factory = None
    logger.info("DB shutdown complete")
