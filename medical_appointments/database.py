"""Database configuration and connection management."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from medical_appointments.config import settings


def to_async_url(url: str) -> str:
    """Convert a sync PostgreSQL URL to the asyncpg driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def create_engine_for(url: str, application_name: str) -> AsyncEngine:
    """Create an async engine with connection pooling."""
    return create_async_engine(
        to_async_url(url),
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
        connect_args={
            "server_settings": {
                "application_name": application_name,
            },
        },
    )


# Appointment record store
DATABASE_URL = to_async_url(settings.database_url)
engine: AsyncEngine = create_engine_for(settings.database_url, settings.app_name)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Regional stores, created on first use per country
_regional_engines: dict[str, AsyncEngine] = {}


def get_regional_engine(country_code: str) -> AsyncEngine:
    """Get or create the engine for a country's regional database."""
    if country_code not in _regional_engines:
        url = settings.regional_database_urls[country_code]
        _regional_engines[country_code] = create_engine_for(
            url, f"{settings.app_name} ({country_code})"
        )
    return _regional_engines[country_code]


def get_regional_sessionmaker(country_code: str) -> async_sessionmaker[AsyncSession]:
    """Session factory for a country's regional database."""
    return async_sessionmaker(
        get_regional_engine(country_code),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def dispose_engines() -> None:
    """Dispose every engine created by this process."""
    await engine.dispose()
    for regional_engine in _regional_engines.values():
        await regional_engine.dispose()
    _regional_engines.clear()


async def check_database_connection(target: AsyncEngine | None = None) -> bool:
    """Check if database connection is healthy."""
    try:
        async with (target or engine).connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
