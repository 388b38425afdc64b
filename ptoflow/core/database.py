from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from ptoflow.core.config import settings

ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def to_async_url(url: str) -> str:
    """Swap a plain driver prefix for its async driver; other URLs pass through."""
    for prefix, async_prefix in ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return url.replace(prefix, async_prefix, 1)
    return url


database_url = to_async_url(settings.DATABASE_URL)

engine_options = {"echo": False}
if database_url.startswith("postgresql"):
    engine_options.update(pool_pre_ping=True, pool_size=10, max_overflow=20)

engine = create_async_engine(database_url, **engine_options)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    """One session per request. Services commit; anything left open is rolled back."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()
