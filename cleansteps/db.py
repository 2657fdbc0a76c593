from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from cleansteps.config import settings


class Base(DeclarativeBase):
    """Declarative base for the recovery records."""


def normalize_database_url(raw_url: str) -> str:
    """Force the asyncpg driver onto bare PostgreSQL URLs."""
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return raw_url


engine = create_async_engine(
    normalize_database_url(settings.database_url),
    pool_pre_ping=True,
    echo=settings.database_echo,
)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncSession:  # type: ignore[misc]
    async with async_session() as session:
        yield session


async def create_tables() -> None:
    # Records must be imported so their tables are registered on Base.metadata
    from cleansteps.recovery import records  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
