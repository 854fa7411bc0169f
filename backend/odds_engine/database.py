from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from odds_engine.config import get_database_url


class Base(DeclarativeBase):
    pass


engine = create_async_engine(get_database_url(), future=True)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def try_advisory_lock(session: AsyncSession, key: int) -> bool:
    if session.bind.dialect.name != "postgresql":
        return True
    return bool(await session.scalar(text("SELECT pg_try_advisory_lock(:key)"), {"key": key}))


async def release_advisory_lock(session: AsyncSession, key: int) -> None:
    if session.bind.dialect.name != "postgresql":
        return
    await session.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": key})
    await session.commit()
