from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from datetime import datetime, timezone
from bosroller.core.config import settings

class Base(DeclarativeBase):
    pass

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

# MySQL specific configuration
if "mysql" in settings.database_url.lower():
    async_engine = create_async_engine(
        settings.database_url,
        echo=settings.sqlalchemy_echo,
        pool_pre_ping=True,
        pool_recycle=3600,
        isolation_level="READ COMMITTED",  # callbacks must be visible to the next poll
        connect_args={
            "charset": "utf8mb4",
            "autocommit": False,
        }
    )
else:
    # SQLite configuration
    async_engine = create_async_engine(
        settings.database_url,
        echo=settings.sqlalchemy_echo,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

async def create_tables():
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
