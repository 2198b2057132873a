from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from keepmeontrack.core.config import settings

engine_options = {"echo": False, "pool_pre_ping": True}
if settings.async_database_url.startswith("postgresql"):
    engine_options.update(
        pool_size=20,
        max_overflow=10,
        pool_recycle=3600,
        connect_args={"server_settings": {"jit": "off"}},
    )

engine = create_async_engine(settings.async_database_url, **engine_options)

AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()

async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

async def init_db():
    # Registers every table on Base.metadata
    from keepmeontrack.models import goal, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def drop_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
