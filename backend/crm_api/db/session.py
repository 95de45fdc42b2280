from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from crm_api.core.config import settings
from crm_api.db.base import Base

engine = create_async_engine(settings.database_url, pool_pre_ping=True, future=True)
SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


async def init_models(eng: AsyncEngine = engine) -> None:
    import crm_api.models.user  # noqa: F401

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
