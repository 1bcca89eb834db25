# auditcast/infrastructure/database/session.py

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import declarative_base
from auditcast.config.settings import get_settings

DATABASE_URL = get_settings().database_url

engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

Base = declarative_base()


async def create_schema() -> None:
    """Create missing tables. Existing tables are left untouched."""
    # Import registers the models on Base.metadata
    from auditcast.infrastructure.database import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
