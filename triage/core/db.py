from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.POSTGRES_DSN, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def init_models():
    # In dev-only "create_all" mode the ORM owns the schema; otherwise, migrations do.
    if settings.DB_MANAGE.lower() == "create_all":
        # register every table on Base.metadata
        from triage.modules.queries import models as _queries  # noqa: F401
        from triage.modules.teams import models as _teams  # noqa: F401
        from triage.modules.activity import models as _activity  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
