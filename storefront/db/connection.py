from sqlalchemy.ext.asyncio import create_async_engine,async_sessionmaker,AsyncSession
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from storefront.config.settings import config_settings
from storefront.db.utils import _normalize_db_url, is_sqlite_url

DATABASE_URL=_normalize_db_url(config_settings.DATABASE_URL)

# sqlite connections are cheap and must not be shared across event loops
_engine_kwargs = {"poolclass": NullPool} if is_sqlite_url(DATABASE_URL) else {"pool_pre_ping": True}

async_engine=create_async_engine(DATABASE_URL,echo=False,**_engine_kwargs)

async_session=async_sessionmaker(bind=async_engine,class_=AsyncSession,expire_on_commit=False)


async def create_tables():
    # table classes must be imported so they register on the metadata
    import storefront.schema.full_schema  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def drop_tables():
    import storefront.schema.full_schema  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
