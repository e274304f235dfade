# wl_app/db/base.py
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from wl_app.core.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str) -> AsyncEngine:
    return create_async_engine(url, future=True, echo=False)


def make_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


engine = make_engine(settings.database_url)
async_session = make_session_maker(engine)


async def init_db(bind: AsyncEngine = engine):
    # models must be imported so their tables are registered on Base.metadata
    import wl_app.db.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
