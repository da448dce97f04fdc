import logging

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.config import ASYNC_DB_URL

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


engine_kwargs = {"echo": False, "pool_pre_ping": True}
if ASYNC_DB_URL.startswith("sqlite"):
    # aiosqlite connections are bound to the loop that opened them
    engine_kwargs["poolclass"] = NullPool

engine = create_async_engine(ASYNC_DB_URL, **engine_kwargs)
logger.info(f"✅ Database engine created ({engine.url.get_backend_name()})")
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

# background tasks and workers open their own sessions
async_session_maker = SessionLocal


async def get_db():
    async with SessionLocal() as session:
        yield session
