from typing import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)
from sqlalchemy.pool import NullPool

from tribe_api.config import DB_URL, APP_DEBUG

_engine_kwargs = {
    "pool_pre_ping": True,
    "echo": APP_DEBUG,
    "future": True,
}
if DB_URL.startswith("sqlite"):
    # 로컬/테스트용 sqlite 파일: 이벤트 루프마다 새 커넥션
    _engine_kwargs["poolclass"] = NullPool
else:
    _engine_kwargs["pool_recycle"] = 1800

engine = create_async_engine(DB_URL, **_engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Async session context manager used by routers and scripts.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

# --- called once at startup ---
async def init_models() -> None:
    """
    Create tables from models.Base (stand-in until migrations exist).
    """
    from tribe_api.db.models import Base  # 지연 임포트로 순환참조 방지
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
