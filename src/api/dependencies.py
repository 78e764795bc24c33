"""FastAPI dependency injection helpers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database import async_session_factory
from src.infrastructure.sql_store import SqlRequestStateStore
from src.infrastructure.store import RequestStateStore
from src.services.decision_engine import DecisionEngine


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_store() -> RequestStateStore:
    return SqlRequestStateStore(async_session_factory)


def get_decision_engine(
    store: RequestStateStore = Depends(get_store),
) -> DecisionEngine:
    return DecisionEngine(store)
