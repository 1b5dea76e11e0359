"""Celery task that repairs drifted denormalized counters."""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from vidsphere.core.celery_app import celery_app
from vidsphere.core.config import settings
from vidsphere.services.counter_service import (
    reconcile_creator_totals,
    reconcile_follow_counters,
    reconcile_replies_counts,
)

logger = logging.getLogger(__name__)


async def reconcile_all(session_maker: async_sessionmaker[AsyncSession]) -> dict[str, int]:
    """Run every reconciliation pass in one transaction. Returns rows fixed per counter family."""
    async with session_maker() as db:
        fixed = {
            "users": await reconcile_follow_counters(db),
            "comments": await reconcile_replies_counts(db),
            "creators": await reconcile_creator_totals(db),
        }
        await db.commit()
    if any(fixed.values()):
        logger.warning(
            "Reconciliation fixed %d users, %d comments and %d creator totals",
            fixed["users"], fixed["comments"], fixed["creators"],
        )
    else:
        logger.info("Reconciliation found no drift")
    return fixed


async def _reconcile_with_fresh_engine() -> dict[str, int]:
    # Each task run gets its own event loop, so it cannot share the API's pooled engine
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    try:
        return await reconcile_all(async_sessionmaker(engine, expire_on_commit=False))
    finally:
        await engine.dispose()


@celery_app.task(name="vidsphere.reconcile_counters")
def reconcile_counters() -> dict[str, int]:
    return asyncio.run(_reconcile_with_fresh_engine())
