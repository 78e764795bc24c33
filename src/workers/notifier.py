"""
Background Notification Relay
=============================

Runs every ``NOTIFICATION_INTERVAL_SECONDS`` (default 5 s).

Every status transition appends a notification row in the same database
transaction as the status write.  This worker publishes those rows to a
Redis channel after the fact, so delivery is fire-and-forget from the
decision engine's point of view.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance relays at a time
  across multiple API processes.
* **SELECT ... FOR UPDATE SKIP LOCKED** on the batch keeps overlapping
  cycles from publishing the same row twice.

Algorithm per cycle
-------------------
1. Fetch up to ``NOTIFICATION_BATCH_SIZE`` rows with no ``dispatched_at``.
2. Publish each as JSON to ``NOTIFICATION_CHANNEL``.
3. Stamp ``dispatched_at`` on the published rows and commit.
"""

from __future__ import annotations

import asyncio
import json
import logging

from src.config import settings
from src.infrastructure.database import async_session_factory
from src.infrastructure.locks import DistributedLock
from src.infrastructure.redis_client import close_redis, get_redis
from src.infrastructure.repositories import (
    NotificationRepository,
    notification_to_domain,
)

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_relay_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Notification relay started (interval=%ds)",
        settings.notification_interval_seconds,
    )


async def stop_relay_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    await close_redis()
    logger.info("Notification relay stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: relay a batch then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_relay_cycle()
        except Exception:
            logger.exception("Unhandled error in notification relay")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.notification_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


def _payload(notification) -> str:
    return json.dumps(
        {
            "id": notification.id,
            "request_id": notification.request_id,
            "type": notification.type.value,
            "message": notification.message,
            "created_at": (
                notification.created_at.isoformat()
                if notification.created_at
                else None
            ),
        }
    )


async def run_relay_cycle() -> int:
    """Execute one relay cycle.  Returns the number of notifications sent."""
    redis = await get_redis()
    lock = DistributedLock(redis, "notification_relay", ttl_seconds=60)

    if not await lock.acquire():
        logger.debug("Lock held by another relay – skipping cycle")
        return 0

    sent: list[int] = []
    try:
        async with async_session_factory() as session:
            repo = NotificationRepository(session)
            pending = await repo.get_undispatched(settings.notification_batch_size)

            for row in pending:
                notification = notification_to_domain(row)
                try:
                    await redis.publish(
                        settings.notification_channel, _payload(notification)
                    )
                except Exception:
                    logger.exception(
                        "Publishing notification %s failed; will retry",
                        notification.id,
                    )
                    break
                sent.append(notification.id)

            await repo.mark_dispatched(sent)
            await session.commit()
            if sent:
                logger.info("Relay cycle: %d notifications published", len(sent))
    except Exception:
        logger.exception("Error in notification relay cycle")
    finally:
        await lock.release()

    return len(sent)
