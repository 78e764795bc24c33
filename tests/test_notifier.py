"""Tests for the background notification relay (mocked Redis, SQLite DB)."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from src.domain.enums import NotificationType
from src.infrastructure.models import NotificationModel
from src.workers import notifier


async def _add_notifications(factory, count: int) -> None:
    async with factory() as session:
        for i in range(count):
            session.add(
                NotificationModel(
                    type=NotificationType.STATUS_UPDATE,
                    message=f"Request to Stop {i} has been accepted",
                )
            )
        await session.commit()


def _redis(lock_free: bool = True) -> AsyncMock:
    redis = AsyncMock()
    redis.set = AsyncMock(return_value=lock_free)
    redis.eval = AsyncMock(return_value=1)
    redis.publish = AsyncMock(return_value=1)
    return redis


async def _dispatched(factory) -> list:
    async with factory() as session:
        rows = (
            await session.execute(select(NotificationModel).order_by(NotificationModel.id))
        ).scalars()
        return [row.dispatched_at for row in rows]


class TestRelayCycle:
    @pytest.mark.asyncio
    async def test_publishes_and_stamps_pending_rows(self, session_factory):
        await _add_notifications(session_factory, 3)
        redis = _redis()

        with (
            patch.object(notifier, "async_session_factory", session_factory),
            patch.object(notifier, "get_redis", AsyncMock(return_value=redis)),
        ):
            sent = await notifier.run_relay_cycle()
            again = await notifier.run_relay_cycle()

        assert sent == 3
        assert again == 0
        assert redis.publish.await_count == 3
        channel, payload = redis.publish.await_args_list[0].args
        assert channel == "dispatch:notifications"
        assert json.loads(payload)["type"] == "status_update"
        assert all(stamp is not None for stamp in await _dispatched(session_factory))

    @pytest.mark.asyncio
    async def test_skips_cycle_when_lock_is_held(self, session_factory):
        await _add_notifications(session_factory, 2)
        redis = _redis(lock_free=False)

        with (
            patch.object(notifier, "async_session_factory", session_factory),
            patch.object(notifier, "get_redis", AsyncMock(return_value=redis)),
        ):
            sent = await notifier.run_relay_cycle()

        assert sent == 0
        redis.publish.assert_not_awaited()
        assert await _dispatched(session_factory) == [None, None]

    @pytest.mark.asyncio
    async def test_publish_failure_leaves_rest_for_next_cycle(self, session_factory):
        await _add_notifications(session_factory, 3)
        redis = _redis()
        redis.publish = AsyncMock(side_effect=[1, ConnectionError("redis down"), 1])

        with (
            patch.object(notifier, "async_session_factory", session_factory),
            patch.object(notifier, "get_redis", AsyncMock(return_value=redis)),
        ):
            sent = await notifier.run_relay_cycle()

        assert sent == 1
        stamps = await _dispatched(session_factory)
        assert stamps[0] is not None
        assert stamps[1:] == [None, None]
        redis.eval.assert_awaited_once()
