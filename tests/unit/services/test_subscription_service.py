"""
Unit tests for live leaderboard subscriptions (poll mode)
"""

import asyncio

import pytest

from app.services.subscription_service import LeaderboardSubscription, subscribe_leaderboard


async def wait_until(condition, timeout: float = 2.0):
    """Espera a que se cumpla `condition` cediendo el loop"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class TestLeaderboardSubscription:

    @pytest.mark.asyncio
    async def test_delivers_only_changed_snapshots(self):
        values = iter([1, 1, 2, 2, 2, 3])
        received = []

        async def fetch():
            return next(values, 3)

        subscription = LeaderboardSubscription(fetch, received.append, interval=0.01).start()
        await wait_until(lambda: received == [1, 2, 3])
        subscription.unsubscribe()
        await subscription.wait_closed()

        assert received == [1, 2, 3]
        assert subscription.active is False

    @pytest.mark.asyncio
    async def test_async_callback(self):
        received = []

        async def fetch():
            return {"entries": []}

        async def on_snapshot(snapshot):
            received.append(snapshot)

        subscription = LeaderboardSubscription(fetch, on_snapshot, interval=0.01).start()
        await wait_until(lambda: len(received) == 1)
        subscription.unsubscribe()
        await subscription.wait_closed()

        assert received == [{"entries": []}]

    @pytest.mark.asyncio
    async def test_unsubscribe_is_idempotent(self):
        async def fetch():
            return 1

        subscription = LeaderboardSubscription(fetch, lambda _: None, interval=0.01).start()
        subscription.unsubscribe()
        subscription.unsubscribe()
        await subscription.wait_closed()

        assert subscription.active is False

    @pytest.mark.asyncio
    async def test_fetch_error_stops_subscription(self):
        async def fetch():
            raise RuntimeError("store unavailable")

        subscription = LeaderboardSubscription(fetch, lambda _: None, interval=0.01).start()
        await subscription.wait_closed()

        assert isinstance(subscription.error, RuntimeError)
        assert subscription.active is False

    def test_change_stream_needs_collection(self):
        async def fetch():
            return None

        with pytest.raises(ValueError):
            LeaderboardSubscription(fetch, lambda _: None, mode="change_stream")


class TestSubscribeLeaderboard:

    @pytest.mark.asyncio
    async def test_global_snapshots_follow_writes(self, test_db):
        snapshots = []
        subscription = subscribe_leaderboard(test_db, "global", snapshots.append, mode="poll", interval=0.01)

        await wait_until(lambda: len(snapshots) == 1)
        assert snapshots[0].entries == []

        await test_db["globalLeaderboard"].insert_one(
            {"_id": "u1", "userId": "u1", "displayName": "Alice", "totalPoints": 10}
        )
        await wait_until(lambda: len(snapshots) == 2)

        subscription.unsubscribe()
        await subscription.wait_closed()

        assert snapshots[1].kind == "global"
        assert snapshots[1].entries[0].points == 10

    @pytest.mark.asyncio
    async def test_match_board_without_header_is_empty(self, test_db):
        snapshots = []
        subscription = subscribe_leaderboard(test_db, "match", snapshots.append, scope="m1", mode="poll", interval=0.01)

        await wait_until(lambda: len(snapshots) == 1)
        subscription.unsubscribe()
        await subscription.wait_closed()

        assert snapshots[0].kind == "match"
        assert snapshots[0].scope == "m1"
        assert snapshots[0].entries == []

    def test_invalid_kind(self):
        with pytest.raises(ValueError):
            subscribe_leaderboard(None, "monthly", lambda _: None)

    def test_match_needs_scope(self):
        with pytest.raises(ValueError):
            subscribe_leaderboard(None, "match", lambda _: None)
