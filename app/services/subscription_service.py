"""
📡 Suscripciones en vivo a las tablas de clasificación

Cada suscripción es una task de asyncio que entrega snapshots COMPLETOS de la
vista (nunca deltas) cada vez que cambia, hasta que se llama a unsubscribe().

Dos modos:
- poll: relee la vista cada `interval` segundos y entrega solo si cambió
- change_stream: espera eventos de `collection.watch()` (requiere replica set)
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase

from app.core.config import get_settings
from app.models.leaderboard import LeaderboardResponse
from app.services.leaderboard_service import LeaderboardNotFoundError, LeaderboardService

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Any], Any]

LEADERBOARD_KINDS = ("match", "weekly", "global")


class LeaderboardSubscription:
    def __init__(
        self,
        fetch: Callable[[], Awaitable[Any]],
        on_snapshot: SnapshotCallback,
        mode: str = "poll",
        interval: float = 2.0,
        collection: Optional[AsyncIOMotorCollection] = None
    ):
        if mode == "change_stream" and collection is None:
            raise ValueError("change_stream mode needs a collection to watch")

        self.fetch = fetch
        self.on_snapshot = on_snapshot
        self.mode = mode
        self.interval = interval
        self.collection = collection

        self.error: Optional[BaseException] = None
        self._last: Any = None
        self._delivered = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def delivered(self) -> int:
        return self._delivered

    def start(self) -> "LeaderboardSubscription":
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        return self

    def unsubscribe(self) -> None:
        """Cancela la task. Se puede llamar más de una vez."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _deliver(self, snapshot: Any) -> None:
        if self._delivered and snapshot == self._last:
            return

        self._last = snapshot
        self._delivered += 1

        outcome = self.on_snapshot(snapshot)
        if inspect.isawaitable(outcome):
            await outcome

    async def _run(self) -> None:
        try:
            await self._deliver(await self.fetch())

            if self.mode == "change_stream":
                async with self.collection.watch(full_document="updateLookup") as stream:
                    async for _change in stream:
                        await self._deliver(await self.fetch())
            else:
                while True:
                    await asyncio.sleep(self.interval)
                    await self._deliver(await self.fetch())

        except asyncio.CancelledError:
            raise
        except Exception as e:
            # La task no la espera nadie: queda registrado y la suscripción termina
            self.error = e
            logger.exception(f"❌ Leaderboard subscription stopped: {e}")


# ============================================
# 📌 FACTORY por tipo de tabla
# ============================================

def _collection_for(service: LeaderboardService, kind: str) -> AsyncIOMotorCollection:
    repo = service.leaderboard_repo
    if kind == "match":
        return repo.entries
    if kind == "weekly":
        return repo.weekly_entries
    return repo.global_entries


def subscribe_leaderboard(
    db: AsyncIOMotorDatabase,
    kind: str,
    on_snapshot: SnapshotCallback,
    scope: Optional[str] = None,
    limit: int = 100,
    mode: Optional[str] = None,
    interval: Optional[float] = None
) -> LeaderboardSubscription:
    """
    Suscribe `on_snapshot` a una tabla (match | weekly | global).

    scope: match_id para "match", week_id para "weekly" (None = semana más reciente)

    Returns:
        La suscripción ya arrancada; el que llama tiene que hacer unsubscribe()
    """
    if kind not in LEADERBOARD_KINDS:
        raise ValueError(f"Unknown leaderboard kind: {kind}")
    if kind == "match" and not scope:
        raise ValueError("Match leaderboard subscription needs a match_id")

    settings = get_settings()
    service = LeaderboardService(db)

    async def fetch() -> LeaderboardResponse:
        try:
            if kind == "match":
                return await service.get_match_leaderboard(scope, limit)
            if kind == "weekly":
                return await service.get_weekly_leaderboard(scope, limit)
            return await service.get_global_leaderboard(limit)
        except LeaderboardNotFoundError:
            # Todavía no hay tabla: snapshot vacío
            return LeaderboardResponse(kind=kind, scope=scope, entries=[])

    subscription = LeaderboardSubscription(
        fetch,
        on_snapshot,
        mode=mode or settings.leaderboard_live_mode,
        interval=interval if interval is not None else settings.leaderboard_poll_interval_seconds,
        collection=_collection_for(service, kind),
    )
    return subscription.start()
