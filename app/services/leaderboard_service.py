"""
LeaderboardService - Writes and serves the materialized leaderboard views.

Three views, all stored in MongoDB:
- match: one header per match + one entry per user, overwritten on every
  evaluation pass and deleted wholesale on reset.
- global: one row per user, ALWAYS recomputed from the user's full answer
  history (never patched with deltas).
- weekly: one row per (week, user), recomputed from the user's answers on the
  matches of that week.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import get_settings
from app.models.leaderboard import LeaderboardEntry, LeaderboardResponse, UserTotals, WeekRange
from app.models.match import Match
from app.repositories.leaderboard_repository import LeaderboardRepository
from app.repositories.match_repository import MatchRepository
from app.repositories.prediction_answer_repository import PredictionAnswerRepository
from app.repositories.user_repository import UserRepository
from app.services.aggregator import aggregate_answers

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anonymous User"


class LeaderboardServiceError(Exception):
    """Base exception for leaderboard service errors."""
    pass


class LeaderboardNotFoundError(LeaderboardServiceError):
    """Raised when leaderboard data is not found."""
    pass


# ============================================
# 📌 SEMANAS
# ============================================

def parse_match_date(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Fecha del partido como datetime naive en UTC (None si no se puede leer)"""
    if value is None:
        return None

    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def week_range_for(moment: datetime, week_start_weekday: int = 0) -> WeekRange:
    """Semana (inicio inclusive, fin inclusive) que contiene `moment`"""
    offset = (moment.weekday() - week_start_weekday) % 7
    start = (moment - timedelta(days=offset)).date()
    end = start + timedelta(days=6)
    return WeekRange(week_id=start.isoformat(), start=start.isoformat(), end=end.isoformat())


def _in_week(match: Match, week: WeekRange) -> bool:
    moment = parse_match_date(match.date)
    if moment is None:
        return False
    day = moment.date().isoformat()
    return week.start <= day <= week.end


def in_current_week(match: Optional[Match], now: datetime, week_start_weekday: int = 0) -> bool:
    """¿El partido se jugó en la semana de `now`? (weeklyPoints solo cuenta esa semana)"""
    if match is None:
        return False
    return _in_week(match, week_range_for(now, week_start_weekday))


class LeaderboardService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.settings = get_settings()
        self.leaderboard_repo = LeaderboardRepository(db)
        self.answer_repo = PredictionAnswerRepository(db)
        self.user_repo = UserRepository(db)
        self.match_repo = MatchRepository(db)

    # ============================================
    # 📌 WRITER
    # ============================================

    async def write_match_leaderboard(self, match_id: str, per_user: dict[str, UserTotals]) -> Optional[str]:
        """
        Upsert de una entrada por usuario en la tabla del partido.

        `per_user` tiene que ser la tabla completa del partido (todas las
        respuestas puntuadas guardadas): las entradas de usuarios que no
        aparecen se borran.
        Merge: pisa puntos y accuracy, conserva cualquier otro campo.

        Returns:
            _id del header de la tabla, None si no hay nada que escribir
        """
        if not per_user:
            header = await self.leaderboard_repo.find_match_header(match_id)
            if header is None:
                return None
            leaderboard_id = header["_id"]
        else:
            leaderboard_id = await self.leaderboard_repo.get_or_create_match_header(match_id)
        users = await self.user_repo.get_many(list(per_user.keys()))
        now = datetime.now(timezone.utc)

        batch = self.leaderboard_repo.entries_batch(self.settings.batch_max_operations)
        for user_id, totals in per_user.items():
            user = users.get(user_id)
            batch.set(
                self.leaderboard_repo.entry_id(leaderboard_id, user_id),
                {
                    "leaderboardId": leaderboard_id,
                    "matchId": match_id,
                    "userId": user_id,
                    "displayName": (user.display_name if user else None) or ANONYMOUS_NAME,
                    "photoURL": user.photo_url if user else None,
                    "points": totals.total_points,
                    "correctPredictions": totals.correct_predictions,
                    "totalPredictions": totals.total_predictions,
                    "accuracy": totals.accuracy,
                    "updatedAt": now,
                },
                merge=True
            )

        await batch.commit()

        removed = await self.leaderboard_repo.delete_match_entries_except(
            leaderboard_id,
            list(per_user.keys()),
            self.settings.batch_max_operations
        )
        logger.info(
            f"🏆 Match leaderboard {leaderboard_id}: {len(per_user)} entries written, "
            f"{removed} stale entries removed"
        )
        return leaderboard_id

    async def refresh_global_leaderboard(self, user_id: str) -> Optional[dict]:
        """
        Recalcula desde cero la fila global de un usuario.

        Returns:
            Los campos escritos, o None si el usuario no existe
        """
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            logger.warning(f"⚠️ User {user_id} not found, global leaderboard not updated")
            return None

        answers = await self.answer_repo.get_for_user(user_id)
        totals = aggregate_answers(answers)

        data = {
            "userId": user_id,
            "displayName": user.display_name or ANONYMOUS_NAME,
            "photoURL": user.photo_url,
            "totalPoints": totals.total_points,
            "correctPredictions": totals.correct_predictions,
            "totalPredictions": totals.total_predictions,
            "accuracy": totals.accuracy,
            "matchesPlayed": totals.matches_played,
            "lastUpdated": datetime.now(timezone.utc),
        }
        await self.leaderboard_repo.set_global_entry(user_id, data)
        return data

    async def week_for_match(self, match_id: str) -> Optional[WeekRange]:
        match = await self.match_repo.get_by_id(match_id)
        if not match:
            logger.warning(f"⚠️ Match {match_id} not found, weekly leaderboard skipped")
            return None

        moment = parse_match_date(match.date)
        if moment is None:
            logger.warning(f"⚠️ Match {match_id} has no usable date, weekly leaderboard skipped")
            return None

        return week_range_for(moment, self.settings.week_start_weekday)

    async def refresh_weekly_leaderboard(self, match_id: str, user_ids: list[str]) -> Optional[str]:
        """
        Recalcula la fila semanal de cada usuario para la semana del partido.

        Usuarios sin respuestas puntuadas esa semana se quitan de la tabla.

        Returns:
            week_id actualizado, o None si el partido no tiene fecha
        """
        week = await self.week_for_match(match_id)
        if week is None:
            return None

        matches = await self.match_repo.get_all()
        week_match_ids = [m.id for m in matches if _in_week(m, week)]
        if match_id not in week_match_ids:
            week_match_ids.append(match_id)

        users = await self.user_repo.get_many(user_ids)
        now = datetime.now(timezone.utc)

        for user_id in user_ids:
            answers = await self.answer_repo.get_for_user_in_matches(user_id, week_match_ids)
            totals = aggregate_answers(answers)

            if totals.total_predictions == 0:
                await self.leaderboard_repo.delete_weekly_entry(week.week_id, user_id)
                continue

            user = users.get(user_id)
            await self.leaderboard_repo.set_weekly_entry(week.week_id, user_id, {
                "displayName": (user.display_name if user else None) or ANONYMOUS_NAME,
                "photoURL": user.photo_url if user else None,
                "weeklyPoints": totals.total_points,
                "correctPredictions": totals.correct_predictions,
                "totalPredictions": totals.total_predictions,
                "accuracy": totals.accuracy,
                "matchesPlayed": totals.matches_played,
                "weekStartDate": week.start,
                "weekEndDate": week.end,
                "lastUpdated": now,
            })

        logger.info(f"📅 Weekly leaderboard {week.week_id}: {len(user_ids)} users refreshed")
        return week.week_id

    async def recalculate_all(self) -> int:
        """Recalcula la fila global de todos los usuarios con respuestas"""
        user_ids = await self.answer_repo.distinct_users()
        refreshed = 0
        for user_id in user_ids:
            if await self.refresh_global_leaderboard(user_id) is not None:
                refreshed += 1

        logger.info(f"✅ Global leaderboard recalculated for {refreshed} users")
        return refreshed

    async def reset_global_leaderboard(self) -> int:
        deleted = await self.leaderboard_repo.delete_all_global_entries()
        logger.info(f"🗑️ Global leaderboard wiped ({deleted} rows)")
        return deleted

    # ============================================
    # 📌 READERS
    # ============================================

    @staticmethod
    def _to_entries(docs: list[dict], points_field: str) -> list[LeaderboardEntry]:
        return [
            LeaderboardEntry(
                rank=rank,
                user_id=doc["userId"],
                display_name=doc.get("displayName") or ANONYMOUS_NAME,
                photo_url=doc.get("photoURL"),
                points=doc.get(points_field, 0),
                correct_predictions=doc.get("correctPredictions", 0),
                total_predictions=doc.get("totalPredictions", 0),
                accuracy=doc.get("accuracy", 0),
                matches_played=doc.get("matchesPlayed"),
            )
            for rank, doc in enumerate(docs, start=1)
        ]

    @staticmethod
    def _position(entries: list[LeaderboardEntry], user_id: Optional[str]) -> Optional[LeaderboardEntry]:
        if not user_id:
            return None
        return next((e for e in entries if e.user_id == user_id), None)

    async def get_match_leaderboard(
        self,
        match_id: str,
        limit: int = 100,
        user_id: Optional[str] = None
    ) -> LeaderboardResponse:
        header = await self.leaderboard_repo.find_match_header(match_id)
        if not header:
            raise LeaderboardNotFoundError(f"No leaderboard for match {match_id}")

        docs = await self.leaderboard_repo.get_match_entries(header["_id"], limit)
        entries = self._to_entries(docs, "points")
        return LeaderboardResponse(
            kind="match",
            scope=match_id,
            entries=entries,
            user_position=self._position(entries, user_id),
        )

    async def get_global_leaderboard(
        self,
        limit: int = 100,
        user_id: Optional[str] = None
    ) -> LeaderboardResponse:
        docs = await self.leaderboard_repo.get_global_entries(limit)
        entries = self._to_entries(docs, "totalPoints")
        return LeaderboardResponse(
            kind="global",
            scope="season",
            entries=entries,
            user_position=self._position(entries, user_id),
        )

    async def get_weeks(self) -> list[str]:
        return await self.leaderboard_repo.get_week_ids()

    async def get_weekly_leaderboard(
        self,
        week_id: Optional[str] = None,
        limit: int = 100,
        user_id: Optional[str] = None
    ) -> LeaderboardResponse:
        """Sin week_id devuelve la semana más reciente con datos"""
        if not week_id:
            weeks = await self.get_weeks()
            if not weeks:
                raise LeaderboardNotFoundError("No weekly leaderboard yet")
            week_id = weeks[0]

        docs = await self.leaderboard_repo.get_weekly_entries(week_id, limit)
        entries = self._to_entries(docs, "weeklyPoints")
        return LeaderboardResponse(
            kind="weekly",
            scope=week_id,
            entries=entries,
            user_position=self._position(entries, user_id),
        )

    async def get_user_rank(self, user_id: str) -> Optional[dict]:
        """
        Posición del usuario en la tabla global.

        Returns dict with rank and entry data, or None if the user has no row.
        """
        docs = await self.leaderboard_repo.get_global_entries(limit=None)
        for entry in self._to_entries(docs, "totalPoints"):
            if entry.user_id == user_id:
                return {"rank": entry.rank, "entry": entry}

        return None
