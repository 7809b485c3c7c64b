"""
🏆 LeaderboardRepository - Vistas materializadas de las tablas

- leaderboards / leaderboardEntries: tabla por partido (header + entradas)
- globalLeaderboard: una fila por usuario, _id = user_id
- weeklyLeaderboard: una fila por semana y usuario, _id = week_id:user_id
"""

from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.repositories.batch import WriteBatch


class LeaderboardRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.headers = db["leaderboards"]
        self.entries = db["leaderboardEntries"]
        self.global_entries = db["globalLeaderboard"]
        self.weekly_entries = db["weeklyLeaderboard"]

    # ============================================
    # 📌 MATCH LEADERBOARD
    # ============================================

    @staticmethod
    def entry_id(leaderboard_id: str, user_id: str) -> str:
        return f"{leaderboard_id}:{user_id}"

    async def find_match_header(self, match_id: str) -> Optional[dict]:
        return await self.headers.find_one({"matchId": match_id, "type": "match"})

    async def get_or_create_match_header(self, match_id: str) -> str:
        """
        Busca el header de la tabla del partido y si no existe lo crea.

        Returns:
            _id del header
        """
        existing = await self.find_match_header(match_id)
        if existing:
            return existing["_id"]

        header_id = f"match-{match_id}"
        now = datetime.now(timezone.utc)
        await self.headers.update_one(
            {"_id": header_id},
            {
                "$set": {"updatedAt": now},
                "$setOnInsert": {
                    "matchId": match_id,
                    "type": "match",
                    "title": f"Match {match_id} Leaderboard",
                    "createdAt": now,
                }
            },
            upsert=True
        )
        return header_id

    def entries_batch(self, max_operations: int) -> WriteBatch:
        return WriteBatch(self.entries, max_operations)

    async def get_match_entries(self, leaderboard_id: str, limit: int = 100) -> list[dict]:
        cursor = self.entries.find({"leaderboardId": leaderboard_id}).sort([
            ("points", -1),
            ("accuracy", -1),
        ]).limit(limit)
        return await cursor.to_list(length=limit)

    async def delete_match_entries_except(
        self,
        leaderboard_id: str,
        keep_user_ids: list[str],
        max_operations: int
    ) -> int:
        """Borra las entradas de la tabla cuyos usuarios ya no tienen respuestas puntuadas"""
        stale = await self.entries.find(
            {"leaderboardId": leaderboard_id, "userId": {"$nin": keep_user_ids}},
            {"_id": 1}
        ).to_list(length=None)

        batch = WriteBatch(self.entries, max_operations)
        for entry in stale:
            batch.delete(entry["_id"])
        await batch.commit()
        return len(stale)

    async def delete_match_leaderboard(self, match_id: str, max_operations: int) -> bool:
        """
        Borra el header y TODAS sus entradas.

        Returns:
            False si el partido no tenía tabla
        """
        header = await self.find_match_header(match_id)
        if not header:
            return False

        entries = await self.entries.find(
            {"leaderboardId": header["_id"]},
            {"_id": 1}
        ).to_list(length=None)

        batch = WriteBatch(self.entries, max_operations)
        for entry in entries:
            batch.delete(entry["_id"])
        await batch.commit()

        await self.headers.delete_one({"_id": header["_id"]})
        return True

    # ============================================
    # 📌 GLOBAL LEADERBOARD
    # ============================================

    async def set_global_entry(self, user_id: str, data: dict) -> None:
        """set(..., merge=True): pisa los campos de `data`, conserva el resto"""
        await self.global_entries.update_one(
            {"_id": user_id},
            {"$set": data},
            upsert=True
        )

    async def get_global_entries(self, limit: Optional[int] = 100) -> list[dict]:
        """
        Ordena por:
        1. totalPoints (descendente)
        2. accuracy (descendente) - como desempate
        3. totalPredictions (ascendente) - menos predicciones es mejor si empatan en todo

        limit=None devuelve la tabla completa.
        """
        cursor = self.global_entries.find({}).sort([
            ("totalPoints", -1),
            ("accuracy", -1),
            ("totalPredictions", 1),
        ])
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=None)

    async def delete_all_global_entries(self) -> int:
        result = await self.global_entries.delete_many({})
        return result.deleted_count

    # ============================================
    # 📌 WEEKLY LEADERBOARD
    # ============================================

    @staticmethod
    def weekly_id(week_id: str, user_id: str) -> str:
        return f"{week_id}:{user_id}"

    async def set_weekly_entry(self, week_id: str, user_id: str, data: dict) -> None:
        await self.weekly_entries.update_one(
            {"_id": self.weekly_id(week_id, user_id)},
            {"$set": {**data, "weekId": week_id, "userId": user_id}},
            upsert=True
        )

    async def delete_weekly_entry(self, week_id: str, user_id: str) -> bool:
        result = await self.weekly_entries.delete_one({"_id": self.weekly_id(week_id, user_id)})
        return result.deleted_count > 0

    async def get_weekly_entries(self, week_id: str, limit: int = 100) -> list[dict]:
        cursor = self.weekly_entries.find({"weekId": week_id}).sort([
            ("weeklyPoints", -1),
            ("accuracy", -1),
        ]).limit(limit)
        return await cursor.to_list(length=limit)

    async def get_week_ids(self) -> list[str]:
        """Semanas con al menos una fila, la más reciente primero"""
        week_ids = await self.weekly_entries.distinct("weekId")
        return sorted(week_ids, reverse=True)
