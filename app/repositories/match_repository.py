"""
🏏 MatchRepository - Partidos y resultados oficiales

Los resultados viven en `matchResults` y se buscan por el campo `matchId`:
el _id del documento no tiene por qué coincidir con el id del partido.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.match import Match, MatchResult


class MatchRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["matches"]
        self.results = db["matchResults"]

    # ============================================
    # 📌 MATCHES
    # ============================================

    async def get_by_id(self, match_id: str) -> Optional[Match]:
        doc = await self.collection.find_one({"_id": match_id})
        return Match(**doc) if doc else None

    async def get_all(self) -> list[Match]:
        """Todos los partidos (una temporada son ~75, se filtran en memoria)"""
        docs = await self.collection.find({}).to_list(length=None)
        return [Match(**doc) for doc in docs]

    async def set_status(self, match_id: str, status: str, clear_result: bool = False) -> bool:
        """Cambia el status del partido. Con clear_result=True borra el resumen de resultado."""
        update: dict = {
            "$set": {
                "status": status,
                "updatedAt": datetime.now(timezone.utc)
            }
        }
        if clear_result:
            update["$unset"] = {"result": ""}

        result = await self.collection.update_one({"_id": match_id}, update)
        return result.matched_count > 0

    async def set_result_summary(self, match_id: str, summary: dict) -> bool:
        """Guarda el resumen del resultado en el partido y lo marca completado"""
        result = await self.collection.update_one(
            {"_id": match_id},
            {
                "$set": {
                    "status": "completed",
                    "result": summary,
                    "updatedAt": datetime.now(timezone.utc)
                }
            }
        )
        return result.matched_count > 0

    # ============================================
    # 📌 MATCH RESULTS
    # ============================================

    async def get_result(self, match_id: str) -> Optional[MatchResult]:
        """Obtiene el resultado de un partido (filtrando por matchId)"""
        doc = await self.results.find_one({"matchId": match_id})
        return MatchResult(**doc) if doc else None

    async def save_result(self, match_id: str, created_by: str, data: dict) -> str:
        """
        Crea o actualiza el resultado de un partido.

        Returns:
            _id del documento de resultado
        """
        now = datetime.now(timezone.utc)
        existing = await self.results.find_one({"matchId": match_id}, {"_id": 1})

        if existing:
            await self.results.update_one(
                {"_id": existing["_id"]},
                {"$set": {**data, "updatedAt": now}}
            )
            return existing["_id"]

        result_id = uuid4().hex
        await self.results.insert_one({
            "_id": result_id,
            "matchId": match_id,
            "createdBy": created_by,
            **data,
            "createdAt": now,
            "updatedAt": now,
        })
        return result_id

    async def mark_evaluated(self, result_id: str) -> None:
        now = datetime.now(timezone.utc)
        await self.results.update_one(
            {"_id": result_id},
            {"$set": {"isEvaluated": True, "evaluatedAt": now, "updatedAt": now}}
        )

    async def delete_result(self, match_id: str) -> bool:
        """Borra el resultado del partido. Retorna False si no había."""
        result = await self.results.delete_many({"matchId": match_id})
        return result.deleted_count > 0
