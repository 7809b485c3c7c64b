"""
🎯 PredictionAnswerRepository - Respuestas de usuarios a las preguntas

IDs compuestos: user_id:match_id:question_id
La unicidad (una respuesta por usuario + partido + pregunta) se controla
desde la aplicación, no con un índice único: hay respuestas viejas con
otros formatos de _id.
"""

from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.prediction import PredictionAnswer
from app.repositories.batch import WriteBatch


class PredictionAnswerRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["predictionAnswers"]

    @staticmethod
    def make_id(user_id: str, match_id: str, question_id: str) -> str:
        return f"{user_id}:{match_id}:{question_id}"

    def batch(self, max_operations: int) -> WriteBatch:
        return WriteBatch(self.collection, max_operations)

    # ============================================
    # 📌 READ
    # ============================================

    async def get_for_match(self, match_id: str) -> list[PredictionAnswer]:
        """🔥 Todas las respuestas de un partido (de todos los usuarios)"""
        docs = await self.collection.find({"matchId": match_id}).to_list(length=None)
        return [PredictionAnswer(**doc) for doc in docs]

    async def get_for_user(self, user_id: str) -> list[PredictionAnswer]:
        """Historial completo de un usuario (todas las temporadas cargadas)"""
        docs = await self.collection.find({"userId": user_id}).to_list(length=None)
        return [PredictionAnswer(**doc) for doc in docs]

    async def get_for_user_in_matches(
        self,
        user_id: str,
        match_ids: list[str]
    ) -> list[PredictionAnswer]:
        cursor = self.collection.find({
            "userId": user_id,
            "matchId": {"$in": match_ids}
        })
        docs = await cursor.to_list(length=None)
        return [PredictionAnswer(**doc) for doc in docs]

    async def get_user_answers_for_match(
        self,
        user_id: str,
        match_id: str
    ) -> list[PredictionAnswer]:
        cursor = self.collection.find({
            "userId": user_id,
            "matchId": match_id
        }).sort("questionId", 1)
        docs = await cursor.to_list(length=None)
        return [PredictionAnswer(**doc) for doc in docs]

    async def find_existing(
        self,
        user_id: str,
        match_id: str,
        question_id: str
    ) -> Optional[PredictionAnswer]:
        doc = await self.collection.find_one({
            "userId": user_id,
            "matchId": match_id,
            "questionId": question_id
        })
        return PredictionAnswer(**doc) if doc else None

    async def distinct_users(self) -> list[str]:
        """Usuarios con al menos una respuesta"""
        return await self.collection.distinct("userId")

    # ============================================
    # 📌 WRITE
    # ============================================

    async def upsert_answer(
        self,
        user_id: str,
        match_id: str,
        question_id: str,
        answer: str,
        prediction_game_id: Optional[str] = None
    ) -> str:
        """
        Crea o actualiza la respuesta de un usuario.

        Si ya existe una respuesta para (usuario, partido, pregunta) se
        actualiza esa, sin importar el formato de su _id.
        """
        now = datetime.now(timezone.utc)
        existing = await self.find_existing(user_id, match_id, question_id)

        if existing:
            await self.collection.update_one(
                {"_id": existing.id},
                {"$set": {"answer": answer, "updatedAt": now}}
            )
            return existing.id

        answer_id = self.make_id(user_id, match_id, question_id)
        await self.collection.insert_one({
            "_id": answer_id,
            "userId": user_id,
            "matchId": match_id,
            "predictionGameId": prediction_game_id,
            "questionId": question_id,
            "answer": answer,
            "createdAt": now,
            "updatedAt": now,
        })
        return answer_id

    async def delete_user_answers_for_match(self, user_id: str, match_id: str) -> int:
        result = await self.collection.delete_many({"userId": user_id, "matchId": match_id})
        return result.deleted_count
