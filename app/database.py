"""
🔌 Database Connection Setup - MongoDB

Un solo cliente Motor por proceso. El motor de puntuación necesita
replica set (Atlas o propio) solo para el modo en vivo con change streams.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import get_settings


class Database:
    """Cliente y base compartidos por toda la app"""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    async def connect(cls):
        if cls.client is not None:
            return

        settings = get_settings()
        cls.client = AsyncIOMotorClient(
            settings.mongodb_uri,
            maxPoolSize=settings.mongodb_max_pool_size,
            minPoolSize=settings.mongodb_min_pool_size,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
            appname="cricket-predictions",
        )
        cls.db = cls.client[settings.mongodb_db_name]

        # Falla rápido si el cluster no responde
        await cls.client.admin.command("ping")
        print(f"✅ Connected to MongoDB: {settings.mongodb_db_name}")

    @classmethod
    async def disconnect(cls):
        if cls.client is None:
            return

        cls.client.close()
        cls.client = None
        cls.db = None
        print("❌ Disconnected from MongoDB")

    @classmethod
    def get_db(cls) -> AsyncIOMotorDatabase:
        if cls.db is None:
            raise RuntimeError("Database not connected. Call Database.connect() first.")
        return cls.db


# ============================================
# 🎯 DEPENDENCY para FastAPI
# ============================================

async def get_database() -> AsyncIOMotorDatabase:
    """
    FastAPI dependency para inyectar la DB

    Uso:
        @router.get("/leaderboard/global")
        async def get_global(db: Database):
            return await LeaderboardService(db).get_global_leaderboard()
    """
    return Database.get_db()


# ============================================
# 🏗️ CREAR ÍNDICES (run once al deployment)
# ============================================

async def create_indexes(db: Optional[AsyncIOMotorDatabase] = None):
    """
    Crea los índices que usan las queries del motor de puntuación

    Ninguno es unique sobre (userId, matchId, questionId): hay respuestas
    viejas con otros formatos de _id, la unicidad la controla la app.
    """
    db = db if db is not None else Database.get_db()

    # Respuestas
    await db.predictionAnswers.create_index("matchId")
    await db.predictionAnswers.create_index([("userId", 1), ("matchId", 1)])
    await db.predictionAnswers.create_index([("userId", 1), ("matchId", 1), ("questionId", 1)])

    # Resultados (se buscan por matchId, no por _id)
    await db.matchResults.create_index("matchId")

    # Partidos
    await db.matches.create_index("status")
    await db.matches.create_index("date")

    # Preguntas
    await db.questions.create_index("isActive")
    await db.questions.create_index("type")

    # Leaderboards
    await db.leaderboards.create_index([("matchId", 1), ("type", 1)])
    await db.leaderboardEntries.create_index([("leaderboardId", 1), ("points", -1)])
    await db.globalLeaderboard.create_index([("totalPoints", -1), ("accuracy", -1)])
    await db.weeklyLeaderboard.create_index([("weekId", 1), ("weeklyPoints", -1)])

    # Leases
    await db.evaluationLocks.create_index("expiresAt")

    print("✅ Indexes created successfully")
