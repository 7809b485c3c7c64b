"""
UserRepository - MongoDB access for users collection.

Users are created by the identity provider sync; this repository only reads
profiles and maintains the scoring aggregate fields.
"""

from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.user import User
from app.repositories.batch import WriteBatch


class UserRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["users"]

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID (identity provider uid)."""
        doc = await self.collection.find_one({"_id": user_id})
        return User(**doc) if doc else None

    async def get_many(self, user_ids: list[str]) -> dict[str, User]:
        """Get several users at once, keyed by ID. Missing users are left out."""
        if not user_ids:
            return {}
        docs = await self.collection.find({"_id": {"$in": user_ids}}).to_list(length=None)
        return {doc["_id"]: User(**doc) for doc in docs}

    async def apply_aggregate_changes(
        self,
        changes: dict[str, dict[str, int]],
        clamp_at_zero: bool,
        max_operations: int,
        include_weekly: bool = True
    ) -> int:
        """
        Add deltas to the aggregate fields of several users.

        `changes` maps user_id -> {"points", "correct", "total"} deltas.
        Points apply to totalPoints, and to weeklyPoints only with include_weekly
        (the match belongs to the week being counted). overallAccuracy is
        recomputed from the new counters. With clamp_at_zero no field is
        allowed to go below 0. Users that don't exist are skipped.

        Returns number of users updated.
        """
        users = await self.get_many(list(changes.keys()))
        batch = WriteBatch(self.collection, max_operations)
        now = datetime.now(timezone.utc)

        for user_id, delta in changes.items():
            user = users.get(user_id)
            if user is None:
                continue

            total_points = user.total_points + delta.get("points", 0)
            weekly_points = user.weekly_points
            if include_weekly:
                weekly_points += delta.get("points", 0)
            correct = user.correct_predictions + delta.get("correct", 0)
            total = user.total_predictions + delta.get("total", 0)

            if clamp_at_zero:
                total_points = max(0, total_points)
                weekly_points = max(0, weekly_points)
                correct = max(0, correct)
                total = max(0, total)

            accuracy = round(correct / total * 100) if total > 0 else 0

            batch.update(user_id, {
                "totalPoints": total_points,
                "weeklyPoints": weekly_points,
                "correctPredictions": correct,
                "totalPredictions": total,
                "overallAccuracy": accuracy,
                "updatedAt": now,
            })

        updated = len(batch)
        await batch.commit()
        return updated

    async def reset_weekly_points(self) -> int:
        """Weekly rollover: weeklyPoints back to zero for everybody."""
        result = await self.collection.update_many(
            {},
            {"$set": {"weeklyPoints": 0, "updatedAt": datetime.now(timezone.utc)}}
        )
        return result.modified_count
