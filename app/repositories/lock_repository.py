"""
🔒 LockRepository - Lease por partido para evaluar / resetear

Un documento en `evaluationLocks` por partido (_id = match_id) con el dueño
y la fecha de expiración. Si el lease expiró, otro proceso lo puede tomar
con un compare-and-swap sobre el dueño anterior.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError


class LockHeldError(Exception):
    """Raised when another owner holds an unexpired lease."""

    def __init__(self, match_id: str, owner: Optional[str], expires_at: Optional[datetime]):
        self.match_id = match_id
        self.owner = owner
        self.expires_at = expires_at
        super().__init__(f"Match {match_id} is locked by {owner} until {expires_at}")


def _as_utc(value: datetime) -> datetime:
    # pymongo devuelve datetimes naive (en UTC) salvo tz_aware=True
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class LockRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["evaluationLocks"]

    async def acquire(self, match_id: str, ttl_seconds: int, purpose: str = "evaluate") -> str:
        """
        Toma el lease del partido.

        Returns:
            Token del dueño (hay que pasarlo a release)

        Raises:
            LockHeldError si otro tiene el lease y no expiró
        """
        owner = uuid4().hex
        now = datetime.now(timezone.utc)
        lease = {
            "owner": owner,
            "purpose": purpose,
            "acquiredAt": now,
            "expiresAt": now + timedelta(seconds=ttl_seconds),
        }

        try:
            await self.collection.insert_one({"_id": match_id, **lease})
            return owner
        except DuplicateKeyError:
            pass

        current = await self.collection.find_one({"_id": match_id})
        if current is None:
            # Lo liberaron entre el insert y el find: reintento una vez
            try:
                await self.collection.insert_one({"_id": match_id, **lease})
                return owner
            except DuplicateKeyError:
                current = await self.collection.find_one({"_id": match_id})

        expires_at = current.get("expiresAt") if current else None
        if current and expires_at and _as_utc(expires_at) > now:
            raise LockHeldError(match_id, current.get("owner"), expires_at)

        # Lease expirado: lo tomo solo si nadie más lo tomó antes
        taken = await self.collection.find_one_and_update(
            {"_id": match_id, "owner": current.get("owner") if current else None},
            {"$set": lease},
            return_document=ReturnDocument.AFTER
        )
        if taken is None:
            raise LockHeldError(match_id, None, None)
        return owner

    async def release(self, match_id: str, owner: str) -> bool:
        """Libera el lease solo si sigue siendo nuestro"""
        result = await self.collection.delete_one({"_id": match_id, "owner": owner})
        return result.deleted_count > 0

    async def get(self, match_id: str) -> Optional[dict]:
        return await self.collection.find_one({"_id": match_id})
