"""
🧺 WriteBatch - Escrituras agrupadas sobre una colección

Acumula operaciones (set / update / delete) y las manda con bulk_write.
Cada commit se parte en chunks de `max_operations`: cada chunk es atómico
respecto al resto de escrituras del chunk, pero una pasada grande NO lo es
de punta a punta. Re-ejecutar la operación es la forma de recuperarse.
"""

import logging
from typing import Any, Union

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DeleteOne, ReplaceOne, UpdateOne

logger = logging.getLogger(__name__)

WriteOp = Union[UpdateOne, ReplaceOne, DeleteOne]

DEFAULT_MAX_OPERATIONS = 500


class WriteBatch:
    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        max_operations: int = DEFAULT_MAX_OPERATIONS
    ):
        if max_operations < 1:
            raise ValueError("max_operations must be at least 1")

        self.collection = collection
        self.max_operations = max_operations
        self._operations: list[WriteOp] = []

    def __len__(self) -> int:
        return len(self._operations)

    def set(self, doc_id: Any, data: dict, merge: bool = False) -> "WriteBatch":
        """
        Crea o reemplaza un documento.

        Con merge=True solo pisa los campos de `data` y conserva el resto.
        """
        if merge:
            self._operations.append(UpdateOne({"_id": doc_id}, {"$set": data}, upsert=True))
        else:
            self._operations.append(ReplaceOne({"_id": doc_id}, data, upsert=True))
        return self

    def update(self, doc_id: Any, partial: dict) -> "WriteBatch":
        """Actualiza campos de un documento existente (no crea)"""
        self._operations.append(UpdateOne({"_id": doc_id}, {"$set": partial}))
        return self

    def delete(self, doc_id: Any) -> "WriteBatch":
        self._operations.append(DeleteOne({"_id": doc_id}))
        return self

    async def commit(self) -> int:
        """
        Manda todas las operaciones pendientes.

        Returns:
            Cantidad de operaciones enviadas
        """
        operations, self._operations = self._operations, []
        committed = 0

        for start in range(0, len(operations), self.max_operations):
            chunk = operations[start:start + self.max_operations]
            await self.collection.bulk_write(chunk, ordered=True)
            committed += len(chunk)

        if committed:
            logger.debug(
                f"Committed {committed} operations on {self.collection.name} "
                f"in chunks of {self.max_operations}"
            )
        return committed
