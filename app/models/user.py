from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    id: str = Field(..., alias="_id")  # uid del proveedor de identidad
    email: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    photo_url: Optional[str] = Field(None, alias="photoURL")

    role: str = "user"  # user | admin
    is_admin: bool = Field(False, alias="isAdmin")

    # Agregados que mantiene el motor de puntuación
    total_points: int = Field(0, alias="totalPoints")
    weekly_points: int = Field(0, alias="weeklyPoints")
    total_predictions: int = Field(0, alias="totalPredictions")
    correct_predictions: int = Field(0, alias="correctPredictions")
    overall_accuracy: int = Field(0, alias="overallAccuracy")

    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True

    @property
    def has_admin_role(self) -> bool:
        return self.is_admin or self.role == "admin"
