from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class QuestionType(str, Enum):
    """Tipos de pregunta. Cada uno tiene su propia regla de corrección."""

    WINNER = "winner"
    TOP_BATSMAN = "topBatsman"
    TOP_BOWLER = "topBowler"
    HIGHEST_TOTAL = "highestTotal"
    MORE_SIXES = "moreSixes"
    TOTAL_SIXES = "totalSixes"
    CUSTOM = "custom"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "QuestionType":
        """Tipos desconocidos caen en UNKNOWN (comparación exacta)."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class QuestionOption(BaseModel):
    id: str
    value: str
    label: str


class Question(BaseModel):
    """Pregunta de predicción tal como se guarda en `questions`"""

    id: str = Field(..., alias="_id")
    text: str = ""
    type: QuestionType = QuestionType.CUSTOM

    points: Optional[int] = None
    negative_points: Optional[int] = Field(None, alias="negativePoints")  # magnitud de la penalización

    options: Optional[list[QuestionOption]] = None
    is_active: bool = Field(True, alias="isActive")

    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value):
        return QuestionType.parse(value)


class QuestionDefinition(BaseModel):
    """Lo mínimo que necesita el evaluador para puntuar una respuesta"""

    id: str
    type: QuestionType = QuestionType.UNKNOWN
    points: int = 10
    negative_points: int = 0
