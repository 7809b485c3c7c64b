from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class Match(BaseModel):
    """Partido (solo los campos que usa el backend)"""

    id: str = Field(..., alias="_id")
    team1: str
    team2: str
    venue: Optional[str] = None

    # Los documentos viejos guardan la fecha como string ISO
    date: Union[datetime, str, None] = None
    status: str = "upcoming"  # upcoming | live | completed

    is_prediction_enabled_by_admin: Optional[bool] = Field(None, alias="isPredictionEnabledByAdmin")

    class Config:
        populate_by_name = True


class MatchResult(BaseModel):
    """Resultado oficial de un partido, cargado por un admin"""

    id: str = Field(..., alias="_id")
    match_id: str = Field(..., alias="matchId")

    winner: Optional[str] = None
    team1_score: Union[str, int, None] = Field(None, alias="team1Score")
    team2_score: Union[str, int, None] = Field(None, alias="team2Score")
    highest_total: Optional[int] = Field(None, alias="highestTotal")
    top_batsman_id: Optional[str] = Field(None, alias="topBatsmanId")
    top_bowler_id: Optional[str] = Field(None, alias="topBowlerId")
    more_sixes: Optional[str] = Field(None, alias="moreSixes")  # equipo o "tie"
    total_sixes: Optional[int] = Field(None, alias="totalSixes")

    # questionKey -> respuesta correcta
    prediction_results: dict[str, Any] = Field(default_factory=dict, alias="predictionResults")

    is_evaluated: bool = Field(False, alias="isEvaluated")
    evaluated_at: Optional[datetime] = Field(None, alias="evaluatedAt")

    created_by: Optional[str] = Field(None, alias="createdBy")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True


class MatchResultCreate(BaseModel):
    """Request para registrar el resultado de un partido"""

    winner: str
    team1_score: Optional[str] = None
    team2_score: Optional[str] = None
    highest_total: Optional[int] = None
    top_batsman: Optional[str] = None
    top_bowler: Optional[str] = None
    more_sixes: Optional[str] = None
    total_sixes: Optional[int] = None
