from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PredictionAnswer(BaseModel):
    """Respuesta de un usuario a una pregunta de un partido"""

    id: str = Field(..., alias="_id")  # user_id:match_id:question_id

    user_id: str = Field(..., alias="userId")
    match_id: str = Field(..., alias="matchId")
    prediction_game_id: Optional[str] = Field(None, alias="predictionGameId")
    question_id: str = Field(..., alias="questionId")

    answer: str = ""

    # None hasta que se evalúa el partido
    is_correct: Optional[bool] = Field(None, alias="isCorrect")
    points_earned: Optional[int] = Field(None, alias="pointsEarned")

    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    evaluated_at: Optional[datetime] = Field(None, alias="evaluatedAt")

    class Config:
        populate_by_name = True


class PredictionSubmission(BaseModel):
    """Request: respuestas de un usuario para un partido (questionId -> answer)"""

    prediction_game_id: Optional[str] = None
    answers: dict[str, str]


class PredictionAnswerResponse(BaseModel):
    id: str
    match_id: str
    question_id: str
    answer: str
    is_correct: Optional[bool] = None
    points_earned: Optional[int] = None


class AnswerOutcome(BaseModel):
    """Resultado de evaluar una respuesta"""

    is_correct: bool
    points_earned: int


class ScoredAnswer(BaseModel):
    """Respuesta ya puntuada en esta pasada, junto con lo que tenía antes"""

    answer_id: str
    user_id: str
    match_id: str
    question_id: str
    outcome: AnswerOutcome

    previous_is_correct: Optional[bool] = None
    previous_points_earned: Optional[int] = None


class EvaluationSummary(BaseModel):
    """Estadísticas de una pasada de evaluación"""

    match_id: str
    answers_found: int = 0
    answers_scored: int = 0
    answers_unscored: int = 0
    points_distributed: int = 0
    users_affected: int = 0


class ResetSummary(BaseModel):
    match_id: str
    result_deleted: bool = False
    answers_deleted: int = 0
    users_affected: int = 0
    leaderboard_deleted: bool = False
