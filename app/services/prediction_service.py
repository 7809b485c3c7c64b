"""
PredictionService - Business logic for user predictions.

Handles the prediction window, answer standardization and the user reset.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import get_settings
from app.models.match import Match
from app.models.prediction import PredictionAnswer, PredictionSubmission
from app.repositories.match_repository import MatchRepository
from app.repositories.prediction_answer_repository import PredictionAnswerRepository
from app.services.leaderboard_service import parse_match_date
from app.services.normalization import TOP_BATSMAN, TOP_BOWLER, standardize_player_name, standardize_question_key

logger = logging.getLogger(__name__)

PLAYER_KEYS = (TOP_BATSMAN, TOP_BOWLER)


class PredictionServiceError(Exception):
    """Base exception for prediction service errors."""
    pass


class MatchNotFoundError(PredictionServiceError):
    """Raised when match is not found."""
    pass


class PredictionWindowClosedError(PredictionServiceError):
    """Raised when predictions can't be changed for the match right now."""
    pass


class InvalidAnswerError(PredictionServiceError):
    """Raised when the submitted answers are invalid."""
    pass


class PredictionService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.settings = get_settings()
        self.match_repo = MatchRepository(db)
        self.answer_repo = PredictionAnswerRepository(db)

    async def _get_match(self, match_id: str) -> Match:
        match = await self.match_repo.get_by_id(match_id)
        if not match:
            raise MatchNotFoundError(f"Match {match_id} not found")
        return match

    def _check_window(self, match: Match, now: Optional[datetime] = None) -> None:
        """
        Las predicciones se aceptan desde `prediction_window_hours` antes del
        inicio hasta el inicio del partido.
        """
        if match.status in ("live", "completed"):
            raise PredictionWindowClosedError(f"Match {match.id} is {match.status}, predictions are closed")

        start = parse_match_date(match.date)
        if start is None:
            raise PredictionWindowClosedError(f"Match {match.id} has no start date yet")

        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        opens_at = start - timedelta(hours=self.settings.prediction_window_hours)

        if now < opens_at:
            raise PredictionWindowClosedError(
                f"Predictions for match {match.id} open at {opens_at.isoformat()} UTC"
            )
        if now >= start:
            raise PredictionWindowClosedError(f"Match {match.id} has already started")

    async def submit_predictions(
        self,
        user_id: str,
        match_id: str,
        submission: PredictionSubmission,
        now: Optional[datetime] = None
    ) -> list[PredictionAnswer]:
        """
        Crea o actualiza las respuestas del usuario para el partido.

        Valida:
        - El partido existe
        - Está dentro de la ventana de predicción
        - Hay al menos una respuesta no vacía

        Los nombres de jugadores se guardan ya normalizados.
        """
        match = await self._get_match(match_id)
        self._check_window(match, now)

        answers = {
            question_id.strip(): (answer or "").strip()
            for question_id, answer in submission.answers.items()
            if question_id and question_id.strip() and answer and answer.strip()
        }
        if not answers:
            raise InvalidAnswerError("At least one answer is required")

        for question_id, answer in answers.items():
            if standardize_question_key(question_id, match_id) in PLAYER_KEYS:
                answer = standardize_player_name(answer)

            await self.answer_repo.upsert_answer(
                user_id,
                match_id,
                question_id,
                answer,
                submission.prediction_game_id
            )

        logger.info(f"📝 User {user_id} saved {len(answers)} answers for match {match_id}")
        return await self.answer_repo.get_user_answers_for_match(user_id, match_id)

    async def get_user_predictions(self, user_id: str, match_id: str) -> list[PredictionAnswer]:
        return await self.answer_repo.get_user_answers_for_match(user_id, match_id)

    async def reset_user_predictions(
        self,
        user_id: str,
        match_id: str,
        now: Optional[datetime] = None
    ) -> int:
        """
        Borra las respuestas del usuario para el partido.

        Solo hasta `prediction_reset_cutoff_minutes` antes del inicio.

        Returns:
            Cantidad de respuestas borradas
        """
        match = await self._get_match(match_id)

        if match.status in ("live", "completed"):
            raise PredictionWindowClosedError(f"Match {match_id} is {match.status}, predictions can't be reset")

        start = parse_match_date(match.date)
        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        if start is not None:
            cutoff = start - timedelta(minutes=self.settings.prediction_reset_cutoff_minutes)
            if now >= cutoff:
                raise PredictionWindowClosedError(
                    f"Predictions for match {match_id} can only be reset until "
                    f"{self.settings.prediction_reset_cutoff_minutes} minutes before start"
                )

        deleted = await self.answer_repo.delete_user_answers_for_match(user_id, match_id)
        logger.info(f"🗑️ User {user_id} reset {deleted} answers for match {match_id}")
        return deleted
