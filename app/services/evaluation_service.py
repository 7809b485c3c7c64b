"""
EvaluationService - Entry points of the scoring engine.

- evaluate_match_predictions: scores every answer of a match against its result
- reset_match_result / reset_match_predictions / reset_match: teardown
- update_global_leaderboard: recompute a user's global row

Every evaluate/reset pass holds the per-match lease for its whole duration.
Writes go through WriteBatch (chunks of batch_max_operations): a failure in the
middle of a pass propagates and leaves the match partially scored. Running the
evaluation again is safe and is the way to recover.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import get_settings
from app.models.prediction import EvaluationSummary, ResetSummary, ScoredAnswer
from app.repositories.lock_repository import LockHeldError, LockRepository
from app.repositories.match_repository import MatchRepository
from app.repositories.prediction_answer_repository import PredictionAnswerRepository
from app.repositories.question_repository import QuestionRepository
from app.repositories.user_repository import UserRepository
from app.services.aggregator import aggregate_by_user, evaluation_deltas, reversal_deltas
from app.services.evaluator import evaluate
from app.services.leaderboard_service import LeaderboardService, in_current_week
from app.services.normalization import standardize_question_key
from app.services.question_catalog import QuestionCatalog
from app.services.result_resolver import resolve_correct_answer

logger = logging.getLogger(__name__)


class EvaluationError(Exception):
    """Base exception for evaluation errors."""
    pass


class MatchResultNotFoundError(EvaluationError):
    """Raised when the match has no result record."""
    pass


class PredictionResultsMissingError(EvaluationError):
    """Raised when the result exists but has no predictionResults."""
    pass


class EvaluationInProgressError(EvaluationError):
    """Raised when another evaluation or reset holds the match lease."""
    pass


class EvaluationService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.settings = get_settings()
        self.match_repo = MatchRepository(db)
        self.answer_repo = PredictionAnswerRepository(db)
        self.question_repo = QuestionRepository(db)
        self.user_repo = UserRepository(db)
        self.lock_repo = LockRepository(db)
        self.leaderboard_service = LeaderboardService(db)

    @asynccontextmanager
    async def _match_lease(self, match_id: str, purpose: str):
        try:
            owner = await self.lock_repo.acquire(
                match_id,
                self.settings.evaluation_lock_ttl_seconds,
                purpose
            )
        except LockHeldError as e:
            raise EvaluationInProgressError(
                f"Match {match_id} is already being processed, try again later"
            ) from e

        try:
            yield
        finally:
            await self.lock_repo.release(match_id, owner)

    async def _counts_this_week(self, match_id: str, now: Optional[datetime]) -> bool:
        # Tras el rollover, corregir un partido viejo no toca weeklyPoints
        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        match = await self.match_repo.get_by_id(match_id)
        return in_current_week(match, now, self.settings.week_start_weekday)

    # ============================================
    # 📌 EVALUATE
    # ============================================

    async def evaluate_match_predictions(self, match_id: str, now: Optional[datetime] = None) -> EvaluationSummary:
        """
        Puntúa todas las respuestas del partido.

        1. Carga el resultado (por matchId) y el catálogo de preguntas
        2. Resuelve la respuesta correcta de cada pregunta y evalúa
        3. Guarda isCorrect / pointsEarned en cada respuesta (batch)
        4. Ajusta los agregados de cada usuario (nuevo - anterior). weeklyPoints
           solo si el partido es de la semana de `now` (UTC naive, default ahora)
        5. Marca el resultado como evaluado
        6. Reescribe la tabla del partido desde las respuestas guardadas y
           refresca global + semanal

        Raises:
            MatchResultNotFoundError, PredictionResultsMissingError,
            EvaluationInProgressError
        """
        async with self._match_lease(match_id, "evaluate"):
            return await self._evaluate(match_id, now)

    async def reevaluate(self, match_id: str, now: Optional[datetime] = None) -> EvaluationSummary:
        """Misma pasada: las respuestas ya puntuadas se sobreescriben con el mismo valor"""
        logger.info(f"🔁 Re-evaluating match {match_id}")
        return await self.evaluate_match_predictions(match_id, now)

    async def _evaluate(self, match_id: str, now: Optional[datetime]) -> EvaluationSummary:
        result = await self.match_repo.get_result(match_id)
        if not result:
            raise MatchResultNotFoundError(f"Match result not found for match {match_id}")

        if not result.prediction_results:
            raise PredictionResultsMissingError(
                f"Prediction results are not defined for match {match_id}"
            )

        catalog = await QuestionCatalog.load(self.question_repo, self.settings.default_question_points)
        answers = await self.answer_repo.get_for_match(match_id)
        logger.info(f"🔍 Evaluating match {match_id}: {len(answers)} answers found")

        summary = EvaluationSummary(match_id=match_id, answers_found=len(answers))
        scored: list[ScoredAnswer] = []
        timestamp = datetime.now(timezone.utc)
        batch = self.answer_repo.batch(self.settings.batch_max_operations)

        for answer in answers:
            correct_answer = resolve_correct_answer(result, answer.question_id, match_id)
            if correct_answer is None:
                summary.answers_unscored += 1
                logger.info(
                    f"⏭️ Unscored: no correct answer for question {answer.question_id} "
                    f"(user {answer.user_id}, match {match_id})"
                )
                continue

            standard_key = standardize_question_key(answer.question_id, match_id)
            definition = catalog.lookup(standard_key, answer.question_id)
            outcome = evaluate(
                definition,
                answer.answer,
                correct_answer,
                self.settings.highest_total_tolerance
            )

            batch.update(answer.id, {
                "isCorrect": outcome.is_correct,
                "pointsEarned": outcome.points_earned,
                "evaluatedAt": timestamp,
                "updatedAt": timestamp,
            })
            scored.append(ScoredAnswer(
                answer_id=answer.id,
                user_id=answer.user_id,
                match_id=match_id,
                question_id=answer.question_id,
                outcome=outcome,
                previous_is_correct=answer.is_correct,
                previous_points_earned=answer.points_earned,
            ))

        await batch.commit()

        await self.user_repo.apply_aggregate_changes(
            evaluation_deltas(scored),
            clamp_at_zero=False,
            max_operations=self.settings.batch_max_operations,
            include_weekly=await self._counts_this_week(match_id, now)
        )

        await self.match_repo.mark_evaluated(result.id)

        # Misma fuente que global/semanal: lo guardado, incluidas respuestas
        # puntuadas en pasadas anteriores que ahora no resuelven
        stored = await self.answer_repo.get_for_match(match_id)
        per_user = aggregate_by_user(stored)
        await self.leaderboard_service.write_match_leaderboard(match_id, per_user)

        user_ids = list(per_user.keys())
        for user_id in user_ids:
            await self.leaderboard_service.refresh_global_leaderboard(user_id)
        if user_ids:
            await self.leaderboard_service.refresh_weekly_leaderboard(match_id, user_ids)

        summary.answers_scored = len(scored)
        summary.points_distributed = sum(s.outcome.points_earned for s in scored)
        summary.users_affected = len(user_ids)

        logger.info(
            f"✅ Match {match_id} evaluated: {summary.answers_scored} scored, "
            f"{summary.answers_unscored} unscored, {summary.points_distributed} points, "
            f"{summary.users_affected} users"
        )
        return summary

    # ============================================
    # 📌 RESET
    # ============================================

    async def reset_match_result(self, match_id: str) -> bool:
        """
        Borra el resultado del partido.

        Returns:
            False si no había resultado
        """
        async with self._match_lease(match_id, "reset-result"):
            deleted = await self.match_repo.delete_result(match_id)

        logger.info(f"🗑️ Match result for {match_id} deleted: {deleted}")
        return deleted

    async def reset_match_predictions(self, match_id: str, now: Optional[datetime] = None) -> ResetSummary:
        """
        Borra todas las respuestas del partido y deshace lo que aportaron.

        Los agregados de usuario se decrementan con piso en 0 (weeklyPoints solo
        si el partido es de la semana en curso), la tabla del partido se borra
        entera y las vistas global y semanal se recalculan.
        """
        async with self._match_lease(match_id, "reset-predictions"):
            return await self._reset_predictions(match_id, now)

    async def _reset_predictions(self, match_id: str, now: Optional[datetime]) -> ResetSummary:
        answers = await self.answer_repo.get_for_match(match_id)
        deltas = reversal_deltas(answers)

        batch = self.answer_repo.batch(self.settings.batch_max_operations)
        for answer in answers:
            batch.delete(answer.id)
        await batch.commit()

        await self.user_repo.apply_aggregate_changes(
            deltas,
            clamp_at_zero=True,
            max_operations=self.settings.batch_max_operations,
            include_weekly=await self._counts_this_week(match_id, now)
        )

        leaderboard_deleted = await self.leaderboard_service.leaderboard_repo.delete_match_leaderboard(
            match_id,
            self.settings.batch_max_operations
        )

        user_ids = list(deltas.keys())
        for user_id in user_ids:
            await self.leaderboard_service.refresh_global_leaderboard(user_id)
        if user_ids:
            await self.leaderboard_service.refresh_weekly_leaderboard(match_id, user_ids)

        logger.info(
            f"🗑️ Predictions for match {match_id} reset: {len(answers)} answers deleted, "
            f"{len(user_ids)} users reverted"
        )
        return ResetSummary(
            match_id=match_id,
            answers_deleted=len(answers),
            users_affected=len(user_ids),
            leaderboard_deleted=leaderboard_deleted,
        )

    async def reset_match(self, match_id: str, now: Optional[datetime] = None) -> ResetSummary:
        """Teardown completo: respuestas, resultado y status del partido a upcoming"""
        summary = await self.reset_match_predictions(match_id, now)
        summary.result_deleted = await self.reset_match_result(match_id)
        await self.match_repo.set_status(match_id, "upcoming", clear_result=True)
        return summary

    # ============================================
    # 📌 GLOBAL LEADERBOARD
    # ============================================

    async def update_global_leaderboard(self, user_id: str, match_id: Optional[str] = None) -> Optional[dict]:
        """
        Recalcula la fila global del usuario desde todas sus respuestas.

        match_id solo se usa para el log: el recálculo es siempre completo.
        """
        if match_id:
            logger.info(f"Refreshing global leaderboard for user {user_id} after match {match_id}")
        return await self.leaderboard_service.refresh_global_leaderboard(user_id)
