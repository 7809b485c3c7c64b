"""
Controlador de Admin - Endpoints exclusivos para administradores

Resultado, evaluación, resets y mantenimiento de las tablas.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from app.core.dependencies import CurrentAdmin, Database
from app.models.match import MatchResult, MatchResultCreate
from app.models.prediction import EvaluationSummary, ResetSummary
from app.repositories.question_repository import QuestionRepository
from app.repositories.user_repository import UserRepository
from app.services.evaluation_service import (
    EvaluationInProgressError,
    EvaluationService,
    MatchResultNotFoundError,
    PredictionResultsMissingError,
)
from app.services.leaderboard_service import LeaderboardService
from app.services.prediction_service import MatchNotFoundError
from app.services.results_service import ResultsService


router = APIRouter(prefix="/admin", tags=["admin"])


# ============================================
# RESPONSE SCHEMAS
# ============================================

class SaveResultResponse(BaseModel):
    result: MatchResult
    evaluation: Optional[EvaluationSummary] = None


class ResetResultResponse(BaseModel):
    match_id: str
    result_deleted: bool


class MaintenanceResponse(BaseModel):
    success: bool = True
    message: str
    affected: int = 0


def _to_http(e: Exception) -> HTTPException:
    """Traduce errores del motor a HTTPException (409 si hay otra pasada en curso, 404 el resto)"""
    if isinstance(e, EvaluationInProgressError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# ============================================
# MATCH RESULT + EVALUATION
# ============================================

@router.post("/matches/{match_id}/result", response_model=SaveResultResponse)
async def save_match_result(
    match_id: str,
    request: MatchResultCreate,
    admin: CurrentAdmin,
    db: Database,
    evaluate: bool = Query(False, description="Evaluar las predicciones en el acto")
):
    """
    Registrar (o corregir) el resultado de un partido.

    Deja isEvaluated=False; con ?evaluate=true puntúa en la misma llamada.
    """
    try:
        result, summary = await ResultsService(db).save_match_result(
            match_id,
            request,
            created_by=admin.id,
            evaluate=evaluate
        )
    except (MatchNotFoundError, MatchResultNotFoundError,
            PredictionResultsMissingError, EvaluationInProgressError) as e:
        raise _to_http(e) from e

    return SaveResultResponse(result=result, evaluation=summary)


@router.post("/matches/{match_id}/evaluate", response_model=EvaluationSummary)
async def evaluate_match(match_id: str, admin: CurrentAdmin, db: Database):
    """Puntuar todas las predicciones del partido contra su resultado."""
    try:
        return await EvaluationService(db).evaluate_match_predictions(match_id)
    except (MatchResultNotFoundError, PredictionResultsMissingError, EvaluationInProgressError) as e:
        raise _to_http(e) from e


@router.post("/matches/{match_id}/re-evaluate", response_model=EvaluationSummary)
async def reevaluate_match(match_id: str, admin: CurrentAdmin, db: Database):
    """Repetir la evaluación (idempotente). Sirve para recuperarse de una pasada a medias."""
    try:
        return await EvaluationService(db).reevaluate(match_id)
    except (MatchResultNotFoundError, PredictionResultsMissingError, EvaluationInProgressError) as e:
        raise _to_http(e) from e


# ============================================
# RESETS
# ============================================

@router.delete("/matches/{match_id}/result", response_model=ResetResultResponse)
async def reset_match_result(match_id: str, admin: CurrentAdmin, db: Database):
    """Borrar el resultado del partido (las respuestas no se tocan)."""
    try:
        deleted = await EvaluationService(db).reset_match_result(match_id)
    except EvaluationInProgressError as e:
        raise _to_http(e) from e

    return ResetResultResponse(match_id=match_id, result_deleted=deleted)


@router.delete("/matches/{match_id}/predictions", response_model=ResetSummary)
async def reset_match_predictions(match_id: str, admin: CurrentAdmin, db: Database):
    """Borrar todas las respuestas del partido y revertir sus puntos."""
    try:
        return await EvaluationService(db).reset_match_predictions(match_id)
    except EvaluationInProgressError as e:
        raise _to_http(e) from e


@router.post("/matches/{match_id}/reset", response_model=ResetSummary)
async def reset_match(match_id: str, admin: CurrentAdmin, db: Database):
    """Reset completo: respuestas, resultado y el partido vuelve a upcoming."""
    try:
        return await EvaluationService(db).reset_match(match_id)
    except EvaluationInProgressError as e:
        raise _to_http(e) from e


# ============================================
# LEADERBOARD MAINTENANCE
# ============================================

@router.post("/users/{user_id}/global-leaderboard")
async def update_user_global_leaderboard(
    user_id: str,
    admin: CurrentAdmin,
    db: Database,
    match_id: Optional[str] = Query(None)
):
    """Recalcular la fila global de un usuario desde todas sus respuestas."""
    data = await EvaluationService(db).update_global_leaderboard(user_id, match_id)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Usuario {user_id} no encontrado"
        )
    return data


@router.post("/leaderboard/global/recalculate", response_model=MaintenanceResponse)
async def recalculate_global_leaderboard(admin: CurrentAdmin, db: Database):
    refreshed = await LeaderboardService(db).recalculate_all()
    return MaintenanceResponse(
        message=f"Leaderboard global recalculado para {refreshed} usuarios",
        affected=refreshed
    )


@router.delete("/leaderboard/global", response_model=MaintenanceResponse)
async def reset_global_leaderboard(admin: CurrentAdmin, db: Database):
    deleted = await LeaderboardService(db).reset_global_leaderboard()
    return MaintenanceResponse(message="Leaderboard global borrado", affected=deleted)


@router.post("/leaderboard/weekly/rollover", response_model=MaintenanceResponse)
async def weekly_rollover(admin: CurrentAdmin, db: Database):
    """Fin de semana: weeklyPoints a cero para todos los usuarios."""
    updated = await UserRepository(db).reset_weekly_points()
    return MaintenanceResponse(message="Puntos semanales reiniciados", affected=updated)


@router.post("/questions/seed", response_model=MaintenanceResponse)
async def seed_questions(admin: CurrentAdmin, db: Database):
    """Cargar el set estándar de preguntas si todavía no existe."""
    repo = QuestionRepository(db)
    if await repo.has_standard_questions():
        return MaintenanceResponse(message="Las preguntas estándar ya existen", affected=0)

    written = await repo.seed_standard_questions()
    return MaintenanceResponse(message="Preguntas estándar creadas", affected=written)
