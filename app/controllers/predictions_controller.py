"""
Controlador de predicciones - Respuestas de los usuarios a las preguntas de un partido
"""

from fastapi import APIRouter, HTTPException, status

from app.core.dependencies import CurrentUser, Database
from app.models.prediction import PredictionAnswer, PredictionAnswerResponse, PredictionSubmission
from app.services.prediction_service import (
    InvalidAnswerError,
    MatchNotFoundError,
    PredictionService,
    PredictionWindowClosedError,
)


router = APIRouter(prefix="/predictions", tags=["predictions"])


def _to_response(answer: PredictionAnswer) -> PredictionAnswerResponse:
    return PredictionAnswerResponse(
        id=answer.id,
        match_id=answer.match_id,
        question_id=answer.question_id,
        answer=answer.answer,
        is_correct=answer.is_correct,
        points_earned=answer.points_earned,
    )


@router.post(
    "/{match_id}",
    response_model=list[PredictionAnswerResponse],
    status_code=status.HTTP_201_CREATED
)
async def submit_predictions(
    match_id: str,
    submission: PredictionSubmission,
    user: CurrentUser,
    db: Database
):
    """
    Crear o actualizar las respuestas del usuario para un partido.

    Se pueden cambiar hasta que empiece el partido.
    """
    prediction_service = PredictionService(db)

    try:
        answers = await prediction_service.submit_predictions(user.id, match_id, submission)
    except MatchNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except PredictionWindowClosedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except InvalidAnswerError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return [_to_response(a) for a in answers]


@router.get("/{match_id}/me", response_model=list[PredictionAnswerResponse])
async def get_my_predictions(match_id: str, user: CurrentUser, db: Database):
    """Respuestas del usuario actual para un partido (con puntos si ya se evaluó)."""
    answers = await PredictionService(db).get_user_predictions(user.id, match_id)
    return [_to_response(a) for a in answers]


@router.delete("/{match_id}/me")
async def reset_my_predictions(match_id: str, user: CurrentUser, db: Database):
    """Borrar las respuestas del usuario para el partido (hasta poco antes del inicio)."""
    prediction_service = PredictionService(db)

    try:
        deleted = await prediction_service.reset_user_predictions(user.id, match_id)
    except MatchNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except PredictionWindowClosedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )

    return {"match_id": match_id, "deleted": deleted}
