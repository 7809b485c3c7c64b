"""
Controlador de leaderboards - Endpoints de clasificación

Las tablas se materializan al evaluar cada partido; aquí solo se leen.
El WebSocket reenvía cada snapshot nuevo de la tabla hasta que el cliente corta.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from app.core.dependencies import CurrentUser, Database
from app.core.security import decode_access_token
from app.database import Database as MongoDatabase
from app.models.leaderboard import LeaderboardEntry, LeaderboardResponse
from app.services.leaderboard_service import LeaderboardNotFoundError, LeaderboardService
from app.services.subscription_service import LEADERBOARD_KINDS, subscribe_leaderboard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("/global", response_model=LeaderboardResponse)
async def get_global_leaderboard(
    db: Database,
    limit: int = Query(100, ge=1, le=500)
):
    """
    Obtener el leaderboard global de la temporada.
    """
    leaderboard_service = LeaderboardService(db)
    return await leaderboard_service.get_global_leaderboard(limit)


@router.get("/match/{match_id}", response_model=LeaderboardResponse)
async def get_match_leaderboard(
    match_id: str,
    db: Database,
    limit: int = Query(100, ge=1, le=500)
):
    """
    Obtener el leaderboard de un partido específico.
    """
    leaderboard_service = LeaderboardService(db)

    try:
        return await leaderboard_service.get_match_leaderboard(match_id, limit)
    except LeaderboardNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


@router.get("/weekly/weeks", response_model=list[str])
async def get_weeks(db: Database):
    """Semanas con tabla, la más reciente primero."""
    return await LeaderboardService(db).get_weeks()


@router.get("/weekly", response_model=LeaderboardResponse)
async def get_weekly_leaderboard(
    db: Database,
    week_id: Optional[str] = Query(None, description="Fecha ISO del inicio de la semana"),
    limit: int = Query(100, ge=1, le=500)
):
    """
    Obtener el leaderboard de una semana (por defecto la más reciente).
    """
    leaderboard_service = LeaderboardService(db)

    try:
        return await leaderboard_service.get_weekly_leaderboard(week_id, limit)
    except LeaderboardNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


@router.get("/me", response_model=LeaderboardEntry)
async def get_my_position(user: CurrentUser, db: Database):
    """
    Obtener la posición del usuario actual en el leaderboard global.
    """
    leaderboard_service = LeaderboardService(db)
    result = await leaderboard_service.get_user_rank(user.id)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Todavía no tienes predicciones evaluadas"
        )

    return result["entry"]


@router.websocket("/{kind}/live")
async def live_leaderboard(
    websocket: WebSocket,
    kind: str,
    scope: Optional[str] = None,
    token: Optional[str] = None,
    limit: int = 100
):
    """
    Leaderboard en vivo: manda un snapshot completo al conectar y otro cada
    vez que la tabla cambia.

    kind: match | weekly | global. Para "match", scope es el match_id.
    El token va por query string (?token=...) porque el navegador no deja
    poner headers en el handshake.
    """
    if kind not in LEADERBOARD_KINDS or (kind == "match" and not scope):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    if token is None or decode_access_token(token) is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    async def send_snapshot(snapshot: LeaderboardResponse):
        await websocket.send_json(snapshot.model_dump(mode="json"))

    subscription = subscribe_leaderboard(
        MongoDatabase.get_db(),
        kind,
        send_snapshot,
        scope=scope,
        limit=limit
    )

    try:
        # El cliente no manda nada útil; esperamos a que corte
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"🔌 Live {kind} leaderboard client disconnected")
    finally:
        subscription.unsubscribe()
