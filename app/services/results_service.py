"""
ResultsService - Registro del resultado oficial de un partido (admin)
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.match import MatchResult, MatchResultCreate
from app.models.prediction import EvaluationSummary
from app.repositories.match_repository import MatchRepository
from app.services.evaluation_service import EvaluationService
from app.services.normalization import (
    HIGHEST_TOTAL,
    MORE_SIXES,
    TOP_BATSMAN,
    TOP_BOWLER,
    TOTAL_SIXES,
    WINNER,
    standardize_player_name,
)
from app.services.prediction_service import MatchNotFoundError

logger = logging.getLogger(__name__)


def build_prediction_results(match_id: str, data: MatchResultCreate) -> dict[str, str]:
    """
    Arma `predictionResults` con cada respuesta correcta guardada bajo la
    clave canónica y bajo "<match_id>-<clave>". El ganador además bajo
    "winner-question".
    """
    values = {
        WINNER: data.winner,
        TOP_BATSMAN: standardize_player_name(data.top_batsman) if data.top_batsman else None,
        TOP_BOWLER: standardize_player_name(data.top_bowler) if data.top_bowler else None,
        HIGHEST_TOTAL: str(data.highest_total) if data.highest_total is not None else None,
        MORE_SIXES: data.more_sixes,
        TOTAL_SIXES: str(data.total_sixes) if data.total_sixes is not None else None,
    }

    results: dict[str, str] = {}
    for key, value in values.items():
        if not value:
            continue
        results[key] = value
        results[f"{match_id}-{key}"] = value

    results["winner-question"] = data.winner
    return results


class ResultsService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.match_repo = MatchRepository(db)
        self.evaluation_service = EvaluationService(db)

    async def save_match_result(
        self,
        match_id: str,
        data: MatchResultCreate,
        created_by: str,
        evaluate: bool = False
    ) -> tuple[MatchResult, Optional[EvaluationSummary]]:
        """
        Crea o actualiza el resultado del partido y marca el partido completado.

        isEvaluated vuelve a False: hay que (re)evaluar para que los puntos
        reflejen el resultado nuevo. Con evaluate=True se evalúa en el acto.
        """
        match = await self.match_repo.get_by_id(match_id)
        if not match:
            raise MatchNotFoundError(f"Match {match_id} not found")

        top_batsman = standardize_player_name(data.top_batsman) if data.top_batsman else None
        top_bowler = standardize_player_name(data.top_bowler) if data.top_bowler else None

        await self.match_repo.save_result(match_id, created_by, {
            "winner": data.winner,
            "team1Score": data.team1_score,
            "team2Score": data.team2_score,
            "highestTotal": data.highest_total,
            "topBatsmanId": top_batsman,
            "topBowlerId": top_bowler,
            "moreSixes": data.more_sixes,
            "totalSixes": data.total_sixes,
            "predictionResults": build_prediction_results(match_id, data),
            "isEvaluated": False,
        })

        await self.match_repo.set_result_summary(match_id, {
            "winner": data.winner,
            "team1Score": data.team1_score,
            "team2Score": data.team2_score,
        })
        logger.info(f"🏏 Result saved for match {match_id} by {created_by}")

        summary = None
        if evaluate:
            summary = await self.evaluation_service.evaluate_match_predictions(match_id)

        result = await self.match_repo.get_result(match_id)
        return result, summary
