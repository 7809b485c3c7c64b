"""
Resolución de la respuesta correcta de una pregunta a partir del resultado.

El resultado guarda las respuestas correctas en `predictionResults` bajo
varias claves posibles; se prueban en orden y gana la PRIMERA que exista.
Si ninguna aparece se usan los campos directos del resultado.
"""

from typing import Any, Optional

from app.models.match import MatchResult
from app.services.normalization import (
    HIGHEST_TOTAL,
    MORE_SIXES,
    TOP_BATSMAN,
    TOP_BOWLER,
    TOTAL_SIXES,
    WINNER,
    standardize_question_key,
)

# Literales con los que se guardaron resultados en versiones anteriores
KNOWN_LITERALS: dict[str, tuple[str, ...]] = {
    WINNER: ("winner", "winner-question", "match-winner"),
    TOP_BATSMAN: ("top-batsman", "topBatsman", "batsman"),
    TOP_BOWLER: ("top-bowler", "topBowler", "bowler"),
    HIGHEST_TOTAL: ("highest-total", "highestTotal"),
    MORE_SIXES: ("more-sixes", "moreSixes"),
    TOTAL_SIXES: ("total-sixes", "totalSixes"),
}


def candidate_keys(question_id: str, match_id: str) -> list[str]:
    """Claves a probar en `predictionResults`, en orden de prioridad"""
    standard_key = standardize_question_key(question_id, match_id)

    ordered = [
        f"{match_id}-{standard_key}",
        standard_key,
        question_id,
        question_id.lower(),
        *KNOWN_LITERALS.get(standard_key, ()),
        standard_key.replace("-", ""),
    ]

    seen = set()
    keys = []
    for key in ordered:
        if key not in seen:
            seen.add(key)
            keys.append(key)
    return keys


def _as_answer(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text != "" else None


def _direct_field(result: MatchResult, standard_key: str) -> Optional[str]:
    if standard_key == WINNER:
        return _as_answer(result.winner)
    if standard_key == TOP_BATSMAN:
        return _as_answer(result.top_batsman_id)
    if standard_key == TOP_BOWLER:
        return _as_answer(result.top_bowler_id)
    if standard_key == HIGHEST_TOTAL:
        return _as_answer(result.highest_total)
    if standard_key == MORE_SIXES:
        return _as_answer(result.more_sixes)
    if standard_key == TOTAL_SIXES:
        return _as_answer(result.total_sixes)
    return None


def resolve_correct_answer(
    result: MatchResult,
    question_id: str,
    match_id: str
) -> Optional[str]:
    """
    Respuesta correcta para `question_id`, o None si no se puede determinar.

    None significa "sin puntuar": quien llama NO debe tratarlo como incorrecto.
    """
    prediction_results = result.prediction_results or {}

    for key in candidate_keys(question_id, match_id):
        answer = _as_answer(prediction_results.get(key))
        if answer is not None:
            return answer

    return _direct_field(result, standardize_question_key(question_id, match_id))
