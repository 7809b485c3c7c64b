"""
Agregador de puntos por usuario.

Misma regla para todas las vistas (partido, semana, temporada):
- total_points += points_earned en TODA respuesta puntuada (también negativas)
- correct_predictions += 1 solo si is_correct
- total_predictions += 1 en toda respuesta puntuada

Las respuestas sin evaluar (is_correct None) no cuentan para nada.
"""

from collections import defaultdict
from typing import Iterable

from app.models.leaderboard import UserTotals
from app.models.prediction import PredictionAnswer, ScoredAnswer


def _add(totals: UserTotals, is_correct: bool, points_earned: int) -> None:
    totals.total_points += points_earned
    totals.total_predictions += 1
    if is_correct:
        totals.correct_predictions += 1


def aggregate_answers(answers: Iterable[PredictionAnswer]) -> UserTotals:
    """
    Recalcula los totales de UN usuario desde sus respuestas guardadas.

    Se usa para las vistas global y semanal: siempre desde la fuente, nunca
    sumando sobre lo que ya había.
    """
    totals = UserTotals()
    matches = set()

    for answer in answers:
        if answer.is_correct is None:
            continue
        _add(totals, answer.is_correct, answer.points_earned or 0)
        matches.add(answer.match_id)

    totals.matches_played = len(matches)
    return totals


def aggregate_by_user(answers: Iterable[PredictionAnswer]) -> dict[str, UserTotals]:
    """
    Totales por usuario desde las respuestas guardadas (ej: las de un partido).

    Los usuarios sin ninguna respuesta puntuada no aparecen.
    """
    grouped: dict[str, list[PredictionAnswer]] = defaultdict(list)
    for answer in answers:
        if answer.is_correct is not None:
            grouped[answer.user_id].append(answer)

    return {user_id: aggregate_answers(items) for user_id, items in grouped.items()}


# ============================================
# 📌 DELTAS SOBRE LOS AGREGADOS DEL USUARIO
# ============================================

def _empty_delta() -> dict[str, int]:
    return {"points": 0, "correct": 0, "total": 0}


def evaluation_deltas(scored: Iterable[ScoredAnswer]) -> dict[str, dict[str, int]]:
    """
    Cambios a aplicar sobre users.* tras una pasada de evaluación.

    Cada respuesta aporta (nuevo resultado - resultado anterior), así una
    re-evaluación no vuelve a sumar lo que ya estaba sumado.
    """
    deltas: dict[str, dict[str, int]] = defaultdict(_empty_delta)

    for item in scored:
        delta = deltas[item.user_id]
        delta["points"] += item.outcome.points_earned - (item.previous_points_earned or 0)
        delta["correct"] += int(item.outcome.is_correct) - int(bool(item.previous_is_correct))
        if item.previous_is_correct is None:
            delta["total"] += 1

    return {
        user_id: delta
        for user_id, delta in deltas.items()
        if any(delta.values())
    }


def reversal_deltas(answers: Iterable[PredictionAnswer]) -> dict[str, dict[str, int]]:
    """Cambios (negativos) que deshacen lo que aportaron respuestas ya evaluadas"""
    deltas: dict[str, dict[str, int]] = defaultdict(_empty_delta)

    for answer in answers:
        if answer.is_correct is None:
            continue
        delta = deltas[answer.user_id]
        delta["points"] -= answer.points_earned or 0
        delta["correct"] -= int(answer.is_correct)
        delta["total"] -= 1

    return dict(deltas)
