"""
Evaluador - decide si una respuesta es correcta y cuántos puntos vale.

Reglas por tipo de pregunta:
- highestTotal: acierto si |respuesta - real| <= tolerancia
- topBatsman / topBowler: se comparan los nombres normalizados
- totalSixes: acierto exacto o dentro de un rango "X-Y"
- resto (winner, moreSixes, custom...): igualdad exacta

Puntos: `points` si acierta, `-negative_points` si falla y hay penalización,
0 en otro caso. Una respuesta vacía no suma ni resta.
"""

import re
from typing import Callable, Optional

from app.models.prediction import AnswerOutcome
from app.models.question import QuestionDefinition, QuestionType
from app.services.normalization import standardize_player_name

DEFAULT_HIGHEST_TOTAL_TOLERANCE = 15

_LEADING_INT = re.compile(r"^\s*(-?\d+)")
_RANGE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


def parse_leading_int(value: str) -> Optional[int]:
    # "185" -> 185, "185/6" -> 185, "abc" -> None
    match = _LEADING_INT.match(value or "")
    if match is None:
        return None
    return int(match.group(1))


def _exact(answer: str, correct: str, tolerance: int) -> bool:
    return answer == correct


def _highest_total(answer: str, correct: str, tolerance: int) -> bool:
    predicted = parse_leading_int(answer)
    actual = parse_leading_int(correct)
    if predicted is None or actual is None:
        return False
    return abs(predicted - actual) <= tolerance


def _player(answer: str, correct: str, tolerance: int) -> bool:
    return standardize_player_name(answer) == standardize_player_name(correct)


def _total_sixes(answer: str, correct: str, tolerance: int) -> bool:
    if answer == correct:
        return True

    # Las opciones del formulario son rangos: "10-14"
    bounds = _RANGE.match(answer)
    actual = parse_leading_int(correct)
    if bounds is None or actual is None:
        return False

    low, high = int(bounds.group(1)), int(bounds.group(2))
    return low <= actual <= high


_RULES: dict[QuestionType, Callable[[str, str, int], bool]] = {
    QuestionType.HIGHEST_TOTAL: _highest_total,
    QuestionType.TOP_BATSMAN: _player,
    QuestionType.TOP_BOWLER: _player,
    QuestionType.TOTAL_SIXES: _total_sixes,
}


def is_correct(
    definition: QuestionDefinition,
    answer: str,
    correct_answer: str,
    tolerance: int = DEFAULT_HIGHEST_TOTAL_TOLERANCE
) -> bool:
    rule = _RULES.get(definition.type, _exact)
    return rule(answer, correct_answer, tolerance)


def evaluate(
    definition: QuestionDefinition,
    answer: Optional[str],
    correct_answer: str,
    tolerance: int = DEFAULT_HIGHEST_TOTAL_TOLERANCE
) -> AnswerOutcome:
    """
    Evalúa una respuesta contra la respuesta correcta ya resuelta.

    Args:
        definition: Tipo y puntos de la pregunta
        answer: Lo que respondió el usuario
        correct_answer: Respuesta correcta (nunca None, las no resueltas no llegan aquí)
        tolerance: Margen para highestTotal

    Returns:
        AnswerOutcome con is_correct y points_earned
    """
    if answer is None or str(answer).strip() == "":
        return AnswerOutcome(is_correct=False, points_earned=0)

    correct = is_correct(definition, str(answer), str(correct_answer), tolerance)

    if correct:
        points = definition.points
    elif definition.negative_points > 0:
        points = -definition.negative_points
    else:
        points = 0

    return AnswerOutcome(is_correct=correct, points_earned=points)
