"""
Normalización de claves de pregunta y nombres de jugadores

Las respuestas se guardaron con distintos formatos de questionId a lo largo
de la temporada ("winner", "winner-question", "<matchId>-top-batsman",
"topBatsman"...) y los nombres de jugadores con y sin espacio entre las
iniciales. Todo se compara después de pasar por estas funciones.
"""

import re

WINNER = "winner"
TOP_BATSMAN = "top-batsman"
TOP_BOWLER = "top-bowler"
HIGHEST_TOTAL = "highest-total"
MORE_SIXES = "more-sixes"
TOTAL_SIXES = "total-sixes"

CANONICAL_KEYS = (WINNER, TOP_BATSMAN, TOP_BOWLER, HIGHEST_TOTAL, MORE_SIXES, TOTAL_SIXES)

# (substring, clave canónica) - el orden importa, gana el primero
_KEY_PATTERNS = (
    ("batsman", TOP_BATSMAN),
    ("bowler", TOP_BOWLER),
    ("highest-total", HIGHEST_TOTAL),
    ("highesttotal", HIGHEST_TOTAL),
    ("more-sixes", MORE_SIXES),
    ("moresixes", MORE_SIXES),
    ("total-sixes", TOTAL_SIXES),
    ("totalsixes", TOTAL_SIXES),
    ("match-winner", WINNER),
    ("winner", WINNER),
)

# Valores especiales del formulario: "any-<team>", "no-answer"...
SENTINEL_PREFIXES = ("any-", "no-")

_QUESTION_SUFFIX = "-question"
_WHITESPACE = re.compile(r"\s+")
# Una inicial seguida de espacios y de otra inicial: "A B" -> "AB"
_SPACED_INITIAL = re.compile(r"\b([A-Z])\s+(?=[A-Z]\b)")


def standardize_question_key(raw_key: str, match_id: str) -> str:
    """
    Lleva un questionId a su clave canónica.

    >>> standardize_question_key("m1-top-batsman-question", "m1")
    'top-batsman'

    Las claves que no se reconocen se devuelven en minúsculas.
    """
    key = (raw_key or "").strip()

    prefix = f"{match_id}-"
    if match_id and key.startswith(prefix):
        key = key[len(prefix):]

    key = _WHITESPACE.sub("-", key.lower())

    if key.endswith(_QUESTION_SUFFIX):
        key = key[: -len(_QUESTION_SUFFIX)]

    for pattern, canonical in _KEY_PATTERNS:
        if pattern in key:
            return canonical

    return key


def is_sentinel(value: str) -> bool:
    return value.startswith(SENTINEL_PREFIXES)


def standardize_player_name(raw: str) -> str:
    """
    Normaliza un nombre de jugador para compararlo.

    "  A B  de Villiers " -> "AB de Villiers"

    Los valores especiales ("any-team1", "no-answer") no se tocan.
    """
    if not raw or not isinstance(raw, str):
        return raw

    if is_sentinel(raw):
        return raw

    standardized = _WHITESPACE.sub(" ", raw.strip())
    return _SPACED_INITIAL.sub(r"\1", standardized)
