from typing import Optional

from pydantic import BaseModel


class UserTotals(BaseModel):
    """Totales agregados de un usuario (un partido, una semana o toda la temporada)"""

    total_points: int = 0
    correct_predictions: int = 0
    total_predictions: int = 0
    matches_played: int = 0

    @property
    def accuracy(self) -> int:
        """Porcentaje de acierto redondeado (0-100)"""
        if self.total_predictions == 0:
            return 0
        return round(self.correct_predictions / self.total_predictions * 100)


class LeaderboardEntry(BaseModel):
    """Entrada en una tabla de clasificación (resultado agregado)"""

    rank: int
    user_id: str
    display_name: str
    photo_url: Optional[str] = None

    points: int
    correct_predictions: int
    total_predictions: int
    accuracy: float

    matches_played: Optional[int] = None

    class Config:
        populate_by_name = True


class LeaderboardResponse(BaseModel):
    """Leaderboard con las entradas y la posición del usuario (opcional)."""

    kind: str  # match | weekly | global
    scope: Optional[str] = None  # match_id o week_id
    entries: list[LeaderboardEntry]
    user_position: Optional[LeaderboardEntry] = None


class WeekRange(BaseModel):
    week_id: str  # fecha ISO del inicio de semana, ej: "2025-04-07"
    start: str
    end: str
