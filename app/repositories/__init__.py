from .batch import WriteBatch
from .question_repository import QuestionRepository
from .match_repository import MatchRepository
from .prediction_answer_repository import PredictionAnswerRepository
from .user_repository import UserRepository
from .leaderboard_repository import LeaderboardRepository
from .lock_repository import LockRepository, LockHeldError

__all__ = [
    "WriteBatch",
    "QuestionRepository",
    "MatchRepository",
    "PredictionAnswerRepository",
    "UserRepository",
    "LeaderboardRepository",
    "LockRepository",
    "LockHeldError",
]
