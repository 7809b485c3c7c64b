from .user import User
from .question import Question, QuestionDefinition, QuestionType
from .match import Match, MatchResult, MatchResultCreate
from .prediction import PredictionAnswer, AnswerOutcome, ScoredAnswer, EvaluationSummary
from .leaderboard import LeaderboardEntry, UserTotals

__all__ = [
    "User",
    "Question",
    "QuestionDefinition",
    "QuestionType",
    "Match",
    "MatchResult",
    "MatchResultCreate",
    "PredictionAnswer",
    "AnswerOutcome",
    "ScoredAnswer",
    "EvaluationSummary",
    "LeaderboardEntry",
    "UserTotals",
]
