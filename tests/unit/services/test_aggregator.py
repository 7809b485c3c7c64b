"""
Unit tests for per-user aggregation and aggregate deltas
"""

from app.models.prediction import AnswerOutcome, PredictionAnswer, ScoredAnswer
from app.services.aggregator import (
    aggregate_answers,
    aggregate_by_user,
    evaluation_deltas,
    reversal_deltas,
)


def scored(user_id, question_id, is_correct, points, previous_correct=None, previous_points=None):
    return ScoredAnswer(
        answer_id=f"{user_id}:m1:{question_id}",
        user_id=user_id,
        match_id="m1",
        question_id=question_id,
        outcome=AnswerOutcome(is_correct=is_correct, points_earned=points),
        previous_is_correct=previous_correct,
        previous_points_earned=previous_points,
    )


def answer(user_id, match_id, question_id, is_correct=None, points=None):
    return PredictionAnswer(**{
        "_id": f"{user_id}:{match_id}:{question_id}",
        "userId": user_id,
        "matchId": match_id,
        "questionId": question_id,
        "answer": "x",
        "isCorrect": is_correct,
        "pointsEarned": points,
    })


class TestAggregateByUser:

    def test_negative_points_are_summed(self):
        totals = aggregate_by_user([
            answer("u1", "m1", "winner", True, 10),
            answer("u1", "m1", "top-batsman", False, -5),
            answer("u1", "m1", "top-bowler", False, 0),
        ])["u1"]

        assert totals.total_points == 5
        assert totals.correct_predictions == 1
        assert totals.total_predictions == 3
        assert totals.accuracy == 33
        assert totals.matches_played == 1

    def test_groups_by_user(self):
        per_user = aggregate_by_user([
            answer("u1", "m1", "winner", True, 10),
            answer("u2", "m1", "winner", False, -3),
        ])

        assert set(per_user) == {"u1", "u2"}
        assert per_user["u2"].total_points == -3
        assert per_user["u2"].accuracy == 0

    def test_users_without_scored_answers_are_left_out(self):
        per_user = aggregate_by_user([
            answer("u1", "m1", "winner", True, 10),
            answer("u2", "m1", "winner"),
        ])

        assert set(per_user) == {"u1"}


class TestAggregateAnswers:

    def test_unevaluated_answers_are_ignored(self):
        totals = aggregate_answers([
            answer("u1", "m1", "winner", True, 10),
            answer("u1", "m1", "top-bowler"),
            answer("u1", "m2", "winner", False, -3),
        ])

        assert totals.total_points == 7
        assert totals.correct_predictions == 1
        assert totals.total_predictions == 2
        assert totals.matches_played == 2

    def test_no_answers(self):
        totals = aggregate_answers([])
        assert totals.total_points == 0
        assert totals.accuracy == 0


class TestDeltas:

    def test_first_evaluation_counts_everything(self):
        deltas = evaluation_deltas([
            scored("u1", "winner", True, 10),
            scored("u1", "top-batsman", False, -5),
        ])
        assert deltas == {"u1": {"points": 5, "correct": 1, "total": 2}}

    def test_reevaluation_with_same_outcome_changes_nothing(self):
        deltas = evaluation_deltas([
            scored("u1", "winner", True, 10, previous_correct=True, previous_points=10),
        ])
        assert deltas == {}

    def test_reevaluation_after_corrected_result(self):
        deltas = evaluation_deltas([
            scored("u1", "winner", False, -3, previous_correct=True, previous_points=10),
        ])
        assert deltas == {"u1": {"points": -13, "correct": -1, "total": 0}}

    def test_reversal_of_evaluated_answers(self):
        deltas = reversal_deltas([
            answer("u1", "m1", "winner", True, 10),
            answer("u1", "m1", "top-batsman", False, -5),
            answer("u2", "m1", "winner"),
        ])
        assert deltas == {"u1": {"points": -5, "correct": -1, "total": -2}}
