"""
Unit tests for PredictionService and ResultsService
"""

import pytest
from datetime import datetime, timedelta

from app.models.match import MatchResultCreate
from app.models.prediction import PredictionSubmission
from app.services.prediction_service import (
    InvalidAnswerError,
    MatchNotFoundError,
    PredictionService,
    PredictionWindowClosedError,
)
from app.services.results_service import ResultsService, build_prediction_results
from tests.conftest import MATCH_ID

START = datetime(2025, 4, 20, 14, 0)


@pytest.fixture
async def scheduled_match(test_db):
    await test_db["matches"].insert_one({
        "_id": "m2",
        "team1": "Delhi Capitals",
        "team2": "Punjab Kings",
        "date": START,
        "status": "upcoming",
    })
    return "m2"


class TestSubmitPredictions:

    @pytest.mark.asyncio
    async def test_submit_inside_window(self, test_db, scheduled_match):
        service = PredictionService(test_db)
        submission = PredictionSubmission(
            prediction_game_id="game-m2",
            answers={"winner": "Delhi Capitals", "top-batsman": " K L  Rahul ", "highest-total": ""}
        )

        answers = await service.submit_predictions("u1", scheduled_match, submission, now=START - timedelta(hours=2))

        by_question = {a.question_id: a for a in answers}
        assert set(by_question) == {"winner", "top-batsman"}
        assert by_question["top-batsman"].answer == "KL Rahul"
        assert by_question["winner"].id == "u1:m2:winner"
        assert by_question["winner"].prediction_game_id == "game-m2"

    @pytest.mark.asyncio
    async def test_resubmit_updates_existing_answer(self, test_db, scheduled_match):
        service = PredictionService(test_db)
        now = START - timedelta(hours=1)

        await service.submit_predictions("u1", scheduled_match, PredictionSubmission(answers={"winner": "Delhi Capitals"}), now=now)
        await service.submit_predictions("u1", scheduled_match, PredictionSubmission(answers={"winner": "Punjab Kings"}), now=now)

        docs = await test_db["predictionAnswers"].find({"userId": "u1"}).to_list(length=None)
        assert len(docs) == 1
        assert docs[0]["answer"] == "Punjab Kings"

    @pytest.mark.asyncio
    async def test_legacy_answer_id_is_updated_in_place(self, test_db, scheduled_match):
        await test_db["predictionAnswers"].insert_one({
            "_id": "legacy-123",
            "userId": "u1",
            "matchId": scheduled_match,
            "questionId": "winner",
            "answer": "Delhi Capitals",
        })

        await PredictionService(test_db).submit_predictions(
            "u1", scheduled_match,
            PredictionSubmission(answers={"winner": "Punjab Kings"}),
            now=START - timedelta(hours=1)
        )

        assert await test_db["predictionAnswers"].count_documents({}) == 1
        legacy = await test_db["predictionAnswers"].find_one({"_id": "legacy-123"})
        assert legacy["answer"] == "Punjab Kings"

    @pytest.mark.asyncio
    async def test_window_not_open_yet(self, test_db, scheduled_match):
        with pytest.raises(PredictionWindowClosedError):
            await PredictionService(test_db).submit_predictions(
                "u1", scheduled_match,
                PredictionSubmission(answers={"winner": "Delhi Capitals"}),
                now=START - timedelta(hours=30)
            )

    @pytest.mark.asyncio
    async def test_window_closed_after_start(self, test_db, scheduled_match):
        with pytest.raises(PredictionWindowClosedError):
            await PredictionService(test_db).submit_predictions(
                "u1", scheduled_match,
                PredictionSubmission(answers={"winner": "Delhi Capitals"}),
                now=START + timedelta(minutes=1)
            )

    @pytest.mark.asyncio
    async def test_completed_match_is_closed(self, test_db, sample_match_data):
        await test_db["matches"].insert_one(sample_match_data)

        with pytest.raises(PredictionWindowClosedError):
            await PredictionService(test_db).submit_predictions(
                "u1", MATCH_ID, PredictionSubmission(answers={"winner": "MI"})
            )

    @pytest.mark.asyncio
    async def test_match_not_found(self, test_db):
        with pytest.raises(MatchNotFoundError):
            await PredictionService(test_db).submit_predictions(
                "u1", "m404", PredictionSubmission(answers={"winner": "MI"})
            )

    @pytest.mark.asyncio
    async def test_all_answers_blank(self, test_db, scheduled_match):
        with pytest.raises(InvalidAnswerError):
            await PredictionService(test_db).submit_predictions(
                "u1", scheduled_match,
                PredictionSubmission(answers={"winner": "  "}),
                now=START - timedelta(hours=1)
            )


class TestResetUserPredictions:

    @pytest.mark.asyncio
    async def test_reset_before_cutoff(self, test_db, scheduled_match):
        service = PredictionService(test_db)
        await service.submit_predictions(
            "u1", scheduled_match,
            PredictionSubmission(answers={"winner": "Delhi Capitals", "more-sixes": "Punjab Kings"}),
            now=START - timedelta(hours=1)
        )

        deleted = await service.reset_user_predictions("u1", scheduled_match, now=START - timedelta(minutes=10))

        assert deleted == 2
        assert await service.get_user_predictions("u1", scheduled_match) == []

    @pytest.mark.asyncio
    async def test_reset_after_cutoff(self, test_db, scheduled_match):
        with pytest.raises(PredictionWindowClosedError):
            await PredictionService(test_db).reset_user_predictions(
                "u1", scheduled_match, now=START - timedelta(minutes=4)
            )


class TestResultsService:

    def test_build_prediction_results(self):
        results = build_prediction_results("m1", MatchResultCreate(
            winner="Mumbai Indians",
            top_batsman="Rohit   Sharma",
            highest_total=192,
            total_sixes=19,
        ))

        assert results["winner"] == "Mumbai Indians"
        assert results["m1-winner"] == "Mumbai Indians"
        assert results["winner-question"] == "Mumbai Indians"
        assert results["top-batsman"] == "Rohit Sharma"
        assert results["m1-highest-total"] == "192"
        assert results["total-sixes"] == "19"
        assert "top-bowler" not in results
        assert "more-sixes" not in results

    @pytest.mark.asyncio
    async def test_save_result_and_evaluate(self, seeded_db):
        db = await seeded_db()
        await db["matchResults"].delete_many({})

        result, summary = await ResultsService(db).save_match_result(
            MATCH_ID,
            MatchResultCreate(
                winner="Mumbai Indians",
                top_batsman="Rohit Sharma",
                top_bowler="Jasprit Bumrah",
                highest_total=192,
                more_sixes="Mumbai Indians",
                total_sixes=19,
            ),
            created_by="admin1",
            evaluate=True
        )

        assert result.match_id == MATCH_ID
        assert result.is_evaluated is True
        assert result.created_by == "admin1"
        assert summary.points_distributed == 47

        match = await db["matches"].find_one({"_id": MATCH_ID})
        assert match["status"] == "completed"
        assert match["result"]["winner"] == "Mumbai Indians"

    @pytest.mark.asyncio
    async def test_saving_again_resets_evaluated_flag(self, seeded_db):
        db = await seeded_db()
        service = ResultsService(db)
        data = MatchResultCreate(winner="Mumbai Indians")

        await service.save_match_result(MATCH_ID, data, created_by="admin1", evaluate=True)
        result, summary = await service.save_match_result(MATCH_ID, data, created_by="admin1")

        assert summary is None
        assert result.is_evaluated is False
        assert await db["matchResults"].count_documents({"matchId": MATCH_ID}) == 1

    @pytest.mark.asyncio
    async def test_save_result_for_unknown_match(self, test_db):
        with pytest.raises(MatchNotFoundError):
            await ResultsService(test_db).save_match_result(
                "m404", MatchResultCreate(winner="MI"), created_by="admin1"
            )
