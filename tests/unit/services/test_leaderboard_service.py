"""
Unit tests for LeaderboardService (writer + readers)
"""

import pytest
from datetime import datetime, timezone

from app.models.leaderboard import UserTotals
from app.models.match import Match
from app.services.leaderboard_service import (
    LeaderboardNotFoundError,
    LeaderboardService,
    in_current_week,
    parse_match_date,
    week_range_for,
)
from tests.conftest import MATCH_ID, make_answer


class TestWeeks:

    def test_week_starts_on_monday(self):
        week = week_range_for(datetime(2025, 4, 9, 20, 0))
        assert week.week_id == "2025-04-07"
        assert week.end == "2025-04-13"

    def test_monday_is_its_own_week_start(self):
        assert week_range_for(datetime(2025, 4, 7)).week_id == "2025-04-07"

    def test_custom_week_start(self):
        # Semana de domingo a sábado
        assert week_range_for(datetime(2025, 4, 9), week_start_weekday=6).week_id == "2025-04-06"

    def test_parse_match_date(self):
        assert parse_match_date("2025-04-09T14:00:00Z") == datetime(2025, 4, 9, 14, 0)
        assert parse_match_date(datetime(2025, 4, 9, 16, 0, tzinfo=timezone.utc)) == datetime(2025, 4, 9, 16, 0)
        assert parse_match_date("not a date") is None
        assert parse_match_date(None) is None

    def test_in_current_week(self):
        match = Match(**{"_id": "m1", "team1": "MI", "team2": "CSK", "date": datetime(2025, 4, 9, 14, 0)})

        assert in_current_week(match, datetime(2025, 4, 13, 23, 0)) is True
        assert in_current_week(match, datetime(2025, 4, 14, 0, 1)) is False
        assert in_current_week(None, datetime(2025, 4, 9)) is False


class TestLeaderboardWriter:

    @pytest.mark.asyncio
    async def test_write_match_leaderboard_merges(self, test_db, sample_users):
        await test_db["users"].insert_many(sample_users)
        service = LeaderboardService(test_db)

        leaderboard_id = await service.write_match_leaderboard(MATCH_ID, {
            "u1": UserTotals(total_points=25, correct_predictions=2, total_predictions=3),
            "ghost": UserTotals(total_points=5, correct_predictions=1, total_predictions=1),
        })
        ghost = await test_db["leaderboardEntries"].find_one({"_id": f"{leaderboard_id}:ghost"})
        assert ghost["displayName"] == "Anonymous User"

        await test_db["leaderboardEntries"].update_one(
            {"_id": f"{leaderboard_id}:u1"},
            {"$set": {"badge": "top-scorer"}}
        )
        await service.write_match_leaderboard(MATCH_ID, {
            "u1": UserTotals(total_points=30, correct_predictions=3, total_predictions=3),
        })

        assert leaderboard_id == f"match-{MATCH_ID}"
        assert await test_db["leaderboards"].count_documents({}) == 1

        entry = await test_db["leaderboardEntries"].find_one({"_id": f"{leaderboard_id}:u1"})
        assert entry["points"] == 30
        assert entry["accuracy"] == 100
        assert entry["badge"] == "top-scorer"

        # ghost ya no tiene respuestas puntuadas en el partido
        assert await test_db["leaderboardEntries"].count_documents({"leaderboardId": leaderboard_id}) == 1

    @pytest.mark.asyncio
    async def test_empty_table_without_header_writes_nothing(self, test_db):
        assert await LeaderboardService(test_db).write_match_leaderboard(MATCH_ID, {}) is None
        assert await test_db["leaderboards"].count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_existing_header_is_reused(self, test_db):
        await test_db["leaderboards"].insert_one({"_id": "legacy-header", "matchId": MATCH_ID, "type": "match"})
        service = LeaderboardService(test_db)

        leaderboard_id = await service.write_match_leaderboard(MATCH_ID, {"u1": UserTotals(total_points=1)})

        assert leaderboard_id == "legacy-header"

    @pytest.mark.asyncio
    async def test_weekly_refresh_only_counts_matches_of_the_week(self, test_db, sample_users, sample_match_data):
        await test_db["users"].insert_many(sample_users)
        await test_db["matches"].insert_many([
            sample_match_data,
            {**sample_match_data, "_id": "m-same-week", "date": "2025-04-12T14:00:00Z"},
            {**sample_match_data, "_id": "m-next-week", "date": datetime(2025, 4, 15, 14, 0)},
        ])
        await test_db["predictionAnswers"].insert_many([
            make_answer("u1", "winner", "MI", isCorrect=True, pointsEarned=10),
            make_answer("u1", "winner", "MI", match_id="m-same-week", isCorrect=False, pointsEarned=-3),
            make_answer("u1", "winner", "MI", match_id="m-next-week", isCorrect=True, pointsEarned=10),
        ])
        service = LeaderboardService(test_db)

        week_id = await service.refresh_weekly_leaderboard(MATCH_ID, ["u1"])

        row = await test_db["weeklyLeaderboard"].find_one({"_id": f"{week_id}:u1"})
        assert week_id == "2025-04-07"
        assert row["weeklyPoints"] == 7
        assert row["totalPredictions"] == 2
        assert row["matchesPlayed"] == 2
        assert row["weekStartDate"] == "2025-04-07"

    @pytest.mark.asyncio
    async def test_weekly_refresh_skips_match_without_date(self, test_db, sample_match_data):
        await test_db["matches"].insert_one({**sample_match_data, "date": None})

        assert await LeaderboardService(test_db).refresh_weekly_leaderboard(MATCH_ID, ["u1"]) is None

    @pytest.mark.asyncio
    async def test_recalculate_all_and_reset(self, test_db, sample_users):
        await test_db["users"].insert_many(sample_users)
        await test_db["predictionAnswers"].insert_many([
            make_answer("u1", "winner", "MI", isCorrect=True, pointsEarned=10),
            make_answer("u2", "winner", "CSK", isCorrect=False, pointsEarned=-3),
            make_answer("ghost", "winner", "MI", isCorrect=True, pointsEarned=10),
        ])
        service = LeaderboardService(test_db)

        assert await service.recalculate_all() == 2
        assert await test_db["globalLeaderboard"].count_documents({}) == 2

        assert await service.reset_global_leaderboard() == 2
        assert await test_db["globalLeaderboard"].count_documents({}) == 0


class TestLeaderboardReaders:

    async def seed_global(self, db):
        await db["globalLeaderboard"].insert_many([
            {"_id": "u1", "userId": "u1", "displayName": "Alice", "totalPoints": 30, "accuracy": 60, "totalPredictions": 5, "correctPredictions": 3},
            {"_id": "u2", "userId": "u2", "displayName": "Bob", "totalPoints": 30, "accuracy": 75, "totalPredictions": 4, "correctPredictions": 3},
            {"_id": "u3", "userId": "u3", "displayName": "Carol", "totalPoints": 50, "accuracy": 50, "totalPredictions": 10, "correctPredictions": 5},
        ])

    @pytest.mark.asyncio
    async def test_global_ranking_order(self, test_db):
        await self.seed_global(test_db)

        response = await LeaderboardService(test_db).get_global_leaderboard(user_id="u1")

        assert [e.user_id for e in response.entries] == ["u3", "u2", "u1"]
        assert [e.rank for e in response.entries] == [1, 2, 3]
        assert response.entries[0].points == 50
        assert response.user_position.rank == 3

    @pytest.mark.asyncio
    async def test_user_rank(self, test_db):
        await self.seed_global(test_db)
        service = LeaderboardService(test_db)

        rank = await service.get_user_rank("u2")

        assert rank["rank"] == 2
        assert rank["entry"].display_name == "Bob"
        assert await service.get_user_rank("nobody") is None

    @pytest.mark.asyncio
    async def test_match_leaderboard_not_found(self, test_db):
        with pytest.raises(LeaderboardNotFoundError):
            await LeaderboardService(test_db).get_match_leaderboard("m404")

    @pytest.mark.asyncio
    async def test_weekly_defaults_to_latest_week(self, test_db):
        await test_db["weeklyLeaderboard"].insert_many([
            {"_id": "2025-04-07:u1", "weekId": "2025-04-07", "userId": "u1", "weeklyPoints": 10},
            {"_id": "2025-04-14:u1", "weekId": "2025-04-14", "userId": "u1", "weeklyPoints": 4},
            {"_id": "2025-04-14:u2", "weekId": "2025-04-14", "userId": "u2", "weeklyPoints": 8},
        ])
        service = LeaderboardService(test_db)

        assert await service.get_weeks() == ["2025-04-14", "2025-04-07"]

        latest = await service.get_weekly_leaderboard()
        assert latest.scope == "2025-04-14"
        assert [e.user_id for e in latest.entries] == ["u2", "u1"]

        older = await service.get_weekly_leaderboard("2025-04-07")
        assert older.entries[0].points == 10

    @pytest.mark.asyncio
    async def test_weekly_without_data(self, test_db):
        with pytest.raises(LeaderboardNotFoundError):
            await LeaderboardService(test_db).get_weekly_leaderboard()
