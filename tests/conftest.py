"""
Pytest fixtures and configuration for all tests.
"""

import os

# Settings() exige estas variables: se definen antes de importar la app
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret-key-at-least-32-chars-long")

import pytest
from typing import AsyncGenerator
from datetime import datetime, timedelta, timezone
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from mongomock_motor import AsyncMongoMockClient

# Con TEST_MONGODB_URI se usa un MongoDB real, si no uno en memoria
TEST_DB_URI = os.getenv("TEST_MONGODB_URI")
TEST_DB_NAME = "cricket_predictions_test"

MATCH_ID = "m1"


@pytest.fixture(scope="session")
def worker_id(request):
    """
    Return the worker ID when using pytest-xdist, otherwise 'master'.
    This allows each worker to use its own test database.
    """
    if hasattr(request.config, 'workerinput'):
        return request.config.workerinput['workerid']
    return 'master'


@pytest.fixture(scope="function")
async def test_db(worker_id) -> AsyncGenerator[AsyncIOMotorDatabase, None]:
    """
    Provide a clean test database for each test.

    Uses a separate database per worker when running with pytest-xdist.
    Automatically cleans up after each test.
    """
    client = AsyncIOMotorClient(TEST_DB_URI) if TEST_DB_URI else AsyncMongoMockClient()
    db_name = f"{TEST_DB_NAME}_{worker_id}" if worker_id != "master" else TEST_DB_NAME
    db = client[db_name]

    yield db

    # Cleanup: drop all collections after test
    collection_names = await db.list_collection_names()
    for collection_name in collection_names:
        await db[collection_name].drop()

    client.close()


# ============================================
# 📌 SAMPLE DATA
# ============================================

@pytest.fixture
def sample_questions():
    """Standard questions as stored in `questions`."""
    return [
        {"_id": "winner", "text": "Who wins?", "type": "winner", "points": 10, "negativePoints": 3, "isActive": True},
        {"_id": "top-batsman", "text": "Top batsman?", "type": "topBatsman", "points": 15, "negativePoints": 5, "isActive": True},
        {"_id": "top-bowler", "text": "Top bowler?", "type": "topBowler", "points": 15, "negativePoints": 0, "isActive": True},
        {"_id": "highest-total", "text": "Highest total?", "type": "highestTotal", "points": 10, "negativePoints": 3, "isActive": True},
        {"_id": "more-sixes", "text": "More sixes?", "type": "moreSixes", "points": 10, "negativePoints": 0, "isActive": True},
        {"_id": "total-sixes", "text": "Total sixes?", "type": "totalSixes", "points": 15, "negativePoints": 5, "isActive": True},
    ]


@pytest.fixture
def sample_match_data():
    """A completed match played on Wednesday 2025-04-09."""
    return {
        "_id": MATCH_ID,
        "team1": "Mumbai Indians",
        "team2": "Chennai Super Kings",
        "venue": "Wankhede Stadium",
        "date": datetime(2025, 4, 9, 14, 0),
        "status": "completed",
    }


@pytest.fixture
def upcoming_match_data():
    """A match starting in 3 hours."""
    return {
        "_id": "m-upcoming",
        "team1": "Royal Challengers Bengaluru",
        "team2": "Kolkata Knight Riders",
        "date": datetime.now(timezone.utc) + timedelta(hours=3),
        "status": "upcoming",
    }


@pytest.fixture
def sample_result_data():
    """Official result for MATCH_ID."""
    return {
        "_id": "result-m1",
        "matchId": MATCH_ID,
        "winner": "Mumbai Indians",
        "team1Score": "192/4",
        "team2Score": "180/8",
        "highestTotal": 192,
        "topBatsmanId": "Rohit Sharma",
        "topBowlerId": "Jasprit Bumrah",
        "moreSixes": "Mumbai Indians",
        "totalSixes": 19,
        "predictionResults": {
            "winner": "Mumbai Indians",
            "top-batsman": "Rohit Sharma",
            "top-bowler": "Jasprit Bumrah",
            "highest-total": "192",
            "more-sixes": "Mumbai Indians",
            "total-sixes": "19",
        },
        "isEvaluated": False,
        "createdBy": "admin1",
    }


@pytest.fixture
def sample_users():
    return [
        {"_id": "u1", "email": "alice@example.com", "displayName": "Alice", "photoURL": "https://example.com/a.png"},
        {"_id": "u2", "email": "bob@example.com", "displayName": "Bob"},
        {"_id": "admin1", "email": "admin@example.com", "displayName": "Admin", "role": "admin"},
    ]


def make_answer(user_id: str, question_id: str, answer: str, match_id: str = MATCH_ID, **extra) -> dict:
    """Prediction answer document the way the app stores it."""
    return {
        "_id": f"{user_id}:{match_id}:{question_id}",
        "userId": user_id,
        "matchId": match_id,
        "predictionGameId": f"game-{match_id}",
        "questionId": question_id,
        "answer": answer,
        **extra,
    }


@pytest.fixture
def seeded_db(test_db, sample_questions, sample_match_data, sample_result_data, sample_users):
    """
    Database with questions, one completed match with its result and users.

    u1 answers everything right except the top bowler.
    u2 gets the winner wrong (penalty) and leaves highest-total blank.
    """
    async def _seed():
        await test_db["questions"].insert_many(sample_questions)
        await test_db["matches"].insert_one(sample_match_data)
        await test_db["matchResults"].insert_one(sample_result_data)
        for user in sample_users:
            await test_db["users"].replace_one({"_id": user["_id"]}, user, upsert=True)
        await test_db["predictionAnswers"].insert_many([
            make_answer("u1", "winner", "Mumbai Indians"),
            make_answer("u1", "top-batsman", "Rohit  Sharma"),
            make_answer("u1", "top-bowler", "Deepak Chahar"),
            make_answer("u1", "highest-total", "185"),
            make_answer("u2", "winner", "Chennai Super Kings"),
            make_answer("u2", "highest-total", ""),
            make_answer("u2", "total-sixes", "17-22"),
        ])
        return test_db

    return _seed
