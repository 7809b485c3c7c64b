"""
QuestionRepository - MongoDB access for questions collection.
"""

from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.question import Question, QuestionType

# Standard question set, stored with their canonical ids
STANDARD_QUESTIONS = [
    {
        "_id": "winner",
        "text": "Which team will win this match?",
        "type": QuestionType.WINNER.value,
        "points": 10,
        "negativePoints": 3,
        "isActive": True,
    },
    {
        "_id": "top-batsman",
        "text": "Who will be the top batsman in this match?",
        "type": QuestionType.TOP_BATSMAN.value,
        "points": 15,
        "negativePoints": 5,
        "isActive": True,
    },
    {
        "_id": "top-bowler",
        "text": "Who will be the top bowler in this match?",
        "type": QuestionType.TOP_BOWLER.value,
        "points": 15,
        "negativePoints": 5,
        "isActive": True,
    },
    {
        "_id": "highest-total",
        "text": "What will be the highest team total in this match?",
        "type": QuestionType.HIGHEST_TOTAL.value,
        "points": 10,
        "negativePoints": 3,
        "isActive": True,
    },
    {
        "_id": "more-sixes",
        "text": "Which team will hit more sixes?",
        "type": QuestionType.MORE_SIXES.value,
        "points": 10,
        "negativePoints": 3,
        "isActive": True,
    },
    {
        "_id": "total-sixes",
        "text": "How many sixes will be hit in this match?",
        "type": QuestionType.TOTAL_SIXES.value,
        "options": [
            {"id": "range1", "value": "12-17", "label": "12-17 sixes"},
            {"id": "range2", "value": "17-22", "label": "17-22 sixes"},
            {"id": "range3", "value": "22-37", "label": "22-37 sixes"},
            {"id": "range4", "value": "37-42", "label": "37-42 sixes"},
        ],
        "points": 15,
        "negativePoints": 5,
        "isActive": True,
    },
]


class QuestionRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["questions"]

    async def get_active(self) -> list[Question]:
        """All active questions (the ones used for scoring)."""
        docs = await self.collection.find({"isActive": True}).to_list(length=None)
        return [Question(**doc) for doc in docs]

    async def has_standard_questions(self) -> bool:
        standard_types = [
            QuestionType.WINNER.value,
            QuestionType.TOP_BATSMAN.value,
            QuestionType.TOP_BOWLER.value,
            QuestionType.HIGHEST_TOTAL.value,
            QuestionType.MORE_SIXES.value,
            QuestionType.TOTAL_SIXES.value,
        ]
        count = await self.collection.count_documents(
            {"type": {"$in": standard_types}},
            limit=1
        )
        return count > 0

    async def seed_standard_questions(self) -> int:
        """Insert the standard question set. Returns number of questions written."""
        now = datetime.now(timezone.utc)

        for question in STANDARD_QUESTIONS:
            await self.collection.replace_one(
                {"_id": question["_id"]},
                {**question, "createdAt": now, "updatedAt": now},
                upsert=True
            )

        return len(STANDARD_QUESTIONS)
