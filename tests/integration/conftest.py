"""
Fixtures for integration tests
"""

import pytest
from datetime import datetime, timedelta, timezone
from httpx import ASGITransport, AsyncClient
from jose import jwt

from app.core.config import get_settings
from app.main import app
from app.database import Database


def make_token(user_id: str) -> str:
    """JWT como los que emite el proveedor de identidad"""
    settings = get_settings()
    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture
async def client(test_db):
    """
    HTTP client for testing API endpoints.

    Points the Database singleton at the test database.
    """
    original_db = Database.db
    Database.db = test_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    # Restore original db
    Database.db = original_db


@pytest.fixture
async def user_headers(test_db, sample_users):
    """Authentication headers for a regular user (u1)."""
    await test_db["users"].replace_one({"_id": "u1"}, sample_users[0], upsert=True)
    return {"Authorization": f"Bearer {make_token('u1')}"}


@pytest.fixture
async def admin_headers(test_db, sample_users):
    """Authentication headers for an admin user."""
    await test_db["users"].replace_one({"_id": "admin1"}, sample_users[2], upsert=True)
    return {"Authorization": f"Bearer {make_token('admin1')}"}


@pytest.fixture
def token_for():
    """Minter de tokens para los tests que no usan headers (WebSocket)."""
    return make_token
