import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import jwt
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from taru.auth import create_access_token
from taru.config import Settings
from taru.main import create_app
from taru.models.user import CurrentUser, Role
from taru.services.database import USERS

SETTINGS = Settings(jwt_secret="test-secret")
USER_ID = ObjectId()


@pytest.fixture
def client(db_client):
    asyncio.run(
        db_client[USERS].insert_one(
            {
                "_id": USER_ID,
                "email": "asha@taru.test",
                "password": "hashed",
                "role": "student",
            }
        )
    )
    app = create_app(SETTINGS, db_client)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def test_me_returns_claims_and_record(client):
    user = CurrentUser(
        user_id=str(USER_ID),
        email="asha@taru.test",
        role=Role.student,
        requires_assessment=True,
    )
    client.cookies.set("auth-token", create_access_token(user, SETTINGS))

    body = client.get("/api/auth/me").json()

    assert body["user"]["userId"] == str(USER_ID)
    assert body["user"]["requiresAssessment"] is True
    assert body["record"]["email"] == "asha@taru.test"
    assert "password" not in body["record"]


def test_token_signed_with_other_secret_is_rejected(client):
    user = CurrentUser(user_id="u", email="u@taru.test", role=Role.admin)
    forged = create_access_token(user, Settings(jwt_secret="other-secret"))
    client.cookies.set("auth-token", forged)

    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}


def test_expired_token_is_rejected(client):
    expired = jwt.encode(
        {
            "userId": "u",
            "email": "u@taru.test",
            "role": "student",
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        },
        SETTINGS.jwt_secret,
        algorithm=SETTINGS.jwt_algorithm,
    )
    client.cookies.set("auth-token", expired)

    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Token expired"}


def test_unexpected_errors_do_not_leak_details(client):
    user = CurrentUser(user_id="u", email="u@taru.test", role=Role.student)
    client.cookies.set("auth-token", create_access_token(user, SETTINGS))
    client.app.state.session_manager.load_user = AsyncMock(
        side_effect=RuntimeError("connection string with password")
    )

    response = client.get("/api/auth/me")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
