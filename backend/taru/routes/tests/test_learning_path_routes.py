import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from taru.auth import create_access_token
from taru.config import Settings
from taru.main import create_app
from taru.models.user import CurrentUser, Role
from taru.services.database import STUDENTS
from taru.services.webhook import WebhookResult

SETTINGS = Settings(jwt_secret="test-secret")

OUTPUT = {
    "greeting": "Data Scientist, let's go!",
    "overview": ["Statistics"],
    "learningPath": [{"module": "Foundations", "submodules": []}],
}


def login(client: TestClient, role: Role = Role.student, user_id: str = "user-1"):
    user = CurrentUser(user_id=user_id, email=f"{user_id}@taru.test", role=role)
    client.cookies.set(SETTINGS.auth_cookie_name, create_access_token(user, SETTINGS))


@pytest.fixture
def client(db_client):
    asyncio.run(
        db_client[STUDENTS].insert_one(
            {"userId": "user-1", "uniqueId": "STU123", "fullName": "Asha"}
        )
    )
    with TestClient(create_app(SETTINGS, db_client)) as test_client:
        yield test_client


def test_only_students_may_use_learning_paths(client):
    login(client, role=Role.parent)

    response = client.get("/api/learning-paths/responses")

    assert response.status_code == 403
    assert response.json() == {"error": "Access denied. student role required"}


def test_student_without_record_is_not_found(client):
    login(client, user_id="user-2")

    response = client.get("/api/learning-paths/responses")

    assert response.status_code == 404
    assert response.json() == {"error": "Student not found"}


def test_save_then_list_learning_paths(client):
    login(client)

    for _ in range(2):
        response = client.post(
            "/api/learning-paths/save",
            json={"careerPath": "Data Scientist", "careerDetails": OUTPUT},
        )
        assert response.status_code == 200

    body = client.get("/api/learning-paths/responses").json()
    assert body["count"] == 1
    learning_path = body["responses"][0]
    assert learning_path["uniqueid"] == "STU123"
    assert learning_path["output"]["timeRequired"] == "2 Years"


def test_webhook_delivery_needs_no_session(client):
    response = client.post(
        "/api/learning-paths/webhook",
        json={"uniqueid": "STU123", "career": "Data Scientist", "output": OUTPUT},
    )
    assert response.status_code == 200
    assert response.json()["created"] is True

    response = client.post(
        "/api/learning-paths/webhook", json={"uniqueid": "STU123", "output": OUTPUT}
    )
    assert response.json()["created"] is False

    response = client.post("/api/learning-paths/webhook", json={"output": OUTPUT})
    assert response.status_code == 400
    assert response.json() == {"error": "unique_id required"}


def test_generate_saves_returned_output(client):
    login(client)
    client.app.state.webhook_client.trigger = AsyncMock(
        return_value=WebhookResult(ok=True, status=200, data=[{"output": OUTPUT}])
    )

    response = client.post(
        "/api/learning-paths/generate", json={"careerPath": "Data Scientist"}
    )

    body = response.json()
    assert body["success"] is True
    assert body["created"] is True
    payload = client.app.state.webhook_client.trigger.call_args.args[0]
    assert payload["uniqueid"] == "STU123"


def test_generate_reports_relay_failure_softly(client):
    login(client)
    client.app.state.webhook_client.trigger = AsyncMock(
        return_value=WebhookResult(ok=False, error="Webhook timed out after 30s")
    )

    response = client.post(
        "/api/learning-paths/generate", json={"careerPath": "Data Scientist"}
    )

    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "Webhook timed out after 30s"}


def test_assessment_answers_and_result(client):
    login(client)

    response = client.post(
        "/api/assessment/store-answers",
        json={"collectedAnswers": [{"questionId": "q1", "answer": "A"}]},
    )
    assert response.status_code == 200
    assert response.json()["response"]["assessmentType"] == "diagnostic"

    body = client.get("/api/assessment/result").json()
    assert body == {"success": True, "isCompleted": False, "result": None}

    client.post("/api/assessment/result", json={"result": {"score": 8}})
    body = client.get("/api/assessment/result").json()
    assert body["isCompleted"] is True
    assert body["result"] == {"score": 8}

    session_view = client.get("/api/session/load-assessment-results").json()
    assert session_view["data"]["result"] == {"score": 8}


def test_career_path_data_reads_latest_response(client):
    login(client)
    client.post(
        "/api/learning-paths/save",
        json={"careerPath": "Data Scientist", "careerDetails": OUTPUT},
    )

    body = client.get("/api/session/load-career-path-data").json()

    assert body["data"]["career"] == "Data Scientist"
    assert body["data"]["uniqueid"] == "STU123"
