import pytest
from mongomock_motor import AsyncMongoMockClient

from taru.services.database import DatabaseClient


@pytest.fixture
def db_client():
    """Fresh in-memory database per test."""
    return DatabaseClient(db_name="taru_test", client=AsyncMongoMockClient())
