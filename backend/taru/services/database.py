import functools
import logging
from typing import Any, Optional

import pymongo
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from taru.errors import DataAccessError

logger = logging.getLogger(__name__)

USERS = "users"
STUDENTS = "students"
USER_SESSIONS = "user_sessions"
PAGE_DATA = "session_page_data"
STUDENT_PROGRESS = "student_progress"
ASSESSMENT_SESSIONS = "assessment_sessions"
CAREER_SESSIONS = "career_sessions"
ASSESSMENT_RESPONSES = "assessment_responses"
LEARNING_PATH_RESPONSES = "learning-path-responses"

# Shapes written by earlier releases; read only, by the migration.
LEGACY_USER_SESSIONS = "usersessions"
LEGACY_MODULE_SESSIONS = "modulesessions"
LEGACY_ASSESSMENT_SESSIONS = "assessmentsessions"
LEGACY_LEARNING_PATH_STUDENT = "learning-path-student"
LEGACY_CAREER_OPTIONS = "Career-Option-Generation"
LEGACY_N8N_RESULTS = "n8nresults"


class DatabaseClient:
    """Process-wide handle to the document store.

    Built once by the application lifespan and passed to every service.
    A pre-built motor-compatible client may be injected instead of a URI.
    """

    def __init__(
        self,
        mongo_uri: Optional[str] = None,
        db_name: str = "taru",
        client: Any = None,
    ):
        self._owns_client = client is None
        self.client = client if client is not None else AsyncIOMotorClient(mongo_uri)
        self.db = self.client[db_name]

    def __getitem__(self, name: str):
        return self.db[name]

    async def init_indexes(self):
        """Initialize database indexes."""

        await self.db[USERS].create_index("email", unique=True)
        await self.db[STUDENTS].create_index("userId", unique=True)
        await self.db[STUDENTS].create_index("uniqueId", unique=True)

        await self.db[USER_SESSIONS].create_index("sessionId", unique=True)
        await self.db[USER_SESSIONS].create_index(
            [
                ("userId", pymongo.ASCENDING),
                ("isActive", pymongo.ASCENDING),
                ("lastActivity", pymongo.DESCENDING),
            ]
        )

        await self.db[PAGE_DATA].create_index(
            [("userId", pymongo.ASCENDING), ("page", pymongo.ASCENDING)], unique=True
        )

        await self.db[STUDENT_PROGRESS].create_index(
            [("userId", pymongo.ASCENDING), ("studentId", pymongo.ASCENDING)],
            unique=True,
        )

        await self.db[ASSESSMENT_SESSIONS].create_index(
            [
                ("userId", pymongo.ASCENDING),
                ("studentId", pymongo.ASCENDING),
                ("assessmentType", pymongo.ASCENDING),
            ],
            unique=True,
        )
        await self.db[CAREER_SESSIONS].create_index(
            [("userId", pymongo.ASCENDING), ("studentId", pymongo.ASCENDING)],
            unique=True,
        )

        await self.db[ASSESSMENT_RESPONSES].create_index(
            [("uniqueId", pymongo.ASCENDING), ("assessmentType", pymongo.ASCENDING)],
            unique=True,
        )
        await self.db[LEARNING_PATH_RESPONSES].create_index(
            [("uniqueid", pymongo.ASCENDING), ("careerKey", pymongo.ASCENDING)]
        )
        logger.info("Database indexes initialized")

    def close(self):
        if self._owns_client:
            self.client.close()


def store_operation(func):
    """Translate store failures into DataAccessError. No retries."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"Store error in {func.__name__}: {str(e)}")
            raise DataAccessError(
                f"Failed to {func.__name__.replace('_', ' ')}"
            ) from e

    return wrapper


def clean_document(value: Any) -> Any:
    """Make a stored document JSON-safe: drop `_id`, stringify ObjectIds."""
    if isinstance(value, dict):
        return {k: clean_document(v) for k, v in value.items() if k != "_id"}
    if isinstance(value, list):
        return [clean_document(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    return value
