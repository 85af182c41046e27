import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

import pydantic
from bson import ObjectId

from taru.errors import ValidationError, require
from taru.models.progress import (
    AssessmentProgressUpdate,
    MigrationReport,
    ProgressUpdate,
    StudentProgressUpdate,
)
from taru.models.session import UserSession
from taru.services.database import (
    ASSESSMENT_RESPONSES,
    ASSESSMENT_SESSIONS,
    CAREER_SESSIONS,
    LEARNING_PATH_RESPONSES,
    LEGACY_CAREER_OPTIONS,
    LEGACY_LEARNING_PATH_STUDENT,
    LEGACY_N8N_RESULTS,
    PAGE_DATA,
    STUDENT_PROGRESS,
    STUDENTS,
    USER_SESSIONS,
    USERS,
    DatabaseClient,
    clean_document,
    store_operation,
)
from taru.services.session.migration import LegacyDataMigration
from taru.services.session.upsert import find_by_key, upsert_by_key

logger = logging.getLogger(__name__)

# Keys a caller-supplied progress payload may never overwrite.
_PROTECTED_KEYS = {"_id", "userId", "studentId", "assessmentType", "createdAt"}


def _validated(model, payload: Any, what: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError(f"{what} must be an object")
    try:
        parsed = model.model_validate(payload)
    except pydantic.ValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        message = f"Invalid {what}: {location} {error['msg']}"
        raise ValidationError(message.strip()) from e
    fields = parsed.model_dump(by_alias=True, exclude_unset=True)
    return {k: v for k, v in fields.items() if k not in _PROTECTED_KEYS}


class SessionManager:
    """Save/load primitives for a student's resumable journey.

    Every write is an upsert; loads return None when nothing is stored.
    Concurrent writers to one document race under last-write-wins.
    """

    def __init__(self, db_client: DatabaseClient, navigation_history_limit: int = 50):
        if navigation_history_limit < 1:
            raise ValueError("navigation_history_limit must be positive")
        self.db = db_client
        self.navigation_history_limit = navigation_history_limit

        self.sessions = db_client[USER_SESSIONS]
        self.page_data = db_client[PAGE_DATA]
        self.progress = db_client[STUDENT_PROGRESS]
        self.assessment_sessions = db_client[ASSESSMENT_SESSIONS]
        self.career_sessions = db_client[CAREER_SESSIONS]
        self.students = db_client[STUDENTS]

    # Session handles

    async def find_active_session(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.sessions.find_one(
            {"userId": user_id, "isActive": True}, sort=[("lastActivity", -1)]
        )

    async def insert_session(
        self, user_id: str, student_id: Optional[str] = None, **fields
    ) -> str:
        session = UserSession(
            session_id=str(uuid.uuid4()),
            user_id=user_id,
            student_id=student_id,
            **fields,
        )
        await self.sessions.insert_one(session.model_dump(by_alias=True))
        return session.session_id

    async def _get_or_create_session(
        self, user_id: str, student_id: Optional[str] = None
    ) -> str:
        session = await self.find_active_session(user_id)
        if session:
            return session["sessionId"]
        return await self.insert_session(user_id, student_id)

    @store_operation
    async def create_session(
        self, user_id: str, student_id: Optional[str] = None
    ) -> str:
        """Deactivate the user's active sessions and issue a new handle."""
        require(user_id=user_id)
        await self.sessions.update_many(
            {"userId": user_id, "isActive": True}, {"$set": {"isActive": False}}
        )
        session_id = await self.insert_session(user_id, student_id)
        logger.info(f"Created session {session_id} for user {user_id}")
        return session_id

    @store_operation
    async def get_active_session(self, user_id: str) -> Optional[UserSession]:
        require(user_id=user_id)
        doc = await self.find_active_session(user_id)
        return UserSession.model_validate(doc) if doc else None

    @store_operation
    async def clear_session(self, user_id: str) -> None:
        require(user_id=user_id)
        await self.sessions.update_many(
            {"userId": user_id}, {"$set": {"isActive": False}}
        )

    @store_operation
    async def update_navigation_history(self, user_id: str, page: str) -> UserSession:
        """Append a visited page; the oldest entries fall off past the cap."""
        require(user_id=user_id, page=page)
        session_id = await self._get_or_create_session(user_id)
        await self.sessions.update_one(
            {"sessionId": session_id},
            {
                "$push": {
                    "navigationHistory": {
                        "$each": [page],
                        "$slice": -self.navigation_history_limit,
                    }
                },
                "$set": {"currentPage": page, "lastActivity": datetime.now()},
            },
        )
        doc = await self.sessions.find_one({"sessionId": session_id})
        return UserSession.model_validate(doc)

    # Page snapshots

    @store_operation
    async def save_page_data(
        self,
        user_id: str,
        page: str,
        data: Any,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Replace the snapshot for (user, page) wholesale."""
        require(user_id=user_id, page=page)
        now = datetime.now()
        await self.page_data.update_one(
            {"userId": user_id, "page": page},
            {"$set": {"data": data, "metadata": metadata or {}, "updatedAt": now}},
            upsert=True,
        )
        session_id = await self._get_or_create_session(user_id)
        await self.sessions.update_one(
            {"sessionId": session_id},
            {"$set": {"currentPage": page, "lastActivity": now}},
        )

    @store_operation
    async def load_page_data(self, user_id: str, page: str) -> Any:
        require(user_id=user_id, page=page)
        doc = await self.page_data.find_one({"userId": user_id, "page": page})
        return doc["data"] if doc else None

    # Module and learning-path progress

    async def find_progress(
        self, user_id: str, student_id: str
    ) -> Optional[Dict[str, Any]]:
        """The progress document this user keeps for this student."""
        return await self.progress.find_one(
            {"userId": user_id, "studentId": student_id}
        )

    async def _upsert_progress_entry(
        self,
        array_field: str,
        key: str,
        user_id: str,
        student_id: str,
        value: str,
        fields: Dict[str, Any],
    ) -> Dict[str, Any]:
        now = datetime.now()
        doc = await self.find_progress(user_id, student_id)
        items, entry = upsert_by_key(
            (doc or {}).get(array_field), key, value, fields, now
        )
        await self.progress.update_one(
            {"userId": user_id, "studentId": student_id},
            {
                "$set": {array_field: items, "updatedAt": now},
                "$setOnInsert": {"createdAt": now},
            },
            upsert=True,
        )
        return entry

    @store_operation
    async def save_module_progress(
        self,
        user_id: str,
        student_id: str,
        module_id: str,
        progress: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Merge into the moduleProgress element for module_id, or append it."""
        require(
            user_id=user_id,
            student_id=student_id,
            module_id=module_id,
            progress=progress,
        )
        fields = _validated(ProgressUpdate, progress, "module progress")
        entry = await self._upsert_progress_entry(
            "moduleProgress", "moduleId", user_id, student_id, module_id, fields
        )
        logger.info(
            f"Saved module {module_id} progress for student {student_id}: "
            f"{entry['status']} {entry['progress']}%"
        )
        return entry

    @store_operation
    async def load_module_progress(
        self, user_id: str, student_id: str, module_id: str
    ) -> Optional[Dict[str, Any]]:
        require(user_id=user_id, student_id=student_id, module_id=module_id)
        doc = await self.find_progress(user_id, student_id)
        return find_by_key((doc or {}).get("moduleProgress"), "moduleId", module_id)

    @store_operation
    async def save_path_progress(
        self,
        user_id: str,
        student_id: str,
        path_id: str,
        progress: Dict[str, Any],
    ) -> Dict[str, Any]:
        require(
            user_id=user_id, student_id=student_id, path_id=path_id, progress=progress
        )
        fields = _validated(ProgressUpdate, progress, "path progress")
        return await self._upsert_progress_entry(
            "pathProgress", "pathId", user_id, student_id, path_id, fields
        )

    @store_operation
    async def load_path_progress(
        self, user_id: str, student_id: str, path_id: str
    ) -> Optional[Dict[str, Any]]:
        require(user_id=user_id, student_id=student_id, path_id=path_id)
        doc = await self.find_progress(user_id, student_id)
        return find_by_key((doc or {}).get("pathProgress"), "pathId", path_id)

    # Assessment progress

    @store_operation
    async def save_assessment_progress(
        self,
        user_id: str,
        student_id: str,
        assessment_type: str,
        progress: Dict[str, Any],
    ) -> None:
        """Merge fields into the (user, student, assessmentType) record."""
        require(
            user_id=user_id,
            student_id=student_id,
            assessment_type=assessment_type,
            progress=progress,
        )
        fields = _validated(AssessmentProgressUpdate, progress, "assessment progress")
        now = datetime.now()
        session_id = await self._get_or_create_session(user_id, student_id)

        update = {
            "$set": {**fields, "sessionId": session_id, "lastActivity": now},
            "$setOnInsert": {"createdAt": now},
        }
        if fields.get("isCompleted"):
            # Keep the first completion time across re-saves.
            update["$min"] = {"completedAt": now}
            update["$set"].pop("completedAt", None)

        await self.assessment_sessions.update_one(
            {
                "userId": user_id,
                "studentId": student_id,
                "assessmentType": assessment_type,
            },
            update,
            upsert=True,
        )

    @store_operation
    async def load_assessment_progress(
        self, user_id: str, student_id: str, assessment_type: str
    ) -> Optional[Dict[str, Any]]:
        require(
            user_id=user_id, student_id=student_id, assessment_type=assessment_type
        )
        doc = await self.assessment_sessions.find_one(
            {
                "userId": user_id,
                "studentId": student_id,
                "assessmentType": assessment_type,
            }
        )
        return clean_document(doc) if doc else None

    # Career progress

    @store_operation
    async def save_career_progress(
        self, user_id: str, student_id: str, career_data: Dict[str, Any]
    ) -> None:
        """One free-form object per (user, student); last write wins."""
        require(user_id=user_id, student_id=student_id, career_data=career_data)
        if not isinstance(career_data, dict):
            raise ValidationError("career data must be an object")
        now = datetime.now()
        await self.career_sessions.update_one(
            {"userId": user_id, "studentId": student_id},
            {
                "$set": {"data": career_data, "updatedAt": now},
                "$setOnInsert": {"createdAt": now},
            },
            upsert=True,
        )

    @store_operation
    async def load_career_progress(
        self, user_id: str, student_id: str
    ) -> Optional[Dict[str, Any]]:
        require(user_id=user_id, student_id=student_id)
        doc = await self.career_sessions.find_one(
            {"userId": user_id, "studentId": student_id}
        )
        return doc["data"] if doc else None

    # Aggregate student progress

    @store_operation
    async def save_student_progress(
        self, user_id: str, student_id: str, progress_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Shallow-merge top-level counters. Callers send totals, not deltas."""
        require(user_id=user_id, student_id=student_id, progress_data=progress_data)
        fields = _validated(StudentProgressUpdate, progress_data, "student progress")
        if not fields:
            raise ValidationError("No student progress fields to save")
        now = datetime.now()
        await self.progress.update_one(
            {"userId": user_id, "studentId": student_id},
            {
                "$set": {**fields, "updatedAt": now},
                "$setOnInsert": {
                    "createdAt": now,
                    "moduleProgress": [],
                    "pathProgress": [],
                },
            },
            upsert=True,
        )
        return clean_document(await self.find_progress(user_id, student_id))

    @store_operation
    async def load_student_progress(
        self, user_id: str, student_id: str
    ) -> Optional[Dict[str, Any]]:
        require(user_id=user_id, student_id=student_id)
        doc = await self.find_progress(user_id, student_id)
        return clean_document(doc) if doc else None

    # Read helpers over records owned by other parts of the platform

    @store_operation
    async def load_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """The account record, without its password hash."""
        require(user_id=user_id)
        key = ObjectId(user_id) if ObjectId.is_valid(user_id) else user_id
        doc = await self.db[USERS].find_one({"_id": key}, {"password": 0})
        return clean_document(doc) if doc else None

    @store_operation
    async def load_student_data(self, user_id: str) -> Optional[Dict[str, Any]]:
        require(user_id=user_id)
        doc = await self.students.find_one({"userId": user_id})
        return clean_document(doc) if doc else None

    @store_operation
    async def load_career_path_data(self, unique_id: str) -> Optional[Dict[str, Any]]:
        """Latest learning-path response, falling back to legacy collections."""
        require(unique_id=unique_id)
        doc = await self.db[LEARNING_PATH_RESPONSES].find_one(
            {"uniqueid": unique_id}, sort=[("updatedAt", -1)]
        )
        if not doc:
            doc = await self.db[LEGACY_LEARNING_PATH_STUDENT].find_one(
                {"uniqueid": unique_id}
            )
        if not doc:
            doc = await self.db[LEGACY_CAREER_OPTIONS].find_one({"uniqueId": unique_id})
        return clean_document(doc) if doc else None

    @store_operation
    async def load_assessment_results(self, unique_id: str) -> Optional[Dict[str, Any]]:
        require(unique_id=unique_id)
        doc = await self.db[ASSESSMENT_RESPONSES].find_one(
            {"uniqueId": unique_id, "isCompleted": True}, sort=[("updatedAt", -1)]
        )
        if not doc:
            doc = await self.db[LEGACY_N8N_RESULTS].find_one({"uniqueId": unique_id})
        return clean_document(doc) if doc else None

    # Legacy data

    @store_operation
    async def migrate_existing_data(
        self, user_id: str, student_id: str
    ) -> MigrationReport:
        require(user_id=user_id, student_id=student_id)
        return await LegacyDataMigration(self).run(user_id, student_id)
