"""Reconcile records written by earlier releases into the current schema.

Earlier releases kept page snapshots as a growing `sessionData` array on each
legacy user session, and module/assessment progress as one document per
session. The migration copies the newest of each into the current
collections. Every copy is insert-if-absent, so current data always wins,
and a `migratedAt` marker on the student's progress document turns later
runs into no-ops.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from taru.models.progress import MigrationReport, ProgressStatus
from taru.services.database import (
    LEGACY_ASSESSMENT_SESSIONS,
    LEGACY_MODULE_SESSIONS,
    LEGACY_USER_SESSIONS,
)
from taru.services.session.upsert import find_by_key, upsert_by_key

if TYPE_CHECKING:
    from taru.services.session.manager import SessionManager

logger = logging.getLogger(__name__)

MIGRATION_PAGE = "migration"

_LEGACY_ASSESSMENT_FIELDS = [
    "currentQuestion",
    "totalQuestions",
    "progress",
    "answers",
    "isCompleted",
    "completedAt",
    "result",
    "n8nResults",
    "lastActivity",
    "createdAt",
]


def _newest(docs: List[Dict[str, Any]], group_key: str, time_key: str):
    """Newest document per `group_key` value, by `time_key`."""
    newest: Dict[str, Dict[str, Any]] = {}
    for doc in docs:
        group = doc.get(group_key)
        if not group:
            continue
        current = newest.get(group)
        if current is None or (doc.get(time_key) or datetime.min) > (
            current.get(time_key) or datetime.min
        ):
            newest[group] = doc
    return newest


def legacy_module_fields(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Translate a legacy per-session module document into progress fields."""
    video = doc.get("videoProgress") or {}
    if doc.get("isCompleted") or video.get("isCompleted"):
        status, percent = ProgressStatus.completed, 100.0
    else:
        total = video.get("totalDuration") or 0
        watched = video.get("currentTime") or 0
        percent = round(min(watched / total, 1.0) * 100, 2) if total else 0.0
        started = percent > 0 or bool(doc.get("quizProgress"))
        status = ProgressStatus.in_progress if started else ProgressStatus.not_started

    fields = {
        "status": status.value,
        "progress": percent,
        "timeSpent": doc.get("totalTimeSpent", 0),
    }
    if doc.get("moduleTitle"):
        fields["moduleTitle"] = doc["moduleTitle"]
    if status != ProgressStatus.not_started and doc.get("createdAt"):
        fields["startedAt"] = doc["createdAt"]
    if status == ProgressStatus.completed and doc.get("completedAt"):
        fields["completedAt"] = doc["completedAt"]
    return fields


class LegacyDataMigration:
    def __init__(self, manager: "SessionManager"):
        self.manager = manager
        self.db = manager.db

    async def run(self, user_id: str, student_id: str) -> MigrationReport:
        progress = await self.manager.find_progress(user_id, student_id)
        if progress and progress.get("migratedAt"):
            logger.info(f"Data for student {student_id} already migrated; skipping")
            return MigrationReport(
                user_id=user_id,
                student_id=student_id,
                skipped=True,
                reason="already migrated",
                migrated_at=progress["migratedAt"],
            )

        student = await self.manager.students.find_one({"userId": user_id})
        if not student:
            logger.info(f"No student record for user {user_id}; nothing to migrate")
            return MigrationReport(
                user_id=user_id,
                student_id=student_id,
                skipped=True,
                reason="no student record",
            )

        now = datetime.now()
        report = MigrationReport(
            user_id=user_id, student_id=student_id, migrated_at=now
        )
        report.pages_copied = await self._copy_page_snapshots(user_id, student_id)
        report.modules_copied = await self._copy_module_sessions(
            user_id, student_id, now
        )
        report.assessments_copied = await self._copy_assessment_sessions(
            user_id, student_id
        )

        unique_id = student.get("uniqueId")
        summary = {
            "student": {
                "uniqueId": unique_id,
                "fullName": student.get("fullName"),
            },
            "careerPath": (
                await self.manager.load_career_path_data(unique_id)
                if unique_id
                else None
            ),
            "assessmentResults": (
                await self.manager.load_assessment_results(unique_id)
                if unique_id
                else None
            ),
            "migratedAt": now,
        }
        if await self._insert_page_if_absent(user_id, MIGRATION_PAGE, summary, now):
            report.pages_copied += 1

        await self.manager.progress.update_one(
            {"userId": user_id, "studentId": student_id},
            {
                "$set": {"migratedAt": now},
                "$setOnInsert": {
                    "createdAt": now,
                    "moduleProgress": [],
                    "pathProgress": [],
                },
            },
            upsert=True,
        )
        logger.info(
            f"Migrated existing data for user {user_id}: "
            f"{report.pages_copied} pages, {report.modules_copied} modules, "
            f"{report.assessments_copied} assessments"
        )
        return report

    async def _insert_page_if_absent(
        self,
        user_id: str,
        page: str,
        data: Any,
        updated_at: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        result = await self.manager.page_data.update_one(
            {"userId": user_id, "page": page},
            {
                "$setOnInsert": {
                    "data": data,
                    "metadata": metadata or {},
                    "updatedAt": updated_at,
                }
            },
            upsert=True,
        )
        return result.upserted_id is not None

    async def _copy_page_snapshots(self, user_id: str, student_id: str) -> int:
        legacy_sessions = await self.db[LEGACY_USER_SESSIONS].find(
            {"userId": user_id}
        ).to_list(None)
        if not legacy_sessions:
            return 0

        snapshots = []
        for session in legacy_sessions:
            snapshots.extend(session.get("sessionData") or [])

        copied = 0
        for page, snapshot in _newest(snapshots, "page", "timestamp").items():
            inserted = await self._insert_page_if_absent(
                user_id,
                page,
                snapshot.get("data"),
                snapshot.get("timestamp") or datetime.now(),
                snapshot.get("metadata"),
            )
            copied += int(inserted)

        # Carry the resume pointer over when no current session exists yet.
        if await self.manager.find_active_session(user_id) is None:
            latest = max(
                legacy_sessions,
                key=lambda s: s.get("lastActivity") or datetime.min,
            )
            limit = self.manager.navigation_history_limit
            await self.manager.insert_session(
                user_id,
                latest.get("studentId") or student_id,
                current_page=latest.get("currentPage") or "",
                navigation_history=list(latest.get("navigationHistory") or [])[
                    -limit:
                ],
            )
        return copied

    async def _copy_module_sessions(
        self, user_id: str, student_id: str, now: datetime
    ) -> int:
        legacy = await self.db[LEGACY_MODULE_SESSIONS].find(
            {"userId": user_id, "studentId": student_id}
        ).to_list(None)
        if not legacy:
            return 0

        doc = await self.manager.find_progress(user_id, student_id)
        items = (doc or {}).get("moduleProgress") or []
        copied = 0
        newest = _newest(legacy, "moduleId", "lastActivity")
        for module_id, module_doc in newest.items():
            if find_by_key(items, "moduleId", module_id) is not None:
                continue
            items, _ = upsert_by_key(
                items, "moduleId", module_id, legacy_module_fields(module_doc), now
            )
            copied += 1

        if copied:
            await self.manager.progress.update_one(
                {"userId": user_id, "studentId": student_id},
                {
                    "$set": {"moduleProgress": items, "updatedAt": now},
                    "$setOnInsert": {"createdAt": now},
                },
                upsert=True,
            )
        return copied

    async def _copy_assessment_sessions(self, user_id: str, student_id: str) -> int:
        legacy = await self.db[LEGACY_ASSESSMENT_SESSIONS].find(
            {"userId": user_id, "studentId": student_id}
        ).to_list(None)

        copied = 0
        for assessment_type, legacy_doc in _newest(
            legacy, "assessmentType", "lastActivity"
        ).items():
            fields = {
                name: legacy_doc[name]
                for name in _LEGACY_ASSESSMENT_FIELDS
                if name in legacy_doc
            }
            fields.setdefault("lastActivity", datetime.now())
            result = await self.manager.assessment_sessions.update_one(
                {
                    "userId": user_id,
                    "studentId": student_id,
                    "assessmentType": assessment_type,
                },
                {"$setOnInsert": fields},
                upsert=True,
            )
            copied += int(result.upserted_id is not None)
        return copied
