"""
Session routes: per-user page snapshots, navigation and progress records.

Every handler acts on the authenticated caller; userId is never taken from
the request.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from taru.auth import get_current_user
from taru.dependencies import get_session_manager
from taru.models.requests import (
    AssessmentProgressRequest,
    CareerProgressRequest,
    CreateSessionRequest,
    MigrateRequest,
    ModuleProgressRequest,
    NavigationRequest,
    PageDataRequest,
    PathProgressRequest,
    StudentProgressRequest,
)
from taru.models.user import CurrentUser
from taru.services.session.manager import SessionManager

router = APIRouter(prefix="/api/session", tags=["session"])
logger = logging.getLogger(__name__)

User = Annotated[CurrentUser, Depends(get_current_user)]
Manager = Annotated[SessionManager, Depends(get_session_manager)]


async def _unique_id(
    manager: SessionManager, user: CurrentUser, unique_id: Optional[str]
) -> Optional[str]:
    if unique_id:
        return unique_id
    student = await manager.load_student_data(user.user_id)
    return student.get("uniqueId") if student else None


@router.post("/create")
async def create_session(
    user: User, manager: Manager, body: Optional[CreateSessionRequest] = None
):
    student_id = body.student_id if body else None
    session_id = await manager.create_session(user.user_id, student_id)
    return {"success": True, "sessionId": session_id}


@router.get("/get-active-session")
async def get_active_session(user: User, manager: Manager):
    session = await manager.get_active_session(user.user_id)
    return {
        "success": True,
        "session": session.model_dump(by_alias=True) if session else None,
    }


@router.post("/clear")
async def clear_session(user: User, manager: Manager):
    await manager.clear_session(user.user_id)
    return {"success": True}


@router.post("/update-navigation-history")
async def update_navigation_history(
    body: NavigationRequest, user: User, manager: Manager
):
    session = await manager.update_navigation_history(user.user_id, body.page)
    return {
        "success": True,
        "currentPage": session.current_page,
        "navigationHistory": session.navigation_history,
    }


@router.post("/save-page-data")
@router.post("/save")
async def save_page_data(body: PageDataRequest, user: User, manager: Manager):
    await manager.save_page_data(user.user_id, body.page, body.data, body.metadata)
    return {"success": True}


@router.get("/load-page-data")
@router.get("/load")
async def load_page_data(
    user: User, manager: Manager, page: Optional[str] = Query(None)
):
    data = await manager.load_page_data(user.user_id, page)
    return {"success": True, "data": data}


@router.post("/save-module-progress")
@router.post("/module")
async def save_module_progress(
    body: ModuleProgressRequest, user: User, manager: Manager
):
    entry = await manager.save_module_progress(
        user.user_id, body.student_id, body.module_id, body.progress
    )
    return {"success": True, "progress": entry}


@router.get("/load-module-progress")
@router.get("/module")
async def load_module_progress(
    user: User,
    manager: Manager,
    student_id: Optional[str] = Query(None, alias="studentId"),
    module_id: Optional[str] = Query(None, alias="moduleId"),
):
    entry = await manager.load_module_progress(user.user_id, student_id, module_id)
    return {"success": True, "data": entry}


@router.post("/save-path-progress")
async def save_path_progress(body: PathProgressRequest, user: User, manager: Manager):
    entry = await manager.save_path_progress(
        user.user_id, body.student_id, body.path_id, body.progress
    )
    return {"success": True, "progress": entry}


@router.get("/load-path-progress")
async def load_path_progress(
    user: User,
    manager: Manager,
    student_id: Optional[str] = Query(None, alias="studentId"),
    path_id: Optional[str] = Query(None, alias="pathId"),
):
    entry = await manager.load_path_progress(user.user_id, student_id, path_id)
    return {"success": True, "data": entry}


@router.post("/save-assessment-progress")
@router.post("/assessment")
async def save_assessment_progress(
    body: AssessmentProgressRequest, user: User, manager: Manager
):
    await manager.save_assessment_progress(
        user.user_id, body.student_id, body.assessment_type, body.progress
    )
    return {"success": True}


@router.get("/load-assessment-progress")
@router.get("/assessment")
async def load_assessment_progress(
    user: User,
    manager: Manager,
    student_id: Optional[str] = Query(None, alias="studentId"),
    assessment_type: Optional[str] = Query(None, alias="assessmentType"),
):
    data = await manager.load_assessment_progress(
        user.user_id, student_id, assessment_type
    )
    return {"success": True, "data": data}


@router.post("/save-career-progress")
@router.post("/career")
async def save_career_progress(
    body: CareerProgressRequest, user: User, manager: Manager
):
    await manager.save_career_progress(user.user_id, body.student_id, body.career_data)
    return {"success": True}


@router.get("/load-career-progress")
@router.get("/career")
async def load_career_progress(
    user: User,
    manager: Manager,
    student_id: Optional[str] = Query(None, alias="studentId"),
):
    data = await manager.load_career_progress(user.user_id, student_id)
    return {"success": True, "data": data}


@router.post("/save-student-progress")
async def save_student_progress(
    body: StudentProgressRequest, user: User, manager: Manager
):
    progress = await manager.save_student_progress(
        user.user_id, body.student_id, body.progress_data
    )
    return {"success": True, "progress": progress}


@router.get("/load-student-progress")
async def load_student_progress(
    user: User,
    manager: Manager,
    student_id: Optional[str] = Query(None, alias="studentId"),
):
    data = await manager.load_student_progress(user.user_id, student_id)
    return {"success": True, "data": data}


@router.get("/load-student-data")
async def load_student_data(user: User, manager: Manager):
    data = await manager.load_student_data(user.user_id)
    return {"success": True, "data": data}


@router.get("/load-career-path-data")
async def load_career_path_data(
    user: User,
    manager: Manager,
    unique_id: Optional[str] = Query(None, alias="uniqueId"),
):
    unique_id = await _unique_id(manager, user, unique_id)
    data = await manager.load_career_path_data(unique_id)
    return {"success": True, "data": data}


@router.get("/load-assessment-results")
async def load_assessment_results(
    user: User,
    manager: Manager,
    unique_id: Optional[str] = Query(None, alias="uniqueId"),
):
    unique_id = await _unique_id(manager, user, unique_id)
    data = await manager.load_assessment_results(unique_id)
    return {"success": True, "data": data}


@router.post("/migrate-existing-data")
async def migrate_existing_data(body: MigrateRequest, user: User, manager: Manager):
    report = await manager.migrate_existing_data(user.user_id, body.student_id)
    return {"success": True, "report": report.model_dump(by_alias=True)}
