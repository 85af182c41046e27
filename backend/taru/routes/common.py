from typing import Annotated

from fastapi import Depends

from taru.auth import require_roles
from taru.dependencies import get_session_manager
from taru.errors import NotFoundError
from taru.models.user import CurrentUser, Role
from taru.services.session.manager import SessionManager

student_only = require_roles(Role.student)


async def get_student_unique_id(
    user: Annotated[CurrentUser, Depends(student_only)],
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> str:
    """The calling student's platform-wide uniqueId."""
    student = await manager.load_student_data(user.user_id)
    if not student or not student.get("uniqueId"):
        raise NotFoundError("Student not found")
    return student["uniqueId"]
