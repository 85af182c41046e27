from typing import Annotated

from fastapi import APIRouter, Depends

from taru.auth import get_current_user
from taru.dependencies import get_session_manager
from taru.models.user import CurrentUser
from taru.services.session.manager import SessionManager

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/me")
async def me(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    manager: Annotated[SessionManager, Depends(get_session_manager)],
):
    return {
        "success": True,
        "user": user.model_dump(by_alias=True),
        "record": await manager.load_user(user.user_id),
    }
