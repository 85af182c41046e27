from datetime import datetime
from typing import List, Optional

from pydantic import Field

from taru.models.common import CamelModel


class UserSession(CamelModel):
    """UX continuation pointer; not a security session."""

    session_id: str
    user_id: str
    student_id: Optional[str] = None
    current_page: str = ""
    navigation_history: List[str] = Field(default_factory=list)
    is_active: bool = True
    last_activity: datetime = Field(default_factory=datetime.now)
    created_at: datetime = Field(default_factory=datetime.now)
