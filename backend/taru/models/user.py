from enum import Enum
from typing import Optional

from taru.models.common import CamelModel


class Role(str, Enum):
    student = "student"
    parent = "parent"
    teacher = "teacher"
    organization = "organization"
    admin = "admin"
    platform_super_admin = "platform_super_admin"


class CurrentUser(CamelModel):
    """Claims carried by the auth-token cookie."""

    user_id: str
    email: str
    role: Role
    first_time_login: bool = False
    requires_onboarding: bool = False
    requires_assessment: bool = False
    full_name: Optional[str] = None
