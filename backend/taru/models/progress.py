from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from taru.models.common import CamelModel


class ProgressStatus(str, Enum):
    not_started = "not-started"
    in_progress = "in-progress"
    completed = "completed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [
    ProgressStatus.not_started,
    ProgressStatus.in_progress,
    ProgressStatus.completed,
]


class ProgressUpdate(CamelModel):
    """Fields merged into one moduleProgress/pathProgress element."""

    model_config = ConfigDict(extra="allow")

    status: Optional[ProgressStatus] = None
    progress: Optional[float] = Field(default=None, ge=0, le=100)
    xp_earned: Optional[int] = Field(default=None, ge=0)


class StudentProgressUpdate(CamelModel):
    """Top-level counters and pointers. Counters are totals, never deltas."""

    total_xp_earned: Optional[int] = Field(default=None, ge=0)
    total_modules_completed: Optional[int] = Field(default=None, ge=0)
    total_time_spent: Optional[int] = Field(
        default=None, ge=0, description="Minutes"
    )
    learning_streak: Optional[int] = Field(default=None, ge=0)
    badges_earned: Optional[List[Dict[str, Any]]] = None
    current_module: Optional[Dict[str, Any]] = None
    current_path: Optional[Dict[str, Any]] = None


class AssessmentProgressUpdate(CamelModel):
    model_config = ConfigDict(extra="allow")

    current_question: Optional[int] = Field(default=None, ge=0)
    total_questions: Optional[int] = Field(default=None, ge=0)
    progress: Optional[float] = Field(default=None, ge=0, le=100)
    answers: Optional[List[Dict[str, Any]]] = None
    is_completed: Optional[bool] = None
    result: Optional[Any] = None


class MigrationReport(CamelModel):
    user_id: str
    student_id: str
    skipped: bool = False
    reason: Optional[str] = None
    pages_copied: int = 0
    modules_copied: int = 0
    assessments_copied: int = 0
    migrated_at: Optional[datetime] = None
