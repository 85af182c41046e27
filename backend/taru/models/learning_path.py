from datetime import datetime
from typing import List, Optional

from pydantic import Field

from taru.models.common import CamelModel

DEFAULT_GREETING = (
    "You're on a thrilling path! As a professional, you'll blend creativity "
    "with technology to push the boundaries of innovation."
)
DEFAULT_FINAL_TIP = (
    "Stay curious and keep experimenting with different techniques and "
    "technologies. Innovation is at the heart of success!"
)


class Chapter(CamelModel):
    title: str = "Chapter"


class Submodule(CamelModel):
    title: str = "Submodule"
    description: str = "Detailed learning content"
    chapters: List[Chapter] = Field(default_factory=list)


class LearningPathModule(CamelModel):
    module: str = "Module"
    description: str = "Learn essential skills and knowledge"
    submodules: List[Submodule] = Field(default_factory=list)


class LearningPathOutput(CamelModel):
    """Fixed output schema shared with the UI and the automation tool."""

    greeting: str = DEFAULT_GREETING
    overview: List[str] = Field(default_factory=list)
    time_required: str = "2 Years"
    focus_areas: List[str] = Field(default_factory=list)
    learning_path: List[LearningPathModule] = Field(default_factory=list)
    final_tip: str = DEFAULT_FINAL_TIP


class LearningPathResponse(CamelModel):
    id: Optional[str] = None
    uniqueid: str
    career: Optional[str] = None
    output: LearningPathOutput
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
