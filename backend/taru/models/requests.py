from typing import Any, Dict, List, Optional

from taru.models.common import CamelModel

# Identifiers are optional here so that missing ones reach the services,
# which reject them with a 400 before touching the store.


class CreateSessionRequest(CamelModel):
    student_id: Optional[str] = None


class PageDataRequest(CamelModel):
    page: Optional[str] = None
    data: Any = None
    metadata: Optional[Dict[str, Any]] = None


class NavigationRequest(CamelModel):
    page: Optional[str] = None


class ModuleProgressRequest(CamelModel):
    student_id: Optional[str] = None
    module_id: Optional[str] = None
    progress: Optional[Dict[str, Any]] = None


class PathProgressRequest(CamelModel):
    student_id: Optional[str] = None
    path_id: Optional[str] = None
    progress: Optional[Dict[str, Any]] = None


class AssessmentProgressRequest(CamelModel):
    student_id: Optional[str] = None
    assessment_type: Optional[str] = None
    progress: Optional[Dict[str, Any]] = None


class CareerProgressRequest(CamelModel):
    student_id: Optional[str] = None
    career_data: Optional[Dict[str, Any]] = None


class StudentProgressRequest(CamelModel):
    student_id: Optional[str] = None
    progress_data: Optional[Dict[str, Any]] = None


class MigrateRequest(CamelModel):
    student_id: Optional[str] = None


class LearningPathSaveRequest(CamelModel):
    career_path: Optional[str] = None
    career_details: Optional[Dict[str, Any]] = None


class LearningPathWebhookRequest(CamelModel):
    uniqueid: Optional[str] = None
    career: Optional[str] = None
    output: Optional[Dict[str, Any]] = None


class GenerateLearningPathRequest(CamelModel):
    career_path: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class StoreAnswersRequest(CamelModel):
    assessment_type: str = "diagnostic"
    collected_answers: Optional[List[Dict[str, Any]]] = None
    generated_questions: Optional[List[Dict[str, Any]]] = None


class AssessmentResultRequest(CamelModel):
    assessment_type: str = "diagnostic"
    result: Optional[Dict[str, Any]] = None
