from fastapi import Request

from taru.config import Settings
from taru.services.assessments import AssessmentStore
from taru.services.learning_paths import LearningPathStore
from taru.services.session.manager import SessionManager
from taru.services.webhook import AutomationWebhookClient


def _service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise RuntimeError(f"{name} not initialized")
    return service


async def get_app_settings(request: Request) -> Settings:
    return _service(request, "settings")


async def get_session_manager(request: Request) -> SessionManager:
    return _service(request, "session_manager")


async def get_learning_path_store(request: Request) -> LearningPathStore:
    return _service(request, "learning_path_store")


async def get_assessment_store(request: Request) -> AssessmentStore:
    return _service(request, "assessment_store")


async def get_webhook_client(request: Request) -> AutomationWebhookClient:
    return _service(request, "webhook_client")
