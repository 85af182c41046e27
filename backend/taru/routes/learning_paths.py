import logging
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends

from taru.dependencies import get_learning_path_store, get_webhook_client
from taru.models.requests import (
    GenerateLearningPathRequest,
    LearningPathSaveRequest,
    LearningPathWebhookRequest,
)
from taru.routes.common import get_student_unique_id
from taru.services.learning_paths import LearningPathStore
from taru.services.webhook import AutomationWebhookClient

router = APIRouter(prefix="/api/learning-paths", tags=["learning-paths"])
logger = logging.getLogger(__name__)

UniqueId = Annotated[str, Depends(get_student_unique_id)]
Store = Annotated[LearningPathStore, Depends(get_learning_path_store)]
Webhook = Annotated[AutomationWebhookClient, Depends(get_webhook_client)]


def _extract_output(data: Any) -> Optional[dict]:
    # The automation tool answers either with an object or a one-item list.
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict) and isinstance(data.get("output"), dict):
        return data["output"]
    return None


@router.post("/save")
async def save_learning_path(
    body: LearningPathSaveRequest, unique_id: UniqueId, store: Store
):
    response, created = await store.save_or_update(
        unique_id, body.career_details, career=body.career_path
    )
    return {
        "success": True,
        "created": created,
        "learningPath": response.model_dump(by_alias=True),
    }


@router.get("/responses")
async def list_learning_paths(unique_id: UniqueId, store: Store):
    responses = await store.list_responses(unique_id)
    return {
        "success": True,
        "count": len(responses),
        "responses": [response.model_dump(by_alias=True) for response in responses],
    }


@router.post("/generate")
async def generate_learning_path(
    body: GenerateLearningPathRequest,
    unique_id: UniqueId,
    store: Store,
    webhook: Webhook,
):
    result = await webhook.trigger(
        {
            "action": "generate_learning_path",
            "uniqueid": unique_id,
            "career": body.career_path,
            "details": body.details or {},
        }
    )
    if not result.ok:
        return {"success": False, "error": result.error}

    output = _extract_output(result.data)
    if output is None:
        logger.warning(f"Webhook answered without a learning path for {unique_id}")
        return {"success": False, "error": "No learning path generated"}

    response, created = await store.save_or_update(
        unique_id, output, career=body.career_path
    )
    return {
        "success": True,
        "created": created,
        "learningPath": response.model_dump(by_alias=True),
    }


@router.post("/webhook")
async def receive_learning_path(body: LearningPathWebhookRequest, store: Store):
    """Inbound delivery from the automation tool; carries no user session."""
    response, created = await store.save_or_update(
        body.uniqueid, body.output, career=body.career
    )
    return {"success": True, "created": created, "id": response.id}
