from typing import Annotated

from fastapi import APIRouter, Depends, Query

from taru.dependencies import get_assessment_store
from taru.models.requests import AssessmentResultRequest, StoreAnswersRequest
from taru.routes.common import get_student_unique_id
from taru.services.assessments import AssessmentStore

router = APIRouter(prefix="/api/assessment", tags=["assessment"])

UniqueId = Annotated[str, Depends(get_student_unique_id)]
Store = Annotated[AssessmentStore, Depends(get_assessment_store)]


@router.post("/store-answers")
async def store_answers(body: StoreAnswersRequest, unique_id: UniqueId, store: Store):
    response = await store.store_answers(
        unique_id,
        body.assessment_type,
        body.collected_answers,
        body.generated_questions,
    )
    return {"success": True, "response": response}


@router.get("/result")
async def get_result(
    unique_id: UniqueId,
    store: Store,
    assessment_type: str = Query("diagnostic", alias="assessmentType"),
):
    response = await store.get_response(unique_id, assessment_type)
    return {
        "success": True,
        "isCompleted": bool(response and response.get("isCompleted")),
        "result": response.get("result") if response else None,
    }


@router.post("/result")
async def save_result(
    body: AssessmentResultRequest, unique_id: UniqueId, store: Store
):
    response = await store.save_result(unique_id, body.assessment_type, body.result)
    return {"success": True, "response": response}
