import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from taru.errors import ValidationError, require
from taru.models.learning_path import (
    DEFAULT_FINAL_TIP,
    DEFAULT_GREETING,
    LearningPathOutput,
    LearningPathResponse,
)
from taru.services.database import (
    LEARNING_PATH_RESPONSES,
    DatabaseClient,
    store_operation,
)

logger = logging.getLogger(__name__)


def _text(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value.strip() else default


def _objects(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def normalize_output(raw: Any) -> LearningPathOutput:
    """Coerce an externally produced payload into the fixed output schema."""
    if not isinstance(raw, dict):
        raise ValidationError("output must be an object")

    modules = []
    for module in _objects(raw.get("learningPath")):
        submodules = []
        for sub in _objects(module.get("submodules")):
            submodules.append(
                {
                    "title": _text(sub.get("title"), "Submodule"),
                    "description": _text(
                        sub.get("description"), "Detailed learning content"
                    ),
                    "chapters": [
                        {"title": _text(chapter.get("title"), "Chapter")}
                        for chapter in _objects(sub.get("chapters"))
                    ],
                }
            )
        modules.append(
            {
                "module": _text(module.get("module"), "Module"),
                "description": _text(
                    module.get("description"), "Learn essential skills and knowledge"
                ),
                "submodules": submodules,
            }
        )

    return LearningPathOutput(
        greeting=_text(raw.get("greeting"), DEFAULT_GREETING),
        overview=_strings(raw.get("overview")),
        time_required=_text(raw.get("timeRequired"), "2 Years"),
        focus_areas=_strings(raw.get("focusAreas")),
        learning_path=modules,
        final_tip=_text(raw.get("finalTip"), DEFAULT_FINAL_TIP),
    )


def career_key(career: Optional[str], greeting: str) -> str:
    """Match key for a career: its name, else the greeting up to the first comma."""
    source = career if career and career.strip() else greeting.split(",")[0]
    return source.strip().lower()


def _to_response(doc: Dict[str, Any]) -> LearningPathResponse:
    return LearningPathResponse(
        id=str(doc["_id"]),
        uniqueid=doc["uniqueid"],
        career=doc.get("career"),
        output=LearningPathOutput.model_validate(doc["output"]),
        created_at=doc.get("createdAt"),
        updated_at=doc.get("updatedAt"),
    )


class LearningPathStore:
    """Recommendation payloads per student, one per (uniqueid, career)."""

    def __init__(self, db_client: DatabaseClient):
        self.responses = db_client[LEARNING_PATH_RESPONSES]

    @store_operation
    async def save_or_update(
        self, unique_id: str, output: Any, career: Optional[str] = None
    ) -> Tuple[LearningPathResponse, bool]:
        """Update the matching response in place, or create it.

        Returns the stored response and whether it was newly created.
        """
        require(unique_id=unique_id, output=output)
        normalized = normalize_output(output)
        key = career_key(career, normalized.greeting)
        now = datetime.now()

        fields = {"output": normalized.model_dump(by_alias=True), "updatedAt": now}
        if career and career.strip():
            fields["career"] = career.strip()

        result = await self.responses.update_one(
            {"uniqueid": unique_id, "careerKey": key},
            {"$set": fields, "$setOnInsert": {"createdAt": now}},
            upsert=True,
        )
        created = result.upserted_id is not None
        doc = await self.responses.find_one({"uniqueid": unique_id, "careerKey": key})
        logger.info(
            f"{'Saved' if created else 'Updated'} learning path response "
            f"'{key}' for {unique_id}"
        )
        return _to_response(doc), created

    @store_operation
    async def list_responses(self, unique_id: str) -> List[LearningPathResponse]:
        require(unique_id=unique_id)
        docs = (
            await self.responses.find({"uniqueid": unique_id})
            .sort("updatedAt", -1)
            .to_list(None)
        )
        return [_to_response(doc) for doc in docs]

    @store_operation
    async def count_responses(self, unique_id: str) -> int:
        require(unique_id=unique_id)
        return await self.responses.count_documents({"uniqueid": unique_id})
