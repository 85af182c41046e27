import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from taru.errors import ValidationError, require
from taru.services.database import (
    ASSESSMENT_RESPONSES,
    DatabaseClient,
    clean_document,
    store_operation,
)

logger = logging.getLogger(__name__)


class AssessmentStore:
    """Answers and results, at most one record per (uniqueId, assessmentType)."""

    def __init__(self, db_client: DatabaseClient):
        self.responses = db_client[ASSESSMENT_RESPONSES]

    def _key(self, unique_id: str, assessment_type: str) -> Dict[str, str]:
        return {"uniqueId": unique_id, "assessmentType": assessment_type}

    @store_operation
    async def store_answers(
        self,
        unique_id: str,
        assessment_type: str,
        collected_answers: List[Dict[str, Any]],
        generated_questions: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        require(
            unique_id=unique_id,
            assessment_type=assessment_type,
            collected_answers=collected_answers,
        )
        if not isinstance(collected_answers, list):
            raise ValidationError("collectedAnswers must be a list")

        now = datetime.now()
        fields = {"collectedAnswers": collected_answers, "updatedAt": now}
        if generated_questions is not None:
            fields["generatedQuestions"] = generated_questions

        await self.responses.update_one(
            self._key(unique_id, assessment_type),
            {
                "$set": fields,
                "$setOnInsert": {"createdAt": now, "isCompleted": False},
            },
            upsert=True,
        )
        logger.info(
            f"Stored {len(collected_answers)} {assessment_type} answers for {unique_id}"
        )
        return clean_document(
            await self.responses.find_one(self._key(unique_id, assessment_type))
        )

    @store_operation
    async def save_result(
        self, unique_id: str, assessment_type: str, result: Dict[str, Any]
    ) -> Dict[str, Any]:
        require(unique_id=unique_id, assessment_type=assessment_type, result=result)
        now = datetime.now()
        await self.responses.update_one(
            self._key(unique_id, assessment_type),
            {
                "$set": {"result": result, "isCompleted": True, "updatedAt": now},
                "$min": {"completedAt": now},
                "$setOnInsert": {"createdAt": now},
            },
            upsert=True,
        )
        return clean_document(
            await self.responses.find_one(self._key(unique_id, assessment_type))
        )

    @store_operation
    async def get_response(
        self, unique_id: str, assessment_type: str
    ) -> Optional[Dict[str, Any]]:
        require(unique_id=unique_id, assessment_type=assessment_type)
        doc = await self.responses.find_one(self._key(unique_id, assessment_type))
        return clean_document(doc) if doc else None
