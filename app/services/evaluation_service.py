from typing import Dict, List, Optional, Union

from ..models.evaluation import Evaluation
from ..store.evaluation_store import EvaluationStore
import logging

logger = logging.getLogger(__name__)


class EvaluationService:
    """Weekly evaluation operations on top of an EvaluationStore"""

    def __init__(self, store: EvaluationStore):
        self.store = store

    async def list_all(self) -> List[Evaluation]:
        return await self.store.list_all()

    async def list_by_student(self, student_id: int) -> List[Evaluation]:
        return await self.store.list_by_student(student_id)

    async def upsert(
        self,
        week: Optional[str],
        student_id: Optional[int],
        student_name: Optional[str],
        evaluation_type: Optional[str],
        engagement: Optional[str] = None,
        behavior: Optional[int] = None,
        absent: Optional[bool] = None,
        date: Optional[str] = None,
    ) -> Dict[str, Union[int, bool]]:
        """
        Record the evaluation of a student for a week and evaluation type.

        A first write creates the row and returns {"id": .., "created": True}.
        Writing the same (week, student_id, evaluation_type) again overwrites
        engagement, behavior, absent and date and returns
        {"id": .., "updated": True}; the student name keeps its first value.
        Omitted fields are stored as null, absent as False.
        """
        record = {
            "week": week,
            "student_id": student_id,
            "student_name": student_name,
            "evaluation_type": evaluation_type,
            "engagement": engagement,
            "behavior": behavior,
            "absent": bool(absent),
            "date": date,
        }
        evaluation_id, created = await self.store.upsert(record)
        if created:
            logger.info(f"Created evaluation {evaluation_id} ({week}, student {student_id}, {evaluation_type})")
            return {"id": evaluation_id, "created": True}

        logger.info(f"Updated evaluation {evaluation_id} ({week}, student {student_id}, {evaluation_type})")
        return {"id": evaluation_id, "updated": True}

    async def delete(self, evaluation_id: int) -> Dict[str, int]:
        deleted = await self.store.delete_by_id(evaluation_id)
        if deleted:
            logger.info(f"Deleted evaluation {evaluation_id}")
        return {"deleted": deleted}
