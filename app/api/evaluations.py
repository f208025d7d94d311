from fastapi import APIRouter, Depends, Request
from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from ..services.evaluation_service import EvaluationService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/evaluations", tags=["Evaluations"])


# Request/Response Models
class EvaluationResponse(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )

    id: int
    week: str
    student_id: int
    student_name: str
    evaluation_type: str
    engagement: Optional[str] = None
    behavior: Optional[int] = None
    absent: bool
    date: str


class EvaluationUpsert(BaseModel):
    # TEXT columns take numbers as their string form
    model_config = ConfigDict(coerce_numbers_to_str=True)

    # Columns are NOT NULL in the table, a missing value is reported by the database.
    # French keys are still sent by the existing front-end.
    week: Optional[str] = Field(default=None, validation_alias=AliasChoices("week", "semaine"))
    student_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("studentId", "student_id", "eleveId")
    )
    student_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("studentName", "student_name", "eleveNom")
    )
    evaluation_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("evaluationType", "evaluation_type", "type")
    )
    engagement: Optional[str] = None
    behavior: Optional[int] = Field(default=None, validation_alias=AliasChoices("behavior", "comportement"))
    absent: Optional[bool] = None
    date: Optional[str] = None


def get_evaluation_service(request: Request) -> EvaluationService:
    return EvaluationService(request.app.state.store)


@router.get("", response_model=List[EvaluationResponse])
@router.get("/", response_model=List[EvaluationResponse], include_in_schema=False)
async def list_evaluations(service: EvaluationService = Depends(get_evaluation_service)):
    """All evaluations, newest week first"""
    return await service.list_all()


@router.get("/eleve/{student_id}", response_model=List[EvaluationResponse])
async def list_student_evaluations(student_id: int,
                                   service: EvaluationService = Depends(get_evaluation_service)):
    return await service.list_by_student(student_id)


@router.post("")
@router.post("/", include_in_schema=False)
async def upsert_evaluation(evaluation: EvaluationUpsert,
                            service: EvaluationService = Depends(get_evaluation_service)):
    """Create the evaluation, or update it when week, student and type already exist"""
    return await service.upsert(
        week=evaluation.week,
        student_id=evaluation.student_id,
        student_name=evaluation.student_name,
        evaluation_type=evaluation.evaluation_type,
        engagement=evaluation.engagement,
        behavior=evaluation.behavior,
        absent=evaluation.absent,
        date=evaluation.date,
    )


@router.delete("/{evaluation_id}")
async def delete_evaluation(evaluation_id: int,
                            service: EvaluationService = Depends(get_evaluation_service)):
    return await service.delete(evaluation_id)
