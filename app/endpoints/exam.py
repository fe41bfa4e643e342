from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.core.constants import ExamStatusEnum
from app.core.tasks import BackgroundTaskRunner
from app.schemas.exam import Exam, ExamCreate, ExamStatus
from app.schemas.exam_result import ExamResult
from app.schemas.question import Question
from app.schemas.response import APIResponse, TaskAccepted
from app.schemas.student_answer import ExamSubmission
from app.schemas.user import UserContext
from app.services.exam_session import exam_session_service
from app.services.grading import grading_engine
from app.services.question_generation import QuestionGenerationStage
from app.utils import deps

router = APIRouter()


@router.post("/", response_model=APIResponse[TaskAccepted], status_code=status.HTTP_202_ACCEPTED)
async def create_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_in: ExamCreate,
    context: UserContext = Depends(deps.get_current_user_context),
    runner: BackgroundTaskRunner = Depends(deps.get_task_runner),
    stage: QuestionGenerationStage = Depends(deps.get_generation_stage)
):
    new_exam = exam_session_service.create_exam(db, exam_in=exam_in, current_user_context=context)
    db.commit()
    runner.spawn(stage.generate(new_exam.id, new_exam.total_questions), name=f"generate-exam-{new_exam.id}")
    return APIResponse(
        message="Exam generation started",
        data=TaskAccepted(id=new_exam.id, status=new_exam.status.value, poll_url=f"/exams/{new_exam.id}/status"),
    )


@router.get("/", response_model=APIResponse[List[Exam]])
async def get_all_exams(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_context),
    skip: int = 0,
    limit: int = 100,
    exam_status: Optional[ExamStatusEnum] = Query(None, alias="status")
):
    exams = exam_session_service.list_exams(db, current_user_context=context, status=exam_status, skip=skip, limit=limit)
    return APIResponse(message="Exams retrieved successfully", data=[Exam.model_validate(e) for e in exams])


@router.get("/{exam_id}", response_model=APIResponse[Exam])
async def get_exam(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    exam = exam_session_service.get_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam retrieved successfully", data=Exam.model_validate(exam))


@router.get("/{exam_id}/status", response_model=APIResponse[ExamStatus])
async def get_exam_status(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    exam = exam_session_service.get_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam status retrieved successfully", data=ExamStatus.model_validate(exam))


@router.get("/{exam_id}/questions", response_model=APIResponse[List[Question]])
async def get_exam_questions(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    questions = exam_session_service.get_questions(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Questions retrieved successfully", data=questions)


@router.post("/{exam_id}/start", response_model=APIResponse[Exam])
async def start_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    exam = exam_session_service.start(db, exam_id=exam_id, current_user_context=context)
    db.commit()
    return APIResponse(message="Exam started successfully", data=Exam.model_validate(exam))


@router.post("/{exam_id}/submit", response_model=APIResponse[ExamResult])
async def submit_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    submission: ExamSubmission,
    context: UserContext = Depends(deps.get_current_user_context)
):
    result = grading_engine.submit(db, exam_id=exam_id, submission=submission, current_user_context=context)
    db.commit()
    return APIResponse(message="Exam submitted and graded successfully", data=ExamResult.model_validate(result))


@router.get("/{exam_id}/result", response_model=APIResponse[ExamResult])
async def get_exam_result(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    result = grading_engine.get_result(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Result retrieved successfully", data=ExamResult.model_validate(result))
