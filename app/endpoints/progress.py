from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.schemas.exam import StudentExamSummary
from app.schemas.progress import StudentProgress, RankingEntry
from app.schemas.response import APIResponse
from app.schemas.user import UserContext
from app.services.progress import progress_service
from app.utils import deps

router = APIRouter()


@router.get("/me", response_model=APIResponse[StudentProgress])
async def get_my_progress(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_context)
):
    progress = progress_service.get_for_user(db, user_id=context.user_id, current_user_context=context)
    return APIResponse(message="Progress retrieved successfully", data=progress)


@router.get("/students/{user_id}", response_model=APIResponse[StudentProgress])
async def get_student_progress(
    *,
    db: Session = Depends(deps.get_db),
    user_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    progress = progress_service.get_for_user(db, user_id=user_id, current_user_context=context)
    return APIResponse(message="Progress retrieved successfully", data=progress)


@router.get("/students/{user_id}/exams", response_model=APIResponse[List[StudentExamSummary]])
async def get_student_exams(
    *,
    db: Session = Depends(deps.get_db),
    user_id: int,
    context: UserContext = Depends(deps.get_current_user_context),
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100)
):
    exams = progress_service.list_student_exams(db, user_id=user_id, current_user_context=context,
                                                skip=skip, limit=limit)
    return APIResponse(message="Student exams retrieved successfully", data=exams)


@router.get("/attention", response_model=APIResponse[List[StudentProgress]])
async def get_students_needing_attention(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_context)
):
    students = progress_service.list_needing_attention(db, current_user_context=context)
    return APIResponse(message="Students needing attention retrieved successfully", data=students)


@router.get("/ranking", response_model=APIResponse[List[RankingEntry]])
async def get_ranking(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_context),
    limit: int = Query(10, ge=1, le=100)
):
    ranking = progress_service.ranking(db, current_user_context=context, limit=limit)
    return APIResponse(message="Ranking retrieved successfully", data=ranking)
