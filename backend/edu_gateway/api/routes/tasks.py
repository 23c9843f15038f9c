from typing import List, Optional

from fastapi import APIRouter, Depends

from edu_gateway.api.deps import ClientDep, enforce_rate_limit
from edu_gateway.models import (
    GradingSuggestion,
    LessonPlan,
    PresentationSlide,
    QuizQuestion,
    TaskOutcome,
)
from edu_gateway.schemas import (
    AnalysisTaskRequest,
    GradingTaskRequest,
    LessonPlanTaskRequest,
    QuizTaskRequest,
    SlidesTaskRequest,
)
from edu_gateway.services import teaching

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/grading", response_model=TaskOutcome[Optional[GradingSuggestion]])
async def grading(payload: GradingTaskRequest, client: ClientDep):
    """
    Suggest a score and a comment for one homework submission.
    """
    return await teaching.grade_homework(
        client, payload.subject, payload.student_name, payload.content
    )


@router.post("/analysis", response_model=TaskOutcome[str])
async def analysis(payload: AnalysisTaskRequest, client: ClientDep):
    return await teaching.analyze_student(
        client, payload.student_name, payload.subject, payload.recent_scores
    )


@router.post("/lesson-plan", response_model=TaskOutcome[Optional[LessonPlan]])
async def lesson_plan(payload: LessonPlanTaskRequest, client: ClientDep):
    return await teaching.plan_lesson(
        client, payload.topic, payload.subject, payload.textbook_context
    )


@router.post("/slides", response_model=TaskOutcome[List[PresentationSlide]])
async def slides(payload: SlidesTaskRequest, client: ClientDep):
    return await teaching.design_slides(client, payload.topic, payload.objectives, payload.subject)


@router.post("/quiz", response_model=TaskOutcome[List[QuizQuestion]])
async def quiz(payload: QuizTaskRequest, client: ClientDep):
    return await teaching.generate_quiz(client, payload.topic, payload.key_points)
