"""Classroom features built on the generation client.

Each feature returns a TaskOutcome and never raises a gateway error to its
caller. When no usable model output exists, the outcome carries the feature's
safe default (None for single objects, [] for lists) with ``ok=False``:

    grading      -> None
    lesson plan  -> None
    slides       -> []
    quiz         -> []
    analysis     -> "" (partial text is kept when the stream was cut short)
"""

from typing import Any, List, Optional, Sequence, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from edu_gateway.errors import ExtractionFailure, GatewayError
from edu_gateway.models import (
    GradingSuggestion,
    LessonPlan,
    PresentationSlide,
    QuizQuestion,
    Subject,
    TaskOutcome,
)
from edu_gateway.prompts import (
    build_analysis_request,
    build_grading_request,
    build_lesson_plan_request,
    build_quiz_request,
    build_slides_request,
)
from edu_gateway.providers.base import GenerationRequest
from edu_gateway.services.client import GenerationClient, GenerationResult

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)


async def _generate(
    client: GenerationClient, req: GenerationRequest, feature: str
) -> GenerationResult | str:
    """Return the result, or an error message for the outcome."""
    try:
        return await client.generate(req)
    except ExtractionFailure as exc:
        logger.warning("feature_unparseable_output", feature=feature, kind=exc.error.kind.value)
        return f"unparseable model output ({exc.error.kind.value})"
    except GatewayError as exc:
        logger.error("feature_generation_failed", feature=feature, error=str(exc))
        return f"generation failed: {exc}"


async def _one(
    client: GenerationClient, req: GenerationRequest, model: Type[M], feature: str
) -> TaskOutcome[Optional[M]]:
    result = await _generate(client, req, feature)
    if isinstance(result, str):
        return TaskOutcome[Optional[model]](ok=False, value=None, error=result)
    data = result.data
    # some models wrap a single object in a one-element list
    if isinstance(data, list) and len(data) == 1:
        data = data[0]
    try:
        value = model.model_validate(data)
    except ValidationError as exc:
        logger.warning("feature_invalid_shape", feature=feature, errors=exc.error_count())
        return TaskOutcome[Optional[model]](
            ok=False, value=None, error=f"model output has the wrong shape for {feature}"
        )
    return TaskOutcome[Optional[model]](
        ok=True, value=value, complete=result.complete, error=result.error, model=result.model
    )


async def _many(
    client: GenerationClient, req: GenerationRequest, model: Type[M], feature: str
) -> TaskOutcome[List[M]]:
    result = await _generate(client, req, feature)
    if isinstance(result, str):
        return TaskOutcome[List[model]](ok=False, value=[], error=result)
    items: List[Any] = result.data if isinstance(result.data, list) else [result.data]
    valid: List[M] = []
    for item in items:
        try:
            valid.append(model.model_validate(item))
        except ValidationError:
            continue
    if len(valid) < len(items):
        logger.warning("feature_items_dropped", feature=feature, dropped=len(items) - len(valid))
    if not valid:
        return TaskOutcome[List[model]](
            ok=False, value=[], error=f"model output held no valid {feature} items"
        )
    return TaskOutcome[List[model]](
        ok=True, value=valid, complete=result.complete, error=result.error, model=result.model
    )


async def grade_homework(
    client: GenerationClient, subject: Subject, student_name: str, content: str
) -> TaskOutcome[Optional[GradingSuggestion]]:
    req = build_grading_request(subject, student_name, content)
    return await _one(client, req, GradingSuggestion, "grading")


async def plan_lesson(
    client: GenerationClient,
    topic: str,
    subject: Subject,
    textbook_context: Optional[str] = None,
) -> TaskOutcome[Optional[LessonPlan]]:
    req = build_lesson_plan_request(topic, subject, textbook_context)
    return await _one(client, req, LessonPlan, "lesson_plan")


async def design_slides(
    client: GenerationClient, topic: str, objectives: Sequence[str], subject: Subject
) -> TaskOutcome[List[PresentationSlide]]:
    req = build_slides_request(topic, objectives, subject)
    return await _many(client, req, PresentationSlide, "slides")


async def generate_quiz(
    client: GenerationClient, topic: str, key_points: Sequence[str]
) -> TaskOutcome[List[QuizQuestion]]:
    req = build_quiz_request(topic, key_points)
    return await _many(client, req, QuizQuestion, "quiz")


async def analyze_student(
    client: GenerationClient, student_name: str, subject: Subject, recent_scores: Sequence[int]
) -> TaskOutcome[str]:
    req = build_analysis_request(student_name, subject, recent_scores)
    result = await _generate(client, req, "analysis")
    if isinstance(result, str):
        return TaskOutcome[str](ok=False, value="", error=result)
    if not result.text.strip():
        return TaskOutcome[str](ok=False, value="", error="model returned no text", model=result.model)
    return TaskOutcome[str](
        ok=True,
        value=result.text,
        complete=result.complete,
        error=result.error,
        model=result.model,
    )
