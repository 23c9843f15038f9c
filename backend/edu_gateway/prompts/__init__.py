from edu_gateway.prompts.analysis import build_analysis_request
from edu_gateway.prompts.grading import build_grading_request
from edu_gateway.prompts.lesson_plan import build_lesson_plan_request
from edu_gateway.prompts.quiz import build_quiz_request
from edu_gateway.prompts.slides import build_slides_request

__all__ = [
    "build_analysis_request",
    "build_grading_request",
    "build_lesson_plan_request",
    "build_quiz_request",
    "build_slides_request",
]
