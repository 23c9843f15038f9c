import pytest

from edu_gateway.models import Subject
from edu_gateway.prompts import (
    build_analysis_request,
    build_grading_request,
    build_lesson_plan_request,
    build_quiz_request,
    build_slides_request,
)
from edu_gateway.prompts.lesson_plan import DEFAULT_TEXTBOOK
from edu_gateway.prompts.quiz import QUIZ_SIZE
from edu_gateway.providers.base import GenerationMode

BUILDERS = [
    lambda: build_grading_request(Subject.MATH, "小明", "3 + 5 = 8"),
    lambda: build_analysis_request("小红", Subject.ENGLISH, [88, 92, 75]),
    lambda: build_lesson_plan_request("分数的初步认识", Subject.MATH),
    lambda: build_slides_request("春晓", ["背诵古诗", "体会意境"], Subject.CHINESE),
    lambda: build_quiz_request("分数的初步认识", ["认识几分之一", "比较大小"]),
]


@pytest.mark.parametrize("build", BUILDERS)
def test_last_message_is_from_user(build):
    req = build()

    assert req.messages[-1].role == "user"
    assert req.model is None


@pytest.mark.parametrize("build", BUILDERS)
def test_builders_are_deterministic(build):
    assert build() == build()


def test_modes():
    assert BUILDERS[0]().mode is GenerationMode.STRUCTURED
    assert BUILDERS[1]().mode is GenerationMode.FREE_TEXT
    assert all(build().mode is GenerationMode.STRUCTURED for build in BUILDERS[2:])


def test_grading_prompt_names_student_and_subject():
    req = build_grading_request(Subject.CHINESE, "小明", "春眠不觉晓")

    assert "语文" in req.messages[0].content
    assert "小明" in req.messages[-1].content
    assert "春眠不觉晓" in req.messages[-1].content


def test_analysis_without_scores():
    req = build_analysis_request("小红", Subject.MATH, [])

    assert "暂无成绩" in req.messages[-1].content


def test_lesson_plan_falls_back_to_default_textbook():
    assert DEFAULT_TEXTBOOK in build_lesson_plan_request("乘法口诀", Subject.MATH).messages[-1].content
    assert "人教版" in build_lesson_plan_request("乘法口诀", Subject.MATH, "人教版").messages[-1].content


def test_quiz_prompt_has_size_and_key_points():
    req = build_quiz_request("分数", ["通分", "约分"])

    assert len(req.messages) == 1
    assert f"{QUIZ_SIZE} 道题目" in req.messages[0].content
    assert "通分，约分" in req.messages[0].content
