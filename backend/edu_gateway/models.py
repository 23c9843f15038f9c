from enum import Enum
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class Subject(str, Enum):
    MATH = "数学"
    ENGLISH = "英语"
    CHINESE = "语文"


class CamelModel(BaseModel):
    """Models filled from model output, which uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Structured results

class GradingSuggestion(CamelModel):
    score: int = Field(ge=0, le=100)
    feedback: str


class TeachingStep(CamelModel):
    phase: str
    duration: str
    activity: str


class LessonPlan(CamelModel):
    topic: str
    textbook_context: Optional[str] = None
    objectives: List[str] = Field(default_factory=list)
    key_points: List[str] = Field(default_factory=list)
    process: List[TeachingStep] = Field(default_factory=list)
    blackboard: List[str] = Field(default_factory=list)
    homework: str = ""


class PresentationSlide(CamelModel):
    layout: Literal["TITLE", "SECTION", "CONTENT", "TWO_COLUMN", "CONCLUSION"]
    title: str
    subtitle: Optional[str] = None
    content: List[str] = Field(default_factory=list)
    notes: str = ""
    visual_prompt: Optional[str] = None


class QuizQuestion(CamelModel):
    difficulty: Literal["基础", "进阶", "挑战"]
    question: str
    options: List[str] = Field(min_length=2)
    correct_answer: int = Field(ge=0, le=3)
    explanation: str

    @model_validator(mode="after")
    def _answer_is_an_option(self) -> "QuizQuestion":
        if self.correct_answer >= len(self.options):
            raise ValueError(
                f"correctAnswer {self.correct_answer} has no matching option "
                f"({len(self.options)} given)"
            )
        return self


class TaskOutcome(BaseModel, Generic[T]):
    """Result of a feature call.

    ``value`` holds either genuine model output (``ok``) or the feature's
    documented safe default, in which case ``ok`` is false and ``error`` says
    why; callers must show a retry state rather than the default as content.
    """

    ok: bool
    value: T
    error: Optional[str] = None
    complete: bool = True
    model: Optional[str] = None
