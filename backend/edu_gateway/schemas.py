from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from edu_gateway.models import Subject
from edu_gateway.providers.base import ChatMessage, GenerationRequest

# Relay
class GenerateRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)
    model: Optional[str] = None

    @model_validator(mode="after")
    def _require_user_message(self) -> "GenerateRequest":
        if not any(m.role == "user" for m in self.messages):
            raise ValueError("messages must contain at least one 'user' message")
        return self

    def to_generation_request(self) -> GenerationRequest:
        return GenerationRequest(messages=self.messages, model=self.model)

class ErrorBody(BaseModel):
    error: str
    type: str

# Classroom tasks
class GradingTaskRequest(BaseModel):
    subject: Subject
    student_name: str
    content: str = Field(min_length=1)

class AnalysisTaskRequest(BaseModel):
    student_name: str
    subject: Subject
    recent_scores: List[int] = Field(default_factory=list)

class LessonPlanTaskRequest(BaseModel):
    topic: str = Field(min_length=1)
    subject: Subject
    textbook_context: Optional[str] = None

class SlidesTaskRequest(BaseModel):
    topic: str = Field(min_length=1)
    subject: Subject
    objectives: List[str] = Field(default_factory=list)

class QuizTaskRequest(BaseModel):
    topic: str = Field(min_length=1)
    key_points: List[str] = Field(default_factory=list)
