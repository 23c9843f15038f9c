from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class GenerationMode(str, Enum):
    FREE_TEXT = "free-text"
    STRUCTURED = "structured"


class GenerationRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)
    model: Optional[str] = None
    mode: GenerationMode = GenerationMode.FREE_TEXT

    @model_validator(mode="after")
    def _require_user_message(self) -> "GenerationRequest":
        if not any(m.role == "user" for m in self.messages):
            raise ValueError("messages must contain at least one 'user' message")
        return self


class UpstreamRequest(BaseModel):
    url: str
    headers: Dict[str, str]
    json_body: Dict[str, Any]


class ProviderAdapter(ABC):
    """What differs between upstream providers.

    Everything else (decoding, relaying, retrying, extraction) is shared, so an
    adapter only knows how to address its endpoint and where the text sits in
    one decoded SSE frame.
    """

    name: str = ""

    def __init__(self, api_key: Optional[str], base_url: str) -> None:
        self.api_key = api_key
        self.base_url = base_url

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    def build_upstream_request(self, req: GenerationRequest, model: str) -> UpstreamRequest:
        raise NotImplementedError

    @abstractmethod
    def parse_frame(self, payload: Dict[str, Any]) -> Optional[str]:
        """Return the text delta carried by a frame, or None for control frames."""
        raise NotImplementedError

    def _messages(self, req: GenerationRequest) -> List[Dict[str, str]]:
        # Pass through roles/content
        return [{"role": m.role, "content": m.content} for m in req.messages]
