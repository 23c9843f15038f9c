from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    AnyUrl,
    BeforeValidator,
    Field,
    HttpUrl,
    computed_field,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    PROJECT_NAME: str = "edu-gateway"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    SENTRY_DSN: HttpUrl | None = None

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    # DashScope (Aliyun) is the default upstream; the key is never sent to clients
    DASHSCOPE_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DASHSCOPE_API_KEY", "ALIYUN_API_KEY"),
    )
    DASHSCOPE_BASE_URL: str = (
        "https://dashscope.aliyuncs.com/api/v1/services/aigc/text-generation/generation"
    )

    # Any OpenAI-compatible chat-completions endpoint, selected with "openai:<model>"
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1/chat/completions"

    DEFAULT_MODEL: str = "qwen-plus"
    # (model, first-delta timeout in seconds), best first
    GENERATION_RETRY_PLAN: list[tuple[str, float]] = [
        ("qwen-max", 30.0),
        ("qwen-plus", 20.0),
        ("qwen-turbo", 10.0),
    ]
    UPSTREAM_CONNECT_TIMEOUT_SECONDS: float = 10.0

    # Circuit breaker per provider
    CB_FAIL_MAX: int = 5
    CB_RESET_TIMEOUT: int = 60

    RATE_LIMIT_PER_MINUTE: int = 60
    # X-API-Key values with their own rate-limit bucket; other callers share one per host
    API_KEYS: Annotated[list[str] | str, BeforeValidator(parse_cors)] = []

    # When set, task endpoints reach the relay over HTTP instead of in-process
    RELAY_URL: str | None = None


settings = Settings()  # type: ignore
