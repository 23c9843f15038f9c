from typing import Dict, Optional, Tuple

from edu_gateway.core.config import Settings
from edu_gateway.providers.base import ProviderAdapter
from edu_gateway.providers.dashscope_provider import DashScopeProvider
from edu_gateway.providers.openai_provider import OpenAIProvider


def build_providers(settings: Settings) -> Dict[str, ProviderAdapter]:
    return {
        DashScopeProvider.name: DashScopeProvider(
            settings.DASHSCOPE_API_KEY, settings.DASHSCOPE_BASE_URL
        ),
        OpenAIProvider.name: OpenAIProvider(settings.OPENAI_API_KEY, settings.OPENAI_BASE_URL),
    }


def resolve_provider(model: Optional[str], default_model: str) -> Tuple[str, str]:
    """
    Resolve the provider by model prefix (e.g., 'openai:gpt-4o-mini').
    Returns (provider name, normalized_model).
    """
    model = model or default_model
    if model.startswith("openai:"):
        return OpenAIProvider.name, model
    if model.startswith("dashscope:"):
        return DashScopeProvider.name, model[len("dashscope:"):]
    # unprefixed models are DashScope (qwen-*)
    return DashScopeProvider.name, model
