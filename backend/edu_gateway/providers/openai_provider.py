from typing import Any, Dict, Optional

from edu_gateway.providers.base import GenerationRequest, ProviderAdapter, UpstreamRequest


class OpenAIProvider(ProviderAdapter):
    """OpenAI-compatible chat-completions endpoint with `stream: true`."""

    name = "openai"

    def build_upstream_request(self, req: GenerationRequest, model: str) -> UpstreamRequest:
        return UpstreamRequest(
            url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Accept": "text/event-stream",
            },
            json_body={
                "model": model.replace("openai:", ""),  # accept "openai:gpt-4o-mini"
                "messages": self._messages(req),
                "stream": True,
            },
        )

    def parse_frame(self, payload: Dict[str, Any]) -> Optional[str]:
        # event is a chat.completion.chunk
        choices = payload.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        return content if isinstance(content, str) and content else None
