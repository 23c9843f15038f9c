from typing import Any, Dict, Optional

from edu_gateway.providers.base import GenerationRequest, ProviderAdapter, UpstreamRequest


class DashScopeProvider(ProviderAdapter):
    """Aliyun DashScope native text-generation API with SSE output."""

    name = "dashscope"

    def build_upstream_request(self, req: GenerationRequest, model: str) -> UpstreamRequest:
        return UpstreamRequest(
            url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "X-DashScope-SSE": "enable",
            },
            json_body={
                "model": model,
                "input": {"messages": self._messages(req)},
                "parameters": {
                    "result_format": "message",
                    # each frame carries only the new text, not the running total
                    "incremental_output": True,
                },
            },
        )

    def parse_frame(self, payload: Dict[str, Any]) -> Optional[str]:
        # output.choices[0].message.content
        output = payload.get("output")
        if not isinstance(output, dict):
            return None
        choices = output.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        return content if isinstance(content, str) and content else None
