"""OpenAI-compatible chat completions backend."""

from typing import Any

from skillaudit.agent.loop import Turn
from skillaudit.providers.chat import ChatProvider, LLMTransport, turns_as_messages

DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_API_KEY_ENV = "OPENAI_API_KEY"


class OpenAIProvider(ChatProvider):
    """System message first, forced JSON responses, bearer-token auth."""

    name = "openai-compatible"

    def __init__(
        self,
        *,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        model: str = DEFAULT_MODEL,
        reasoning_effort: str | None = None,
        timeout_s: int = 60,
        transport: LLMTransport | None = None,
    ) -> None:
        super().__init__(
            endpoint=endpoint,
            model=model,
            api_key=api_key,
            timeout_s=timeout_s,
            transport=transport,
        )
        self._reasoning_effort = reasoning_effort

    def build_payload(self, system_prompt: str, turns: list[Turn]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                *turns_as_messages(turns),
            ],
            "response_format": {"type": "json_object"},
        }
        if self._reasoning_effort:
            payload["reasoning_effort"] = self._reasoning_effort
        return payload

    def headers(self) -> dict[str, str]:
        return {"authorization": f"Bearer {self._api_key}"}

    def extract_text(self, response: dict[str, Any]) -> str | None:
        choices = response.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        first = choices[0]
        if not isinstance(first, dict):
            return None
        message = first.get("message")
        if not isinstance(message, dict):
            return None
        content = message.get("content")
        return content if isinstance(content, str) else None
