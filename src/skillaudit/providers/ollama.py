"""Local Ollama backend using the native chat API."""

from typing import Any

from skillaudit.agent.loop import Turn
from skillaudit.providers.chat import ChatProvider, LLMTransport, turns_as_messages

DEFAULT_ENDPOINT = "http://localhost:11434/api/chat"
DEFAULT_MODEL = "llama3.1"
# Ollama needs no key; a fixed token keeps auth-checking proxies happy.
API_KEY = "ollama"


class OllamaProvider(ChatProvider):
    name = "ollama"

    def __init__(
        self,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        model: str = DEFAULT_MODEL,
        timeout_s: int = 60,
        transport: LLMTransport | None = None,
    ) -> None:
        super().__init__(
            endpoint=endpoint,
            model=model,
            api_key=API_KEY,
            timeout_s=timeout_s,
            transport=transport,
        )

    def build_payload(self, system_prompt: str, turns: list[Turn]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                *turns_as_messages(turns),
            ],
            "stream": False,
            "format": "json",
        }

    def headers(self) -> dict[str, str]:
        return {"authorization": f"Bearer {self._api_key}"}

    def extract_text(self, response: dict[str, Any]) -> str | None:
        message = response.get("message")
        if not isinstance(message, dict):
            return None
        content = message.get("content")
        return content if isinstance(content, str) else None
