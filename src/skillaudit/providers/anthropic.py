"""Anthropic Messages API backend."""

from typing import Any

from skillaudit.agent.loop import Turn
from skillaudit.providers.chat import ChatProvider, LLMTransport

DEFAULT_ENDPOINT = "https://api.anthropic.com/v1/messages"
DEFAULT_MODEL = "claude-3-5-haiku-latest"
DEFAULT_API_KEY_ENV = "ANTHROPIC_API_KEY"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(ChatProvider):
    """Top-level system prompt with alternating user/assistant messages."""

    name = "anthropic"

    def __init__(
        self,
        *,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        model: str = DEFAULT_MODEL,
        max_output_tokens: int = 1200,
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
        self._max_output_tokens = max_output_tokens

    def build_payload(self, system_prompt: str, turns: list[Turn]) -> dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self._max_output_tokens,
            "system": system_prompt,
            "messages": _alternating_messages(turns),
        }

    def headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def extract_text(self, response: dict[str, Any]) -> str | None:
        """Join the text blocks of a Messages API response."""
        content = response.get("content")
        if not isinstance(content, list):
            return None

        texts: list[str] = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                if isinstance(text, str):
                    texts.append(text)
        if not texts:
            return None
        return "\n".join(texts)


def _alternating_messages(turns: list[Turn]) -> list[dict[str, str]]:
    """Merge consecutive same-role turns; the API rejects repeated roles."""
    messages: list[dict[str, str]] = []
    for turn in turns:
        if messages and messages[-1]["role"] == turn.role:
            messages[-1]["content"] += "\n\n" + turn.content
        else:
            messages.append({"role": turn.role, "content": turn.content})
    return messages
