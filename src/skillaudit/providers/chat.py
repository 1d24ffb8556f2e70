"""Shared HTTP plumbing for chat-style language-model backends."""

from __future__ import annotations

import asyncio
import http.client
import inspect
import json
import logging
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from skillaudit.agent.loop import AgentLoop, Turn
from skillaudit.exceptions import ProviderError
from skillaudit.parser.models import ProviderSpec, SkillIterationResult, VulnerabilitySkill
from skillaudit.sandbox.executor import ConfirmCallback
from skillaudit.sandbox.policy import PermissionPolicy

logger = logging.getLogger(__name__)

LLMTransport = Callable[[dict[str, Any]], dict[str, Any] | str | Awaitable[dict[str, Any] | str]]


class ChatProvider(ABC):
    """Base class for backends driven through the agent loop.

    Subclasses only describe their wire format: the request body, the auth
    headers and where the assistant text lives in the response.
    """

    name = "chat"

    def __init__(
        self,
        *,
        endpoint: str,
        model: str,
        api_key: str,
        timeout_s: int = 60,
        transport: LLMTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.model = model
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._transport = transport

    def provider_spec(self) -> ProviderSpec:
        return ProviderSpec(name=self.name, model=self.model, notes=f"Endpoint: {self.endpoint}")

    async def analyze_skill(
        self,
        skill: VulnerabilitySkill,
        source_refs: Sequence[str],
        policy: PermissionPolicy,
        *,
        validator_context: str = "",
        confirm: ConfirmCallback | None = None,
    ) -> SkillIterationResult:
        loop = AgentLoop(self.complete)
        return await loop.run(
            skill,
            source_refs,
            policy,
            validator_context=validator_context,
            confirm=confirm,
        )

    async def complete(self, system_prompt: str, turns: list[Turn]) -> str:
        """Send the conversation and return the assistant's raw text."""
        payload = self.build_payload(system_prompt, turns)
        response = await self._request(payload)

        if isinstance(response, str):
            return response

        text = self.extract_text(response)
        if text is None:
            raise ProviderError(f"{self.name} provider returned an unexpected response payload")
        return text

    @abstractmethod
    def build_payload(self, system_prompt: str, turns: list[Turn]) -> dict[str, Any]:
        """Build the request body for one completion."""

    @abstractmethod
    def headers(self) -> dict[str, str]:
        """Auth and version headers sent with every request."""

    @abstractmethod
    def extract_text(self, response: dict[str, Any]) -> str | None:
        """Pull the assistant text out of a decoded response, or None."""

    async def _request(self, payload: dict[str, Any]) -> dict[str, Any] | str:
        """Send request over HTTP or through the injected transport."""
        if self._transport is None:
            return await asyncio.to_thread(self._call_http, payload)

        try:
            response = self._transport(payload)
            if inspect.isawaitable(response):
                response = await response
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"{self.name} transport failed: {e}") from e

        if not isinstance(response, (dict, str)):
            raise ProviderError(f"{self.name} transport returned unsupported type {type(response)}")
        return response

    def _call_http(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST the payload via stdlib HTTP."""
        logger.debug("POST %s model=%s", self.endpoint, self.model)
        try:
            request = urllib.request.Request(
                self.endpoint,
                data=json.dumps(payload).encode("utf-8"),
                method="POST",
                headers={"content-type": "application/json", **self.headers()},
            )
            with urllib.request.urlopen(request, timeout=self._timeout_s) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")
            raise ProviderError(f"HTTP {e.code}: {detail}") from e
        except urllib.error.URLError as e:
            raise ProviderError(f"Network error: {e.reason}") from e
        except TimeoutError as e:
            raise ProviderError(f"Request timed out after {self._timeout_s}s") from e
        except OSError as e:
            raise ProviderError(f"Network error: {e}") from e
        except http.client.HTTPException as e:
            raise ProviderError(f"Broken HTTP response: {e!r}") from e
        except ValueError as e:
            raise ProviderError(f"Invalid request to {self.endpoint!r}: {e}") from e

        try:
            body = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProviderError(f"{self.name} provider returned an undecodable body") from e
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError as e:
            raise ProviderError(f"{self.name} provider returned a non-JSON body") from e
        if not isinstance(parsed, dict):
            raise ProviderError(f"{self.name} provider returned a non-object body")
        return parsed


def turns_as_messages(turns: Sequence[Turn]) -> list[dict[str, str]]:
    return [{"role": turn.role, "content": turn.content} for turn in turns]
