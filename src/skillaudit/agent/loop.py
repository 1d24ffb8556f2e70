"""Bounded request/execute loop shared by network-backed providers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from skillaudit.agent.actions import (
    Final,
    Malformed,
    ReadAction,
    ReadFile,
    iteration_from_parsed,
    parse_agent_action,
)
from skillaudit.agent.prompts import (
    build_agent_system_prompt,
    build_initial_user_prompt,
    build_mini_prompt,
    build_tool_result_prompt,
)
from skillaudit.exceptions import ProviderError, SandboxError
from skillaudit.parser.models import MiniPrompt, SkillIterationResult, VulnerabilitySkill
from skillaudit.sandbox.executor import ConfirmCallback, execute
from skillaudit.sandbox.policy import PermissionPolicy

logger = logging.getLogger(__name__)

MAX_AGENT_STEPS = 25
EXHAUSTED_STATUS = "incomplete"
_LOG_PREVIEW_CHARS = 180


@dataclass(frozen=True)
class Turn:
    """One conversation message, independent of any wire format."""

    role: str
    content: str


CompleteFn = Callable[[str, list[Turn]], Awaitable[str]]


class AgentLoop:
    """Drive one skill's conversation until a final answer or the step budget."""

    def __init__(self, complete: CompleteFn, *, max_steps: int = MAX_AGENT_STEPS) -> None:
        self._complete = complete
        self._max_steps = max_steps

    async def run(
        self,
        skill: VulnerabilitySkill,
        source_refs: Sequence[str],
        policy: PermissionPolicy,
        *,
        validator_context: str = "",
        confirm: ConfirmCallback | None = None,
    ) -> SkillIterationResult:
        system_prompt = build_agent_system_prompt()
        prompt = build_mini_prompt(skill)
        turns = [
            Turn("user", build_initial_user_prompt(prompt, source_refs, policy, validator_context))
        ]

        for step in range(1, self._max_steps + 1):
            tag = f"skill={skill.id} step={step}/{self._max_steps}"
            logger.debug("%s asking model", tag)

            try:
                content = await self._complete(system_prompt, list(turns))
            except ProviderError as e:
                logger.warning("%s backend request failed: %s", tag, e)
                turns.append(Turn(
                    "user",
                    f"Request to the analysis backend failed: {e}\n\nContinue and return JSON.",
                ))
                continue

            turns.append(Turn("assistant", content))
            logger.debug("%s model output: %s", tag, _preview(content))

            action = parse_agent_action(content)
            if isinstance(action, Final):
                result = iteration_from_parsed(skill, action.payload)
                logger.debug(
                    "%s final status=%s findings=%d", tag, result.status, len(result.findings)
                )
                return result

            if isinstance(action, Malformed):
                logger.debug("%s malformed response: %s", tag, action.reason)
                turns.append(Turn(
                    "user",
                    f"Your last reply could not be used: {action.reason}. "
                    "Reply with exactly one JSON object: a read request or a final answer.",
                ))
                continue

            output = await self._run_read(action, policy, confirm, tag)
            turns.append(Turn("user", build_tool_result_prompt(action.summary(), output)))

        logger.warning(
            "Skill %s exhausted %d steps without a final answer", skill.id, self._max_steps
        )
        return SkillIterationResult(
            skill_id=skill.id,
            status=EXHAUSTED_STATUS,
            findings=[],
            next_prompt=MiniPrompt(
                skill_id=skill.id,
                text=(
                    f"Step budget of {self._max_steps} exhausted before a final answer "
                    f"for skill '{skill.id}'."
                ),
            ),
        )

    async def _run_read(
        self,
        request: ReadAction,
        policy: PermissionPolicy,
        confirm: ConfirmCallback | None,
        tag: str,
    ) -> str:
        logger.debug("%s running local action: %s", tag, request.summary())
        try:
            output = await asyncio.to_thread(execute, request, policy, confirm=confirm)
        except SandboxError as e:
            logger.info("%s request denied: %s", tag, e)
            return f"Request failed: {e}"

        if isinstance(request, ReadFile):
            logger.debug("%s file read (%d chars, content hidden)", tag, len(output))
        else:
            logger.debug("%s output: %s", tag, _preview(output))
        return output


def _preview(text: str) -> str:
    if len(text) <= _LOG_PREVIEW_CHARS:
        return text
    return f"{text[:_LOG_PREVIEW_CHARS]}... ({len(text)} chars total)"
