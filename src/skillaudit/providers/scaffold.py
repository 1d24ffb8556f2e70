"""Offline provider that performs no analysis."""

from collections.abc import Sequence

from skillaudit.agent.prompts import build_mini_prompt
from skillaudit.parser.models import (
    MiniPrompt,
    ProviderSpec,
    SkillIterationResult,
    VulnerabilitySkill,
)
from skillaudit.sandbox.executor import ConfirmCallback
from skillaudit.sandbox.policy import PermissionPolicy

SCAFFOLD_STATUS = "scaffolded"


class ScaffoldProvider:
    """Return an empty placeholder result for every skill without network access."""

    def provider_spec(self) -> ProviderSpec:
        return ProviderSpec(
            name="scaffold",
            model=None,
            notes="Scaffolding-only provider. No external AI calls are performed.",
        )

    async def analyze_skill(
        self,
        skill: VulnerabilitySkill,
        source_refs: Sequence[str],
        policy: PermissionPolicy,
        *,
        validator_context: str = "",
        confirm: ConfirmCallback | None = None,
    ) -> SkillIterationResult:
        prompt = build_mini_prompt(skill)
        return SkillIterationResult(
            skill_id=skill.id,
            status=SCAFFOLD_STATUS,
            findings=[],
            next_prompt=MiniPrompt(
                skill_id=skill.id,
                text=(
                    f"Scaffold follow-up placeholder for skill '{skill.id}' "
                    f"based on prompt '{prompt.text}'."
                ),
            ),
        )
