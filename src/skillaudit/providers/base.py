"""Analysis provider protocol definition."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from skillaudit.parser.models import ProviderSpec, SkillIterationResult, VulnerabilitySkill
from skillaudit.sandbox.executor import ConfirmCallback
from skillaudit.sandbox.policy import PermissionPolicy


@runtime_checkable
class AnalysisProvider(Protocol):
    """Protocol that all analysis backends must satisfy."""

    def provider_spec(self) -> ProviderSpec:
        """Descriptor persisted in the run state."""
        ...

    async def analyze_skill(
        self,
        skill: VulnerabilitySkill,
        source_refs: Sequence[str],
        policy: PermissionPolicy,
        *,
        validator_context: str = "",
        confirm: ConfirmCallback | None = None,
    ) -> SkillIterationResult:
        """Analyze the project for one skill and return its result."""
        ...
