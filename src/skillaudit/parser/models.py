"""Pydantic data models for skillaudit."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer

STATE_VERSION = "1"


class Severity(StrEnum):
    """Skill severity levels, ordered from most to least severe."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class VulnerabilitySkill(BaseModel):
    """A validated vulnerability skill definition."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    severity: Severity
    description: str
    prompt_fragment: str
    examples: list[str] = Field(default_factory=list)
    false_positives: list[str] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    confidence_hint: str | None = None
    guidance_markdown: str = ""


class MiniPrompt(BaseModel):
    """Prompt text addressed to a single skill."""

    skill_id: str
    text: str


class Finding(BaseModel):
    """A single vulnerability observation reported by a backend."""

    title: str = "Untitled finding"
    severity: str
    summary: str = ""
    evidence: list[str] = Field(default_factory=list)
    recommendation: str = ""
    file: str | None = None
    line: int | None = None

    @model_serializer(mode="wrap")
    def _drop_missing_location(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        for key in ("file", "line"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class SkillIterationResult(BaseModel):
    """Outcome of analyzing one skill."""

    skill_id: str
    status: str
    findings: list[Finding] = Field(default_factory=list)
    next_prompt: MiniPrompt | None = None


class ProviderSpec(BaseModel):
    """Describes the backend used for a run."""

    name: str
    model: str | None = None
    notes: str = ""


class PermissionPromptSpec(BaseModel):
    """Serializable snapshot of the sandbox permission policy."""

    shell: str
    allowed_commands: list[str]
    scope_rules: list[str]
    workspace_root: str = "."
    read_scope: str = "workspace"
    interactive_permissions: bool = False
    allowed_paths: list[str] = Field(default_factory=list)


class AnalysisState(BaseModel):
    """Root run-state document, rewritten after every skill."""

    version: str = STATE_VERSION
    source_files: list[str]
    provider: ProviderSpec
    permission_prompt: PermissionPromptSpec
    iterations: list[SkillIterationResult] = Field(default_factory=list)


class VulnerabilityReport(BaseModel):
    """Flattened findings across every iteration of a run."""

    title: str
    generated_at: str
    findings: list[Finding] = Field(default_factory=list)
