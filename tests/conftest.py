"""Shared test fixtures for skillaudit tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from skillaudit.agent.loop import Turn
from skillaudit.config import Config
from skillaudit.parser.models import Severity, VulnerabilitySkill
from skillaudit.sandbox.policy import PermissionPolicy, ReadScope, build_permission_policy

VALIDATOR_SOURCE = """use aiken/collection/list

validator vault {
  spend(datum: Option<Datum>, redeemer: Action, own_ref: OutputReference, self: Transaction) {
    expect Some(d) = datum
    list.has(self.extra_signatories, d.owner)
  }
}
"""

UTILS_SOURCE = """pub fn double(x: Int) -> Int {
  x * 2
}
"""


def skill_markdown(
    skill_id: str,
    *,
    severity: str = "high",
    prompt_fragment: str = "Look for missing signature checks.",
    extra: str = "",
    body: str = "# Guidance\n\nCheck every spend handler.",
) -> str:
    """Render a minimal valid skill definition."""
    return (
        "---\n"
        f"id: {skill_id}\n"
        f"name: Skill {skill_id}\n"
        f"severity: {severity}\n"
        "description: Detects a class of validator bugs.\n"
        f"prompt_fragment: {prompt_fragment}\n"
        f"{extra}"
        "---\n"
        f"{body}\n"
    )


@pytest.fixture
def config(monkeypatch: pytest.MonkeyPatch) -> Config:
    """Load default configuration with no environment overrides."""
    for name in (
        "SKILLAUDIT_LOG_LEVEL",
        "SKILLAUDIT_LLM_TIMEOUT_S",
        "SKILLAUDIT_LLM_MAX_OUTPUT_TOKENS",
    ):
        monkeypatch.delenv(name, raising=False)
    return Config.load()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small Aiken project with two sources and some noise."""
    root = tmp_path / "project"
    (root / "validators").mkdir(parents=True)
    (root / "lib").mkdir()
    (root / "build").mkdir()
    (root / "validators" / "vault.ak").write_text(VALIDATOR_SOURCE, encoding="utf-8")
    (root / "lib" / "utils.ak").write_text(UTILS_SOURCE, encoding="utf-8")
    (root / "build" / "generated.ak").write_text("// generated\n", encoding="utf-8")
    (root / "README.md").write_text("# Vault\n", encoding="utf-8")
    return root


@pytest.fixture
def write_skill(tmp_path: Path) -> Callable[..., Path]:
    """Write a skill file into ``tmp_path/skills`` and return its path."""
    skills_dir = tmp_path / "skills"
    skills_dir.mkdir(exist_ok=True)

    def _write(filename: str, content: str) -> Path:
        path = skills_dir / filename
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def skill() -> VulnerabilitySkill:
    """A parsed skill used by agent and provider tests."""
    return VulnerabilitySkill(
        id="authz-001",
        name="Missing authorization",
        severity=Severity.HIGH,
        description="Spend handlers that never check a signature.",
        prompt_fragment="Find spend paths without signer checks.",
        tags=["authz"],
    )


@pytest.fixture
def workspace_policy(project: Path) -> PermissionPolicy:
    """Workspace-scope policy over the sample project."""
    return build_permission_policy(
        ReadScope.WORKSPACE,
        project,
        ["lib/utils.ak", "validators/vault.ak"],
    )


@pytest.fixture
def strict_policy(project: Path) -> PermissionPolicy:
    """Strict-scope policy allowing only the validator source."""
    return build_permission_policy(ReadScope.STRICT, project, ["validators/vault.ak"])


class ScriptedBackend:
    """Completion function replaying canned replies and recording every call."""

    def __init__(self, replies: list[str | Exception]) -> None:
        self._replies = list(replies)
        self.calls: list[list[Turn]] = []
        self.system_prompts: list[str] = []

    async def __call__(self, system_prompt: str, turns: list[Turn]) -> str:
        self.system_prompts.append(system_prompt)
        self.calls.append(turns)
        reply = self._replies.pop(0) if self._replies else '{"action": "list_dir", "path": "."}'
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def scripted() -> Callable[[list[str | Exception]], ScriptedBackend]:
    """Factory for scripted completion functions."""
    return ScriptedBackend


@pytest.fixture
def skill_md() -> Callable[..., str]:
    """Renderer for minimal skill definitions."""
    return skill_markdown
