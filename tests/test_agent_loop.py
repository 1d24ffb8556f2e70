"""Tests for the bounded agent loop."""

import json

from skillaudit.agent.loop import EXHAUSTED_STATUS, AgentLoop
from skillaudit.agent.prompts import (
    build_initial_user_prompt,
    build_mini_prompt,
    build_tool_result_prompt,
    compose_skill_prompt,
    render_permission_prompt,
)
from skillaudit.exceptions import ProviderError
from skillaudit.parser.models import VulnerabilitySkill
from skillaudit.sandbox.policy import PermissionPolicy

FINAL = json.dumps(
    {
        "action": "final",
        "status": "completed",
        "findings": [
            {
                "title": "Missing signer check",
                "severity": "critical",
                "summary": "Anyone can spend.",
                "evidence": ["validators/vault.ak:5"],
                "recommendation": "Require the owner signature.",
                "file": "validators/vault.ak",
                "line": 5,
            }
        ],
        "next_prompt": None,
    }
)

SOURCES = ["lib/utils.ak", "validators/vault.ak"]


class TestAgentLoop:
    """Request/execute protocol behavior."""

    async def test_immediate_final_answer(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy, scripted
    ) -> None:
        backend = scripted([FINAL])

        result = await AgentLoop(backend).run(skill, SOURCES, workspace_policy)

        assert result.skill_id == skill.id
        assert result.status == "completed"
        assert [f.title for f in result.findings] == ["Missing signer check"]
        assert len(backend.calls) == 1
        first_turn = backend.calls[0][0]
        assert first_turn.role == "user"
        assert "Skill ID: authz-001" in first_turn.content
        assert "- validators/vault.ak" in first_turn.content

    async def test_read_result_is_fed_back(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy, scripted
    ) -> None:
        backend = scripted(['{"action": "read_file", "path": "lib/utils.ak"}', FINAL])

        await AgentLoop(backend).run(skill, SOURCES, workspace_policy)

        second_call = backend.calls[1]
        assert [t.role for t in second_call] == ["user", "assistant", "user"]
        tool_turn = second_call[-1].content
        assert tool_turn.startswith("Tool result for read_file lib/utils.ak:")
        assert "pub fn double" in tool_turn
        assert tool_turn.endswith("Continue and return JSON.")

    async def test_strict_denial_continues_the_loop(
        self, skill: VulnerabilitySkill, strict_policy: PermissionPolicy, scripted
    ) -> None:
        backend = scripted(['{"action": "list_dir", "path": "."}', FINAL])

        result = await AgentLoop(backend).run(skill, ["validators/vault.ak"], strict_policy)

        denial = backend.calls[1][-1].content
        assert "Request failed: Request denied by strict read scope" in denial
        assert result.status == "completed"

    async def test_unusable_grep_pattern_continues_the_loop(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy, scripted
    ) -> None:
        grep = json.dumps({"action": "grep", "pattern": "(" * 5000 + ")" * 5000, "path": "."})
        backend = scripted([grep, FINAL])

        result = await AgentLoop(backend).run(skill, SOURCES, workspace_policy)

        assert "Request failed: Grep pattern is" in backend.calls[1][-1].content
        assert result.status == "completed"

    async def test_malformed_output_gets_corrective_turn(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy, scripted
    ) -> None:
        backend = scripted(["Sure, let me think about it.", FINAL])

        result = await AgentLoop(backend).run(skill, SOURCES, workspace_policy)

        correction = backend.calls[1][-1]
        assert correction.role == "user"
        assert "could not be used" in correction.content
        assert result.status == "completed"

    async def test_provider_error_becomes_a_turn(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy, scripted
    ) -> None:
        backend = scripted([ProviderError("HTTP 529: overloaded"), FINAL])

        result = await AgentLoop(backend).run(skill, SOURCES, workspace_policy)

        error_turn = backend.calls[1][-1]
        assert error_turn.role == "user"
        assert "HTTP 529: overloaded" in error_turn.content
        assert result.status == "completed"

    async def test_step_budget_exhaustion(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy, scripted
    ) -> None:
        backend = scripted([])

        result = await AgentLoop(backend, max_steps=3).run(skill, SOURCES, workspace_policy)

        assert len(backend.calls) == 3
        assert result.status == EXHAUSTED_STATUS
        assert result.findings == []
        assert result.next_prompt is not None
        assert "exhausted" in result.next_prompt.text

    async def test_default_budget_is_twenty_five_steps(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy, scripted
    ) -> None:
        backend = scripted([])

        result = await AgentLoop(backend).run(skill, SOURCES, workspace_policy)

        assert len(backend.calls) == 25
        assert result.status == "incomplete"

    async def test_validator_context_is_included(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy, scripted
    ) -> None:
        backend = scripted([FINAL])

        await AgentLoop(backend).run(
            skill, SOURCES, workspace_policy, validator_context="validator vault: spend"
        )

        assert "validator vault: spend" in backend.calls[0][0].content


class TestPrompts:
    """Prompt rendering helpers."""

    def test_compose_skill_prompt_sections(self, skill: VulnerabilitySkill) -> None:
        text = compose_skill_prompt(skill)
        assert text.startswith("Skill ID: authz-001\n\nName: Missing authorization")
        assert "Severity: high" in text
        assert "Tags: authz" in text
        assert "Examples:" not in text

    def test_mini_prompt_is_addressed_to_skill(self, skill: VulnerabilitySkill) -> None:
        prompt = build_mini_prompt(skill)
        assert prompt.skill_id == "authz-001"
        assert prompt.text == compose_skill_prompt(skill)

    def test_permission_prompt_lists_allowed_files_in_strict_scope(
        self, strict_policy: PermissionPolicy
    ) -> None:
        text = render_permission_prompt(strict_policy)
        assert "Read scope: strict" in text
        assert "Allowed files:\n- validators/vault.ak" in text

    def test_initial_prompt_without_sources(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy
    ) -> None:
        text = build_initial_user_prompt(build_mini_prompt(skill), [], workspace_policy)
        assert "- (none)" in text
        assert "Validator context:\n(none)" in text
        assert "{{" not in text

    def test_placeholders_inside_inserted_text_are_left_alone(self) -> None:
        text = build_tool_result_prompt("grep {{OUTPUT}} in .", "lib/utils.ak:1:{{OUTPUT}}")

        assert text.count("lib/utils.ak:1:") == 1
        assert "grep {{OUTPUT}} in ." in text

    def test_validator_context_placeholders_are_not_expanded(
        self, skill: VulnerabilitySkill, workspace_policy: PermissionPolicy
    ) -> None:
        text = build_initial_user_prompt(
            build_mini_prompt(skill), [], workspace_policy, "see {{PERMISSION_PROMPT}}"
        )
        assert "see {{PERMISSION_PROMPT}}" in text
