"""Prompt composition for the audit agent."""

import re
from collections.abc import Mapping, Sequence
from functools import cache
from importlib.resources import files

from skillaudit.parser.models import MiniPrompt, VulnerabilitySkill
from skillaudit.sandbox.policy import PermissionPolicy

_SYSTEM_PROMPT_FALLBACK = (
    "You are a security auditor specialized in Aiken smart contracts. Reply with one JSON "
    "object per message: a read request (read_file, grep, list_dir, find_files) or "
    '{"action": "final", "status": string, "findings": [...], "next_prompt": string|null}.'
)

_PLACEHOLDER_RE = re.compile(r"\{\{ ?(\w+) ?\}\}")


@cache
def _load_template(name: str) -> str:
    return (files("skillaudit.prompts") / name).read_text(encoding="utf-8").rstrip("\n")


def _fill(template: str, values: Mapping[str, str]) -> str:
    """Replace every placeholder in one pass so inserted text is never rescanned."""
    return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def build_agent_system_prompt() -> str:
    """Load the agent system prompt from package resources."""
    try:
        return _load_template("audit_agent_system_prompt.txt")
    except (FileNotFoundError, ModuleNotFoundError):
        return _SYSTEM_PROMPT_FALLBACK


def build_mini_prompt(skill: VulnerabilitySkill) -> MiniPrompt:
    return MiniPrompt(skill_id=skill.id, text=compose_skill_prompt(skill))


def compose_skill_prompt(skill: VulnerabilitySkill) -> str:
    """Render a skill's metadata and guidance as prompt text."""
    sections = [
        f"Skill ID: {skill.id}",
        f"Name: {skill.name}",
        f"Severity: {skill.severity.value}",
        f"Description: {skill.description}",
        f"Prompt Fragment: {skill.prompt_fragment}",
    ]

    if skill.tags:
        sections.append(f"Tags: {', '.join(skill.tags)}")
    if skill.confidence_hint:
        sections.append(f"Confidence Hint: {skill.confidence_hint}")
    if skill.examples:
        sections.append("Examples:\n" + _bullets(skill.examples))
    if skill.false_positives:
        sections.append("False Positives To Avoid:\n" + _bullets(skill.false_positives))
    if skill.references:
        sections.append("References:\n" + _bullets(skill.references))
    if skill.guidance_markdown.strip():
        sections.append(f"Guidance:\n{skill.guidance_markdown.strip()}")

    return "\n\n".join(sections)


def build_initial_user_prompt(
    prompt: MiniPrompt,
    source_references: Sequence[str],
    policy: PermissionPolicy,
    validator_context: str = "",
) -> str:
    return _fill(
        _load_template("audit_agent_initial_user_prompt.txt"),
        {
            "SKILL": prompt.text,
            "SOURCE_REFERENCES": render_source_references(source_references),
            "VALIDATOR_CONTEXT": validator_context.strip() or "(none)",
            "PERMISSION_PROMPT": render_permission_prompt(policy),
        },
    )


def build_tool_result_prompt(request_summary: str, output: str) -> str:
    return _fill(
        _load_template("audit_agent_tool_result_prompt.txt"),
        {"REQUEST": request_summary, "OUTPUT": output},
    )


def render_permission_prompt(policy: PermissionPolicy) -> str:
    spec = policy.to_prompt_spec()
    rendered = _fill(
        _load_template("permission_prompt.txt"),
        {
            "workspace_root": spec.workspace_root,
            "read_scope": spec.read_scope,
            "allowed_commands": ", ".join(spec.allowed_commands),
            "scope_rules": "\n- ".join(spec.scope_rules),
        },
    )
    if spec.allowed_paths:
        rendered += "\nAllowed files:\n" + _bullets(spec.allowed_paths)
    return rendered


def render_source_references(source_references: Sequence[str]) -> str:
    if not source_references:
        return "- (none)"
    return _bullets(source_references)


def _bullets(items: Sequence[str]) -> str:
    return "\n".join(f"- {item}" for item in items)
