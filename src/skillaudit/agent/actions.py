"""Decoding of backend responses into agent actions."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, ClassVar

from skillaudit.parser.models import Finding, MiniPrompt, SkillIterationResult, VulnerabilitySkill

DEFAULT_STATUS = "completed"
DEFAULT_CONTEXT_LINES = 2
MAX_CONTEXT_LINES = 20

_JSON_BLOCK_PATTERN = re.compile(r"```[A-Za-z0-9_-]*\s*(\{.*?\})\s*```", re.DOTALL)


@dataclass(frozen=True)
class ReadFile:
    kind: ClassVar[str] = "read_file"
    path: str = "."

    def summary(self) -> str:
        return f"read_file {self.path}"


@dataclass(frozen=True)
class Grep:
    kind: ClassVar[str] = "grep"
    pattern: str = ""
    path: str = "."
    context_lines: int = DEFAULT_CONTEXT_LINES

    def summary(self) -> str:
        return f"grep pattern='{self.pattern}' path={self.path} context_lines={self.context_lines}"


@dataclass(frozen=True)
class ListDir:
    kind: ClassVar[str] = "list_dir"
    path: str = "."

    def summary(self) -> str:
        return f"list_dir {self.path}"


@dataclass(frozen=True)
class FindFiles:
    kind: ClassVar[str] = "find_files"
    path: str = "."
    glob: str | None = None

    def summary(self) -> str:
        return f"find_files path={self.path} glob={self.glob or '*'}"


@dataclass(frozen=True)
class Final:
    """Terminal answer carrying the raw findings payload."""

    payload: dict[str, Any]


@dataclass(frozen=True)
class Malformed:
    """Backend output that could not be turned into an action."""

    reason: str


ReadAction = ReadFile | Grep | ListDir | FindFiles
AgentAction = ReadAction | Final | Malformed


def parse_agent_action(raw: str) -> AgentAction:
    """Decode one backend response into an action."""
    parsed = extract_json_object(raw)
    if parsed is None:
        return Malformed("Response is not a valid JSON object")

    action = parsed.get("action")
    if action is None:
        if "findings" in parsed or "status" in parsed:
            return Final(parsed)
        return Malformed("Response has no `action` field and no `findings` or `status`")

    if not isinstance(action, str):
        return Malformed("`action` must be a string")

    action = action.strip().lower()
    if action == "final":
        return Final(parsed)

    try:
        if action == "read_file":
            return ReadFile(path=_str_field(parsed, "path", "."))
        if action == "grep":
            return Grep(
                pattern=_str_field(parsed, "pattern", ""),
                path=_str_field(parsed, "path", "."),
                context_lines=_context_lines(parsed.get("context_lines")),
            )
        if action == "list_dir":
            return ListDir(path=_str_field(parsed, "path", "."))
        if action == "find_files":
            glob = parsed.get("glob")
            if glob is not None and not isinstance(glob, str):
                raise ValueError("`glob` must be a string")
            return FindFiles(path=_str_field(parsed, "path", "."), glob=glob or None)
    except ValueError as e:
        return Malformed(str(e))

    return Malformed(f"Unsupported agent action '{action}'")


def extract_json_object(raw: str) -> dict[str, Any] | None:
    """Parse a JSON object from raw output, including fenced blocks."""
    raw = raw.strip()
    if not raw:
        return None

    try:
        parsed = json.loads(raw)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        pass

    fenced = _JSON_BLOCK_PATTERN.search(raw)
    if fenced is not None:
        try:
            parsed = json.loads(fenced.group(1))
            return parsed if isinstance(parsed, dict) else None
        except json.JSONDecodeError:
            pass

    braced = _extract_first_json_object(raw)
    if braced is None:
        return None
    try:
        parsed = json.loads(braced)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        return None


def _extract_first_json_object(text: str) -> str | None:
    """Extract first balanced JSON object from text."""
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def iteration_from_parsed(
    skill: VulnerabilitySkill,
    payload: dict[str, Any],
) -> SkillIterationResult:
    """Normalize a final payload into a SkillIterationResult."""
    raw_findings = payload.get("findings")
    findings: list[Finding] = []
    if isinstance(raw_findings, list):
        for raw in raw_findings:
            if isinstance(raw, dict):
                findings.append(_coerce_finding(raw, skill))

    status = payload.get("status")
    if not isinstance(status, str) or not status.strip():
        status = DEFAULT_STATUS

    next_prompt = None
    raw_next = payload.get("next_prompt")
    if isinstance(raw_next, str) and raw_next.strip():
        next_prompt = MiniPrompt(skill_id=skill.id, text=raw_next)

    return SkillIterationResult(
        skill_id=skill.id,
        status=status,
        findings=findings,
        next_prompt=next_prompt,
    )


def _coerce_finding(raw: dict[str, Any], skill: VulnerabilitySkill) -> Finding:
    """Build one Finding, filling documented defaults."""
    location = raw.get("location")
    if not isinstance(location, dict):
        location = {}

    file = _non_empty_str(raw.get("file")) or _non_empty_str(location.get("file"))
    line = _line_number(raw.get("line"))
    if line is None:
        line = _line_number(location.get("line"))

    evidence = raw.get("evidence")
    if not isinstance(evidence, list):
        evidence = []

    return Finding(
        title=_str_or(raw.get("title"), "Untitled finding"),
        severity=_str_or(raw.get("severity"), skill.severity.value),
        summary=_str_or(raw.get("summary"), ""),
        evidence=[item for item in evidence if isinstance(item, str)],
        recommendation=_str_or(raw.get("recommendation"), ""),
        file=file,
        line=line,
    )


def _str_field(payload: dict[str, Any], key: str, default: str) -> str:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"`{key}` must be a string")
    return value


def _context_lines(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_CONTEXT_LINES
    try:
        lines = int(value)
    except (TypeError, ValueError):
        return DEFAULT_CONTEXT_LINES
    return min(max(lines, 0), MAX_CONTEXT_LINES)


def _str_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _line_number(value: Any) -> int | None:
    """Accept a non-negative int or a numeric string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
    return None
