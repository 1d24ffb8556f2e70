"""Vulnerability skill definition loader."""

import logging
from importlib.resources import files
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from skillaudit.exceptions import MalformedSkillError, NoSkillsFoundError, SkillsDirNotFoundError
from skillaudit.parser.models import Severity, VulnerabilitySkill

logger = logging.getLogger(__name__)

DEFAULT_SKILLS_DIR = Path("skills/vulnerabilities")

_SEED_PACKAGE = "skillaudit.parser.seeds"
_SEED_FILES = (
    "001-state-transition.md",
    "002-authz-boundaries.md",
    "003-strict-value-equality.md",
)
_REQUIRED_TEXT_FIELDS = ("id", "name", "description", "prompt_fragment")
# BaseLoader keeps every scalar as text, including the YAML null spellings.
_YAML_NULLS = frozenset({"", "~", "null", "Null", "NULL"})


class _SkillFrontmatter(BaseModel):
    """Raw metadata block as authored; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    severity: str
    description: str
    prompt_fragment: str
    examples: list[str] = Field(default_factory=list)
    false_positives: list[str] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    confidence_hint: str | None = None

    @field_validator("examples", "false_positives", "references", "tags", mode="before")
    @classmethod
    def _empty_list(cls, value: Any) -> Any:
        # `examples:` with no value loads as an empty scalar
        if isinstance(value, str) and value in _YAML_NULLS:
            return []
        return value

    @field_validator("confidence_hint", mode="before")
    @classmethod
    def _null_hint(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() in _YAML_NULLS:
            return None
        return value


def load_skills(skills_dir: Path, *, use_default: bool = False) -> list[VulnerabilitySkill]:
    """Load every skill definition in a directory, sorted by id.

    When the directory is missing and ``use_default`` is set, the embedded
    seed skills are returned instead.
    """
    if not skills_dir.exists():
        if use_default:
            logger.info("Skills directory %s not found, using embedded seed skills", skills_dir)
            return load_seed_skills()
        raise SkillsDirNotFoundError(skills_dir)

    entries = sorted(
        path
        for path in skills_dir.iterdir()
        if path.is_file() and not path.name.startswith(".")
    )
    if not entries:
        raise NoSkillsFoundError(skills_dir)

    return _sorted_unique([(path, load_skill_file(path)) for path in entries])


def load_seed_skills() -> list[VulnerabilitySkill]:
    """Parse the seed skills shipped inside the package."""
    seed_pkg = files(_SEED_PACKAGE)
    loaded = []
    for name in _SEED_FILES:
        path = DEFAULT_SKILLS_DIR / name
        content = (seed_pkg / name).read_text(encoding="utf-8")
        loaded.append((path, parse_skill_content(path, content)))
    return _sorted_unique(loaded)


def load_skill_file(path: Path) -> VulnerabilitySkill:
    """Read and parse a single skill definition file."""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedSkillError(path, f"Cannot read file: {e}") from e
    return parse_skill_content(path, content)


def parse_skill_content(path: Path, content: str) -> VulnerabilitySkill:
    """Parse frontmatter and guidance from one skill definition."""
    frontmatter_str, body = _split_frontmatter(path, content)
    frontmatter_str = frontmatter_str.replace("\t", "  ")

    try:
        raw = yaml.load(frontmatter_str, Loader=yaml.BaseLoader)
    except yaml.YAMLError as e:
        raise MalformedSkillError(path, f"Invalid YAML frontmatter: {e}") from e

    if not isinstance(raw, dict):
        raise MalformedSkillError(path, "Frontmatter is not a YAML mapping")

    try:
        parsed = _SkillFrontmatter.model_validate(raw)
    except ValidationError as e:
        raise MalformedSkillError(path, _describe_validation_error(e)) from e

    values = {
        field: _require_non_empty(path, field, getattr(parsed, field))
        for field in _REQUIRED_TEXT_FIELDS
    }

    severity = parsed.severity.strip().lower()
    if severity not in {s.value for s in Severity}:
        raise MalformedSkillError(
            path,
            f"Invalid `severity` value '{parsed.severity}'. "
            "Expected one of: low, medium, high, critical",
        )

    hint = parsed.confidence_hint.strip() if parsed.confidence_hint else ""

    return VulnerabilitySkill(
        **values,
        severity=Severity(severity),
        examples=parsed.examples,
        false_positives=parsed.false_positives,
        references=parsed.references,
        tags=parsed.tags,
        confidence_hint=hint or None,
        guidance_markdown=body.strip(),
    )


def _split_frontmatter(path: Path, content: str) -> tuple[str, str]:
    """Split the `---` delimited metadata block from the markdown body."""
    lines = content.lstrip("\ufeff").splitlines()

    if not lines:
        raise MalformedSkillError(path, "Skill file is empty")

    if lines[0].strip() != "---":
        raise MalformedSkillError(path, "Missing frontmatter start delimiter `---`")

    end_index = None
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            end_index = i
            break

    if end_index is None:
        raise MalformedSkillError(path, "Missing frontmatter end delimiter `---`")

    return "\n".join(lines[1:end_index]), "\n".join(lines[end_index + 1 :])


def _require_non_empty(path: Path, field: str, value: str) -> str:
    trimmed = value.strip()
    if not trimmed:
        raise MalformedSkillError(path, f"Field `{field}` must be non-empty")
    return trimmed


def _describe_validation_error(error: ValidationError) -> str:
    """Turn the first pydantic error into a one-line reason."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "frontmatter"
    if first["type"] == "extra_forbidden":
        return f"Unknown frontmatter key `{field}`"
    if first["type"] == "missing":
        return f"Missing required field `{field}`"
    return f"Invalid value for `{field}`: {first['msg']}"


def _sorted_unique(
    loaded: list[tuple[Path, VulnerabilitySkill]],
) -> list[VulnerabilitySkill]:
    """Reject duplicate ids and order skills by id."""
    seen: dict[str, VulnerabilitySkill] = {}
    for path, skill in loaded:
        if skill.id in seen:
            raise MalformedSkillError(path, f"Duplicate skill id `{skill.id}`")
        seen[skill.id] = skill
    return sorted(seen.values(), key=lambda s: s.id)
