"""Vulnerability skill parser module."""

from skillaudit.parser.models import Finding, Severity, VulnerabilitySkill
from skillaudit.parser.skill_parser import load_skill_file, load_skills, parse_skill_content

__all__ = [
    "Finding",
    "Severity",
    "VulnerabilitySkill",
    "load_skill_file",
    "load_skills",
    "parse_skill_content",
]
