"""Markdown rendering for vulnerability reports."""

from functools import cache
from importlib.resources import files

from skillaudit.parser.models import Finding, VulnerabilityReport

_TEMPLATE_NAME = "report_template.md"


@cache
def _load_template() -> str:
    return files("skillaudit.reporters").joinpath(_TEMPLATE_NAME).read_text(encoding="utf-8")


def render_report_markdown(report: VulnerabilityReport) -> str:
    """Render the report through the packaged template."""
    return (
        _load_template()
        .replace("{{ title }}", report.title)
        .replace("{{ generated_at }}", report.generated_at)
        .replace("{{ finding_count }}", str(len(report.findings)))
        .replace("{{ findings_markdown }}", render_findings_markdown(report.findings))
    )


def render_findings_markdown(findings: list[Finding]) -> str:
    if not findings:
        return "- *(none)*"
    return "\n".join(_render_finding(finding) for finding in findings)


def _render_finding(finding: Finding) -> str:
    lines = [f"- **{finding.title}** (`{finding.severity}`)"]
    location = format_location(finding)
    if location:
        lines.append(f"  - Location: `{location}`")
    lines.append(f"  - Summary: {finding.summary}")
    if finding.evidence:
        lines.append("  - Evidence:")
        lines.extend(f"    - {item}" for item in finding.evidence)
    lines.append(f"  - Recommendation: {finding.recommendation}")
    return "\n".join(lines)


def format_location(finding: Finding) -> str:
    """``file:line`` when both are known, else whichever part exists."""
    if finding.file is None:
        return ""
    if finding.line is None:
        return finding.file
    return f"{finding.file}:{finding.line}"
