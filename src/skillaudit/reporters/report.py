"""Flatten a run state into a report payload."""

from datetime import UTC, datetime

from skillaudit.parser.models import AnalysisState, VulnerabilityReport

DEFAULT_REPORT_TITLE = "Vulnerability Report"


def build_report(
    state: AnalysisState,
    *,
    title: str = DEFAULT_REPORT_TITLE,
    now: datetime | None = None,
) -> VulnerabilityReport:
    """Collect every finding in iteration order, then finding order."""
    findings = [finding for iteration in state.iterations for finding in iteration.findings]
    return VulnerabilityReport(
        title=title,
        generated_at=format_timestamp(now or datetime.now(UTC)),
        findings=findings,
    )


def format_timestamp(moment: datetime) -> str:
    """RFC3339 timestamp in UTC with a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")
