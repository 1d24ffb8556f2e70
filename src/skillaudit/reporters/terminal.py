"""Rich terminal reporter for audit runs."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from skillaudit.parser.models import AnalysisState, Finding, Severity, VulnerabilityReport
from skillaudit.reporters.markdown import format_location

SEVERITY_COLORS: dict[Severity, str] = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
}

SEVERITY_SYMBOLS: dict[Severity, str] = {
    Severity.CRITICAL: "[!]",
    Severity.HIGH: "[H]",
    Severity.MEDIUM: "[M]",
    Severity.LOW: "[L]",
}

_UNKNOWN_STYLE = "dim"
_UNKNOWN_SYMBOL = "[?]"


class TerminalReporter:
    """Format and display audit results in the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def report(self, state: AnalysisState, report: VulnerabilityReport) -> None:
        """Display a full audit report."""
        self._print_header(state, report)
        self._print_iterations_table(state)
        self._print_findings_table(report)
        self._print_summary(report)

    def _print_header(self, state: AnalysisState, report: VulnerabilityReport) -> None:
        header = Text()
        header.append(f"Provider: {state.provider.name}", style="bold")
        if state.provider.model:
            header.append(f" ({state.provider.model})")
        header.append(f"\nRead scope: {state.permission_prompt.read_scope}\n")
        header.append(f"Source files: {len(state.source_files)}\n")
        header.append(f"Generated: {report.generated_at}")
        self._console.print(Panel(header, title=Text(report.title)))

    def _print_iterations_table(self, state: AnalysisState) -> None:
        table = Table(title="Skills", expand=True)
        table.add_column("Skill", ratio=2)
        table.add_column("Status", width=12)
        table.add_column("Findings", width=9, justify="right")

        for iteration in state.iterations:
            table.add_row(
                Text(iteration.skill_id),
                Text(iteration.status),
                str(len(iteration.findings)),
            )
        self._console.print(table)

    def _print_findings_table(self, report: VulnerabilityReport) -> None:
        """Print findings as a formatted table, most severe first."""
        if not report.findings:
            self._console.print("\n[bold green]No findings.[/bold green]\n")
            return

        sorted_findings = sorted(report.findings, key=_severity_rank)

        table = Table(title="Findings", show_lines=True, expand=True)
        table.add_column("Severity", width=12)
        table.add_column("Title", ratio=2)
        table.add_column("Location", ratio=1)

        for finding in sorted_findings:
            table.add_row(
                _severity_text(finding.severity),
                Text(finding.title),
                Text(format_location(finding)),
            )

        self._console.print(table)

        for finding in sorted_findings:
            if _as_severity(finding.severity) in (Severity.CRITICAL, Severity.HIGH):
                self._print_finding_detail(finding)

    def _print_finding_detail(self, finding: Finding) -> None:
        content = Text()
        content.append(f"{finding.summary}\n")
        if finding.evidence:
            content.append("\nEvidence:\n", style="bold")
            for item in finding.evidence:
                content.append(f"  - {item}\n")
        if finding.recommendation:
            content.append("\nRecommendation: ", style="bold")
            content.append(finding.recommendation)
        self._console.print(
            Panel(
                content,
                title=Text(finding.title),
                border_style=_severity_style(finding.severity),
            )
        )

    def _print_summary(self, report: VulnerabilityReport) -> None:
        summary = Text()
        summary.append(f"Total Findings: {len(report.findings)}", style="bold")
        for sev in Severity:
            count = sum(1 for f in report.findings if _as_severity(f.severity) == sev)
            if count > 0:
                summary.append(f"\n  {sev.value}: {count}", style=SEVERITY_COLORS[sev])
        other = sum(1 for f in report.findings if _as_severity(f.severity) is None)
        if other:
            summary.append(f"\n  other: {other}", style=_UNKNOWN_STYLE)
        self._console.print(Panel(summary, title="Summary"))


def _as_severity(value: str) -> Severity | None:
    try:
        return Severity(value.lower())
    except ValueError:
        return None


def _severity_rank(finding: Finding) -> int:
    order = list(Severity)
    severity = _as_severity(finding.severity)
    return order.index(severity) if severity is not None else len(order)


def _severity_style(value: str) -> str:
    severity = _as_severity(value)
    return SEVERITY_COLORS[severity] if severity is not None else _UNKNOWN_STYLE


def _severity_text(value: str) -> Text:
    severity = _as_severity(value)
    symbol = SEVERITY_SYMBOLS[severity] if severity is not None else _UNKNOWN_SYMBOL
    return Text(f"{symbol} {value.upper()}", style=_severity_style(value))
