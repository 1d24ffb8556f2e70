"""skillaudit CLI entry point."""

import asyncio
import json
import logging
from pathlib import Path

import click

from skillaudit import __version__
from skillaudit.config import Config, ProviderSettings
from skillaudit.exceptions import SkillAuditError
from skillaudit.providers.factory import SUPPORTED_PROVIDERS, build_provider
from skillaudit.reporters.markdown import render_report_markdown
from skillaudit.reporters.report import build_report
from skillaudit.reporters.terminal import TerminalReporter
from skillaudit.runner import (
    DEFAULT_ENTRY_FILE,
    DEFAULT_REPORT_OUT,
    DEFAULT_STATE_OUT,
    AuditOptions,
    AuditResult,
    run_audit,
)
from skillaudit.sandbox.policy import ReadScope
from skillaudit.state import load_state, write_text_atomic

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """skillaudit - AI-assisted vulnerability audits for Aiken validators."""


@main.command()
@click.option(
    "--project-root",
    type=click.Path(path_type=Path),
    default=Path("."),
    show_default=True,
    help="Root of the project to audit. Every read is confined to it.",
)
@click.option(
    "--state-out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_STATE_OUT,
    show_default=True,
    help="Where to write the run state document.",
)
@click.option(
    "--report-out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_REPORT_OUT,
    show_default=True,
    help="Where to write the markdown report.",
)
@click.option(
    "--skills-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Directory of vulnerability skill files. Defaults to skills/vulnerabilities "
    "under the project root, falling back to the embedded skills.",
)
@click.option(
    "--provider",
    "provider_name",
    type=str,
    default="scaffold",
    show_default=True,
    help=f"Analysis backend ({', '.join(SUPPORTED_PROVIDERS)}).",
)
@click.option("--endpoint", type=str, default=None, help="Override the provider endpoint URL.")
@click.option("--model", type=str, default=None, help="Override the provider model.")
@click.option(
    "--api-key-env",
    type=str,
    default=None,
    help="Environment variable holding the provider API key.",
)
@click.option(
    "--reasoning-effort",
    type=str,
    default=None,
    help="Reasoning effort hint for OpenAI-compatible backends.",
)
@click.option(
    "--read-scope",
    type=click.Choice([scope.value for scope in ReadScope]),
    default=ReadScope.WORKSPACE.value,
    show_default=True,
    help="workspace: any file under the project root. strict: discovered sources only.",
)
@click.option(
    "--interactive-permissions/--no-interactive-permissions",
    default=False,
    help="Ask before serving each backend read request.",
)
@click.option(
    "--entry-file",
    type=str,
    default=DEFAULT_ENTRY_FILE,
    show_default=True,
    help="Source file to audit when discovery finds none.",
)
@click.option(
    "--validator-context",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Text file with extracted validator context to include in prompts.",
)
@click.option(
    "--ai-logs/--no-ai-logs",
    default=False,
    help="Log every agent step at debug level.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["terminal", "json"]),
    default="terminal",
    help="Output format.",
)
def audit(
    project_root: Path,
    state_out: Path,
    report_out: Path,
    skills_dir: Path | None,
    provider_name: str,
    endpoint: str | None,
    model: str | None,
    api_key_env: str | None,
    reasoning_effort: str | None,
    read_scope: str,
    interactive_permissions: bool,
    entry_file: str,
    validator_context: Path | None,
    ai_logs: bool,
    output_format: str,
) -> None:
    """Audit a project with every vulnerability skill."""
    config = Config.load(log_level="DEBUG" if ai_logs else None)
    settings = ProviderSettings(
        name=provider_name,
        endpoint=endpoint,
        model=model,
        api_key_env=api_key_env,
        reasoning_effort=reasoning_effort,
    )

    try:
        provider = build_provider(settings, config)
        options = AuditOptions(
            project_root=project_root,
            state_out=state_out,
            report_out=report_out,
            skills_dir=skills_dir,
            read_scope=ReadScope(read_scope),
            interactive_permissions=interactive_permissions,
            entry_file=entry_file,
            validator_context=_read_validator_context(validator_context),
        )
        result = asyncio.run(run_audit(options, provider, confirm=_confirm_permission))
    except SkillAuditError as e:
        raise click.ClickException(f"{e.category}: {e}") from e

    if output_format == "terminal":
        TerminalReporter().report(result.state, result.report)
        click.echo(f"State written to {result.state_path}", err=True)
        click.echo(f"Report written to {result.report_path}", err=True)
    else:
        click.echo(json.dumps(_result_payload(result), indent=2))


@main.command()
@click.argument("state_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the report here instead of stdout.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["markdown", "json"]),
    default="markdown",
    help="Output format.",
)
def report(state_path: Path, out: Path | None, output_format: str) -> None:
    """Rebuild the report from a saved state document."""
    Config.load()
    try:
        state = load_state(state_path)
        vulnerability_report = build_report(state)
        if output_format == "markdown":
            rendered = render_report_markdown(vulnerability_report)
        else:
            rendered = vulnerability_report.model_dump_json(indent=2) + "\n"

        if out is None:
            click.echo(rendered, nl=False)
        else:
            write_text_atomic(out, rendered)
            click.echo(f"Report written to {out}", err=True)
    except SkillAuditError as e:
        raise click.ClickException(f"{e.category}: {e}") from e


def _confirm_permission(message: str) -> bool:
    return click.confirm(message, default=False, err=True)


def _read_validator_context(path: Path | None) -> str:
    if path is None:
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Cannot read validator context {path}: {e}") from e


def _result_payload(result: AuditResult) -> dict[str, object]:
    return {
        "state_path": str(result.state_path),
        "report_path": str(result.report_path),
        "state": result.state.model_dump(mode="json"),
        "report": result.report.model_dump(mode="json"),
    }
