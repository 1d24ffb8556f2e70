"""Audit orchestration: one agent loop per skill, state persisted after each."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from skillaudit.discovery import discover_source_files
from skillaudit.parser.models import AnalysisState, VulnerabilityReport
from skillaudit.parser.skill_parser import DEFAULT_SKILLS_DIR, load_skills
from skillaudit.providers.base import AnalysisProvider
from skillaudit.reporters.markdown import render_report_markdown
from skillaudit.reporters.report import build_report
from skillaudit.sandbox.executor import ConfirmCallback
from skillaudit.sandbox.policy import ReadScope, build_permission_policy, canonicalize_project_root
from skillaudit.state import StateStore, write_text_atomic

logger = logging.getLogger(__name__)

DEFAULT_STATE_OUT = Path(".skillaudit/audit/state.json")
DEFAULT_REPORT_OUT = Path(".skillaudit/audit/vulnerabilities.md")
DEFAULT_ENTRY_FILE = "validators/main.ak"


@dataclass
class AuditOptions:
    """Inputs for a single audit run."""

    project_root: Path = field(default_factory=lambda: Path("."))
    state_out: Path = DEFAULT_STATE_OUT
    report_out: Path = DEFAULT_REPORT_OUT
    skills_dir: Path | None = None
    read_scope: ReadScope = ReadScope.WORKSPACE
    interactive_permissions: bool = False
    entry_file: str = DEFAULT_ENTRY_FILE
    validator_context: str = ""


@dataclass
class AuditResult:
    state: AnalysisState
    report: VulnerabilityReport
    state_path: Path
    report_path: Path


async def run_audit(
    options: AuditOptions,
    provider: AnalysisProvider,
    *,
    confirm: ConfirmCallback | None = None,
) -> AuditResult:
    """Run every skill against the project and write the state and report.

    Configuration and skill-definition errors are raised before the state
    file is created. After that, the state document is rewritten once per
    finished skill so an interrupted run keeps every completed iteration.
    """
    project_root = canonicalize_project_root(options.project_root)

    source_files = discover_source_files(project_root)
    if not source_files:
        logger.warning(
            "No .ak source files found under %s, falling back to entry file %s",
            project_root,
            options.entry_file,
        )
        source_files = [options.entry_file]

    policy = build_permission_policy(
        options.read_scope,
        project_root,
        source_files,
        interactive_permissions=options.interactive_permissions,
    )

    if options.skills_dir is None:
        skills = load_skills(project_root / DEFAULT_SKILLS_DIR, use_default=True)
    else:
        # Naming the default directory explicitly keeps the seed fallback.
        skills = load_skills(
            options.skills_dir, use_default=Path(options.skills_dir) == DEFAULT_SKILLS_DIR
        )
    logger.info("Loaded %d skill(s), %d source file(s)", len(skills), len(source_files))

    store = StateStore(
        options.state_out,
        AnalysisState(
            source_files=source_files,
            provider=provider.provider_spec(),
            permission_prompt=policy.to_prompt_spec(),
        ),
    )
    store.initialize()

    for index, skill in enumerate(skills, start=1):
        logger.info("[%d/%d] Analyzing skill %s (%s)", index, len(skills), skill.id, skill.severity)
        iteration = await provider.analyze_skill(
            skill,
            source_files,
            policy,
            validator_context=options.validator_context,
            confirm=confirm,
        )
        store.append(iteration)
        logger.info(
            "Skill %s finished with status %s and %d finding(s)",
            skill.id,
            iteration.status,
            len(iteration.findings),
        )

    report = build_report(store.state)
    write_text_atomic(options.report_out, render_report_markdown(report))
    logger.info("Wrote report to %s", options.report_out)

    return AuditResult(
        state=store.state,
        report=report,
        state_path=options.state_out,
        report_path=options.report_out,
    )
