"""Tests for the CLI entry point."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from skillaudit.cli import main
from skillaudit.exceptions import NoSkillsFoundError


def _audit_args(project: Path, tmp_path: Path, *extra: str) -> list[str]:
    return [
        "audit",
        "--project-root",
        str(project),
        "--state-out",
        str(tmp_path / "out" / "state.json"),
        "--report-out",
        str(tmp_path / "out" / "vulnerabilities.md"),
        *extra,
    ]


class TestAuditCommand:
    """Tests for the audit command."""

    def test_scaffold_audit_with_embedded_skills(self, project: Path, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, _audit_args(project, tmp_path))

        assert result.exit_code == 0, result.output
        state = json.loads((tmp_path / "out" / "state.json").read_text(encoding="utf-8"))
        assert len(state["iterations"]) == 3
        assert (tmp_path / "out" / "vulnerabilities.md").exists()

    def test_json_output(self, project: Path, tmp_path: Path, write_skill, skill_md) -> None:
        write_skill("001.md", skill_md("001"))
        runner = CliRunner()
        result = runner.invoke(
            main,
            _audit_args(
                project,
                tmp_path,
                "--skills-dir",
                str(tmp_path / "skills"),
                "--format",
                "json",
            ),
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["state"]["iterations"][0]["status"] == "scaffolded"
        assert data["report"]["findings"] == []
        assert data["report"]["title"] == "Vulnerability Report"

    def test_missing_credential_fails_before_writing_state(
        self, project: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        runner = CliRunner()
        result = runner.invoke(main, _audit_args(project, tmp_path, "--provider", "openai"))

        assert result.exit_code != 0
        assert "Configuration error: Missing API key environment variable 'OPENAI_API_KEY'" in (
            result.output
        )
        assert not (tmp_path / "out" / "state.json").exists()

    def test_custom_api_key_env_is_reported(
        self, project: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("TEAM_KEY", raising=False)
        runner = CliRunner()
        result = runner.invoke(
            main,
            _audit_args(project, tmp_path, "--provider", "anthropic", "--api-key-env", "TEAM_KEY"),
        )

        assert result.exit_code != 0
        assert "TEAM_KEY" in result.output

    def test_invalid_endpoint_fails_before_writing_state(
        self, project: Path, tmp_path: Path
    ) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, _audit_args(project, tmp_path, "--provider", "ollama", "--endpoint", "foo")
        )

        assert result.exit_code != 0
        assert "Configuration error: Invalid endpoint 'foo'" in result.output
        assert not (tmp_path / "out" / "state.json").exists()

    def test_unsupported_provider(self, project: Path, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, _audit_args(project, tmp_path, "--provider", "gemini"))

        assert result.exit_code != 0
        assert "Unsupported provider 'gemini'" in result.output

    def test_malformed_skill_is_reported_with_path(
        self, project: Path, tmp_path: Path, write_skill
    ) -> None:
        write_skill("bad.md", "---\nid: x\n")
        runner = CliRunner()
        result = runner.invoke(
            main, _audit_args(project, tmp_path, "--skills-dir", str(tmp_path / "skills"))
        )

        assert result.exit_code != 0
        assert "Skill validation error:" in result.output
        assert "bad.md" in result.output
        assert not (tmp_path / "out" / "state.json").exists()

    def test_invalid_read_scope(self, project: Path, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, _audit_args(project, tmp_path, "--read-scope", "global"))
        assert result.exit_code != 0

    def test_validator_context_file_is_read(
        self, project: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        context_file = tmp_path / "context.txt"
        context_file.write_text("validator vault: spend(datum, redeemer)", encoding="utf-8")
        captured: list[str] = []

        async def fake_run_audit(options, provider, *, confirm=None):
            captured.append(options.validator_context)
            raise NoSkillsFoundError(tmp_path)

        monkeypatch.setattr("skillaudit.cli.run_audit", fake_run_audit)
        runner = CliRunner()
        result = runner.invoke(
            main, _audit_args(project, tmp_path, "--validator-context", str(context_file))
        )

        assert captured == ["validator vault: spend(datum, redeemer)"]
        assert result.exit_code != 0


class TestReportCommand:
    """Tests for rebuilding reports from saved state."""

    @pytest.fixture
    def state_path(self, project: Path, tmp_path: Path) -> Path:
        runner = CliRunner()
        result = runner.invoke(main, _audit_args(project, tmp_path))
        assert result.exit_code == 0, result.output
        return tmp_path / "out" / "state.json"

    def test_markdown_to_stdout(self, state_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["report", str(state_path)])

        assert result.exit_code == 0
        assert result.stdout.startswith("# Vulnerability Report")

    def test_json_to_file(self, state_path: Path, tmp_path: Path) -> None:
        out = tmp_path / "rebuilt" / "report.json"
        runner = CliRunner()
        result = runner.invoke(
            main, ["report", str(state_path), "--format", "json", "--out", str(out)]
        )

        assert result.exit_code == 0
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["findings"] == []
        assert data["generated_at"].endswith("Z")

    def test_invalid_state_document(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text("not json", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["report", str(path)])

        assert result.exit_code != 0
        assert "Persistence error:" in result.output


def test_version() -> None:
    """--version prints the package version."""
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output
