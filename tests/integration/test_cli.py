"""
Integration tests for the command-line interface.

Tests cover:
- compile: console, JSON and file output, error reporting
- plan: diff against a previous manifest and exit codes
- report: format selection
- level: signal explanation
"""

import json
from pathlib import Path

from typer.testing import CliRunner

from guardrail import __version__
from guardrail.cli import app
from guardrail.schema import PolicyManifest


runner = CliRunner()


def write(path: Path, content: str) -> Path:
    path.write_text(content)
    return path


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestCompileCommand:
    def test_json_output(self, sample_config_file: Path) -> None:
        result = runner.invoke(app, ["compile", str(sample_config_file), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["summary"]["compliance_level"] == "high"
        assert data["summary"]["total_rules"] == 14

    def test_console_output(self, sample_config_file: Path) -> None:
        result = runner.invoke(app, ["compile", str(sample_config_file)])
        assert result.exit_code == 0
        assert "Guardrail Policy Set" in result.stdout

    def test_out_file(self, sample_config_file: Path, temp_dir: Path) -> None:
        out = temp_dir / "manifest.json"
        result = runner.invoke(app, ["compile", str(sample_config_file), "--out", str(out), "--json"])
        assert result.exit_code == 0
        manifest = PolicyManifest.from_json(out.read_text())
        assert manifest.summary.total_rules == 14

    def test_same_input_same_bytes(self, sample_config_file: Path, temp_dir: Path) -> None:
        first = temp_dir / "first.json"
        second = temp_dir / "second.json"
        runner.invoke(app, ["compile", str(sample_config_file), "-o", str(first), "--json"])
        runner.invoke(app, ["compile", str(sample_config_file), "-o", str(second), "--json"])
        assert first.read_bytes() == second.read_bytes()

    def test_evaluation_time_flag(self, sample_config_file: Path) -> None:
        result = runner.invoke(app, [
            "compile", str(sample_config_file), "--json",
            "--evaluation-time", "2027-06-01T00:00:00+00:00",
        ])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["summary"]["evaluation_time"].startswith("2027-06-01")

    def test_evaluation_time_offset_normalized(
        self, sample_config_file: Path, temp_dir: Path
    ) -> None:
        """An offset timestamp and the same instant in UTC produce the same bytes."""
        from_file = temp_dir / "from_file.json"
        from_flag = temp_dir / "from_flag.json"
        runner.invoke(app, ["compile", str(sample_config_file), "-o", str(from_file), "--json"])
        result = runner.invoke(app, [
            "compile", str(sample_config_file), "-o", str(from_flag), "--json",
            "--evaluation-time", "2026-01-15T14:00:00+02:00",
        ])
        assert result.exit_code == 0
        assert from_flag.read_bytes() == from_file.read_bytes()

    def test_bad_evaluation_time(self, sample_config_file: Path) -> None:
        result = runner.invoke(app, [
            "compile", str(sample_config_file), "--evaluation-time", "yesterday",
        ])
        assert result.exit_code != 0

    def test_missing_break_glass_json_error(self, temp_dir: Path) -> None:
        config = write(temp_dir / "config.yaml", """
scope: {tier: project, id: payments-prod}
enabled_frameworks: [soc2]
evaluation_time: "2026-01-15T12:00:00Z"
""")
        result = runner.invoke(app, ["compile", str(config), "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["error"] is True
        assert data["error_type"] == "MissingBreakGlassError"

    def test_break_glass_state_file(self, temp_dir: Path) -> None:
        config = write(temp_dir / "config.yaml", """
scope: {tier: project, id: payments-prod}
enabled_frameworks: [soc2]
evaluation_time: "2026-01-15T12:00:00Z"
""")
        state = write(temp_dir / "state.yaml", "break_glass_group: oncall@x.com\n")
        result = runner.invoke(app, [
            "compile", str(config), "--json", "--break-glass-state", str(state),
        ])
        assert result.exit_code == 0
        rule = json.loads(result.stdout)["policy_set"]["rules"][0]
        assert rule["exception_principals"] == ["principalSet://goog/group/oncall@x.com"]

    def test_invalid_classification(self, temp_dir: Path) -> None:
        config = write(temp_dir / "config.yaml", """
scope: {tier: project, id: payments-prod}
data_classification: top-secret
""")
        result = runner.invoke(app, ["compile", str(config)])
        assert result.exit_code == 1
        assert "data_classification" in result.stdout

    def test_short_override_reason(self, temp_dir: Path) -> None:
        config = write(temp_dir / "config.yaml", """
scope: {tier: project, id: payments-prod}
enabled_frameworks: [soc2]
exception_sources: {break_glass_group: sec@x.com}
emergency_override: {active: true, reason: bad}
evaluation_time: "2026-01-15T12:00:00Z"
""")
        result = runner.invoke(app, ["compile", str(config), "--json"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_type"] == "EmergencyOverrideError"


class TestPlanCommand:
    def test_plan_without_previous(self, sample_config_file: Path) -> None:
        result = runner.invoke(app, ["plan", str(sample_config_file), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["scope"] == "cloudresourcemanager.googleapis.com/projects/payments-prod"
        assert len(data["to_create"]) == 14
        assert data["to_delete"] == []

    def test_detailed_exitcode(self, sample_config_file: Path, temp_dir: Path) -> None:
        out = temp_dir / "applied.json"
        runner.invoke(app, ["compile", str(sample_config_file), "-o", str(out), "--json"])

        changed = runner.invoke(app, ["plan", str(sample_config_file), "--detailed-exitcode"])
        assert changed.exit_code == 2

        clean = runner.invoke(app, [
            "plan", str(sample_config_file), "--previous", str(out), "--detailed-exitcode",
        ])
        assert clean.exit_code == 0

    def test_invalid_previous_manifest(self, sample_config_file: Path, temp_dir: Path) -> None:
        previous = write(temp_dir / "applied.json", "{\"not\": \"a manifest\"}")
        result = runner.invoke(app, [
            "plan", str(sample_config_file), "--previous", str(previous), "--json",
        ])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_type"] == "manifest_load_error"


class TestReportCommand:
    def test_formats(self, sample_config_file: Path, temp_dir: Path) -> None:
        out = temp_dir / "manifest.json"
        runner.invoke(app, ["compile", str(sample_config_file), "-o", str(out), "--json"])

        markdown = runner.invoke(app, ["report", str(out), "--format", "markdown"])
        assert markdown.exit_code == 0
        assert "### Compliance Deployment Report" in markdown.stdout

        as_json = runner.invoke(app, ["report", str(out), "-f", "json"])
        assert as_json.exit_code == 0
        assert "attachment_point" in json.loads(as_json.stdout)["policy_set"]["scope"]

    def test_unknown_format(self, sample_config_file: Path, temp_dir: Path) -> None:
        out = temp_dir / "manifest.json"
        runner.invoke(app, ["compile", str(sample_config_file), "-o", str(out), "--json"])
        result = runner.invoke(app, ["report", str(out), "--format", "pdf"])
        assert result.exit_code == 1


class TestLevelCommand:
    def test_level(self) -> None:
        result = runner.invoke(app, ["level", "-f", "iso27001", "-f", "soc2", "-c", "internal"])
        assert result.exit_code == 0
        assert "framework:soc2" in result.stdout
        assert "Compliance level: high" in result.stdout

    def test_classification_only(self) -> None:
        result = runner.invoke(app, ["level", "-c", "restricted"])
        assert result.exit_code == 0
        assert "Compliance level: maximum" in result.stdout
