"""
CLI entry point for Guardrail.

This module provides the Typer-based command-line interface for Guardrail.

Commands:
    compile     Compile a scope configuration into a deny-policy manifest
    plan        Show what would change against a previously applied manifest
    report      Render a manifest as a console, JSON or Markdown report
    level       Explain the compliance level for frameworks and classification

Architecture Note:
    The CLI is intentionally thin. It loads files, supplies the evaluation
    time when the configuration omits it, and delegates to the Compiler. The
    engine itself never reads the clock or the filesystem.
"""

import json
import logging
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from guardrail import __version__
from guardrail.applier import ChangeAction, DryRunApplier
from guardrail.breakglass import FileBreakGlassResolver, with_remote_fallback
from guardrail.engine import Compiler
from guardrail.errors import GuardrailError
from guardrail.levels import ComplianceLevelCalculator
from guardrail.logging import bind_context, configure_logging
from guardrail.report import (
    generate_console_report,
    generate_json_report,
    generate_markdown_report,
)
from guardrail.schema import (
    CompilationConfig,
    DataClassification,
    Framework,
    PolicyManifest,
    load_config,
)

# Initialize Typer app with metadata
app = typer.Typer(
    name="guardrail",
    help="Compile compliance choices into auditable deny policies.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

ACTION_STYLES = {
    ChangeAction.CREATE: "[green]+ create[/green]",
    ChangeAction.UPDATE: "[yellow]~ update[/yellow]",
    ChangeAction.DELETE: "[red]- delete[/red]",
    ChangeAction.UNCHANGED: "[dim]  unchanged[/dim]",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]guardrail[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    Guardrail - compliance deny-policy compiler.

    Turns enabled frameworks, data classification and break-glass settings
    into a deterministic set of deny rules for an organization, folder or
    project.
    """
    pass


@app.command("compile")
def compile_command(
    config_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the scope configuration YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--out",
            "-o",
            help="Write the manifest JSON to this file.",
            resolve_path=True,
        ),
    ] = None,
    break_glass_state: Annotated[
        Optional[Path],
        typer.Option(
            "--break-glass-state",
            help="YAML file with remote break-glass state, used when the config has no group.",
            resolve_path=True,
        ),
    ] = None,
    evaluation_time: Annotated[
        Optional[str],
        typer.Option(
            "--evaluation-time",
            help="ISO 8601 evaluation time. Defaults to the config value, else now (UTC).",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print the manifest JSON instead of a console report.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Enable verbose output and debug logging.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Enable debug mode with full error tracebacks.",
        ),
    ] = False,
) -> None:
    """
    Compile a scope configuration into a deny-policy manifest.

    Example:
        $ guardrail compile deployments/prod/app.yaml --out manifest.json
    """
    configure_logging(logging.DEBUG if verbose else logging.WARNING)
    log = bind_context(command="compile", config=str(config_path))

    try:
        config = _prepare_config(config_path, evaluation_time, break_glass_state)
        manifest = Compiler().compile(config)
    except GuardrailError as e:
        log.error("compile_failed", error=e.to_dict())
        _report_error(e, json_output, debug)
        raise typer.Exit(code=1)

    if output is not None:
        output.write_text(manifest.to_json() + "\n")
        if not json_output:
            console.print(f"[dim]Manifest written to {output}[/dim]")

    if json_output:
        print(manifest.to_json())
    else:
        generate_console_report(manifest, console=console, verbose=verbose)


@app.command()
def plan(
    config_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the scope configuration YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    previous: Annotated[
        Optional[Path],
        typer.Option(
            "--previous",
            "-p",
            help="Previously applied manifest JSON. Without it every rule is a create.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    break_glass_state: Annotated[
        Optional[Path],
        typer.Option(
            "--break-glass-state",
            help="YAML file with remote break-glass state.",
            resolve_path=True,
        ),
    ] = None,
    evaluation_time: Annotated[
        Optional[str],
        typer.Option(
            "--evaluation-time",
            help="ISO 8601 evaluation time. Defaults to the config value, else now (UTC).",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the plan in JSON format.",
        ),
    ] = False,
    detailed_exitcode: Annotated[
        bool,
        typer.Option(
            "--detailed-exitcode",
            help="Exit with code 2 when the plan contains changes.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Enable debug mode with full error tracebacks.",
        ),
    ] = False,
) -> None:
    """
    Show what an applier would change to reach the compiled manifest.

    Example:
        $ guardrail plan app.yaml --previous applied.json --detailed-exitcode
    """
    configure_logging(logging.WARNING)

    try:
        config = _prepare_config(config_path, evaluation_time, break_glass_state)
        manifest = Compiler().compile(config)
        applied = []
        if previous is not None:
            applied.append(PolicyManifest.from_json(previous.read_text()))
    except GuardrailError as e:
        _report_error(e, json_output, debug)
        raise typer.Exit(code=1)
    except ValueError as e:
        # pydantic raises ValueError subclasses for a malformed previous manifest
        _report_plain_error("manifest_load_error", f"Invalid previous manifest: {e}", json_output)
        raise typer.Exit(code=1)

    diff = DryRunApplier(applied).plan(manifest)

    if json_output:
        print(json.dumps({
            "scope": manifest.policy_set.scope.canonical_address,
            **diff.model_dump(mode="json"),
        }, indent=2))
    else:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Action")
        table.add_column("Rule", style="cyan")
        for name, action in diff.actions():
            table.add_row(ACTION_STYLES[action], name)
        console.print(f"Plan for [bold]{manifest.policy_set.scope.canonical_address}[/bold]")
        console.print(table)
        console.print(
            f"{len(diff.to_create)} to create, {len(diff.to_update)} to update, "
            f"{len(diff.to_delete)} to delete."
        )

    if detailed_exitcode and diff.has_changes:
        raise typer.Exit(code=2)


@app.command()
def report(
    manifest_path: Annotated[
        Path,
        typer.Argument(
            help="Path to a manifest JSON file produced by `guardrail compile`.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help="Output format: console, json or markdown.",
        ),
    ] = "console",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Show permissions, exceptions and conditions per rule.",
        ),
    ] = False,
) -> None:
    """
    Render a compiled manifest.

    Example:
        $ guardrail report manifest.json --format markdown > report.md
    """
    try:
        manifest = PolicyManifest.from_json(manifest_path.read_text())
    except ValueError as e:
        console.print(f"[red]Invalid manifest: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if format == "json":
        print(generate_json_report(manifest))
    elif format == "markdown":
        print(generate_markdown_report(manifest), end="")
    elif format == "console":
        generate_console_report(manifest, console=console, verbose=verbose)
    else:
        console.print(f"[red]Unknown format: {escape(format)}[/red]")
        raise typer.Exit(code=1)


@app.command()
def level(
    framework: Annotated[
        Optional[list[Framework]],
        typer.Option(
            "--framework",
            "-f",
            help="Enabled framework (repeatable).",
        ),
    ] = None,
    classification: Annotated[
        DataClassification,
        typer.Option(
            "--classification",
            "-c",
            help="Data classification.",
        ),
    ] = DataClassification.PUBLIC,
) -> None:
    """
    Explain the compliance level for a set of frameworks and a classification.

    Example:
        $ guardrail level -f iso27001 -f soc2 -c internal
    """
    calculator = ComplianceLevelCalculator()
    frameworks = framework or []
    signals = calculator.explain(frameworks, classification)
    result = calculator.calculate(frameworks, classification)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Signal")
    table.add_column("Implies")
    for signal in signals:
        table.add_row(signal.source, signal.level.value)
    console.print(table)
    console.print(f"Compliance level: [bold]{result.value}[/bold]")


# =============================================================================
# Helpers
# =============================================================================


def _prepare_config(
    config_path: Path,
    evaluation_time: str | None,
    break_glass_state: Path | None,
) -> CompilationConfig:
    """Load the config and fill in the inputs only the CLI may supply."""
    config = load_config(config_path)

    if evaluation_time is not None:
        config = config.model_copy(update={"evaluation_time": _parse_time(evaluation_time)})
    elif config.evaluation_time is None:
        config = config.model_copy(update={"evaluation_time": datetime.now(UTC)})

    if break_glass_state is not None:
        config = with_remote_fallback(config, FileBreakGlassResolver(break_glass_state))
    return config


def _parse_time(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(
            f"Not an ISO 8601 timestamp: {value}",
            param_hint="--evaluation-time",
        ) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _report_error(error: GuardrailError, json_output: bool, debug: bool) -> None:
    """Print a Guardrail error in the requested format."""
    if json_output:
        output = {"error": True, **error.to_dict()}
        if debug:
            output["traceback"] = traceback.format_exc()
        print(json.dumps(output, indent=2, default=str))
        return

    console.print(f"[red]{escape(str(error))}[/red]")
    if debug:
        console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")


def _report_plain_error(error_type: str, message: str, json_output: bool) -> None:
    if json_output:
        print(json.dumps({"error": True, "error_type": error_type, "message": message}, indent=2))
    else:
        console.print(f"[red]{escape(message)}[/red]")
