"""
Console report generator for Guardrail.

Displays a compiled manifest in the terminal using Rich: a header panel with
scope, level and override state, a table of rules, and per-category counts.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from guardrail.schema import ComplianceLevel, PolicyManifest


LEVEL_STYLES = {
    ComplianceLevel.BASELINE: "dim",
    ComplianceLevel.MEDIUM: "cyan",
    ComplianceLevel.HIGH: "yellow",
    ComplianceLevel.MAXIMUM: "bold red",
}


def generate_console_report(
    manifest: PolicyManifest,
    console: Console | None = None,
    verbose: bool = False,
) -> None:
    """
    Print a console report for a manifest.

    Args:
        manifest: Compiled manifest
        console: Rich Console instance (creates one if not provided)
        verbose: Also show permissions, exceptions and conditions per rule
    """
    if console is None:
        console = Console()

    _print_header(console, manifest)
    console.print()

    if manifest.policy_set.rules:
        _print_rules(console, manifest, verbose)
        console.print()
    elif manifest.summary.emergency_override_active:
        console.print(
            f"[yellow]⊘ {len(manifest.summary.suppressed_rule_names)} rules suppressed "
            f"by emergency override[/yellow]"
        )
        console.print()
    else:
        console.print("[yellow]⚠ No deny rules produced for this scope[/yellow]")
        console.print()

    _print_summary(console, manifest)


def _print_header(console: Console, manifest: PolicyManifest) -> None:
    policy_set = manifest.policy_set
    summary = manifest.summary
    level_style = LEVEL_STYLES[summary.compliance_level]

    header = Text()
    header.append("Scope: ", style="bold")
    header.append(f"{policy_set.scope.canonical_address}\n")
    header.append("Compliance level: ", style="bold")
    header.append(f"{summary.compliance_level.value}\n", style=level_style)
    header.append("Classification: ", style="bold")
    header.append(f"{summary.data_classification.value}\n")
    header.append("Frameworks: ", style="bold")
    header.append(
        ", ".join(framework.value for framework in summary.enabled_frameworks) or "none"
    )
    header.append("\nEvaluated at: ", style="bold")
    header.append(summary.evaluation_time.isoformat(), style="dim")

    if summary.emergency_override_active:
        header.append("\n\nEMERGENCY OVERRIDE ACTIVE: ", style="bold red")
        header.append(summary.emergency_override_reason or "")
        border = "red"
    else:
        border = "green"

    console.print(Panel(header, title="Guardrail Policy Set", border_style=border))


def _print_rules(console: Console, manifest: PolicyManifest, verbose: bool) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("Rule", style="cyan")
    table.add_column("Description")
    table.add_column("Perms", justify="right")
    table.add_column("Conditional", justify="center")

    for index, rule in enumerate(manifest.policy_set.rules, start=1):
        table.add_row(
            str(index),
            rule.name,
            rule.description,
            str(len(rule.denied_permissions)),
            "[green]✓[/green]" if rule.condition else "",
        )

    console.print(table)

    if verbose:
        for rule in manifest.policy_set.rules:
            console.print()
            console.print(f"[bold]{rule.name}[/bold]")
            for permission in rule.denied_permissions:
                console.print(f"  [red]deny[/red] {permission}")
            for principal in rule.exception_principals:
                console.print(f"  [green]except[/green] {principal}")
            if rule.condition:
                console.print(f"  [dim]when {rule.condition}[/dim]")


def _print_summary(console: Console, manifest: PolicyManifest) -> None:
    summary = manifest.summary
    table = Table(title="Summary", show_header=True, header_style="bold")
    table.add_column("Category")
    table.add_column("Rules", justify="right")

    for category, count in summary.rule_count_by_category.items():
        table.add_row(category, str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{summary.total_rules}[/bold]")

    console.print(table)
    console.print(f"Exception principals: {summary.exception_principal_count}")
