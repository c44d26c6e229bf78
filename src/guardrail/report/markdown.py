"""
Markdown compliance report.

A short report suitable for a pull-request comment or an audit archive:
deployment target, enabled frameworks, compliance level, override state and
the rules that will be enforced.
"""

from guardrail.schema import PolicyManifest


def generate_markdown_report(manifest: PolicyManifest) -> str:
    """Render a manifest as a Markdown compliance report."""
    policy_set = manifest.policy_set
    summary = manifest.summary

    lines = [
        "### Compliance Deployment Report",
        f"**Scope**: `{policy_set.scope.canonical_address}`",
        f"**Evaluated at**: {summary.evaluation_time.isoformat()}",
        "",
        "**Enabled Frameworks**:",
    ]
    if summary.enabled_frameworks:
        lines.extend(f"- {framework.value}" for framework in summary.enabled_frameworks)
    else:
        lines.append("- none")
    lines.extend([
        "",
        f"**Compliance Level**: {summary.compliance_level.value}",
        f"**Data Classification**: {summary.data_classification.value}",
        f"**Exception Principals**: {summary.exception_principal_count}",
        "",
    ])

    if summary.emergency_override_active:
        lines.extend([
            "> ⚠️ **EMERGENCY OVERRIDE ACTIVE**: all compliance controls are suspended.",
            f"> Reason: {summary.emergency_override_reason}",
            f"> Suppressed rules: {len(summary.suppressed_rule_names)}",
            "",
        ])

    if not policy_set.rules:
        lines.append("⚠️ Warning: No deny policies produced!")
        return "\n".join(lines) + "\n"

    lines.extend([
        f"✅ Deny policies: {summary.total_rules}",
        "",
        "| Rule | Description | Permissions | Conditional |",
        "|------|-------------|-------------|-------------|",
    ])
    for rule in policy_set.rules:
        conditional = "yes" if rule.condition else "no"
        lines.append(
            f"| `{rule.name}` | {rule.description} | {len(rule.denied_permissions)} | {conditional} |"
        )
    return "\n".join(lines) + "\n"
