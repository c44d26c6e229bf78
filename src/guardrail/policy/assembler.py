"""
Policy set assembly.

Merges framework rules (frameworks in canonical order) and shared rules into
one ordered sequence, rejecting name collisions whose content differs, then
builds the final PolicyManifest. Identical duplicates collapse, so compiling
the same input twice is always safe.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime

from guardrail.errors import ConflictError
from guardrail.policy.override import GateResult, GateState
from guardrail.policy.shared import SHARED_CATEGORY
from guardrail.schema import (
    ComplianceLevel,
    DataClassification,
    DenyRule,
    Framework,
    PolicyManifest,
    PolicySet,
    PolicySummary,
    Scope,
)


class PolicySetAssembler:
    """Builds PolicySets and their summaries."""

    def merge(
        self,
        framework_rules: Mapping[Framework, Sequence[DenyRule]],
        shared_rules: Sequence[DenyRule] = (),
        scope_id: str | None = None,
    ) -> tuple[DenyRule, ...]:
        """
        Merge rule lists in canonical order.

        Raises:
            ConflictError: If two rules share a name but differ in content
        """
        ordered: list[DenyRule] = []
        for framework in Framework:
            ordered.extend(framework_rules.get(framework, ()))
        ordered.extend(shared_rules)

        merged: dict[str, DenyRule] = {}
        for rule in ordered:
            existing = merged.get(rule.name)
            if existing is None:
                merged[rule.name] = rule
            elif existing != rule:
                raise ConflictError(
                    rule_name=rule.name,
                    categories=[existing.category, rule.category],
                    scope_id=scope_id,
                    suggestion="Control ids must be unique within each control table",
                )
        return tuple(merged.values())

    def build(
        self,
        scope: Scope,
        gate_result: GateResult,
        compliance_level: ComplianceLevel,
        data_classification: DataClassification,
        enabled_frameworks: Sequence[Framework],
        evaluation_time: datetime,
        emergency_override_reason: str | None = None,
        exception_principal_count: int = 0,
    ) -> PolicyManifest:
        """Build the manifest from the rules that passed the override gate."""
        frameworks = Framework.canonical(enabled_frameworks)
        rules = gate_result.emitted
        override_active = gate_result.state is GateState.OVERRIDDEN

        policy_set = PolicySet(
            scope=scope,
            rules=rules,
            compliance_level=compliance_level,
            emergency_override_active=override_active,
            emergency_override_reason=emergency_override_reason,
        )
        summary = PolicySummary(
            enabled_frameworks=frameworks,
            compliance_level=compliance_level,
            data_classification=data_classification,
            total_rules=len(rules),
            rule_count_by_category=count_by_category(rules, frameworks),
            emergency_override_active=override_active,
            emergency_override_reason=emergency_override_reason,
            suppressed_rule_names=gate_result.suppressed_names,
            exception_principal_count=exception_principal_count,
            evaluation_time=evaluation_time,
        )
        return PolicyManifest(policy_set=policy_set, summary=summary)


def count_by_category(
    rules: Sequence[DenyRule],
    frameworks: Sequence[Framework],
) -> dict[str, int]:
    """Rules per category, every enabled framework listed even with zero rules."""
    counts: dict[str, int] = {framework.value: 0 for framework in frameworks}
    if frameworks:
        counts[SHARED_CATEGORY] = 0
    for rule in rules:
        counts[rule.category] = counts.get(rule.category, 0) + 1
    return counts
