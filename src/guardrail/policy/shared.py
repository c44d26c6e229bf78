"""
Shared cross-framework controls.

These controls depend only on the compliance level and the operator's
security control overrides, never on which frameworks are enabled. The
orchestrator only runs them when at least one framework is enabled.
"""

from collections.abc import Iterable
from typing import Any

import structlog

from guardrail.policy.controls import (
    CONDITION_APPROVALS_MISSING,
    CONDITION_APPROVER_DEPLOYING,
    CONDITION_MFA_MISSING,
    CONDITION_OUTSIDE_HOURS,
    CONDITION_SELF_MODIFICATION,
    CONDITION_SESSION_EXPIRED,
    CONDITION_WEEKEND,
    DEPLOY_PERMISSIONS,
    IAM_POLICY_PERMISSIONS,
    KEY_DESTRUCTION_PERMISSIONS,
    SERVICE_ACCOUNT_KEY_PERMISSIONS,
    ControlContext,
    ControlSpec,
    any_of,
    at_least,
    base_condition_params,
)
from guardrail.schema import (
    ComplianceLevel,
    DataClassification,
    DenyRule,
    SecurityControlOverrides,
)


logger = structlog.get_logger()

SHARED_CATEGORY = "shared"

SESSION_CEILING_HOURS: dict[ComplianceLevel, int] = {
    ComplianceLevel.MAXIMUM: 4,
    ComplianceLevel.HIGH: 8,
    ComplianceLevel.MEDIUM: 12,
    ComplianceLevel.BASELINE: 24,
}

HIGH_RISK_PERMISSIONS = (
    *IAM_POLICY_PERMISSIONS,
    *SERVICE_ACCOUNT_KEY_PERMISSIONS,
    *KEY_DESTRUCTION_PERMISSIONS,
)


def max_session_hours(level: ComplianceLevel, configured: int | None = None) -> int:
    """Session cap: the configured value, never above the level's ceiling."""
    ceiling = SESSION_CEILING_HOURS[level]
    if configured is None:
        return ceiling
    return min(configured, ceiling)


def required_approvals(level: ComplianceLevel, configured: int | None = None) -> int:
    if configured is not None:
        return configured
    return 2 if level is ComplianceLevel.MAXIMUM else 1


# =============================================================================
# Activation predicates and parameter builders
# =============================================================================


def _mfa_required(ctx: ControlContext) -> bool:
    return ctx.level > ComplianceLevel.BASELINE or ctx.overrides.enforce_mfa


def _approval_required(ctx: ControlContext) -> bool:
    return ctx.level >= ComplianceLevel.HIGH or ctx.overrides.require_approval


def _session_params(ctx: ControlContext) -> dict[str, Any]:
    hours = max_session_hours(ctx.level, ctx.overrides.max_session_hours)
    return {"session_seconds": hours * 3600}


def _approval_params(ctx: ControlContext) -> dict[str, Any]:
    return {
        "required_approvals": required_approvals(ctx.level, ctx.overrides.required_approvals)
    }


def _time_window(ctx: ControlContext) -> dict[str, Any]:
    template = CONDITION_OUTSIDE_HOURS
    if ctx.overrides.block_weekends:
        template = any_of(CONDITION_OUTSIDE_HOURS, CONDITION_WEEKEND)
    return {"window": template.format(**base_condition_params(ctx))}


CONTROLS: tuple[ControlSpec, ...] = (
    ControlSpec(
        control_id="mfa-enforcement",
        reference="MFA",
        title="High-risk operations require a multi-factor session",
        permissions=HIGH_RISK_PERMISSIONS,
        condition=CONDITION_MFA_MISSING,
        active_when=_mfa_required,
    ),
    ControlSpec(
        control_id="session-duration",
        reference="SESSION",
        title="High-risk operations require a recently authenticated session",
        permissions=HIGH_RISK_PERMISSIONS,
        condition=CONDITION_SESSION_EXPIRED,
        condition_params=_session_params,
    ),
    ControlSpec(
        control_id="approval-required",
        reference="APPROVAL",
        title="High-risk operations require recorded approvals",
        permissions=(*HIGH_RISK_PERMISSIONS, *DEPLOY_PERMISSIONS),
        condition=CONDITION_APPROVALS_MISSING,
        active_when=_approval_required,
        condition_params=_approval_params,
    ),
    ControlSpec(
        control_id="segregation-of-duties-self-modification",
        reference="SOD",
        title="Principals may not modify their own bindings or keys",
        permissions=(
            "iam.googleapis.com/serviceAccounts.setIamPolicy",
            *SERVICE_ACCOUNT_KEY_PERMISSIONS,
        ),
        condition=CONDITION_SELF_MODIFICATION,
        active_when=at_least(ComplianceLevel.HIGH),
    ),
    ControlSpec(
        control_id="segregation-of-duties-approver-deploy",
        reference="SOD",
        title="Change approvers may not also deploy",
        permissions=DEPLOY_PERMISSIONS,
        condition=CONDITION_APPROVER_DEPLOYING,
        active_when=at_least(ComplianceLevel.HIGH),
    ),
    ControlSpec(
        control_id="time-of-day",
        reference="TIME",
        title="High-risk operations only inside allowed hours",
        permissions=(*HIGH_RISK_PERMISSIONS, *DEPLOY_PERMISSIONS),
        condition="{window}",
        active_when=at_least(ComplianceLevel.MAXIMUM),
        condition_params=_time_window,
    ),
)


class SharedControlCompiler:
    """
    Compiles the shared control table.

    Usage:
        rules = SharedControlCompiler().compile(ComplianceLevel.HIGH, overrides, exceptions)
    """

    def __init__(self, controls: tuple[ControlSpec, ...] = CONTROLS) -> None:
        self.controls = controls

    def compile(
        self,
        level: ComplianceLevel,
        overrides: SecurityControlOverrides | None = None,
        exceptions: Iterable[str] = (),
        classification: DataClassification = DataClassification.PUBLIC,
        scope_id: str | None = None,
    ) -> list[DenyRule]:
        ctx = ControlContext(
            level=level,
            classification=classification,
            overrides=overrides or SecurityControlOverrides(),
        )
        exception_principals = tuple(exceptions)
        rules = [
            spec.to_rule(SHARED_CATEGORY, ctx, exception_principals)
            for spec in self.controls
            if spec.is_active(ctx)
        ]
        logger.debug(
            "shared_controls_compiled",
            level=level.value,
            rule_count=len(rules),
            scope_id=scope_id,
        )
        return rules
