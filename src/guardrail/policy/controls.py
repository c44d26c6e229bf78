"""
Declarative control definitions.

A ControlSpec describes one deny rule template: the permissions it blocks,
an optional condition template, and a predicate deciding whether it applies.
Framework tables and the shared controls are plain tuples of ControlSpec;
compilers only walk the tables, so adding a control never adds control flow.

Condition templates are opaque boolean expressions for the enforcement point.
They are filled in with str.format and never evaluated here.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from guardrail.schema import (
    PUBLIC_PRINCIPAL_SET,
    ComplianceLevel,
    DataClassification,
    DenyRule,
    SecurityControlOverrides,
)


# =============================================================================
# Condition Templates
# =============================================================================

CONDITION_MFA_MISSING = '!("mfa" in request.auth.claims.amr)'

CONDITION_OUTSIDE_HOURS = (
    'request.time.getHours("{timezone}") < {start_hour} || '
    'request.time.getHours("{timezone}") >= {end_hour}'
)

CONDITION_WEEKEND = 'request.time.getDayOfWeek("{timezone}") in [0, 6]'

CONDITION_TAGGED = 'resource.matchTag("{tag_key}", "{tag_value}")'

CONDITION_UNCLASSIFIED = '!resource.hasTagKey("{classification_tag_key}")'

CONDITION_OUTSIDE_REGIONS = "!(resource.location in [{regions}])"

CONDITION_SESSION_EXPIRED = (
    "request.time - timestamp(request.auth.claims.auth_time) > "
    'duration("{session_seconds}s")'
)

CONDITION_APPROVALS_MISSING = (
    '!has(request.headers["x-approval-count"]) || '
    'int(request.headers["x-approval-count"]) < {required_approvals}'
)

CONDITION_SELF_MODIFICATION = 'resource.name.endsWith(request.auth.principal)'

CONDITION_APPROVER_DEPLOYING = '"{approver_role}" in request.auth.claims.roles'


# =============================================================================
# Permission Groups
# =============================================================================

IAM_POLICY_PERMISSIONS = (
    "cloudresourcemanager.googleapis.com/organizations.setIamPolicy",
    "cloudresourcemanager.googleapis.com/folders.setIamPolicy",
    "cloudresourcemanager.googleapis.com/projects.setIamPolicy",
)

AUDIT_LOG_PERMISSIONS = (
    "logging.googleapis.com/sinks.delete",
    "logging.googleapis.com/sinks.update",
    "logging.googleapis.com/buckets.delete",
    "logging.googleapis.com/buckets.update",
)

KEY_DESTRUCTION_PERMISSIONS = (
    "cloudkms.googleapis.com/cryptoKeyVersions.destroy",
    "cloudkms.googleapis.com/cryptoKeyVersions.update",
)

FIREWALL_PERMISSIONS = (
    "compute.googleapis.com/firewalls.create",
    "compute.googleapis.com/firewalls.update",
    "compute.googleapis.com/firewalls.delete",
)

SERVICE_ACCOUNT_KEY_PERMISSIONS = (
    "iam.googleapis.com/serviceAccountKeys.create",
    "iam.googleapis.com/serviceAccountKeys.upload",
)

DEPLOY_PERMISSIONS = (
    "run.googleapis.com/services.update",
    "container.googleapis.com/clusters.update",
    "cloudfunctions.googleapis.com/functions.update",
)


# =============================================================================
# Control Specification
# =============================================================================


@dataclass(frozen=True)
class ControlContext:
    """
    Everything an activation predicate or parameter builder may look at.

    Attributes:
        level: Effective compliance level
        classification: Declared data classification
        params: Framework parameters (None for shared controls)
        overrides: Security control overrides
    """

    level: ComplianceLevel
    classification: DataClassification
    params: Any = None
    overrides: SecurityControlOverrides = field(default_factory=SecurityControlOverrides)


def always(ctx: ControlContext) -> bool:
    return True


def at_least(level: ComplianceLevel) -> Callable[[ControlContext], bool]:
    """Predicate that holds when the effective level is at or above `level`."""

    def predicate(ctx: ControlContext) -> bool:
        return ctx.level >= level

    return predicate


def param_flag(name: str) -> Callable[[ControlContext], bool]:
    """Predicate that holds when a boolean framework parameter is set."""

    def predicate(ctx: ControlContext) -> bool:
        return bool(getattr(ctx.params, name))

    return predicate


@dataclass(frozen=True)
class ControlSpec:
    """
    One row of a control table.

    Attributes:
        control_id: Identifier, unique within its table; part of the rule name
        reference: Clause or requirement number in the source framework
        title: Short human-readable title
        permissions: Permissions the rule denies
        condition: Optional condition template
        active_when: Activation predicate
        condition_params: Extra template parameters derived from the context
    """

    control_id: str
    reference: str
    title: str
    permissions: tuple[str, ...]
    condition: str | None = None
    active_when: Callable[[ControlContext], bool] = always
    condition_params: Callable[[ControlContext], dict[str, Any]] | None = None

    def is_active(self, ctx: ControlContext) -> bool:
        return self.active_when(ctx)

    def render_condition(self, ctx: ControlContext) -> str | None:
        if self.condition is None:
            return None
        values = base_condition_params(ctx)
        if self.condition_params is not None:
            values.update(self.condition_params(ctx))
        return self.condition.format(**values)

    def to_rule(
        self,
        category: str,
        ctx: ControlContext,
        exception_principals: Iterable[str],
    ) -> DenyRule:
        return DenyRule(
            name=f"{category}-{self.control_id}",
            category=category,
            control_id=self.control_id,
            description=f"{self.reference} {self.title}",
            denied_permissions=self.permissions,
            denied_principals=(PUBLIC_PRINCIPAL_SET,),
            exception_principals=tuple(exception_principals),
            condition=self.render_condition(ctx),
        )


def base_condition_params(ctx: ControlContext) -> dict[str, Any]:
    """Parameters every condition template may reference."""
    overrides = ctx.overrides
    return {
        "timezone": overrides.timezone,
        "start_hour": overrides.allowed_hours_start,
        "end_hour": overrides.allowed_hours_end,
        "classification_tag_key": overrides.classification_tag_key,
        "approver_role": overrides.approver_role,
    }


def any_of(*conditions: str) -> str:
    """Join condition templates so the rule denies when any of them holds."""
    return " || ".join(f"({condition})" for condition in conditions)
