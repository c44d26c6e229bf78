"""PCI DSS v4 requirement controls."""

from typing import Any

from guardrail.policy.controls import (
    AUDIT_LOG_PERMISSIONS,
    CONDITION_MFA_MISSING,
    CONDITION_TAGGED,
    FIREWALL_PERMISSIONS,
    IAM_POLICY_PERMISSIONS,
    KEY_DESTRUCTION_PERMISSIONS,
    SERVICE_ACCOUNT_KEY_PERMISSIONS,
    ControlContext,
    ControlSpec,
)


def _cde_tag(ctx: ControlContext) -> dict[str, Any]:
    return {"tag_key": ctx.params.cde_tag_key, "tag_value": ctx.params.cde_tag_value}


def _level_one_merchant(ctx: ControlContext) -> bool:
    return ctx.params.merchant_level == 1


CONTROLS: tuple[ControlSpec, ...] = (
    ControlSpec(
        control_id="req1-network-security",
        reference="Req 1",
        title="Network security controls may not be altered",
        permissions=FIREWALL_PERMISSIONS,
    ),
    ControlSpec(
        control_id="req3-protect-stored-data",
        reference="Req 3",
        title="Keys protecting cardholder data may not be destroyed",
        permissions=KEY_DESTRUCTION_PERMISSIONS,
        condition=CONDITION_TAGGED,
        condition_params=_cde_tag,
    ),
    ControlSpec(
        control_id="req7-restrict-access",
        reference="Req 7",
        title="Access grants require a multi-factor session",
        permissions=IAM_POLICY_PERMISSIONS,
        condition=CONDITION_MFA_MISSING,
    ),
    ControlSpec(
        control_id="req8-authentication",
        reference="Req 8",
        title="Shared and long-lived credentials may not be issued",
        permissions=(
            *SERVICE_ACCOUNT_KEY_PERMISSIONS,
            "iam.googleapis.com/serviceAccounts.actAs",
        ),
    ),
    ControlSpec(
        control_id="req10-audit-logging",
        reference="Req 10",
        title="Audit logs may not be altered or removed",
        permissions=AUDIT_LOG_PERMISSIONS,
    ),
    ControlSpec(
        control_id="req11-security-testing",
        reference="Req 11",
        title="Security findings may not be muted",
        permissions=(
            "securitycenter.googleapis.com/muteconfigs.create",
            "securitycenter.googleapis.com/findings.setMute",
        ),
        active_when=_level_one_merchant,
    ),
)
