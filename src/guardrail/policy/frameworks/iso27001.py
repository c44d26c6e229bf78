"""ISO/IEC 27001 Annex A controls."""

from guardrail.policy.controls import (
    AUDIT_LOG_PERMISSIONS,
    CONDITION_UNCLASSIFIED,
    FIREWALL_PERMISSIONS,
    IAM_POLICY_PERMISSIONS,
    KEY_DESTRUCTION_PERMISSIONS,
    ControlContext,
    ControlSpec,
    at_least,
)
from guardrail.schema import ComplianceLevel, DataClassification


def _classified_data_needs_tags(ctx: ControlContext) -> bool:
    return (
        ctx.params.require_classification_tags
        and ctx.classification.rank >= DataClassification.INTERNAL.rank
    )


CONTROLS: tuple[ControlSpec, ...] = (
    ControlSpec(
        control_id="access-control",
        reference="A.9",
        title="Access control: only exempt principals may change IAM policy",
        permissions=IAM_POLICY_PERMISSIONS,
    ),
    ControlSpec(
        control_id="cryptography",
        reference="A.10",
        title="Cryptography: key material may not be destroyed or disabled",
        permissions=KEY_DESTRUCTION_PERMISSIONS,
        active_when=at_least(ComplianceLevel.MEDIUM),
    ),
    ControlSpec(
        control_id="operations-security",
        reference="A.12",
        title="Operations security: audit log sinks and buckets are immutable",
        permissions=AUDIT_LOG_PERMISSIONS,
    ),
    ControlSpec(
        control_id="communications-security",
        reference="A.13",
        title="Communications security: network perimeter changes are restricted",
        permissions=FIREWALL_PERMISSIONS,
        active_when=at_least(ComplianceLevel.HIGH),
    ),
    ControlSpec(
        control_id="asset-classification",
        reference="A.8",
        title="Asset management: unclassified storage may not be shared or deleted",
        permissions=(
            "storage.googleapis.com/buckets.delete",
            "storage.googleapis.com/buckets.setIamPolicy",
        ),
        condition=CONDITION_UNCLASSIFIED,
        active_when=_classified_data_needs_tags,
    ),
)
