"""SOC 2 trust services criteria controls."""

from collections.abc import Callable

from guardrail.policy.controls import (
    AUDIT_LOG_PERMISSIONS,
    CONDITION_OUTSIDE_HOURS,
    CONDITION_UNCLASSIFIED,
    DEPLOY_PERMISSIONS,
    SERVICE_ACCOUNT_KEY_PERMISSIONS,
    ControlContext,
    ControlSpec,
    at_least,
)
from guardrail.schema import ComplianceLevel, TrustCriterion


def criterion(wanted: TrustCriterion) -> Callable[[ControlContext], bool]:
    def predicate(ctx: ControlContext) -> bool:
        return wanted in ctx.params.trust_criteria

    return predicate


CONTROLS: tuple[ControlSpec, ...] = (
    ControlSpec(
        control_id="cc6-logical-access",
        reference="CC6.1",
        title="Logical access: custom roles and long-lived keys are restricted",
        permissions=(
            "iam.googleapis.com/roles.create",
            "iam.googleapis.com/roles.update",
            *SERVICE_ACCOUNT_KEY_PERMISSIONS,
        ),
    ),
    ControlSpec(
        control_id="cc7-system-operations",
        reference="CC7.2",
        title="System operations: monitoring and audit trails may not be removed",
        permissions=(
            "monitoring.googleapis.com/alertPolicies.delete",
            *AUDIT_LOG_PERMISSIONS,
        ),
    ),
    ControlSpec(
        control_id="cc8-change-management",
        reference="CC8.1",
        title="Change management: production changes only inside the change window",
        permissions=DEPLOY_PERMISSIONS,
        condition=CONDITION_OUTSIDE_HOURS,
        active_when=at_least(ComplianceLevel.HIGH),
    ),
    ControlSpec(
        control_id="a1-availability",
        reference="A1.2",
        title="Availability: production capacity may not be deleted",
        permissions=(
            "compute.googleapis.com/instances.delete",
            "sqladmin.googleapis.com/instances.delete",
            "storage.googleapis.com/buckets.delete",
        ),
        active_when=criterion(TrustCriterion.AVAILABILITY),
    ),
    ControlSpec(
        control_id="pi1-processing-integrity",
        reference="PI1.4",
        title="Processing integrity: data pipelines may not be torn down",
        permissions=(
            "bigquery.googleapis.com/tables.delete",
            "pubsub.googleapis.com/subscriptions.delete",
            "pubsub.googleapis.com/topics.delete",
        ),
        active_when=criterion(TrustCriterion.PROCESSING_INTEGRITY),
    ),
    ControlSpec(
        control_id="c1-confidentiality",
        reference="C1.1",
        title="Confidentiality: data access grants are restricted",
        permissions=(
            "bigquery.googleapis.com/datasets.setIamPolicy",
            "storage.googleapis.com/buckets.setIamPolicy",
        ),
        active_when=criterion(TrustCriterion.CONFIDENTIALITY),
    ),
    ControlSpec(
        control_id="p1-privacy",
        reference="P4.1",
        title="Privacy: unclassified personal data may not be exported",
        permissions=(
            "bigquery.googleapis.com/tables.export",
            "storage.googleapis.com/objects.setIamPolicy",
        ),
        condition=CONDITION_UNCLASSIFIED,
        active_when=criterion(TrustCriterion.PRIVACY),
    ),
)
