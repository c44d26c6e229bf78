"""GDPR articles with a technical enforcement angle."""

from typing import Any

from guardrail.policy.controls import (
    AUDIT_LOG_PERMISSIONS,
    CONDITION_OUTSIDE_REGIONS,
    CONDITION_UNCLASSIFIED,
    KEY_DESTRUCTION_PERMISSIONS,
    ControlContext,
    ControlSpec,
    param_flag,
)


def _regions(ctx: ControlContext) -> dict[str, Any]:
    return {"regions": ", ".join(f'"{region}"' for region in ctx.params.allowed_regions)}


CONTROLS: tuple[ControlSpec, ...] = (
    ControlSpec(
        control_id="art32-security-of-processing",
        reference="Art. 32",
        title="Encryption keys for personal data may not be destroyed",
        permissions=KEY_DESTRUCTION_PERMISSIONS,
    ),
    ControlSpec(
        control_id="art30-records-of-processing",
        reference="Art. 30",
        title="Records of processing activities may not be removed",
        permissions=AUDIT_LOG_PERMISSIONS,
        active_when=param_flag("is_controller"),
    ),
    ControlSpec(
        control_id="art44-data-transfers",
        reference="Art. 44",
        title="Data stores may only be created in approved regions",
        permissions=(
            "bigquery.googleapis.com/datasets.create",
            "compute.googleapis.com/instances.create",
            "storage.googleapis.com/buckets.create",
        ),
        condition=CONDITION_OUTSIDE_REGIONS,
        condition_params=_regions,
    ),
    ControlSpec(
        control_id="art9-special-categories",
        reference="Art. 9",
        title="Unclassified special-category data may not be exported",
        permissions=(
            "bigquery.googleapis.com/tables.export",
            "bigquery.googleapis.com/tables.getData",
            "storage.googleapis.com/objects.setIamPolicy",
        ),
        condition=CONDITION_UNCLASSIFIED,
        active_when=param_flag("processes_special_categories"),
    ),
)
