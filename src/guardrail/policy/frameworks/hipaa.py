"""HIPAA Security Rule safeguards (45 CFR 164)."""

from guardrail.policy.controls import (
    AUDIT_LOG_PERMISSIONS,
    CONDITION_MFA_MISSING,
    ControlSpec,
    param_flag,
)


CONTROLS: tuple[ControlSpec, ...] = (
    ControlSpec(
        control_id="164-312a-access-control",
        reference="164.312(a)",
        title="Access to PHI stores is granted only by exempt principals",
        permissions=(
            "healthcare.googleapis.com/datasets.setIamPolicy",
            "healthcare.googleapis.com/fhirStores.setIamPolicy",
            "healthcare.googleapis.com/dicomStores.setIamPolicy",
        ),
        active_when=param_flag("phi_present"),
    ),
    ControlSpec(
        control_id="164-312b-audit-controls",
        reference="164.312(b)",
        title="Audit controls may not be removed",
        permissions=AUDIT_LOG_PERMISSIONS,
    ),
    ControlSpec(
        control_id="164-312c-integrity",
        reference="164.312(c)",
        title="PHI stores may not be deleted",
        permissions=(
            "healthcare.googleapis.com/datasets.delete",
            "healthcare.googleapis.com/fhirStores.delete",
            "healthcare.googleapis.com/dicomStores.delete",
        ),
        active_when=param_flag("phi_present"),
    ),
    ControlSpec(
        control_id="164-312d-authentication",
        reference="164.312(d)",
        title="PHI export requires a multi-factor session",
        permissions=(
            "healthcare.googleapis.com/fhirStores.export",
            "healthcare.googleapis.com/dicomStores.export",
        ),
        condition=CONDITION_MFA_MISSING,
        active_when=param_flag("phi_present"),
    ),
    ControlSpec(
        control_id="164-312e-transmission-security",
        reference="164.312(e)",
        title="TLS policies may not be weakened",
        permissions=(
            "compute.googleapis.com/sslPolicies.update",
            "compute.googleapis.com/sslPolicies.delete",
        ),
    ),
    ControlSpec(
        control_id="164-308-business-associate",
        reference="164.308(b)",
        title="Business associates may not re-share PHI stores",
        permissions=(
            "healthcare.googleapis.com/datasets.setIamPolicy",
            "healthcare.googleapis.com/consentStores.setIamPolicy",
        ),
        active_when=param_flag("business_associate"),
    ),
)
