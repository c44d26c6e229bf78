"""
JSON report generator for Guardrail.

The JSON report is the manifest itself: rules in emission order plus the
summary fields. It embeds no wall-clock time, so the same input always
produces the same bytes and the applier can diff against applied state.
"""

import json
from typing import Any

from guardrail.schema import PolicyManifest


def generate_json_report(manifest: PolicyManifest, indent: int = 2) -> str:
    """
    Generate a JSON report for a manifest.

    Args:
        manifest: Compiled manifest
        indent: JSON indentation level (default: 2)

    Returns:
        JSON string with the full manifest
    """
    return json.dumps(build_report_dict(manifest), indent=indent)


def build_report_dict(manifest: PolicyManifest) -> dict[str, Any]:
    """
    Build a report dictionary for a manifest.

    Returns:
        The manifest in JSON-compatible form, with the attachment point added
    """
    report = manifest.model_dump(mode="json")
    report["policy_set"]["scope"]["attachment_point"] = manifest.policy_set.scope.attachment_point
    return report
