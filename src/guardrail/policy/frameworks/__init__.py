"""
Per-framework control tables.

Adding a framework means adding a module with a CONTROLS tuple and one entry
in CONTROL_TABLES.
"""

from guardrail.policy.controls import ControlSpec
from guardrail.policy.frameworks import gdpr, hipaa, iso27001, pci_dss, soc2
from guardrail.schema import Framework

CONTROL_TABLES: dict[Framework, tuple[ControlSpec, ...]] = {
    Framework.ISO27001: iso27001.CONTROLS,
    Framework.SOC2: soc2.CONTROLS,
    Framework.PCI_DSS: pci_dss.CONTROLS,
    Framework.HIPAA: hipaa.CONTROLS,
    Framework.GDPR: gdpr.CONTROLS,
}

__all__ = [
    "CONTROL_TABLES",
]
