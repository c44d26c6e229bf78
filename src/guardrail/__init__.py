"""
Guardrail - compile declarative compliance choices into auditable deny policies.

Guardrail turns a small set of choices (which regulatory frameworks apply, how
sensitive the data is, who needs emergency bypass) into a deterministic set of
deny rules for an organization, folder or project. It provides:
- Exception principal resolution with break-glass fail-closed checks
- A single ordered compliance level from frameworks and classification
- Declarative per-framework and shared control tables
- An emergency override gate that always leaves an audit trail

Example usage:
    $ guardrail compile deployments/prod/app.yaml --out manifest.json
    $ guardrail plan deployments/prod/app.yaml --previous applied.json
    $ guardrail report manifest.json --format markdown
"""

__version__ = "0.1.0"
__author__ = "Guardrail Contributors"

from guardrail.engine import Compiler, compile_policy_set
from guardrail.schema import (
    CompilationConfig,
    ComplianceLevel,
    DataClassification,
    DenyRule,
    Framework,
    PolicyManifest,
    PolicySet,
    load_config,
)

__all__ = [
    "__version__",
    "__author__",
    "CompilationConfig",
    "Compiler",
    "ComplianceLevel",
    "DataClassification",
    "DenyRule",
    "Framework",
    "PolicyManifest",
    "PolicySet",
    "compile_policy_set",
    "load_config",
]
