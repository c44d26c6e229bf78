"""
Compliance level calculation.

The effective level is the maximum over every signal:

    maximum  HIPAA or PCI DSS enabled, or classification "restricted"
    high     SOC 2 enabled, or classification "confidential"
    medium   ISO 27001 enabled, or classification "internal"
    baseline otherwise

Classification alone can raise the level, even with no framework enabled.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from guardrail.schema import ComplianceLevel, DataClassification, Framework


FRAMEWORK_LEVELS: dict[Framework, ComplianceLevel] = {
    Framework.ISO27001: ComplianceLevel.MEDIUM,
    Framework.SOC2: ComplianceLevel.HIGH,
    Framework.PCI_DSS: ComplianceLevel.MAXIMUM,
    Framework.HIPAA: ComplianceLevel.MAXIMUM,
    # GDPR carries no level of its own; its controls apply at any level
    Framework.GDPR: ComplianceLevel.BASELINE,
}

CLASSIFICATION_LEVELS: dict[DataClassification, ComplianceLevel] = {
    DataClassification.PUBLIC: ComplianceLevel.BASELINE,
    DataClassification.INTERNAL: ComplianceLevel.MEDIUM,
    DataClassification.CONFIDENTIAL: ComplianceLevel.HIGH,
    DataClassification.RESTRICTED: ComplianceLevel.MAXIMUM,
}


@dataclass(frozen=True)
class LevelSignal:
    """One input that contributed to the compliance level."""

    source: str
    level: ComplianceLevel


class ComplianceLevelCalculator:
    """Pure calculator from (frameworks, classification) to ComplianceLevel."""

    def calculate(
        self,
        frameworks: Iterable[Framework],
        classification: DataClassification,
    ) -> ComplianceLevel:
        return max(
            (signal.level for signal in self.explain(frameworks, classification)),
            default=ComplianceLevel.BASELINE,
        )

    def explain(
        self,
        frameworks: Iterable[Framework],
        classification: DataClassification,
    ) -> list[LevelSignal]:
        """List every signal and the level it implies, frameworks first."""
        signals = [
            LevelSignal(source=f"framework:{framework.value}", level=FRAMEWORK_LEVELS[framework])
            for framework in Framework.canonical(frameworks)
        ]
        signals.append(
            LevelSignal(
                source=f"classification:{classification.value}",
                level=CLASSIFICATION_LEVELS[classification],
            )
        )
        return signals


def calculate_compliance_level(
    frameworks: Iterable[Framework],
    classification: DataClassification,
) -> ComplianceLevel:
    """Convenience wrapper around ComplianceLevelCalculator.calculate."""
    return ComplianceLevelCalculator().calculate(frameworks, classification)
