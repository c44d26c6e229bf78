"""Unit tests for compliance level calculation."""

from itertools import combinations

import pytest

from guardrail.levels import (
    CLASSIFICATION_LEVELS,
    ComplianceLevelCalculator,
    calculate_compliance_level,
)
from guardrail.schema import ComplianceLevel, DataClassification, Framework


@pytest.fixture
def calculator() -> ComplianceLevelCalculator:
    return ComplianceLevelCalculator()


class TestCalculate:
    @pytest.mark.parametrize("frameworks,classification,expected", [
        ([], DataClassification.PUBLIC, ComplianceLevel.BASELINE),
        ([Framework.GDPR], DataClassification.PUBLIC, ComplianceLevel.BASELINE),
        ([Framework.ISO27001], DataClassification.INTERNAL, ComplianceLevel.MEDIUM),
        ([Framework.ISO27001], DataClassification.PUBLIC, ComplianceLevel.MEDIUM),
        ([Framework.SOC2], DataClassification.PUBLIC, ComplianceLevel.HIGH),
        ([], DataClassification.CONFIDENTIAL, ComplianceLevel.HIGH),
        ([Framework.PCI_DSS], DataClassification.PUBLIC, ComplianceLevel.MAXIMUM),
        ([Framework.HIPAA], DataClassification.INTERNAL, ComplianceLevel.MAXIMUM),
        ([], DataClassification.RESTRICTED, ComplianceLevel.MAXIMUM),
        ([Framework.ISO27001, Framework.SOC2], DataClassification.INTERNAL, ComplianceLevel.HIGH),
    ])
    def test_levels(
        self,
        calculator: ComplianceLevelCalculator,
        frameworks: list[Framework],
        classification: DataClassification,
        expected: ComplianceLevel,
    ) -> None:
        assert calculator.calculate(frameworks, classification) is expected

    def test_order_of_frameworks_irrelevant(self, calculator: ComplianceLevelCalculator) -> None:
        forward = calculator.calculate([Framework.ISO27001, Framework.SOC2], DataClassification.PUBLIC)
        backward = calculator.calculate([Framework.SOC2, Framework.ISO27001], DataClassification.PUBLIC)
        assert forward is backward

    def test_monotonic_in_frameworks(self, calculator: ComplianceLevelCalculator) -> None:
        """Adding a framework never lowers the level."""
        all_frameworks = list(Framework)
        for classification in DataClassification:
            for size in range(len(all_frameworks)):
                for subset in combinations(all_frameworks, size):
                    base = calculator.calculate(subset, classification)
                    for extra in all_frameworks:
                        assert calculator.calculate([*subset, extra], classification) >= base

    def test_monotonic_in_classification(self, calculator: ComplianceLevelCalculator) -> None:
        ordered = sorted(DataClassification, key=lambda c: c.rank)
        for lower, higher in zip(ordered, ordered[1:]):
            assert calculator.calculate([], higher) >= calculator.calculate([], lower)

    def test_convenience_wrapper(self) -> None:
        assert calculate_compliance_level([Framework.SOC2], DataClassification.PUBLIC) is (
            ComplianceLevel.HIGH
        )

    def test_every_classification_mapped(self) -> None:
        assert set(CLASSIFICATION_LEVELS) == set(DataClassification)


class TestExplain:
    def test_signals_frameworks_first(self, calculator: ComplianceLevelCalculator) -> None:
        signals = calculator.explain([Framework.SOC2, Framework.ISO27001], DataClassification.INTERNAL)
        assert [s.source for s in signals] == [
            "framework:iso27001",
            "framework:soc2",
            "classification:internal",
        ]
        assert signals[1].level is ComplianceLevel.HIGH

    def test_classification_always_listed(self, calculator: ComplianceLevelCalculator) -> None:
        signals = calculator.explain([], DataClassification.PUBLIC)
        assert len(signals) == 1
        assert signals[0].level is ComplianceLevel.BASELINE
