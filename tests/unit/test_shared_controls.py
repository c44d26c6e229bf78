"""
Unit tests for shared cross-framework controls.

Tests cover:
- Activation per compliance level
- Session ceilings and approval counts
- Override-driven activation below the level threshold
"""

import pytest

from guardrail.policy import SharedControlCompiler
from guardrail.policy.shared import (
    SESSION_CEILING_HOURS,
    max_session_hours,
    required_approvals,
)
from guardrail.schema import ComplianceLevel, SecurityControlOverrides


@pytest.fixture
def compiler() -> SharedControlCompiler:
    return SharedControlCompiler()


def control_ids(rules) -> list[str]:
    return [rule.control_id for rule in rules]


class TestActivation:
    def test_baseline(self, compiler: SharedControlCompiler) -> None:
        rules = compiler.compile(ComplianceLevel.BASELINE)
        assert control_ids(rules) == ["session-duration"]

    def test_medium(self, compiler: SharedControlCompiler) -> None:
        rules = compiler.compile(ComplianceLevel.MEDIUM)
        assert control_ids(rules) == ["mfa-enforcement", "session-duration"]

    def test_high(self, compiler: SharedControlCompiler) -> None:
        rules = compiler.compile(ComplianceLevel.HIGH)
        assert control_ids(rules) == [
            "mfa-enforcement",
            "session-duration",
            "approval-required",
            "segregation-of-duties-self-modification",
            "segregation-of-duties-approver-deploy",
        ]

    def test_maximum_adds_time_of_day(self, compiler: SharedControlCompiler) -> None:
        rules = compiler.compile(ComplianceLevel.MAXIMUM)
        assert control_ids(rules)[-1] == "time-of-day"
        assert len(rules) == 6

    def test_rule_names_prefixed(self, compiler: SharedControlCompiler) -> None:
        rules = compiler.compile(ComplianceLevel.HIGH)
        assert all(rule.name == f"shared-{rule.control_id}" for rule in rules)
        assert all(rule.category == "shared" for rule in rules)

    def test_overrides_force_controls_at_baseline(self, compiler: SharedControlCompiler) -> None:
        overrides = SecurityControlOverrides(enforce_mfa=True, require_approval=True)
        rules = compiler.compile(ComplianceLevel.BASELINE, overrides=overrides)
        assert control_ids(rules) == [
            "mfa-enforcement",
            "session-duration",
            "approval-required",
        ]

    def test_exceptions_propagated(self, compiler: SharedControlCompiler) -> None:
        exceptions = ["principalSet://goog/group/sec@x.com"]
        rules = compiler.compile(ComplianceLevel.MEDIUM, exceptions=exceptions)
        assert all(rule.exception_principals == tuple(exceptions) for rule in rules)


class TestSession:
    def test_ceilings(self) -> None:
        assert SESSION_CEILING_HOURS[ComplianceLevel.MAXIMUM] == 4
        assert SESSION_CEILING_HOURS[ComplianceLevel.BASELINE] == 24

    def test_configured_below_ceiling(self) -> None:
        assert max_session_hours(ComplianceLevel.HIGH, 6) == 6

    def test_configured_above_ceiling_capped(self) -> None:
        assert max_session_hours(ComplianceLevel.MAXIMUM, 12) == 4

    def test_condition_uses_seconds(self, compiler: SharedControlCompiler) -> None:
        rules = compiler.compile(
            ComplianceLevel.HIGH,
            overrides=SecurityControlOverrides(max_session_hours=6),
        )
        session = next(r for r in rules if r.control_id == "session-duration")
        assert 'duration("21600s")' in session.condition


class TestApprovals:
    def test_defaults(self) -> None:
        assert required_approvals(ComplianceLevel.MAXIMUM) == 2
        assert required_approvals(ComplianceLevel.HIGH) == 1

    def test_configured(self) -> None:
        assert required_approvals(ComplianceLevel.HIGH, 3) == 3

    def test_condition(self, compiler: SharedControlCompiler) -> None:
        rules = compiler.compile(ComplianceLevel.MAXIMUM)
        approval = next(r for r in rules if r.control_id == "approval-required")
        assert approval.condition.endswith("< 2")


class TestTimeOfDay:
    def test_window(self, compiler: SharedControlCompiler) -> None:
        rules = compiler.compile(ComplianceLevel.MAXIMUM)
        condition = rules[-1].condition
        assert 'getHours("UTC") < 8' in condition
        assert "getDayOfWeek" not in condition

    def test_weekends_blocked(self, compiler: SharedControlCompiler) -> None:
        rules = compiler.compile(
            ComplianceLevel.MAXIMUM,
            overrides=SecurityControlOverrides(block_weekends=True, timezone="America/New_York"),
        )
        condition = rules[-1].condition
        assert 'getDayOfWeek("America/New_York") in [0, 6]' in condition
        assert " || " in condition
