"""Unit tests for audit sinks."""

from datetime import UTC, datetime

from structlog.testing import capture_logs

from guardrail.audit import (
    AuditSink,
    MemoryAuditSink,
    OverrideActivationEvent,
    StructlogAuditSink,
    ViolationEvent,
)


OBSERVED_AT = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def violation(rule_name: str) -> ViolationEvent:
    return ViolationEvent(
        scope_id="payments-prod",
        rule_name=rule_name,
        principal="principal://goog/subject/mallory@x.com",
        permission="cloudresourcemanager.googleapis.com/projects.setIamPolicy",
        observed_at=OBSERVED_AT,
    )


class TestMemoryAuditSink:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(MemoryAuditSink(), AuditSink)
        assert isinstance(StructlogAuditSink(), AuditSink)

    def test_violations_by_rule(self) -> None:
        sink = MemoryAuditSink()
        sink.record_violation(violation("iso27001-access-control"))
        sink.record_violation(violation("iso27001-access-control"))
        sink.record_violation(violation("shared-mfa-enforcement"))
        assert sink.violations_by_rule() == {
            "iso27001-access-control": 2,
            "shared-mfa-enforcement": 1,
        }

    def test_override_activation(self) -> None:
        sink = MemoryAuditSink()
        event = OverrideActivationEvent(
            scope_id="payments-prod",
            reason="INC-4211 regional outage",
            evaluation_time=OBSERVED_AT,
        )
        sink.record_override_activation(event)
        assert sink.override_activations == [event]


class TestStructlogAuditSink:
    def test_override_activation_logged(self) -> None:
        with capture_logs() as logs:
            StructlogAuditSink().record_override_activation(
                OverrideActivationEvent(
                    scope_id="payments-prod",
                    reason="INC-4211 regional outage",
                    suppressed_rule_names=("soc2-a", "shared-b"),
                    evaluation_time=OBSERVED_AT,
                )
            )
        assert logs[0]["event"] == "emergency_override_activated"
        assert logs[0]["log_level"] == "warning"
        assert logs[0]["suppressed_rule_count"] == 2

    def test_violation_logged(self) -> None:
        with capture_logs() as logs:
            StructlogAuditSink().record_violation(violation("shared-mfa-enforcement"))
        assert logs[0]["event"] == "deny_policy_violation"
        assert logs[0]["rule_name"] == "shared-mfa-enforcement"
