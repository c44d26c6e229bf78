"""
Audit sink collaborator.

The engine reports emergency-override activations to an audit sink; the
enforcement side reports deny-policy violations to the same sink. Sinks feed
monitoring dashboards, which live outside this package.

Implementations:
    - StructlogAuditSink: emits structured log events (default)
    - MemoryAuditSink: keeps events in lists, for tests and dry runs
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, ConfigDict


class OverrideActivationEvent(BaseModel):
    """
    Record of an emergency override suspending enforcement for a scope.

    Attributes:
        scope_id: Scope whose rules were suppressed
        reason: Documented reason for the override
        suppressed_rule_names: Rules that would otherwise have been emitted
        evaluation_time: Evaluation time of the compilation
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    scope_id: str
    reason: str
    suppressed_rule_names: tuple[str, ...] = ()
    evaluation_time: datetime


class ViolationEvent(BaseModel):
    """
    A request denied by a compiled rule, as reported by the enforcement point.

    Attributes:
        scope_id: Scope the rule is attached to
        rule_name: Deny rule that matched
        principal: Principal whose request was denied
        permission: Permission that was denied
        observed_at: When the denial happened
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    scope_id: str
    rule_name: str
    principal: str
    permission: str
    observed_at: datetime


@runtime_checkable
class AuditSink(Protocol):
    """Receives audit events for monitoring."""

    def record_override_activation(self, event: OverrideActivationEvent) -> None: ...

    def record_violation(self, event: ViolationEvent) -> None: ...


class StructlogAuditSink:
    """Audit sink that writes events to the structured log."""

    def __init__(self, logger_name: str = "guardrail.audit") -> None:
        self._logger = structlog.get_logger(logger_name)

    def record_override_activation(self, event: OverrideActivationEvent) -> None:
        self._logger.warning(
            "emergency_override_activated",
            scope_id=event.scope_id,
            reason=event.reason,
            suppressed_rule_count=len(event.suppressed_rule_names),
            evaluation_time=event.evaluation_time.isoformat(),
        )

    def record_violation(self, event: ViolationEvent) -> None:
        self._logger.info(
            "deny_policy_violation",
            scope_id=event.scope_id,
            rule_name=event.rule_name,
            principal=event.principal,
            permission=event.permission,
            observed_at=event.observed_at.isoformat(),
        )


class MemoryAuditSink:
    """Audit sink that keeps every event in memory."""

    def __init__(self) -> None:
        self.override_activations: list[OverrideActivationEvent] = []
        self.violations: list[ViolationEvent] = []

    def record_override_activation(self, event: OverrideActivationEvent) -> None:
        self.override_activations.append(event)

    def record_violation(self, event: ViolationEvent) -> None:
        self.violations.append(event)

    def violations_by_rule(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for event in self.violations:
            counts[event.rule_name] = counts.get(event.rule_name, 0) + 1
        return counts
