"""
Emergency override gate.

Two states: ENFORCING (initial) and OVERRIDDEN. Entering OVERRIDDEN requires
a documented reason longer than MIN_OVERRIDE_REASON_LENGTH characters; a
shorter reason fails compilation instead of leaving the gate enforcing.

While overridden the gate lets every upstream component run, emits no rules,
and reports the activation (with what would have been enforced) to the audit
sink. The gate never expires an override by itself.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import structlog

from guardrail.audit import AuditSink, OverrideActivationEvent
from guardrail.errors import EmergencyOverrideError
from guardrail.schema import DenyRule, EmergencyOverride


logger = structlog.get_logger()

MIN_OVERRIDE_REASON_LENGTH = 10


class GateState(str, Enum):
    ENFORCING = "enforcing"
    OVERRIDDEN = "overridden"


@dataclass(frozen=True)
class GateResult:
    """
    Outcome of passing rules through the gate.

    Attributes:
        state: Gate state when the rules passed through
        emitted: Rules to hand to the assembler
        suppressed: Rules withheld because the override is active
    """

    state: GateState
    emitted: tuple[DenyRule, ...]
    suppressed: tuple[DenyRule, ...] = ()

    @property
    def suppressed_names(self) -> tuple[str, ...]:
        return tuple(rule.name for rule in self.suppressed)


def validate_override(override: EmergencyOverride, scope_id: str | None = None) -> GateState:
    """
    Decide the gate state for an override request.

    Raises:
        EmergencyOverrideError: If the override is active with a reason of
            MIN_OVERRIDE_REASON_LENGTH characters or fewer
    """
    if not override.active:
        return GateState.ENFORCING
    if len(override.reason.strip()) <= MIN_OVERRIDE_REASON_LENGTH:
        raise EmergencyOverrideError(
            reason=override.reason,
            min_length=MIN_OVERRIDE_REASON_LENGTH,
            scope_id=scope_id,
        )
    return GateState.OVERRIDDEN


class EmergencyOverrideGate:
    """
    Applies the emergency override to compiled rules.

    The override is validated on construction, so an invalid request never
    yields a gate.

    Usage:
        gate = EmergencyOverrideGate(config.emergency_override, scope_id="my-project")
        result = gate.apply(rules, evaluation_time)

    Attributes:
        override: The requested override
        state: Current gate state
    """

    def __init__(
        self,
        override: EmergencyOverride,
        scope_id: str | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self.override = override
        self.scope_id = scope_id
        self.audit_sink = audit_sink
        self.state = validate_override(override, scope_id)

    @property
    def active(self) -> bool:
        return self.state is GateState.OVERRIDDEN

    @property
    def reason(self) -> str | None:
        return self.override.reason.strip() if self.active else None

    def apply(self, rules: Sequence[DenyRule], evaluation_time: datetime) -> GateResult:
        """Pass rules through, or suppress all of them while overridden."""
        if not self.active:
            return GateResult(state=self.state, emitted=tuple(rules))

        result = GateResult(state=self.state, emitted=(), suppressed=tuple(rules))
        logger.warning(
            "rules_suppressed_by_emergency_override",
            scope_id=self.scope_id,
            suppressed_rule_count=len(result.suppressed),
        )
        if self.audit_sink is not None:
            self.audit_sink.record_override_activation(
                OverrideActivationEvent(
                    scope_id=self.scope_id or "",
                    reason=self.reason or "",
                    suppressed_rule_names=result.suppressed_names,
                    evaluation_time=evaluation_time,
                )
            )
        return result
