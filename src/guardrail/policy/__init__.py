"""
Policy synthesis for Guardrail.

This package turns a resolved scope, compliance level and exception set into
deny rules:

    - controls: ControlSpec rows and opaque condition templates
    - frameworks: one declarative control table per framework
    - compiler: FrameworkRuleCompiler, which walks a framework table
    - shared: SharedControlCompiler for cross-framework controls
    - override: EmergencyOverrideGate, the global kill-switch
    - assembler: PolicySetAssembler, which merges rules into a manifest

Everything here is pure: same inputs, same rules, no I/O.
"""

from guardrail.policy.assembler import PolicySetAssembler
from guardrail.policy.compiler import FrameworkRuleCompiler
from guardrail.policy.override import EmergencyOverrideGate, GateResult, GateState
from guardrail.policy.shared import SharedControlCompiler

__all__ = [
    "EmergencyOverrideGate",
    "FrameworkRuleCompiler",
    "GateResult",
    "GateState",
    "PolicySetAssembler",
    "SharedControlCompiler",
]
