"""
Compilation engine for Guardrail.

The Compiler is the orchestration layer that turns a CompilationConfig into a
PolicyManifest. It coordinates between:
- ScopeResolver: canonical policy parent
- EmergencyOverrideGate: validated before anything is compiled
- ExceptionPrincipalResolver: who is exempt
- ComplianceLevelCalculator: how strict to be
- FrameworkRuleCompiler / SharedControlCompiler: which rules apply
- PolicySetAssembler: merged, conflict-checked output

Compilation Flow:
    1. Resolve the scope (ValidationError on malformed ids)
    2. Validate the emergency override (EmergencyOverrideError)
    3. Resolve exception principals (ConfigurationError when fail-closed)
    4. Compute the compliance level
    5. Compile every enabled framework, then the shared controls
    6. Merge, pass through the override gate, build the manifest

Design Principles:
    - Pure: evaluation time is an input, the clock is never read
    - Fail-closed: every error aborts compilation, nothing is retried
    - Deterministic: same config, same manifest, byte for byte
"""

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

import structlog

from guardrail.audit import AuditSink, StructlogAuditSink
from guardrail.errors import ERROR_VALIDATION_EVALUATION_TIME, ValidationError
from guardrail.levels import ComplianceLevelCalculator
from guardrail.logging import scope_context
from guardrail.policy import (
    EmergencyOverrideGate,
    FrameworkRuleCompiler,
    PolicySetAssembler,
    SharedControlCompiler,
)
from guardrail.principals import ExceptionPrincipalResolver
from guardrail.schema import CompilationConfig, DenyRule, Framework, PolicyManifest, Scope
from guardrail.scope import ScopeResolver


logger = structlog.get_logger()


class Compiler:
    """
    Main compilation engine for Guardrail.

    Usage:
        compiler = Compiler()
        manifest = compiler.compile(config)
        print(manifest.to_json())

    Attributes:
        audit_sink: Receives emergency override activations
    """

    def __init__(
        self,
        audit_sink: AuditSink | None = None,
        framework_compiler: FrameworkRuleCompiler | None = None,
        shared_compiler: SharedControlCompiler | None = None,
    ) -> None:
        """
        Initialize the compiler.

        Args:
            audit_sink: Audit sink for override activations (defaults to the
                structured log)
            framework_compiler: Framework compiler (defaults to built-in tables)
            shared_compiler: Shared control compiler (defaults to built-in table)
        """
        self.audit_sink = audit_sink if audit_sink is not None else StructlogAuditSink()
        self.scope_resolver = ScopeResolver()
        self.principal_resolver = ExceptionPrincipalResolver()
        self.level_calculator = ComplianceLevelCalculator()
        self.framework_compiler = framework_compiler or FrameworkRuleCompiler()
        self.shared_compiler = shared_compiler or SharedControlCompiler()
        self.assembler = PolicySetAssembler()

    def compile(self, config: CompilationConfig) -> PolicyManifest:
        """
        Compile one scope.

        Raises:
            ValidationError: Malformed scope, email, or missing evaluation time
            EmergencyOverrideError: Override requested with an insufficient reason
            ConfigurationError: No break-glass principal while enforcing
            ConflictError: Two rules share a name with different content
        """
        scope = self.scope_resolver.resolve(config.scope)
        with scope_context(scope.id, scope.tier.value):
            return self._compile_scope(config, scope)

    def _compile_scope(self, config: CompilationConfig, scope: Scope) -> PolicyManifest:
        scope_id = scope.id

        evaluation_time = config.evaluation_time
        if evaluation_time is None:
            raise ValidationError(
                message="evaluation_time is required",
                code=ERROR_VALIDATION_EVALUATION_TIME,
                field_name="evaluation_time",
                value=None,
                scope_id=scope_id,
                suggestion="Pass the evaluation time explicitly (ISO 8601, UTC)",
            )

        gate = EmergencyOverrideGate(
            config.emergency_override,
            scope_id=scope_id,
            audit_sink=self.audit_sink,
        )

        exceptions = self.principal_resolver.resolve(
            config.exception_sources,
            evaluation_time=evaluation_time,
            override_active=gate.active,
            scope_id=scope_id,
        )

        frameworks = config.enabled_frameworks
        level = self.level_calculator.calculate(frameworks, config.data_classification)
        logger.debug(
            "compilation_started",
            frameworks=[framework.value for framework in frameworks],
            level=level.value,
            exception_count=len(exceptions),
        )

        framework_rules: dict[Framework, list[DenyRule]] = {}
        for framework in frameworks:
            framework_rules[framework] = self.framework_compiler.compile(
                framework,
                level,
                params=config.framework_params.for_framework(framework),
                exceptions=exceptions,
                classification=config.data_classification,
                overrides=config.security_control_overrides,
                scope_id=scope_id,
            )

        shared_rules: list[DenyRule] = []
        if frameworks:
            shared_rules = self.shared_compiler.compile(
                level,
                overrides=config.security_control_overrides,
                exceptions=exceptions,
                classification=config.data_classification,
                scope_id=scope_id,
            )
        else:
            logger.info("no_frameworks_enabled", level=level.value)

        merged = self.assembler.merge(framework_rules, shared_rules, scope_id=scope_id)
        gate_result = gate.apply(merged, evaluation_time)

        manifest = self.assembler.build(
            scope=scope,
            gate_result=gate_result,
            compliance_level=level,
            data_classification=config.data_classification,
            enabled_frameworks=frameworks,
            evaluation_time=evaluation_time,
            emergency_override_reason=gate.reason,
            exception_principal_count=len(exceptions),
        )
        logger.info(
            "policy_set_compiled",
            level=level.value,
            rule_count=manifest.summary.total_rules,
            override_active=manifest.policy_set.emergency_override_active,
        )
        return manifest

    def compile_many(
        self,
        configs: Sequence[CompilationConfig],
        max_workers: int | None = None,
    ) -> list[PolicyManifest]:
        """
        Compile independent scopes concurrently.

        Compilations share no state, so they run on a thread pool. The result
        is in application order: organizations, then folders, then projects,
        input order within a tier. The first failure is raised.
        """
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            manifests = list(pool.map(self.compile, configs))
        return order_for_application(manifests)


def order_for_application(manifests: Sequence[PolicyManifest]) -> list[PolicyManifest]:
    """Sort manifests so parents are applied before their descendants."""
    return sorted(manifests, key=lambda manifest: manifest.policy_set.scope.tier.rank)


def compile_policy_set(
    config: CompilationConfig,
    audit_sink: AuditSink | None = None,
) -> PolicyManifest:
    """Compile one config with a default Compiler."""
    return Compiler(audit_sink=audit_sink).compile(config)
