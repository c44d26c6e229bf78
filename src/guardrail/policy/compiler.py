"""
Framework rule compilation.

FrameworkRuleCompiler is a pure function from (framework, level, params,
exceptions) to an ordered list of DenyRules. All framework knowledge lives in
the control tables; this module only walks them.
"""

from collections.abc import Iterable, Mapping

import structlog

from guardrail.errors import ValidationError
from guardrail.policy.controls import ControlContext, ControlSpec
from guardrail.policy.frameworks import CONTROL_TABLES
from guardrail.schema import (
    ComplianceLevel,
    DataClassification,
    DenyRule,
    Framework,
    FrameworkParams,
    SecurityControlOverrides,
)


logger = structlog.get_logger()


class FrameworkRuleCompiler:
    """
    Compiles one framework's control table into deny rules.

    Usage:
        compiler = FrameworkRuleCompiler()
        rules = compiler.compile(Framework.ISO27001, ComplianceLevel.MEDIUM,
                                 exceptions=["principalSet://goog/group/sec@x.com"])

    Attributes:
        tables: Control table per framework
    """

    def __init__(
        self,
        tables: Mapping[Framework, tuple[ControlSpec, ...]] | None = None,
    ) -> None:
        self.tables = dict(CONTROL_TABLES if tables is None else tables)

    def compile(
        self,
        framework: Framework,
        level: ComplianceLevel,
        params: object | None = None,
        exceptions: Iterable[str] = (),
        classification: DataClassification = DataClassification.PUBLIC,
        overrides: SecurityControlOverrides | None = None,
        scope_id: str | None = None,
    ) -> list[DenyRule]:
        """
        Compile the active controls of a framework.

        Args:
            framework: Framework whose table is compiled
            level: Effective compliance level
            params: Framework parameters (defaults when omitted)
            exceptions: Exception principals, in priority order
            classification: Declared data classification
            overrides: Security control overrides (for condition parameters)
            scope_id: Scope being compiled, for error context

        Returns:
            Rules for active, non-excluded controls in table order

        Raises:
            ValidationError: For an unknown framework or unknown excluded control
        """
        table = self.tables.get(framework)
        if table is None:
            raise ValidationError(
                message=f"No control table for framework: {framework}",
                field_name="enabled_frameworks",
                value=str(framework),
                scope_id=scope_id,
            )

        if params is None:
            params = FrameworkParams().for_framework(framework)

        excluded = set(getattr(params, "exclude_controls", ()))
        unknown = excluded - {spec.control_id for spec in table}
        if unknown:
            raise ValidationError(
                message=f"Unknown {framework.value} controls excluded: {sorted(unknown)}",
                field_name=f"framework_params.{framework.value}.exclude_controls",
                value=sorted(unknown),
                scope_id=scope_id,
                suggestion="Valid controls: " + ", ".join(spec.control_id for spec in table),
            )

        ctx = ControlContext(
            level=level,
            classification=classification,
            params=params,
            overrides=overrides or SecurityControlOverrides(),
        )
        exception_principals = tuple(exceptions)

        rules: list[DenyRule] = []
        for spec in table:
            if spec.control_id in excluded:
                logger.info(
                    "control_excluded",
                    framework=framework.value,
                    control_id=spec.control_id,
                    scope_id=scope_id,
                )
                continue
            if not spec.is_active(ctx):
                continue
            rules.append(spec.to_rule(framework.value, ctx, exception_principals))

        logger.debug(
            "framework_compiled",
            framework=framework.value,
            level=level.value,
            rule_count=len(rules),
            scope_id=scope_id,
        )
        return rules
