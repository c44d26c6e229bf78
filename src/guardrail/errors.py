"""
Exception hierarchy for Guardrail.

All Guardrail exceptions inherit from GuardrailError, allowing callers to catch
every compilation failure with a single except clause.

Exception Categories:
    - ValidationError: Malformed input (scope id, email, classification, shape)
    - ConfigurationError: Inputs are well-formed but unsafe to compile
    - ConflictError: Two rules share a name with different content
    - EmergencyOverrideError: Override requested without a sufficient reason

None of these are retried. Compilation is deterministic, so the same input
always produces the same error; only a changed configuration can recover.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Validation errors: 1xxx
ERROR_VALIDATION = 1001
ERROR_VALIDATION_SCOPE = 1002
ERROR_VALIDATION_EMAIL = 1003
ERROR_VALIDATION_CLASSIFICATION = 1004
ERROR_VALIDATION_CONFIG = 1005
ERROR_VALIDATION_EVALUATION_TIME = 1006

# Configuration errors: 2xxx
ERROR_CONFIGURATION = 2001
ERROR_CONFIGURATION_BREAK_GLASS = 2002

# Conflict errors: 3xxx
ERROR_CONFLICT_RULE_NAME = 3001

# Emergency override errors: 4xxx
ERROR_OVERRIDE_REASON = 4001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class GuardrailError(Exception):
    """
    Base exception for all Guardrail errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
        scope_id: Identifier of the scope being compiled, when known
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)
    scope_id: str | None = None

    def __post_init__(self) -> None:
        """Record the scope id in the context."""
        if self.scope_id is not None:
            self.context["scope_id"] = self.scope_id

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.scope_id:
            parts.append(f" (scope: {self.scope_id})")
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


@dataclass
class ValidationError(GuardrailError):
    """
    Raised when an input value is malformed.

    Always fatal, and always raised before any rule is emitted.

    Attributes:
        field_name: Dotted path of the offending field (e.g. "scope.id")
        value: The rejected value
    """

    field_name: str = ""
    value: Any = None

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Invalid value for {self.field_name}: {self.value!r}"
        if self.code == 0:
            self.code = ERROR_VALIDATION
        super().__post_init__()
        self.context.update({
            "field": self.field_name,
            "value": self.value,
        })


@dataclass
class ScopeValidationError(ValidationError):
    """Raised when a scope identifier does not match its tier's syntax."""

    tier: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Malformed {self.tier} identifier: {self.value!r}"
        if self.code == 0:
            self.code = ERROR_VALIDATION_SCOPE
        if not self.field_name:
            self.field_name = "scope.id"
        super().__post_init__()
        self.context["tier"] = self.tier


@dataclass
class EmailValidationError(ValidationError):
    """Raised when an email-shaped identity is malformed."""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Malformed email address in {self.field_name}: {self.value!r}"
        if self.code == 0:
            self.code = ERROR_VALIDATION_EMAIL
        super().__post_init__()


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigurationError(GuardrailError):
    """
    Raised when the configuration is valid but unsafe to compile.

    The caller must fail closed: no policy set is produced.

    Attributes:
        field_name: The configuration field that needs attention
    """

    field_name: str = ""

    def __post_init__(self) -> None:
        if self.code == 0:
            self.code = ERROR_CONFIGURATION
        super().__post_init__()
        self.context["field"] = self.field_name


@dataclass
class MissingBreakGlassError(ConfigurationError):
    """Raised when no break-glass principal resolves while enforcement is live."""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = (
                "No break-glass principal resolved and emergency override is not active"
            )
        if self.code == 0:
            self.code = ERROR_CONFIGURATION_BREAK_GLASS
        if not self.field_name:
            self.field_name = "exception_sources.break_glass_group"
        if not self.suggestion:
            self.suggestion = (
                "Set exception_sources.break_glass_group or provide a remote "
                "break-glass state"
            )
        super().__post_init__()


# =============================================================================
# Conflict Errors
# =============================================================================


@dataclass
class ConflictError(GuardrailError):
    """
    Raised when two rules resolve to the same name with different content.

    This indicates a defect in the control tables and is never resolved by
    picking one of the candidates.

    Attributes:
        rule_name: The colliding rule name
        categories: Categories of the colliding rules
    """

    rule_name: str = ""
    categories: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Conflicting definitions for rule {self.rule_name!r}"
        if self.code == 0:
            self.code = ERROR_CONFLICT_RULE_NAME
        super().__post_init__()
        self.context.update({
            "rule_name": self.rule_name,
            "categories": self.categories,
        })


# =============================================================================
# Emergency Override Errors
# =============================================================================


@dataclass
class EmergencyOverrideError(GuardrailError):
    """
    Raised when an emergency override is requested with an insufficient reason.

    Attributes:
        reason: The rejected reason
        min_length: The length the reason must exceed
    """

    reason: str = ""
    min_length: int = 0

    def __post_init__(self) -> None:
        if not self.message:
            self.message = (
                f"Emergency override reason must be longer than {self.min_length} "
                f"characters (got {len(self.reason.strip())})"
            )
        if self.code == 0:
            self.code = ERROR_OVERRIDE_REASON
        if not self.suggestion:
            self.suggestion = "Document why enforcement is being suspended"
        super().__post_init__()
        self.context.update({
            "field": "emergency_override.reason",
            "reason": self.reason,
            "min_length": self.min_length,
        })
