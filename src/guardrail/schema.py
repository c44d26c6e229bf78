"""
Schema definitions for Guardrail.

This module defines the Pydantic models used throughout Guardrail:
- CompilationConfig: The declarative compliance choices for one scope
- ExceptionSources: Where exempt principals come from
- DenyRule/PolicySet: The compiled output
- PolicySummary/PolicyManifest: What the applier and reports consume

Design Decisions:
    - Models are immutable (frozen=True) and reject unknown keys
    - Set-like rule fields are stored as sorted tuples so serialization is
      deterministic
    - Naive datetimes are interpreted as UTC
"""

import json
import re
from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from functools import cache
from pathlib import Path
from typing import Any
from urllib.parse import quote
from zoneinfo import available_timezones

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from guardrail.errors import (
    ERROR_VALIDATION_CLASSIFICATION,
    ERROR_VALIDATION_CONFIG,
    ValidationError,
)


PUBLIC_PRINCIPAL_SET = "principalSet://goog/public:all"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# Tag keys, tag values, regions and role names are spliced into condition
# expressions, so quotes, spaces and operators are never allowed.
_CONDITION_TOKEN = re.compile(r"[A-Za-z0-9_./:-]+")


def _condition_token(value: str) -> str:
    if not _CONDITION_TOKEN.fullmatch(value):
        raise ValueError(
            f"{value!r} may only contain letters, digits and the characters _ . / : -"
        )
    return value


@cache
def _known_timezones() -> frozenset[str]:
    return frozenset(available_timezones())


def _timezone_name(value: str) -> str:
    if value != "UTC" and value not in _known_timezones():
        raise ValueError(f"Unknown IANA timezone: {value!r}")
    return value


# =============================================================================
# Enums
# =============================================================================


class ScopeTier(str, Enum):
    """
    A node type in the resource hierarchy.

    Declaration order is application order: an organization-level policy is
    applied before folder-level ones, which come before project-level ones.
    """

    ORGANIZATION = "organization"
    FOLDER = "folder"
    PROJECT = "project"

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    @property
    def collection(self) -> str:
        """Resource manager collection name for this tier."""
        return f"{self.value}s"


class DataClassification(str, Enum):
    """Sensitivity of the data held in the scope, lowest first."""

    PUBLIC = "public"
    INTERNAL = "internal"
    CONFIDENTIAL = "confidential"
    RESTRICTED = "restricted"

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)


class ComplianceLevel(str, Enum):
    """
    Totally ordered strictness tier: baseline < medium < high < maximum.

    Comparison operators follow the tier order rather than string order.
    """

    BASELINE = "baseline"
    MEDIUM = "medium"
    HIGH = "high"
    MAXIMUM = "maximum"

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ComplianceLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ComplianceLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ComplianceLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ComplianceLevel):
            return NotImplemented
        return self.rank >= other.rank


class Framework(str, Enum):
    """
    Supported regulatory frameworks.

    Declaration order is the canonical order used when merging rule lists.
    """

    ISO27001 = "iso27001"
    SOC2 = "soc2"
    PCI_DSS = "pci_dss"
    HIPAA = "hipaa"
    GDPR = "gdpr"

    @classmethod
    def canonical(cls, frameworks: Iterable[Any]) -> tuple["Framework", ...]:
        """Deduplicate and sort frameworks into canonical order."""
        wanted = {cls(f) for f in frameworks}
        return tuple(f for f in cls if f in wanted)


class TrustCriterion(str, Enum):
    """SOC 2 trust services criteria."""

    SECURITY = "security"
    AVAILABILITY = "availability"
    PROCESSING_INTEGRITY = "processing_integrity"
    CONFIDENTIALITY = "confidentiality"
    PRIVACY = "privacy"


# =============================================================================
# Scope Models
# =============================================================================


class ScopeConfig(BaseModel):
    """
    A raw, unvalidated scope declaration.

    Attributes:
        tier: Declared hierarchy tier ("organization", "folder", "project")
        id: Identifier as written in the configuration
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tier: str = Field(..., description="Declared hierarchy tier")
    id: str = Field(..., description="Scope identifier")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_numeric_id(cls, v: Any) -> Any:
        """YAML reads bare organization ids as integers."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class Scope(BaseModel):
    """
    A resolved, canonical scope.

    Attributes:
        tier: Hierarchy tier
        id: Validated identifier (folders keep their "folders/" prefix)
        canonical_address: Full resource name used as the policy parent
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tier: ScopeTier
    id: str
    canonical_address: str

    @property
    def attachment_point(self) -> str:
        """URL-encoded canonical address, as deny policy APIs expect it."""
        return quote(self.canonical_address, safe="")


# =============================================================================
# Exception Source Models
# =============================================================================


class RemoteBreakGlassState(BaseModel):
    """
    Result of looking up break-glass state in a remote store.

    Attributes:
        available: False when the remote store could not be read
        break_glass_group: Group email held by the remote store
        super_admins: Super administrator identities held by the remote store
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    available: bool = True
    break_glass_group: str | None = None
    super_admins: tuple[str, ...] = ()

    @classmethod
    def unavailable(cls) -> "RemoteBreakGlassState":
        """State signalling that the remote store could not be consulted."""
        return cls(available=False)


class WorkloadIdentityBinding(BaseModel):
    """
    A workload-identity pool binding that is exempt from deny rules.

    Attributes:
        provider_id: Identity provider within the pool
        attribute: Attribute selector, e.g. "attribute.repository/acme/infra"
        project_number: Number of the project that owns the pool
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    provider_id: str = Field(..., min_length=1)
    attribute: str = Field(..., min_length=1)
    project_number: str = Field(default="-", min_length=1)

    @field_validator("project_number", mode="before")
    @classmethod
    def coerce_project_number(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class TemporaryExemption(BaseModel):
    """
    A time-bounded exemption for a single principal.

    Attributes:
        principal: Principal string or email address
        expiry: Instant after which the exemption no longer applies
        reason: Why the exemption was granted
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    principal: str = Field(..., min_length=1)
    expiry: datetime
    reason: str = ""

    @field_validator("expiry")
    @classmethod
    def normalize_expiry(cls, v: datetime) -> datetime:
        return _as_utc(v)


class ExceptionSources(BaseModel):
    """
    Every source of exempt principals for one scope.

    Attributes:
        break_glass_group: Break-glass group email (may be empty)
        remote_fallback: Remote break-glass lookup result, used when the group is empty
        service_accounts: Service-account identities, in priority order
        workload_identity_pools: Pool id to binding, in priority order
        temporary_exemptions: Time-bounded exemptions
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    break_glass_group: str = ""
    remote_fallback: RemoteBreakGlassState | None = None
    service_accounts: tuple[str, ...] = ()
    workload_identity_pools: dict[str, WorkloadIdentityBinding] = Field(default_factory=dict)
    temporary_exemptions: tuple[TemporaryExemption, ...] = ()

    @field_validator("break_glass_group", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v


# =============================================================================
# Framework Parameter Models
# =============================================================================


class _FrameworkParamsBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    exclude_controls: tuple[str, ...] = Field(
        default=(),
        description="Control ids the operator explicitly opts out of",
    )


class Iso27001Params(_FrameworkParamsBase):
    """ISO 27001 parameters."""

    require_classification_tags: bool = True


class Soc2Params(_FrameworkParamsBase):
    """
    SOC 2 parameters.

    The security criterion is common to every SOC 2 report and is always
    included, whatever subset is configured.
    """

    trust_criteria: tuple[TrustCriterion, ...] = (TrustCriterion.SECURITY,)

    @field_validator("trust_criteria")
    @classmethod
    def include_security(cls, v: tuple[TrustCriterion, ...]) -> tuple[TrustCriterion, ...]:
        wanted = set(v) | {TrustCriterion.SECURITY}
        return tuple(c for c in TrustCriterion if c in wanted)


class PciDssParams(_FrameworkParamsBase):
    """PCI DSS parameters."""

    merchant_level: int = Field(default=1, ge=1, le=4)
    cde_tag_key: str = "compliance/pci-scope"
    cde_tag_value: str = "cde"

    @field_validator("cde_tag_key", "cde_tag_value")
    @classmethod
    def check_tag(cls, v: str) -> str:
        return _condition_token(v)


class HipaaParams(_FrameworkParamsBase):
    """HIPAA parameters."""

    phi_present: bool = True
    business_associate: bool = False


class GdprParams(_FrameworkParamsBase):
    """GDPR parameters."""

    is_controller: bool = True
    processes_special_categories: bool = False
    allowed_regions: tuple[str, ...] = Field(
        default=("europe-west1", "europe-west3", "europe-west4", "europe-north1"),
        min_length=1,
    )

    @field_validator("allowed_regions")
    @classmethod
    def check_regions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_condition_token(region) for region in v)


class FrameworkParams(BaseModel):
    """Per-framework parameters, one entry per supported framework."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    iso27001: Iso27001Params = Field(default_factory=Iso27001Params)
    soc2: Soc2Params = Field(default_factory=Soc2Params)
    pci_dss: PciDssParams = Field(default_factory=PciDssParams)
    hipaa: HipaaParams = Field(default_factory=HipaaParams)
    gdpr: GdprParams = Field(default_factory=GdprParams)

    def for_framework(self, framework: Framework) -> _FrameworkParamsBase:
        return getattr(self, framework.value)


# =============================================================================
# Shared Control and Override Models
# =============================================================================


class SecurityControlOverrides(BaseModel):
    """
    Operator overrides for the cross-framework controls.

    Attributes:
        enforce_mfa: Force MFA enforcement even at baseline level
        require_approval: Force approval-required even below high level
        required_approvals: Approvals needed for high-risk operations
            (None derives it from the compliance level)
        max_session_hours: Configured session cap; the level ceiling still applies
        allowed_hours_start: First allowed hour (inclusive) for time-of-day control
        allowed_hours_end: Last allowed hour (exclusive) for time-of-day control
        timezone: Timezone the hour window is expressed in
        block_weekends: Also deny high-risk operations on weekends at maximum level
        approver_role: Role whose holders may not also deploy
        classification_tag_key: Tag key carrying data classification labels
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enforce_mfa: bool = False
    require_approval: bool = False
    required_approvals: int | None = Field(default=None, ge=1, le=10)
    max_session_hours: int | None = Field(default=None, ge=1, le=24)
    allowed_hours_start: int = Field(default=8, ge=0, le=23)
    allowed_hours_end: int = Field(default=18, ge=1, le=24)
    timezone: str = Field(default="UTC", min_length=1)
    block_weekends: bool = False
    approver_role: str = Field(default="roles/guardrail.changeApprover", min_length=1)
    classification_tag_key: str = Field(default="compliance/data-classification", min_length=1)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        return _timezone_name(v)

    @field_validator("approver_role", "classification_tag_key")
    @classmethod
    def check_condition_token(cls, v: str) -> str:
        return _condition_token(v)

    @model_validator(mode="after")
    def check_hour_window(self) -> "SecurityControlOverrides":
        if self.allowed_hours_start >= self.allowed_hours_end:
            msg = (
                f"allowed_hours_start ({self.allowed_hours_start}) must be before "
                f"allowed_hours_end ({self.allowed_hours_end})"
            )
            raise ValueError(msg)
        return self


class EmergencyOverride(BaseModel):
    """
    Global kill-switch for rule emission.

    The reason is checked by the override gate, which fails compilation rather
    than silently staying in enforcing mode.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    active: bool = False
    reason: str = ""

    @field_validator("reason", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v


# =============================================================================
# Compilation Input
# =============================================================================


class CompilationConfig(BaseModel):
    """
    Complete input for compiling one scope.

    Attributes:
        scope: Raw scope declaration
        enabled_frameworks: Frameworks that apply (list or {name: bool} map)
        framework_params: Per-framework parameters
        data_classification: Sensitivity of data in the scope
        exception_sources: Where exempt principals come from
        security_control_overrides: Overrides for cross-framework controls
        emergency_override: Global kill-switch
        evaluation_time: Instant used to expire temporary exemptions
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    scope: ScopeConfig
    enabled_frameworks: tuple[Framework, ...] = ()
    framework_params: FrameworkParams = Field(default_factory=FrameworkParams)
    data_classification: DataClassification = DataClassification.PUBLIC
    exception_sources: ExceptionSources = Field(default_factory=ExceptionSources)
    security_control_overrides: SecurityControlOverrides = Field(
        default_factory=SecurityControlOverrides
    )
    emergency_override: EmergencyOverride = Field(default_factory=EmergencyOverride)
    evaluation_time: datetime | None = None

    @field_validator("enabled_frameworks", mode="before")
    @classmethod
    def accept_framework_map(cls, v: Any) -> Any:
        """Accept {"iso27001": true, "soc2": false} as well as a list."""
        if v is None:
            return ()
        if isinstance(v, dict):
            return [name for name, enabled in v.items() if enabled]
        return v

    @field_validator("enabled_frameworks")
    @classmethod
    def canonical_frameworks(cls, v: tuple[Framework, ...]) -> tuple[Framework, ...]:
        return Framework.canonical(v)

    @field_validator("evaluation_time")
    @classmethod
    def normalize_evaluation_time(cls, v: datetime | None) -> datetime | None:
        return None if v is None else _as_utc(v)


# =============================================================================
# Compilation Output
# =============================================================================


class DenyRule(BaseModel):
    """
    A single compiled deny rule.

    Attributes:
        name: Unique name, "<framework>-<control-id>" or "shared-<control-id>"
        category: Framework value or "shared"
        control_id: Control identifier within its category
        description: Human-readable description of what is blocked
        denied_permissions: Permissions that are blocked
        denied_principals: Principals the rule applies to
        exception_principals: Principals exempt from the rule, in priority order
        condition: Opaque boolean expression evaluated by the enforcement point
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    control_id: str = Field(..., min_length=1)
    description: str = ""
    denied_permissions: tuple[str, ...] = Field(..., min_length=1)
    denied_principals: tuple[str, ...] = (PUBLIC_PRINCIPAL_SET,)
    exception_principals: tuple[str, ...] = ()
    condition: str | None = None

    @field_validator("denied_permissions", "denied_principals")
    @classmethod
    def sorted_unique(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(sorted(set(v)))


class PolicySet(BaseModel):
    """
    The compiled deny rules for one scope.

    Constructed once per compilation and never mutated; a new input or a new
    override produces a new PolicySet.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    scope: Scope
    rules: tuple[DenyRule, ...] = ()
    compliance_level: ComplianceLevel
    emergency_override_active: bool = False
    emergency_override_reason: str | None = None

    def rule_names(self) -> list[str]:
        return [rule.name for rule in self.rules]

    def get_rule(self, name: str) -> DenyRule | None:
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None


class PolicySummary(BaseModel):
    """
    Summary fields reported alongside a PolicySet.

    Attributes:
        enabled_frameworks: Frameworks requested, in canonical order
        compliance_level: Effective compliance level
        data_classification: Declared data classification
        total_rules: Number of rules emitted
        rule_count_by_category: Emitted rules per framework or "shared"
        emergency_override_active: Whether the override gate suppressed rules
        emergency_override_reason: Documented reason for the override
        suppressed_rule_names: Rules that would have been emitted while overridden
        exception_principal_count: Size of the resolved exception set
        evaluation_time: Instant used to evaluate temporary exemptions
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled_frameworks: tuple[Framework, ...] = ()
    compliance_level: ComplianceLevel
    data_classification: DataClassification
    total_rules: int = Field(default=0, ge=0)
    rule_count_by_category: dict[str, int] = Field(default_factory=dict)
    emergency_override_active: bool = False
    emergency_override_reason: str | None = None
    suppressed_rule_names: tuple[str, ...] = ()
    exception_principal_count: int = Field(default=0, ge=0)
    evaluation_time: datetime


class PolicyManifest(BaseModel):
    """
    What the compiler hands to the applier and to reports.

    Serialization is deterministic: identical input produces identical JSON.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    manifest_version: str = "1.0"
    policy_set: PolicySet
    summary: PolicySummary

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.model_dump(mode="json"), indent=indent)

    @classmethod
    def from_json(cls, content: str) -> "PolicyManifest":
        return cls.model_validate_json(content)


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_config(path: Path | str) -> CompilationConfig:
    """
    Load a compilation config from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated CompilationConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML is malformed or doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        return load_config_from_string(f.read(), source=str(path))


def load_config_from_string(content: str, source: str = "<string>") -> CompilationConfig:
    """Load a compilation config from a YAML string."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValidationError(
            message=f"Malformed YAML in {source}: {e}",
            code=ERROR_VALIDATION_CONFIG,
            field_name="<document>",
            value=source,
        ) from e
    return validate_config_data(data, source)


def validate_config_data(data: Any, source: str = "<data>") -> CompilationConfig:
    """
    Validate raw configuration data, converting schema errors to ValidationError.

    Only the first schema error is reported, with its dotted field path.
    """
    if not isinstance(data, dict):
        raise ValidationError(
            message=f"Configuration in {source} must be a mapping",
            code=ERROR_VALIDATION_CONFIG,
            field_name="<document>",
            value=type(data).__name__,
        )

    try:
        return CompilationConfig.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(part) for part in first["loc"])
        code = (
            ERROR_VALIDATION_CLASSIFICATION
            if loc.startswith("data_classification")
            else ERROR_VALIDATION_CONFIG
        )
        raise ValidationError(
            message=f"Invalid configuration in {source} at {loc}: {first['msg']}",
            code=code,
            field_name=loc,
            value=first.get("input"),
            scope_id=_raw_scope_id(data),
            context={"error_count": e.error_count()},
        ) from e


def _raw_scope_id(data: dict[str, Any]) -> str | None:
    scope = data.get("scope")
    if isinstance(scope, dict) and scope.get("id") is not None:
        return str(scope["id"])
    return None
