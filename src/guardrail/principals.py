"""
Exception principal resolution.

Merges every source of exempt identities into one ordered, deduplicated list:

    1. The break-glass group (explicit email, else the remote fallback)
    2. Explicit service accounts, in input order
    3. Workload-identity pool bindings, in input order
    4. Temporary exemptions that have not expired at the evaluation time

A principal reached through two sources keeps the position of its first
source. Evaluation time is an argument, never read from the clock.
"""

import re
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from guardrail.errors import EmailValidationError, MissingBreakGlassError, ValidationError
from guardrail.schema import ExceptionSources, WorkloadIdentityBinding


logger = structlog.get_logger()

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_SERVICE_ACCOUNT_SUFFIX = ".gserviceaccount.com"


# =============================================================================
# Principal Formatting
# =============================================================================


def group_principal(email: str) -> str:
    return f"principalSet://goog/group/{email}"


def service_account_principal(identity: str) -> str:
    if "://" in identity:
        return identity
    return f"principal://iam.googleapis.com/projects/-/serviceAccounts/{identity}"


def user_principal(email: str) -> str:
    return f"principal://goog/subject/{email}"


def workload_identity_principal(pool_id: str, binding: WorkloadIdentityBinding) -> str:
    """Set-membership principal for every identity matching the pool attribute."""
    return (
        f"principalSet://iam.googleapis.com/projects/{binding.project_number}"
        f"/locations/global/workloadIdentityPools/{pool_id}/{binding.attribute}"
    )


def exemption_principal(principal: str) -> str:
    """
    Normalize a temporary exemption's principal.

    Principal strings with a scheme are kept verbatim; service-account emails
    and other emails are expanded so they deduplicate against other sources.
    """
    if "://" in principal:
        return principal
    if principal.endswith(_SERVICE_ACCOUNT_SUFFIX):
        return service_account_principal(principal)
    return user_principal(principal)


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL.match(value))


# =============================================================================
# Resolver
# =============================================================================


@dataclass(frozen=True)
class ExceptionPrincipalSet:
    """
    Ordered, duplicate-free exception principals.

    Attributes:
        principals: Principal strings in priority order
        break_glass_principal: The resolved break-glass principal, if any
        expired: Temporary exemption principals dropped because they expired
    """

    principals: tuple[str, ...] = ()
    break_glass_principal: str | None = None
    expired: tuple[str, ...] = ()

    def __iter__(self):
        return iter(self.principals)

    def __len__(self) -> int:
        return len(self.principals)

    def __contains__(self, principal: object) -> bool:
        return principal in self.principals


class ExceptionPrincipalResolver:
    """
    Builds the ExceptionPrincipalSet for one scope.

    Usage:
        resolver = ExceptionPrincipalResolver()
        exceptions = resolver.resolve(sources, evaluation_time=now)
    """

    def resolve(
        self,
        sources: ExceptionSources,
        evaluation_time: datetime,
        override_active: bool = False,
        scope_id: str | None = None,
    ) -> ExceptionPrincipalSet:
        """
        Resolve exception sources into an ordered principal set.

        Args:
            sources: Every configured exception source
            evaluation_time: Instant used to expire temporary exemptions
            override_active: Whether the emergency override is active
            scope_id: Scope being compiled, for error context

        Raises:
            ValidationError: If an email or identity is malformed
            MissingBreakGlassError: If no break-glass principal resolves and
                the override is not active
        """
        if evaluation_time.tzinfo is None:
            evaluation_time = evaluation_time.replace(tzinfo=UTC)

        candidates: list[str] = []

        break_glass = self._resolve_break_glass(sources, scope_id)
        if break_glass is None:
            if not override_active:
                raise MissingBreakGlassError(scope_id=scope_id)
            logger.warning("break_glass_absent_under_override", scope_id=scope_id)
        else:
            candidates.append(break_glass)

        for index, identity in enumerate(sources.service_accounts):
            if not identity or not identity.strip():
                raise ValidationError(
                    message="Service account identity must not be empty",
                    field_name=f"exception_sources.service_accounts.{index}",
                    value=identity,
                    scope_id=scope_id,
                )
            candidates.append(service_account_principal(identity.strip()))

        for pool_id, binding in sources.workload_identity_pools.items():
            candidates.append(workload_identity_principal(pool_id, binding))

        expired: list[str] = []
        for index, exemption in enumerate(sources.temporary_exemptions):
            raw = exemption.principal.strip()
            if not raw or ("://" not in raw and not is_valid_email(raw)):
                raise ValidationError(
                    message=f"Temporary exemption principal is not an email or principal: {raw!r}",
                    field_name=f"exception_sources.temporary_exemptions.{index}.principal",
                    value=exemption.principal,
                    scope_id=scope_id,
                    suggestion="Use an email address or a full principal:// identifier",
                )
            principal = exemption_principal(raw)
            if exemption.expiry < evaluation_time:
                expired.append(principal)
                logger.debug(
                    "temporary_exemption_expired",
                    principal=principal,
                    expiry=exemption.expiry.isoformat(),
                    scope_id=scope_id,
                )
                continue
            candidates.append(principal)

        return ExceptionPrincipalSet(
            principals=_dedupe(candidates),
            break_glass_principal=break_glass,
            expired=tuple(expired),
        )

    def _resolve_break_glass(
        self,
        sources: ExceptionSources,
        scope_id: str | None,
    ) -> str | None:
        email = sources.break_glass_group.strip()
        field_name = "exception_sources.break_glass_group"

        if not email:
            fallback = sources.remote_fallback
            if fallback is None or not fallback.available or not fallback.break_glass_group:
                return None
            email = fallback.break_glass_group.strip()
            field_name = "exception_sources.remote_fallback.break_glass_group"
            logger.info("break_glass_from_remote_fallback", scope_id=scope_id)

        if not is_valid_email(email):
            raise EmailValidationError(
                field_name=field_name,
                value=email,
                scope_id=scope_id,
            )
        return group_principal(email)


def _dedupe(principals: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(principals))
