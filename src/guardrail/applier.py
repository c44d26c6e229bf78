"""
Policy applier collaborator and manifest diffing.

Applying a manifest to a live control plane happens outside this package. What
lives here is the contract (PolicyApplier), the per-rule outcome model, and a
pure diff between a previously applied manifest and a freshly compiled one,
which is what an applier needs to issue idempotent create/update/delete calls.

DryRunApplier reports the calls a real applier would make, without making them.
"""

from collections.abc import Sequence
from enum import Enum
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from guardrail.schema import PolicyManifest


logger = structlog.get_logger()


class ChangeAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UNCHANGED = "unchanged"


class ApplyResult(BaseModel):
    """
    Outcome of applying one rule.

    Attributes:
        rule_name: Rule the call was about
        action: What the applier did (or would do)
        success: Whether the call succeeded
        error: Error detail on failure
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    rule_name: str
    action: ChangeAction
    success: bool = True
    error: str | None = None


class PolicyDiff(BaseModel):
    """
    Rule-level difference between two manifests of the same scope.

    Attributes:
        to_create: Rules only in the new manifest
        to_update: Rules in both whose content changed
        to_delete: Rules only in the previous manifest
        unchanged: Rules identical in both
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    to_create: tuple[str, ...] = ()
    to_update: tuple[str, ...] = ()
    to_delete: tuple[str, ...] = ()
    unchanged: tuple[str, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.to_create or self.to_update or self.to_delete)

    def actions(self) -> list[tuple[str, ChangeAction]]:
        """Every rule with its action: creates, updates, deletes, then unchanged."""
        return [
            *((name, ChangeAction.CREATE) for name in self.to_create),
            *((name, ChangeAction.UPDATE) for name in self.to_update),
            *((name, ChangeAction.DELETE) for name in self.to_delete),
            *((name, ChangeAction.UNCHANGED) for name in self.unchanged),
        ]


def diff_manifests(previous: PolicyManifest | None, current: PolicyManifest) -> PolicyDiff:
    """
    Compare a previously applied manifest with a new one.

    With no previous manifest every current rule is a create. Ordering follows
    the current manifest for creates, updates and unchanged rules, and the
    previous manifest for deletes.
    """
    before = {rule.name: rule for rule in previous.policy_set.rules} if previous else {}
    after = {rule.name: rule for rule in current.policy_set.rules}

    to_create: list[str] = []
    to_update: list[str] = []
    unchanged: list[str] = []
    for name, rule in after.items():
        if name not in before:
            to_create.append(name)
        elif before[name] != rule:
            to_update.append(name)
        else:
            unchanged.append(name)

    return PolicyDiff(
        to_create=tuple(to_create),
        to_update=tuple(to_update),
        to_delete=tuple(name for name in before if name not in after),
        unchanged=tuple(unchanged),
    )


@runtime_checkable
class PolicyApplier(Protocol):
    """Applies a manifest to its scope and reports per-rule outcomes."""

    def apply(self, manifest: PolicyManifest) -> list[ApplyResult]: ...


class DryRunApplier:
    """
    Applier that only computes what would change.

    Attributes:
        previous: Previously applied manifests, keyed by canonical address
    """

    def __init__(self, previous: Sequence[PolicyManifest] = ()) -> None:
        self.previous: dict[str, PolicyManifest] = {
            manifest.policy_set.scope.canonical_address: manifest for manifest in previous
        }

    def plan(self, manifest: PolicyManifest) -> PolicyDiff:
        address = manifest.policy_set.scope.canonical_address
        return diff_manifests(self.previous.get(address), manifest)

    def apply(self, manifest: PolicyManifest) -> list[ApplyResult]:
        diff = self.plan(manifest)
        logger.info(
            "dry_run_apply",
            scope=manifest.policy_set.scope.canonical_address,
            create=len(diff.to_create),
            update=len(diff.to_update),
            delete=len(diff.to_delete),
        )
        self.previous[manifest.policy_set.scope.canonical_address] = manifest
        return [ApplyResult(rule_name=name, action=action) for name, action in diff.actions()]


class ApplySummary(BaseModel):
    """Counts of per-rule outcomes across one or more apply calls."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    succeeded: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    failed_rules: tuple[str, ...] = ()

    @classmethod
    def from_results(cls, results: Sequence[ApplyResult]) -> "ApplySummary":
        failed = tuple(result.rule_name for result in results if not result.success)
        return cls(
            succeeded=len(results) - len(failed),
            failed=len(failed),
            failed_rules=failed,
        )
