"""
Scope resolution.

Turns a raw (tier, id) declaration into a canonical Scope. The canonical
address is a pure function of the tier and the identifier, so the same
declaration always resolves to the same policy parent.

Identifier syntax per tier:
    organization  numeric string, e.g. "123456789012"
    folder        "folders/<numeric>", e.g. "folders/4567"
    project       lowercase letters, digits and hyphens, 6-30 characters
"""

import re

from guardrail.errors import ScopeValidationError
from guardrail.schema import Scope, ScopeConfig, ScopeTier


RESOURCE_MANAGER_SERVICE = "cloudresourcemanager.googleapis.com"

_ORGANIZATION_ID = re.compile(r"^[0-9]+$")
_FOLDER_ID = re.compile(r"^folders/([0-9]+)$")
_PROJECT_ID = re.compile(r"^[a-z0-9-]{6,30}$")


class ScopeResolver:
    """
    Validates scope identifiers and builds canonical scopes.

    Usage:
        scope = ScopeResolver().resolve(ScopeConfig(tier="project", id="my-project"))
        scope.canonical_address
        # "cloudresourcemanager.googleapis.com/projects/my-project"
    """

    def resolve(self, config: ScopeConfig) -> Scope:
        """
        Resolve a raw scope declaration.

        Raises:
            ScopeValidationError: If the tier is unknown or the id is malformed
        """
        tier = self._parse_tier(config.tier, config.id)
        raw_id = config.id.strip()

        if tier is ScopeTier.ORGANIZATION:
            if not _ORGANIZATION_ID.match(raw_id):
                raise ScopeValidationError(
                    tier=tier.value,
                    value=config.id,
                    scope_id=config.id,
                    suggestion="Organization ids are numeric, e.g. 123456789012",
                )
            address_id = raw_id
        elif tier is ScopeTier.FOLDER:
            match = _FOLDER_ID.match(raw_id)
            if not match:
                raise ScopeValidationError(
                    tier=tier.value,
                    value=config.id,
                    scope_id=config.id,
                    suggestion="Folder ids take the form folders/<numeric>",
                )
            address_id = match.group(1)
        else:
            if not _PROJECT_ID.match(raw_id):
                raise ScopeValidationError(
                    tier=tier.value,
                    value=config.id,
                    scope_id=config.id,
                    suggestion=(
                        "Project ids use lowercase letters, digits and hyphens, "
                        "6-30 characters"
                    ),
                )
            address_id = raw_id

        return Scope(
            tier=tier,
            id=raw_id,
            canonical_address=canonical_address(tier, address_id),
        )

    def _parse_tier(self, tier: str, scope_id: str) -> ScopeTier:
        try:
            return ScopeTier(tier.strip().lower())
        except ValueError:
            raise ScopeValidationError(
                message=f"Unknown scope tier: {tier!r}",
                field_name="scope.tier",
                tier=tier,
                value=tier,
                scope_id=scope_id,
                suggestion="Use one of: organization, folder, project",
            ) from None


def canonical_address(tier: ScopeTier, address_id: str) -> str:
    """Build the full resource name for a tier and bare identifier."""
    return f"{RESOURCE_MANAGER_SERVICE}/{tier.collection}/{address_id}"


def resolve_scope(config: ScopeConfig) -> Scope:
    """Convenience wrapper around ScopeResolver.resolve."""
    return ScopeResolver().resolve(config)
