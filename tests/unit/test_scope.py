"""
Unit tests for scope resolution.

Tests cover:
- Canonical addresses per tier
- Identifier syntax per tier
- Error context for malformed scopes
"""

import pytest

from guardrail.errors import ScopeValidationError
from guardrail.schema import ScopeConfig, ScopeTier
from guardrail.scope import ScopeResolver, canonical_address, resolve_scope


@pytest.fixture
def resolver() -> ScopeResolver:
    return ScopeResolver()


class TestCanonicalAddress:
    def test_organization(self, resolver: ScopeResolver) -> None:
        scope = resolver.resolve(ScopeConfig(tier="organization", id="123456789012"))
        assert scope.tier is ScopeTier.ORGANIZATION
        assert scope.canonical_address == (
            "cloudresourcemanager.googleapis.com/organizations/123456789012"
        )

    def test_folder_uses_numeric_part(self, resolver: ScopeResolver) -> None:
        scope = resolver.resolve(ScopeConfig(tier="folder", id="folders/4567"))
        assert scope.id == "folders/4567"
        assert scope.canonical_address == "cloudresourcemanager.googleapis.com/folders/4567"

    def test_project(self, resolver: ScopeResolver) -> None:
        scope = resolver.resolve(ScopeConfig(tier="project", id="payments-prod"))
        assert scope.canonical_address == (
            "cloudresourcemanager.googleapis.com/projects/payments-prod"
        )

    def test_attachment_point_is_url_encoded(self, resolver: ScopeResolver) -> None:
        scope = resolver.resolve(ScopeConfig(tier="project", id="payments-prod"))
        assert scope.attachment_point == (
            "cloudresourcemanager.googleapis.com%2Fprojects%2Fpayments-prod"
        )

    def test_tier_case_insensitive(self, resolver: ScopeResolver) -> None:
        scope = resolver.resolve(ScopeConfig(tier="Project", id="payments-prod"))
        assert scope.tier is ScopeTier.PROJECT

    def test_resolution_is_pure(self, resolver: ScopeResolver) -> None:
        config = ScopeConfig(tier="folder", id="folders/1")
        assert resolver.resolve(config) == resolver.resolve(config)

    def test_helpers(self) -> None:
        assert canonical_address(ScopeTier.FOLDER, "9") == (
            "cloudresourcemanager.googleapis.com/folders/9"
        )
        assert resolve_scope(ScopeConfig(tier="organization", id="1")).id == "1"


class TestMalformedScopes:
    @pytest.mark.parametrize(
        "tier,scope_id",
        [
            ("organization", "org-123"),
            ("organization", ""),
            ("folder", "4567"),
            ("folder", "folders/abc"),
            ("project", "short"),
            ("project", "Payments-Prod"),
            ("project", "a" * 31),
            ("project", "payments_prod"),
        ],
    )
    def test_rejected(self, resolver: ScopeResolver, tier: str, scope_id: str) -> None:
        with pytest.raises(ScopeValidationError) as exc_info:
            resolver.resolve(ScopeConfig(tier=tier, id=scope_id))
        assert exc_info.value.context["tier"] == tier
        assert exc_info.value.suggestion is not None

    def test_folder_error_message_names_scope(self, resolver: ScopeResolver) -> None:
        with pytest.raises(ScopeValidationError) as exc_info:
            resolver.resolve(ScopeConfig(tier="folder", id="4567"))
        assert exc_info.value.scope_id == "4567"
        assert exc_info.value.field_name == "scope.id"

    def test_unknown_tier(self, resolver: ScopeResolver) -> None:
        with pytest.raises(ScopeValidationError) as exc_info:
            resolver.resolve(ScopeConfig(tier="billing-account", id="payments-prod"))
        assert exc_info.value.field_name == "scope.tier"
