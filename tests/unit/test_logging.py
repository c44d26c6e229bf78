"""Unit tests for logging helpers."""

import structlog

from guardrail.logging import scope_context


class TestScopeContext:
    def test_scope_bound_inside_context(self) -> None:
        with scope_context("payments-prod", "project"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["scope_id"] == "payments-prod"
            assert bound["tier"] == "project"

    def test_scope_cleared_after_context(self) -> None:
        with scope_context("payments-prod", "project"):
            pass
        assert "scope_id" not in structlog.contextvars.get_contextvars()

    def test_scope_cleared_on_error(self) -> None:
        try:
            with scope_context("folders/4567", "folder"):
                raise RuntimeError("compilation failed")
        except RuntimeError:
            pass
        assert "scope_id" not in structlog.contextvars.get_contextvars()
