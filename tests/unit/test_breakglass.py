"""Unit tests for remote break-glass state resolution."""

from pathlib import Path

import pytest

from guardrail.breakglass import BreakGlassResolver, FileBreakGlassResolver, with_remote_fallback
from guardrail.errors import ValidationError
from guardrail.schema import ExceptionSources, RemoteBreakGlassState


class StaticResolver:
    def __init__(self, state: RemoteBreakGlassState) -> None:
        self.state = state
        self.calls = 0

    def resolve(self) -> RemoteBreakGlassState:
        self.calls += 1
        return self.state


class TestFileBreakGlassResolver:
    def test_satisfies_protocol(self, temp_dir: Path) -> None:
        assert isinstance(FileBreakGlassResolver(temp_dir / "state.yaml"), BreakGlassResolver)

    def test_reads_state(self, temp_dir: Path) -> None:
        path = temp_dir / "state.yaml"
        path.write_text("break_glass_group: oncall@x.com\nsuper_admins:\n  - root@x.com\n")
        state = FileBreakGlassResolver(path).resolve()
        assert state.available is True
        assert state.break_glass_group == "oncall@x.com"
        assert state.super_admins == ("root@x.com",)

    def test_missing_file_is_unavailable(self, temp_dir: Path) -> None:
        state = FileBreakGlassResolver(temp_dir / "missing.yaml").resolve()
        assert state.available is False
        assert state.break_glass_group is None

    def test_malformed_yaml(self, temp_dir: Path) -> None:
        path = temp_dir / "state.yaml"
        path.write_text("break_glass_group: [unclosed")
        with pytest.raises(ValidationError) as exc_info:
            FileBreakGlassResolver(path).resolve()
        assert exc_info.value.field_name == "remote_fallback"

    def test_unknown_field(self, temp_dir: Path) -> None:
        path = temp_dir / "state.yaml"
        path.write_text("owner: someone\n")
        with pytest.raises(ValidationError):
            FileBreakGlassResolver(path).resolve()


class TestWithRemoteFallback:
    def test_fallback_attached(self, make_config) -> None:
        config = make_config(exception_sources=ExceptionSources())
        resolver = StaticResolver(RemoteBreakGlassState(break_glass_group="oncall@x.com"))
        updated = with_remote_fallback(config, resolver)
        assert updated.exception_sources.remote_fallback.break_glass_group == "oncall@x.com"
        assert config.exception_sources.remote_fallback is None

    def test_existing_fallback_kept(self, make_config) -> None:
        existing = RemoteBreakGlassState(break_glass_group="first@x.com")
        config = make_config(exception_sources=ExceptionSources(remote_fallback=existing))
        resolver = StaticResolver(RemoteBreakGlassState(break_glass_group="second@x.com"))
        updated = with_remote_fallback(config, resolver)
        assert updated.exception_sources.remote_fallback == existing
        assert resolver.calls == 0
