"""
Pytest configuration and fixtures for Guardrail tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Generator

import pytest

from guardrail.audit import MemoryAuditSink
from guardrail.schema import (
    CompilationConfig,
    ExceptionSources,
    ScopeConfig,
)


EVALUATION_TIME = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)
BREAK_GLASS = "sec@x.com"
BREAK_GLASS_PRINCIPAL = "principalSet://goog/group/sec@x.com"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def evaluation_time() -> datetime:
    return EVALUATION_TIME


@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def make_config():
    """Factory for compilation configs with a valid project scope and break-glass group."""

    def _make(**overrides) -> CompilationConfig:
        values = {
            "scope": ScopeConfig(tier="project", id="payments-prod"),
            "exception_sources": ExceptionSources(break_glass_group=BREAK_GLASS),
            "evaluation_time": EVALUATION_TIME,
        }
        values.update(overrides)
        return CompilationConfig(**values)

    return _make


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a complete scope configuration YAML for testing."""
    return """
scope:
  tier: project
  id: payments-prod
enabled_frameworks:
  iso27001: true
  soc2: true
  pci_dss: false
data_classification: confidential
framework_params:
  soc2:
    trust_criteria: [availability]
exception_sources:
  break_glass_group: sec@x.com
  service_accounts:
    - deployer@payments-prod.iam.gserviceaccount.com
  workload_identity_pools:
    github:
      provider_id: github-actions
      attribute: attribute.repository/acme/payments
      project_number: 123456789
security_control_overrides:
  max_session_hours: 6
evaluation_time: "2026-01-15T12:00:00Z"
"""


@pytest.fixture
def sample_config_file(temp_dir: Path, sample_config_yaml: str) -> Path:
    path = temp_dir / "config.yaml"
    path.write_text(sample_config_yaml)
    return path
