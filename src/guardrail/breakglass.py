"""
Remote break-glass state collaborator.

The engine never looks up break-glass state itself. Callers resolve it up
front through a BreakGlassResolver and pass the result in the configuration
as exception_sources.remote_fallback.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog
import yaml
from pydantic import ValidationError as PydanticValidationError

from guardrail.errors import ERROR_VALIDATION_CONFIG, ValidationError
from guardrail.schema import CompilationConfig, RemoteBreakGlassState


logger = structlog.get_logger()


@runtime_checkable
class BreakGlassResolver(Protocol):
    """Supplies break-glass state, or RemoteBreakGlassState.unavailable()."""

    def resolve(self) -> RemoteBreakGlassState: ...


class FileBreakGlassResolver:
    """
    Reads break-glass state from a YAML document.

    Expected shape:
        break_glass_group: security-oncall@example.com
        super_admins:
          - admin@example.com

    A missing file resolves to the unavailable state; a malformed file is a
    ValidationError.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def resolve(self) -> RemoteBreakGlassState:
        if not self.path.exists():
            logger.warning("break_glass_state_unavailable", path=str(self.path))
            return RemoteBreakGlassState.unavailable()

        with self.path.open() as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValidationError(
                    message=f"Malformed break-glass state in {self.path}: {e}",
                    code=ERROR_VALIDATION_CONFIG,
                    field_name="remote_fallback",
                    value=str(self.path),
                ) from e

        try:
            return RemoteBreakGlassState.model_validate({"available": True, **data})
        except (PydanticValidationError, TypeError) as e:
            raise ValidationError(
                message=f"Invalid break-glass state in {self.path}",
                code=ERROR_VALIDATION_CONFIG,
                field_name="remote_fallback",
                value=str(self.path),
            ) from e


def with_remote_fallback(
    config: CompilationConfig,
    resolver: BreakGlassResolver,
) -> CompilationConfig:
    """
    Return a config whose exception sources carry the resolver's state.

    An explicitly configured remote_fallback is kept as-is.
    """
    sources = config.exception_sources
    if sources.remote_fallback is not None:
        return config
    state = resolver.resolve()
    return config.model_copy(
        update={"exception_sources": sources.model_copy(update={"remote_fallback": state})}
    )
