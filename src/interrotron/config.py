"""
Host configuration for the interpreter.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .limits import DEFAULT_EVALUATION_LIMITS, EvaluationLimits


class InterrotronConfig(BaseModel):
    """Configuration accepted by ``Interrotron``, in snake_case or camelCase."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    # Default op budget for every invocation; None means unbounded
    max_ops: Optional[int] = Field(default=None, ge=0, alias="maxOps")

    max_source_length: int = Field(
        default=DEFAULT_EVALUATION_LIMITS.max_source_length,
        gt=0,
        alias="maxSourceLength",
    )

    max_depth: int = Field(
        default=DEFAULT_EVALUATION_LIMITS.max_depth, gt=0, alias="maxDepth"
    )

    def to_limits(self) -> EvaluationLimits:
        return EvaluationLimits(
            max_ops=self.max_ops,
            max_source_length=self.max_source_length,
            max_depth=self.max_depth,
        )


def normalize_config(
    config: InterrotronConfig | EvaluationLimits | dict[str, Any] | None,
) -> InterrotronConfig:
    """Normalize host configuration into an InterrotronConfig."""
    if config is None:
        return InterrotronConfig()

    if isinstance(config, InterrotronConfig):
        return config

    if isinstance(config, EvaluationLimits):
        return InterrotronConfig(
            max_ops=config.max_ops,
            max_source_length=config.max_source_length,
            max_depth=config.max_depth,
        )

    return InterrotronConfig.model_validate(config)
