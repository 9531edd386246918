"""
Resource limits for reading and evaluating scripts.

The op budget is the only cancellation primitive: every evaluation step is
counted against it and the script is aborted as soon as it would overrun.
The reader limits protect the host against oversized or deeply nested
source text before any evaluation starts.
"""

from dataclasses import dataclass, replace
from typing import Optional

from .errors import LimitExceededError, OpsThresholdError


@dataclass(frozen=True)
class EvaluationLimits:
    """Evaluation limits configuration."""

    # Maximum evaluation steps per call; None disables the check
    max_ops: Optional[int] = None

    # Maximum source length in characters
    max_source_length: int = 65536

    # Maximum form nesting depth
    max_depth: int = 256

    def with_max_ops(self, max_ops: Optional[int]) -> "EvaluationLimits":
        """Returns a copy of these limits using a different op budget."""
        return replace(self, max_ops=max_ops)


# Default evaluation limits.
#
# No op budget is set: hosts running untrusted scripts must supply one.
DEFAULT_EVALUATION_LIMITS = EvaluationLimits()


class OpCounter:
    """
    Step counter owned by a single evaluation call.

    Never share an instance between calls or threads.
    """

    __slots__ = ("count", "max_ops")

    def __init__(self, max_ops: Optional[int] = None):
        self.count = 0
        self.max_ops = max_ops

    def tick(self) -> None:
        """Records one evaluation step, failing if it would exceed the budget."""
        if self.max_ops is not None and self.count + 1 > self.max_ops:
            raise OpsThresholdError(self.max_ops, self.count + 1)
        self.count += 1

    @property
    def remaining(self) -> Optional[int]:
        if self.max_ops is None:
            return None
        return self.max_ops - self.count


def check_source_length(
    source: str, limits: Optional[EvaluationLimits] = None
) -> None:
    """Validates that source length is within limits."""
    limits = limits or DEFAULT_EVALUATION_LIMITS
    if len(source) > limits.max_source_length:
        raise LimitExceededError(
            "max_source_length", limits.max_source_length, len(source)
        )


def check_depth(depth: int, limits: Optional[EvaluationLimits] = None) -> None:
    """Validates form nesting depth during parsing."""
    limits = limits or DEFAULT_EVALUATION_LIMITS
    if depth > limits.max_depth:
        raise LimitExceededError("max_depth", limits.max_depth, depth)
