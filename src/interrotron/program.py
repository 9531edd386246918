"""
Compile-once, run-many entry points.

An ``Interrotron`` holds default bindings and configuration. ``compile``
reads a script once; the resulting ``CompiledScript`` can be invoked any
number of times with different bindings, each invocation getting a fresh
op counter. Parsed nodes and defaults are immutable and may be shared
between threads.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence

from .ast import AstNode
from .builtins import FunctionRegistry
from .config import InterrotronConfig, normalize_config
from .errors import OpsThresholdError
from .evaluator import EvaluationContext, Evaluator
from .limits import EvaluationLimits
from .parser import parse
from .values import Clock, Value, utc_now

logger = logging.getLogger("interrotron.program")

Bindings = Mapping[Any, Any]


def _normalize_bindings(bindings: Optional[Bindings]) -> Dict[str, Any]:
    """Binding keys may be strings or anything whose str() is the symbol name."""
    if not bindings:
        return {}
    return {key if isinstance(key, str) else str(key): value for key, value in bindings.items()}


class CompiledScript:
    """A script read once, invocable with varying bindings."""

    def __init__(
        self,
        source: str,
        nodes: Sequence[AstNode],
        defaults: Mapping[str, Any],
        limits: EvaluationLimits,
        functions: Optional[FunctionRegistry] = None,
        clock: Clock = utc_now,
    ):
        self._source = source
        self._nodes = tuple(nodes)
        self._defaults = defaults
        self._limits = limits
        self._functions = functions
        self._clock = clock

    @property
    def source(self) -> str:
        return self._source

    @property
    def nodes(self) -> Sequence[AstNode]:
        return self._nodes

    def invoke(
        self, bindings: Optional[Bindings] = None, max_ops: Optional[int] = None
    ) -> Value:
        """
        Runs the script with ``bindings`` layered over the defaults.

        Args:
            bindings: Per-call bindings; keys override defaults of the same name
            max_ops: Op budget for this call; defaults to the configured budget

        Returns:
            The value of the last top-level form (None for an empty script)

        Raises:
            OpsThresholdError: If the op budget is exceeded
            ArgumentError: On calls with a non-function head or bad arguments
            UndefinedSymbolError: On references to unknown symbols
        """
        merged = dict(self._defaults)
        merged.update(_normalize_bindings(bindings))

        limits = self._limits if max_ops is None else self._limits.with_max_ops(max_ops)
        context = EvaluationContext(
            bindings=merged,
            limits=limits,
            source=self._source,
            functions=self._functions,
            clock=self._clock,
        )
        evaluator = Evaluator(context)

        try:
            result = evaluator.run(self._nodes)
        except OpsThresholdError as e:
            logger.debug(
                "ops_threshold_exceeded",
                extra={"max_ops": e.limit, "source_length": len(self._source)},
            )
            raise

        logger.debug(
            "script_invoked",
            extra={"ops": evaluator.ops, "binding_count": len(merged)},
        )
        return result

    __call__ = invoke

    def __repr__(self) -> str:
        return f"CompiledScript({self._source!r})"


class Interrotron:
    """Interpreter handle holding default bindings and configuration."""

    def __init__(
        self,
        defaults: Optional[Bindings] = None,
        config: InterrotronConfig | EvaluationLimits | dict[str, Any] | None = None,
        *,
        functions: Optional[FunctionRegistry] = None,
        clock: Clock = utc_now,
    ):
        self._defaults = MappingProxyType(_normalize_bindings(defaults))
        self._config = normalize_config(config)
        self._limits = self._config.to_limits()
        self._functions = functions
        self._clock = clock

    @classmethod
    def create(
        cls,
        defaults: Optional[Bindings] = None,
        config: InterrotronConfig | EvaluationLimits | dict[str, Any] | None = None,
    ) -> "Interrotron":
        return cls(defaults, config)

    @property
    def defaults(self) -> Mapping[str, Any]:
        return self._defaults

    @property
    def config(self) -> InterrotronConfig:
        return self._config

    def compile(self, source: str) -> CompiledScript:
        """
        Reads ``source`` once.

        Raises:
            ParseError: If the source is malformed
            LimitExceededError: If the source exceeds the reader limits
        """
        nodes = parse(source, self._limits)
        logger.debug(
            "script_compiled",
            extra={"form_count": len(nodes), "source_length": len(source)},
        )
        return CompiledScript(
            source,
            nodes,
            self._defaults,
            self._limits,
            functions=self._functions,
            clock=self._clock,
        )

    def run(
        self,
        source: str,
        bindings: Optional[Bindings] = None,
        max_ops: Optional[int] = None,
    ) -> Value:
        """Compiles and invokes ``source`` in one step."""
        return self.compile(source).invoke(bindings, max_ops)


def run(
    source: str,
    bindings: Optional[Bindings] = None,
    max_ops: Optional[int] = None,
) -> Value:
    """
    Reads and evaluates ``source`` once with the given bindings.

    Args:
        source: The script text
        bindings: Host variables and callables available to the script
        max_ops: Op budget; None means unbounded

    Returns:
        The value of the last top-level form (None for an empty script)
    """
    return Interrotron().run(source, bindings, max_ops)


# Name used by the embedding interface
evaluate = run
