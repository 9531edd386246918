"""
Script evaluator.

Walks syntax nodes against host bindings and the built-in table, counting
one step per form (and per call made through ``apply``) against the op
budget.

Symbol resolution:
- Special form names (``and``, ``or``, ``if``, ``cond``) in head position
  always dispatch to the special form.
- Other symbols are looked up in the host bindings first, then in the
  function registry, so a host binding shadows a built-in of the same name.
- In head position, a binding that is not callable falls back to the
  function of the same name, so only callable bindings shadow functions.
- Symbols found in neither raise UndefinedSymbolError.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from .ast import AstNode, AtomNode, FormNode, SymbolNode
from .builtins import BUILTIN_FUNCTIONS, BuiltinContext, FunctionRegistry
from .errors import ArgumentError, EvaluationError, InterrotronError, UndefinedSymbolError
from .limits import DEFAULT_EVALUATION_LIMITS, EvaluationLimits, OpCounter
from .special_forms import SPECIAL_FORMS, is_special_form
from .values import (
    Clock,
    NativeFunction,
    Value,
    format_value,
    get_type_name,
    is_truthy,
    normalize_value,
    utc_now,
)


@dataclass
class EvaluationContext:
    """Evaluation context with variable bindings."""

    bindings: Mapping[str, Any]
    """Host variable and function bindings available to the script."""

    limits: Optional[EvaluationLimits] = None
    """Evaluation limits, including the op budget."""

    source: Optional[str] = None
    """Source text for error reporting."""

    functions: Optional[FunctionRegistry] = None
    """Function registry for built-ins and injected helpers."""

    clock: Clock = utc_now
    """Wall clock read by now, ago and from-now."""


@dataclass
class EvaluationResult:
    """Result of evaluation for hosts that prefer not to handle exceptions."""

    value: Value
    """The evaluated value."""

    success: bool
    """Whether evaluation succeeded."""

    error: Optional[str] = None
    """Error message if evaluation failed."""

    ops: int = 0
    """Evaluation steps performed."""


class Evaluator:
    """Evaluates syntax nodes and returns the result."""

    def __init__(self, context: EvaluationContext):
        self._context = context
        self._limits = context.limits or DEFAULT_EVALUATION_LIMITS
        self._source = context.source
        self._functions = (
            context.functions if context.functions is not None else BUILTIN_FUNCTIONS
        )
        self._counter = OpCounter(self._limits.max_ops)

    @property
    def source(self) -> Optional[str]:
        return self._source

    @property
    def ops(self) -> int:
        """Evaluation steps performed so far."""
        return self._counter.count

    def run(self, nodes: Sequence[AstNode]) -> Value:
        """Evaluates top-level nodes in order and returns the last result."""
        result: Value = None
        for node in nodes:
            result = self.evaluate(node)
        return result

    def evaluate(self, node: AstNode) -> Value:
        """Evaluates a single node and returns the value."""
        if isinstance(node, AtomNode):
            return node.value

        if isinstance(node, SymbolNode):
            return self._resolve_symbol(node)

        if isinstance(node, FormNode):
            return self._evaluate_form(node)

        raise EvaluationError(f"Unknown node: {node!r}")

    def _resolve_symbol(self, node: SymbolNode) -> Value:
        name = node.name
        bindings = self._context.bindings
        if name in bindings:
            return normalize_value(bindings[name], name)

        fn = self._functions.get(name)
        if fn is not None:
            return fn

        if is_special_form(name):
            raise ArgumentError(
                f"Special form {name} cannot be used as a value",
                node.position,
                self._source,
            )

        raise UndefinedSymbolError(name, node.position, self._source)

    def _resolve_head(self, head: AstNode) -> Value:
        fn = self.evaluate(head)
        if isinstance(fn, NativeFunction) or not isinstance(head, SymbolNode):
            return fn
        # A non-callable binding does not hide a function of the same name
        builtin = self._functions.get(head.name)
        return builtin if builtin is not None else fn

    def _evaluate_form(self, node: FormNode) -> Value:
        self._counter.tick()

        head = node.head
        if isinstance(head, SymbolNode) and is_special_form(head.name):
            return SPECIAL_FORMS[head.name](self, node)

        fn = self._resolve_head(head)
        if not isinstance(fn, NativeFunction):
            raise ArgumentError(
                f"Cannot call {get_type_name(fn)} value {format_value(fn)!r}",
                node.position,
                self._source,
            )

        args = [self.evaluate(arg) for arg in node.args]

        builtin_context = BuiltinContext(
            limits=self._limits,
            position=node.position,
            source=self._source,
            clock=self._context.clock,
            counter=self._counter,
        )

        try:
            return fn.invoke(args, builtin_context)
        except EvaluationError as e:
            # Attribute errors raised by functions to this call site
            if e.position is None:
                e.position = node.position
                e.expression = self._source
            raise


def evaluate(nodes: Sequence[AstNode], context: EvaluationContext) -> Value:
    """
    Evaluates top-level nodes against a context.

    Args:
        nodes: The parsed top-level nodes
        context: The evaluation context with bindings

    Returns:
        The value of the last node, or None when there are no nodes

    Raises:
        OpsThresholdError: If the op budget is exceeded
        ArgumentError: On calls with a non-function head or bad arguments
        UndefinedSymbolError: On references to unknown symbols
    """
    return Evaluator(context).run(nodes)


def evaluate_safely(
    nodes: Sequence[AstNode], context: EvaluationContext
) -> EvaluationResult:
    """
    Evaluates top-level nodes, capturing interpreter errors in the result.

    Args:
        nodes: The parsed top-level nodes
        context: The evaluation context with bindings

    Returns:
        The evaluation result with value and success status
    """
    evaluator = Evaluator(context)
    try:
        value = evaluator.run(nodes)
        return EvaluationResult(value=value, success=True, ops=evaluator.ops)
    except InterrotronError as error:
        return EvaluationResult(
            value=None, success=False, error=str(error), ops=evaluator.ops
        )


def evaluate_as_boolean(nodes: Sequence[AstNode], context: EvaluationContext) -> bool:
    """Evaluates top-level nodes and reports the truthiness of the result."""
    return is_truthy(evaluate(nodes, context))
