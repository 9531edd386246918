"""
Special forms: constructs that decide which of their operands get evaluated.

Each form receives the evaluator and the unevaluated form node. Special
form names always take precedence over host bindings in head position.
"""

from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Mapping

from .ast import FormNode
from .errors import ArgumentError
from .values import Value, is_truthy

if TYPE_CHECKING:
    from .evaluator import Evaluator

SpecialForm = Callable[["Evaluator", FormNode], Value]


def _and(evaluator: "Evaluator", form: FormNode) -> Value:
    """Returns the first falsey operand, or the last operand if all are truthy."""
    result: Value = True
    for operand in form.args:
        result = evaluator.evaluate(operand)
        if not is_truthy(result):
            return result
    return result


def _or(evaluator: "Evaluator", form: FormNode) -> Value:
    """Returns the first truthy operand, or the last operand if none is."""
    result: Value = None
    for operand in form.args:
        result = evaluator.evaluate(operand)
        if is_truthy(result):
            return result
    return result


def _if(evaluator: "Evaluator", form: FormNode) -> Value:
    args = form.args
    if len(args) not in (2, 3):
        raise ArgumentError(
            f"if: expected 2 or 3 operands, got {len(args)}",
            form.position,
            evaluator.source,
        )

    if is_truthy(evaluator.evaluate(args[0])):
        return evaluator.evaluate(args[1])
    if len(args) == 3:
        return evaluator.evaluate(args[2])
    return None


def _cond(evaluator: "Evaluator", form: FormNode) -> Value:
    # Operands are flat test/value pairs: (cond t1 v1 t2 v2 ...)
    args = form.args
    if len(args) % 2 != 0:
        raise ArgumentError(
            f"cond: expected test/value pairs, got {len(args)} operand(s)",
            form.position,
            evaluator.source,
        )

    for i in range(0, len(args), 2):
        if is_truthy(evaluator.evaluate(args[i])):
            return evaluator.evaluate(args[i + 1])
    return None


SPECIAL_FORMS: Mapping[str, SpecialForm] = MappingProxyType(
    {
        "and": _and,
        "or": _or,
        "if": _if,
        "cond": _cond,
    }
)


def is_special_form(name: str) -> bool:
    return name in SPECIAL_FORMS
