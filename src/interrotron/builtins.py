"""
Built-in functions for the interpreter.

Built-ins receive already-evaluated arguments and never mutate them. The
only hidden input is the wall clock, read through ``BuiltinContext.clock``
on every call to ``now``, ``ago`` and ``from-now``.

Durations are plain Numbers of seconds: ``(days 1)`` is ``86400``, so they
compose with ``+`` and with the time helpers.
"""

import math
import operator
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from .errors import BuiltinError, UndefinedSymbolError
from .limits import DEFAULT_EVALUATION_LIMITS, EvaluationLimits, OpCounter
from .values import (
    Clock,
    NativeFunction,
    Value,
    format_value,
    get_type_name,
    is_number,
    is_truthy,
    normalize_value,
    parse_time,
    utc_now,
    values_equal,
)


class BuiltinContext:
    """Context passed to built-in functions."""

    def __init__(
        self,
        limits: EvaluationLimits = DEFAULT_EVALUATION_LIMITS,
        position: Optional[int] = None,
        source: Optional[str] = None,
        clock: Clock = utc_now,
        counter: Optional[OpCounter] = None,
    ):
        self.limits = limits
        self.position = position
        self.source = source
        self.clock = clock
        self.counter = counter if counter is not None else OpCounter(limits.max_ops)


# Signature of a built-in function.
BuiltinFunction = Callable[[Sequence[Value], BuiltinContext], Value]

# Function registry for built-in and injected functions.
FunctionRegistry = Mapping[str, NativeFunction]


def _assert_arg_count(args: Sequence[Value], expected: int, function_name: str) -> None:
    """Asserts argument count."""
    if len(args) != expected:
        raise BuiltinError(
            function_name, f"expected {expected} argument(s), got {len(args)}"
        )


def _assert_min_arg_count(
    args: Sequence[Value], minimum: int, function_name: str
) -> None:
    """Asserts a minimum argument count for variadic functions."""
    if len(args) < minimum:
        raise BuiltinError(
            function_name, f"expected at least {minimum} argument(s), got {len(args)}"
        )


def _assert_number(value: Value, arg_name: str, function_name: str) -> int | float:
    """Asserts that a value is a number."""
    if not is_number(value):
        raise BuiltinError(
            function_name, f"{arg_name} must be a number, got {get_type_name(value)}"
        )
    return value


def _assert_string(value: Value, arg_name: str, function_name: str) -> str:
    """Asserts that a value is a string."""
    if not isinstance(value, str):
        raise BuiltinError(
            function_name, f"{arg_name} must be a string, got {get_type_name(value)}"
        )
    return value


def _assert_array(value: Value, arg_name: str, function_name: str) -> Sequence[Value]:
    """Asserts that a value is an array."""
    if not isinstance(value, list | tuple):
        raise BuiltinError(
            function_name, f"{arg_name} must be an array, got {get_type_name(value)}"
        )
    return value


def _assert_non_empty(
    value: Sequence[Value], arg_name: str, function_name: str
) -> Sequence[Value]:
    if not value:
        raise BuiltinError(function_name, f"{arg_name} must not be empty")
    return value


def _assert_callable(value: Value, arg_name: str, function_name: str) -> NativeFunction:
    """Asserts that a value is a function."""
    if not isinstance(value, NativeFunction):
        raise BuiltinError(
            function_name, f"{arg_name} must be a function, got {get_type_name(value)}"
        )
    return value


def _assert_comparable(
    left: Value, right: Value, function_name: str
) -> None:
    """Ordering is defined between two numbers or two instants."""
    if is_number(left) and is_number(right):
        return
    if isinstance(left, datetime) and isinstance(right, datetime):
        return
    raise BuiltinError(
        function_name,
        f"cannot compare {get_type_name(left)} and {get_type_name(right)}",
    )


def _checked(
    function_name: str, op: Callable[[Any, Any], Any], a: Any, b: Any
) -> Any:
    """Applies a numeric operator, reporting overflow as a BuiltinError."""
    try:
        return op(a, b)
    except OverflowError as e:
        raise BuiltinError(function_name, "numeric result out of range") from e


def _shift_time(
    instant: datetime, seconds: int | float, function_name: str
) -> datetime:
    """Moves an instant by a number of seconds."""
    try:
        return instant + timedelta(seconds=seconds)
    except (OverflowError, ValueError) as e:
        raise BuiltinError(
            function_name, f"shifting time by {seconds} seconds is out of range"
        ) from e


def _assert_finite(n: int | float, function_name: str) -> int | float:
    # Integers are always finite; math.isfinite would overflow on huge ones
    if isinstance(n, float) and not math.isfinite(n):
        raise BuiltinError(function_name, f"cannot convert {n} to an integer")
    return n


# ============================================================
# Arithmetic
# ============================================================


def _add(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """
    +(a, b, ...) -> number | time

    Sums numbers. An instant as the first operand is shifted by the
    remaining operands, taken as seconds.
    """
    if args and isinstance(args[0], datetime):
        seconds: int | float = 0
        for arg in args[1:]:
            step = _assert_number(arg, "duration", "+")
            seconds = _checked("+", operator.add, seconds, step)
        return _shift_time(args[0], seconds, "+")

    total: int | float = 0
    for arg in args:
        operand = _assert_number(arg, "operand", "+")
        total = _checked("+", operator.add, total, operand)
    return total


def _subtract(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """
    -(a) -> number
    -(a, b, ...) -> number | time

    With one operand, negates it. ``(- t1 t2)`` between instants returns
    the difference in seconds; ``(- t n)`` shifts an instant back.
    """
    _assert_min_arg_count(args, 1, "-")
    first = args[0]

    if isinstance(first, datetime):
        _assert_arg_count(args, 2, "-")
        other = args[1]
        if isinstance(other, datetime):
            return (first - other).total_seconds()
        seconds = _assert_number(other, "duration", "-")
        return _shift_time(first, -seconds, "-")

    result = _assert_number(first, "operand", "-")
    if len(args) == 1:
        return -result
    for arg in args[1:]:
        operand = _assert_number(arg, "operand", "-")
        result = _checked("-", operator.sub, result, operand)
    return result


def _multiply(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """*(a, b, ...) -> number - Returns the product of its operands."""
    product: int | float = 1
    for arg in args:
        operand = _assert_number(arg, "operand", "*")
        product = _checked("*", operator.mul, product, operand)
    return product


def _divide(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """
    /(a, b, ...) -> number

    Integer operands use floor division; any float operand gives a float.
    """
    _assert_min_arg_count(args, 2, "/")
    result = _assert_number(args[0], "dividend", "/")
    for arg in args[1:]:
        divisor = _assert_number(arg, "divisor", "/")
        if divisor == 0:
            raise BuiltinError("/", "division by zero")
        if isinstance(result, int) and isinstance(divisor, int):
            result = result // divisor
        else:
            result = _checked("/", operator.truediv, result, divisor)
    return result


def _modulo(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """%(a, b) -> number - Returns the remainder of a divided by b."""
    _assert_arg_count(args, 2, "%")
    a = _assert_number(args[0], "a", "%")
    b = _assert_number(args[1], "b", "%")
    if b == 0:
        raise BuiltinError("%", "modulo by zero")
    return _checked("%", operator.mod, a, b)


def _floor(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """floor(n: number) -> number - Rounds down to an integer."""
    _assert_arg_count(args, 1, "floor")
    n = _assert_number(args[0], "n", "floor")
    return math.floor(_assert_finite(n, "floor"))


def _ceil(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """ceil(n: number) -> number - Rounds up to an integer."""
    _assert_arg_count(args, 1, "ceil")
    n = _assert_number(args[0], "n", "ceil")
    return math.ceil(_assert_finite(n, "ceil"))


def _round(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """round(n: number) -> number - Rounds half away from zero."""
    _assert_arg_count(args, 1, "round")
    n = _assert_finite(_assert_number(args[0], "n", "round"), "round")
    if isinstance(n, int):
        return n
    return int(math.copysign(math.floor(abs(n) + 0.5), n))


# ============================================================
# Comparison and Logic
# ============================================================


def _make_comparison(
    name: str, op: Callable[[Any, Any], bool]
) -> BuiltinFunction:
    def compare(args: Sequence[Value], ctx: BuiltinContext) -> Value:
        _assert_min_arg_count(args, 2, name)
        for left, right in zip(args, args[1:]):
            _assert_comparable(left, right, name)
            if not op(left, right):
                return False
        return True

    compare.__doc__ = f"{name}(a, b, ...) -> bool - Chained ordering comparison."
    return compare


def _equal(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """=(a, b, ...) -> bool - Structural equality of all operands."""
    _assert_min_arg_count(args, 2, "=")
    return all(values_equal(args[0], other) for other in args[1:])


def _not_equal(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """!=(a, b) -> bool - Negated structural equality."""
    _assert_arg_count(args, 2, "!=")
    return not values_equal(args[0], args[1])


def _not(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """not(x: any) -> bool - True for nil and false, False otherwise."""
    _assert_arg_count(args, 1, "not")
    return not is_truthy(args[0])


def _identity(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """identity(x: any) -> any - Returns its argument unchanged."""
    _assert_arg_count(args, 1, "identity")
    return args[0]


# ============================================================
# Strings and Conversions
# ============================================================


def _str(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """str(a, b, ...) -> string - Concatenates the text of its arguments."""
    return "".join(format_value(arg) for arg in args)


def _int(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """
    int(x: string | number) -> number

    Parses a string as an integer, truncating any fractional part.
    """
    _assert_arg_count(args, 1, "int")
    x = args[0]
    if is_number(x):
        return int(_assert_finite(x, "int"))

    text = _assert_string(x, "x", "int").strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError) as e:
        raise BuiltinError("int", f"cannot convert {x!r} to an integer") from e


def _float(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """float(x: string | number) -> number - Parses a string as a float."""
    _assert_arg_count(args, 1, "float")
    x = args[0]
    if is_number(x):
        return float(x)

    text = _assert_string(x, "x", "float")
    try:
        return float(text.strip())
    except ValueError as e:
        raise BuiltinError("float", f"cannot convert {x!r} to a float") from e


def _time(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """
    time(s: string) -> time

    Parses an ISO-8601 date or date-time when called. Text without an
    offset is read as UTC.
    """
    _assert_arg_count(args, 1, "time")
    s = args[0]
    if isinstance(s, datetime):
        return s

    text = _assert_string(s, "s", "time")
    try:
        return parse_time(text)
    except ValueError as e:
        raise BuiltinError("time", f"cannot parse {text!r} as a time") from e


# ============================================================
# Time Helpers
# ============================================================


def _make_duration(name: str, factor: int) -> BuiltinFunction:
    def duration(args: Sequence[Value], ctx: BuiltinContext) -> Value:
        _assert_arg_count(args, 1, name)
        return _assert_number(args[0], "n", name) * factor

    duration.__doc__ = f"{name}(n: number) -> number - Duration of n {name} in seconds."
    return duration


def _now(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """now() -> time - The current instant."""
    _assert_arg_count(args, 0, "now")
    return ctx.clock()


def _ago(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """ago(seconds: number) -> time - The instant that many seconds before now."""
    _assert_arg_count(args, 1, "ago")
    seconds = _assert_number(args[0], "seconds", "ago")
    return _shift_time(ctx.clock(), -seconds, "ago")


def _from_now(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """from-now(seconds: number) -> time - The instant that many seconds after now."""
    _assert_arg_count(args, 1, "from-now")
    seconds = _assert_number(args[0], "seconds", "from-now")
    return _shift_time(ctx.clock(), seconds, "from-now")


# ============================================================
# Array Helpers
# ============================================================


def _array(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """array(a, b, ...) -> array - Builds an array of its arguments."""
    return list(args)


def _first(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """first(arr: array) -> any - Returns the first element."""
    _assert_arg_count(args, 1, "first")
    arr = _assert_array(args[0], "arr", "first")
    return _assert_non_empty(arr, "arr", "first")[0]


def _last(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """last(arr: array) -> any - Returns the last element."""
    _assert_arg_count(args, 1, "last")
    arr = _assert_array(args[0], "arr", "last")
    return _assert_non_empty(arr, "arr", "last")[-1]


def _nth(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """nth(index: number, arr: array) -> any - Zero-based element access."""
    _assert_arg_count(args, 2, "nth")
    index = _assert_number(args[0], "index", "nth")
    arr = _assert_array(args[1], "arr", "nth")
    if not isinstance(index, int) or not 0 <= index < len(arr):
        raise BuiltinError("nth", f"index {index} out of range for {len(arr)} element(s)")
    return arr[index]


def _length(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """length(x: array | string) -> number - Returns the element count."""
    _assert_arg_count(args, 1, "length")
    x = args[0]
    if isinstance(x, str | list | tuple):
        return len(x)
    raise BuiltinError("length", f"expected array or string, got {get_type_name(x)}")


def _make_extremum(name: str, pick: Callable[..., Any]) -> BuiltinFunction:
    def extremum(args: Sequence[Value], ctx: BuiltinContext) -> Value:
        _assert_arg_count(args, 1, name)
        arr = _assert_non_empty(_assert_array(args[0], "arr", name), "arr", name)
        if not (
            all(is_number(v) for v in arr)
            or all(isinstance(v, datetime) for v in arr)
        ):
            raise BuiltinError(name, "elements must be all numbers or all times")
        return pick(arr)

    extremum.__doc__ = f"{name}(arr: array) -> number - Returns the {name}imum element."
    return extremum


def _member(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """member?(needle: any, arr: array) -> bool - Structural membership test."""
    _assert_arg_count(args, 2, "member?")
    needle = args[0]
    arr = _assert_array(args[1], "arr", "member?")
    return any(values_equal(needle, item) for item in arr)


# ============================================================
# Higher Order
# ============================================================


def _apply(args: Sequence[Value], ctx: BuiltinContext) -> Value:
    """
    apply(fn: function, arr: array) -> any

    Calls fn with the elements of arr as its arguments. The nested call
    counts as one evaluation step.
    """
    _assert_arg_count(args, 2, "apply")
    fn = _assert_callable(args[0], "fn", "apply")
    arr = _assert_array(args[1], "arr", "apply")
    ctx.counter.tick()
    return fn.invoke(list(arr), ctx)


# ============================================================
# Registry
# ============================================================

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR
SECONDS_PER_MONTH = 30 * SECONDS_PER_DAY

_BUILTIN_IMPLEMENTATIONS: Dict[str, BuiltinFunction] = {
    # Arithmetic
    "+": _add,
    "-": _subtract,
    "*": _multiply,
    "/": _divide,
    "%": _modulo,
    "floor": _floor,
    "ceil": _ceil,
    "round": _round,
    # Comparison and logic
    ">": _make_comparison(">", lambda a, b: a > b),
    "<": _make_comparison("<", lambda a, b: a < b),
    ">=": _make_comparison(">=", lambda a, b: a >= b),
    "<=": _make_comparison("<=", lambda a, b: a <= b),
    "=": _equal,
    "!=": _not_equal,
    "not": _not,
    "identity": _identity,
    # Strings and conversions
    "str": _str,
    "int": _int,
    "float": _float,
    "time": _time,
    # Time helpers
    "seconds": _make_duration("seconds", 1),
    "minutes": _make_duration("minutes", SECONDS_PER_MINUTE),
    "hours": _make_duration("hours", SECONDS_PER_HOUR),
    "days": _make_duration("days", SECONDS_PER_DAY),
    "months": _make_duration("months", SECONDS_PER_MONTH),
    "now": _now,
    "ago": _ago,
    "from-now": _from_now,
    # Array helpers
    "array": _array,
    "first": _first,
    "last": _last,
    "nth": _nth,
    "length": _length,
    "max": _make_extremum("max", max),
    "min": _make_extremum("min", min),
    "member?": _member,
    # Higher order
    "apply": _apply,
}

# Registry of all built-in functions. Read-only for the life of the process.
BUILTIN_FUNCTIONS: FunctionRegistry = MappingProxyType(
    {
        name: NativeFunction(name, fn, builtin=True)
        for name, fn in _BUILTIN_IMPLEMENTATIONS.items()
    }
)


def create_function_registry(
    extra: Optional[Mapping[str, Callable[..., Any]]] = None,
    *,
    builtin_convention: bool = False,
) -> FunctionRegistry:
    """
    Returns a registry holding the built-ins plus ``extra`` functions.

    With ``builtin_convention`` the extra functions are called as
    ``fn(args, ctx)``; otherwise they are called positionally like any host
    callable. Extra entries shadow built-ins of the same name.
    """
    registry: Dict[str, NativeFunction] = dict(BUILTIN_FUNCTIONS)
    for name, fn in (extra or {}).items():
        if builtin_convention:
            registry[name] = NativeFunction(name, fn, builtin=True)
        else:
            registry[name] = normalize_value(fn, name)  # type: ignore[assignment]
    return MappingProxyType(registry)


def call_builtin(
    name: str,
    args: Sequence[Value],
    context: BuiltinContext,
    functions: Optional[FunctionRegistry] = None,
) -> Value:
    """
    Calls a built-in function by name.

    Args:
        name: The function name
        args: The function arguments
        context: The evaluation context
        functions: Optional function registry (defaults to BUILTIN_FUNCTIONS)

    Returns:
        The function result

    Raises:
        UndefinedSymbolError: If the function doesn't exist
        ArgumentError: If the function rejects its arguments
    """
    functions = functions if functions is not None else BUILTIN_FUNCTIONS
    fn = functions.get(name)
    if fn is None:
        raise UndefinedSymbolError(name, context.position, context.source)
    return fn.invoke(args, context)


def is_builtin_function(
    name: str, functions: Optional[FunctionRegistry] = None
) -> bool:
    """Checks if a name is a built-in function."""
    functions = functions if functions is not None else BUILTIN_FUNCTIONS
    return name in functions
