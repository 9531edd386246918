"""
Runtime value model.

Values are plain Python objects:

- Nil: ``None``
- Boolean: ``bool``
- Number: ``int`` or ``float`` (never ``bool``)
- String: ``str``
- Array: ``list`` of values (never mutated once produced)
- Instant: timezone-aware ``datetime`` (UTC for naive input)
- Callable: ``NativeFunction``, wrapping either a built-in or a host callable

Only ``None`` and ``False`` are falsey.
"""

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence, Union

from .errors import ArgumentError, EvaluationError

if TYPE_CHECKING:
    from .builtins import BuiltinContext


class NativeFunction:
    """
    Callable value.

    Built-ins follow the ``fn(args, ctx)`` convention and validate their own
    arguments. Host callables are invoked positionally with the evaluated
    arguments; their ``TypeError``/``ValueError`` become ``ArgumentError``.
    """

    __slots__ = ("name", "fn", "builtin")

    def __init__(self, name: str, fn: Callable[..., Any], builtin: bool = False):
        self.name = name
        self.fn = fn
        self.builtin = builtin

    def invoke(self, args: Sequence["Value"], ctx: "BuiltinContext") -> "Value":
        if self.builtin:
            return self.fn(args, ctx)

        try:
            result = self.fn(*args)
        except (TypeError, ValueError) as e:
            raise ArgumentError(
                f"{self.name}: {e}", ctx.position, ctx.source
            ) from e
        return normalize_value(result)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, NativeFunction) and self.fn is other.fn

    def __hash__(self) -> int:
        return hash(self.fn)

    def __repr__(self) -> str:
        kind = "builtin" if self.builtin else "native"
        return f"<{kind} function {self.name}>"


# Runtime value types for the interpreter.
Value = Union[
    None,
    bool,
    int,
    float,
    str,
    datetime,
    NativeFunction,
    Sequence["Value"],
]

# Wall clock capability used by now/ago/from-now.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: the current instant in UTC."""
    return datetime.now(timezone.utc)


def is_truthy(value: Value) -> bool:
    """Only nil and false are falsey."""
    return value is not None and value is not False


def is_number(value: Any) -> bool:
    """Checks for a Number value (booleans are not numbers)."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def to_instant(value: datetime | date) -> datetime:
    """Converts a date or datetime to an aware instant, assuming UTC when naive."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_time(text: str) -> datetime:
    """
    Parses an ISO-8601 date or date-time string into an instant.

    Raises:
        ValueError: If the text is not a recognizable date or date-time
    """
    text = text.strip()
    if not text:
        raise ValueError("empty time string")
    return to_instant(datetime.fromisoformat(text))


def normalize_value(value: Any, name: Optional[str] = None) -> Value:
    """
    Normalizes a host-supplied Python value to a Value.

    Rules:
    - None/bool/int/float/str -> returned as-is
    - list/tuple -> list with elements recursively normalized
    - date/datetime -> aware instant
    - NativeFunction -> returned as-is
    - other callables -> wrapped as a host NativeFunction
    - anything else -> EvaluationError
    """
    if value is None or isinstance(value, bool | int | float | str):
        return value

    if isinstance(value, list | tuple):
        return [normalize_value(element) for element in value]

    if isinstance(value, datetime | date):
        return to_instant(value)

    if isinstance(value, NativeFunction):
        return value

    if callable(value):
        fn_name = name or getattr(value, "__name__", None) or repr(value)
        return NativeFunction(fn_name, value)

    raise EvaluationError(
        f"Unsupported value of type {type(value).__name__}"
        + (f" bound to {name}" if name else "")
    )


def get_type_name(value: Value) -> str:
    """Gets the type name of a value for error messages."""
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, datetime):
        return "time"
    if isinstance(value, NativeFunction):
        return "function"
    return type(value).__name__


def values_equal(a: Value, b: Value) -> bool:
    """Structural equality; numbers compare across int/float."""
    if a is b:
        return True

    if is_number(a) and is_number(b):
        return a == b

    if isinstance(a, bool) or isinstance(b, bool):
        return False

    if isinstance(a, list | tuple) and isinstance(b, list | tuple):
        if len(a) != len(b):
            return False
        return all(values_equal(x, y) for x, y in zip(a, b))

    if type(a) is not type(b):
        return False

    return a == b


def format_value(value: Value) -> str:
    """Textual rendering of a value, as produced by ``str``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list | tuple):
        return "[" + " ".join(format_value(v) for v in value) + "]"
    if isinstance(value, datetime):
        return value.isoformat()
    try:
        return str(value)
    except ValueError as e:
        # int-to-str conversion refuses integers past sys.get_int_max_str_digits()
        raise ArgumentError(f"value is too large to render as text: {e}") from e
