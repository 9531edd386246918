"""
Error types for the interpreter.

All interpreter errors extend InterrotronError so hosts can catch a single
base class around ``run``/``invoke``.
"""

from typing import Optional


class InterrotronError(Exception):
    """
    Base error class for all interpreter errors.
    """

    def __init__(
        self,
        message: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.position = position
        self.expression = expression

    def format_with_context(self) -> str:
        """
        Returns a formatted error message with position context.
        """
        if self.expression is None or self.position is None:
            return self.message

        # Only the line holding the offending character is shown
        line_start = self.expression.rfind("\n", 0, self.position) + 1
        line_end = self.expression.find("\n", self.position)
        if line_end == -1:
            line_end = len(self.expression)
        line = self.expression[line_start:line_end]
        pointer = " " * (self.position - line_start) + "^"
        return f"{self.message}\n  {line}\n  {pointer}"


class ParseError(InterrotronError):
    """
    Error thrown while reading source text (unbalanced parentheses,
    empty forms, malformed time literals).
    """

    pass


class TokenizerError(ParseError):
    """
    Error thrown during tokenization (unterminated strings, bad literals).
    """

    pass


class EvaluationError(InterrotronError):
    """
    Error thrown during evaluation (runtime error).
    """

    pass


class ArgumentError(EvaluationError):
    """
    Error thrown when a non-callable value sits in function position, or a
    function receives the wrong number or kind of arguments.
    """

    pass


# Older name, kept for existing host integrations.
InterroArgumentError = ArgumentError


class BuiltinError(ArgumentError):
    """
    Error thrown when a built-in function rejects its arguments.
    """

    def __init__(
        self,
        function_name: str,
        message: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        full_message = f"{function_name}: {message}"
        super().__init__(full_message, position, expression)
        self.function_name = function_name


class UndefinedSymbolError(EvaluationError):
    """
    Error thrown when a symbol is neither bound by the host nor built in.
    """

    def __init__(
        self,
        name: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(f"Undefined symbol: {name}", position, expression)
        self.name = name


class LimitExceededError(InterrotronError):
    """
    Error thrown when a configured resource limit is exceeded.
    """

    def __init__(self, limit_name: str, limit: int, actual: int):
        message = f"Limit exceeded: {limit_name} (limit: {limit}, actual: {actual})"
        super().__init__(message)
        self.limit_name = limit_name
        self.limit = limit
        self.actual = actual


class OpsThresholdError(LimitExceededError):
    """
    Error thrown when a script performs more evaluation steps than its
    op budget allows. Evaluation is aborted with no partial result.
    """

    def __init__(self, limit: int, actual: int):
        super().__init__("max_ops", limit, actual)
