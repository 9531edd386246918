"""
Sandboxed S-expression interpreter.

Hosts evaluate small Lisp-like rule scripts against their own variables
and callables, under an op budget that bounds the work any script can do.

    >>> from interrotron import Interrotron, run
    >>> run("(> 51 custom_var)", {"custom_var": 10})
    True
    >>> compiled = Interrotron({"is_valid": lambda s: s[::-1] == "oof"}).compile(
    ...     "(is_valid my_param)"
    ... )
    >>> compiled({"my_param": "foo"})
    True
"""

# Syntax tree
from .ast import (
    AstNode,
    AstNodeBase,
    AtomNode,
    FormNode,
    SymbolNode,
    ast_to_string,
    calculate_ast_depth,
    count_ast_nodes,
)

# Builtins
from .builtins import (
    BUILTIN_FUNCTIONS,
    BuiltinContext,
    BuiltinFunction,
    FunctionRegistry,
    call_builtin,
    create_function_registry,
    is_builtin_function,
)
from .config import InterrotronConfig, normalize_config
from .errors import (
    ArgumentError,
    BuiltinError,
    EvaluationError,
    InterroArgumentError,
    InterrotronError,
    LimitExceededError,
    OpsThresholdError,
    ParseError,
    TokenizerError,
    UndefinedSymbolError,
)

# Evaluator
from .evaluator import (
    EvaluationContext,
    EvaluationResult,
    Evaluator,
    evaluate_as_boolean,
    evaluate_safely,
)
from .evaluator import evaluate as evaluate_nodes
from .limits import (
    DEFAULT_EVALUATION_LIMITS,
    EvaluationLimits,
    OpCounter,
    check_depth,
    check_source_length,
)

# Parser
from .parser import Parser, parse, read

# Compiled scripts
from .program import CompiledScript, Interrotron, evaluate, run
from .special_forms import SPECIAL_FORMS, is_special_form

# Tokenizer
from .tokenizer import Token, Tokenizer, TokenType, tokenize

# Values
from .values import (
    Clock,
    NativeFunction,
    Value,
    format_value,
    get_type_name,
    is_truthy,
    normalize_value,
    parse_time,
    values_equal,
)

__all__ = [
    # Syntax tree
    "AstNode",
    "AstNodeBase",
    "AtomNode",
    "SymbolNode",
    "FormNode",
    "count_ast_nodes",
    "calculate_ast_depth",
    "ast_to_string",
    # Errors
    "InterrotronError",
    "TokenizerError",
    "ParseError",
    "EvaluationError",
    "ArgumentError",
    "InterroArgumentError",
    "BuiltinError",
    "UndefinedSymbolError",
    "LimitExceededError",
    "OpsThresholdError",
    # Limits and configuration
    "EvaluationLimits",
    "DEFAULT_EVALUATION_LIMITS",
    "OpCounter",
    "check_source_length",
    "check_depth",
    "InterrotronConfig",
    "normalize_config",
    # Tokenizer
    "Token",
    "TokenType",
    "Tokenizer",
    "tokenize",
    # Parser
    "Parser",
    "parse",
    "read",
    # Values
    "Value",
    "Clock",
    "NativeFunction",
    "format_value",
    "get_type_name",
    "is_truthy",
    "normalize_value",
    "parse_time",
    "values_equal",
    # Builtins and special forms
    "BuiltinFunction",
    "BuiltinContext",
    "FunctionRegistry",
    "BUILTIN_FUNCTIONS",
    "call_builtin",
    "create_function_registry",
    "is_builtin_function",
    "SPECIAL_FORMS",
    "is_special_form",
    # Evaluator
    "EvaluationContext",
    "EvaluationResult",
    "Evaluator",
    "evaluate_nodes",
    "evaluate_safely",
    "evaluate_as_boolean",
    # Compiled scripts
    "Interrotron",
    "CompiledScript",
    "run",
    "evaluate",
]
