"""
Syntax tree node types.

The tree is produced by the parser and consumed by the evaluator. Nodes are
frozen; a parsed tree may be shared between threads and evaluations.
"""

from abc import ABC
from dataclasses import dataclass
from typing import Literal, Sequence, Union

from .values import Value, format_value

# ============================================================
# AST Node Types
# ============================================================


@dataclass(frozen=True)
class AstNodeBase(ABC):
    """Base class for all AST nodes."""

    position: int
    """Position in source text (for error reporting)."""


@dataclass(frozen=True)
class AtomNode(AstNodeBase):
    """Literal resolved at read time: number, string, boolean, nil or time."""

    value: Value

    @property
    def type(self) -> Literal["Atom"]:
        return "Atom"


@dataclass(frozen=True)
class SymbolNode(AstNodeBase):
    """Identifier resolved at evaluation time."""

    name: str

    @property
    def type(self) -> Literal["Symbol"]:
        return "Symbol"


@dataclass(frozen=True)
class FormNode(AstNodeBase):
    """Parenthesized S-expression: a head followed by argument nodes."""

    elements: Sequence["AstNode"]

    @property
    def type(self) -> Literal["Form"]:
        return "Form"

    @property
    def head(self) -> "AstNode":
        return self.elements[0]

    @property
    def args(self) -> Sequence["AstNode"]:
        return self.elements[1:]


# Union type for all AST nodes
AstNode = Union[AtomNode, SymbolNode, FormNode]


# ============================================================
# AST Utilities
# ============================================================


def count_ast_nodes(node: AstNode) -> int:
    """Counts the total number of nodes in an AST."""
    if isinstance(node, FormNode):
        return 1 + sum(count_ast_nodes(e) for e in node.elements)
    return 1


def calculate_ast_depth(node: AstNode) -> int:
    """Calculates the maximum depth of an AST."""
    if isinstance(node, FormNode):
        return 1 + max(calculate_ast_depth(e) for e in node.elements)
    return 1


def ast_to_string(node: AstNode, indent: int = 0) -> str:
    """Returns a human-readable representation of an AST node for debugging."""
    prefix = "  " * indent

    if isinstance(node, AtomNode):
        if isinstance(node.value, str):
            return f"{prefix}Atom: '{node.value}'"
        if node.value is None:
            return f"{prefix}Atom: nil"
        return f"{prefix}Atom: {format_value(node.value)}"

    if isinstance(node, SymbolNode):
        return f"{prefix}Symbol: {node.name}"

    if isinstance(node, FormNode):
        elements_str = "\n".join(ast_to_string(e, indent + 1) for e in node.elements)
        return f"{prefix}Form:\n{elements_str}"

    return f"{prefix}Unknown: {node}"
