"""
Parser (reader) for the interpreter.

Turns the token stream into a sequence of top-level syntax nodes. Number,
string, keyword and time literals are resolved here, so a ``#t{...}``
literal is fixed once at read time rather than on every evaluation.
"""

from typing import List, Tuple

from .ast import AstNode, AtomNode, FormNode, SymbolNode
from .errors import ParseError
from .limits import DEFAULT_EVALUATION_LIMITS, EvaluationLimits, check_depth
from .tokenizer import Token, TokenType, tokenize
from .values import parse_time

INTEGER_CHARS = frozenset("+-0123456789")


class Parser:
    """Parser for source text."""

    def __init__(
        self,
        tokens: List[Token],
        source: str,
        limits: EvaluationLimits = DEFAULT_EVALUATION_LIMITS,
    ):
        self._tokens = tokens
        self._source = source
        self._limits = limits
        self._current = 0

    def parse(self) -> Tuple[AstNode, ...]:
        """Parses the token stream into the top-level nodes."""
        nodes: List[AstNode] = []

        while not self._is_at_end():
            if self._check(TokenType.RPAREN):
                token = self._peek()
                raise ParseError("Unexpected ')'", token.position, self._source)
            nodes.append(self._parse_expression(1))

        return tuple(nodes)

    # ============================================================
    # Token Helpers
    # ============================================================

    def _is_at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self) -> Token:
        return self._tokens[self._current]

    def _previous(self) -> Token:
        return self._tokens[self._current - 1]

    def _advance(self) -> Token:
        if not self._is_at_end():
            self._current += 1
        return self._previous()

    def _check(self, token_type: TokenType) -> bool:
        if self._is_at_end():
            return False
        return self._peek().type == token_type

    def _match(self, *types: TokenType) -> bool:
        for token_type in types:
            if self._check(token_type):
                self._advance()
                return True
        return False

    # ============================================================
    # Expression Parsing
    # ============================================================

    def _parse_expression(self, depth: int) -> AstNode:
        check_depth(depth, self._limits)

        token = self._peek()
        position = token.position

        if self._match(TokenType.LPAREN):
            return self._parse_form(position, depth)

        if self._match(TokenType.TRUE):
            return AtomNode(position=position, value=True)
        if self._match(TokenType.FALSE):
            return AtomNode(position=position, value=False)
        if self._match(TokenType.NIL):
            return AtomNode(position=position, value=None)

        if self._match(TokenType.STRING):
            return AtomNode(position=position, value=token.value)

        if self._match(TokenType.NUMBER):
            return AtomNode(position=position, value=self._parse_number(token))

        if self._match(TokenType.TIME):
            return AtomNode(position=position, value=self._parse_time(token))

        if self._match(TokenType.SYMBOL):
            return SymbolNode(position=position, name=token.value)

        raise ParseError(
            f"Unexpected token: {token.value or token.type.value}",
            position,
            self._source,
        )

    def _parse_form(self, position: int, depth: int) -> FormNode:
        """Parses a form (opening paren already consumed)."""
        elements: List[AstNode] = []

        while not self._check(TokenType.RPAREN):
            if self._is_at_end():
                raise ParseError("Unbalanced '(': missing ')'", position, self._source)
            elements.append(self._parse_expression(depth + 1))

        self._advance()

        if not elements:
            raise ParseError("Empty form: missing function head", position, self._source)

        return FormNode(position=position, elements=tuple(elements))

    def _parse_number(self, token: Token) -> int | float:
        if all(ch in INTEGER_CHARS for ch in token.value):
            return int(token.value)
        return float(token.value)

    def _parse_time(self, token: Token):
        try:
            return parse_time(token.value)
        except ValueError as e:
            raise ParseError(
                f"Invalid time literal: {token.value!r}", token.position, self._source
            ) from e


def parse(
    source: str, limits: EvaluationLimits = DEFAULT_EVALUATION_LIMITS
) -> Tuple[AstNode, ...]:
    """
    Reads source text into its top-level syntax nodes.

    Args:
        source: The source text to read
        limits: Optional evaluation limits

    Returns:
        The top-level nodes, in source order (empty for empty input)

    Raises:
        TokenizerError: If tokenization fails
        ParseError: If parsing fails
    """
    tokens = tokenize(source, limits)
    parser = Parser(tokens, source, limits)
    return parser.parse()


# The reader's traditional name
read = parse
