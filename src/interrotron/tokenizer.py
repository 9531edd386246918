"""
Tokenizer (lexer) for the interpreter's S-expression syntax.

Converts source text into a stream of tokens for the parser.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .errors import TokenizerError
from .limits import EvaluationLimits, check_source_length


class TokenType(Enum):
    """Token types produced by the tokenizer."""

    # Literals
    STRING = "STRING"
    NUMBER = "NUMBER"
    TIME = "TIME"
    TRUE = "TRUE"
    FALSE = "FALSE"
    NIL = "NIL"

    # Identifiers (including operator names such as + and member?)
    SYMBOL = "SYMBOL"

    # Delimiters
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"

    # Special
    EOF = "EOF"


@dataclass
class Token:
    """A token produced by the tokenizer."""

    type: TokenType
    value: str
    position: int


# Keywords recognized by the tokenizer
KEYWORDS: Dict[str, TokenType] = {
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "nil": TokenType.NIL,
}

NUMBER_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")

TIME_LITERAL_PREFIX = "#t{"

# Characters that end a bare token
_DELIMITERS = frozenset("()';")


def _is_whitespace(ch: str) -> bool:
    """Checks if a character is whitespace."""
    return ch.isspace()


def _is_delimiter(ch: str) -> bool:
    return ch in _DELIMITERS or _is_whitespace(ch)


class Tokenizer:
    """Tokenizer for source text."""

    def __init__(self, source: str, limits: Optional[EvaluationLimits] = None):
        self._source = source
        self._limits = limits
        self._position = 0
        self._tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Tokenizes the source text and returns all tokens."""
        check_source_length(self._source, self._limits)

        while not self._is_at_end():
            self._scan_token()

        self._tokens.append(Token(TokenType.EOF, "", self._position))
        return self._tokens

    def _is_at_end(self) -> bool:
        return self._position >= len(self._source)

    def _peek(self) -> str:
        if self._is_at_end():
            return "\0"
        return self._source[self._position]

    def _advance(self) -> str:
        ch = self._source[self._position]
        self._position += 1
        return ch

    def _add_token(self, token_type: TokenType, value: str, position: int) -> None:
        self._tokens.append(Token(token_type, value, position))

    def _scan_token(self) -> None:
        ch = self._advance()
        start_position = self._position - 1

        if _is_whitespace(ch):
            return

        # Comments run to end of line
        if ch == ";":
            while not self._is_at_end() and self._peek() != "\n":
                self._advance()
            return

        if ch == "(":
            self._add_token(TokenType.LPAREN, ch, start_position)
            return

        if ch == ")":
            self._add_token(TokenType.RPAREN, ch, start_position)
            return

        if ch == "'":
            self._scan_string(start_position)
            return

        if ch == "#":
            self._scan_time_literal(start_position)
            return

        self._scan_bare(start_position)

    def _scan_string(self, start_position: int) -> None:
        # No escape processing: everything up to the next quote is content
        end = self._source.find("'", self._position)
        if end == -1:
            raise TokenizerError("Unterminated string", start_position, self._source)

        value = self._source[self._position : end]
        self._position = end + 1
        self._add_token(TokenType.STRING, value, start_position)

    def _scan_time_literal(self, start_position: int) -> None:
        if not self._source.startswith(TIME_LITERAL_PREFIX, start_position):
            raise TokenizerError(
                "Unexpected '#'. Time literals are written #t{...}",
                start_position,
                self._source,
            )

        body_start = start_position + len(TIME_LITERAL_PREFIX)
        end = self._source.find("}", body_start)
        if end == -1:
            raise TokenizerError(
                "Unterminated time literal", start_position, self._source
            )

        value = self._source[body_start:end].strip()
        self._position = end + 1
        self._add_token(TokenType.TIME, value, start_position)

    def _scan_bare(self, start_position: int) -> None:
        # Back up to include the first character
        self._position -= 1

        while not self._is_at_end() and not _is_delimiter(self._peek()):
            self._advance()

        value = self._source[start_position : self._position]

        if NUMBER_PATTERN.fullmatch(value):
            self._add_token(TokenType.NUMBER, value, start_position)
            return

        keyword_type = KEYWORDS.get(value)
        if keyword_type:
            self._add_token(keyword_type, value, start_position)
        else:
            self._add_token(TokenType.SYMBOL, value, start_position)


def tokenize(source: str, limits: Optional[EvaluationLimits] = None) -> List[Token]:
    """
    Tokenizes source text into tokens.

    Args:
        source: The source text to tokenize
        limits: Optional evaluation limits

    Returns:
        List of tokens, terminated by an EOF token

    Raises:
        TokenizerError: If the source contains invalid tokens
        LimitExceededError: If the source is longer than allowed
    """
    tokenizer = Tokenizer(source, limits)
    return tokenizer.tokenize()
