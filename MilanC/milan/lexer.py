"""
Contains functions and definitions for lexing Milan code into tokens, one token at a time.
"""

from typing import Iterator, List, Tuple, Union

import enum
import re

import milan.errors as er
from milan.bytecode import Cmp


@enum.unique
class TokenType(enum.Enum):
    """
    Enumerates the different types of tokens that can be in Milan source code. The value is
    the description used when reporting errors.
    """

    # Special
    EOF = "end of file"
    ILLEGAL = "illegal symbol"
    # Non-definite tokens
    IDENTIFIER = "identifier"
    NUMBER = "number"
    # Keywords
    BEGIN = "'begin'"
    END = "'end'"
    IF = "'if'"
    THEN = "'then'"
    ELSE = "'else'"
    FI = "'fi'"
    WHILE = "'while'"
    DO = "'do'"
    OD = "'od'"
    WRITE = "'write'"
    READ = "'read'"
    FALSE = "'false'"
    TRUE = "'true'"
    # Symbols
    ASSIGN = "':='"
    ADDOP = "'+' or '-'"
    MULOP = "'*' or '/'"
    BITWISE_AND = "'&'"
    BITWISE_OR = "'|'"
    LOGICAL_AND = "'&&'"
    LOGICAL_OR = "'||'"
    LOGICAL_NOT = "'!'"
    CMP = "comparison operator"
    LEFT_PAREN = "'('"
    RIGHT_PAREN = "')'"
    SEMICOLON = "';'"

    def __str__(self) -> str:
        return str(self.value)


@enum.unique
class Arithmetic(enum.Enum):
    """
    Enumerates the arithmetic operators carried by ADDOP and MULOP tokens.
    """

    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"

    def __str__(self) -> str:
        return str(self.value)


KEYWORDS = {
    "begin": TokenType.BEGIN,
    "end": TokenType.END,
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "fi": TokenType.FI,
    "while": TokenType.WHILE,
    "do": TokenType.DO,
    "od": TokenType.OD,
    "write": TokenType.WRITE,
    "read": TokenType.READ,
    "false": TokenType.FALSE,
    "true": TokenType.TRUE,
}

TokenValue = Union[None, int, str, Cmp, Arithmetic]

# Longer operators come first so that e.g. "<=" isn't lexed as "<" followed by "=".
SYMBOLS: List[Tuple[str, TokenType, TokenValue]] = [
    (":=", TokenType.ASSIGN, None),
    ("&&", TokenType.LOGICAL_AND, None),
    ("||", TokenType.LOGICAL_OR, None),
    ("!=", TokenType.CMP, Cmp.NE),
    ("<=", TokenType.CMP, Cmp.LE),
    (">=", TokenType.CMP, Cmp.GE),
    ("=", TokenType.CMP, Cmp.EQ),
    ("<", TokenType.CMP, Cmp.LT),
    (">", TokenType.CMP, Cmp.GT),
    ("&", TokenType.BITWISE_AND, None),
    ("|", TokenType.BITWISE_OR, None),
    ("!", TokenType.LOGICAL_NOT, None),
    ("+", TokenType.ADDOP, Arithmetic.PLUS),
    ("-", TokenType.ADDOP, Arithmetic.MINUS),
    ("*", TokenType.MULOP, Arithmetic.MULTIPLY),
    ("/", TokenType.MULOP, Arithmetic.DIVIDE),
    ("(", TokenType.LEFT_PAREN, None),
    (")", TokenType.RIGHT_PAREN, None),
    (";", TokenType.SEMICOLON, None),
]

SKIP_PATTERN = re.compile(r"\s+")
IDENTIFIER_PATTERN = re.compile(r"[a-zA-Z][a-zA-Z0-9]*")
NUMBER_PATTERN = re.compile(r"[0-9]+")


class Token:
    """
    Represents a single token within a string of Milan source code.
    """

    def __init__(
        self, kind: TokenType, lexeme: er.SourceView, line: int, value: TokenValue = None
    ) -> None:
        self.kind = kind
        self.lexeme = lexeme
        self.line = line
        self.value = value

    def __repr__(self) -> str:
        return (
            f"Token(kind={self.kind.name}, lexeme={str(self.lexeme)!r}, "
            f"line={self.line}, value={self.value!r})"
        )

    def __str__(self) -> str:
        return str(self.lexeme)

    def describe(self) -> str:
        """
        Returns the description of the token used in error messages.
        """
        if self.kind in (TokenType.IDENTIFIER, TokenType.NUMBER, TokenType.ILLEGAL):
            return f"{self.kind} '{self.lexeme}'"
        if self.kind == TokenType.CMP:
            return f"'{self.lexeme}'"
        return str(self.kind)


class Lexer:
    """
    Class for walking over a source string and producing tokens on demand.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.cursor = 0
        self.line = 1

    def done(self) -> bool:
        """
        Returns whether the source has been fully used up or not.
        """
        return self.cursor >= len(self.source)

    def _consume(self, length: int, kind: TokenType, value: TokenValue = None) -> Token:
        lexeme = er.SourceView(
            source=self.source, start=self.cursor, end=self.cursor + length
        )
        self.cursor += length
        return Token(kind=kind, lexeme=lexeme, line=self.line, value=value)

    def skip(self) -> bool:
        """
        Check if there is whitespace at the cursor, and if there is move after it, counting
        any newlines. Returns whether any was skipped.
        """
        match = SKIP_PATTERN.match(self.source, self.cursor)
        if match:
            self.line += match.group(0).count("\n")
            self.cursor = match.end()
            return True
        return False

    def next_token(self) -> Token:
        """
        Consumes and returns the next token of the source. Once the source is used up every
        call returns an EOF token.
        """
        self.skip()
        if self.done():
            return self._consume(0, TokenType.EOF)

        match = IDENTIFIER_PATTERN.match(self.source, self.cursor)
        if match:
            word = match.group(0)
            if word in KEYWORDS:
                return self._consume(len(word), KEYWORDS[word])
            return self._consume(len(word), TokenType.IDENTIFIER, word)

        match = NUMBER_PATTERN.match(self.source, self.cursor)
        if match:
            literal = match.group(0)
            return self._consume(len(literal), TokenType.NUMBER, int(literal))

        for symbol, kind, value in SYMBOLS:
            if self.source.startswith(symbol, self.cursor):
                return self._consume(len(symbol), kind, value)

        # A ':' not followed by '=' lands here too
        return self._consume(1, TokenType.ILLEGAL)

    def __iter__(self) -> Iterator[Token]:
        """
        Iterates over the remaining tokens, ending with (and including) the first EOF token.
        """
        while True:
            token = self.next_token()
            yield token
            if token.kind == TokenType.EOF:
                return


def tokenize_source(source: str) -> List[Token]:
    """
    Given a string of Milan source code, lexes it into a list of tokens ending with EOF.
    """
    return list(Lexer(source))
