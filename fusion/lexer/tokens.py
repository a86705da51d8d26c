"""
Token definitions for the Fusion lexer.

This module defines every token kind produced by the lexer:
- Literals (integers, decimals, strings)
- Operators and punctuation
- Keywords
- Trivia and special tokens (whitespace, bad input, end of file)

Author: xwest
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..text import TextSpan


class TokenKind(Enum):
    """
    Enumeration of all token kinds in Fusion.

    ``str(kind)`` is the stable form used when tokens appear in diagnostics.
    """

    # ========================================================================
    # Literals
    # ========================================================================
    NUMBER = auto()                 # 42
    DECIMAL = auto()                # 1.5, 2d, d3.25
    STRING = auto()                 # "hello", 'world'

    # ========================================================================
    # Operators
    # ========================================================================
    PLUS = auto()                   # +
    MINUS = auto()                  # -
    ASTERISK = auto()               # *
    SLASH = auto()                  # /
    EQUALS = auto()                 # =
    AMPERSAND = auto()              # &
    PIPE = auto()                   # |
    CARET = auto()                  # ^
    DOUBLE_ASTERISK = auto()        # **
    TILDE = auto()                  # ~
    GREATER_THAN = auto()           # >
    LESS_THAN = auto()              # <
    GREATER_THAN_EQUALS = auto()    # >=
    LESS_THAN_EQUALS = auto()       # <=
    EQUALS_EQUALS = auto()          # ==
    BANG_EQUALS = auto()            # !=

    # ========================================================================
    # Keywords
    # ========================================================================
    LET = auto()
    IF = auto()
    ELSE = auto()
    TRUE = auto()
    FALSE = auto()
    WHILE = auto()
    FUNC = auto()
    RETURN = auto()

    # ========================================================================
    # Separators
    # ========================================================================
    LEFT_PAREN = auto()             # (
    RIGHT_PAREN = auto()            # )
    OPEN_BRACE = auto()             # {
    CLOSE_BRACE = auto()            # }
    COMMA = auto()                  # ,
    COLON = auto()                  # :
    SEMICOLON = auto()              # ;
    ARROW = auto()                  # ->

    # ========================================================================
    # Other
    # ========================================================================
    BAD = auto()
    WHITESPACE = auto()
    IDENTIFIER = auto()
    EOF = auto()

    def __str__(self) -> str:
        return TOKEN_DISPLAY_NAMES[self]

    @property
    def is_keyword(self) -> bool:
        return self in KEYWORDS.values()


TOKEN_DISPLAY_NAMES: Dict[TokenKind, str] = {
    TokenKind.NUMBER: "Number",
    TokenKind.DECIMAL: "Decimal",
    TokenKind.STRING: "String",
    TokenKind.PLUS: "+",
    TokenKind.MINUS: "-",
    TokenKind.ASTERISK: "*",
    TokenKind.SLASH: "/",
    TokenKind.EQUALS: "=",
    TokenKind.AMPERSAND: "&",
    TokenKind.PIPE: "|",
    TokenKind.CARET: "^",
    TokenKind.DOUBLE_ASTERISK: "**",
    TokenKind.TILDE: "~",
    TokenKind.GREATER_THAN: ">",
    TokenKind.LESS_THAN: "<",
    TokenKind.GREATER_THAN_EQUALS: ">=",
    TokenKind.LESS_THAN_EQUALS: "<=",
    TokenKind.EQUALS_EQUALS: "==",
    TokenKind.BANG_EQUALS: "!=",
    TokenKind.LET: "Let",
    TokenKind.IF: "If",
    TokenKind.ELSE: "Else",
    TokenKind.TRUE: "True",
    TokenKind.FALSE: "False",
    TokenKind.WHILE: "While",
    TokenKind.FUNC: "Func",
    TokenKind.RETURN: "Return",
    TokenKind.LEFT_PAREN: "(",
    TokenKind.RIGHT_PAREN: ")",
    TokenKind.OPEN_BRACE: "{",
    TokenKind.CLOSE_BRACE: "}",
    TokenKind.COMMA: "Comma",
    TokenKind.COLON: "Colon",
    TokenKind.SEMICOLON: "SemiColon",
    TokenKind.ARROW: "Arrow",
    TokenKind.BAD: "Bad",
    TokenKind.WHITESPACE: "Whitespace",
    TokenKind.IDENTIFIER: "Identifier",
    TokenKind.EOF: "Eof",
}


KEYWORDS: Dict[str, TokenKind] = {
    "let": TokenKind.LET,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
    "while": TokenKind.WHILE,
    "func": TokenKind.FUNC,
    "return": TokenKind.RETURN,
}

SINGLE_CHAR_TOKENS: Dict[str, TokenKind] = {
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.ASTERISK,
    "/": TokenKind.SLASH,
    "=": TokenKind.EQUALS,
    "&": TokenKind.AMPERSAND,
    "|": TokenKind.PIPE,
    "^": TokenKind.CARET,
    "~": TokenKind.TILDE,
    ">": TokenKind.GREATER_THAN,
    "<": TokenKind.LESS_THAN,
    "(": TokenKind.LEFT_PAREN,
    ")": TokenKind.RIGHT_PAREN,
    "{": TokenKind.OPEN_BRACE,
    "}": TokenKind.CLOSE_BRACE,
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
    ";": TokenKind.SEMICOLON,
}

# Two-character operators, keyed by the pair of characters.
DOUBLE_CHAR_TOKENS: Dict[str, TokenKind] = {
    "->": TokenKind.ARROW,
    "**": TokenKind.DOUBLE_ASTERISK,
    "==": TokenKind.EQUALS_EQUALS,
    "!=": TokenKind.BANG_EQUALS,
    ">=": TokenKind.GREATER_THAN_EQUALS,
    "<=": TokenKind.LESS_THAN_EQUALS,
}

DECIMAL_MARKER = "d"
QUOTE_CHARS = ('"', "'")


@dataclass(frozen=True)
class Token:
    """
    A single lexical unit.

    ``value`` carries the decoded payload of literal tokens: an ``int`` for
    NUMBER, a ``float`` for DECIMAL and the unquoted text for STRING.
    """
    kind: TokenKind
    span: TextSpan
    value: Optional[Any] = None

    @property
    def lexeme(self) -> str:
        return self.span.literal

    def is_trivia(self) -> bool:
        return self.kind == TokenKind.WHITESPACE

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.kind}({self.value!r}) @ {self.span}"
        return f"{self.kind} '{self.lexeme}' @ {self.span}"
