"""
Fusion Lexer Package

Implements the lexical analyzer for Fusion: integer, decimal and string
literals, keywords, operators with two-character maximal munch, and
recovery from malformed input through BAD tokens.

Author: xwest
"""

from .tokens import Token, TokenKind, KEYWORDS
from .lexer import Lexer, tokenize_string, tokenize_file

__all__ = [
    "Lexer",
    "Token",
    "TokenKind",
    "KEYWORDS",
    "tokenize_string",
    "tokenize_file",
]
