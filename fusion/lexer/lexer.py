"""
Fusion Lexer - turns source text into tokens on demand.

The lexer is a cursor over the source string. Each call to next_token()
classifies the character under the cursor (first match wins) and consumes
the longest token starting there. Malformed input never stops the stream:
it becomes a BAD token and, when a diagnostics bag is attached, an error
report.

xwest
"""

import logging
from typing import Iterator, List, Optional

from ..diagnostics import DiagnosticsBag
from ..text import TextSpan
from .tokens import (
    Token, TokenKind, KEYWORDS, SINGLE_CHAR_TOKENS, DOUBLE_CHAR_TOKENS,
    DECIMAL_MARKER, QUOTE_CHARS
)

logger = logging.getLogger(__name__)

MAX_INTEGER_LITERAL = 2 ** 63 - 1


class Lexer:
    """
    Fusion lexical analyzer.

    Produces tokens lazily through next_token() or iteration; tokenize()
    drains the whole input at once. Whitespace is kept as WHITESPACE
    tokens, callers filter it out before parsing.
    """

    def __init__(self, source: str, diagnostics: Optional[DiagnosticsBag] = None):
        """
        Initialize the lexer with source code.

        Args:
            source: Source code string
            diagnostics: Optional bag receiving reports for BAD tokens
        """
        self.source = source
        self.diagnostics = diagnostics
        self.pos = 0

    def next_token(self) -> Token:
        """Return the next token; EOF forever once the input is exhausted."""
        if self._is_at_end():
            end = len(self.source)
            return Token(TokenKind.EOF, TextSpan(end, end, ""))

        start = self.pos
        char = self._current()
        value = None

        if self._is_digit(char):
            kind, value = self._consume_number()
        elif char == DECIMAL_MARKER and self._starts_prefixed_decimal():
            self._advance()
            value = self._consume_float_literal()
            kind = TokenKind.DECIMAL
        elif char.isspace():
            self._consume_while(str.isspace)
            kind = TokenKind.WHITESPACE
        elif char in QUOTE_CHARS:
            kind, value = self._consume_string()
        elif self._is_identifier_start(char):
            self._consume_while(self._is_identifier_continue)
            kind = KEYWORDS.get(self.source[start:self.pos], TokenKind.IDENTIFIER)
        else:
            kind = self._consume_punctuation()

        token = Token(kind, TextSpan(start, self.pos, self.source[start:self.pos]), value)
        if kind == TokenKind.BAD:
            self._report_bad_token(token)
        elif kind == TokenKind.NUMBER and value > MAX_INTEGER_LITERAL and self.diagnostics is not None:
            self.diagnostics.report_integer_too_large(token.lexeme, token.span)
        return token

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            yield token
            if token.kind == TokenKind.EOF:
                return

    def tokenize(self) -> List[Token]:
        """
        Tokenize the remaining source.

        Returns:
            List of tokens, trivia included, ending with exactly one EOF token
        """
        tokens = list(self)
        logger.debug("Lexed %d tokens from %d characters", len(tokens), len(self.source))
        return tokens

    # ------------------------------------------------------------------
    # Literals
    # ------------------------------------------------------------------

    def _consume_number(self):
        """Digits, optionally followed by a fraction or the decimal suffix."""
        start = self.pos
        self._consume_while(self._is_digit)

        if self._current() == "." and self._is_digit(self._peek()):
            self._advance()
            self._consume_while(self._is_digit)
            return TokenKind.DECIMAL, float(self.source[start:self.pos])

        if self._current() == DECIMAL_MARKER and not self._is_identifier_continue(self._peek()):
            whole = self.source[start:self.pos]
            self._advance()
            fraction = ""
            if self._current() == "." and self._is_digit(self._peek()):
                self._advance()
                fraction_start = self.pos
                self._consume_while(self._is_digit)
                fraction = self.source[fraction_start:self.pos]
            return TokenKind.DECIMAL, float(f"{whole}.{fraction or '0'}")

        return TokenKind.NUMBER, int(self.source[start:self.pos])

    def _starts_prefixed_decimal(self) -> bool:
        """A 'd' introduces a decimal only when digits or '.digit' follow."""
        following = self._peek()
        if self._is_digit(following):
            return True
        return following == "." and self._is_digit(self._peek(2))

    def _consume_float_literal(self) -> float:
        start = self.pos
        self._consume_while(self._is_digit)
        if self._current() == "." and self._is_digit(self._peek()):
            self._advance()
            self._consume_while(self._is_digit)
        literal = self.source[start:self.pos]
        return float(literal) if literal else 0.0

    def _consume_string(self):
        quote = self._current()
        self._advance()
        start = self.pos
        while not self._is_at_end() and self._current() != quote:
            self._advance()

        if self._is_at_end():
            return TokenKind.BAD, None

        text = self.source[start:self.pos]
        self._advance()
        return TokenKind.STRING, text

    # ------------------------------------------------------------------
    # Operators and punctuation
    # ------------------------------------------------------------------

    def _consume_punctuation(self) -> TokenKind:
        pair = self.source[self.pos:self.pos + 2]
        if pair in DOUBLE_CHAR_TOKENS:
            self._advance_by(2)
            return DOUBLE_CHAR_TOKENS[pair]

        kind = SINGLE_CHAR_TOKENS.get(self._current(), TokenKind.BAD)
        self._advance()
        return kind

    def _report_bad_token(self, token: Token):
        if self.diagnostics is None:
            return
        if token.lexeme[:1] in QUOTE_CHARS:
            self.diagnostics.report_unterminated_string(token.span)
        else:
            self.diagnostics.report_bad_character(token.lexeme, token.span)

    # ------------------------------------------------------------------
    # Cursor helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_digit(char: str) -> bool:
        return len(char) == 1 and "0" <= char <= "9"

    @staticmethod
    def _is_identifier_start(char: str) -> bool:
        return char.isalpha() or char == "_"

    @staticmethod
    def _is_identifier_continue(char: str) -> bool:
        return char.isalnum() or char == "_"

    def _consume_while(self, predicate):
        while not self._is_at_end() and predicate(self._current()):
            self._advance()

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _current(self) -> str:
        """Character under the cursor, or '' at end of input."""
        return self.source[self.pos] if self.pos < len(self.source) else ""

    def _peek(self, offset: int = 1) -> str:
        index = self.pos + offset
        return self.source[index] if index < len(self.source) else ""

    def _advance(self):
        if self.pos < len(self.source):
            self.pos += 1

    def _advance_by(self, count: int):
        for _ in range(count):
            self._advance()


def tokenize_string(source: str, diagnostics: Optional[DiagnosticsBag] = None) -> List[Token]:
    """
    Convenience function to tokenize a string for the parser.

    Whitespace trivia is dropped; the result always ends with an EOF token.

    Args:
        source: Source code to tokenize
        diagnostics: Optional bag receiving lexical diagnostics

    Returns:
        List of significant tokens
    """
    lexer = Lexer(source, diagnostics)
    return [token for token in lexer.tokenize() if not token.is_trivia()]


def tokenize_file(filepath: str, diagnostics: Optional[DiagnosticsBag] = None) -> List[Token]:
    """Read a source file and tokenize it for the parser."""
    with open(filepath, 'r', encoding='utf-8') as f:
        source = f.read()
    return tokenize_string(source, diagnostics)
