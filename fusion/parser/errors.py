"""
Error handling for the Fusion parser.

ParseError never escapes the parser: it unwinds out of a production that
is missing a required token, the statement-level handler reports it and
resynchronizes, and parsing continues with the next statement.

Author: xwest
"""

from typing import List, Optional

from ..lexer.tokens import Token, TokenKind


class ParseError(Exception):
    """Raised inside the parser when a required token is missing."""

    def __init__(self, expected: TokenKind, found: Token, context: Optional[str] = None):
        message = f"Expected '{expected}', found '{found.kind}'"
        if context:
            message += f" in {context}"
        super().__init__(message)
        self.expected = expected
        self.found = found
        self.context = context


class SyntaxErrorRecovery:
    """
    Utilities for error recovery in the parser.

    After a syntax error the parser skips ahead to a statement boundary so a
    single malformed statement does not hide errors in the rest of the file.
    """

    # Boundary tokens that start the next statement; they are not consumed.
    STATEMENT_STARTS = {
        TokenKind.LET,
        TokenKind.WHILE,
        TokenKind.FUNC,
        TokenKind.RETURN,
        TokenKind.IF,
        TokenKind.CLOSE_BRACE,
        TokenKind.EOF,
    }

    @staticmethod
    def synchronize_to_statement_boundary(tokens: List[Token], current_pos: int) -> int:
        """
        Find the position where parsing can resume.

        A semicolon ends the broken statement and is skipped over; any
        other boundary token is left for the next statement to consume.
        """
        pos = current_pos
        while pos < len(tokens):
            kind = tokens[pos].kind
            if kind == TokenKind.SEMICOLON:
                return pos + 1
            if kind in SyntaxErrorRecovery.STATEMENT_STARTS:
                return pos
            pos += 1
        return pos


def create_missing_token_error(expected: TokenKind, found: Token,
                               context: Optional[str] = None) -> ParseError:
    """Create error for a required token that is not there."""
    return ParseError(expected, found, context)
