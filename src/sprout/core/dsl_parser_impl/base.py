"""
Base parser class for Sprout source.

Provides common token manipulation, error construction and the nesting
depth counter used by all parser mixins.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..errors import ParseError, ParseErrorKind, make_limit_error, make_parse_error
from ..guards import Guard
from ..lexer import LineIndex, Token, TokenType
from ..policy import MAX_PARSE_DEPTH


class BaseParser:
    """
    Base parser class with token manipulation utilities.

    This class provides the foundation for recursive descent parsing,
    including token navigation, matching, and error generation.
    """

    def __init__(self, tokens: list[Token], source: str, guard: Guard, file: Path | None = None):
        """
        Initialize parser.

        Args:
            tokens: List of tokens from lexer
            source: The source text the tokens came from
            guard: Guard applying the active security policy
            file: Optional source file path (for error reporting)
        """
        self.tokens = tokens
        self.source = source
        self.index = LineIndex(source)
        self.guard = guard
        self.file = file
        self.pos = 0
        self.depth = 0

    @property
    def warnings(self) -> list[str]:
        return self.guard.warnings

    def current_token(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # Return EOF
        return self.tokens[self.pos]

    def peek_token(self, offset: int = 1) -> Token:
        """Peek ahead at token."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]  # Return EOF
        return self.tokens[pos]

    def previous_token(self) -> Token:
        return self.tokens[max(self.pos - 1, 0)]

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current_token()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def at_end(self) -> bool:
        return self.current_token().type == TokenType.EOF

    def match_symbol(self, *symbols: str) -> bool:
        return self.current_token().is_symbol(*symbols)

    def match_word(self, *words: str) -> bool:
        return self.current_token().is_word(*words)

    def error(
        self,
        message: str,
        token: Token | None = None,
        kind: ParseErrorKind = ParseErrorKind.UNEXPECTED_TOKEN,
    ) -> ParseError:
        """Build a ParseError located at ``token`` (default: the current token)."""
        token = token or self.current_token()
        found = "end of input" if token.type == TokenType.EOF else repr(token.text)
        return make_parse_error(
            f"{message}, found {found}",
            token.line,
            token.column,
            kind=kind,
            token=token.text or None,
            file=self.file,
            snippet=self.index.line_text(token.line),
        )

    def expect_symbol(self, symbol: str) -> Token:
        """
        Expect a specific symbol and consume it.

        Raises:
            ParseError: If the current token is not that symbol
        """
        if not self.match_symbol(symbol):
            raise self.error(f"Expected '{symbol}'", kind=ParseErrorKind.EXPECTED)
        return self.advance()

    def expect_keyword(self, word: str) -> Token:
        if not self.match_word(word):
            raise self.error(f"Expected '{word}'", kind=ParseErrorKind.EXPECTED)
        return self.advance()

    def expect_word(self, construct: str = "identifier") -> Token:
        if self.current_token().type != TokenType.WORD:
            raise self.error(f"Expected {construct}", kind=ParseErrorKind.EXPECTED)
        return self.advance()

    def expect_string(self, construct: str = "string literal") -> Token:
        if self.current_token().type != TokenType.STRING:
            raise self.error(f"Expected {construct}", kind=ParseErrorKind.EXPECTED)
        return self.advance()

    def expect_name(self, construct: str = "name") -> str:
        """Accept a quoted string or a bare word as a name."""
        token = self.current_token()
        if token.type not in (TokenType.WORD, TokenType.STRING):
            raise self.error(f"Expected {construct}", kind=ParseErrorKind.EXPECTED)
        self.advance()
        return token.value

    @contextmanager
    def nested(self) -> Iterator[None]:
        """Track one level of structural recursion."""
        self.depth += 1
        try:
            if self.depth > MAX_PARSE_DEPTH:
                raise make_limit_error("nesting depth", self.depth, MAX_PARSE_DEPTH)
            yield
        finally:
            self.depth -= 1

