"""
Lexer/Tokenizer for Sprout source.

Converts raw source text into a flat stream of tokens. Punctuation is split
into self-contained tokens; every other run of non-whitespace characters is
a single word, so ranges like ``0..500`` and dotted paths like ``item.text``
stay in one piece. Quoted strings are scanned as single units, embedded
spaces included.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import ParseErrorKind, make_parse_error


class TokenType(Enum):
    """Token types in Sprout source."""

    WORD = "WORD"
    STRING = "STRING"
    SYMBOL = "SYMBOL"
    EOF = "EOF"


# Longest first so "->" wins over "-" and "==" over "="
SYMBOLS = ("->", "==", "!=", "<=", ">=", "{", "}", "(", ")", "[", "]", ":", ",", "=", "!", "<", ">")
SYMBOL_CHARS = frozenset("".join(SYMBOLS))
# Characters that end a word
WORD_BREAKS = frozenset("{}()[]:,=!<>\"'#")


@dataclass
class Token:
    """
    A single token.

    Attributes:
        type: Type of token
        value: Token value (string contents with escapes resolved for STRING)
        text: Exact source text of the token
        offset: Absolute start offset in the source
        end: Absolute end offset in the source (exclusive)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """

    type: TokenType
    value: str
    text: str
    offset: int
    end: int
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.value!r}, {self.line}:{self.column})"

    def is_symbol(self, *symbols: str) -> bool:
        return self.type == TokenType.SYMBOL and self.value in symbols

    def is_word(self, *words: str) -> bool:
        return self.type == TokenType.WORD and (not words or self.value in words)


class LineIndex:
    """Maps absolute character offsets to 1-indexed line and column numbers."""

    def __init__(self, text: str):
        self.text = text
        self.line_starts = [0]
        for i, char in enumerate(text):
            if char == "\n":
                self.line_starts.append(i + 1)

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self.line_starts, offset)

    def position(self, offset: int) -> tuple[int, int]:
        line = self.line_of(offset)
        return line, offset - self.line_starts[line - 1] + 1

    def line_text(self, line: int) -> str:
        start = self.line_starts[line - 1]
        end = self.text.find("\n", start)
        return self.text[start:] if end == -1 else self.text[start:end]


class Lexer:
    """
    Lexer for Sprout source.

    Whitespace separates tokens only outside quotes; ``#`` starts a comment
    that runs to the end of the line.
    """

    def __init__(self, text: str, file: Path | None = None):
        """
        Initialize lexer.

        Args:
            text: Source text to tokenize
            file: Optional source file path (for error reporting)
        """
        self.text = text
        self.file = file
        self.pos = 0
        self.index = LineIndex(text)
        self.tokens: list[Token] = []

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def skip_whitespace_and_comments(self) -> None:
        while (char := self.current_char()) is not None:
            if char.isspace():
                self.pos += 1
            elif char == "#":
                while self.current_char() not in (None, "\n"):
                    self.pos += 1
            else:
                break

    def read_string(self) -> str:
        """Read a quoted string; the opening quote is the current character."""
        start = self.pos
        quote = self.current_char()
        self.pos += 1

        chars = []
        while True:
            current = self.current_char()
            if current is None or current == quote:
                break

            if current == "\\":
                escape_char = self.peek_char()
                if escape_char == "n":
                    chars.append("\n")
                elif escape_char == "t":
                    chars.append("\t")
                elif escape_char is not None:
                    chars.append(escape_char)
                self.pos += 2
            else:
                chars.append(current)
                self.pos += 1

        if self.current_char() != quote:
            line, column = self.index.position(start)
            raise make_parse_error(
                "Unterminated string literal",
                line,
                column,
                kind=ParseErrorKind.UNTERMINATED_STRING,
                token=self.text[start : start + 20],
                file=self.file,
                snippet=self.index.line_text(line),
            )

        self.pos += 1  # skip closing quote
        return "".join(chars)

    def read_symbol(self) -> str:
        for symbol in SYMBOLS:
            if self.text.startswith(symbol, self.pos):
                self.pos += len(symbol)
                return symbol
        raise AssertionError(f"not a symbol at offset {self.pos}")

    def read_word(self) -> str:
        start = self.pos
        while (char := self.current_char()) is not None:
            if char.isspace() or char in WORD_BREAKS:
                break
            # "a->b" splits at the arrow
            if char == "-" and self.peek_char() == ">":
                break
            self.pos += 1
        return self.text[start : self.pos]

    def at_symbol(self) -> bool:
        char = self.current_char()
        if char is None:
            return False
        if char == "-":
            return self.peek_char() == ">"
        return char in SYMBOL_CHARS

    def add_token(self, token_type: TokenType, value: str, start: int) -> None:
        line, column = self.index.position(start)
        self.tokens.append(
            Token(token_type, value, self.text[start : self.pos], start, self.pos, line, column)
        )

    def tokenize(self) -> list[Token]:
        """Tokenize the whole source, ending with an EOF token."""
        while True:
            self.skip_whitespace_and_comments()
            char = self.current_char()
            if char is None:
                break
            start = self.pos
            if char in ('"', "'"):
                self.add_token(TokenType.STRING, self.read_string(), start)
            elif self.at_symbol():
                self.add_token(TokenType.SYMBOL, self.read_symbol(), start)
            else:
                self.add_token(TokenType.WORD, self.read_word(), start)

        self.add_token(TokenType.EOF, "", self.pos)
        return self.tokens


def tokenize(text: str, file: Path | None = None) -> list[Token]:
    """
    Convenience function to tokenize Sprout source.

    Args:
        text: Source text
        file: Optional source file path

    Returns:
        List of tokens ending with EOF
    """
    lexer = Lexer(text, file)
    return lexer.tokenize()


def token_strings(text: str) -> list[str]:
    """Token texts in source order, without the trailing EOF."""
    return [token.text for token in tokenize(text) if token.type != TokenType.EOF]
