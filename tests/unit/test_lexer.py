"""Tests for the Sprout lexer."""

import pytest

from sprout.core.errors import ParseError, ParseErrorKind
from sprout.core.lexer import LineIndex, TokenType, token_strings, tokenize


class TestTokenize:
    """Token splitting rules."""

    def test_punctuation_is_split(self) -> None:
        """Braces, parens and equals become their own tokens."""
        assert token_strings('app "X" { start="Home" }') == [
            "app",
            '"X"',
            "{",
            "start",
            "=",
            '"Home"',
            "}",
        ]

    def test_range_and_dotted_path_stay_whole(self) -> None:
        """Ranges and dotted paths are single words."""
        assert token_strings("for i in 0..500 { item.text }") == [
            "for",
            "i",
            "in",
            "0..500",
            "{",
            "item.text",
            "}",
        ]

    def test_arrow_splits_word(self) -> None:
        """An arrow glued to words still splits."""
        assert token_strings("a->Home") == ["a", "->", "Home"]

    def test_two_char_operators_win(self) -> None:
        """``==`` is one token, not two ``=``."""
        tokens = tokenize("a == b != c <= d >= e")
        symbols = [t.value for t in tokens if t.type == TokenType.SYMBOL]
        assert symbols == ["==", "!=", "<=", ">="]

    def test_string_keeps_spaces_and_resolves_escapes(self) -> None:
        """String tokens carry their decoded value and exact source text."""
        token = tokenize(r'"Hello \"World\"\n"')[0]
        assert token.type == TokenType.STRING
        assert token.value == 'Hello "World"\n'
        assert token.text == r'"Hello \"World\"\n"'

    def test_single_quotes(self) -> None:
        token = tokenize("'it works'")[0]
        assert token.type == TokenType.STRING
        assert token.value == "it works"

    def test_comments_are_skipped(self) -> None:
        """``#`` comments run to the end of the line."""
        assert token_strings("# heading\nscreen Home # trailing\n{ }") == [
            "screen",
            "Home",
            "{",
            "}",
        ]

    def test_ends_with_eof(self) -> None:
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_positions(self) -> None:
        """Tokens record 1-indexed line and column."""
        tokens = tokenize("app\n  screen")
        assert (tokens[0].line, tokens[0].column) == (1, 1)
        assert (tokens[1].line, tokens[1].column) == (2, 3)
        assert tokens[1].offset == 6
        assert tokens[1].end == 12


class TestLexerErrors:
    """Lexer failures."""

    def test_unterminated_string(self) -> None:
        """An unclosed quote is a parse error with its location."""
        with pytest.raises(ParseError) as exc_info:
            tokenize('app "Broken {\n}')
        assert exc_info.value.kind == ParseErrorKind.UNTERMINATED_STRING
        assert exc_info.value.line == 1
        assert "Unterminated string" in str(exc_info.value)


class TestLineIndex:
    def test_position_and_line_text(self) -> None:
        index = LineIndex("first\nsecond\nthird")
        assert index.position(0) == (1, 1)
        assert index.position(8) == (2, 3)
        assert index.line_text(2) == "second"
        assert index.line_text(3) == "third"
