"""
Expression parsing for Sprout source.

The grammar is deliberately shallow: an optional negation, one operand,
and at most one binary operator followed by a second operand.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from .. import ir
from ..errors import ParseErrorKind
from ..lexer import Token, TokenType, tokenize
from ..policy import MAX_CALL_ARGS

IDENTIFIER_PATH = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*(\.[A-Za-z_$][A-Za-z0-9_$]*)*$")
NUMBER = re.compile(r"^-?\d+(\.\d+)?$")
LOOKS_NUMERIC = re.compile(r"^-?\d")
INTERPOLATION = re.compile(r"\$\{([^}]*)\}")

SYMBOL_OPERATORS = {"==", "!=", "<", ">", "<=", ">="}
WORD_OPERATORS = {"+", "-", "*", "/", "%"}


def parse_number(text: str) -> int | float | None:
    """Parse a numeric literal, or return None if ``text`` is not one."""
    if not NUMBER.match(text):
        return None
    if "." in text:
        return float(text)
    return int(text)


class ExpressionParserMixin:
    """
    Mixin providing expression parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        tokens: Any
        pos: Any
        guard: Any
        advance: Any
        current_token: Any
        peek_token: Any
        match_symbol: Any
        match_word: Any
        expect_symbol: Any
        error: Any
        nested: Any
        at_end: Any

    def parse_expr(self) -> ir.Expr:
        """
        Parse an expression.

        Syntax:
            [! | not] operand [op operand]
        """
        with self.nested():
            if self.match_symbol("!") or self.match_word("not"):
                self.advance()
                return ir.UnaryExpr(op=ir.UnaryOp.NOT, operand=self.parse_operand())

            left = self.parse_operand()
            token = self.current_token()
            if (token.type == TokenType.SYMBOL and token.value in SYMBOL_OPERATORS) or (
                token.type == TokenType.WORD and token.value in WORD_OPERATORS
            ):
                self.advance()
                right = self.parse_operand()
                return ir.BinaryExpr(op=ir.BinaryOp(token.value), left=left, right=right)
            return left

    def parse_operand(self) -> ir.Expr:
        """Parse a literal, string, identifier path or function call."""
        with self.nested():
            token = self.current_token()
            if token.type == TokenType.STRING:
                self.advance()
                return self.parse_string_expr(token)
            if token.type != TokenType.WORD:
                raise self.error("Expected expression", kind=ParseErrorKind.EXPECTED)

            self.advance()
            if token.value in ("true", "false"):
                return ir.Literal(value=token.value == "true")

            number = parse_number(token.value)
            if number is not None:
                return ir.Literal(value=number)
            if LOOKS_NUMERIC.match(token.value):
                raise self.error("Invalid number", token, kind=ParseErrorKind.INVALID_NUMBER)

            if not IDENTIFIER_PATH.match(token.value):
                raise self.error("Expected expression", token, kind=ParseErrorKind.EXPECTED)
            self.guard.check_text(token.value, "identifier")

            if self.match_symbol("("):
                return ir.FuncCall(name=token.value, args=self.parse_call_args())
            return self.path_to_expr(token.value)

    def path_to_expr(self, path: str) -> ir.Expr:
        head, *fields = path.split(".")
        expr: ir.Expr = ir.VarRef(name=head)
        for field in fields:
            expr = ir.FieldAccess(target=expr, field=field)
        return expr

    def parse_call_args(self) -> list[ir.Expr]:
        """Parse ``( expr {, expr} )`` with the argument count ceiling."""
        self.expect_symbol("(")
        args: list[ir.Expr] = []
        while not self.match_symbol(")"):
            args.append(self.parse_expr())
            self.guard.check_limit("function call arguments", len(args), MAX_CALL_ARGS)
            if not self.match_symbol(","):
                break
            self.advance()
        self.expect_symbol(")")
        return args

    def parse_string_expr(self, token: Token) -> ir.Expr:
        """Turn a string token into a Literal, or an Interpolation if it embeds ``${...}``."""
        text = token.value
        self.guard.check_string(text, "string literal")
        if "${" not in text:
            return ir.Literal(value=text)

        parts: list[ir.Expr] = []
        last = 0
        for match in INTERPOLATION.finditer(text):
            if match.start() > last:
                parts.append(ir.Literal(value=text[last : match.start()]))
            parts.append(self.parse_embedded(match.group(1), token))
            last = match.end()
        if last < len(text):
            parts.append(ir.Literal(value=text[last:]))
        return ir.Interpolation(parts=parts)

    def parse_embedded(self, text: str, origin: Token) -> ir.Expr:
        """Parse the inside of ``${...}`` with the same expression grammar."""
        saved_tokens, saved_pos = self.tokens, self.pos
        embedded = tokenize(text)
        for token in embedded:
            token.line, token.column = origin.line, origin.column
        self.tokens, self.pos = embedded, 0
        try:
            expr = self.parse_expr()
            if not self.at_end():
                raise self.error("Unexpected token in interpolation")
            return expr
        finally:
            self.tokens, self.pos = saved_tokens, saved_pos
