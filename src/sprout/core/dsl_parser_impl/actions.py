"""
Action parsing for Sprout source.

Action blocks hold line-delimited statements. Recognised statements lower
into structured actions; any other line is preserved as a ``CodeAction``
after passing the denylist filter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..errors import ParseError, ParseErrorKind
from ..lexer import Token, TokenType
from ..policy import MAX_LOOP_BODY_ACTIONS, MAX_NAVIGATION_TARGET_LENGTH
from .expressions import IDENTIFIER_PATH


class ActionParserMixin:
    """
    Mixin providing action block parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        pos: Any
        source: Any
        guard: Any
        advance: Any
        current_token: Any
        previous_token: Any
        peek_token: Any
        match_symbol: Any
        match_word: Any
        expect_symbol: Any
        expect_keyword: Any
        expect_word: Any
        error: Any
        nested: Any
        at_end: Any
        parse_expr: Any
        parse_call_args: Any

    def parse_action_block(self) -> list[ir.Action]:
        """
        Parse ``{ statement* }``.

        Syntax:
            {
              todos.push(newTodo)
              newTodo = ""
              -> Home
            }
        """
        self.expect_symbol("{")
        actions: list[ir.Action] = []
        with self.nested():
            while not self.match_symbol("}"):
                if self.at_end():
                    raise self.error("Expected '}'", kind=ParseErrorKind.EXPECTED)
                actions.append(self.parse_statement())
        self.expect_symbol("}")
        return actions

    def parse_statement(self) -> ir.Action:
        """Parse one statement, falling back to a raw code action."""
        start = self.pos
        try:
            action = self.parse_structured_statement()
            if not self.at_statement_end(self.previous_token()):
                raise self.error("Expected end of statement")
            return action
        except ParseError:
            self.pos = start
            return self.parse_code_action()

    def at_statement_end(self, last: Token) -> bool:
        token = self.current_token()
        return token.type == TokenType.EOF or token.is_symbol("}") or token.line != last.line

    def parse_structured_statement(self) -> ir.Action:
        token = self.current_token()
        if token.is_symbol("->") or token.is_word("navigate"):
            self.advance()
            return self.parse_navigation()
        if token.is_word("call"):
            self.advance()
            name = self.expect_word("function name")
            return self.parse_call(name.value)
        if token.is_word("if"):
            return self.parse_if_action()
        if token.is_word("for"):
            return self.parse_loop_action()

        if token.type == TokenType.WORD and IDENTIFIER_PATH.match(token.value):
            following = self.peek_token()
            if following.is_symbol("="):
                return self.parse_assignment()
            if following.is_symbol("("):
                self.advance()
                return self.parse_call(token.value)
        raise self.error("Expected statement", kind=ParseErrorKind.EXPECTED)

    def parse_navigation(self) -> ir.NavigateAction:
        """Parse the target of ``-> Screen`` or ``-> Screen(args)``."""
        target = self.expect_word("navigation target")
        self.guard.check_limit(
            "navigation target length", len(target.value), MAX_NAVIGATION_TARGET_LENGTH
        )
        self.guard.check_text(target.value, "navigation target")
        args: list[ir.Expr] = []
        if self.match_symbol("(") and self.current_token().line == target.line:
            args = self.parse_call_args()
        return ir.NavigateAction(target=target.value, args=args)

    def parse_call(self, function: str) -> ir.CallAction:
        self.guard.check_text(function, "function call")
        return ir.CallAction(function=function, args=self.parse_call_args())

    def parse_assignment(self) -> ir.UpdateStateAction:
        name = self.advance()
        self.guard.check_state_name(name.value)
        self.expect_symbol("=")
        first = self.current_token()
        value = self.parse_expr()
        last = self.previous_token()
        return ir.UpdateStateAction(
            variable=name.value,
            value=value,
            source=self.source[first.offset : last.end],
        )

    def parse_if_action(self) -> ir.IfAction:
        """
        Parse a conditional statement.

        Syntax:
            if done == true { ... } else if count == 0 { ... } else { ... }
        """
        self.expect_keyword("if")
        condition = self.parse_expr()
        then_actions = self.parse_action_block()
        else_actions: list[ir.Action] = []
        if self.match_word("else"):
            self.advance()
            if self.match_word("if"):
                with self.nested():
                    else_actions = [self.parse_if_action()]
            else:
                else_actions = self.parse_action_block()
        return ir.IfAction(condition=condition, then_actions=then_actions, else_actions=else_actions)

    def parse_loop_action(self) -> ir.LoopAction:
        """
        Parse a bounded loop.

        Syntax:
            for i in 0..10 { ... }
        """
        self.expect_keyword("for")
        variable = self.expect_word("loop variable")
        self.guard.check_state_name(variable.value)
        self.expect_keyword("in")
        range_token = self.expect_word("range")
        if ".." not in range_token.value:
            raise self.error("Expected range 'a..b'", range_token, kind=ParseErrorKind.EXPECTED)
        body = self.parse_action_block()
        self.guard.check_limit("loop body actions", len(body), MAX_LOOP_BODY_ACTIONS)
        return ir.LoopAction(variable=variable.value, range=range_token.value, body=body)

    def parse_code_action(self) -> ir.CodeAction:
        """Consume the rest of the line (and any block it opens) as raw code."""
        first = self.current_token()
        last = first
        depth = 0
        while not self.at_end():
            token = self.current_token()
            if depth == 0 and (token.is_symbol("}") or token.line != first.line) and token is not first:
                break
            if token.is_symbol("{"):
                depth += 1
            elif token.is_symbol("}"):
                depth -= 1
            last = self.advance()
        code = self.source[first.offset : last.end]
        self.guard.check_string(code, "action code")
        return ir.CodeAction(code=code)
