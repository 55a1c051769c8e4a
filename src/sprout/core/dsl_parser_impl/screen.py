"""
Screen parsing for Sprout source.

Handles screen parameters, screen state, the UI block and named actions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..errors import ParseErrorKind


class ScreenParserMixin:
    """
    Mixin providing screen parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        guard: Any
        advance: Any
        current_token: Any
        match_symbol: Any
        match_word: Any
        expect_symbol: Any
        expect_keyword: Any
        expect_word: Any
        error: Any
        at_end: Any
        parse_state_decl: Any
        parse_ui_block: Any
        parse_action_block: Any

    def parse_screen(self, app_state: list[ir.StateVariable]) -> ir.Screen:
        """
        Parse a screen declaration.

        Syntax:
            screen Profile(userId: String) {
              state loading = false
              ui { ... }
              action refresh { ... }
            }
        """
        self.expect_keyword("screen")
        name_token = self.expect_word("screen name")
        name = name_token.value
        self.guard.check_text(name, "screen name")

        params: list[ir.ScreenParam] = []
        if self.match_symbol("("):
            params = self.parse_screen_params()

        self.expect_symbol("{")
        state: list[ir.StateVariable] = []
        ui: ir.UINode | None = None
        actions: list[ir.ScreenAction] = []
        while not self.match_symbol("}"):
            token = self.current_token()
            if token.is_word("state"):
                state.extend(self.parse_state_decl([*app_state, *state]))
            elif token.is_word("ui"):
                if ui is not None:
                    raise self.error(f"Screen '{name}' already has a ui block")
                self.advance()
                ui = self.parse_ui_block()
            elif token.is_word("action"):
                self.advance()
                action_name = self.expect_word("action name").value
                self.guard.check_text(action_name, "action name")
                actions.append(ir.ScreenAction(name=action_name, body=self.parse_action_block()))
            else:
                raise self.error(
                    "Expected 'state', 'ui' or 'action' in screen body",
                    kind=ParseErrorKind.EXPECTED,
                )
        self.expect_symbol("}")

        screen = ir.Screen(
            name=name,
            params=params,
            state=state,
            ui=ui if ui is not None else ir.Container(kind="column"),
            actions=actions,
        )
        self.guard.check_ui_tree(name, screen.ui)
        return screen

    def parse_screen_params(self) -> list[ir.ScreenParam]:
        self.expect_symbol("(")
        params: list[ir.ScreenParam] = []
        while not self.match_symbol(")"):
            param = self.expect_word("parameter name").value
            self.guard.check_state_name(param)
            type_name = "Any"
            if self.match_symbol(":"):
                self.advance()
                type_name = self.expect_word("parameter type").value
            params.append(ir.ScreenParam(name=param, type_name=type_name))
            if not self.match_symbol(","):
                break
            self.advance()
        self.expect_symbol(")")
        return params
