"""
App header, import, data model and state parsing for Sprout source.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..errors import ParseErrorKind
from ..lexer import TokenType
from ..policy import MAX_ARRAY_LENGTH, MAX_MAP_ENTRIES
from .expressions import LOOKS_NUMERIC, parse_number


class AppParserMixin:
    """
    Mixin providing app header, import, data and state parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        guard: Any
        state_count: Any
        advance: Any
        current_token: Any
        match_symbol: Any
        match_word: Any
        expect_symbol: Any
        expect_keyword: Any
        expect_word: Any
        expect_name: Any
        error: Any
        nested: Any
        at_end: Any

    def parse_app_header(self) -> tuple[str, str, list[ir.StateVariable]]:
        """
        Parse the app block.

        Syntax:
            app "TodoApp" {
              start = "Home"
              state user = ""
            }

        Returns:
            Tuple of (app_name, start_screen, app_state)
        """
        app_token = self.expect_keyword("app")
        name = self.expect_name("app name")
        self.guard.check_app_name(name)
        self.expect_symbol("{")

        start: str | None = None
        state: list[ir.StateVariable] = []
        while not self.match_symbol("}"):
            if self.match_word("start"):
                self.advance()
                self.expect_symbol("=")
                start = self.expect_name("start screen")
                self.guard.check_text(start, "start screen")
            elif self.match_word("state"):
                state.extend(self.parse_state_decl(state))
            else:
                raise self.error("Expected 'start' or 'state' in app block", kind=ParseErrorKind.EXPECTED)
        self.expect_symbol("}")

        if start is None:
            raise self.error(
                "Missing required field 'start' in app block",
                app_token,
                kind=ParseErrorKind.MISSING_FIELD,
            )
        return name, start, state

    def parse_import(self) -> ir.Import:
        """Parse ``import "@sprout/ui"``."""
        self.expect_keyword("import")
        path = self.expect_name("import path")
        self.guard.check_string(path, "import path")
        return ir.Import(path=path)

    def parse_data_model(self) -> ir.DataModel:
        """
        Parse a data model.

        Syntax:
            data Todo {
              id: Int = 0
              text: String = ""
            }
        """
        self.expect_keyword("data")
        name = self.expect_word("data model name").value
        self.guard.check_text(name, "data model name")
        self.expect_symbol("{")
        fields: list[ir.DataField] = []
        while not self.match_symbol("}"):
            field_name = self.expect_word("field name").value
            self.guard.check_state_name(field_name)
            self.expect_symbol(":")
            type_name = self.expect_word("field type").value
            default: ir.StateValue = None
            if self.match_symbol("="):
                self.advance()
                default = self.parse_value([])
                self.guard.check_value(default, f"field '{field_name}'")
            fields.append(ir.DataField(name=field_name, type_name=type_name, default=default))
            if self.match_symbol(","):
                self.advance()
        self.expect_symbol("}")
        return ir.DataModel(name=name, fields=fields)

    def parse_state_decl(self, scope: list[ir.StateVariable]) -> list[ir.StateVariable]:
        """
        Parse a state declaration, single or grouped.

        Syntax:
            state count = 0
            state {
              count = 0
              todos = []
            }

        ``scope`` holds the variables already visible, used to resolve a
        bare identifier on the right-hand side.
        """
        self.expect_keyword("state")
        if not self.match_symbol("{"):
            return [self.parse_state_variable(scope)]

        self.advance()
        declared: list[ir.StateVariable] = []
        while not self.match_symbol("}"):
            if self.at_end():
                raise self.error("Expected '}'", kind=ParseErrorKind.EXPECTED)
            declared.append(self.parse_state_variable([*scope, *declared]))
        self.expect_symbol("}")
        return declared

    def parse_state_variable(self, scope: list[ir.StateVariable]) -> ir.StateVariable:
        name = self.expect_word("state variable name").value
        self.guard.check_state_name(name)
        # Optional type annotation, informational only
        if self.match_symbol(":"):
            self.advance()
            self.expect_word("type name")
        self.expect_symbol("=")
        value = self.parse_value(scope)
        var = ir.StateVariable(name=name, value=value)
        self.guard.check_state(var)

        self.state_count += 1
        self.guard.check_state_count(self.state_count)
        return var

    def parse_value(self, scope: list[ir.StateVariable]) -> ir.StateValue:
        """
        Parse a literal state value.

        A bare identifier copies the value of a variable already in scope,
        or otherwise stands for its own text.
        """
        with self.nested():
            token = self.current_token()
            if token.type == TokenType.STRING:
                self.advance()
                return token.value
            if token.is_symbol("["):
                return self.parse_array_value(scope)
            if token.is_symbol("{"):
                return self.parse_map_value(scope)
            if token.type != TokenType.WORD:
                raise self.error("Expected value", kind=ParseErrorKind.EXPECTED)

            self.advance()
            if token.value in ("true", "false"):
                return token.value == "true"
            number = parse_number(token.value)
            if number is not None:
                return number
            if LOOKS_NUMERIC.match(token.value):
                raise self.error("Invalid number", token, kind=ParseErrorKind.INVALID_NUMBER)
            for var in scope:
                if var.name == token.value:
                    return var.value
            return token.value

    def parse_array_value(self, scope: list[ir.StateVariable]) -> list[ir.StateValue]:
        self.expect_symbol("[")
        items: list[ir.StateValue] = []
        while not self.match_symbol("]"):
            items.append(self.parse_value(scope))
            self.guard.check_limit("array value length", len(items), MAX_ARRAY_LENGTH)
            if not self.match_symbol(","):
                break
            self.advance()
        self.expect_symbol("]")
        return items

    def parse_map_value(self, scope: list[ir.StateVariable]) -> dict[str, ir.StateValue]:
        self.expect_symbol("{")
        entries: dict[str, ir.StateValue] = {}
        while not self.match_symbol("}"):
            key = self.expect_name("map key")
            self.expect_symbol(":")
            entries[key] = self.parse_value(scope)
            self.guard.check_limit("map value entries", len(entries), MAX_MAP_ENTRIES)
            if not self.match_symbol(","):
                break
            self.advance()
        self.expect_symbol("}")
        return entries
