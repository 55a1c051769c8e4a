"""
Sprout Parser Package.

This package provides a modular recursive descent parser for Sprout source.
The parser is built using mixins to separate parsing logic by construct type.

The main exports are:
- Parser: The complete parser class
- parse_dsl: Convenience function to parse source text into a Program

Usage:
    from sprout.core.dsl_parser_impl import parse_dsl

    program, warnings = parse_dsl(text)
"""

from __future__ import annotations

import logging
from pathlib import Path

from .. import ir
from ..errors import ParseErrorKind
from ..guards import Guard
from ..lexer import Token, tokenize
from ..policy import SecurityPolicy
from .actions import ActionParserMixin
from .app import AppParserMixin
from .base import BaseParser
from .expressions import ExpressionParserMixin
from .screen import ScreenParserMixin
from .ui import UIParserMixin

logger = logging.getLogger(__name__)


class Parser(
    BaseParser,
    ExpressionParserMixin,
    ActionParserMixin,
    UIParserMixin,
    ScreenParserMixin,
    AppParserMixin,
):
    """
    Complete Sprout Parser.

    Each mixin provides parsing for a specific construct type:

    - ExpressionParserMixin: Literals, references, calls, interpolation
    - ActionParserMixin: Statements inside button and action blocks
    - UIParserMixin: The UI tree of a screen
    - ScreenParserMixin: Screens, their parameters and named actions
    - AppParserMixin: App header, imports, data models and state values

    Every name and literal is passed through the guard as it is built.
    """

    def __init__(self, tokens: list[Token], source: str, guard: Guard, file: Path | None = None):
        super().__init__(tokens, source, guard, file)
        self.state_count = 0

    def parse(self) -> ir.Program:
        """
        Parse a complete program.

        Syntax:
            app "Name" { start = "Home" }
            import "@sprout/ui"
            data Todo { ... }
            screen Home { ... }
        """
        name, start, app_state = self.parse_app_header()

        imports: list[ir.Import] = []
        while self.match_word("import"):
            imports.append(self.parse_import())

        data_models: list[ir.DataModel] = []
        while self.match_word("data"):
            data_models.append(self.parse_data_model())

        screens: list[ir.Screen] = []
        while self.match_word("screen"):
            screens.append(self.parse_screen(app_state))
            self.guard.check_screen_count(len(screens))

        if not screens:
            raise self.error("Expected at least one screen", kind=ParseErrorKind.EXPECTED)
        if not self.at_end():
            raise self.error("Expected 'screen' or end of input", kind=ParseErrorKind.EXPECTED)

        logger.debug("Parsed app %r with %d screen(s)", name, len(screens))
        return ir.Program(
            name=name,
            start_screen=start,
            screens=screens,
            state=app_state,
            imports=imports,
            data_models=data_models,
        )


def parse_dsl(
    text: str,
    level: ir.SecurityLevel | str = ir.SecurityLevel.STRICT,
    file: Path | None = None,
) -> tuple[ir.Program, list[str]]:
    """
    Parse Sprout source text into a Program.

    Args:
        text: Source text
        level: Security level governing construction-time checks
        file: Optional source file path (for error reporting)

    Returns:
        Tuple of (program, warnings). Warnings are denylist hits that the
        level downgraded instead of rejecting.

    Raises:
        ParseError: If the source is malformed
        SecurityError: If a ceiling or the denylist is violated
    """
    guard = Guard(SecurityPolicy.from_level(level))
    tokens = tokenize(text, file)
    logger.debug("Tokenized %d token(s)", len(tokens))
    parser = Parser(tokens, text, guard, file)
    program = parser.parse()
    return program, list(parser.warnings)


__all__ = ["Parser", "parse_dsl"]
