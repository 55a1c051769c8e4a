"""
Construction-time and runtime guards.

The parser runs every name and literal it builds through a ``Guard`` so an
oversized or denylisted AST never reaches later stages. The execution engine
runs the same guard again over the program it receives and over every value
it writes.
"""

from __future__ import annotations

import logging

from . import ir
from .errors import SecurityError, SecurityErrorKind, make_limit_error
from .policy import (
    DANGEROUS_STATE_NAMES,
    MAX_APP_NAME_LENGTH,
    MAX_ARRAY_LENGTH,
    MAX_MAP_ENTRIES,
    MAX_PARSE_DEPTH,
    MAX_STATE_NAME_LENGTH,
    SecurityPolicy,
)

logger = logging.getLogger(__name__)


class Guard:
    """
    Applies a SecurityPolicy's name, literal and size rules.

    Under a policy that downgrades denylist hits, matches are collected in
    ``warnings`` instead of raised.
    """

    def __init__(self, policy: SecurityPolicy):
        self.policy = policy
        self.warnings: list[str] = []

    def check_text(self, text: str, where: str) -> None:
        """
        Check a name, literal or code block against the denylist.

        Raises:
            SecurityError: If a denylisted pattern is found and the policy
                does not downgrade hits
        """
        pattern = self.policy.find_blocked(text)
        if pattern is None:
            return
        message = f"Dangerous function '{pattern}' detected in {where}"
        if self.policy.downgrade_denylist:
            self.warn(message)
            return
        raise SecurityError(
            message,
            kind=SecurityErrorKind.DANGEROUS_FUNCTION,
            name=pattern,
            details=where,
        )

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            logger.warning("%s", message)
            self.warnings.append(message)

    def check_limit(self, entity: str, current: int, limit: int) -> None:
        if current > limit:
            raise make_limit_error(entity, current, limit)

    def check_app_name(self, name: str) -> None:
        self.check_limit("app name length", len(name), MAX_APP_NAME_LENGTH)
        self.check_text(name, "app name")

    def check_state_name(self, name: str) -> None:
        self.check_limit("state variable name length", len(name), MAX_STATE_NAME_LENGTH)
        if name in DANGEROUS_STATE_NAMES:
            raise SecurityError(
                f"Dangerous state variable name: {name}",
                kind=SecurityErrorKind.UNSAFE_DATA_ACCESS,
                name=name,
            )
        self.check_text(name, f"state variable '{name}'")

    def check_string(self, value: str, where: str) -> None:
        self.check_limit("string value length", len(value), self.policy.max_string_length)
        self.check_text(value, where)

    def check_value(self, value: ir.StateValue, where: str, depth: int = 0) -> None:
        """Check a state value and everything nested inside it."""
        if depth > MAX_PARSE_DEPTH:
            raise make_limit_error("value nesting depth", depth, MAX_PARSE_DEPTH)
        if isinstance(value, str):
            self.check_string(value, where)
        elif isinstance(value, list):
            self.check_limit("array value length", len(value), MAX_ARRAY_LENGTH)
            for item in value:
                self.check_value(item, where, depth + 1)
        elif isinstance(value, dict):
            self.check_limit("map value entries", len(value), MAX_MAP_ENTRIES)
            for key, item in value.items():
                self.check_text(key, where)
                self.check_value(item, where, depth + 1)

    def check_state(self, var: ir.StateVariable) -> None:
        self.check_state_name(var.name)
        self.check_value(var.value, f"state variable '{var.name}'")

    def check_state_count(self, count: int) -> None:
        self.check_limit("state variables", count, self.policy.max_state_variables)

    def check_screen_count(self, count: int) -> None:
        self.check_limit("screens", count, self.policy.max_screens)

    def check_ui_count(self, screen: str, count: int) -> None:
        self.check_limit(f"UI elements in screen '{screen}'", count, self.policy.max_ui_elements)

    def check_ui_tree(self, screen: str, root: ir.UINode) -> None:
        """Count a screen's UI nodes with an explicit stack, bounding depth and total."""
        count = 0
        stack = [(root, 1)]
        while stack:
            node, depth = stack.pop()
            if depth > MAX_PARSE_DEPTH:
                raise make_limit_error("UI nesting depth", depth, MAX_PARSE_DEPTH)
            count += 1
            stack.extend((child, depth + 1) for child in ir.child_nodes(node))
        self.check_ui_count(screen, count)

    def revalidate_program(self, program: ir.Program) -> None:
        """Re-apply the program-level construction checks."""
        self.check_app_name(program.name)
        self.check_screen_count(len(program.screens))
        self.check_state_count(program.total_state)
        for var in program.state:
            self.check_state(var)

    def revalidate_screen(self, screen: ir.Screen) -> None:
        """Re-apply the screen-level construction checks."""
        self.check_text(screen.name, "screen name")
        for var in screen.state:
            self.check_state(var)
        self.check_ui_tree(screen.name, screen.ui)
