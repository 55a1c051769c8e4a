"""
Reference validation for parsed Sprout programs.

Confirms that every cross-reference in a program resolves inside the
program's own namespace. The walk is read-only, so it can run before, after
or alongside security analysis.
"""

from __future__ import annotations

import logging

from . import ir
from .errors import ReferenceErrorKind, ReferenceValidationError, make_limit_error, make_reference_error
from .policy import MAX_PARSE_DEPTH, RESERVED_NAVIGATION_TARGETS

logger = logging.getLogger(__name__)


def collect_reference_errors(program: ir.Program) -> list[ReferenceValidationError]:
    """
    Check every reference in the program.

    Checks:
    - The start screen exists
    - Screen names are unique
    - State names are unique within each screen
    - Navigation targets name a screen or the reserved back target
    - Input and list bindings name a state variable of the same screen
    - Button action references name an action of the same screen

    Returns:
        All violations found, in program order
    """
    errors: list[ReferenceValidationError] = []
    screen_names = set(program.screen_names)

    if program.start_screen not in screen_names:
        errors.append(
            make_reference_error(
                f"Start screen '{program.start_screen}' is not defined",
                identifier=program.start_screen,
            )
        )

    seen_screens: set[str] = set()
    for screen in program.screens:
        if screen.name in seen_screens:
            errors.append(
                make_reference_error(
                    f"Duplicate screen '{screen.name}'",
                    screen=screen.name,
                    identifier=screen.name,
                    kind=ReferenceErrorKind.DUPLICATE_DEFINITION,
                )
            )
        seen_screens.add(screen.name)
        errors.extend(_check_screen(screen, screen_names))

    return errors


def validate_references(program: ir.Program) -> None:
    """
    Validate references, raising on the first violation.

    Raises:
        ReferenceValidationError: For the first unresolved or duplicate name
    """
    errors = collect_reference_errors(program)
    if errors:
        raise errors[0]
    logger.debug("References of app %r resolved", program.name)


def _check_screen(screen: ir.Screen, screen_names: set[str]) -> list[ReferenceValidationError]:
    errors: list[ReferenceValidationError] = []

    state_names: set[str] = set()
    for var in screen.state:
        if var.name in state_names:
            errors.append(
                make_reference_error(
                    f"Duplicate state variable '{var.name}'",
                    screen=screen.name,
                    identifier=var.name,
                    kind=ReferenceErrorKind.DUPLICATE_DEFINITION,
                )
            )
        state_names.add(var.name)

    action_names = {action.name for action in screen.actions}
    checker = _ScreenChecker(screen.name, screen_names, state_names, action_names)
    checker.visit_node(screen.ui, 1)
    for action in screen.actions:
        checker.visit_actions(action.body, 1)
    return errors + checker.errors


class _ScreenChecker:
    """Depth-first walk over one screen's UI tree and actions."""

    def __init__(
        self,
        screen: str,
        screen_names: set[str],
        state_names: set[str],
        action_names: set[str],
    ):
        self.screen = screen
        self.screen_names = screen_names
        self.state_names = state_names
        self.action_names = action_names
        self.errors: list[ReferenceValidationError] = []

    def undefined(self, what: str, identifier: str) -> None:
        self.errors.append(
            make_reference_error(
                f"Undefined {what} '{identifier}'",
                screen=self.screen,
                identifier=identifier,
            )
        )

    def check_depth(self, depth: int) -> None:
        if depth > MAX_PARSE_DEPTH:
            raise make_limit_error("nesting depth", depth, MAX_PARSE_DEPTH)

    def check_target(self, target: str) -> None:
        if target not in self.screen_names and target not in RESERVED_NAVIGATION_TARGETS:
            self.undefined("navigation target", target)

    def check_binding(self, binding: str) -> None:
        if binding not in self.state_names:
            self.undefined("state binding", binding)

    def visit_node(self, node: ir.UINode, depth: int) -> None:
        self.check_depth(depth)
        if isinstance(node, ir.Container):
            for child in node.children:
                self.visit_node(child, depth + 1)
        elif isinstance(node, ir.Conditional):
            self.visit_node(node.then_branch, depth + 1)
            if node.else_branch is not None:
                self.visit_node(node.else_branch, depth + 1)
        elif isinstance(node, ir.ListView):
            self.check_binding(node.binding)
            self.visit_node(node.template, depth + 1)
        elif isinstance(node, ir.Input):
            self.check_binding(node.binding)
        elif isinstance(node, ir.Button):
            if node.navigate is not None:
                self.check_target(node.navigate.target)
            if node.action_ref is not None and node.action_ref not in self.action_names:
                self.undefined("action", node.action_ref)
            self.visit_actions(node.actions, depth + 1)

    def visit_actions(self, actions: list[ir.Action], depth: int) -> None:
        self.check_depth(depth)
        for action in actions:
            if isinstance(action, ir.NavigateAction):
                self.check_target(action.target)
            elif isinstance(action, ir.IfAction):
                self.visit_actions(action.then_actions, depth + 1)
                self.visit_actions(action.else_actions, depth + 1)
            elif isinstance(action, ir.LoopAction):
                self.visit_actions(action.body, depth + 1)
