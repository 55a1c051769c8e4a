"""Tests for reference validation."""

import pytest

from sprout.core import ir
from sprout.core.dsl_parser_impl import parse_dsl
from sprout.core.errors import ReferenceErrorKind, ReferenceValidationError
from sprout.core.validator import collect_reference_errors, validate_references


def parse(source: str) -> ir.Program:
    program, _ = parse_dsl(source)
    return program


class TestValidateReferences:
    """Cross-reference checks over parsed programs."""

    def test_valid_program(self, todo_program: ir.Program) -> None:
        """A consistent program has no reference errors."""
        assert collect_reference_errors(todo_program) == []
        validate_references(todo_program)

    def test_missing_navigation_target(self) -> None:
        """A button navigating to an undeclared screen names the target."""
        program = parse('app "T" { start = "Home" } screen Home { ui { button "Go" -> Missing } }')
        with pytest.raises(ReferenceValidationError) as exc_info:
            validate_references(program)
        assert exc_info.value.identifier == "Missing"
        assert exc_info.value.screen == "Home"
        assert "Missing" in exc_info.value.message

    def test_back_is_reserved(self) -> None:
        program = parse('app "T" { start = "Home" } screen Home { ui { button "Back" -> Back } }')
        validate_references(program)

    def test_missing_start_screen(self) -> None:
        program = parse('app "T" { start = "Nowhere" } screen Home { }')
        with pytest.raises(ReferenceValidationError) as exc_info:
            validate_references(program)
        assert exc_info.value.identifier == "Nowhere"

    def test_duplicate_screens(self) -> None:
        program = parse('app "T" { start = "Home" } screen Home { } screen Home { }')
        errors = collect_reference_errors(program)
        assert [e.kind for e in errors] == [ReferenceErrorKind.DUPLICATE_DEFINITION]

    def test_duplicate_state(self) -> None:
        program = parse('app "T" { start = "Home" } screen Home { state a = 1 state a = 2 }')
        errors = collect_reference_errors(program)
        assert errors[0].kind == ReferenceErrorKind.DUPLICATE_DEFINITION
        assert errors[0].identifier == "a"

    def test_input_binding_must_be_screen_state(self) -> None:
        program = parse(
            'app "T" { start = "Home" state name = "" } screen Home { ui { input "Name" name } }'
        )
        with pytest.raises(ReferenceValidationError) as exc_info:
            validate_references(program)
        assert "state binding" in exc_info.value.message

    def test_list_binding(self) -> None:
        program = parse('app "T" { start = "Home" } screen Home { ui { list rows { label "x" } } }')
        (error,) = collect_reference_errors(program)
        assert error.identifier == "rows"

    def test_unknown_action_reference(self) -> None:
        program = parse('app "T" { start = "Home" } screen Home { ui { button "Go" action save } }')
        (error,) = collect_reference_errors(program)
        assert error.identifier == "save"

    def test_nested_action_navigation(self) -> None:
        """Targets inside conditionals, loops and named actions are checked too."""
        program = parse(
            """
app "T" { start = "Home" }
screen Home {
  state a = 1
  ui { button "Go" { if a == 1 { -> Ghost } } }
  action later { for i in 0..3 { -> Phantom } }
}
"""
        )
        identifiers = [e.identifier for e in collect_reference_errors(program)]
        assert identifiers == ["Ghost", "Phantom"]

    def test_collects_all_errors(self) -> None:
        program = parse(
            'app "T" { start = "Nope" } screen Home { ui { column { button "A" -> X button "B" -> Y } } }'
        )
        identifiers = [e.identifier for e in collect_reference_errors(program)]
        assert identifiers == ["Nope", "X", "Y"]
