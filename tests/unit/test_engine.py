"""Tests for the sandboxed execution engine."""

import sys
import threading

import pytest

from sprout.core import ir
from sprout.core.dsl_parser_impl import parse_dsl
from sprout.core.guards import Guard
from sprout.core.policy import SecurityPolicy
from sprout.runtime import (
    EventKind,
    ExecutionEngine,
    ExecutionStatus,
    RuntimeOptions,
    RuntimeState,
    execute_program,
)


def parse(source: str, level: ir.SecurityLevel = ir.SecurityLevel.STRICT) -> ir.Program:
    program, _ = parse_dsl(source, level)
    return program


def button_program(body: str, state: str = "", extra: str = "") -> ir.Program:
    return parse(
        f'app "T" {{ start = "Home" {state} }}\n'
        f'screen Home {{\n{extra}\nui {{\nbutton "Go" {{\n{body}\n}}\n}}\n}}\n'
        "screen Next { }"
    )


def kinds(result) -> list[EventKind]:
    return [event.kind for event in result.events]


class TestExecution:
    """End-to-end runs through ``execute_program``."""

    def test_minimal_program_completes(self, hello_program: ir.Program) -> None:
        result = execute_program(hello_program)
        assert result.success
        assert result.status == ExecutionStatus.COMPLETED
        assert result.error is None
        assert result.memory_usage == len("Hello World")
        assert kinds(result)[0] == EventKind.STATUS_CHANGED
        assert result.events[-1].detail == "completed"

    def test_todo_program(self, todo_program: ir.Program) -> None:
        """State is seeded, the named action runs and navigation is recorded."""
        result = execute_program(todo_program, options=RuntimeOptions(security_level="moderate"))
        assert result.success, result.error
        assert result.final_state == {"user": "guest", "todos": [], "draft": "", "done": False}
        assert result.navigations == ["About"]
        calls = [e.detail for e in result.events if e.kind == EventKind.FUNCTION_CALLED]
        assert calls == ["todos.push()"]

    def test_arithmetic_leaves_state_unchanged(self) -> None:
        """``count = count + 1`` is recorded as unsupported, not executed."""
        program = button_program("count = count + 1", state="state count = 0")
        result = execute_program(program)
        assert result.success
        assert result.final_state["count"] == 0
        assert EventKind.UNSUPPORTED_EXPRESSION in kinds(result)

    def test_loop_is_clamped(self) -> None:
        """A loop over 0..500 runs at most 100 iterations."""
        program = button_program("for i in 0..500 { }")
        result = execute_program(program)
        assert result.success
        writes = [e for e in result.events if e.kind == EventKind.STATE_UPDATED and e.detail.startswith("i =")]
        assert len(writes) == 100
        assert result.final_state["i"] == 99

    def test_loop_respects_option(self) -> None:
        program = button_program("for i in 1..10 { }")
        result = execute_program(program, options=RuntimeOptions(max_loop_iterations=3))
        assert result.final_state["i"] == 3

    def test_assignment_and_conditionals(self) -> None:
        program = button_program(
            'mode = "edit"\nif mode == "edit" { saved = true } else { saved = false }',
            state='state { mode = "view"\n saved = false }',
        )
        result = execute_program(program)
        assert result.final_state == {"mode": "edit", "saved": True}
        assert [(c.name, c.new_value) for c in result.history][-2:] == [
            ("mode", "edit"),
            ("saved", True),
        ]

    def test_navigation_and_call_are_recorded(self) -> None:
        program = button_program('call share("hi", 2)\n-> Next')
        result = execute_program(program)
        assert result.navigations == ["Next"]
        assert 'share(hi, 2)' in [e.detail for e in result.events if e.kind == EventKind.FUNCTION_CALLED]

    def test_code_is_never_executed(self) -> None:
        program = button_program("showToast 'saved'")
        result = execute_program(program)
        assert result.success
        skipped = [e.detail for e in result.events if e.kind == EventKind.CODE_SKIPPED]
        assert skipped == ["showToast 'saved'"]

    def test_button_order(self) -> None:
        """Inline actions run before the named action, then navigation."""
        program = parse(
            """
app "T" { start = "Home" }
screen Home {
  state step = "none"
  ui { button "Go" -> Next action finish { step = "inline" } }
  action finish { step = "named" }
}
screen Next { }
"""
        )
        result = execute_program(program)
        steps = [c.new_value for c in result.history if c.name == "step"]
        assert steps == ["none", "inline", "named"]
        assert result.navigations == ["Next"]

    def test_conditional_ui(self) -> None:
        program = parse(
            """
app "T" { start = "Home" }
screen Home {
  state show = false
  ui { if show == true { button "A" -> Next } else { button "B" { picked = "b" } } }
}
screen Next { }
"""
        )
        result = execute_program(program)
        assert result.navigations == []
        assert result.final_state["picked"] == "b"

    def test_inputs_and_lists_are_seeded(self) -> None:
        program = parse(
            'app "T" { start = "Home" }\n'
            'screen Home { state { name = "x"\n rows = [1, 2] } ui { input "Name" name\n list rows { button "r" -> Home } } }'
        )
        result = execute_program(program)
        assert result.success
        # list templates are not interactive
        assert result.navigations == []
        assert result.memory_usage == len("x") + 16 + len("Name") + 16 + len("r") + 100

    def test_entry_screen(self) -> None:
        program = parse('app "T" { start = "Home" } screen Home { } screen Other { state o = 1 }')
        result = execute_program(program, entry_screen="Other")
        assert result.final_state == {"o": 1}

    def test_unknown_entry_screen(self, hello_program: ir.Program) -> None:
        result = execute_program(hello_program, entry_screen="Nowhere")
        assert not result.success
        assert result.status == ExecutionStatus.FAILED
        assert result.error_kind == "undefined_variable"

    def test_debug_records_ui(self, hello_program: ir.Program) -> None:
        result = execute_program(hello_program, options=RuntimeOptions(debug=True))
        assert EventKind.UI_RENDERED in kinds(result)


class TestBudgets:
    """Time, memory, cancellation and admission."""

    def test_timeout(self) -> None:
        program = button_program("for i in 0..50 { }")
        result = execute_program(program, options=RuntimeOptions(max_execution_time=0.0))
        assert not result.success
        assert result.status == ExecutionStatus.TIMED_OUT
        assert result.error_kind == "timeout"

    def test_memory_budget(self, hello_program: ir.Program) -> None:
        result = execute_program(hello_program, options=RuntimeOptions(max_memory=5))
        assert result.status == ExecutionStatus.OUT_OF_MEMORY

    def test_cancellation(self, hello_program: ir.Program) -> None:
        cancel = threading.Event()
        cancel.set()
        result = execute_program(hello_program, cancel_event=cancel)
        assert result.status == ExecutionStatus.CANCELLED
        assert result.error_kind == "cancelled"

    def test_partial_state_survives_failure(self) -> None:
        program = button_program('note = "before"\nfor i in 0..50 { }', state='state note = ""')
        # the button itself costs 102 bytes; the loop pushes past the budget
        result = execute_program(program, options=RuntimeOptions(max_memory=120))
        assert not result.success
        assert result.final_state["note"] == "before"

    def test_risk_admission(self, hello_program: ir.Program) -> None:
        report = ir.SecurityReport(risk_level=ir.RiskLevel.CRITICAL)
        result = execute_program(hello_program, report=report)
        assert not result.success
        assert result.error_kind == "permission_violation"

        allowed = RuntimeOptions(max_risk_level=ir.RiskLevel.CRITICAL)
        assert execute_program(hello_program, options=allowed, report=report).success

    def test_runtime_revalidation(self) -> None:
        """A program built outside the parser is checked again before running."""
        program = ir.Program(
            name="T",
            start_screen="Home",
            screens=[ir.Screen(name="Home")],
            state=[ir.StateVariable(name="cmd", value="eval me")],
        )
        result = execute_program(program)
        assert not result.success
        assert result.error_kind == "dangerous_function"

    def test_denylisted_call_at_runtime(self) -> None:
        program = ir.Program(
            name="T",
            start_screen="Home",
            screens=[
                ir.Screen(
                    name="Home",
                    ui=ir.Button(label="Go", actions=[ir.CallAction(function="exec", args=[])]),
                )
            ],
        )
        result = execute_program(program)
        assert result.error_kind == "dangerous_function"

    def test_deep_ui_tree_is_a_limit_error(self) -> None:
        """A tree nested past the interpreter stack fails with a limit error."""
        node: ir.UINode = ir.Text(text=ir.Literal(value="deep"))
        for _ in range(sys.getrecursionlimit() + 50):
            node = ir.Container(children=[node])
        program = ir.Program(
            name="T", start_screen="Home", screens=[ir.Screen(name="Home", ui=node)]
        )

        result = ExecutionEngine().run(program)
        assert result.status == ExecutionStatus.FAILED
        assert result.error_kind == "resource_limit_exceeded"

        dispatched = ExecutionEngine().dispatch(program, "Home", "missing")
        assert dispatched.error_kind == "resource_limit_exceeded"


class TestSharedEngine:
    """Long-lived engine with shared state."""

    def test_dispatch_against_shared_state(self) -> None:
        program = parse(
            'app "T" { start = "Home" }\n'
            'screen Home { state count = 0 action reset { count = 10 } }'
        )
        guard = Guard(SecurityPolicy.from_level("strict"))
        engine = ExecutionEngine(state=RuntimeState(guard))

        first = engine.run(program)
        assert first.final_state == {"count": 0}

        second = engine.dispatch(program, "Home", "reset")
        assert second.success
        assert second.final_state == {"count": 10}

        third = engine.run(program)
        # shared state keeps existing values on re-entry
        assert third.final_state == {"count": 10}
        assert engine.statistics.total_runs == 3
        assert engine.statistics.successful_runs == 3
        assert engine.statistics.last_status == ExecutionStatus.COMPLETED

    def test_dispatch_unknown_action(self, hello_program: ir.Program) -> None:
        engine = ExecutionEngine()
        result = engine.dispatch(hello_program, "Home", "missing")
        assert not result.success
        assert engine.statistics.failed_runs == 1

    def test_listener_sees_engine_writes(self) -> None:
        program = button_program('flag = "on"', state='state flag = "off"')
        state = RuntimeState(Guard(SecurityPolicy.from_level("strict")))
        seen: list[str] = []
        with state.subscribe(lambda change: seen.append(change.name)):
            ExecutionEngine(state=state).run(program)
        assert seen == ["flag", "flag"]

    def test_cancel_method(self, hello_program: ir.Program) -> None:
        engine = ExecutionEngine()
        engine.cancel()
        assert engine.run(hello_program).status == ExecutionStatus.CANCELLED


@pytest.mark.parametrize("level", ["strict", "moderate", "permissive"])
def test_runs_at_every_level(hello_program: ir.Program, level: str) -> None:
    result = execute_program(hello_program, options=RuntimeOptions(security_level=level))
    assert result.success
