"""
Sandboxed execution engine.

The engine executes a validated program against a ``RuntimeState`` under
wall-clock, memory and cancellation checkpoints. It never re-parses source
and never calls host functions: function calls and raw code blocks are
recorded as opaque, capability-gated effects.

Two usage modes:
- disposable: ``execute_program(...)`` builds a fresh engine and state per run
- shared: one ``ExecutionEngine`` holding a long-lived ``RuntimeState``;
  runs and ``dispatch`` calls are serialized behind the engine lock
"""

from __future__ import annotations

import logging
import threading
import time

from ..core import ir
from ..core.errors import (
    RuntimeErrorKind,
    SecurityError,
    SecurityErrorKind,
    SproutError,
    SproutRuntimeError,
    make_limit_error,
)
from ..core.guards import Guard
from ..core.policy import (
    MAX_ARG_LENGTH,
    MAX_CALL_ARGS,
    MAX_LOOP_BODY_ACTIONS,
    MAX_NAVIGATION_TARGET_LENGTH,
    MAX_PARSE_DEPTH,
    SecurityPolicy,
)
from .evaluator import UnsupportedExpression, evaluate, evaluate_condition, parse_range, to_text
from .models import (
    EventKind,
    ExecutionEvent,
    ExecutionResult,
    ExecutionStatus,
    RuntimeOptions,
    RuntimeStatistics,
)
from .state import RuntimeState, estimate_size

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    RuntimeErrorKind.TIMEOUT: ExecutionStatus.TIMED_OUT,
    RuntimeErrorKind.MEMORY_EXCEEDED: ExecutionStatus.OUT_OF_MEMORY,
    RuntimeErrorKind.CANCELLED: ExecutionStatus.CANCELLED,
}


class _Run:
    """Bookkeeping for one execution: clock, memory baseline, trace."""

    def __init__(self, engine: ExecutionEngine, state: RuntimeState):
        self.engine = engine
        self.options = engine.options
        self.state = state
        self.started = time.monotonic()
        self.memory_baseline = state.memory_usage
        self.events: list[ExecutionEvent] = []
        self.navigations: list[str] = []

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    @property
    def memory(self) -> int:
        return self.state.memory_usage - self.memory_baseline

    def log(self, kind: EventKind, detail: str) -> None:
        if len(self.events) >= self.options.max_events:
            return
        self.events.append(ExecutionEvent(kind=kind, detail=detail, elapsed=self.elapsed))

    def checkpoint(self) -> None:
        """Cancellation, time and memory budget checks."""
        if self.engine.cancel_event.is_set():
            raise SproutRuntimeError("Execution cancelled", kind=RuntimeErrorKind.CANCELLED)
        if self.elapsed > self.options.max_execution_time:
            raise SproutRuntimeError(
                f"Execution exceeded {self.options.max_execution_time}s",
                kind=RuntimeErrorKind.TIMEOUT,
            )
        if self.memory > self.options.max_memory:
            raise SproutRuntimeError(
                f"Estimated memory {self.memory} exceeded {self.options.max_memory} bytes",
                kind=RuntimeErrorKind.MEMORY_EXCEEDED,
            )

    def write(self, name: str, value: ir.StateValue) -> None:
        self.state.set(name, value)
        self.log(EventKind.STATE_UPDATED, f"{name} = {to_text(value)}")

    def seed(self, variables: list[ir.StateVariable]) -> None:
        for var in variables:
            if var.name not in self.state:
                self.write(var.name, var.value)


class ExecutionEngine:
    """
    Executes programs against a runtime state.

    Args:
        options: Budgets and behavior switches
        state: Shared state for interactive use; a fresh state per run if omitted
        cancel_event: Caller-owned cancellation signal
    """

    def __init__(
        self,
        options: RuntimeOptions | None = None,
        state: RuntimeState | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.options = options or RuntimeOptions()
        self.policy = SecurityPolicy.from_level(self.options.security_level)
        self.guard = Guard(self.policy)
        self.shared_state = state
        self.cancel_event = cancel_event or threading.Event()
        self.status = ExecutionStatus.IDLE
        self.statistics = RuntimeStatistics()
        self._lock = threading.Lock()

    def cancel(self) -> None:
        self.cancel_event.set()

    def new_state(self) -> RuntimeState:
        return RuntimeState(self.guard, max_history=self.options.max_history)

    def _state_for_run(self) -> RuntimeState:
        # An empty shared state is falsy; test identity, not truth
        if self.shared_state is not None:
            return self.shared_state
        return self.new_state()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(
        self,
        program: ir.Program,
        entry_screen: str | None = None,
        report: ir.SecurityReport | None = None,
    ) -> ExecutionResult:
        """
        Execute ``entry_screen`` (default: the program's start screen).

        Never raises for program-level failures: they are reported in the
        returned result together with the partial state and trace.
        """
        with self._lock:
            run = _Run(self, self._state_for_run())
            try:
                self._set_status(run, ExecutionStatus.INITIALIZING)
                self._admit(program, report)
                run.seed(program.state)

                self._set_status(run, ExecutionStatus.RUNNING)
                screen = self._enter_screen(run, program, entry_screen or program.start_screen)
                self._walk_ui(run, screen, screen.ui, 1, interactive=True)
                run.checkpoint()
            except SproutError as exc:
                return self._finish(run, exc)
            return self._finish(run, None)

    def dispatch(self, program: ir.Program, screen_name: str, action_name: str) -> ExecutionResult:
        """Execute one named action of a screen, typically against a shared state."""
        with self._lock:
            run = _Run(self, self._state_for_run())
            try:
                self._set_status(run, ExecutionStatus.INITIALIZING)
                self._admit(program, None)
                run.seed(program.state)

                self._set_status(run, ExecutionStatus.RUNNING)
                screen = self._enter_screen(run, program, screen_name)
                action = screen.get_action(action_name)
                if action is None:
                    raise SproutRuntimeError(
                        f"Undefined action '{action_name}' in screen '{screen_name}'",
                        kind=RuntimeErrorKind.UNDEFINED_VARIABLE,
                    )
                self._execute_actions(run, screen, action.body, 1)
                run.checkpoint()
            except SproutError as exc:
                return self._finish(run, exc)
            return self._finish(run, None)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _set_status(self, run: _Run, status: ExecutionStatus) -> None:
        self.status = status
        run.log(EventKind.STATUS_CHANGED, status.value)

    def _admit(self, program: ir.Program, report: ir.SecurityReport | None) -> None:
        if report is not None and report.risk_level > self.options.max_risk_level:
            raise SecurityError(
                f"Program risk '{report.risk_level}' exceeds allowed '{self.options.max_risk_level}'",
                kind=SecurityErrorKind.PERMISSION_VIOLATION,
                name="risk_level",
            )
        self.guard.revalidate_program(program)

    def _enter_screen(self, run: _Run, program: ir.Program, name: str) -> ir.Screen:
        screen = program.get_screen(name)
        if screen is None:
            raise SproutRuntimeError(
                f"Undefined screen '{name}'", kind=RuntimeErrorKind.UNDEFINED_VARIABLE
            )
        self.guard.revalidate_screen(screen)
        run.seed(screen.state)
        return screen

    def _finish(self, run: _Run, error: SproutError | None) -> ExecutionResult:
        for warning in self.guard.warnings:
            run.log(EventKind.SECURITY_WARNING, warning)
        self.guard.warnings.clear()

        if error is None:
            status = ExecutionStatus.COMPLETED
            error_kind = None
        else:
            kind = getattr(error, "kind", None)
            status = STATUS_BY_ERROR.get(kind, ExecutionStatus.FAILED)
            error_kind = str(kind) if kind is not None else None
            run.log(EventKind.ERROR, error.message)
            logger.info("Execution ended with %s: %s", status.value, error.message)
        self._set_status(run, status)

        stats = self.statistics
        stats.total_runs += 1
        if error is None:
            stats.successful_runs += 1
        else:
            stats.failed_runs += 1
        stats.last_status = status
        stats.last_execution_time = run.elapsed
        stats.memory_usage = run.state.memory_usage
        stats.state_variables = len(run.state)
        stats.history_length = len(run.state.history)

        return ExecutionResult(
            success=error is None,
            status=status,
            final_state=run.state.snapshot(),
            execution_time=run.elapsed,
            memory_usage=run.memory,
            events=run.events,
            history=run.state.history,
            navigations=run.navigations,
            error=error.message if error else None,
            error_kind=error_kind,
        )

    # ------------------------------------------------------------------
    # UI walk
    # ------------------------------------------------------------------

    def _walk_ui(
        self, run: _Run, screen: ir.Screen, node: ir.UINode, depth: int, interactive: bool
    ) -> None:
        """
        Estimate memory for ``node`` and execute reachable button actions.

        List templates are walked for estimation only.
        """
        if depth > MAX_PARSE_DEPTH:
            raise make_limit_error("UI nesting depth", depth, MAX_PARSE_DEPTH)
        if self.options.debug:
            run.log(EventKind.UI_RENDERED, node.kind)

        if isinstance(node, ir.Container):
            for child in node.children:
                self._walk_ui(run, screen, child, depth + 1, interactive)
        elif isinstance(node, ir.Text):
            try:
                text = to_text(evaluate(node.text, run.state))
            except UnsupportedExpression:
                text = str(node.text)
            run.state.track_memory(len(text))
        elif isinstance(node, ir.Image):
            run.state.track_memory(len(node.src) + 1024)
        elif isinstance(node, ir.Input):
            run.state.track_memory(len(node.label))
            if node.binding not in run.state:
                run.write(node.binding, "")
        elif isinstance(node, ir.ListView):
            if node.binding not in run.state:
                run.write(node.binding, [])
            run.state.track_memory(estimate_size(run.state.get(node.binding)))
            self._walk_ui(run, screen, node.template, depth + 1, interactive=False)
        elif isinstance(node, ir.Conditional):
            if evaluate_condition(node.condition, run.state):
                self._walk_ui(run, screen, node.then_branch, depth + 1, interactive)
            elif node.else_branch is not None:
                self._walk_ui(run, screen, node.else_branch, depth + 1, interactive)
        elif isinstance(node, ir.CustomComponent):
            run.state.track_memory(len(node.name) + sum(len(str(v)) for v in node.props.values()))
        elif isinstance(node, ir.Button):
            run.state.track_memory(len(node.label) + 100)
            if interactive:
                self._press(run, screen, node)
        run.checkpoint()

    def _press(self, run: _Run, screen: ir.Screen, button: ir.Button) -> None:
        self._execute_actions(run, screen, button.actions, 1)
        if button.action_ref is not None:
            named = screen.get_action(button.action_ref)
            if named is None:
                raise SproutRuntimeError(
                    f"Undefined action '{button.action_ref}'",
                    kind=RuntimeErrorKind.UNDEFINED_VARIABLE,
                )
            self._execute_actions(run, screen, named.body, 1)
        if button.navigate is not None:
            self._execute_actions(run, screen, [button.navigate], 1)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _execute_actions(
        self, run: _Run, screen: ir.Screen, actions: list[ir.Action], depth: int
    ) -> None:
        if depth > MAX_PARSE_DEPTH:
            raise make_limit_error("action nesting depth", depth, MAX_PARSE_DEPTH)
        for action in actions:
            run.checkpoint()
            run.log(EventKind.ACTION_EXECUTED, str(action))
            self._execute_action(run, screen, action, depth)

    def _execute_action(self, run: _Run, screen: ir.Screen, action: ir.Action, depth: int) -> None:
        if isinstance(action, ir.NavigateAction):
            if len(action.target) > MAX_NAVIGATION_TARGET_LENGTH:
                raise SproutRuntimeError(
                    "Navigation target too long", kind=RuntimeErrorKind.INVALID_OPERATION
                )
            self.guard.check_text(action.target, "navigation target")
            for arg in action.args:
                self._render_arg(run, arg)
            run.navigations.append(action.target)
            run.log(EventKind.NAVIGATION, action.target)

        elif isinstance(action, ir.UpdateStateAction):
            try:
                value = evaluate(action.value, run.state)
            except UnsupportedExpression as exc:
                # Arithmetic and calls are not evaluated; the variable keeps its value
                run.log(EventKind.UNSUPPORTED_EXPRESSION, f"{action}: {exc.message}")
                return
            if isinstance(value, str):
                self.guard.check_string(value, f"value of '{action.variable}'")
            run.write(action.variable, value)

        elif isinstance(action, ir.CallAction):
            self._call(run, action)

        elif isinstance(action, ir.IfAction):
            if evaluate_condition(action.condition, run.state):
                self._execute_actions(run, screen, action.then_actions, depth + 1)
            else:
                self._execute_actions(run, screen, action.else_actions, depth + 1)

        elif isinstance(action, ir.LoopAction):
            self._loop(run, screen, action, depth)

        elif isinstance(action, ir.CodeAction):
            self.guard.check_string(action.code, "action code")
            run.log(EventKind.CODE_SKIPPED, action.code[:80])

    def _call(self, run: _Run, action: ir.CallAction) -> None:
        """Capability-check a call and record it; no host function is invoked."""
        self.guard.check_text(action.function, "function call")
        if len(action.args) > MAX_CALL_ARGS:
            raise SproutRuntimeError(
                f"Too many arguments: {len(action.args)}", kind=RuntimeErrorKind.INVALID_OPERATION
            )
        rendered = [self._render_arg(run, arg) for arg in action.args]
        run.log(EventKind.FUNCTION_CALLED, f"{action.function}({', '.join(rendered)})")

    def _render_arg(self, run: _Run, arg: ir.Expr) -> str:
        try:
            text = to_text(evaluate(arg, run.state))
        except UnsupportedExpression:
            text = str(arg)
        if len(text) > MAX_ARG_LENGTH:
            raise SproutRuntimeError(
                f"Argument too long: {len(text)} > {MAX_ARG_LENGTH}",
                kind=RuntimeErrorKind.INVALID_OPERATION,
            )
        self.guard.check_text(text, "call argument")
        return text

    def _loop(self, run: _Run, screen: ir.Screen, action: ir.LoopAction, depth: int) -> None:
        if len(action.body) > MAX_LOOP_BODY_ACTIONS:
            raise SproutRuntimeError("Loop body too large", kind=RuntimeErrorKind.INVALID_OPERATION)
        start, end = parse_range(action.range)
        iterations = min(end - start + 1, self.options.max_loop_iterations)
        if end - start + 1 > iterations:
            logger.debug("Loop over %s clamped to %d iterations", action.range, iterations)
        for i in range(start, start + iterations):
            run.checkpoint()
            run.write(action.variable, i)
            self._execute_actions(run, screen, action.body, depth + 1)


def execute_program(
    program: ir.Program,
    entry_screen: str | None = None,
    options: RuntimeOptions | None = None,
    report: ir.SecurityReport | None = None,
    cancel_event: threading.Event | None = None,
) -> ExecutionResult:
    """Run ``program`` once on a disposable engine and state."""
    engine = ExecutionEngine(options, cancel_event=cancel_event)
    return engine.run(program, entry_screen, report)
