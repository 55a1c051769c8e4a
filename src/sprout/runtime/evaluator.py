"""
Restricted expression evaluation for the execution engine.

Evaluation is deliberately limited:
- literals evaluate to themselves
- a variable reference looks up runtime state
- an unresolved variable evaluates to its own name as a string
- field access reads a key of a map value
- interpolation concatenates its parts as text

Operators and function calls are not evaluated; they raise
``UnsupportedExpression`` so the engine can record the statement and
leave state untouched.

Conditions accept literal booleans and ``==`` between two literals or a
variable and a literal. Anything else is false.
"""

from __future__ import annotations

import logging

from ..core import ir
from ..core.errors import RuntimeErrorKind, SproutRuntimeError
from .state import RuntimeState

logger = logging.getLogger(__name__)


class UnsupportedExpression(SproutRuntimeError):
    """Raised for expressions the runtime does not evaluate (arithmetic, calls)."""

    def __init__(self, expr: ir.Expr):
        self.expr = expr
        super().__init__(
            f"Unsupported expression '{expr}'",
            kind=RuntimeErrorKind.INVALID_OPERATION,
        )


def evaluate(expr: ir.Expr, state: RuntimeState) -> ir.StateValue:
    """
    Evaluate an expression against runtime state.

    Raises:
        UnsupportedExpression: For unary, binary and function call expressions
    """
    if isinstance(expr, ir.Literal):
        return expr.value
    if isinstance(expr, ir.VarRef):
        if expr.name in state:
            return state.get(expr.name)
        logger.debug("Unresolved identifier %r evaluates to its own name", expr.name)
        return expr.name
    if isinstance(expr, ir.FieldAccess):
        target = evaluate(expr.target, state)
        if isinstance(target, dict) and expr.field in target:
            return target[expr.field]
        return str(expr)
    if isinstance(expr, ir.Interpolation):
        return "".join(to_text(evaluate(part, state)) for part in expr.parts)
    raise UnsupportedExpression(expr)


def to_text(value: ir.StateValue) -> str:
    """Render a value as display text."""
    if isinstance(value, str):
        return value
    return ir.render_value(value)


def evaluate_condition(expr: ir.Expr, state: RuntimeState) -> bool:
    """Evaluate a condition under the restricted grammar, failing closed."""
    if isinstance(expr, ir.Literal):
        return expr.value is True
    if not isinstance(expr, ir.BinaryExpr) or expr.op != ir.BinaryOp.EQ:
        return False

    left, right = expr.left, expr.right
    if isinstance(left, ir.VarRef) and isinstance(right, ir.VarRef):
        return False
    if not all(isinstance(side, ir.Literal | ir.VarRef) for side in (left, right)):
        return False

    values = []
    for side in (left, right):
        if isinstance(side, ir.VarRef):
            if side.name not in state:
                return False
            values.append(state.get(side.name))
        else:
            values.append(side.value)
    return _equal(values[0], values[1])


def _equal(a: ir.StateValue, b: ir.StateValue) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, int | float) and isinstance(b, int | float):
        return float(a) == float(b)
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return False


def parse_range(text: str) -> tuple[int, int]:
    """
    Parse ``a..b`` into ordered endpoints.

    Raises:
        SproutRuntimeError: If the text is not two integers separated by ``..``
    """
    parts = text.split("..")
    if len(parts) != 2:
        raise SproutRuntimeError(f"Invalid range format '{text}'", kind=RuntimeErrorKind.INVALID_OPERATION)
    try:
        a, b = int(parts[0].strip()), int(parts[1].strip())
    except ValueError:
        raise SproutRuntimeError(
            f"Invalid range format '{text}'", kind=RuntimeErrorKind.INVALID_OPERATION
        ) from None
    return min(a, b), max(a, b)
