"""Tests for the restricted runtime evaluator."""

import pytest

from sprout.core import ir
from sprout.core.errors import SproutRuntimeError
from sprout.core.guards import Guard
from sprout.core.policy import SecurityPolicy
from sprout.runtime import (
    RuntimeState,
    UnsupportedExpression,
    evaluate,
    evaluate_condition,
    parse_range,
)


@pytest.fixture
def state() -> RuntimeState:
    store = RuntimeState(Guard(SecurityPolicy.from_level("strict")))
    store.set("count", 3)
    store.set("name", "Ada")
    store.set("user", {"city": "Paris"})
    store.set("flag", True)
    return store


def lit(value: ir.StateValue) -> ir.Literal:
    return ir.Literal(value=value)


def var(name: str) -> ir.VarRef:
    return ir.VarRef(name=name)


def eq(left: ir.Expr, right: ir.Expr) -> ir.BinaryExpr:
    return ir.BinaryExpr(op=ir.BinaryOp.EQ, left=left, right=right)


class TestEvaluate:
    """Value evaluation."""

    def test_literal(self, state: RuntimeState) -> None:
        assert evaluate(lit(42), state) == 42

    def test_variable(self, state: RuntimeState) -> None:
        assert evaluate(var("count"), state) == 3

    def test_unresolved_variable_is_its_name(self, state: RuntimeState) -> None:
        """An unknown identifier evaluates to its own name."""
        assert evaluate(var("nobody"), state) == "nobody"

    def test_field_access(self, state: RuntimeState) -> None:
        assert evaluate(ir.FieldAccess(target=var("user"), field="city"), state) == "Paris"
        missing = ir.FieldAccess(target=var("user"), field="zip")
        assert evaluate(missing, state) == "user.zip"

    def test_interpolation(self, state: RuntimeState) -> None:
        expr = ir.Interpolation(parts=[lit("Hi "), var("name"), lit(" #"), var("count")])
        assert evaluate(expr, state) == "Hi Ada #3"

    def test_interpolation_renders_booleans(self, state: RuntimeState) -> None:
        expr = ir.Interpolation(parts=[lit("on="), var("flag")])
        assert evaluate(expr, state) == "on=true"

    @pytest.mark.parametrize(
        "expr",
        [
            ir.BinaryExpr(op=ir.BinaryOp.ADD, left=var("count"), right=lit(1)),
            ir.UnaryExpr(op=ir.UnaryOp.NOT, operand=var("flag")),
            ir.FuncCall(name="format", args=[var("count")]),
        ],
    )
    def test_unsupported(self, state: RuntimeState, expr: ir.Expr) -> None:
        """Arithmetic, negation and calls are not evaluated."""
        with pytest.raises(UnsupportedExpression):
            evaluate(expr, state)


class TestEvaluateCondition:
    """The restricted condition grammar."""

    def test_boolean_literals(self, state: RuntimeState) -> None:
        assert evaluate_condition(lit(True), state)
        assert not evaluate_condition(lit(False), state)
        assert not evaluate_condition(lit("true"), state)

    def test_variable_equals_literal(self, state: RuntimeState) -> None:
        assert evaluate_condition(eq(var("count"), lit(3)), state)
        assert evaluate_condition(eq(lit(3.0), var("count")), state)
        assert not evaluate_condition(eq(var("count"), lit(4)), state)

    def test_literal_equals_literal(self, state: RuntimeState) -> None:
        assert evaluate_condition(eq(lit("a"), lit("a")), state)

    def test_bool_is_not_number(self, state: RuntimeState) -> None:
        assert not evaluate_condition(eq(lit(1), lit(True)), state)

    def test_fails_closed(self, state: RuntimeState) -> None:
        """Anything outside the grammar is false."""
        assert not evaluate_condition(var("flag"), state)
        assert not evaluate_condition(eq(var("count"), var("count")), state)
        assert not evaluate_condition(eq(var("ghost"), lit("ghost")), state)
        greater = ir.BinaryExpr(op=ir.BinaryOp.GT, left=var("count"), right=lit(1))
        assert not evaluate_condition(greater, state)


class TestParseRange:
    def test_ordered_endpoints(self) -> None:
        assert parse_range("0..500") == (0, 500)
        assert parse_range("10..2") == (2, 10)

    @pytest.mark.parametrize("text", ["1..", "a..b", "1..2..3", "5"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(SproutRuntimeError):
            parse_range(text)
