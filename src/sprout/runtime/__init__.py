"""
Sprout runtime: state store, restricted evaluator and execution engine.
"""

from .engine import ExecutionEngine, execute_program
from .evaluator import UnsupportedExpression, evaluate, evaluate_condition, parse_range
from .models import (
    EventKind,
    ExecutionEvent,
    ExecutionResult,
    ExecutionStatus,
    RuntimeOptions,
    RuntimeStatistics,
    StateChange,
)
from .state import RuntimeState, Subscription, estimate_size

__all__ = [
    "EventKind",
    "ExecutionEngine",
    "ExecutionEvent",
    "ExecutionResult",
    "ExecutionStatus",
    "RuntimeOptions",
    "RuntimeState",
    "RuntimeStatistics",
    "StateChange",
    "Subscription",
    "UnsupportedExpression",
    "estimate_size",
    "evaluate",
    "evaluate_condition",
    "execute_program",
    "parse_range",
]
