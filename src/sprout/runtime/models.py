"""
Runtime data models: options, status, events and results.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core.ir import RiskLevel, SecurityLevel, StateValue
from ..core.policy import MAX_LOOP_ITERATIONS


class RuntimeOptions(BaseModel):
    """
    Execution budgets and behavior switches.

    Attributes:
        max_execution_time: Wall-clock budget in seconds
        max_memory: Estimated memory budget in bytes
        debug: Record UI walk events in the trace
        security_level: Level for runtime re-validation
        max_history: State change history capacity (oldest evicted)
        max_events: Event log capacity (further events are dropped)
        max_loop_iterations: Iteration ceiling for any single loop
        max_risk_level: Highest report risk the engine will execute
    """

    max_execution_time: float = 10.0
    max_memory: int = 1024 * 1024
    debug: bool = False
    security_level: SecurityLevel = SecurityLevel.STRICT
    max_history: int = 100
    max_events: int = 1000
    max_loop_iterations: int = MAX_LOOP_ITERATIONS
    max_risk_level: RiskLevel = RiskLevel.HIGH

    model_config = ConfigDict(frozen=True)


class ExecutionStatus(StrEnum):
    """Engine lifecycle: idle → initializing → running → terminal state."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    OUT_OF_MEMORY = "out_of_memory"
    CANCELLED = "cancelled"


class EventKind(StrEnum):
    STATUS_CHANGED = "status_changed"
    ACTION_EXECUTED = "action_executed"
    STATE_UPDATED = "state_updated"
    NAVIGATION = "navigation"
    FUNCTION_CALLED = "function_called"
    CODE_SKIPPED = "code_skipped"
    UNSUPPORTED_EXPRESSION = "unsupported_expression"
    SECURITY_WARNING = "security_warning"
    UI_RENDERED = "ui_rendered"
    ERROR = "error"


class ExecutionEvent(BaseModel):
    """One entry of the execution trace; ``elapsed`` is seconds since the run started."""

    kind: EventKind
    detail: str
    elapsed: float = 0.0

    model_config = ConfigDict(frozen=True)


class StateChange(BaseModel):
    """A single state write with the value it replaced."""

    name: str
    old_value: StateValue = None
    new_value: StateValue = None
    timestamp: float

    model_config = ConfigDict(frozen=True)


class ExecutionResult(BaseModel):
    """
    Outcome of one run. Failures keep whatever state, history and events
    had accumulated before the failing action.
    """

    success: bool
    status: ExecutionStatus
    final_state: dict[str, Any] = Field(default_factory=dict)
    execution_time: float = 0.0
    memory_usage: int = 0
    events: list[ExecutionEvent] = Field(default_factory=list)
    history: list[StateChange] = Field(default_factory=list)
    navigations: list[str] = Field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None


class RuntimeStatistics(BaseModel):
    """Counters for a long-lived engine."""

    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    last_status: ExecutionStatus = ExecutionStatus.IDLE
    last_execution_time: float = 0.0
    memory_usage: int = 0
    state_variables: int = 0
    history_length: int = 0
