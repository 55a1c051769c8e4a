"""
State value types for Sprout IR.

A state value is one of: string, number, boolean, ordered list of values,
or a string-keyed map of values. Pydantic's ``JsonValue`` describes exactly
that shape (plus ``null``, which the parser never produces).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, JsonValue

StateValue = JsonValue


class StateVariable(BaseModel):
    """A declared state variable with its initial value."""

    name: str = Field(description="Variable name, unique within its scope")
    value: StateValue = Field(description="Initial value")

    model_config = ConfigDict(frozen=True)


def render_value(value: StateValue) -> str:
    """Render a state value the way it appears in source text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, list):
        return "[" + ", ".join(render_value(v) for v in value) + "]"
    if isinstance(value, dict):
        inner = ", ".join(f"{k}: {render_value(v)}" for k, v in value.items())
        return "{" + inner + "}"
    if value is None:
        return "null"
    return str(value)
