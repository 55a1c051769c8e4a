"""
Action types for Sprout IR.

Actions are the behavior attached to buttons and named screen handlers.
Structured statements lower into navigate, update-state, call, conditional
and bounded-loop variants. Any statement the grammar does not recognise is
kept verbatim as a ``CodeAction``: it is screened by the denylist filter and
never executed.
"""

from __future__ import annotations

import typing
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from .expressions import Expr


class NavigateAction(BaseModel):
    """Navigate to another screen: ``-> Profile("user123")``."""

    kind: typing.Literal["navigate"] = "navigate"
    target: str
    args: list[Expr] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.args:
            return f"-> {self.target}({', '.join(str(a) for a in self.args)})"
        return f"-> {self.target}"


class UpdateStateAction(BaseModel):
    """
    Assign to a state variable: ``count = count + 1``.

    ``source`` keeps the right-hand side exactly as written.
    """

    kind: typing.Literal["update"] = "update"
    variable: str
    value: Expr
    source: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.variable} = {self.source}"


class CallAction(BaseModel):
    """Opaque, capability-gated function call: ``call share(title)``."""

    kind: typing.Literal["call"] = "call"
    function: str
    args: list[Expr] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.function}({', '.join(str(a) for a in self.args)})"


class IfAction(BaseModel):
    """Conditional action with optional else branch."""

    kind: typing.Literal["if"] = "if"
    condition: Expr
    then_actions: list[Action] = Field(default_factory=list)
    else_actions: list[Action] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"if {self.condition}"


class LoopAction(BaseModel):
    """Bounded loop over a numeric range: ``for i in 0..10 { ... }``."""

    kind: typing.Literal["loop"] = "loop"
    variable: str
    range: str = Field(description="Range text in the form a..b")
    body: list[Action] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"for {self.variable} in {self.range}"


class CodeAction(BaseModel):
    """Raw handler text that did not match any structured statement."""

    kind: typing.Literal["code"] = "code"
    code: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.code


Action = Annotated[
    NavigateAction | UpdateStateAction | CallAction | IfAction | LoopAction | CodeAction,
    Field(discriminator="kind"),
]

IfAction.model_rebuild()
LoopAction.model_rebuild()


class ScreenAction(BaseModel):
    """A named event handler declared inside a screen: ``action save { ... }``."""

    name: str
    body: list[Action] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
