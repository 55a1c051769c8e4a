"""
Expression types for Sprout IR.

The expression language is intentionally shallow. It supports:
- Literals: numbers, strings, booleans
- Variable references: count
- Field access: item.text, user.profile.name
- Unary operators: !done, not done
- A single binary operator: a == b, count + 1
- Function calls: format(price, 2)
- String interpolation: "Hello ${name}"
"""

from __future__ import annotations

import typing
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from .values import StateValue, render_value

# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class BinaryOp(StrEnum):
    """Binary operators for expressions."""

    # Arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    # Comparison
    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="


class UnaryOp(StrEnum):
    """Unary operators for expressions."""

    NOT = "!"


# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------


class Literal(BaseModel):
    """A literal value: number, string or boolean."""

    kind: typing.Literal["literal"] = "literal"
    value: StateValue = Field(description="The literal value")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return render_value(self.value)


class VarRef(BaseModel):
    """Reference to a state variable or screen parameter."""

    kind: typing.Literal["var"] = "var"
    name: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.name


class FieldAccess(BaseModel):
    """
    Field access on another expression.

    Examples:
        - FieldAccess(target=VarRef("item"), field="text") → item.text
    """

    kind: typing.Literal["field"] = "field"
    target: Expr
    field: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.target}.{self.field}"


class UnaryExpr(BaseModel):
    """Unary operation: op operand."""

    kind: typing.Literal["unary"] = "unary"
    op: UnaryOp
    operand: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"!{self.operand}"


class BinaryExpr(BaseModel):
    """Binary operation: left op right."""

    kind: typing.Literal["binary"] = "binary"
    op: BinaryOp
    left: Expr
    right: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.left} {self.op.value} {self.right})"


class FuncCall(BaseModel):
    """Function call: name(arg1, arg2, ...)."""

    kind: typing.Literal["call"] = "call"
    name: str = Field(description="Function name")
    args: list[Expr] = Field(default_factory=list, description="Arguments")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        args_str = ", ".join(str(a) for a in self.args)
        return f"{self.name}({args_str})"


class Interpolation(BaseModel):
    """
    String with embedded expressions: "Hello ${name}".

    ``parts`` holds text segments as string literals and embedded
    expressions in source order.
    """

    kind: typing.Literal["interpolation"] = "interpolation"
    parts: list[Expr] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        rendered = []
        for part in self.parts:
            if isinstance(part, Literal) and isinstance(part.value, str):
                rendered.append(part.value)
            else:
                rendered.append("${" + str(part) + "}")
        return '"' + "".join(rendered) + '"'


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Expr = Annotated[
    Literal | VarRef | FieldAccess | UnaryExpr | BinaryExpr | FuncCall | Interpolation,
    Field(discriminator="kind"),
]

# Rebuild models for recursive forward references
FieldAccess.model_rebuild()
UnaryExpr.model_rebuild()
BinaryExpr.model_rebuild()
FuncCall.model_rebuild()
Interpolation.model_rebuild()


def expr_depth(expr: Expr) -> int:
    """Nesting depth of an expression tree (a leaf has depth 1)."""
    if isinstance(expr, FieldAccess):
        return 1 + expr_depth(expr.target)
    if isinstance(expr, UnaryExpr):
        return 1 + expr_depth(expr.operand)
    if isinstance(expr, BinaryExpr):
        return 1 + max(expr_depth(expr.left), expr_depth(expr.right))
    if isinstance(expr, FuncCall):
        return 1 + max((expr_depth(a) for a in expr.args), default=0)
    if isinstance(expr, Interpolation):
        return 1 + max((expr_depth(p) for p in expr.parts), default=0)
    return 1
