"""
Sprout Intermediate Representation (IR) types.

All types are re-exported from this package.
"""

from .actions import (
    Action,
    CallAction,
    CodeAction,
    IfAction,
    LoopAction,
    NavigateAction,
    ScreenAction,
    UpdateStateAction,
)
from .expressions import (
    BinaryExpr,
    BinaryOp,
    Expr,
    FieldAccess,
    FuncCall,
    Interpolation,
    Literal,
    UnaryExpr,
    UnaryOp,
    VarRef,
    expr_depth,
)
from .program import DataField, DataModel, Import, Program, Screen, ScreenParam
from .security import RiskLevel, SecurityLevel, SecurityReport
from .ui import (
    Button,
    Conditional,
    Container,
    CustomComponent,
    Image,
    Input,
    ListView,
    Text,
    UINode,
    child_nodes,
)
from .values import StateValue, StateVariable, render_value

__all__ = [
    # Values
    "StateValue",
    "StateVariable",
    "render_value",
    # Expressions
    "BinaryExpr",
    "BinaryOp",
    "Expr",
    "FieldAccess",
    "FuncCall",
    "Interpolation",
    "Literal",
    "UnaryExpr",
    "UnaryOp",
    "VarRef",
    "expr_depth",
    # Actions
    "Action",
    "CallAction",
    "CodeAction",
    "IfAction",
    "LoopAction",
    "NavigateAction",
    "ScreenAction",
    "UpdateStateAction",
    # UI
    "Button",
    "Conditional",
    "Container",
    "CustomComponent",
    "Image",
    "Input",
    "ListView",
    "Text",
    "UINode",
    "child_nodes",
    # Program
    "DataField",
    "DataModel",
    "Import",
    "Program",
    "Screen",
    "ScreenParam",
    # Security
    "RiskLevel",
    "SecurityLevel",
    "SecurityReport",
]
