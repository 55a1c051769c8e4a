"""
UI tree types for Sprout IR.

Each screen owns exactly one UI root. Nodes own their children; there are
no back-references.
"""

from __future__ import annotations

import typing
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from .actions import Action, NavigateAction
from .expressions import Expr


class Container(BaseModel):
    """Layout container: column, row or stack."""

    kind: typing.Literal["column", "row", "stack"] = "column"
    children: list[UINode] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Text(BaseModel):
    """Static or interpolated text: ``label "..."`` or ``title "..."``."""

    kind: typing.Literal["label", "title"] = "label"
    text: Expr

    model_config = ConfigDict(frozen=True)


class Button(BaseModel):
    """
    A button with optional navigation, a named action reference and inline actions.

    Syntax:
        button "Save" -> Home action save { saved = true }
    """

    kind: typing.Literal["button"] = "button"
    label: str
    navigate: NavigateAction | None = None
    action_ref: str | None = None
    actions: list[Action] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Image(BaseModel):
    kind: typing.Literal["image"] = "image"
    src: str

    model_config = ConfigDict(frozen=True)


class Input(BaseModel):
    """Text input bound to a screen state variable."""

    kind: typing.Literal["input"] = "input"
    label: str
    binding: str

    model_config = ConfigDict(frozen=True)


class ListView(BaseModel):
    """Repeats ``template`` for every item of the bound state list."""

    kind: typing.Literal["list"] = "list"
    binding: str
    template: UINode

    model_config = ConfigDict(frozen=True)


class Conditional(BaseModel):
    kind: typing.Literal["if"] = "if"
    condition: Expr
    then_branch: UINode
    else_branch: UINode | None = None

    model_config = ConfigDict(frozen=True)


class CustomComponent(BaseModel):
    """User component reference with a property bag."""

    kind: typing.Literal["component"] = "component"
    name: str
    props: dict[str, Expr] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


UINode = Annotated[
    Container | Text | Button | Image | Input | ListView | Conditional | CustomComponent,
    Field(discriminator="kind"),
]

Container.model_rebuild()
ListView.model_rebuild()
Conditional.model_rebuild()


def child_nodes(node: UINode) -> list[UINode]:
    """Direct children of ``node`` in source order."""
    if isinstance(node, Container):
        return list(node.children)
    if isinstance(node, ListView):
        return [node.template]
    if isinstance(node, Conditional):
        if node.else_branch is None:
            return [node.then_branch]
        return [node.then_branch, node.else_branch]
    return []
