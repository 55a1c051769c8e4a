"""
Program-level types for Sprout IR: the app, its screens, imports and data models.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .actions import ScreenAction
from .ui import Container, UINode
from .values import StateValue, StateVariable


class ScreenParam(BaseModel):
    """A typed screen parameter: ``screen Profile(userId: String)``."""

    name: str
    type_name: str = "Any"

    model_config = ConfigDict(frozen=True)


class Screen(BaseModel):
    """
    A named unit of UI, local state and actions.

    Attributes:
        name: Screen name, unique within the program
        params: Declared parameters, in order
        state: Screen-local state declarations
        ui: Root of the UI tree
        actions: Named event handlers
    """

    name: str
    params: list[ScreenParam] = Field(default_factory=list)
    state: list[StateVariable] = Field(default_factory=list)
    ui: UINode = Field(default_factory=Container)
    actions: list[ScreenAction] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def get_action(self, name: str) -> ScreenAction | None:
        for action in self.actions:
            if action.name == name:
                return action
        return None

    @property
    def state_names(self) -> list[str]:
        return [var.name for var in self.state]


class Import(BaseModel):
    """A module import: ``import "@sprout/ui"``."""

    path: str

    model_config = ConfigDict(frozen=True)


class DataField(BaseModel):
    name: str
    type_name: str
    default: StateValue = None

    model_config = ConfigDict(frozen=True)


class DataModel(BaseModel):
    """A record type declared with ``data Todo { ... }``."""

    name: str
    fields: list[DataField] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Program(BaseModel):
    """
    Root of a parsed Sprout source file.

    Invariant: once reference validation has passed, ``start_screen`` names
    one of ``screens``.
    """

    name: str
    start_screen: str
    screens: list[Screen] = Field(default_factory=list)
    state: list[StateVariable] = Field(default_factory=list)
    imports: list[Import] = Field(default_factory=list)
    data_models: list[DataModel] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def get_screen(self, name: str) -> Screen | None:
        for screen in self.screens:
            if screen.name == name:
                return screen
        return None

    @property
    def screen_names(self) -> list[str]:
        return [screen.name for screen in self.screens]

    @property
    def total_state(self) -> int:
        return len(self.state) + sum(len(screen.state) for screen in self.screens)
