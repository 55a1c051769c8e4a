"""Shared pytest fixtures for Sprout tests."""

import pytest

from sprout.core import ir
from sprout.core.dsl_parser_impl import parse_dsl

HELLO_SOURCE = 'app "Test" { start="Home" } screen Home { ui { label "Hello World" } }'

TODO_SOURCE = """
# A small todo app
app "Todo" {
  start = "Home"
  state user = "guest"
}

import "@sprout/ui"

screen Home {
  state {
    todos = []
    draft = ""
    done = false
  }
  ui {
    column {
      title "Todos for ${user}"
      input "New todo" binding: draft
      button "Add" action add
      list todos {
        label "${item.text}"
      }
      button "About" -> About
    }
  }
  action add {
    todos.push(draft)
    draft = ""
  }
}

screen About {
  ui {
    label "About"
    button "Back" -> Home
  }
}
"""


@pytest.fixture
def hello_source() -> str:
    """Return the smallest valid program."""
    return HELLO_SOURCE


@pytest.fixture
def todo_source() -> str:
    """Return a two-screen program exercising state, input, list and actions."""
    return TODO_SOURCE


@pytest.fixture
def hello_program() -> ir.Program:
    program, _ = parse_dsl(HELLO_SOURCE)
    return program


@pytest.fixture
def todo_program() -> ir.Program:
    program, _ = parse_dsl(TODO_SOURCE)
    return program
