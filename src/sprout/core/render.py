"""
Debug rendering of a parsed program as an indented tree.
"""

from __future__ import annotations

from . import ir

INDENT = "  "


def render_program(program: ir.Program) -> str:
    """Render ``program`` as an indented, human-readable tree."""
    lines = [f'App "{program.name}" (start: {program.start_screen})']
    for imp in program.imports:
        lines.append(f"{INDENT}Import {imp.path}")
    for model in program.data_models:
        lines.append(f"{INDENT}Data {model.name}")
        for data_field in model.fields:
            default = "" if data_field.default is None else f" = {ir.render_value(data_field.default)}"
            lines.append(f"{INDENT * 2}{data_field.name}: {data_field.type_name}{default}")
    for var in program.state:
        lines.append(f"{INDENT}State {var.name} = {ir.render_value(var.value)}")
    for screen in program.screens:
        _render_screen(screen, lines)
    return "\n".join(lines)


def _render_screen(screen: ir.Screen, lines: list[str]) -> None:
    params = ", ".join(f"{p.name}: {p.type_name}" for p in screen.params)
    lines.append(f"{INDENT}Screen {screen.name}({params})")
    for var in screen.state:
        lines.append(f"{INDENT * 2}State {var.name} = {ir.render_value(var.value)}")
    _render_node(screen.ui, 2, lines)
    for action in screen.actions:
        lines.append(f"{INDENT * 2}Action {action.name}")
        _render_actions(action.body, 3, lines)


def _render_node(node: ir.UINode, depth: int, lines: list[str]) -> None:
    pad = INDENT * depth
    if isinstance(node, ir.Container):
        lines.append(f"{pad}{node.kind.capitalize()}")
        for child in node.children:
            _render_node(child, depth + 1, lines)
    elif isinstance(node, ir.Text):
        lines.append(f"{pad}{node.kind.capitalize()} {node.text}")
    elif isinstance(node, ir.Button):
        suffix = f" {node.navigate}" if node.navigate else ""
        if node.action_ref:
            suffix += f" action {node.action_ref}"
        lines.append(f'{pad}Button "{node.label}"{suffix}')
        _render_actions(node.actions, depth + 1, lines)
    elif isinstance(node, ir.Image):
        lines.append(f'{pad}Image "{node.src}"')
    elif isinstance(node, ir.Input):
        lines.append(f'{pad}Input "{node.label}" -> {node.binding}')
    elif isinstance(node, ir.ListView):
        lines.append(f"{pad}List {node.binding}")
        _render_node(node.template, depth + 1, lines)
    elif isinstance(node, ir.Conditional):
        lines.append(f"{pad}If {node.condition}")
        _render_node(node.then_branch, depth + 1, lines)
        if node.else_branch is not None:
            lines.append(f"{pad}Else")
            _render_node(node.else_branch, depth + 1, lines)
    elif isinstance(node, ir.CustomComponent):
        props = ", ".join(f"{k}: {v}" for k, v in node.props.items())
        lines.append(f"{pad}Component {node.name} {{{props}}}")


def _render_actions(actions: list[ir.Action], depth: int, lines: list[str]) -> None:
    pad = INDENT * depth
    for action in actions:
        if isinstance(action, ir.IfAction):
            lines.append(f"{pad}If {action.condition}")
            _render_actions(action.then_actions, depth + 1, lines)
            if action.else_actions:
                lines.append(f"{pad}Else")
                _render_actions(action.else_actions, depth + 1, lines)
        elif isinstance(action, ir.LoopAction):
            lines.append(f"{pad}For {action.variable} in {action.range}")
            _render_actions(action.body, depth + 1, lines)
        elif isinstance(action, ir.CodeAction):
            lines.append(f"{pad}Code {action.code!r}")
        else:
            lines.append(f"{pad}{action}")
