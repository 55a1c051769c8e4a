"""
UI tree parsing for Sprout source.

Dispatches on the leading keyword of each node to the matching variant.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import ir
from ..errors import ParseErrorKind
from ..policy import MAX_BUTTON_LABEL_LENGTH, MAX_IMAGE_SRC_LENGTH

CONTAINER_KEYWORDS = ("column", "row", "stack")
TEXT_KEYWORDS = {"label": "label", "text": "label", "title": "title"}


class UIParserMixin:
    """
    Mixin providing UI tree parsing.

    Note: This mixin expects to be combined with BaseParser via multiple inheritance.
    """

    if TYPE_CHECKING:
        guard: Any
        advance: Any
        current_token: Any
        match_symbol: Any
        match_word: Any
        expect_symbol: Any
        expect_word: Any
        expect_string: Any
        error: Any
        nested: Any
        at_end: Any
        parse_expr: Any
        parse_string_expr: Any
        parse_navigation: Any
        parse_action_block: Any

    def parse_ui_block(self) -> ir.UINode:
        """
        Parse ``{ node* }`` and return a single root.

        One node is returned as is; zero or several are wrapped in an
        implicit column.
        """
        nodes = self.parse_ui_children()
        if len(nodes) == 1:
            return nodes[0]
        return ir.Container(kind="column", children=nodes)

    def parse_ui_children(self) -> list[ir.UINode]:
        self.expect_symbol("{")
        nodes: list[ir.UINode] = []
        with self.nested():
            while not self.match_symbol("}"):
                if self.at_end():
                    raise self.error("Expected '}'", kind=ParseErrorKind.EXPECTED)
                nodes.append(self.parse_ui_node())
        self.expect_symbol("}")
        return nodes

    def parse_ui_node(self) -> ir.UINode:
        token = self.current_token()
        keyword = token.value if token.is_word() else ""

        if keyword in CONTAINER_KEYWORDS:
            self.advance()
            return ir.Container(kind=keyword, children=self.parse_ui_children())
        if keyword in TEXT_KEYWORDS:
            self.advance()
            return ir.Text(kind=TEXT_KEYWORDS[keyword], text=self.parse_string_expr(self.expect_string()))
        if keyword == "button":
            return self.parse_button()
        if keyword == "image":
            self.advance()
            src = self.expect_string("image source").value
            self.guard.check_limit("image source length", len(src), MAX_IMAGE_SRC_LENGTH)
            self.guard.check_text(src, "image source")
            return ir.Image(src=src)
        if keyword == "input":
            return self.parse_input()
        if keyword == "list":
            return self.parse_list()
        if keyword == "if":
            return self.parse_conditional()
        if keyword == "component":
            return self.parse_component()
        raise self.error("Expected UI element", kind=ParseErrorKind.EXPECTED)

    def parse_button(self) -> ir.Button:
        """
        Parse a button.

        Syntax:
            button "Label" [-> Target[(args)]] [action name] [{ statements }]
        """
        self.advance()
        label = self.expect_string("button label").value
        self.guard.check_limit("button label length", len(label), MAX_BUTTON_LABEL_LENGTH)
        self.guard.check_text(label, "button label")

        navigate = None
        if self.match_symbol("->"):
            self.advance()
            navigate = self.parse_navigation()

        action_ref = None
        if self.match_word("action"):
            self.advance()
            action_ref = self.expect_word("action name").value
            self.guard.check_text(action_ref, "action reference")

        actions: list[ir.Action] = []
        if self.match_symbol("{"):
            actions = self.parse_action_block()

        return ir.Button(label=label, navigate=navigate, action_ref=action_ref, actions=actions)

    def parse_input(self) -> ir.Input:
        """
        Parse an input.

        Syntax:
            input "Label" [binding[:]] stateName
        """
        self.advance()
        label = self.expect_string("input label").value
        self.guard.check_string(label, "input label")
        if self.match_word("binding"):
            self.advance()
            if self.match_symbol(":"):
                self.advance()
        binding = self.expect_word("state binding").value
        self.guard.check_state_name(binding)
        return ir.Input(label=label, binding=binding)

    def parse_list(self) -> ir.ListView:
        """
        Parse a list.

        Syntax:
            list todos { template }
        """
        self.advance()
        binding = self.expect_word("list binding").value
        self.guard.check_state_name(binding)
        brace = self.current_token()
        nodes = self.parse_ui_children()
        if not nodes:
            raise self.error("Expected list item template", brace, kind=ParseErrorKind.EXPECTED)
        template = nodes[0] if len(nodes) == 1 else ir.Container(kind="column", children=nodes)
        return ir.ListView(binding=binding, template=template)

    def parse_conditional(self) -> ir.Conditional:
        """
        Parse a conditional node.

        Syntax:
            if condition { nodes } [else { nodes }]
        """
        self.advance()
        condition = self.parse_expr()
        then_branch = self.parse_ui_block()
        else_branch = None
        if self.match_word("else"):
            self.advance()
            else_branch = self.parse_ui_block()
        return ir.Conditional(condition=condition, then_branch=then_branch, else_branch=else_branch)

    def parse_component(self) -> ir.CustomComponent:
        """
        Parse a custom component.

        Syntax:
            component Card { title: "Hello", count: total }
        """
        self.advance()
        name = self.expect_word("component name").value
        self.guard.check_text(name, "component name")
        self.expect_symbol("{")
        props: dict[str, ir.Expr] = {}
        while not self.match_symbol("}"):
            key = self.expect_word("property name").value
            self.guard.check_text(key, "component property")
            self.expect_symbol(":")
            props[key] = self.parse_expr()
            if self.match_symbol(","):
                self.advance()
        self.expect_symbol("}")
        return ir.CustomComponent(name=name, props=props)
