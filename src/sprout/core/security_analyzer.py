"""
Static security analysis for parsed Sprout programs.

The analyzer walks a program without modifying it and produces an immutable
SecurityReport, or raises a SecurityError on the first disqualifying finding.
Findings are accumulated in a per-call object, so analyzing the same program
twice yields identical reports.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from . import ir
from .errors import SecurityError, SecurityErrorKind, make_limit_error
from .policy import (
    ALLOWED_IMPORTS,
    DANGEROUS_STATE_NAMES,
    HOST_API_PATTERNS,
    SCRIPT_INJECTION_PATTERNS,
    SQL_PATTERN,
    UNSAFE_IMAGE_SCHEMES,
    SecurityPolicy,
)

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+")
LOCAL_HOSTS = ("localhost", "127.0.0.1", "[::1]")
SENSITIVE_LABEL = re.compile(r"\b(password|passcode|secret|pin)\b", re.IGNORECASE)
COMPONENT_NAME = re.compile(r"^[A-Z][A-Za-z0-9_]*$")

PERMISSION_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("camera",), "CAMERA"),
    (("location", "gps"), "ACCESS_FINE_LOCATION"),
    (("notification", "notify"), "POST_NOTIFICATIONS"),
    (("vibrate",), "VIBRATE"),
)


@dataclass
class _Findings:
    """Mutable accumulator for a single analysis run."""

    permissions: set[str] = field(default_factory=set)
    external_resources: set[str] = field(default_factory=set)
    navigation_targets: set[str] = field(default_factory=set)
    function_calls: set[str] = field(default_factory=set)
    imports: set[str] = field(default_factory=set)
    accessed_state: set[str] = field(default_factory=set)
    sensitive_inputs: set[str] = field(default_factory=set)
    warnings: list[str] = field(default_factory=list)
    ui_elements: int = 0

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)


class SecurityAnalyzer:
    """
    Computes a SecurityReport for a program under one security level.

    Example:
        >>> analyzer = SecurityAnalyzer(SecurityLevel.STRICT)
        >>> report = analyzer.analyze(program, source)
        >>> report.risk_level
        <RiskLevel.LOW: 'low'>
    """

    def __init__(self, level: ir.SecurityLevel | str = ir.SecurityLevel.STRICT):
        self.policy = SecurityPolicy.from_level(level)

    @property
    def level(self) -> ir.SecurityLevel:
        return self.policy.level

    def analyze(self, program: ir.Program, source: str | None = None) -> ir.SecurityReport:
        """
        Analyze a program.

        Args:
            program: The parsed program (not modified)
            source: Optional source text, scanned for URL references

        Returns:
            The immutable SecurityReport

        Raises:
            SecurityError: On the first finding the level treats as fatal
        """
        found = _Findings()
        policy = self.policy

        if len(program.screens) > policy.max_screens:
            raise make_limit_error("screens", len(program.screens), policy.max_screens)
        if program.total_state > policy.max_state_variables:
            raise make_limit_error("state variables", program.total_state, policy.max_state_variables)

        self._check_text(program.name, "app name", found)
        for imp in program.imports:
            self._check_import(imp.path, found)
        for model in program.data_models:
            self._check_text(model.name, "data model name", found)
            for data_field in model.fields:
                self._check_state_name(data_field.name, found)
                self._check_value(data_field.default, f"field '{data_field.name}'", found)
        for var in program.state:
            self._check_state_var(var, found)
        for screen in program.screens:
            self._analyze_screen(screen, found)
        if source:
            for url in URL_PATTERN.findall(source):
                self._check_url(url, found)

        if len(found.function_calls) > policy.max_function_calls:
            raise make_limit_error(
                "function calls", len(found.function_calls), policy.max_function_calls
            )

        complexity = self.complexity(program)
        if complexity > policy.max_complexity:
            raise SecurityError(
                f"Program complexity {complexity} exceeds limit {policy.max_complexity}",
                kind=SecurityErrorKind.COMPLEXITY_LIMIT_EXCEEDED,
                name="complexity",
                current=complexity,
                limit=policy.max_complexity,
            )

        risk = classify_risk(len(found.warnings), len(found.external_resources))
        quality = 100 - 10 * len(found.warnings) - 5 * len(found.external_resources)
        report = ir.SecurityReport(
            risk_level=risk,
            security_level=policy.level,
            required_permissions=frozenset(found.permissions),
            external_resources=frozenset(found.external_resources),
            navigation_targets=frozenset(found.navigation_targets),
            function_calls=frozenset(found.function_calls),
            required_imports=frozenset(found.imports),
            accessed_state=frozenset(found.accessed_state),
            sensitive_inputs=frozenset(found.sensitive_inputs),
            warnings=tuple(found.warnings),
            complexity_score=complexity,
            code_quality_score=max(0, min(100, quality)),
            total_ui_elements=found.ui_elements,
        )
        logger.debug(
            "Analyzed app %r: risk=%s complexity=%d warnings=%d",
            program.name,
            report.risk_level,
            complexity,
            len(report.warnings),
        )
        return report

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_text(self, text: str, where: str, found: _Findings) -> None:
        pattern = self.policy.find_blocked(text)
        if pattern is None:
            return
        message = f"Dangerous function '{pattern}' detected in {where}"
        if self.policy.downgrade_denylist:
            found.warn(message)
            return
        raise SecurityError(
            message, kind=SecurityErrorKind.DANGEROUS_FUNCTION, name=pattern, details=where
        )

    def _check_string(self, text: str, where: str, found: _Findings) -> None:
        if len(text) > self.policy.max_string_length:
            raise make_limit_error("string length", len(text), self.policy.max_string_length)
        lowered = text.lower()
        for pattern in SCRIPT_INJECTION_PATTERNS:
            if pattern in lowered:
                raise SecurityError(
                    f"Script injection attempt detected in {where}",
                    kind=SecurityErrorKind.UNSAFE_DATA_ACCESS,
                    name=pattern,
                    details=where,
                )
        self._check_text(text, where, found)

    def _check_state_name(self, name: str, found: _Findings) -> None:
        if name in DANGEROUS_STATE_NAMES:
            raise SecurityError(
                f"Dangerous state variable name: {name}",
                kind=SecurityErrorKind.UNSAFE_DATA_ACCESS,
                name=name,
            )
        self._check_text(name, f"state variable '{name}'", found)

    def _check_value(self, value: ir.StateValue, where: str, found: _Findings) -> None:
        if isinstance(value, str):
            self._check_string(value, where, found)
        elif isinstance(value, list):
            for item in value:
                self._check_value(item, where, found)
        elif isinstance(value, dict):
            for key, item in value.items():
                self._check_state_name(key, found)
                self._check_value(item, where, found)

    def _check_state_var(self, var: ir.StateVariable, found: _Findings) -> None:
        self._check_state_name(var.name, found)
        self._check_value(var.value, f"state variable '{var.name}'", found)

    def _check_import(self, path: str, found: _Findings) -> None:
        found.imports.add(path)
        self._check_text(path, "import", found)
        if path in ALLOWED_IMPORTS:
            return
        if self.policy.block_unknown_imports:
            raise SecurityError(
                f"Import '{path}' is not in the allowed module list",
                kind=SecurityErrorKind.UNSAFE_IMPORT,
                name=path,
            )
        found.warn(f"Unverified import '{path}'")

    def _check_url(self, url: str, found: _Findings) -> None:
        found.external_resources.add(url)
        if not url.lower().startswith("http://"):
            return
        host = url[len("http://") :].split("/", 1)[0].split(":", 1)[0].lower()
        if host in LOCAL_HOSTS or url.lower().startswith("http://[::1]"):
            return
        if self.policy.block_insecure_http:
            raise SecurityError(
                f"Insecure HTTP resource '{url}'",
                kind=SecurityErrorKind.PERMISSION_VIOLATION,
                name=url,
            )
        found.warn(f"Insecure HTTP resource '{url}'")

    def _infer_permissions(self, text: str, found: _Findings) -> None:
        lowered = text.lower()
        for keywords, permission in PERMISSION_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                found.permissions.add(permission)

    # ------------------------------------------------------------------
    # Walks
    # ------------------------------------------------------------------

    def _analyze_screen(self, screen: ir.Screen, found: _Findings) -> None:
        self._check_text(screen.name, "screen name", found)
        for param in screen.params:
            self._check_state_name(param.name, found)
        for var in screen.state:
            self._check_state_var(var, found)

        before = found.ui_elements
        self._walk_ui(screen.ui, 1, found)
        count = found.ui_elements - before
        if count > self.policy.max_ui_elements:
            raise make_limit_error(
                f"UI elements in screen '{screen.name}'", count, self.policy.max_ui_elements
            )

        for action in screen.actions:
            self._check_text(action.name, "action name", found)
            self._walk_actions(action.body, 1, found)

    def _walk_ui(self, node: ir.UINode, depth: int, found: _Findings) -> None:
        if depth > self.policy.max_ui_depth:
            raise make_limit_error("UI nesting depth", depth, self.policy.max_ui_depth)
        found.ui_elements += 1

        if isinstance(node, ir.Container):
            for child in node.children:
                self._walk_ui(child, depth + 1, found)
        elif isinstance(node, ir.Text):
            self._walk_expr(node.text, 1, found)
        elif isinstance(node, ir.Button):
            self._check_string(node.label, "button label", found)
            if node.navigate is not None:
                self._walk_actions([node.navigate], 1, found)
            if node.action_ref is not None:
                self._check_text(node.action_ref, "action reference", found)
            self._walk_actions(node.actions, 1, found)
        elif isinstance(node, ir.Image):
            self._check_image(node.src, found)
        elif isinstance(node, ir.Input):
            self._check_string(node.label, "input label", found)
            self._check_state_name(node.binding, found)
            found.accessed_state.add(node.binding)
            if SENSITIVE_LABEL.search(node.label):
                found.sensitive_inputs.add(node.binding)
        elif isinstance(node, ir.ListView):
            self._check_state_name(node.binding, found)
            found.accessed_state.add(node.binding)
            self._walk_ui(node.template, depth + 1, found)
        elif isinstance(node, ir.Conditional):
            self._walk_expr(node.condition, 1, found)
            self._walk_ui(node.then_branch, depth + 1, found)
            if node.else_branch is not None:
                self._walk_ui(node.else_branch, depth + 1, found)
        elif isinstance(node, ir.CustomComponent):
            if not COMPONENT_NAME.match(node.name):
                raise SecurityError(
                    f"Unsafe component name: {node.name}",
                    kind=SecurityErrorKind.UNSAFE_DATA_ACCESS,
                    name=node.name,
                )
            for key, value in node.props.items():
                self._check_text(key, f"property of component '{node.name}'", found)
                self._walk_expr(value, 1, found)

    def _check_image(self, src: str, found: _Findings) -> None:
        lowered = src.strip().lower()
        for scheme in UNSAFE_IMAGE_SCHEMES:
            if lowered.startswith(scheme):
                raise SecurityError(
                    "Dangerous image source scheme detected",
                    kind=SecurityErrorKind.UNSAFE_DATA_ACCESS,
                    name=scheme,
                    details=src[:50],
                )
        self._check_text(src, "image source", found)
        if lowered.startswith(("http://", "https://")):
            self._check_url(src.strip(), found)
        found.permissions.add("READ_EXTERNAL_STORAGE")

    def _walk_actions(self, actions: list[ir.Action], depth: int, found: _Findings) -> None:
        if depth > self.policy.max_ui_depth:
            raise make_limit_error("action nesting depth", depth, self.policy.max_ui_depth)
        for action in actions:
            self._infer_permissions(str(action), found)
            if isinstance(action, ir.NavigateAction):
                self._check_text(action.target, "navigation target", found)
                found.navigation_targets.add(action.target)
                for arg in action.args:
                    self._walk_expr(arg, 1, found)
            elif isinstance(action, ir.UpdateStateAction):
                self._check_state_name(action.variable, found)
                found.accessed_state.add(action.variable)
                self._walk_expr(action.value, 1, found)
            elif isinstance(action, ir.CallAction):
                self._check_text(action.function, "function call", found)
                found.function_calls.add(action.function)
                for arg in action.args:
                    self._walk_expr(arg, 1, found)
            elif isinstance(action, ir.IfAction):
                self._walk_expr(action.condition, 1, found)
                self._walk_actions(action.then_actions, depth + 1, found)
                self._walk_actions(action.else_actions, depth + 1, found)
            elif isinstance(action, ir.LoopAction):
                self._check_state_name(action.variable, found)
                self._walk_actions(action.body, depth + 1, found)
            elif isinstance(action, ir.CodeAction):
                self._check_code(action.code, found)

    def _check_code(self, code: str, found: _Findings) -> None:
        self._check_text(code, "action code", found)
        lowered = code.lower()
        for pattern in HOST_API_PATTERNS:
            if pattern in lowered:
                message = f"Host API access '{pattern}' detected in action code"
                if self.policy.downgrade_denylist:
                    found.warn(message)
                    continue
                raise SecurityError(
                    message, kind=SecurityErrorKind.DANGEROUS_FUNCTION, name=pattern, details=code
                )
        if SQL_PATTERN.search(code):
            found.warn("Potential SQL injection pattern detected")

    def _walk_expr(self, expr: ir.Expr, depth: int, found: _Findings) -> None:
        if depth > self.policy.max_expression_depth:
            raise make_limit_error(
                "expression nesting depth", depth, self.policy.max_expression_depth
            )
        if isinstance(expr, ir.Literal):
            if isinstance(expr.value, str):
                self._check_string(expr.value, "string literal", found)
        elif isinstance(expr, ir.VarRef):
            self._check_state_name(expr.name, found)
            found.accessed_state.add(expr.name)
        elif isinstance(expr, ir.FieldAccess):
            if expr.field in DANGEROUS_STATE_NAMES:
                raise SecurityError(
                    f"Dangerous field access: {expr.field}",
                    kind=SecurityErrorKind.UNSAFE_DATA_ACCESS,
                    name=expr.field,
                )
            self._check_text(expr.field, "field access", found)
            self._walk_expr(expr.target, depth + 1, found)
        elif isinstance(expr, ir.UnaryExpr):
            self._walk_expr(expr.operand, depth + 1, found)
        elif isinstance(expr, ir.BinaryExpr):
            self._walk_expr(expr.left, depth + 1, found)
            self._walk_expr(expr.right, depth + 1, found)
        elif isinstance(expr, ir.FuncCall):
            self._check_text(expr.name, "function call", found)
            found.function_calls.add(expr.name)
            for arg in expr.args:
                self._walk_expr(arg, depth + 1, found)
        elif isinstance(expr, ir.Interpolation):
            for part in expr.parts:
                self._walk_expr(part, depth + 1, found)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def complexity(self, program: ir.Program) -> int:
        """
        Weighted size of a program.

        screens + 2 per import + 3 per data model, plus for every screen its
        state count, 2 per named action and the size of its UI tree.
        """
        score = len(program.screens) + 2 * len(program.imports) + 3 * len(program.data_models)
        for screen in program.screens:
            score += len(screen.state) + 2 * len(screen.actions) + ui_complexity(screen.ui)
        return score


def classify_risk(warning_count: int, external_count: int) -> ir.RiskLevel:
    """Map warning and external-resource counts onto the risk scale."""
    if warning_count > 3:
        return ir.RiskLevel.CRITICAL
    if external_count > 0:
        return ir.RiskLevel.HIGH
    if warning_count > 0:
        return ir.RiskLevel.MEDIUM
    return ir.RiskLevel.LOW


def ui_complexity(node: ir.UINode) -> int:
    if isinstance(node, ir.Container):
        return 1 + sum(ui_complexity(child) for child in node.children)
    if isinstance(node, ir.ListView):
        return 2 + ui_complexity(node.template)
    if isinstance(node, ir.Conditional):
        score = 3 + expr_complexity(node.condition) + ui_complexity(node.then_branch)
        if node.else_branch is not None:
            score += ui_complexity(node.else_branch)
        return score
    if isinstance(node, ir.Text):
        return 1 + expr_complexity(node.text)
    if isinstance(node, ir.Button):
        actions = list(node.actions)
        if node.navigate is not None:
            actions.append(node.navigate)
        return 1 + actions_complexity(actions)
    if isinstance(node, ir.CustomComponent):
        return 1 + sum(expr_complexity(value) for value in node.props.values())
    return 1


def actions_complexity(actions: list[ir.Action]) -> int:
    score = 0
    for action in actions:
        if isinstance(action, ir.IfAction):
            score += (
                2
                + expr_complexity(action.condition)
                + actions_complexity(action.then_actions)
                + actions_complexity(action.else_actions)
            )
        elif isinstance(action, ir.LoopAction):
            score += 3 + actions_complexity(action.body)
        else:
            score += 1
    return score


def expr_complexity(expr: ir.Expr) -> int:
    """Count of composite expression nodes; literals and references are free."""
    if isinstance(expr, ir.FieldAccess):
        return 1 + expr_complexity(expr.target)
    if isinstance(expr, ir.UnaryExpr):
        return 1 + expr_complexity(expr.operand)
    if isinstance(expr, ir.BinaryExpr):
        return 1 + expr_complexity(expr.left) + expr_complexity(expr.right)
    if isinstance(expr, ir.FuncCall):
        return 1 + sum(expr_complexity(arg) for arg in expr.args)
    if isinstance(expr, ir.Interpolation):
        return 1 + sum(expr_complexity(part) for part in expr.parts)
    return 0
