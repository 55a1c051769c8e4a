"""Tests for the static security analyzer and its policy."""

import pytest

from sprout.core import ir
from sprout.core.dsl_parser_impl import parse_dsl
from sprout.core.errors import SecurityError, SecurityErrorKind
from sprout.core.policy import DANGEROUS_PATTERNS, SecurityPolicy
from sprout.core.security_analyzer import SecurityAnalyzer, classify_risk
from sprout.core.validator import collect_reference_errors

STRICT = ir.SecurityLevel.STRICT
MODERATE = ir.SecurityLevel.MODERATE
PERMISSIVE = ir.SecurityLevel.PERMISSIVE


def analyze(source: str, level: ir.SecurityLevel = STRICT) -> ir.SecurityReport:
    program, _ = parse_dsl(source, level)
    return SecurityAnalyzer(level).analyze(program, source)


def home(ui: str, extra: str = "", header: str = "") -> str:
    return f'app "T" {{ start = "Home" }}\n{header}\nscreen Home {{\n{extra}\nui {{\n{ui}\n}}\n}}'


class TestSecurityPolicy:
    """Level presets."""

    def test_strict_defaults(self) -> None:
        policy = SecurityPolicy.from_level("strict")
        assert policy.max_ui_depth == 10
        assert policy.max_complexity == 20
        assert policy.block_insecure_http
        assert policy.dangerous_patterns == DANGEROUS_PATTERNS

    def test_moderate_allows_reflection(self) -> None:
        policy = SecurityPolicy.from_level(MODERATE)
        assert "getattr" not in policy.dangerous_patterns
        assert "eval" in policy.dangerous_patterns
        assert policy.max_complexity == 30

    def test_permissive_downgrades(self) -> None:
        policy = SecurityPolicy.from_level(PERMISSIVE)
        assert policy.downgrade_denylist
        assert not policy.block_unknown_imports
        assert policy.max_ui_depth == 25

    def test_find_blocked_is_case_insensitive(self) -> None:
        policy = SecurityPolicy.from_level(STRICT)
        assert policy.find_blocked("Runtime.EXEC") == "exec"
        assert policy.find_blocked("harmless") is None

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError):
            SecurityPolicy.from_level("paranoid")


class TestRiskScale:
    """Risk ordering and classification."""

    def test_ordering(self) -> None:
        assert ir.RiskLevel.LOW < ir.RiskLevel.MEDIUM < ir.RiskLevel.HIGH < ir.RiskLevel.CRITICAL
        assert max(ir.RiskLevel.HIGH, ir.RiskLevel.MEDIUM) == ir.RiskLevel.HIGH

    @pytest.mark.parametrize(
        ("warnings", "external", "expected"),
        [
            (0, 0, ir.RiskLevel.LOW),
            (1, 0, ir.RiskLevel.MEDIUM),
            (0, 1, ir.RiskLevel.HIGH),
            (3, 2, ir.RiskLevel.HIGH),
            (4, 0, ir.RiskLevel.CRITICAL),
        ],
    )
    def test_classify_risk(self, warnings: int, external: int, expected: ir.RiskLevel) -> None:
        assert classify_risk(warnings, external) == expected


class TestSecurityAnalyzer:
    """Report contents and fatal findings."""

    def test_minimal_program_is_low_risk(self, hello_source: str) -> None:
        report = analyze(hello_source)
        assert report.risk_level == ir.RiskLevel.LOW
        assert report.warnings == ()
        assert report.complexity_score == 2
        assert report.code_quality_score == 100
        assert report.total_ui_elements == 1
        assert report.is_safe

    def test_report_is_immutable(self, hello_source: str) -> None:
        report = analyze(hello_source)
        with pytest.raises(Exception):
            report.complexity_score = 99  # type: ignore[misc]

    def test_analysis_is_repeatable(self, todo_source: str) -> None:
        """Analyzing the same program twice yields identical reports."""
        program, _ = parse_dsl(todo_source, MODERATE)
        analyzer = SecurityAnalyzer(MODERATE)
        assert analyzer.analyze(program, todo_source) == analyzer.analyze(program, todo_source)

    def test_collects_references(self, todo_source: str) -> None:
        report = analyze(todo_source, MODERATE)
        assert report.navigation_targets == {"About", "Home"}
        assert report.function_calls == {"todos.push"}
        assert report.required_imports == {"@sprout/ui"}
        assert {"draft", "todos", "user"} <= report.accessed_state

    def test_sensitive_input(self) -> None:
        report = analyze(home('input "Password" pw', 'state pw = ""'))
        assert report.sensitive_inputs == {"pw"}

    def test_permission_inference(self) -> None:
        report = analyze(home('button "Snap" { call openCamera()\ncall notifyUser() }'))
        assert report.required_permissions == {"CAMERA", "POST_NOTIFICATIONS"}

    def test_image_requires_storage(self) -> None:
        report = analyze(home('image "https://cdn.example.com/logo.png"'))
        assert "READ_EXTERNAL_STORAGE" in report.required_permissions
        assert report.external_resources == {"https://cdn.example.com/logo.png"}
        assert report.risk_level == ir.RiskLevel.HIGH
        assert report.code_quality_score == 95

    def test_insecure_http_strict(self) -> None:
        with pytest.raises(SecurityError) as exc_info:
            analyze(home('image "http://example.com/a.png"'))
        assert exc_info.value.kind == SecurityErrorKind.PERMISSION_VIOLATION

    def test_insecure_http_moderate_warns(self) -> None:
        report = analyze(home('image "http://example.com/a.png"'), MODERATE)
        assert any("Insecure HTTP" in w for w in report.warnings)
        assert report.code_quality_score == 85

    def test_localhost_http_allowed(self) -> None:
        report = analyze(home('image "http://localhost:8080/a.png"'))
        assert report.external_resources == {"http://localhost:8080/a.png"}

    def test_unsafe_image_scheme(self) -> None:
        with pytest.raises(SecurityError) as exc_info:
            analyze(home('image "data:image/png;base64,AAAA"'), PERMISSIVE)
        assert exc_info.value.kind == SecurityErrorKind.UNSAFE_DATA_ACCESS

    def test_script_injection(self) -> None:
        with pytest.raises(SecurityError) as exc_info:
            analyze(home('label "<script>alert(1)</script>"'), PERMISSIVE)
        assert exc_info.value.kind == SecurityErrorKind.UNSAFE_DATA_ACCESS

    def test_dangerous_state_name(self) -> None:
        with pytest.raises(SecurityError) as exc_info:
            analyze(home("", "state constructor = 1"))
        assert exc_info.value.kind == SecurityErrorKind.UNSAFE_DATA_ACCESS

    def test_unknown_import(self) -> None:
        source = home('label "x"', header='import "left-pad"')
        with pytest.raises(SecurityError) as exc_info:
            analyze(source)
        assert exc_info.value.kind == SecurityErrorKind.UNSAFE_IMPORT

        report = analyze(source, PERMISSIVE)
        assert "Unverified import 'left-pad'" in report.warnings
        assert report.risk_level == ir.RiskLevel.MEDIUM

    def test_host_api_in_code(self) -> None:
        source = home('button "Go" { document.write "x" }')
        with pytest.raises(SecurityError) as exc_info:
            analyze(source)
        assert exc_info.value.name == "document."

        report = analyze(source, PERMISSIVE)
        assert report.risk_level == ir.RiskLevel.MEDIUM

    def test_sql_pattern_warns(self) -> None:
        report = analyze(home('button "Go" { runQuery "DELETE FROM users" }'))
        assert report.warnings == ("Potential SQL injection pattern detected",)
        assert report.risk_level == ir.RiskLevel.MEDIUM
        assert report.is_safe

    def test_many_warnings_are_critical(self) -> None:
        source = home(
            'button "Go" {\nrunQuery "SELECT 1"\neval(a)\nexec(b)\nunlink(c)\n}',
        )
        report = analyze(source, PERMISSIVE)
        assert len(report.warnings) > 3
        assert report.risk_level == ir.RiskLevel.CRITICAL
        assert not report.is_safe

    def test_component_name_must_be_pascal_case(self) -> None:
        with pytest.raises(SecurityError):
            analyze(home("component card { }"))


class TestComplexity:
    """Complexity scoring and ceilings."""

    def test_complexity_formula(self) -> None:
        """screens + 2*imports + state + 2*actions + weighted UI tree."""
        source = home(
            'column {\nlabel "a"\nbutton "b" { x = 1 }\n}',
            "state x = 0\naction go { }",
            header='import "@sprout/ui"',
        )
        report = analyze(source)
        # 1 screen + 2 import + 1 state + 2 action + column(1) + label(1) + button(1 + 1)
        assert report.complexity_score == 10

    def test_strict_ceiling(self) -> None:
        labels = "\n".join(f'label "l{i}"' for i in range(20))
        with pytest.raises(SecurityError) as exc_info:
            analyze(home(labels))
        assert exc_info.value.kind == SecurityErrorKind.COMPLEXITY_LIMIT_EXCEEDED
        assert exc_info.value.current == 22

        assert analyze(home(labels), MODERATE).complexity_score == 22

    def test_ui_depth_ceiling(self) -> None:
        ui = "column { " * 11 + "}" * 11
        with pytest.raises(SecurityError) as exc_info:
            analyze(home(ui))
        assert exc_info.value.kind == SecurityErrorKind.RESOURCE_LIMIT_EXCEEDED
        analyze(home(ui), MODERATE)


class TestStageIndependence:
    """Reference validation and analysis are read-only walks over the same program."""

    def check_both_orders(self, source: str, level: ir.SecurityLevel) -> list[str]:
        program, _ = parse_dsl(source, level)
        before = program.model_copy(deep=True)
        analyzer = SecurityAnalyzer(level)

        errors_first = [str(e) for e in collect_reference_errors(program)]
        report_second = analyzer.analyze(program, source)

        report_first = analyzer.analyze(program, source)
        errors_second = [str(e) for e in collect_reference_errors(program)]

        assert report_first == report_second
        assert errors_first == errors_second
        assert program == before
        return errors_first

    def test_valid_program(self, todo_source: str) -> None:
        assert self.check_both_orders(todo_source, MODERATE) == []

    def test_program_with_reference_errors(self) -> None:
        errors = self.check_both_orders(home('button "Go" -> Missing'), STRICT)
        assert len(errors) == 1
        assert "Missing" in errors[0]
