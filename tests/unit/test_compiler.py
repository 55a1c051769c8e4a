"""Tests for the public compiler entry points."""

import hashlib
import json

import pytest

from sprout import (
    CompileOptions,
    ParseResult,
    SecurityLevel,
    compile_source,
    execute,
    parse_source,
    validate_source,
)
from sprout.core import ir
from sprout.core.compiler import (
    analyze_source,
    benchmark_compilation,
    decode_source,
    format_error,
    get_compiler_info,
)
from sprout.core.dsl_parser_impl import parse_dsl
from sprout.core.errors import SecurityError
from sprout.core.security_analyzer import SecurityAnalyzer
from sprout.runtime import ExecutionStatus

EVAL_SOURCE = 'app "T" { start = "Home" } screen Home { ui { button "Run" { eval("x") } } }'
MISSING_SOURCE = 'app "T" { start = "Home" } screen Home { ui { button "Go" -> Missing } }'
CAMERA_SOURCE = (
    'app "T" { start = "Home" }\n'
    'screen Home { ui { button "Snap" {\ncall openCamera()\neval("x")\n} } }'
)


def screens_source(count: int) -> str:
    """Build a program with ``count`` empty screens."""
    screens = "\n".join(f"screen S{i} {{ }}" for i in range(count))
    return f'app "Many" {{ start = "S0" }}\n{screens}'


class TestCompileSource:
    """``compile_source`` results."""

    def test_minimal_program(self, hello_source: str) -> None:
        """The smallest program compiles at Strict with Low risk."""
        result = compile_source(hello_source, SecurityLevel.STRICT)
        assert result.success
        assert result.errors == []
        assert result.security_report.risk_level == ir.RiskLevel.LOW
        assert result.metadata.entry_points == ["Home"]
        assert result.metadata.checksum == hashlib.sha256(result.artifact).hexdigest()
        assert result.metadata.size == len(result.artifact)

    def test_artifact_is_program_json(self, hello_source: str) -> None:
        result = compile_source(hello_source)
        document = json.loads(result.artifact)
        assert document["target"] == "android"
        assert document["program"]["name"] == "Test"
        assert document["entry_points"] == ["Home"]

    def test_artifact_without_metadata(self, hello_source: str) -> None:
        result = compile_source(hello_source, options=CompileOptions(include_metadata=False, debug=True))
        document = json.loads(result.artifact)
        assert "entry_points" not in document
        assert b"\n" in result.artifact

    def test_dangerous_function_strict(self) -> None:
        """An eval call in an action body fails Strict compilation."""
        result = compile_source(EVAL_SOURCE)
        assert not result.success
        assert result.artifact == b""
        (error,) = result.errors
        assert "dangerous_function" in error
        assert "eval" in error

    def test_dangerous_function_permissive(self) -> None:
        """Permissive compiles the same source and reports warnings."""
        result = compile_source(EVAL_SOURCE, SecurityLevel.PERMISSIVE)
        assert result.success
        assert any("eval" in w for w in result.warnings)
        assert result.security_report.risk_level == ir.RiskLevel.MEDIUM

    def test_missing_navigation_target(self) -> None:
        result = compile_source(MISSING_SOURCE)
        assert not result.success
        assert "Missing" in result.errors[0]
        assert result.errors[0].startswith("Reference error")

    def test_parse_error_has_line(self) -> None:
        result = compile_source('app "T" {\n start = \n}')
        assert not result.success
        assert result.errors[0].startswith("Parse error")
        assert "at line 3" in result.errors[0]

    def test_screen_count_construction_boundary(self) -> None:
        """
        Fifty screens construct; fifty-one fail citing screens.

        Only construction is covered here: fifty screens already exceed every
        complexity ceiling, so such a program never compiles.
        """
        program, _ = parse_dsl(screens_source(50))
        assert len(program.screens) == 50

        result = compile_source(screens_source(51))
        assert not result.success
        assert "screens exceeds limit: 51 > 50" in result.errors[0]

    def test_analyzer_cites_screen_limit(self) -> None:
        program = ir.Program(
            name="T",
            start_screen="S0",
            screens=[ir.Screen(name=f"S{i}") for i in range(51)],
        )
        with pytest.raises(SecurityError) as exc_info:
            SecurityAnalyzer().analyze(program)
        assert exc_info.value.name == "screens"

    @pytest.mark.parametrize("source", [None, b"\xff\xfe\x00", 42])
    def test_invalid_input_is_a_result(self, source: object) -> None:
        """Null, non-text and undecodable input yield an error result."""
        result = compile_source(source)  # type: ignore[arg-type]
        assert not result.success
        assert result.errors[0].startswith("Invalid input")

    def test_bytes_input(self, hello_source: str) -> None:
        assert compile_source(hello_source.encode("utf-8")).success

    def test_level_as_string(self, hello_source: str) -> None:
        assert compile_source(hello_source, "moderate").security_report.security_level == "moderate"


class TestParseAndValidate:
    """``parse_source`` and ``validate_source``."""

    def test_parse_renders_tree(self, todo_source: str) -> None:
        result = parse_source(todo_source, SecurityLevel.MODERATE)
        assert result.success
        assert result.ast.startswith('App "Todo" (start: Home)')
        assert "Screen About()" in result.ast

    def test_ast_kept_when_validation_fails(self) -> None:
        result = parse_source(MISSING_SOURCE)
        assert not result.success
        assert result.ast is not None
        assert result.security_report is None

    def test_no_ast_on_parse_failure(self) -> None:
        result = parse_source("screen Home { }")
        assert not result.success
        assert result.ast is None

    def test_validate_source(self, hello_source: str) -> None:
        assert validate_source(hello_source)
        assert not validate_source(EVAL_SOURCE)
        assert validate_source(EVAL_SOURCE, SecurityLevel.PERMISSIVE)
        assert not validate_source(MISSING_SOURCE)
        assert not validate_source(None)


class TestProgramRoundTrip:
    def test_program_json_round_trip(self, todo_program: ir.Program) -> None:
        """A program survives serialization with its variant tags intact."""
        restored = ir.Program.model_validate_json(todo_program.model_dump_json())
        assert restored == todo_program

    def test_report_json_round_trip(self, todo_source: str) -> None:
        report = analyze_source(todo_source, SecurityLevel.MODERATE).report
        assert ir.SecurityReport.model_validate_json(report.model_dump_json()) == report

    def test_parse_result_json_round_trip(self) -> None:
        """Risk level, permissions and warnings survive serialization."""
        result = parse_source(CAMERA_SOURCE, SecurityLevel.PERMISSIVE)
        assert result.success
        assert result.warnings

        restored = ParseResult.model_validate_json(result.model_dump_json())
        assert restored == result
        assert restored.security_report.risk_level == ir.RiskLevel.MEDIUM
        assert restored.security_report.required_permissions == {"CAMERA"}
        assert restored.warnings == result.warnings
        assert restored.security_report.warnings == result.security_report.warnings


class TestExecute:
    def test_execute_compiled_program(self, hello_source: str) -> None:
        analyzed = analyze_source(hello_source)
        result = execute(analyzed.program, report=analyzed.report)
        assert result.success
        assert result.status == ExecutionStatus.COMPLETED


class TestHelpers:
    def test_decode_source(self) -> None:
        assert decode_source("abc") == "abc"
        assert decode_source("é".encode()) == "é"
        with pytest.raises(ValueError):
            decode_source(None)

    def test_format_error_fallback(self) -> None:
        assert format_error(RuntimeError("boom")) == "Internal error: boom"

    def test_compiler_info(self) -> None:
        info = get_compiler_info()
        assert info["name"] == "sprout-compiler"
        assert info["default_security_level"] == "strict"
        assert info["security_levels"] == ["strict", "moderate", "permissive"]

    def test_benchmark(self, hello_source: str) -> None:
        result = benchmark_compilation(hello_source, iterations=3)
        assert result.iterations == 3
        assert result.success
        assert result.source_size == len(hello_source)
        assert result.average_ms == pytest.approx(result.total_ms / 3)
