"""
Public compiler entry points.

Every function here returns a result value. Stage errors, undecodable input
and unexpected internal failures are all reported through the result's
error list; nothing escapes to the caller.

Pipeline: lex and parse (with construction-time guards), then reference
validation and security analysis over the same immutable program, then
artifact emission.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .. import runtime
from .._version import get_version
from . import ir
from .dsl_parser_impl import parse_dsl
from .emitter import ArtifactEmitter, JsonEmitter
from .errors import ParseError, ReferenceValidationError, SecurityError, SproutError
from .render import render_program
from .security_analyzer import SecurityAnalyzer
from .validator import validate_references

logger = logging.getLogger(__name__)

COMPILER_NAME = "sprout-compiler"

SourceInput = str | bytes | None


class CompileOptions(BaseModel):
    """Switches for ``compile_source``."""

    debug: bool = False
    optimize: bool = True
    target_platform: str = "android"
    include_metadata: bool = True

    model_config = ConfigDict(frozen=True)


class CompileMetadata(BaseModel):
    size: int
    checksum: str
    permissions: list[str] = Field(default_factory=list)
    entry_points: list[str] = Field(default_factory=list)
    compile_time_ms: float = 0.0
    compiler_version: str
    target_platform: str


class CompileResult(BaseModel):
    """Result of ``compile_source``."""

    success: bool
    artifact: bytes = b""
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    metadata: CompileMetadata | None = None
    security_report: ir.SecurityReport | None = None


class ParseResult(BaseModel):
    """Result of ``parse_source``; ``ast`` is a debug rendering of the program."""

    success: bool
    ast: str | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    security_report: ir.SecurityReport | None = None


class BenchmarkResult(BaseModel):
    iterations: int
    total_ms: float
    average_ms: float
    source_size: int
    success: bool


class AnalyzedProgram(BaseModel):
    """A parsed, validated and analyzed program."""

    program: ir.Program
    report: ir.SecurityReport
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================


def decode_source(source: SourceInput) -> str:
    """
    Normalize boundary input to text.

    Raises:
        ValueError: For None, non-text input or invalid UTF-8
    """
    if source is None:
        raise ValueError("Source is null")
    if isinstance(source, bytes):
        try:
            return source.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValueError(f"Source is not valid UTF-8: {e.reason} at byte {e.start}") from None
    if not isinstance(source, str):
        raise ValueError(f"Source must be str or bytes, not {type(source).__name__}")
    return source


def format_error(error: Exception) -> str:
    """Render an error with its stage and kind, e.g. ``Security error (dangerous_function): ...``."""
    if isinstance(error, ParseError):
        return f"Parse error ({error.kind}): {error.message}" + (
            f" at line {error.line}" if error.line else ""
        )
    if isinstance(error, ReferenceValidationError):
        return f"Reference error ({error.kind}): {error.message}"
    if isinstance(error, SecurityError):
        return f"Security error ({error.kind}): {error.message}"
    if isinstance(error, SproutError):
        return error.message
    if isinstance(error, ValueError):
        return f"Invalid input: {error}"
    return f"Internal error: {error}"


def _merge_warnings(*groups: list[str] | tuple[str, ...]) -> list[str]:
    merged: list[str] = []
    for group in groups:
        for warning in group:
            if warning not in merged:
                merged.append(warning)
    return merged


def analyze_source(
    source: str,
    level: ir.SecurityLevel | str = ir.SecurityLevel.STRICT,
    file: Path | None = None,
) -> AnalyzedProgram:
    """
    Run parse, reference validation and security analysis.

    Raises:
        ParseError, ReferenceValidationError, SecurityError: From the failing stage
    """
    program, parse_warnings = parse_dsl(source, level, file)
    validate_references(program)
    report = SecurityAnalyzer(level).analyze(program, source)
    return AnalyzedProgram(
        program=program,
        report=report,
        warnings=_merge_warnings(parse_warnings, report.warnings),
    )


# =============================================================================
# Public operations
# =============================================================================


def compile_source(
    source: SourceInput,
    level: ir.SecurityLevel | str = ir.SecurityLevel.STRICT,
    options: CompileOptions | None = None,
    emitter: ArtifactEmitter | None = None,
) -> CompileResult:
    """
    Compile source text into an artifact.

    Args:
        source: Source text (str, or UTF-8 bytes)
        level: Security level
        options: Compile switches
        emitter: Artifact emitter (default: JSON)

    Returns:
        CompileResult; ``success`` is False whenever ``errors`` is non-empty
    """
    options = options or CompileOptions()
    started = time.perf_counter()
    try:
        text = decode_source(source)
        analyzed = analyze_source(text, level)
        emitter = emitter or JsonEmitter(compact=options.optimize and not options.debug)
        artifact = emitter.emit(
            analyzed.program,
            analyzed.report,
            options.target_platform,
            options.include_metadata,
        )
    except (SproutError, ValueError) as e:
        logger.debug("Compilation failed: %s", e)
        return CompileResult(success=False, errors=[format_error(e)])
    except Exception as e:
        logger.exception("Internal compiler error")
        return CompileResult(success=False, errors=[format_error(e)])

    elapsed_ms = (time.perf_counter() - started) * 1000
    metadata = CompileMetadata(
        size=len(artifact),
        checksum=hashlib.sha256(artifact).hexdigest(),
        permissions=sorted(analyzed.report.required_permissions),
        entry_points=analyzed.program.screen_names,
        compile_time_ms=elapsed_ms,
        compiler_version=get_version(),
        target_platform=options.target_platform,
    )
    logger.info("Compiled app %r (%d bytes)", analyzed.program.name, metadata.size)
    return CompileResult(
        success=True,
        artifact=artifact,
        warnings=analyzed.warnings,
        metadata=metadata,
        security_report=analyzed.report,
    )


def parse_source(
    source: SourceInput,
    level: ir.SecurityLevel | str = ir.SecurityLevel.STRICT,
) -> ParseResult:
    """
    Parse and analyze without emitting an artifact.

    The AST rendering is included whenever parsing itself succeeded, even if
    a later stage failed.
    """
    try:
        text = decode_source(source)
        program, parse_warnings = parse_dsl(text, level)
    except (SproutError, ValueError) as e:
        return ParseResult(success=False, errors=[format_error(e)])
    except Exception as e:
        logger.exception("Internal parser error")
        return ParseResult(success=False, errors=[format_error(e)])

    ast = render_program(program)
    try:
        validate_references(program)
        report = SecurityAnalyzer(level).analyze(program, text)
    except SproutError as e:
        return ParseResult(success=False, ast=ast, errors=[format_error(e)], warnings=parse_warnings)
    except Exception as e:
        logger.exception("Internal analyzer error")
        return ParseResult(success=False, ast=ast, errors=[format_error(e)], warnings=parse_warnings)

    return ParseResult(
        success=True,
        ast=ast,
        warnings=_merge_warnings(parse_warnings, report.warnings),
        security_report=report,
    )


def validate_source(
    source: SourceInput,
    level: ir.SecurityLevel | str = ir.SecurityLevel.STRICT,
) -> bool:
    """Return True if the source parses, validates and passes analysis."""
    try:
        analyze_source(decode_source(source), level)
    except (SproutError, ValueError):
        return False
    except Exception:
        logger.exception("Internal validation error")
        return False
    return True


def execute(
    program: ir.Program,
    entry_screen: str | None = None,
    options: runtime.RuntimeOptions | None = None,
    report: ir.SecurityReport | None = None,
    cancel_event: threading.Event | None = None,
) -> runtime.ExecutionResult:
    """Execute a validated program on a disposable engine."""
    try:
        return runtime.execute_program(program, entry_screen, options, report, cancel_event)
    except Exception as e:
        logger.exception("Internal runtime error")
        return runtime.ExecutionResult(
            success=False,
            status=runtime.ExecutionStatus.FAILED,
            error=format_error(e),
            error_kind="internal",
        )


def get_compiler_info() -> dict[str, object]:
    """Describe this compiler build."""
    return {
        "name": COMPILER_NAME,
        "version": get_version(),
        "default_security_level": ir.SecurityLevel.STRICT.value,
        "security_levels": [level.value for level in ir.SecurityLevel],
        "target_platforms": ["android"],
        "features": [
            "screens",
            "state",
            "imports",
            "data_models",
            "custom_components",
            "security_analysis",
            "sandboxed_runtime",
        ],
    }


def benchmark_compilation(
    source: SourceInput,
    iterations: int = 10,
    level: ir.SecurityLevel | str = ir.SecurityLevel.STRICT,
) -> BenchmarkResult:
    """Compile ``source`` repeatedly and report the mean wall-clock time."""
    iterations = max(1, iterations)
    started = time.perf_counter()
    success = True
    for _ in range(iterations):
        success = compile_source(source, level).success and success
    total_ms = (time.perf_counter() - started) * 1000
    size = len(source) if isinstance(source, str | bytes) else 0
    return BenchmarkResult(
        iterations=iterations,
        total_ms=total_ms,
        average_ms=total_ms / iterations,
        source_size=size,
        success=success,
    )
