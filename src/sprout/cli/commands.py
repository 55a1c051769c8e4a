"""
Sprout CLI commands.

Each command reads one source file (or the first source listed in
``sprout.toml``), runs a stage of the pipeline and exits with code 1 when
that stage reports errors.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from sprout.core import ir
from sprout.core.compiler import (
    CompileOptions,
    analyze_source,
    compile_source,
    decode_source,
    execute,
    format_error,
    parse_source,
)
from sprout.core.errors import SproutError
from sprout.runtime import RuntimeOptions

from .utils import load_project, read_source, resolve_level, resolve_source

console = Console()

SourceArg = typer.Argument(None, help="Source file (default: first source in sprout.toml)")
ManifestOpt = typer.Option(None, "--manifest", "-m", help="Path to sprout.toml")
LevelOpt = typer.Option(None, "--level", "-l", help="Security level: strict, moderate or permissive")
FormatOpt = typer.Option("human", "--format", "-f", help="Output format: 'human' or 'json'")


def _print_errors(errors: list[str]) -> None:
    for error in errors:
        typer.echo(error, err=True)


def _print_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        typer.echo(f"Warning: {warning}")


def _report_table(report: ir.SecurityReport) -> Table:
    table = Table(title="Security report")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Risk level", report.risk_level.value)
    table.add_row("Security level", report.security_level.value)
    table.add_row("Complexity", str(report.complexity_score))
    table.add_row("Quality score", str(report.code_quality_score))
    table.add_row("UI elements", str(report.total_ui_elements))
    for label, values in (
        ("Permissions", report.required_permissions),
        ("External resources", report.external_resources),
        ("Navigation targets", report.navigation_targets),
        ("Function calls", report.function_calls),
        ("Imports", report.required_imports),
        ("Accessed state", report.accessed_state),
        ("Sensitive inputs", report.sensitive_inputs),
    ):
        table.add_row(label, ", ".join(sorted(values)) or "-")
    table.add_row("Warnings", str(len(report.warnings)))
    return table


def compile_command(
    source: Path | None = SourceArg,
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the artifact here"),
    level: str | None = LevelOpt,
    manifest: Path | None = ManifestOpt,
    format: str = FormatOpt,
) -> None:
    """
    Compile a source file into an artifact.
    """
    project = load_project(manifest)
    path = resolve_source(source, project, manifest)
    options = CompileOptions(
        debug=project.compiler.debug,
        optimize=project.compiler.optimize,
        target_platform=project.compiler.target_platform,
        include_metadata=project.compiler.include_metadata,
    )
    result = compile_source(read_source(path), resolve_level(level, project), options)

    if format == "json":
        typer.echo(result.model_dump_json(exclude={"artifact"}, indent=2))
    elif result.success and result.metadata is not None:
        _print_warnings(result.warnings)
        typer.echo(
            f"Compiled {path.name}: {result.metadata.size} bytes, "
            f"risk {result.security_report.risk_level if result.security_report else '-'}"
        )
        typer.echo(f"Checksum: {result.metadata.checksum}")

    if not result.success:
        if format != "json":
            _print_errors(result.errors)
        raise typer.Exit(code=1)

    if output is not None:
        output.write_bytes(result.artifact)
        if format != "json":
            typer.echo(f"Wrote {output}")


def parse_command(
    source: Path | None = SourceArg,
    level: str | None = LevelOpt,
    manifest: Path | None = ManifestOpt,
    format: str = FormatOpt,
) -> None:
    """
    Parse a source file and print its program tree.
    """
    project = load_project(manifest)
    path = resolve_source(source, project, manifest)
    result = parse_source(read_source(path), resolve_level(level, project))

    if format == "json":
        typer.echo(result.model_dump_json(indent=2))
    else:
        if result.ast is not None:
            typer.echo(result.ast)
        _print_warnings(result.warnings)

    if not result.success:
        if format != "json":
            _print_errors(result.errors)
        raise typer.Exit(code=1)


def validate_command(
    source: Path | None = SourceArg,
    level: str | None = LevelOpt,
    manifest: Path | None = ManifestOpt,
    format: str = FormatOpt,
) -> None:
    """
    Check that a source file parses, resolves and passes security analysis.
    """
    project = load_project(manifest)
    path = resolve_source(source, project, manifest)
    result = parse_source(read_source(path), resolve_level(level, project))

    if format == "json":
        typer.echo(
            json.dumps(
                {"valid": result.success, "errors": result.errors, "warnings": result.warnings},
                indent=2,
            )
        )
    elif result.success:
        _print_warnings(result.warnings)
        typer.echo(f"OK: {path.name} is valid")

    if not result.success:
        if format != "json":
            _print_errors(result.errors)
        raise typer.Exit(code=1)


def analyze_command(
    source: Path | None = SourceArg,
    level: str | None = LevelOpt,
    manifest: Path | None = ManifestOpt,
    format: str = FormatOpt,
) -> None:
    """
    Print the security report of a source file.
    """
    project = load_project(manifest)
    path = resolve_source(source, project, manifest)
    result = parse_source(read_source(path), resolve_level(level, project))

    if not result.success or result.security_report is None:
        _print_errors(result.errors)
        raise typer.Exit(code=1)

    if format == "json":
        typer.echo(result.security_report.model_dump_json(indent=2))
        return

    console.print(_report_table(result.security_report))
    for warning in result.security_report.warnings:
        console.print(f"[yellow]warning[/yellow] {warning}")


def run_command(
    source: Path | None = SourceArg,
    screen: str | None = typer.Option(None, "--screen", "-s", help="Entry screen"),
    trace: bool = typer.Option(False, "--trace", help="Print the execution trace"),
    level: str | None = LevelOpt,
    manifest: Path | None = ManifestOpt,
    format: str = FormatOpt,
) -> None:
    """
    Compile and execute a source file in the sandboxed runtime.
    """
    project = load_project(manifest)
    path = resolve_source(source, project, manifest)
    security_level = resolve_level(level, project)

    try:
        analyzed = analyze_source(decode_source(read_source(path)), security_level, path)
    except (SproutError, ValueError) as e:
        typer.echo(format_error(e), err=True)
        raise typer.Exit(code=1)

    options = RuntimeOptions(
        max_execution_time=project.runtime.max_execution_time,
        max_memory=project.runtime.max_memory,
        debug=project.runtime.debug,
        security_level=security_level,
        max_history=project.runtime.max_history,
        max_events=project.runtime.max_events,
    )
    result = execute(
        analyzed.program,
        screen or project.runtime.entry_screen,
        options,
        analyzed.report,
    )

    if format == "json":
        typer.echo(result.model_dump_json(indent=2))
    else:
        typer.echo(f"Status: {result.status.value} ({result.execution_time * 1000:.1f} ms)")
        if result.navigations:
            typer.echo(f"Navigations: {' -> '.join(result.navigations)}")
        table = Table(title="Final state")
        table.add_column("Variable", style="cyan")
        table.add_column("Value")
        for name, value in sorted(result.final_state.items()):
            table.add_row(name, ir.render_value(value))
        console.print(table)
        if trace:
            for event in result.events:
                typer.echo(f"  [{event.elapsed * 1000:8.2f} ms] {event.kind.value}: {event.detail}")

    if not result.success:
        typer.echo(f"Execution {result.status.value}: {result.error}", err=True)
        raise typer.Exit(code=1)
