"""
Sprout CLI package.

- commands.py: compile, parse, validate, analyze and run commands
- utils.py: shared utilities (version, logging, manifest and source resolution)
"""

import sys

import typer

from sprout.cli.commands import (
    analyze_command,
    compile_command,
    parse_command,
    run_command,
    validate_command,
)
from sprout.cli.utils import set_log_level_override, version_callback

app = typer.Typer(
    help="""Sprout - compile, analyze and run Sprout app descriptions

Commands:
  • compile   → build an artifact
  • parse     → print the program tree
  • validate  → parse, resolve and analyze
  • analyze   → print the security report
  • run       → execute in the sandboxed runtime
""",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        envvar="SPROUT_LOG_LEVEL",
        help="Logging level (overrides [logging] level in sprout.toml)",
    ),
) -> None:
    """Sprout CLI main callback for global options."""
    set_log_level_override(log_level)


app.command(name="compile")(compile_command)
app.command(name="parse")(parse_command)
app.command(name="validate")(validate_command)
app.command(name="analyze")(analyze_command)
app.command(name="run")(run_command)


def main(argv: list[str] | None = None) -> None:
    app(args=argv, standalone_mode=True)


__all__ = ["app", "main"]


if __name__ == "__main__":
    main(sys.argv[1:])
