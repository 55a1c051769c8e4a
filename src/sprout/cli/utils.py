"""
Sprout CLI utilities.

Shared helpers used by the command modules: version output, logging setup,
manifest and source resolution.
"""

import logging
import platform
from pathlib import Path

import typer

from sprout._version import get_version
from sprout.core.ir import SecurityLevel
from sprout.core.manifest import ProjectManifest, parse_security_level, resolve_manifest

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

# Level given with --log-level / SPROUT_LOG_LEVEL; wins over the manifest
_log_level_override: str | None = None


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        import sprout

        typer.echo(f"Sprout {get_version()}")
        typer.echo("")
        typer.echo("Environment:")
        typer.echo(f"  Python:        {platform.python_implementation()} {platform.python_version()}")
        typer.echo(f"  Location:      {Path(sprout.__file__).parent}")
        typer.echo("")
        typer.echo("Security levels:")
        for level in SecurityLevel:
            typer.echo(f"  - {level.value}")
        raise typer.Exit()


def set_log_level_override(level: str | None) -> None:
    global _log_level_override
    _log_level_override = level.upper() if level else None


def configure_logging(manifest_level: str) -> None:
    """Configure root logging from the override or the manifest level."""
    name = _log_level_override or manifest_level
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        typer.echo(f"Unknown log level '{name}', using WARNING", err=True)
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def load_project(manifest: Path | None) -> ProjectManifest:
    """Load the manifest and configure logging, exiting with code 1 on bad config."""
    try:
        project = resolve_manifest(manifest)
    except FileNotFoundError:
        typer.echo(f"Error: manifest not found: {manifest}", err=True)
        raise typer.Exit(code=1)
    except ValueError as e:
        # tomllib.TOMLDecodeError is a ValueError too
        typer.echo(f"Error: invalid manifest: {e}", err=True)
        raise typer.Exit(code=1)
    configure_logging(project.log_level)
    return project


def resolve_level(level: str | None, project: ProjectManifest) -> SecurityLevel:
    if level is None:
        return project.compiler.security_level
    try:
        return parse_security_level(level)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def resolve_source(source: Path | None, project: ProjectManifest, manifest: Path | None) -> Path:
    """Pick the explicit source file, else the manifest's first source."""
    if source is not None:
        return source
    if not project.sources:
        typer.echo("Error: no source file given and the manifest lists none", err=True)
        raise typer.Exit(code=1)
    root = manifest.resolve().parent if manifest is not None else Path.cwd()
    return root / project.sources[0]


def read_source(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        typer.echo(f"Error: cannot read {path}: {e.strerror or e}", err=True)
        raise typer.Exit(code=1)
