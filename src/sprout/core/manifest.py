import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .ir.security import SecurityLevel

MANIFEST_FILENAME = "sprout.toml"


@dataclass
class CompilerConfig:
    """Compiler settings."""

    security_level: SecurityLevel = SecurityLevel.STRICT
    target_platform: str = "android"
    debug: bool = False
    optimize: bool = True
    include_metadata: bool = True


@dataclass
class RuntimeConfig:
    """Execution budgets and defaults."""

    max_execution_time: float = 10.0  # seconds
    max_memory: int = 1024 * 1024  # bytes, estimated
    debug: bool = False
    entry_screen: str | None = None  # defaults to the app's start screen
    max_history: int = 100
    max_events: int = 1000


@dataclass
class ProjectManifest:
    name: str = "sprout-app"
    version: str = "0.1.0"
    sources: list[str] = field(default_factory=lambda: ["app.sprout"])
    compiler: CompilerConfig = field(default_factory=CompilerConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    log_level: str = "WARNING"


def parse_security_level(value: str) -> SecurityLevel:
    try:
        return SecurityLevel(value.lower())
    except ValueError:
        allowed = ", ".join(level.value for level in SecurityLevel)
        raise ValueError(f"Unknown security_level '{value}' (expected one of: {allowed})") from None


def load_manifest(path: Path) -> ProjectManifest:
    data = tomllib.loads(path.read_text(encoding="utf-8"))

    project = data.get("project", {})
    compiler_data = data.get("compiler", {})
    runtime_data = data.get("runtime", {})
    logging_data = data.get("logging", {})

    compiler = CompilerConfig(
        security_level=parse_security_level(compiler_data.get("security_level", "strict")),
        target_platform=compiler_data.get("target_platform", "android"),
        debug=compiler_data.get("debug", False),
        optimize=compiler_data.get("optimize", True),
        include_metadata=compiler_data.get("include_metadata", True),
    )

    runtime = RuntimeConfig(
        max_execution_time=float(runtime_data.get("max_execution_time", 10.0)),
        max_memory=runtime_data.get("max_memory", 1024 * 1024),
        debug=runtime_data.get("debug", False),
        entry_screen=runtime_data.get("entry_screen"),
        max_history=runtime_data.get("max_history", 100),
        max_events=runtime_data.get("max_events", 1000),
    )

    return ProjectManifest(
        name=project.get("name", "sprout-app"),
        version=project.get("version", "0.1.0"),
        sources=project.get("sources", ["app.sprout"]),
        compiler=compiler,
        runtime=runtime,
        log_level=logging_data.get("level", "WARNING").upper(),
    )


def resolve_manifest(path: Path | None) -> ProjectManifest:
    """Load ``path`` if given, else ``sprout.toml`` in the working directory, else defaults."""
    if path is not None:
        return load_manifest(path)
    default = Path.cwd() / MANIFEST_FILENAME
    if default.exists():
        return load_manifest(default)
    return ProjectManifest()
