"""
Sprout - a compiler, security analyzer and sandboxed runtime for a small
declarative app description language.

Source text is parsed into an immutable program, checked for unresolved
references, scored by a static security analyzer and optionally executed
under time, memory and capability budgets.
"""

from __future__ import annotations

from ._version import get_version
from .core import ir
from .core.compiler import (
    CompileOptions,
    CompileResult,
    ParseResult,
    compile_source,
    execute,
    parse_source,
    validate_source,
)
from .core.errors import (
    ParseError,
    ReferenceValidationError,
    SecurityError,
    SproutError,
    SproutRuntimeError,
)
from .core.ir import RiskLevel, SecurityLevel, SecurityReport

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "CompileOptions",
    "CompileResult",
    "ParseResult",
    "RiskLevel",
    "SecurityLevel",
    "SecurityReport",
    "ParseError",
    "ReferenceValidationError",
    "SecurityError",
    "SproutError",
    "SproutRuntimeError",
    "compile_source",
    "execute",
    "parse_source",
    "validate_source",
]
