"""Core Sprout functionality: IR, lexer, parser, reference validation and security analysis."""

from . import ir
from .dsl_parser_impl import parse_dsl
from .errors import (
    ErrorContext,
    ParseError,
    ReferenceValidationError,
    SecurityError,
    SproutError,
    SproutRuntimeError,
)
from .policy import SecurityPolicy
from .security_analyzer import SecurityAnalyzer
from .validator import collect_reference_errors, validate_references

__all__ = [
    "ir",
    "ErrorContext",
    "ParseError",
    "ReferenceValidationError",
    "SecurityAnalyzer",
    "SecurityError",
    "SecurityPolicy",
    "SproutError",
    "SproutRuntimeError",
    "collect_reference_errors",
    "parse_dsl",
    "validate_references",
]
