"""
Error types for Sprout parsing, validation, security analysis and execution.

Every stage raises its own typed error. The public entry points in
``sprout.core.compiler`` convert them into result values.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class SproutError(Exception):
    """Base exception for all Sprout errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ParseErrorKind(StrEnum):
    UNEXPECTED_TOKEN = "unexpected_token"
    EXPECTED = "expected"
    UNTERMINATED_STRING = "unterminated_string"
    INVALID_NUMBER = "invalid_number"
    MISSING_FIELD = "missing_field"


class ParseError(SproutError):
    """
    Raised when source text cannot be parsed.

    Examples:
    - Unexpected token where a construct was expected
    - Unterminated string literal
    - Missing required ``start`` field in the app block
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        kind: ParseErrorKind = ParseErrorKind.UNEXPECTED_TOKEN,
        token: str | None = None,
    ):
        self.kind = kind
        self.token = token
        super().__init__(message, context)

    @property
    def line(self) -> int | None:
        return self.context.line if self.context else None


class ReferenceErrorKind(StrEnum):
    UNDEFINED_REFERENCE = "undefined_reference"
    DUPLICATE_DEFINITION = "duplicate_definition"


class ReferenceValidationError(SproutError):
    """
    Raised when a parsed program refers to something it never declares.

    Examples:
    - ``start`` names a screen that does not exist
    - A button navigates to an unknown screen
    - An input binds to a state variable the screen does not declare
    - Two screens share a name
    """

    def __init__(
        self,
        message: str,
        kind: ReferenceErrorKind = ReferenceErrorKind.UNDEFINED_REFERENCE,
        screen: str | None = None,
        identifier: str | None = None,
    ):
        self.kind = kind
        self.screen = screen
        self.identifier = identifier
        super().__init__(message)


class SecurityErrorKind(StrEnum):
    DANGEROUS_FUNCTION = "dangerous_function"
    UNSAFE_IMPORT = "unsafe_import"
    RESOURCE_LIMIT_EXCEEDED = "resource_limit_exceeded"
    PERMISSION_VIOLATION = "permission_violation"
    COMPLEXITY_LIMIT_EXCEEDED = "complexity_limit_exceeded"
    UNSAFE_DATA_ACCESS = "unsafe_data_access"


class SecurityError(SproutError):
    """
    Raised when a program violates the active security policy.

    Examples:
    - A denylisted capability name appears in an identifier or code block
    - More screens than the policy allows
    - UI nesting deeper than the policy allows
    - An image pointing at a ``javascript:`` URL
    """

    def __init__(
        self,
        message: str,
        kind: SecurityErrorKind,
        name: str | None = None,
        current: int | None = None,
        limit: int | None = None,
        details: str | None = None,
    ):
        self.kind = kind
        self.name = name
        self.current = current
        self.limit = limit
        self.details = details
        super().__init__(message)


class RuntimeErrorKind(StrEnum):
    INVALID_OPERATION = "invalid_operation"
    TYPE_MISMATCH = "type_mismatch"
    UNDEFINED_VARIABLE = "undefined_variable"
    EXECUTION_ERROR = "execution_error"
    TIMEOUT = "timeout"
    MEMORY_EXCEEDED = "memory_exceeded"
    CANCELLED = "cancelled"


class SproutRuntimeError(SproutError):
    """
    Raised by the execution engine and the runtime state store.

    Examples:
    - Execution exceeded its wall-clock budget
    - Estimated memory exceeded its budget
    - A state listener tried to mutate the state it is observing
    """

    def __init__(self, message: str, kind: RuntimeErrorKind = RuntimeErrorKind.EXECUTION_ERROR):
        self.kind = kind
        super().__init__(message)


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        file: Optional path to the source file
        snippet: Optional source line(s) around the error
    """

    line: int
    column: int
    file: Path | None = None
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "app.sprout:10:5" or "line 10, column 5"
        """
        if self.file:
            location = f"{self.file}:{self.line}:{self.column}"
        else:
            location = f"line {self.line}, column {self.column}"

        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format code snippet with line numbers and error marker."""
        if not self.snippet:
            return ""

        lines = self.snippet.split("\n")
        formatted = []

        # Snippet starts at the error line
        for i, line in enumerate(lines):
            line_num = self.line + i
            prefix = f"{line_num:4d} | "
            formatted.append(prefix + line)
            if line_num == self.line:
                marker_pos = len(prefix) + self.column - 1
                formatted.append(" " * marker_pos + "^^^")

        return "\n".join(formatted)


def make_parse_error(
    message: str,
    line: int,
    column: int,
    kind: ParseErrorKind = ParseErrorKind.UNEXPECTED_TOKEN,
    token: str | None = None,
    file: Path | None = None,
    snippet: str | None = None,
) -> ParseError:
    """
    Helper to create a ParseError with context.

    Args:
        message: Error description
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        kind: Category of parse failure
        token: Offending token text, if any
        file: Optional source file path
        snippet: Optional code snippet

    Returns:
        ParseError with context attached
    """
    context = ErrorContext(line=line, column=column, file=file, snippet=snippet)
    return ParseError(message, context, kind=kind, token=token)


def make_reference_error(
    message: str,
    screen: str | None = None,
    identifier: str | None = None,
    kind: ReferenceErrorKind = ReferenceErrorKind.UNDEFINED_REFERENCE,
) -> ReferenceValidationError:
    """Helper to create a ReferenceValidationError naming the screen and identifier."""
    if screen:
        message = f"{message} (in screen '{screen}')"
    return ReferenceValidationError(message, kind=kind, screen=screen, identifier=identifier)


def make_limit_error(entity: str, current: int, limit: int) -> SecurityError:
    """Helper for the resource ceiling errors raised during construction and analysis."""
    return SecurityError(
        f"{entity} exceeds limit: {current} > {limit}",
        kind=SecurityErrorKind.RESOURCE_LIMIT_EXCEEDED,
        name=entity,
        current=current,
        limit=limit,
    )
