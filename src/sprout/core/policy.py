"""
Security policy for Sprout programs.

A ``SecurityPolicy`` gathers every ceiling and denylist that parsing,
analysis and execution enforce for one security level, so that the three
stages can never disagree about a limit.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict

from .ir.security import SecurityLevel

# Construction-time ceilings shared by every level
MAX_APP_NAME_LENGTH = 100
MAX_SCREENS = 50
MAX_STATE_VARIABLES = 200
MAX_UI_ELEMENTS_PER_SCREEN = 100
MAX_STATE_NAME_LENGTH = 50
MAX_STRING_LENGTH = 1000
MAX_ARRAY_LENGTH = 100
MAX_MAP_ENTRIES = 50
MAX_BUTTON_LABEL_LENGTH = 50
MAX_CALL_ARGS = 10
MAX_LOOP_BODY_ACTIONS = 100
MAX_ARG_LENGTH = 200
MAX_NAVIGATION_TARGET_LENGTH = 50
MAX_IMAGE_SRC_LENGTH = 500
MAX_PARSE_DEPTH = 50
MAX_LOOP_ITERATIONS = 100

DANGEROUS_PATTERNS: frozenset[str] = frozenset(
    {
        # Dynamic evaluation
        "eval",
        "exec",
        "__import__",
        "importlib",
        "compile(",
        # Process and shell
        "subprocess",
        "popen",
        "spawn",
        "fork(",
        "os.system",
        "shell",
        # Raw file and socket access
        "socket",
        "open(",
        "fopen",
        "readfile",
        "writefile",
        "unlink",
        # Reflection
        "getattr",
        "setattr",
        "delattr",
        "globals(",
        "locals(",
        "__class__",
        "__proto__",
    }
)

REFLECTION_PATTERNS: frozenset[str] = frozenset({"getattr", "setattr"})

# Host API access that only ever appears in raw code blocks
HOST_API_PATTERNS: tuple[str, ...] = (
    "document.",
    "window.",
    "xmlhttprequest",
    "settimeout(",
    "setinterval(",
    "fetch(",
)

SQL_PATTERN = re.compile(r"\b(DROP|DELETE|UPDATE|INSERT|SELECT)\s", re.IGNORECASE)

SCRIPT_INJECTION_PATTERNS: tuple[str, ...] = ("<script", "javascript:")
UNSAFE_IMAGE_SCHEMES: tuple[str, ...] = ("javascript:", "data:")

DANGEROUS_STATE_NAMES: frozenset[str] = frozenset({"__proto__", "constructor", "prototype"})

ALLOWED_IMPORTS: frozenset[str] = frozenset(
    {
        "@sprout/ui",
        "@sprout/data",
        "@sprout/utils",
        "@sprout/widgets",
        "@sprout/animation",
    }
)

RESERVED_NAVIGATION_TARGETS: frozenset[str] = frozenset({"Back", "back"})


class SecurityPolicy(BaseModel):
    """
    Limits and denylist in force for one security level.

    Attributes:
        level: The security level this policy was derived from
        dangerous_patterns: Case-insensitive substrings that are never allowed
        max_ui_depth: Maximum UI tree nesting depth
        max_expression_depth: Maximum expression nesting depth
        max_complexity: Complexity score ceiling
        max_function_calls: Maximum distinct function names
        block_insecure_http: Whether plaintext HTTP resources are fatal
        block_unknown_imports: Whether non-allow-listed imports are fatal
        downgrade_denylist: Whether denylist hits become warnings
    """

    level: SecurityLevel = SecurityLevel.STRICT
    dangerous_patterns: frozenset[str] = DANGEROUS_PATTERNS
    max_screens: int = MAX_SCREENS
    max_state_variables: int = MAX_STATE_VARIABLES
    max_ui_elements: int = MAX_UI_ELEMENTS_PER_SCREEN
    max_string_length: int = MAX_STRING_LENGTH
    max_ui_depth: int = 10
    max_expression_depth: int = 10
    max_complexity: int = 20
    max_function_calls: int = 200
    block_insecure_http: bool = True
    block_unknown_imports: bool = True
    downgrade_denylist: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_level(cls, level: SecurityLevel | str) -> SecurityPolicy:
        """
        Create a SecurityPolicy from a level with its preset limits.

        Args:
            level: The security level (enum or its string value)

        Returns:
            SecurityPolicy with level-based limits
        """
        level = SecurityLevel(level)
        if level == SecurityLevel.STRICT:
            return cls(level=level)
        elif level == SecurityLevel.MODERATE:
            return cls(
                level=level,
                dangerous_patterns=DANGEROUS_PATTERNS - REFLECTION_PATTERNS,
                max_ui_depth=15,
                max_expression_depth=15,
                max_complexity=30,
                block_insecure_http=False,
            )
        else:  # PERMISSIVE
            return cls(
                level=level,
                max_ui_depth=25,
                max_expression_depth=25,
                max_complexity=50,
                block_insecure_http=False,
                block_unknown_imports=False,
                downgrade_denylist=True,
            )

    def find_blocked(self, text: str) -> str | None:
        """Return the first denylisted pattern contained in ``text``, if any."""
        lowered = text.lower()
        for pattern in sorted(self.dangerous_patterns):
            if pattern in lowered:
                return pattern
        return None
