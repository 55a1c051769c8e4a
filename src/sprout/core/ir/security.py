"""
Security types for Sprout IR.

This module contains the security level that parameterizes parsing,
analysis and execution, the ordered risk scale, and the immutable report
produced by static analysis.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class SecurityLevel(StrEnum):
    """
    Security levels.

    - STRICT: default, denylist hits and insecure HTTP are fatal
    - MODERATE: relaxed ceilings, reflective getattr/setattr allowed
    - PERMISSIVE: denylist hits are downgraded to warnings
    """

    STRICT = "strict"
    MODERATE = "moderate"
    PERMISSIVE = "permissive"


class RiskLevel(StrEnum):
    """Ordered risk scale: Low < Medium < High < Critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank >= other.rank


_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]


class SecurityReport(BaseModel):
    """
    Static analysis verdict for one program.

    Built once per analysis and never modified afterwards.

    Attributes:
        risk_level: Overall risk classification
        required_permissions: Platform permissions inferred from the program
        external_resources: URLs referenced by the source or by images
        navigation_targets: Every screen name navigated to
        function_calls: Distinct function names called
        warnings: Non-fatal findings, in discovery order
        complexity_score: Weighted size of the program
        code_quality_score: 0-100, lowered by warnings and external resources
    """

    risk_level: RiskLevel = RiskLevel.LOW
    security_level: SecurityLevel = SecurityLevel.STRICT
    required_permissions: frozenset[str] = Field(default_factory=frozenset)
    external_resources: frozenset[str] = Field(default_factory=frozenset)
    navigation_targets: frozenset[str] = Field(default_factory=frozenset)
    function_calls: frozenset[str] = Field(default_factory=frozenset)
    required_imports: frozenset[str] = Field(default_factory=frozenset)
    accessed_state: frozenset[str] = Field(default_factory=frozenset)
    sensitive_inputs: frozenset[str] = Field(default_factory=frozenset)
    warnings: tuple[str, ...] = ()
    complexity_score: int = 0
    code_quality_score: int = 100
    total_ui_elements: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def is_safe(self) -> bool:
        return self.risk_level <= RiskLevel.MEDIUM
