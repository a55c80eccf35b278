"""Analysis result entities.

This module contains the canonical output contract of the analysis pipeline:
- Finding: A single reported issue with location, severity, and level
- Suggestion: A proposed improvement with a concrete fix
- CodeMetrics: Categorical quality ratings for a file
- Summary: Counts derived from the findings (never taken from the model)
- AnalysisResult: Everything above for one analyzed file

to_dict() produces the camelCase wire format consumed by report renderers.
"""

from dataclasses import dataclass, field
from typing import Any

# Severity buckets, most urgent first
SEVERITIES = ("critical", "high", "medium", "low")

# Nature of a finding
LEVELS = ("architectural", "syntax", "logical", "performance", "security")

# Categorical metric ratings
METRIC_VALUES = frozenset(
    {"poor", "fair", "good", "excellent", "unknown", "low", "medium", "high"}
)

QUALITY_VALUES = frozenset({"excellent", "good", "fair", "poor", "unknown"})

CONFIDENCE_VALUES = frozenset({"high", "medium", "low"})

DEFAULT_SEVERITY = "medium"
DEFAULT_LEVEL = "logical"
DEFAULT_TYPE = "general"


def empty_level_counts() -> dict[str, int]:
    """Return a zeroed errors-by-level map with every level present."""
    return {level: 0 for level in LEVELS}


@dataclass
class Finding:
    """Single issue reported for a line of source.

    Attributes:
        line: 1-based line number (always within the analyzed source)
        message: Description of the issue
        severity: One of critical, high, medium, low
        type: Free-form issue type reported by the model (e.g. "null_check")
        level: One of architectural, syntax, logical, performance, security
        column: 1-based column (defaults to 1)
        context: Surrounding source lines, "N: text" per line
        word: Offending token, if the model identified one
    """

    line: int
    message: str
    severity: str = DEFAULT_SEVERITY
    type: str = DEFAULT_TYPE
    level: str = DEFAULT_LEVEL
    column: int = 1
    context: str = ""
    word: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "line": self.line,
            "column": self.column,
            "word": self.word,
            "type": self.type,
            "level": self.level,
            "message": self.message,
            "severity": self.severity,
            "context": self.context,
        }


@dataclass
class Suggestion:
    """Proposed improvement for the analyzed source.

    Attributes:
        line: Line the suggestion applies to (0 when file-wide)
        type: Improvement type (e.g. "refactor", "retry_analysis")
        message: What to change
        fix: Concrete code or action to apply
        reasoning: Why the change helps
        level: Finding level the suggestion relates to
    """

    line: int
    type: str
    message: str
    fix: str
    reasoning: str
    level: str = DEFAULT_LEVEL

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "line": self.line,
            "type": self.type,
            "level": self.level,
            "message": self.message,
            "fix": self.fix,
            "reasoning": self.reasoning,
        }


@dataclass
class CodeMetrics:
    """Categorical quality ratings (not numeric scores)."""

    complexity: str = "medium"
    maintainability: str = "fair"
    testability: str = "fair"
    performance: str = "fair"
    security: str = "fair"

    @classmethod
    def unknown(cls) -> "CodeMetrics":
        """Metrics for a degraded result where nothing could be assessed."""
        return cls(
            complexity="unknown",
            maintainability="unknown",
            testability="unknown",
            performance="unknown",
            security="unknown",
        )

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for serialization."""
        return {
            "complexity": self.complexity,
            "maintainability": self.maintainability,
            "testability": self.testability,
            "performance": self.performance,
            "security": self.security,
        }


@dataclass
class Summary:
    """Counts derived from a result's findings and suggestions.

    Attributes:
        total_errors: Number of findings
        critical_errors: Findings with severity "critical"
        high_errors: Findings with severity "high"
        medium_errors: Findings with severity "medium"
        low_errors: Findings with severity "low"
        warnings: Number of suggestions
        code_quality: Overall rating reported by the model
        errors_by_level: Finding count per level (all levels present)
        errors_by_type: Finding count per reported type
        confidence: Model confidence (high, medium, low)
    """

    total_errors: int = 0
    critical_errors: int = 0
    high_errors: int = 0
    medium_errors: int = 0
    low_errors: int = 0
    warnings: int = 0
    code_quality: str = "fair"
    errors_by_level: dict[str, int] = field(default_factory=empty_level_counts)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    confidence: str = "medium"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "totalErrors": self.total_errors,
            "criticalErrors": self.critical_errors,
            "highErrors": self.high_errors,
            "mediumErrors": self.medium_errors,
            "lowErrors": self.low_errors,
            "warnings": self.warnings,
            "codeQuality": self.code_quality,
            "errorsByLevel": dict(self.errors_by_level),
            "errorsByType": dict(self.errors_by_type),
            "confidence": self.confidence,
        }


@dataclass
class AnalysisResult:
    """Validated analysis report for a single file.

    Invariants (enforced by the normalizer):
        - summary.total_errors == len(errors)
        - severity buckets and errors_by_level partition errors

    Attributes:
        errors: Findings ordered as reported
        suggestions: Improvements ordered as reported
        code_metrics: Categorical quality ratings
        summary: Derived counts
        degraded: True when the result carries a synthetic explanatory
            finding instead of real analysis (parse or provider failure)
    """

    errors: list[Finding] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)
    code_metrics: CodeMetrics = field(default_factory=CodeMetrics)
    summary: Summary = field(default_factory=Summary)
    degraded: bool = False

    @property
    def has_errors(self) -> bool:
        """Check if any findings were reported."""
        return len(self.errors) > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "errors": [e.to_dict() for e in self.errors],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "codeMetrics": self.code_metrics.to_dict(),
            "summary": self.summary.to_dict(),
            "degraded": self.degraded,
        }
