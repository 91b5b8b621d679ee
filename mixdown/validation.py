"""
Validation results - Actionable issues for graphs and timelines.

Validators never raise on bad data. They accumulate every issue they find
into a ValidationResult so the caller sees the whole picture at once.

Every issue answers:
1. WHAT is wrong? (message, code)
2. WHERE? (location)
3. HOW to fix it? (suggestion)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from mixdown.errors import MixdownError


class ValidationSeverity(str, Enum):
    """Severity level for validation issues."""

    ERROR = "error"      # Operation must not proceed
    WARNING = "warning"  # Operation may proceed; caller should act on it


@dataclass
class ValidationIssue:
    """A single validation issue.

    Attributes:
        location: Where the issue was found (e.g. "label[music_pre]",
            "events[3]").
        message: Human-readable description.
        severity: ERROR or WARNING.
        code: Stable machine-readable code (e.g. "DUPLICATE_OUTPUT_LABEL").
        suggestion: Actionable fix, when one exists.
        context: Structured details for programmatic handling.
    """
    location: str
    message: str
    severity: ValidationSeverity = ValidationSeverity.ERROR
    code: str = "UNKNOWN"
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity == ValidationSeverity.ERROR

    def __str__(self) -> str:
        text = f"{self.severity.value.upper()}: {self.location}: {self.message}"
        if self.suggestion:
            text += f"\n  Suggestion: {self.suggestion}"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "severity": self.severity.value,
            "location": self.location,
            "message": self.message,
            "suggestion": self.suggestion,
            "context": dict(self.context),
        }


@dataclass
class ValidationResult:
    """Accumulated outcome of a validation pass.

    ``valid`` is True exactly when no ERROR-level issue was recorded;
    warnings never make a result invalid.
    """
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        """ERROR-level issues, in the order found."""
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        """WARNING-level issues, in the order found."""
        return [i for i in self.issues if i.severity == ValidationSeverity.WARNING]

    @property
    def valid(self) -> bool:
        return not self.errors

    is_valid = valid

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def filter_by_code(self, code: str) -> list[ValidationIssue]:
        """Get issues with a specific code."""
        return [i for i in self.issues if i.code == code]

    def add(self, issue: ValidationIssue) -> None:
        self.issues.append(issue)

    def error(self, location: str, message: str, code: str, **kwargs: Any) -> None:
        """Record an ERROR-level issue."""
        self.add(ValidationIssue(location, message, ValidationSeverity.ERROR, code, **kwargs))

    def warn(self, location: str, message: str, code: str, **kwargs: Any) -> None:
        """Record a WARNING-level issue."""
        self.add(ValidationIssue(location, message, ValidationSeverity.WARNING, code, **kwargs))

    def raise_if_invalid(self) -> None:
        """Raise GraphValidationException if any ERROR-level issue exists."""
        if not self.valid:
            raise GraphValidationException(self)

    def to_dict(self) -> dict[str, Any]:
        """Wire form: ``{valid, errors[], warnings[]}`` with messages."""
        return {
            "valid": self.valid,
            "errors": [i.message for i in self.errors],
            "warnings": [i.message for i in self.warnings],
        }

    def __str__(self) -> str:
        if not self.issues:
            return "Validation passed"
        lines = [f"Validation found {len(self.issues)} issue(s):"]
        for issue in self.issues:
            lines.append(f"  {issue}")
        return "\n".join(lines)

    def __bool__(self) -> bool:
        return self.valid

    def __iter__(self) -> Iterator[ValidationIssue]:
        return iter(self.issues)

    def __len__(self) -> int:
        return len(self.issues)


class GraphValidationException(MixdownError):
    """Raised when a mix graph fails validation with ERROR-level issues."""

    kind = "graph_invalid"

    def __init__(self, result: ValidationResult):
        super().__init__(
            str(result),
            details={"errors": [i.message for i in result.errors]},
        )
        self.result = result


__all__ = [
    "ValidationSeverity",
    "ValidationIssue",
    "ValidationResult",
    "GraphValidationException",
]
