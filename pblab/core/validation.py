"""
Validation result accumulator

Every check returns a ValidationResult instead of raising, so independent
checks can be merged and every violation of a batch surfaces in one pass.
Errors block the operation; warnings are advisory and never affect is_valid.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ErrorCategory(str, Enum):
    """Taxonomy of validation issues"""
    STRUCTURAL = "structural"  # required field missing or malformed
    RANGE = "range"  # numeric value outside its bounds
    POLICY_VIOLATION = "policy_violation"  # team-scoped field/phrase, role or ownership mismatch
    REFERENTIAL = "referential"  # cross-entity id mismatch
    ADVISORY = "advisory"  # non-blocking warning


class ValidationIssue(BaseModel):
    category: ErrorCategory
    message: str
    field: Optional[str] = None
    index: Optional[int] = None

    @property
    def is_blocking(self) -> bool:
        return self.category != ErrorCategory.ADVISORY


class ValidationResult(BaseModel):
    """
    Outcome of one or more integrity checks.

    is_valid, errors and warnings are derived from issues when the result is
    built through ValidationCollector or merge(); they are stored (not
    computed) so the result serialises as-is in API responses.
    """
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    issues: List[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def from_issues(cls, issues: List[ValidationIssue]) -> "ValidationResult":
        errors = [i.message for i in issues if i.is_blocking]
        warnings = [i.message for i in issues if not i.is_blocking]
        return cls(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            issues=list(issues),
        )

    @classmethod
    def merge(cls, *results: "ValidationResult") -> "ValidationResult":
        """Concatenate issues of several results, preserving order"""
        issues: List[ValidationIssue] = []
        for result in results:
            issues.extend(result.issues)
        return cls.from_issues(issues)

    def errors_in(self, category: ErrorCategory) -> List[str]:
        return [i.message for i in self.issues if i.category == category]


class ValidationCollector:
    """Mutable builder used inside a single check; never shared between calls"""

    def __init__(self):
        self.issues: List[ValidationIssue] = []

    def error(
        self,
        category: ErrorCategory,
        message: str,
        field: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        self.issues.append(ValidationIssue(category=category, message=message, field=field, index=index))

    def warn(self, message: str, field: Optional[str] = None, index: Optional[int] = None) -> None:
        self.issues.append(
            ValidationIssue(category=ErrorCategory.ADVISORY, message=message, field=field, index=index)
        )

    def extend(self, result: ValidationResult) -> None:
        self.issues.extend(result.issues)

    def result(self) -> ValidationResult:
        return ValidationResult.from_issues(self.issues)
