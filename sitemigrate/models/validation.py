from typing import Dict, List, Literal

from pydantic import BaseModel, Field

Severity = Literal["error", "warning"]


class ValidationIssue(BaseModel):
    field: str
    message: str
    severity: Severity


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)


class ValidationSummary(BaseModel):
    total_pages: int = 0
    valid_pages: int = 0  # no errors and no warnings
    pages_with_errors: int = 0
    pages_with_warnings: int = 0


class ValidationReport(BaseModel):
    summary: ValidationSummary
    details: Dict[str, ValidationResult]
    duplicate_errors: List[ValidationIssue]
