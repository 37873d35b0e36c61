"""Structural and SEO validation of canonical page content.

Problems are collected and returned as data, never raised.  Errors block
publication; warnings are advisory.
"""

import logging
import re
from collections import Counter
from typing import Dict, List

from sitemigrate.models.content import SECTION_TYPES, ContentSection, PageContent
from sitemigrate.models.validation import (
    ValidationIssue,
    ValidationReport,
    ValidationResult,
    ValidationSummary,
)

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")

# Search engines truncate beyond these lengths
MAX_TITLE_LENGTH = 60
MAX_DESCRIPTION_LENGTH = 160


def _error(field: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, message=message, severity="error")


def _warning(field: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, message=message, severity="warning")


class ContentValidator:
    def validate_page(self, page: PageContent) -> ValidationResult:
        errors: List[ValidationIssue] = []
        warnings: List[ValidationIssue] = []

        if not page.slug:
            errors.append(_error("slug", "Page slug is required"))
        elif not SLUG_PATTERN.match(page.slug):
            errors.append(
                _error(
                    "slug",
                    "Slug should only contain lowercase letters, numbers, and hyphens",
                )
            )

        if not page.title:
            errors.append(_error("title", "Page title is required"))
        elif len(page.title) > MAX_TITLE_LENGTH:
            warnings.append(
                _warning(
                    "title",
                    f"Title is longer than {MAX_TITLE_LENGTH} characters, "
                    "may be truncated in search results",
                )
            )

        if not page.description:
            warnings.append(_warning("description", "Page description is recommended for SEO"))
        elif len(page.description) > MAX_DESCRIPTION_LENGTH:
            warnings.append(
                _warning(
                    "description",
                    f"Description is longer than {MAX_DESCRIPTION_LENGTH} characters, "
                    "may be truncated in search results",
                )
            )

        if not page.sections:
            warnings.append(_warning("sections", "Page has no content sections"))
        for index, section in enumerate(page.sections):
            for issue in self.validate_section(section, index):
                (errors if issue.severity == "error" else warnings).append(issue)

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def validate_section(self, section: ContentSection, index: int) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        prefix = f"sections[{index}]"

        if not section.id:
            issues.append(_error(f"{prefix}.id", "Section ID is required"))

        if not section.type:
            issues.append(_error(f"{prefix}.type", "Section type is required"))
        elif section.type not in SECTION_TYPES:
            issues.append(
                _error(
                    f"{prefix}.type",
                    f"Invalid section type: {section.type}. "
                    f"Must be one of: {', '.join(SECTION_TYPES)}",
                )
            )

        if not section.data:
            issues.append(_error(f"{prefix}.data", "Section data is required"))

        if section.type == "hero":
            hero = section.data.get("hero") or {}
            if not hero.get("title") and not section.data.get("html"):
                issues.append(_error(f"{prefix}.data.hero.title", "Hero section must have a title"))

        return issues

    def validate_batch(self, pages: List[PageContent]) -> Dict[str, ValidationResult]:
        return {page.slug: self.validate_page(page) for page in pages}

    def validate_uniqueness(self, pages: List[PageContent]) -> List[ValidationIssue]:
        """Return one error per slug that occurs more than once in *pages*."""
        counts = Counter(page.slug for page in pages)
        return [
            _error("slug", f"Duplicate slug found: {slug} (appears {count} times)")
            for slug, count in counts.items()
            if count > 1
        ]

    def generate_report(self, pages: List[PageContent]) -> ValidationReport:
        details = self.validate_batch(pages)
        summary = ValidationSummary(total_pages=len(pages))

        for result in details.values():
            if result.is_valid and not result.warnings:
                summary.valid_pages += 1
            if result.errors:
                summary.pages_with_errors += 1
            if result.warnings:
                summary.pages_with_warnings += 1

        return ValidationReport(
            summary=summary,
            details=details,
            duplicate_errors=self.validate_uniqueness(pages),
        )


def count_blocking_errors(report: ValidationReport) -> int:
    """Pages with errors plus duplicate slugs; nonzero means do not publish."""
    return report.summary.pages_with_errors + len(report.duplicate_errors)


def log_report(report: ValidationReport) -> None:
    summary = report.summary
    logger.info(
        "Content validation: %d pages, %d valid, %d with errors, %d with warnings",
        summary.total_pages,
        summary.valid_pages,
        summary.pages_with_errors,
        summary.pages_with_warnings,
    )
    for issue in report.duplicate_errors:
        logger.error("%s", issue.message)
    for slug, result in report.details.items():
        for issue in result.errors:
            logger.error("Error in %s – %s: %s", slug, issue.field, issue.message)
        for issue in result.warnings:
            logger.warning("Warning in %s – %s: %s", slug, issue.field, issue.message)
