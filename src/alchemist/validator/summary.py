# src/alchemist/validator/summary.py
from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from typing import Any

from alchemist.schemas.models import (
    EntityType,
    Severity,
    ValidationFinding,
    ValidationResult,
    ValidationSummary,
)
from alchemist.validator.rules import SEVERITY_WEIGHTS

# Quality status thresholds (score >= threshold)
STATUS_THRESHOLDS: tuple[tuple[int, str, str], ...] = (
    (95, "excellent", "Data quality is excellent and ready for processing."),
    (80, "good", "Data quality is good with minor issues to address."),
    (60, "needs-attention", "Data needs attention before processing."),
)
CRITICAL_STATUS = ("critical", "Critical data quality issues must be resolved.")
WARNING_REVIEW_THRESHOLD = 5
REQUIRED_FIELDS_PER_ENTITY = 6


def calculate_score(findings: Iterable[ValidationFinding]) -> int:
    """
    @brief
    Quality score in [0, 100].

    @details
    score = max(0, 100 - 10*errors - 5*warnings - 1*info)
    """
    penalty = sum(SEVERITY_WEIGHTS.get(str(f.severity), 0) for f in findings)
    return max(0, 100 - penalty)


def summarize(findings: Iterable[ValidationFinding]) -> ValidationSummary:
    """
    @brief
    Count findings by severity, entity type and field, and compute the score.

    @details
    Pure and order-independent: permuting the input yields the same summary.
    """
    items = list(findings)
    severities = Counter(str(f.severity) for f in items)
    by_entity = Counter(str(f.entity_type) for f in items)
    by_field = Counter(f.field for f in items)

    return ValidationSummary(
        total=len(items),
        errors=severities.get(Severity.ERROR.value, 0),
        warnings=severities.get(Severity.WARNING.value, 0),
        info=severities.get(Severity.INFO.value, 0),
        score=calculate_score(items),
        by_entity=dict(sorted(by_entity.items())),
        by_field=dict(sorted(by_field.items())),
    )


def auto_fixable_findings(findings: Iterable[ValidationFinding]) -> list[ValidationFinding]:
    """Findings a caller may apply in one step (fix present, not an error)."""
    return [f for f in findings if f.auto_fixable and f.suggested_fix]


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def build_quality_report(result: ValidationResult) -> dict[str, Any]:
    """
    @brief
    Human-oriented data-quality report derived from a ValidationResult.

    @details
    (1) Entity counts and a per-entity breakdown (valid / with errors / with
        warnings) from the validated entity lists.
    (2) Status band from the score: excellent >= 95, good >= 80,
        needs-attention >= 60, otherwise critical.
    (3) Recommendations: fix errors, review warnings when there are more than
        five, re-check each entity type that has invalid records.

    @returns
        JSON-serializable dictionary.
    """
    # (1) Breakdown
    groups = {
        EntityType.CLIENT.value: result.validated_clients,
        EntityType.WORKER.value: result.validated_workers,
        EntityType.TASK.value: result.validated_tasks,
    }
    breakdown = {
        name: {
            "total": len(items),
            "valid": sum(1 for v in items if v.is_valid),
            "with_errors": sum(1 for v in items if v.errors),
            "with_warnings": sum(1 for v in items if v.warnings),
        }
        for name, items in groups.items()
    }

    # (2) Status band
    summary = result.summary
    status, message = CRITICAL_STATUS
    for threshold, band, text in STATUS_THRESHOLDS:
        if summary.score >= threshold:
            status, message = band, text
            break

    # (3) Recommendations
    recommendations: list[str] = []
    if summary.errors:
        recommendations.append(f"Fix {_plural(summary.errors, 'error')}")
    if summary.warnings > WARNING_REVIEW_THRESHOLD:
        recommendations.append(
            f"Review {_plural(summary.warnings, 'warning')} for data improvement"
        )
    for name, counts in breakdown.items():
        if counts["with_errors"]:
            recommendations.append(f"Validate {_plural(counts['with_errors'], name + ' record')}")

    return {
        "score": summary.score,
        "status": status,
        "message": message,
        "recommendations": recommendations,
        "entity_breakdown": breakdown,
        "cross_entity_findings": len(result.cross_entity_findings),
        "auto_fixable": len(auto_fixable_findings(result.findings)),
    }


def calculate_data_statistics(result: ValidationResult) -> dict[str, Any]:
    """
    @brief
    Headline numbers of a validated dataset.

    @details
    completion_percentage approximates how many required cells are usable:
    every entity is assumed to carry REQUIRED_FIELDS_PER_ENTITY required
    fields and each error costs half a field. An empty dataset is 100 %
    complete.
    """
    summary = result.summary
    entities = len(result.validated_clients) + len(result.validated_workers) + len(result.validated_tasks)
    required = entities * REQUIRED_FIELDS_PER_ENTITY
    if required == 0:
        completion = 100.0
    else:
        completion = max(0.0, (required - summary.errors * 0.5) / required * 100)

    return {
        "total_clients": len(result.validated_clients),
        "total_workers": len(result.validated_workers),
        "total_tasks": len(result.validated_tasks),
        "total_errors": summary.errors,
        "total_warnings": summary.warnings,
        "validation_score": summary.score,
        "completion_percentage": round(completion),
    }


__all__ = [
    "auto_fixable_findings",
    "build_quality_report",
    "calculate_data_statistics",
    "calculate_score",
    "summarize",
]
