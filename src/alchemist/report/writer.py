# src/alchemist/report/writer.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd

from alchemist.errors import ReportError
from alchemist.schemas.models import (
    ENTITY_MODELS,
    SEVERITY_RANK,
    EntityType,
    ValidationConfig,
    ValidationFinding,
    ValidationResult,
    ValidationSummary,
)
from alchemist.validator.summary import build_quality_report, calculate_data_statistics

logger = logging.getLogger(__name__)

REPORT_FILENAME = "validation_report.json"
FINDINGS_FILENAME = "findings.csv"
EXPORT_DIRNAME = "export"
EXPORT_METADATA_FILENAME = "export_metadata.json"

# Column order of findings.csv (spreadsheet-facing names)
FINDING_COLUMNS = (
    "id",
    "severity",
    "entityType",
    "entityId",
    "row",
    "column",
    "field",
    "message",
    "suggestedFix",
    "autoFixable",
)


def build_report(result: ValidationResult) -> dict[str, Any]:
    """
    @brief
    JSON-ready payload of one validation pass.

    @details
    Contains the UTC timestamp, overall validity, summary, every finding in
    engine order, the data-quality report and the phase tables. Phase keys are
    stringified because JSON object keys must be strings.
    """
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "valid": result.is_valid,
        "summary": result.summary.model_dump(),
        "findings": [f.model_dump(mode="json") for f in result.findings],
        "quality": build_quality_report(result),
        "phases": {
            "capacity": {str(p): v for p, v in sorted(result.phase_capacity.items())},
            "requirement": {str(p): v for p, v in sorted(result.phase_requirement.items())},
        },
    }


def write_report(result: ValidationResult, out_dir: Path, filename: str = REPORT_FILENAME) -> Path:
    """
    @brief
    Write validation_report.json atomically.

    @returns
        Path of the written report.

    @raises
        ReportError
            On serialization or I/O failure.
    """
    report = build_report(result)
    try:
        payload = json.dumps(report, ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as e:
        raise ReportError(
            message=f"Validation report is not JSON-serializable: {e}",
            source="writer.write_report",
            suggested_action="Ensure findings carry only primitive values.",
        ) from e

    target = Path(out_dir) / filename
    _atomic_write_text(target, payload)
    logger.info("Validation report written: %s", target)
    return target


def findings_frame(findings: Iterable[ValidationFinding]) -> pd.DataFrame:
    """
    @brief
    Tabular view of findings, most severe first.

    @details
    Sort is stable: within one severity the engine order is preserved.
    An empty input yields an empty frame that still has every column.
    """
    rows = [
        {
            "id": f.id,
            "severity": str(f.severity),
            "entityType": str(f.entity_type),
            "entityId": f.entity_id,
            "row": f.row,
            "column": f.column,
            "field": f.field,
            "message": f.message,
            "suggestedFix": f.suggested_fix or "",
            "autoFixable": f.auto_fixable,
        }
        for f in findings
    ]
    df = pd.DataFrame(rows, columns=list(FINDING_COLUMNS))
    if df.empty:
        return df
    rank = df["severity"].map(SEVERITY_RANK)
    return df.assign(_rank=rank).sort_values("_rank", kind="stable").drop(columns="_rank").reset_index(drop=True)


def write_findings_csv(
    findings: Iterable[ValidationFinding], out_dir: Path, filename: str = FINDINGS_FILENAME
) -> Path:
    """Write findings.csv (UTF-8, header always present) atomically."""
    df = findings_frame(findings)
    target = Path(out_dir) / filename
    _atomic_write_text(target, df.to_csv(index=False))
    logger.info("Findings table written: %s (%d rows)", target, len(df))
    return target


def write_load_errors(issues: list[dict[str, Any]], out_dir: Path) -> Path:
    """Write load_errors.json with per-row loader issues."""
    try:
        payload = json.dumps(issues, ensure_ascii=False, indent=2, default=str)
    except (TypeError, ValueError) as e:
        raise ReportError(
            message=f"Load issues are not JSON-serializable: {e}",
            source="writer.write_load_errors",
        ) from e
    target = Path(out_dir) / "load_errors.json"
    _atomic_write_text(target, payload)
    return target


def is_export_ready(summary: ValidationSummary, settings: ValidationConfig | None = None) -> bool:
    """
    @brief
    Export gate: decide whether a validated dataset may be exported.

    @details
    Passes when errors <= settings.max_errors and, with fail_on_warnings,
    there are no warnings. The threshold is configuration, not engine policy.
    """
    settings = settings or ValidationConfig()
    if summary.errors > settings.max_errors:
        return False
    if settings.fail_on_warnings and summary.warnings > 0:
        return False
    return True


def _export_cell(value: Any) -> Any:
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    return value


def export_frame(entity_type: str, entities: Iterable[Any]) -> pd.DataFrame:
    """
    @brief
    Cleaned entity records as a table with the spreadsheet column names.

    @details
    List cells are joined with commas, so the table reads back through the
    same loader as the input CSVs. Missing numbers become empty cells and
    whole numbers stay whole (object dtype).
    """
    model = ENTITY_MODELS[str(entity_type)]
    columns = [info.alias or name for name, info in model.model_fields.items()]
    rows = [{k: _export_cell(v) for k, v in e.record().items()} for e in entities]
    return pd.DataFrame(rows, columns=columns, dtype=object)


def build_export_metadata(result: ValidationResult) -> dict[str, Any]:
    """Export date, dataset statistics and the validation summary of the package."""
    quality = build_quality_report(result)
    return {
        "export_date": datetime.now(timezone.utc).isoformat(),
        "statistics": calculate_data_statistics(result),
        "validation_summary": {
            **result.summary.model_dump(),
            "status": quality["status"],
            "message": quality["message"],
            "recommendations": quality["recommendations"],
        },
    }


def write_export_package(result: ValidationResult, out_dir: Path) -> dict[str, Path]:
    """
    @brief
    Write the downstream configuration package.

    @details
    (1) clients.csv, workers.csv, tasks.csv with the cleaned records in input
        order (validation state stripped).
    (2) export_metadata.json with export date, statistics and validation
        summary.
    Whether the package may be written is the export gate's call
    (is_export_ready); this function does not check it.

    @returns
        Mapping "clients" | "workers" | "tasks" | "metadata" -> written path.

    @raises
        ReportError
            On serialization or I/O failure.
    """
    out_dir = Path(out_dir)
    groups = {
        EntityType.CLIENT.value: [v.entity for v in result.validated_clients],
        EntityType.WORKER.value: [v.entity for v in result.validated_workers],
        EntityType.TASK.value: [v.entity for v in result.validated_tasks],
    }

    # (1) Cleaned entity tables
    written: dict[str, Path] = {}
    for entity_type, entities in groups.items():
        target = out_dir / f"{entity_type}s.csv"
        _atomic_write_text(target, export_frame(entity_type, entities).to_csv(index=False))
        written[f"{entity_type}s"] = target

    # (2) Metadata
    try:
        payload = json.dumps(build_export_metadata(result), ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as e:
        raise ReportError(
            message=f"Export metadata is not JSON-serializable: {e}",
            source="writer.write_export_package",
        ) from e
    written["metadata"] = out_dir / EXPORT_METADATA_FILENAME
    _atomic_write_text(written["metadata"], payload)

    logger.info(
        "Export package written: %s (%d clients, %d workers, %d tasks)",
        out_dir,
        *(len(entities) for entities in groups.values()),
    )
    return written


def _atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    @brief
    Write text via a temporary sibling file and os.replace().

    @details
    Readers see either the previous file or the complete new one, never a
    partial write. The temporary file is removed on failure.

    @raises
        ReportError
            On write or rename failure.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    except OSError as e:
        raise ReportError(
            message=f"Cannot prepare output directory for {path}: {e}",
            source="writer._atomic_write_text",
            suggested_action="Check output directory permissions.",
        ) from e

    try:
        with open(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise ReportError(
            message=f"Atomic write failed for {path}: {e}",
            source="writer._atomic_write_text",
            suggested_action="Check output directory permissions and disk space.",
        ) from e


__all__ = [
    "EXPORT_DIRNAME",
    "FINDING_COLUMNS",
    "build_export_metadata",
    "build_report",
    "export_frame",
    "findings_frame",
    "is_export_ready",
    "write_export_package",
    "write_findings_csv",
    "write_load_errors",
    "write_report",
]
