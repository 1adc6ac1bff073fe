# src/alchemist/dataloader/records_loader.py
from __future__ import annotations

import csv
import logging
from collections import Counter
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from alchemist.dataloader.cleaning import CLEANERS
from alchemist.dataloader.types import LoadResult
from alchemist.errors import ContractError, DataError
from alchemist.schemas.models import ENTITY_MODELS, EntityType

logger = logging.getLogger(__name__)


class RecordsLoader:
    """
    CSV -> LoadResult[Client | Worker | Task].

    Rules:
      - Format: UTF-8 CSV (BOM tolerated), delimiter=','
      - Required column: the entity id column (ClientID / WorkerID / TaskID);
        every other missing column is left to the validation engine.
      - Row handling:
          * fully blank row             -> skipped, not counted
          * non-numeric numeric cell    -> warning, value dropped, row kept
          * entity construction failure -> error, row skipped
      - On completion:
          * any error -> success=False, entities=[]
          * otherwise -> success=True, entities in file order

    Fatal (raise DataError immediately):
      - missing / unreadable file
      - no header row
      - missing id column
    """

    def __init__(self, entity_type: EntityType | str) -> None:
        try:
            self.entity_type = EntityType(entity_type)
        except ValueError as e:
            raise ContractError(
                message=f"Unsupported entity type: {entity_type!r}",
                source="RecordsLoader.__init__",
                suggested_action="Use one of: client, worker, task.",
            ) from e
        self.model = ENTITY_MODELS[self.entity_type.value]
        self.clean = CLEANERS[self.entity_type.value]

    @property
    def id_column(self) -> str:
        return self.model.id_field

    def load(self, path: Path | str) -> LoadResult:
        path = Path(path)
        rows = self._read_csv(path)
        result = self._rows_to_result(rows)
        self._report_summary(path, result)
        return result

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _read_csv(self, path: Path) -> list[dict[str, Any]]:
        if not path.is_file():
            raise DataError(
                message=f"Input CSV not found: {path}",
                source="RecordsLoader._read_csv",
                suggested_action=f"Verify the {self.entity_type.value}s CSV path.",
            )

        try:
            with path.open("r", encoding="utf-8-sig", newline="") as f:
                reader = csv.DictReader(f, delimiter=",")
                if reader.fieldnames is None:
                    raise DataError(
                        message=f"CSV has no header row: {path}",
                        source="RecordsLoader._read_csv",
                        suggested_action="Ensure the first line contains column names.",
                    )
                header = [(name or "").strip() for name in reader.fieldnames]
                self._validate_header(header)
                reader.fieldnames = header
                return [self._strip_row(r) for r in reader]
        except UnicodeDecodeError as e:
            raise DataError(
                message=f"CSV is not valid UTF-8: {path} ({e.reason})",
                source="RecordsLoader._read_csv",
                suggested_action="Re-export the spreadsheet as UTF-8 CSV.",
            ) from e
        except OSError as e:
            raise DataError(
                message=f"Unable to read CSV: {e}",
                source="RecordsLoader._read_csv",
                suggested_action="Check file permissions and that the file is not locked.",
            ) from e

    def _validate_header(self, header: list[str]) -> None:
        if self.id_column not in header:
            raise DataError(
                message=f"Invalid CSV header: missing required column {self.id_column}",
                source="RecordsLoader._validate_header",
                suggested_action=f"Add a {self.id_column} column to the {self.entity_type.value}s CSV.",
            )

    def _strip_row(self, row: dict[str | None, Any]) -> dict[str, Any]:
        # DictReader puts surplus cells under the None key
        return {k: (v.strip() if isinstance(v, str) else v) for k, v in row.items() if k is not None}

    def _rows_to_result(self, rows: list[dict[str, Any]]) -> LoadResult:
        errors: list[dict[str, Any]] = []
        warnings: list[dict[str, Any]] = []
        entities: list[Any] = []
        total = 0

        for line_no, row in enumerate(rows, start=2):  # header = line 1
            if not any(v for v in row.values()):
                continue
            total += 1
            raw_id = row.get(self.id_column) or None

            notes: list[dict[str, Any]] = []
            try:
                entity = self.clean(row, notes)
            except ValidationError as e:
                errors.append(
                    {
                        "kind": "schema_error",
                        "line_no": line_no,
                        "entity_id": raw_id,
                        "message": f"{self.model.__name__} construction failed: {e}",
                    }
                )
                continue

            for note in notes:
                warnings.append({**note, "line_no": line_no, "entity_id": entity.identifier or raw_id})
            entities.append(entity)

        if errors:
            return LoadResult(
                success=False,
                entity_type=self.entity_type,
                entities=[],
                errors=errors,
                warnings=warnings,
                total_rows=total,
                kept_rows=0,
            )
        return LoadResult(
            success=True,
            entity_type=self.entity_type,
            entities=entities,
            errors=[],
            warnings=warnings,
            total_rows=total,
            kept_rows=len(entities),
        )

    def _report_summary(self, path: Path, result: LoadResult) -> None:
        name = self.entity_type.value
        if result.warnings:
            kinds = Counter(w["kind"] for w in result.warnings)
            logger.warning(
                "RecordsLoader[%s]: %d cleaning note(s) in %s [%s]",
                name,
                len(result.warnings),
                path,
                ", ".join(f"{k}={v}" for k, v in kinds.items()),
            )
        if result.success:
            logger.info(
                "RecordsLoader[%s] OK: kept=%d/%d from %s",
                name,
                result.kept_rows,
                result.total_rows,
                path,
            )
        else:
            kinds = Counter(e["kind"] for e in result.errors)
            logger.error(
                "RecordsLoader[%s] failed: %d issue(s) across %d row(s) in %s [%s]",
                name,
                len(result.errors),
                result.total_rows,
                path,
                ", ".join(f"{k}={v}" for k, v in kinds.items()) or "no-summary",
            )


__all__ = ["RecordsLoader"]
