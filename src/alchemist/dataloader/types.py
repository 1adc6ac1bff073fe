# src/alchemist/dataloader/types.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from alchemist.schemas.models import Client, EntityType, Task, Worker

# One spreadsheet row before cleaning; only the cleaning stage accepts it.
RawRecord = Mapping[str, Any]


@dataclass(slots=True)
class LoadResult:
    """
    Structured result of loading one entity CSV.

    Fields:
        success: False when a row could not be turned into an entity at all.
        entity_type: Which collection the file holds.
        entities: Cleaned entities in file order (empty if success=False).
        errors: Blocking row issues; each dict has kind, line_no, entity_id, message.
        warnings: Non-blocking cleaning notes (e.g. a non-numeric cell dropped).
        total_rows: Data rows seen in the CSV (header excluded, blank rows excluded).
        kept_rows: len(entities).
    """

    success: bool
    entity_type: EntityType
    entities: list[Client] | list[Worker] | list[Task] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0
    kept_rows: int = 0
