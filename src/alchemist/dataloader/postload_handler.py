# src/alchemist/dataloader/postload_handler.py
from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from alchemist.dataloader.types import LoadResult
from alchemist.errors import ReportError
from alchemist.report.writer import write_load_errors

logger = logging.getLogger(__name__)


class LoadResultHandler:
    """
    @brief
    Gate between the CSV loaders and the validation engine.

    @details
    Receives the LoadResult of every entity file. When all loads succeeded it
    hands back the entity collections keyed by entity type. Otherwise it writes
    load_errors.json (issues tagged with their entity type) to output_dir and
    returns None so the pipeline stops before validation.
    """

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def handle(self, results: Sequence[LoadResult]) -> dict[str, list[Any]] | None:
        # (1) Success path
        if all(r.success for r in results):
            collections = {r.entity_type.value: list(r.entities) for r in results}
            logger.info(
                "PostLoad: ready for validation (%s).",
                ", ".join(f"{k}={len(v)}" for k, v in collections.items()),
            )
            return collections

        # (2) Failure path: collect tagged issues
        issues: list[dict[str, Any]] = [
            {"entity_type": r.entity_type.value, **issue}
            for r in results
            if not r.success
            for issue in r.errors
        ]

        try:
            out_path = write_load_errors(issues, self.output_dir)
            logger.error(
                "PostLoad: input loading failed with %d issue(s). See %s", len(issues), out_path
            )
        except ReportError as e:
            logger.error("PostLoad: failed to write error report: %s", e)

        return None


__all__ = ["LoadResultHandler"]
