# src/alchemist/dataloader/cleaning.py
"""
Cleaning stage: raw spreadsheet row -> typed entity.

Identifiers are trimmed, upper-cased and given their entity prefix (C / W / T).
Text cells are trimmed and missing group/category cells get a default. List
cells are tokenised with the shared parsers. Numeric cells are converted but
never clamped: an out-of-range value reaches the engine unchanged and is
reported there. A cell that cannot be read as a number is dropped (None) and
noted in `issues` when a list is supplied.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from alchemist.dataloader.types import RawRecord
from alchemist.schemas.models import Client, EntityType, Task, Worker
from alchemist.validator.parsers import parse_string_array, to_number

Issues = list[dict[str, Any]] | None

DEFAULT_GROUP_TAG = "Standard"
DEFAULT_WORKER_GROUP = "General"
DEFAULT_CATEGORY = "General"


def sanitize_entity_id(value: Any, prefix: str) -> str:
    """
    @brief
    Normalise an identifier: trim, upper-case, ensure the entity prefix.

    @details
    Empty input stays empty so the required-field check can report it.
    "c001" -> "C001"; "001" -> "C001" with prefix "C".
    """
    if value is None:
        return ""
    text = str(value).strip().upper()
    if not text:
        return ""
    return text if text.startswith(prefix) else f"{prefix}{text}"


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _number(raw: RawRecord, column: str, issues: Issues) -> int | float | None:
    value = raw.get(column)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = to_number(value)
    if number is None and issues is not None:
        issues.append(
            {"kind": "non_numeric", "column": column, "message": f"{column}: {value!r} is not a number"}
        )
    return number


def _numbers(raw: RawRecord, column: str, issues: Issues) -> list[int | float]:
    numbers: list[int | float] = []
    for token in parse_string_array(raw.get(column)):
        number = to_number(token)
        if number is None:
            if issues is not None:
                issues.append(
                    {
                        "kind": "non_numeric",
                        "column": column,
                        "message": f"{column}: element {token!r} is not a number",
                    }
                )
            continue
        numbers.append(number)
    return numbers


def _attributes(value: Any) -> str:
    if isinstance(value, str):
        return value.strip() or "{}"
    if value is None:
        return "{}"
    return json.dumps(value)


def clean_client(raw: RawRecord, issues: Issues = None) -> Client:
    return Client(
        client_id=sanitize_entity_id(raw.get("ClientID"), Client.id_prefix),
        client_name=_text(raw.get("ClientName")),
        priority_level=_number(raw, "PriorityLevel", issues),
        requested_task_ids=[
            sanitize_entity_id(t, Task.id_prefix) for t in parse_string_array(raw.get("RequestedTaskIDs"))
        ],
        group_tag=_text(raw.get("GroupTag"), DEFAULT_GROUP_TAG),
        attributes_json=_attributes(raw.get("AttributesJSON")),
    )


def clean_worker(raw: RawRecord, issues: Issues = None) -> Worker:
    return Worker(
        worker_id=sanitize_entity_id(raw.get("WorkerID"), Worker.id_prefix),
        worker_name=_text(raw.get("WorkerName")),
        skills=[s.strip() for s in parse_string_array(raw.get("Skills")) if s.strip()],
        available_slots=_numbers(raw, "AvailableSlots", issues),
        max_load_per_phase=_number(raw, "MaxLoadPerPhase", issues),
        worker_group=_text(raw.get("WorkerGroup"), DEFAULT_WORKER_GROUP),
        qualification_level=_number(raw, "QualificationLevel", issues),
    )


def clean_task(raw: RawRecord, issues: Issues = None) -> Task:
    return Task(
        task_id=sanitize_entity_id(raw.get("TaskID"), Task.id_prefix),
        task_name=_text(raw.get("TaskName")),
        category=_text(raw.get("Category"), DEFAULT_CATEGORY),
        duration=_number(raw, "Duration", issues),
        required_skills=[s.strip() for s in parse_string_array(raw.get("RequiredSkills")) if s.strip()],
        preferred_phases=_numbers(raw, "PreferredPhases", issues),
        max_concurrent=_number(raw, "MaxConcurrent", issues),
    )


CLEANERS: dict[str, Callable[[RawRecord, Issues], Client | Worker | Task]] = {
    EntityType.CLIENT.value: clean_client,
    EntityType.WORKER.value: clean_worker,
    EntityType.TASK.value: clean_task,
}


__all__ = ["CLEANERS", "clean_client", "clean_task", "clean_worker", "sanitize_entity_id"]
