# src/alchemist/validator/entities.py
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from alchemist.errors import ContractError
from alchemist.schemas.models import (
    ENTITY_MODELS,
    Client,
    EntityType,
    Severity,
    Task,
    ValidationFinding,
    Worker,
)
from alchemist.validator import rules
from alchemist.validator.fields import (
    is_number,
    make_finding,
    validate_array_format,
    validate_json_format,
    validate_numeric_range,
    validate_required_fields,
    validate_string_length,
)
from alchemist.validator.parsers import parse_number_array, parse_string_array

CLIENT_REQUIRED_FIELDS = ("ClientID", "ClientName", "PriorityLevel", "GroupTag")
WORKER_REQUIRED_FIELDS = (
    "WorkerID",
    "WorkerName",
    "Skills",
    "AvailableSlots",
    "MaxLoadPerPhase",
    "WorkerGroup",
    "QualificationLevel",
)
TASK_REQUIRED_FIELDS = ("TaskID", "TaskName", "Category", "Duration", "RequiredSkills", "MaxConcurrent")


def display_id(record: dict[str, Any], id_field: str, entity_type: EntityType, row: int) -> str:
    """Entity id for findings; falls back to a row placeholder such as CLIENT_3."""
    value = record.get(id_field)
    if value is None or value == "":
        return f"{entity_type.value.upper()}_{row}"
    return str(value)


def validate_client(client: Client, row: int = 0) -> list[ValidationFinding]:
    """
    @brief
    Validate a single client record.

    @details
    Runs required-field, priority range, requested-task array, attributes JSON
    and string length checks, then the soft business rule on request volume.
    All checks are independent; the client may collect many findings.
    """
    etype = EntityType.CLIENT
    record = client.record()
    cid = display_id(record, Client.id_field, etype, row)

    # (1) Required fields
    findings = validate_required_fields(record, CLIENT_REQUIRED_FIELDS, etype, cid, row)

    # (2) Per-field format and range checks
    findings += validate_numeric_range(
        record["PriorityLevel"],
        rules.PRIORITY_LEVEL.min,
        rules.PRIORITY_LEVEL.max,
        "PriorityLevel",
        etype,
        cid,
        row,
        integer=True,
    )
    findings += validate_array_format(
        record["RequestedTaskIDs"],
        "RequestedTaskIDs",
        etype,
        cid,
        row,
        max_length=rules.MAX_ARRAY_LENGTH,
        element_type="string",
        allow_empty=True,
    )
    if record["AttributesJSON"] != "":
        findings += validate_json_format(
            record["AttributesJSON"], "AttributesJSON", etype, cid, row, rules.MAX_JSON_SIZE
        )
    for field in ("ClientName", "GroupTag"):
        findings += validate_string_length(record[field], field, etype, cid, row)

    # (3) Business logic
    requested = parse_string_array(record["RequestedTaskIDs"])
    if len(requested) > rules.MAX_REQUESTED_TASKS:
        findings.append(
            make_finding(
                etype,
                cid,
                row,
                "RequestedTaskIDs",
                f"Client requesting too many tasks (>{rules.MAX_REQUESTED_TASKS}), "
                "consider breaking into multiple requests",
                Severity.WARNING,
            )
        )
    return findings


def validate_worker(worker: Worker, row: int = 0) -> list[ValidationFinding]:
    """
    @brief
    Validate a single worker record.

    @details
    Checks skills and available slots (phase numbers within the allowed range),
    load and qualification ranges, and string lengths. Soft rules warn about
    unusually broad skill sets, availability in too many phases, and a
    MaxLoadPerPhase larger than the number of slots (auto-fixable).
    """
    etype = EntityType.WORKER
    record = worker.record()
    wid = display_id(record, Worker.id_field, etype, row)

    findings = validate_required_fields(record, WORKER_REQUIRED_FIELDS, etype, wid, row)

    findings += validate_array_format(
        record["Skills"],
        "Skills",
        etype,
        wid,
        row,
        max_length=rules.MAX_ARRAY_LENGTH,
        element_type="string",
        allow_empty=False,
    )
    findings += validate_array_format(
        record["AvailableSlots"],
        "AvailableSlots",
        etype,
        wid,
        row,
        max_length=rules.MAX_ARRAY_LENGTH,
        element_type="number",
        element_range=rules.PHASE,
        allow_empty=False,
    )
    findings += validate_numeric_range(
        record["MaxLoadPerPhase"],
        rules.MAX_LOAD_PER_PHASE.min,
        rules.MAX_LOAD_PER_PHASE.max,
        "MaxLoadPerPhase",
        etype,
        wid,
        row,
        integer=True,
    )
    findings += validate_numeric_range(
        record["QualificationLevel"],
        rules.QUALIFICATION_LEVEL.min,
        rules.QUALIFICATION_LEVEL.max,
        "QualificationLevel",
        etype,
        wid,
        row,
        integer=True,
    )
    for field in ("WorkerName", "WorkerGroup"):
        findings += validate_string_length(record[field], field, etype, wid, row)

    # Business logic
    skills = parse_string_array(record["Skills"])
    slots = list(dict.fromkeys(parse_number_array(record["AvailableSlots"])))
    if len(skills) > rules.MAX_WORKER_SKILLS:
        findings.append(
            make_finding(
                etype,
                wid,
                row,
                "Skills",
                f"Worker has too many skills (>{rules.MAX_WORKER_SKILLS}), "
                "may indicate data quality issues",
                Severity.WARNING,
            )
        )
    if len(slots) > rules.MAX_WORKER_PHASES:
        findings.append(
            make_finding(
                etype,
                wid,
                row,
                "AvailableSlots",
                f"Worker available in too many phases (>{rules.MAX_WORKER_PHASES}), "
                "may indicate overcommitment",
                Severity.WARNING,
            )
        )
    max_load = record["MaxLoadPerPhase"]
    if slots and is_number(max_load) and max_load > len(slots):
        findings.append(
            make_finding(
                etype,
                wid,
                row,
                "MaxLoadPerPhase",
                f"MaxLoadPerPhase ({max_load}) exceeds available slots count ({len(slots)})",
                Severity.WARNING,
                f"Consider reducing MaxLoadPerPhase to {len(slots)}",
            )
        )
    return findings


def validate_task(task: Task, row: int = 0) -> list[ValidationFinding]:
    """Validate a single task record (ranges, skills, phases, soft skill-count rule)."""
    etype = EntityType.TASK
    record = task.record()
    tid = display_id(record, Task.id_field, etype, row)

    findings = validate_required_fields(record, TASK_REQUIRED_FIELDS, etype, tid, row)

    findings += validate_numeric_range(
        record["Duration"],
        rules.DURATION.min,
        rules.DURATION.max,
        "Duration",
        etype,
        tid,
        row,
        integer=True,
    )
    findings += validate_numeric_range(
        record["MaxConcurrent"],
        rules.MAX_CONCURRENT.min,
        rules.MAX_CONCURRENT.max,
        "MaxConcurrent",
        etype,
        tid,
        row,
        integer=True,
    )
    findings += validate_array_format(
        record["RequiredSkills"],
        "RequiredSkills",
        etype,
        tid,
        row,
        max_length=rules.MAX_ARRAY_LENGTH,
        element_type="string",
        allow_empty=False,
    )
    findings += validate_array_format(
        record["PreferredPhases"],
        "PreferredPhases",
        etype,
        tid,
        row,
        max_length=rules.MAX_ARRAY_LENGTH,
        element_type="number",
        element_range=rules.PHASE,
        allow_empty=True,
    )
    for field in ("TaskName", "Category"):
        findings += validate_string_length(record[field], field, etype, tid, row)

    skills = parse_string_array(record["RequiredSkills"])
    if len(skills) > rules.MAX_TASK_SKILLS:
        findings.append(
            make_finding(
                etype,
                tid,
                row,
                "RequiredSkills",
                f"Task requires too many skills (>{rules.MAX_TASK_SKILLS}), "
                "consider breaking into smaller tasks",
                Severity.WARNING,
            )
        )
    return findings


_VALIDATORS: dict[str, Callable[[Any, int], list[ValidationFinding]]] = {
    EntityType.CLIENT.value: validate_client,
    EntityType.WORKER.value: validate_worker,
    EntityType.TASK.value: validate_task,
}


def validate_entity(
    entity_type: EntityType | str, entity: Client | Worker | Task, row: int = 0
) -> list[ValidationFinding]:
    """
    @brief
    Dispatch to the entity validator for `entity_type`.

    @raises
        ContractError
            If entity_type is outside {client, worker, task} or the entity
            object does not match it.
    """
    key = entity_type.value if isinstance(entity_type, EntityType) else entity_type
    validator = _VALIDATORS.get(key)
    if validator is None:
        raise ContractError(
            message=f"Unsupported entity type: {entity_type!r}",
            source="entities.validate_entity",
            suggested_action="Use one of: client, worker, task.",
        )

    model = ENTITY_MODELS[key]
    if not isinstance(entity, model):
        raise ContractError(
            message=f"Expected {model.__name__} for entity type {key!r}, got {type(entity).__name__}",
            source="entities.validate_entity",
            suggested_action="Clean raw rows into entity models before validation.",
        )
    return validator(entity, row)


__all__ = ["display_id", "validate_client", "validate_entity", "validate_task", "validate_worker"]
