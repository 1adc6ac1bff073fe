# src/alchemist/validator/batch.py
from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from alchemist.schemas.models import Client, Severity, Task, ValidationFinding, Worker
from alchemist.validator.entities import validate_client, validate_task, validate_worker
from alchemist.validator.fields import make_finding

E = TypeVar("E", Client, Worker, Task)


def _validate_batch(
    entities: Sequence[E], validate_one: Callable[[E, int], list[ValidationFinding]]
) -> list[ValidationFinding]:
    """
    @brief
    Validate a whole collection of one entity type.

    @details
    (1) A single scan with a seen-set reports every second and later
    occurrence of an identifier as a duplicate-ID error on that row.
    (2) Each record is then validated in collection order.
    Duplicates come first, per-record findings after, so the output order is
    stable for the same input.
    """
    findings: list[ValidationFinding] = []
    seen: set[str] = set()

    # (1) Duplicate identifiers
    for index, entity in enumerate(entities):
        identifier = entity.identifier
        if not identifier:
            continue
        if identifier in seen:
            findings.append(
                make_finding(
                    entity.entity_type,
                    identifier,
                    index,
                    entity.id_field,
                    f"Duplicate {entity.entity_type.value} ID: {identifier}",
                    Severity.ERROR,
                    f"Change {entity.id_field} to a unique value",
                )
            )
        else:
            seen.add(identifier)

    # (2) Individual validations
    for index, entity in enumerate(entities):
        findings.extend(validate_one(entity, index))
    return findings


def validate_clients_batch(clients: Sequence[Client]) -> list[ValidationFinding]:
    return _validate_batch(clients, validate_client)


def validate_workers_batch(workers: Sequence[Worker]) -> list[ValidationFinding]:
    return _validate_batch(workers, validate_worker)


def validate_tasks_batch(tasks: Sequence[Task]) -> list[ValidationFinding]:
    return _validate_batch(tasks, validate_task)


__all__ = ["validate_clients_batch", "validate_tasks_batch", "validate_workers_batch"]
