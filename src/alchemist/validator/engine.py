# src/alchemist/validator/engine.py
from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence

from alchemist.schemas.models import (
    Client,
    EntityType,
    Task,
    ValidatedClient,
    ValidatedTask,
    ValidatedWorker,
    ValidationConfig,
    ValidationFinding,
    ValidationResult,
    Worker,
)
from alchemist.validator.batch import (
    validate_clients_batch,
    validate_tasks_batch,
    validate_workers_batch,
)
from alchemist.validator.cross_entity import Assignments, CoRunGroups, CrossEntityValidator
from alchemist.validator.summary import summarize

logger = logging.getLogger(__name__)


# ---------------------------
# ENGINE CLASS (instance core)
# ----------------------------
class ValidationEngine:
    """
    @brief
    Single entry point for validating a clients / workers / tasks snapshot.

    @details
    The engine is constructed explicitly and only holds configuration. Every
    validate() call works on the collections it is given: it never mutates
    them, builds its lookup cache inside the call, and returns the same
    findings (up to generated ids) for the same input.

    Finding order:
        (1) client batch, (2) worker batch, (3) task batch,
        (4) cross-entity checks in their fixed order.
    """

    def __init__(self, settings: ValidationConfig | None = None) -> None:
        self.settings = settings or ValidationConfig()
        self.cross = CrossEntityValidator(self.settings)

    def validate(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
        *,
        co_run_groups: CoRunGroups | None = None,
        assignments: Assignments | None = None,
    ) -> ValidationResult:
        """
        @brief
        Run every check and aggregate the outcome.

        @params
            clients, workers, tasks : Sequence
                Typed entity collections (already cleaned).
            co_run_groups : Mapping[str, Sequence[str]] | None
                Optional co-run groups for the circular-dependency check.
            assignments : Mapping[str, Sequence[str]] | None
                Optional worker -> task ids map for the overload check.

        @returns
            ValidationResult with findings, summary, validated entities and
            phase tables.
        """
        # (1) Per-collection validation
        client_findings = validate_clients_batch(clients)
        worker_findings = validate_workers_batch(workers)
        task_findings = validate_tasks_batch(tasks)
        logger.debug(
            "Batch findings: clients=%d workers=%d tasks=%d",
            len(client_findings),
            len(worker_findings),
            len(task_findings),
        )

        # (2) Cross-entity checks
        cross = self.cross.run(
            clients, workers, tasks, co_run_groups=co_run_groups, assignments=assignments
        )
        cross_findings = cross.findings
        findings = client_findings + worker_findings + task_findings + cross_findings

        # (3) Aggregate
        summary = summarize(findings)
        by_row = _group_by_row(findings)

        result = ValidationResult(
            findings=findings,
            summary=summary,
            validated_clients=[
                ValidatedClient(entity=c, findings=by_row[(EntityType.CLIENT.value, i)])
                for i, c in enumerate(clients)
            ],
            validated_workers=[
                ValidatedWorker(entity=w, findings=by_row[(EntityType.WORKER.value, i)])
                for i, w in enumerate(workers)
            ],
            validated_tasks=[
                ValidatedTask(entity=t, findings=by_row[(EntityType.TASK.value, i)])
                for i, t in enumerate(tasks)
            ],
            cross_entity_findings=cross_findings,
            phase_capacity=cross.load.capacity,
            phase_requirement=cross.load.requirement,
        )

        logger.info(
            "Validation: %d clients, %d workers, %d tasks -> %d errors, %d warnings, %d info (score=%d)",
            len(clients),
            len(workers),
            len(tasks),
            summary.errors,
            summary.warnings,
            summary.info,
            summary.score,
        )
        return result


def _group_by_row(
    findings: Sequence[ValidationFinding],
) -> defaultdict[tuple[str, int], list[ValidationFinding]]:
    """Index findings by (entity type, row); dataset-level rows (-1) never match an entity."""
    grouped: defaultdict[tuple[str, int], list[ValidationFinding]] = defaultdict(list)
    for finding in findings:
        if finding.row >= 0:
            grouped[(str(finding.entity_type), finding.row)].append(finding)
    return grouped


# ----------------------------
# THIN FACADE (static script call)
# ----------------------------
def validate(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    *,
    co_run_groups: CoRunGroups | None = None,
    assignments: Assignments | None = None,
    settings: ValidationConfig | None = None,
) -> ValidationResult:
    """Convenience wrapper: build a ValidationEngine and run one pass."""
    engine = ValidationEngine(settings)
    return engine.validate(
        clients, workers, tasks, co_run_groups=co_run_groups, assignments=assignments
    )


__all__ = ["ValidationEngine", "validate"]
