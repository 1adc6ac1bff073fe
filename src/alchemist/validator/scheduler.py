# src/alchemist/validator/scheduler.py
from __future__ import annotations

import copy
import itertools
import logging
import threading
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from alchemist.schemas.models import Client, Task, ValidationConfig, ValidationResult, Worker
from alchemist.validator.cross_entity import Assignments, CoRunGroups
from alchemist.validator.engine import ValidationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScheduledPass:
    """Result of one scheduled validation pass, tagged with its submission order."""

    sequence: int
    result: ValidationResult


class ValidationScheduler:
    """
    @brief
    Runs validation passes off the caller's thread, one at a time.

    @details
    submit() deep-copies the collections so a pass only ever sees a fully
    settled snapshot, even if the caller keeps editing its records. Passes run
    on a single worker thread in submission order. Each pass carries a
    monotonically increasing sequence number and `latest` is only replaced by
    a pass with a higher number, so an older pass can never overwrite a newer
    result. Passes are not cancelled; a superseded pass still completes.

    Usable as a context manager; close() waits for queued passes.
    """

    def __init__(self, settings: ValidationConfig | None = None) -> None:
        self.engine = ValidationEngine(settings)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="alchemist-validate")
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._latest: ScheduledPass | None = None

    @property
    def latest(self) -> ScheduledPass | None:
        """Most recent completed pass (highest sequence number seen so far)."""
        with self._lock:
            return self._latest

    def submit(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
        *,
        co_run_groups: CoRunGroups | None = None,
        assignments: Assignments | None = None,
    ) -> Future[ScheduledPass]:
        """
        @brief
        Snapshot the inputs and queue a validation pass.

        @returns
            Future resolving to the ScheduledPass of this submission.
        """
        # (1) Settle the snapshot before anything is queued
        snapshot = copy.deepcopy(
            (list(clients), list(workers), list(tasks), dict(co_run_groups or {}), dict(assignments or {}))
        )
        # (2) Number and enqueue atomically so queue order matches sequence order
        with self._lock:
            sequence = next(self._counter)
            future = self._executor.submit(self._run, sequence, *snapshot)

        logger.debug("Queued validation pass #%d", sequence)
        return future

    def _run(
        self,
        sequence: int,
        clients: list[Client],
        workers: list[Worker],
        tasks: list[Task],
        co_run_groups: dict[str, list[str]],
        assignments: dict[str, list[str]],
    ) -> ScheduledPass:
        result = self.engine.validate(
            clients, workers, tasks, co_run_groups=co_run_groups, assignments=assignments
        )
        scheduled = ScheduledPass(sequence=sequence, result=result)

        # (3) Publish unless a newer pass already did
        with self._lock:
            if self._latest is None or self._latest.sequence < sequence:
                self._latest = scheduled
            else:
                logger.debug(
                    "Discarding stale pass #%d (latest is #%d)", sequence, self._latest.sequence
                )
        return scheduled

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> ValidationScheduler:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = ["ScheduledPass", "ValidationScheduler"]
