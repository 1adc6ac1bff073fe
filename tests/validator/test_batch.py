# tests/validator/test_batch.py
from __future__ import annotations

from alchemist.validator.batch import (
    validate_clients_batch,
    validate_tasks_batch,
    validate_workers_batch,
)


def test_duplicate_ids_reported_n_minus_one_times(make_client):
    """
    @brief
    Three records sharing one id yield exactly two duplicate errors.

    @details
    The first occurrence is kept silent; the 2nd and 3rd are reported on
    their own rows.
    """
    # --- Arrange ---
    clients = [make_client("C001"), make_client("C001"), make_client("C001")]

    # --- Act ---
    out = validate_clients_batch(clients)

    # --- Assert ---
    dupes = [f for f in out if f.message.startswith("Duplicate")]
    assert len(dupes) == 2
    assert [f.row for f in dupes] == [1, 2]
    assert all(f.field == "ClientID" and f.severity == "error" for f in dupes)


def test_duplicates_come_before_record_findings(make_task):
    # --- Arrange ---
    tasks = [make_task("T001", duration=0), make_task("T001")]

    # --- Act ---
    out = validate_tasks_batch(tasks)

    # --- Assert ---
    assert out[0].message == "Duplicate task ID: T001"
    assert out[1].field == "Duration"
    assert out[1].row == 0


def test_missing_ids_are_not_duplicates(make_worker):
    # --- Arrange ---
    workers = [make_worker(""), make_worker("")]

    # --- Act ---
    out = validate_workers_batch(workers)

    # --- Assert ---
    assert not any(f.message.startswith("Duplicate") for f in out)
    assert [f.entity_id for f in out] == ["WORKER_0", "WORKER_1"]


def test_clean_batch_is_empty(make_worker):
    # --- Act / Assert ---
    assert validate_workers_batch([make_worker("W001"), make_worker("W002")]) == []
