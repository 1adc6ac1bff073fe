# tests/dataloader/test_postload_handler.py
import json
import logging
import tempfile
from pathlib import Path

import pytest

from alchemist.dataloader.postload_handler import LoadResultHandler
from alchemist.dataloader.types import LoadResult
from alchemist.schemas.models import Client, EntityType, Task


def _ok(entity_type, entities):
    return LoadResult(
        success=True,
        entity_type=entity_type,
        entities=entities,
        total_rows=len(entities),
        kept_rows=len(entities),
    )


def test_handle_success_returns_collections(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    """
    @brief
    Validates normal success branch of LoadResultHandler.

    @details
    Ensures that when every LoadResult indicates success=True, the handler
    returns the entity lists keyed by entity type, does not create any JSON
    error file, and logs that validation can start.
    """
    # --- Arrange ---
    caplog.set_level(logging.INFO)
    clients = [Client(ClientID="C001"), Client(ClientID="C002")]
    tasks = [Task(TaskID="T001")]
    handler = LoadResultHandler(output_dir=tmp_path)

    # --- Act ---
    out = handler.handle([_ok(EntityType.CLIENT, clients), _ok(EntityType.TASK, tasks)])

    # --- Assert ---
    assert out == {"client": clients, "task": tasks}
    assert not (tmp_path / "load_errors.json").exists()
    assert "ready for validation" in caplog.text


def test_handle_failure_writes_json_and_returns_none(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
):
    """
    @brief
    Verifies failure branch behavior: JSON report creation and None return.

    @details
    When any LoadResult has success=False, the handler writes load_errors.json
    with the issues of the failed loads tagged by entity type, returns None
    and logs an error summary.
    """
    # --- Arrange ---
    caplog.set_level(logging.ERROR)
    errors = [
        {"kind": "schema_error", "line_no": 5, "entity_id": "W001", "message": "bad"},
        {"kind": "schema_error", "line_no": 8, "entity_id": "W002", "message": "worse"},
    ]
    failed = LoadResult(success=False, entity_type=EntityType.WORKER, errors=errors, total_rows=10)
    handler = LoadResultHandler(output_dir=tmp_path)

    # --- Act ---
    output = handler.handle([_ok(EntityType.CLIENT, [Client(ClientID="C001")]), failed])

    # --- Assert ---
    assert output is None
    out_file = tmp_path / "load_errors.json"
    assert out_file.exists()
    data = json.loads(out_file.read_text(encoding="utf-8"))
    assert len(data) == len(errors)
    assert data[0]["entity_type"] == "worker"
    assert data[0]["kind"] == "schema_error"
    assert "input loading failed" in caplog.text


def test_handle_failure_json_write_error(
    monkeypatch, tmp_path: Path, caplog: pytest.LogCaptureFixture
):
    """
    @brief
    Confirms error handling when the JSON report cannot be written.

    @details
    Simulates an I/O failure while preparing the temporary file. The handler
    must log the issue and return None without raising.
    """
    # --- Arrange ---
    caplog.set_level(logging.ERROR)
    failed = LoadResult(
        success=False,
        entity_type=EntityType.TASK,
        errors=[{"kind": "schema_error", "line_no": 1, "entity_id": "T001", "message": "x"}],
    )

    def fail_mkstemp(*_, **__):
        raise OSError("Permission denied")

    monkeypatch.setattr(tempfile, "mkstemp", fail_mkstemp)
    handler = LoadResultHandler(output_dir=tmp_path)

    # --- Act ---
    out = handler.handle([failed])

    # --- Assert ---
    assert out is None
    assert "failed to write error report" in caplog.text.lower()
