import sys
from pathlib import Path
from typing import Any

import pytest

# (1) Add repository root to sys.path to enable absolute imports
#     The root directory contains scripts/ and src/.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alchemist.schemas.models import Client, Task, Worker  # noqa: E402


# -----------------------------
# ENTITY FACTORIES
# -----------------------------
def _client(cid: str = "C001", **fields: Any) -> Client:
    """Valid client; keyword overrides use spreadsheet column names."""
    data: dict[str, Any] = {
        "ClientID": cid,
        "ClientName": f"Client {cid}",
        "PriorityLevel": 3,
        "RequestedTaskIDs": [],
        "GroupTag": "Enterprise",
        "AttributesJSON": "{}",
    }
    data.update(fields)
    return Client(**data)


def _worker(
    wid: str = "W001",
    skills: tuple[str, ...] = ("Python",),
    slots: tuple[int, ...] = (1, 2, 3),
    max_load: int | float | None = 2,
    **fields: Any,
) -> Worker:
    """Valid worker; keyword overrides use spreadsheet column names."""
    data: dict[str, Any] = {
        "WorkerID": wid,
        "WorkerName": f"Worker {wid}",
        "Skills": list(skills),
        "AvailableSlots": list(slots),
        "MaxLoadPerPhase": max_load,
        "WorkerGroup": "Backend",
        "QualificationLevel": 3,
    }
    data.update(fields)
    return Worker(**data)


def _task(
    tid: str = "T001",
    skills: tuple[str, ...] = ("Python",),
    phases: tuple[int, ...] = (1,),
    duration: int | float | None = 1,
    max_concurrent: int | float | None = 1,
    **fields: Any,
) -> Task:
    """Valid task; keyword overrides use spreadsheet column names."""
    data: dict[str, Any] = {
        "TaskID": tid,
        "TaskName": f"Task {tid}",
        "Category": "Development",
        "Duration": duration,
        "RequiredSkills": list(skills),
        "PreferredPhases": list(phases),
        "MaxConcurrent": max_concurrent,
    }
    data.update(fields)
    return Task(**data)


@pytest.fixture()
def make_client():
    return _client


@pytest.fixture()
def make_worker():
    return _worker


@pytest.fixture()
def make_task():
    return _task


def write_csv(path: Path, header: list[str], rows: list[list[Any]]) -> Path:
    """Write a small CSV with the csv module (quoting handled)."""
    import csv

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(rows)
    return path


@pytest.fixture()
def csv_writer():
    return write_csv


@pytest.fixture()
def sample_inputs(tmp_path: Path) -> dict[str, Path]:
    """
    @brief
    A small consistent dataset (2 clients, 2 workers, 2 tasks) as CSV files.

    @details
    Every reference resolves, every required skill is held, and phase load
    stays well below capacity, so the dataset validates without errors.
    """
    inputs = tmp_path / "input"
    return {
        "clients": write_csv(
            inputs / "clients.csv",
            ["ClientID", "ClientName", "PriorityLevel", "RequestedTaskIDs", "GroupTag", "AttributesJSON"],
            [
                ["C001", "Acme Corp", 5, "T001,T002", "Enterprise", '{"budget": 100000}'],
                ["C002", "TechStart", 3, "T002", "SMB", ""],
            ],
        ),
        "workers": write_csv(
            inputs / "workers.csv",
            [
                "WorkerID",
                "WorkerName",
                "Skills",
                "AvailableSlots",
                "MaxLoadPerPhase",
                "WorkerGroup",
                "QualificationLevel",
            ],
            [
                ["W001", "John", "JavaScript,React", "1,2,3,4", 3, "Frontend", 4],
                ["W002", "Jane", "Python,SQL", "1,2,3,4", 3, "Backend", 5],
            ],
        ),
        "tasks": write_csv(
            inputs / "tasks.csv",
            [
                "TaskID",
                "TaskName",
                "Category",
                "Duration",
                "RequiredSkills",
                "PreferredPhases",
                "MaxConcurrent",
            ],
            [
                ["T001", "Frontend", "Development", 1, "JavaScript,React", "1", 1],
                ["T002", "Backend", "Development", 1, "Python,SQL", "2", 1],
            ],
        ),
    }
