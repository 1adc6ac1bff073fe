# scripts/gen_synthetic_data.py
"""
Synthetic clients / workers / tasks generator (single run -> three CSV files).

- Parameters are constants below (no CLI args); generation is seeded.
- Skills are drawn from a fixed pool; each task requires 1..2 skills taken
  from one worker, so every task has at least one capable worker.
- With DEFECT_RATE > 0 some rows get typical spreadsheet defects (out-of-range
  priority, unknown requested task, malformed JSON, duplicate id) to exercise
  the validation engine.
- List cells are written comma-separated, AttributesJSON as a JSON string.
"""

from __future__ import annotations

import csv
import json
import random
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

# =========================
# CONFIG — EDIT THESE
# =========================
N_CLIENTS: int = 20
N_WORKERS: int = 15
N_TASKS: int = 25
HORIZON: int = 12  # phases drawn from 1..HORIZON
DEFECT_RATE: float = 0.0  # share of rows that receive one defect
OUTPUT_DIR: str = "data/input"
RANDOM_SEED: int = 42
# =========================

SKILLS = (
    "Python",
    "SQL",
    "JavaScript",
    "React",
    "Docker",
    "Kubernetes",
    "ML",
    "Data Analysis",
    "UI/UX",
    "Testing",
)
GROUP_TAGS = ("Enterprise", "SMB", "Startup")
WORKER_GROUPS = ("Frontend", "Backend", "Data", "Ops")
CATEGORIES = ("Development", "Analytics", "Design", "Operations")

CLIENT_COLUMNS = ["ClientID", "ClientName", "PriorityLevel", "RequestedTaskIDs", "GroupTag", "AttributesJSON"]
WORKER_COLUMNS = [
    "WorkerID",
    "WorkerName",
    "Skills",
    "AvailableSlots",
    "MaxLoadPerPhase",
    "WorkerGroup",
    "QualificationLevel",
]
TASK_COLUMNS = [
    "TaskID",
    "TaskName",
    "Category",
    "Duration",
    "RequiredSkills",
    "PreferredPhases",
    "MaxConcurrent",
]


def _join(values: Iterable[Any]) -> str:
    return ",".join(str(v) for v in values)


def generate(
    n_clients: int = N_CLIENTS,
    n_workers: int = N_WORKERS,
    n_tasks: int = N_TASKS,
    *,
    seed: int = RANDOM_SEED,
    defect_rate: float = DEFECT_RATE,
) -> dict[str, list[dict[str, Any]]]:
    """
    @brief
    Build raw spreadsheet rows for the three entity files.

    @returns
        {"clients": [...], "workers": [...], "tasks": [...]} with CSV-ready cells.
    """
    rng = random.Random(seed)

    # (1) Workers first: their skills bound what tasks may require
    workers: list[dict[str, Any]] = []
    for i in range(1, n_workers + 1):
        slots = sorted(rng.sample(range(1, HORIZON + 1), k=rng.randint(3, min(8, HORIZON))))
        workers.append(
            {
                "WorkerID": f"W{i:03d}",
                "WorkerName": f"Worker {i}",
                "Skills": _join(rng.sample(SKILLS, k=rng.randint(2, 4))),
                "AvailableSlots": _join(slots),
                "MaxLoadPerPhase": rng.randint(1, 3),
                "WorkerGroup": rng.choice(WORKER_GROUPS),
                "QualificationLevel": rng.randint(1, 5),
            }
        )
    worker_skills = [w["Skills"].split(",") for w in workers]

    # (2) Tasks
    tasks: list[dict[str, Any]] = []
    for i in range(1, n_tasks + 1):
        tasks.append(
            {
                "TaskID": f"T{i:03d}",
                "TaskName": f"Task {i}",
                "Category": rng.choice(CATEGORIES),
                "Duration": rng.randint(1, 3),
                "RequiredSkills": _join(rng.sample(rng.choice(worker_skills), k=rng.randint(1, 2))),
                "PreferredPhases": _join(sorted(rng.sample(range(1, HORIZON + 1), k=rng.randint(1, 3)))),
                "MaxConcurrent": 1,
            }
        )
    task_ids = [t["TaskID"] for t in tasks]

    # (3) Clients
    clients: list[dict[str, Any]] = []
    for i in range(1, n_clients + 1):
        clients.append(
            {
                "ClientID": f"C{i:03d}",
                "ClientName": f"Client {i}",
                "PriorityLevel": rng.randint(1, 5),
                "RequestedTaskIDs": _join(rng.sample(task_ids, k=min(len(task_ids), rng.randint(1, 3)))),
                "GroupTag": rng.choice(GROUP_TAGS),
                "AttributesJSON": json.dumps({"budget": rng.randint(10, 500) * 1000}),
            }
        )

    # (4) Optional defects
    if defect_rate > 0:
        _inject_defects(rng, clients, workers, tasks, defect_rate)

    return {"clients": clients, "workers": workers, "tasks": tasks}


def _inject_defects(
    rng: random.Random,
    clients: list[dict[str, Any]],
    workers: list[dict[str, Any]],
    tasks: list[dict[str, Any]],
    rate: float,
) -> None:
    for row in clients:
        if rng.random() < rate:
            kind = rng.choice(("priority", "reference", "json"))
            if kind == "priority":
                row["PriorityLevel"] = 7
            elif kind == "reference":
                row["RequestedTaskIDs"] = _join([row["RequestedTaskIDs"], "T999"])
            else:
                row["AttributesJSON"] = "{budget: 1000"
    for row in workers:
        if rng.random() < rate:
            row["AvailableSlots"] = _join([row["AvailableSlots"], HORIZON + 60])
    if len(tasks) > 1 and rng.random() < rate:
        tasks[-1]["TaskID"] = tasks[0]["TaskID"]


def _write_csv(path: Path, columns: list[str], rows: Iterable[Mapping[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def write_dataset(out_dir: Path, dataset: Mapping[str, list[dict[str, Any]]]) -> dict[str, Path]:
    """Write clients.csv, workers.csv and tasks.csv into out_dir."""
    paths = {
        "clients": out_dir / "clients.csv",
        "workers": out_dir / "workers.csv",
        "tasks": out_dir / "tasks.csv",
    }
    _write_csv(paths["clients"], CLIENT_COLUMNS, dataset["clients"])
    _write_csv(paths["workers"], WORKER_COLUMNS, dataset["workers"])
    _write_csv(paths["tasks"], TASK_COLUMNS, dataset["tasks"])
    return paths


def main() -> int:
    dataset = generate()
    paths = write_dataset(Path(OUTPUT_DIR), dataset)
    print(
        f"[GEN] clients={len(dataset['clients'])}, workers={len(dataset['workers'])}, "
        f"tasks={len(dataset['tasks'])}, defect_rate={DEFECT_RATE}"
    )
    for p in paths.values():
        print(f"[GEN] wrote: {p}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
