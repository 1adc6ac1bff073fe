# src/alchemist/validator/rules.py
"""Domain limits shared by the entity and cross-entity validators."""

from __future__ import annotations

from typing import NamedTuple


class Bounds(NamedTuple):
    min: int
    max: int


PRIORITY_LEVEL = Bounds(1, 5)
QUALIFICATION_LEVEL = Bounds(1, 5)
DURATION = Bounds(1, 10)
MAX_LOAD_PER_PHASE = Bounds(1, 10)
MAX_CONCURRENT = Bounds(1, 5)
PHASE = Bounds(1, 50)

MAX_ARRAY_LENGTH = 50
MAX_STRING_LENGTH = 1000
MAX_JSON_SIZE = 5000

# Soft business-logic thresholds (warnings)
MAX_REQUESTED_TASKS = 20
MAX_WORKER_SKILLS = 10
MAX_WORKER_PHASES = 30
MAX_TASK_SKILLS = 5

# Phase / worker utilisation above this ratio is "near capacity"
NEAR_CAPACITY_RATIO = 0.8

# Score deductions per finding
SEVERITY_WEIGHTS = {"error": 10, "warning": 5, "info": 1}

# Sentinels for dataset-level findings
SYSTEM_ENTITY_ID = "SYSTEM"
GLOBAL_ENTITY_ID = "GLOBAL"
SENTINEL_ROW = -1
