"""
@brief
Pydantic data models for the Alchemist validation project.

@details
Defines the canonical model types:
    - Client, Worker, Task: typed entity records (one spreadsheet row each)
    - ValidationFinding / ValidationSummary: engine output
    - ValidatedClient / ValidatedWorker / ValidatedTask: entity plus attached findings
    - ValidationResult: complete outcome of one validation pass
    - Config: runtime configuration (from config.yaml), including nested ValidationConfig

Python attributes are snake_case; spreadsheet column names (PascalCase) are the
aliases and are what findings refer to. Numeric entity fields accept
`int | float | None` so out-of-range, fractional or missing values survive
construction and are reported by the engine instead.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for configuration and data contracts.

    @details
    Forbids unknown fields and allows population by either attribute name or
    spreadsheet alias. Enum members are stored as their raw string values.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,  # Allow population by field name
        "use_enum_values": True,  # Export raw enum values
    }


class EntityType(str, Enum):
    CLIENT = "client"
    WORKER = "worker"
    TASK = "task"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# error > warning > info
SEVERITY_RANK: dict[str, int] = {
    Severity.ERROR.value: 0,
    Severity.WARNING.value: 1,
    Severity.INFO.value: 2,
}

Number = int | float


# ------------------------------------------------------------
# Entities
# ------------------------------------------------------------
class _Entity(_StrictBaseModel):
    entity_type: ClassVar[EntityType]
    id_field: ClassVar[str]
    id_prefix: ClassVar[str]

    def record(self) -> dict[str, Any]:
        """Column-keyed view of the entity (spreadsheet names)."""
        return self.model_dump(by_alias=True)

    @property
    def identifier(self) -> str:
        return str(self.record().get(self.id_field) or "")


class Client(_Entity):
    """
    @brief
    Represents one client record from clients.csv.

    @details
    A client requests tasks by id and carries a priority and a free-form JSON
    attribute blob.
    """

    entity_type: ClassVar[EntityType] = EntityType.CLIENT
    id_field: ClassVar[str] = "ClientID"
    id_prefix: ClassVar[str] = "C"

    client_id: str = Field("", alias="ClientID", description="Unique identifier")
    client_name: str = Field("", alias="ClientName")
    priority_level: Number | None = Field(None, alias="PriorityLevel", description="1..5")
    requested_task_ids: list[str] = Field(
        default_factory=list, alias="RequestedTaskIDs", description="Must reference TaskIDs"
    )
    group_tag: str = Field("", alias="GroupTag")
    attributes_json: str = Field("", alias="AttributesJSON", description="JSON, <= 5000 chars")


class Worker(_Entity):
    """
    @brief
    Represents one worker record from workers.csv.

    @details
    AvailableSlots are phase numbers in which the worker can take up to
    MaxLoadPerPhase units of work.
    """

    entity_type: ClassVar[EntityType] = EntityType.WORKER
    id_field: ClassVar[str] = "WorkerID"
    id_prefix: ClassVar[str] = "W"

    worker_id: str = Field("", alias="WorkerID", description="Unique identifier")
    worker_name: str = Field("", alias="WorkerName")
    skills: list[str] = Field(default_factory=list, alias="Skills")
    available_slots: list[Number] = Field(
        default_factory=list, alias="AvailableSlots", description="Phase numbers 1..50"
    )
    max_load_per_phase: Number | None = Field(None, alias="MaxLoadPerPhase", description="1..10")
    worker_group: str = Field("", alias="WorkerGroup")
    qualification_level: Number | None = Field(
        None, alias="QualificationLevel", description="1..5"
    )


class Task(_Entity):
    """
    @brief
    Represents one task record from tasks.csv.

    @details
    A task runs for Duration consecutive phases starting at one of its
    PreferredPhases, with at most MaxConcurrent parallel instances.
    """

    entity_type: ClassVar[EntityType] = EntityType.TASK
    id_field: ClassVar[str] = "TaskID"
    id_prefix: ClassVar[str] = "T"

    task_id: str = Field("", alias="TaskID", description="Unique identifier")
    task_name: str = Field("", alias="TaskName")
    category: str = Field("", alias="Category")
    duration: Number | None = Field(None, alias="Duration", description="Phases, 1..10")
    required_skills: list[str] = Field(default_factory=list, alias="RequiredSkills")
    preferred_phases: list[Number] = Field(
        default_factory=list, alias="PreferredPhases", description="Phase numbers 1..50"
    )
    max_concurrent: Number | None = Field(None, alias="MaxConcurrent", description="1..5")


ENTITY_MODELS: dict[str, type[_Entity]] = {
    EntityType.CLIENT.value: Client,
    EntityType.WORKER.value: Worker,
    EntityType.TASK.value: Task,
}


# ------------------------------------------------------------
# Validation output
# ------------------------------------------------------------
class ValidationFinding(_StrictBaseModel):
    """
    @brief
    One error / warning / info item produced by the engine.

    @details
    `row` is the collection index of the entity, or -1 for dataset-level
    findings (entity_id "SYSTEM" or "GLOBAL"). `auto_fixable` is only true when
    a suggested fix is present and the severity is not "error".
    """

    id: str = Field(..., description="Unique finding identifier")
    entity_type: EntityType
    entity_id: str
    row: int
    column: str
    field: str
    message: str
    severity: Severity
    suggested_fix: str | None = None
    auto_fixable: bool = False


class ValidationSummary(_StrictBaseModel):
    total: int = 0
    errors: int = 0
    warnings: int = 0
    info: int = 0
    score: int = Field(100, ge=0, le=100)
    by_entity: dict[str, int] = Field(default_factory=dict)
    by_field: dict[str, int] = Field(default_factory=dict)


class _ValidatedEntity(BaseModel):
    findings: list[ValidationFinding] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationFinding]:
        return [f for f in self.findings if f.severity == Severity.ERROR.value]

    @property
    def warnings(self) -> list[ValidationFinding]:
        return [f for f in self.findings if f.severity == Severity.WARNING.value]

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ValidatedClient(_ValidatedEntity):
    entity: Client


class ValidatedWorker(_ValidatedEntity):
    entity: Worker


class ValidatedTask(_ValidatedEntity):
    entity: Task


class ValidationResult(BaseModel):
    """
    @brief
    Complete outcome of one validation pass.

    @details
    `findings` holds every finding in deterministic order (clients, workers,
    tasks, then cross-entity checks). The validated_* lists attach to each
    record the findings that point at its row. Phase tables are the
    capacity / requirement maps used by the phase-capacity check.
    """

    findings: list[ValidationFinding] = Field(default_factory=list)
    summary: ValidationSummary = Field(default_factory=ValidationSummary)
    validated_clients: list[ValidatedClient] = Field(default_factory=list)
    validated_workers: list[ValidatedWorker] = Field(default_factory=list)
    validated_tasks: list[ValidatedTask] = Field(default_factory=list)
    cross_entity_findings: list[ValidationFinding] = Field(default_factory=list)
    phase_capacity: dict[int, int] = Field(default_factory=dict)
    phase_requirement: dict[int, int] = Field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.summary.errors == 0


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class IOPolicy(BaseModel):
    """
    @brief
    Controls which artifacts the pipeline writes.
    """

    write_report: bool = Field(True, description="Write validation_report.json")
    write_findings_csv: bool = Field(True, description="Write findings.csv")
    write_plot: bool = Field(True, description="Render phase_capacity.png")
    write_export: bool = Field(
        True, description="Write the export package when the export gate passes"
    )


class ValidationConfig(_StrictBaseModel):
    """
    @brief
    Controls behavior of the validation engine and the export gate.

    @details
    skill_matching selects the single skill-matching policy shared by every
    skill check. phase_overflow decides what happens to duration windows that
    run past phase_horizon. max_errors / fail_on_warnings configure the export
    gate; the engine itself never blocks anything.
    """

    skill_matching: Literal["exact", "substring"] = Field(
        "exact", description="exact: case-insensitive equality; substring: either contains other"
    )
    phase_overflow: Literal["clip", "allow"] = Field(
        "clip", description="clip: drop window phases past phase_horizon; allow: keep them"
    )
    phase_horizon: int = Field(50, ge=1, description="Last schedulable phase")
    max_errors: int = Field(0, ge=0, description="Export gate: tolerated error findings")
    fail_on_warnings: bool = Field(False, description="Export gate: block on any warning")


class VisualConfig(BaseModel):
    """
    @brief
    Figure dimensions and DPI for the phase-capacity chart.
    """

    width: float = Field(12.0, description="Figure width in inches")
    height: float = Field(6.0, description="Figure height in inches")
    dpi: int = Field(120, description="Output figure DPI")


class Config(_StrictBaseModel):
    """
    @brief
    Represents the full runtime configuration loaded from config.yaml.

    @details
    Combines input locations, validation settings, artifact policy and the
    optional co-run groups / assignment map fed to the cross-entity checks.
    """

    clients_csv: str | None = None
    workers_csv: str | None = None
    tasks_csv: str | None = None
    output_dir: str | None = "data/output"

    io_policy: IOPolicy = Field(default_factory=IOPolicy.model_construct)
    validation: ValidationConfig = Field(default_factory=ValidationConfig.model_construct)
    visual: VisualConfig = Field(default_factory=VisualConfig.model_construct)

    co_run_groups: dict[str, list[str]] = Field(
        default_factory=dict, description="group id -> task ids that run together"
    )
    assignments: dict[str, list[str]] = Field(
        default_factory=dict, description="worker id -> assigned task ids"
    )


__all__ = [
    "Client",
    "Config",
    "ENTITY_MODELS",
    "EntityType",
    "SEVERITY_RANK",
    "Severity",
    "Task",
    "ValidatedClient",
    "ValidatedTask",
    "ValidatedWorker",
    "ValidationConfig",
    "ValidationFinding",
    "ValidationResult",
    "ValidationSummary",
    "Worker",
]
