# src/alchemist/validator/cross_entity.py
from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from alchemist.schemas.models import (
    Client,
    EntityType,
    Severity,
    Task,
    ValidationConfig,
    ValidationFinding,
    Worker,
)
from alchemist.validator import rules
from alchemist.validator.fields import is_number, make_finding
from alchemist.validator.parsers import parse_number_array, parse_string_array

logger = logging.getLogger(__name__)

CoRunGroups = Mapping[str, Sequence[str]]
Assignments = Mapping[str, Sequence[str]]


# ----------------------------
# AUXILIARY STRUCTURES / FUNCTIONS
# ----------------------------
@dataclass(frozen=True)
class PhaseLoad:
    """
    @brief
    Per-phase capacity and requirement tables.

    @details
    capacity[phase] sums MaxLoadPerPhase over workers available in the phase.
    requirement[phase] sums MaxConcurrent over tasks whose duration window,
    started at one of their preferred phases, covers the phase.
    """

    capacity: dict[int, int]
    requirement: dict[int, int]

    def utilization(self, phase: int) -> float:
        return self.requirement.get(phase, 0) / max(self.capacity.get(phase, 0), 1)


@dataclass(frozen=True)
class CrossEntityOutcome:
    """Findings of one cross-entity pass plus the phase tables it checked."""

    findings: list[ValidationFinding]
    load: PhaseLoad
    checks: dict[str, int]


class SkillMatcher:
    """
    One skill-matching policy shared by every skill check.

    exact: case-insensitive equality of trimmed names.
    substring: either name contains the other, case-insensitive.
    """

    def __init__(self, policy: str = "exact") -> None:
        self.policy = policy

    @staticmethod
    def normalize(skill: str) -> str:
        return skill.strip().casefold()

    def matches(self, have: str, need: str) -> bool:
        a, b = self.normalize(have), self.normalize(need)
        if not a or not b:
            return False
        if self.policy == "substring":
            return a in b or b in a
        return a == b

    def has_skill(self, skills: Sequence[str], need: str) -> bool:
        return any(self.matches(s, need) for s in skills)


def _positive_int(value: Any, default: int = 1) -> int:
    """Whole-number reading of a count field; missing or < 1 falls back to default."""
    if is_number(value) and value >= 1:
        return int(value)
    return default


def _phases(value: Any) -> list[int]:
    """Unique whole phase numbers in first-seen order."""
    return list(dict.fromkeys(int(p) for p in parse_number_array(value) if float(p).is_integer()))


def _unique(tokens: list[str], key=SkillMatcher.normalize) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for token in tokens:
        k = key(token)
        if k not in seen:
            seen.add(k)
            out.append(token)
    return out


@dataclass
class _CrossContext:
    """Lookup cache for one validation call; discarded afterwards."""

    task_ids: set[str]
    task_by_id: dict[str, Task]
    task_row: dict[str, int]
    worker_row: dict[str, int]
    worker_skills: list[list[str]]
    worker_slots: list[list[int]]
    task_skills: list[list[str]]
    checks: dict[str, int] = field(default_factory=dict)


# ---------------------------
# VALIDATOR CLASS (instance core)
# ----------------------------
class CrossEntityValidator:
    """
    @brief
    Consistency checks across clients, workers and tasks.

    @details
    Runs eight independent checks over the full triple: reference integrity,
    skill coverage, orphaned skills, phase capacity, max-concurrency
    feasibility, worker overload (with an optional assignment map), circular
    co-run dependencies (with optional co-run groups) and rule references
    (ids named by co-run groups and assignments must exist).

    Every check always runs; a failing check never suppresses another. Within
    a check, findings follow collection order (phase order for phase checks).
    The instance only holds settings, so one validator can serve many calls.
    """

    CHECKS = (
        "ReferenceIntegrity",
        "SkillCoverage",
        "OrphanedSkills",
        "PhaseCapacity",
        "ConcurrencyFeasibility",
        "WorkerOverload",
        "CircularDependency",
        "RuleReferences",
    )

    def __init__(self, settings: ValidationConfig | None = None) -> None:
        self.settings = settings or ValidationConfig()
        self.matcher = SkillMatcher(self.settings.skill_matching)

    # ---------- Public API ----------
    def validate(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
        co_run_groups: CoRunGroups | None = None,
        assignments: Assignments | None = None,
    ) -> list[ValidationFinding]:
        """
        @brief
        Run all cross-entity checks and return their findings in check order.

        @params
            clients, workers, tasks : Sequence
                Snapshot of the three collections.
            co_run_groups : Mapping[str, Sequence[str]] | None
                Group id -> task ids asserted to run together.
            assignments : Mapping[str, Sequence[str]] | None
                Worker id -> assigned task ids.
        """
        return self.run(
            clients, workers, tasks, co_run_groups=co_run_groups, assignments=assignments
        ).findings

    def run(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
        co_run_groups: CoRunGroups | None = None,
        assignments: Assignments | None = None,
    ) -> CrossEntityOutcome:
        """
        @brief
        Same as validate(), but also hands back the phase tables and per-check counts.

        @details
        The phase tables are built once per call and shared by the
        phase-capacity check and the caller.
        """
        ctx = self._build_context(workers, tasks)
        load = self.phase_load(workers, tasks)
        co_run_groups = co_run_groups or {}
        assignments = assignments or {}
        findings: list[ValidationFinding] = []

        for name, produced in (
            ("ReferenceIntegrity", self._check_reference_integrity(clients, ctx)),
            ("SkillCoverage", self._check_skill_coverage(tasks, ctx)),
            ("OrphanedSkills", self._check_orphaned_skills(ctx)),
            ("PhaseCapacity", self._check_phase_capacity(load)),
            ("ConcurrencyFeasibility", self._check_concurrency_feasibility(tasks, ctx)),
            ("WorkerOverload", self._check_worker_overload(workers, assignments, ctx)),
            ("CircularDependency", self._check_circular_dependencies(co_run_groups, ctx)),
            ("RuleReferences", self._check_rule_references(co_run_groups, assignments, ctx)),
        ):
            ctx.checks[name] = len(produced)
            findings.extend(produced)

        logger.debug("Cross-entity checks: %s", ctx.checks)
        return CrossEntityOutcome(findings=findings, load=load, checks=dict(ctx.checks))

    def phase_load(self, workers: Sequence[Worker], tasks: Sequence[Task]) -> PhaseLoad:
        """
        @brief
        Build the per-phase capacity and requirement tables.

        @details
        Duplicate slots on one worker count once. Each preferred phase of a
        task opens a window of Duration consecutive phases; every phase in the
        window needs MaxConcurrent slots. With phase_overflow="clip" window
        phases outside [1, phase_horizon] are dropped; with "allow" they are
        kept and show up as phases without capacity.

        A Duration above the domain maximum counts as the maximum, so an
        out-of-range value (reported by entity validation) cannot blow up
        the window.
        """
        capacity: dict[int, int] = defaultdict(int)
        for worker in workers:
            load = _positive_int(worker.max_load_per_phase)
            for phase in _phases(worker.available_slots):
                capacity[phase] += load

        requirement: dict[int, int] = defaultdict(int)
        clip = self.settings.phase_overflow == "clip"
        horizon = self.settings.phase_horizon
        for task in tasks:
            duration = min(_positive_int(task.duration), rules.DURATION.max)
            concurrent = _positive_int(task.max_concurrent)
            for start in _phases(task.preferred_phases):
                stop = start + duration
                window = range(max(start, 1), min(stop, horizon + 1)) if clip else range(start, stop)
                for phase in window:
                    requirement[phase] += concurrent

        return PhaseLoad(capacity=dict(capacity), requirement=dict(requirement))

    # ---------- Context ----------
    def _build_context(self, workers: Sequence[Worker], tasks: Sequence[Task]) -> _CrossContext:
        task_by_id: dict[str, Task] = {}
        task_row: dict[str, int] = {}
        for index, task in enumerate(tasks):
            tid = task.identifier
            if tid and tid not in task_by_id:
                task_by_id[tid] = task
                task_row[tid] = index

        worker_row: dict[str, int] = {}
        for index, worker in enumerate(workers):
            worker_row.setdefault(worker.identifier, index)
        worker_row.pop("", None)

        return _CrossContext(
            task_ids=set(task_by_id),
            task_by_id=task_by_id,
            task_row=task_row,
            worker_row=worker_row,
            worker_skills=[parse_string_array(w.skills) for w in workers],
            worker_slots=[_phases(w.available_slots) for w in workers],
            task_skills=[_unique(parse_string_array(t.required_skills)) for t in tasks],
        )

    # ---------- Checks ----------
    def _check_reference_integrity(
        self, clients: Sequence[Client], ctx: _CrossContext
    ) -> list[ValidationFinding]:
        """Every RequestedTaskIDs entry must exist as a TaskID (one error per unknown id)."""
        findings: list[ValidationFinding] = []
        for index, client in enumerate(clients):
            cid = client.identifier or f"CLIENT_{index}"
            for task_id in dict.fromkeys(parse_string_array(client.requested_task_ids)):
                # blank tokens belong to the array-format check
                if not task_id.strip() or task_id in ctx.task_ids:
                    continue
                findings.append(
                    make_finding(
                        EntityType.CLIENT,
                        cid,
                        index,
                        "RequestedTaskIDs",
                        f'Referenced task "{task_id}" does not exist',
                        Severity.ERROR,
                        f'Remove invalid task reference or add task with ID "{task_id}"',
                    )
                )
        return findings

    def _check_skill_coverage(
        self, tasks: Sequence[Task], ctx: _CrossContext
    ) -> list[ValidationFinding]:
        """
        @brief
        Required skills must be held by enough workers.

        @details
        A skill no worker holds is an error. A skill held by fewer workers than
        the task's MaxConcurrent is a warning (coverage too thin to run all
        concurrent instances).
        """
        findings: list[ValidationFinding] = []
        for index, task in enumerate(tasks):
            tid = task.identifier or f"TASK_{index}"
            concurrent = _positive_int(task.max_concurrent)
            for skill in ctx.task_skills[index]:
                holders = sum(1 for skills in ctx.worker_skills if self.matcher.has_skill(skills, skill))
                if holders == 0:
                    findings.append(
                        make_finding(
                            EntityType.TASK,
                            tid,
                            index,
                            "RequiredSkills",
                            f'Required skill "{skill}" is not available in any worker',
                            Severity.ERROR,
                            f'Add workers with skill "{skill}" or remove this requirement',
                        )
                    )
                elif holders < concurrent:
                    findings.append(
                        make_finding(
                            EntityType.TASK,
                            tid,
                            index,
                            "RequiredSkills",
                            f'Insufficient coverage for concurrency: skill "{skill}" is held by '
                            f"{holders} worker(s) but MaxConcurrent is {concurrent}",
                            Severity.WARNING,
                        )
                    )
        return findings

    def _check_orphaned_skills(self, ctx: _CrossContext) -> list[ValidationFinding]:
        """Worker skills no task requires (info, one finding per skill)."""
        required = [skill for skills in ctx.task_skills for skill in skills]

        holders: dict[str, int] = {}
        display: dict[str, str] = {}
        for skills in ctx.worker_skills:
            for skill in _unique(skills):
                key = SkillMatcher.normalize(skill)
                holders[key] = holders.get(key, 0) + 1
                display.setdefault(key, skill)

        findings: list[ValidationFinding] = []
        for key, count in holders.items():
            skill = display[key]
            if any(self.matcher.matches(skill, need) for need in required):
                continue
            findings.append(
                make_finding(
                    EntityType.WORKER,
                    rules.SYSTEM_ENTITY_ID,
                    rules.SENTINEL_ROW,
                    "Skills",
                    f'Skill "{skill}" is available but not required by any task '
                    f"({count} worker(s) have this skill)",
                    Severity.INFO,
                )
            )
        return findings

    def _check_phase_capacity(self, load: PhaseLoad) -> list[ValidationFinding]:
        """Oversaturated phases are errors; utilisation in (0.8, 1.0] is a warning."""
        findings: list[ValidationFinding] = []

        for phase in sorted(load.requirement):
            required = load.requirement[phase]
            available = load.capacity.get(phase, 0)
            utilization = load.utilization(phase)
            percent = int(utilization * 100 + 0.5)

            if required > available:
                findings.append(
                    make_finding(
                        EntityType.TASK,
                        rules.GLOBAL_ENTITY_ID,
                        rules.SENTINEL_ROW,
                        "PhaseCapacity",
                        f"Phase {phase} is oversaturated: {required} slots required but only "
                        f"{available} available ({percent}% utilization)",
                        Severity.ERROR,
                        f"Add more workers for phase {phase} or reduce task requirements",
                        column=f"Phase {phase}",
                    )
                )
            elif utilization > rules.NEAR_CAPACITY_RATIO:
                findings.append(
                    make_finding(
                        EntityType.TASK,
                        rules.GLOBAL_ENTITY_ID,
                        rules.SENTINEL_ROW,
                        "PhaseCapacity",
                        f"Phase {phase} is near capacity: {required} slots required out of "
                        f"{available} available ({percent}% utilization)",
                        Severity.WARNING,
                        column=f"Phase {phase}",
                    )
                )
        return findings

    def _check_concurrency_feasibility(
        self, tasks: Sequence[Task], ctx: _CrossContext
    ) -> list[ValidationFinding]:
        """
        @brief
        Enough capable workers must exist to run MaxConcurrent instances.

        @details
        A worker is capable when every required skill of the task matches one
        of its skills. Fewer capable workers than MaxConcurrent is an error;
        fewer capable workers available in a given preferred phase is a
        warning for that phase.
        """
        findings: list[ValidationFinding] = []
        for index, task in enumerate(tasks):
            tid = task.identifier or f"TASK_{index}"
            concurrent = _positive_int(task.max_concurrent)
            required = ctx.task_skills[index]

            capable = [
                w_index
                for w_index, skills in enumerate(ctx.worker_skills)
                if all(self.matcher.has_skill(skills, need) for need in required)
            ]

            if len(capable) < concurrent:
                findings.append(
                    make_finding(
                        EntityType.TASK,
                        tid,
                        index,
                        "MaxConcurrent",
                        f"Max concurrency ({concurrent}) exceeds available workers "
                        f"({len(capable)}) with required skills",
                        Severity.ERROR,
                        f"Reduce MaxConcurrent to {len(capable)}" if capable else None,
                    )
                )

            for phase in _phases(task.preferred_phases):
                in_phase = sum(1 for w_index in capable if phase in ctx.worker_slots[w_index])
                if in_phase < concurrent:
                    findings.append(
                        make_finding(
                            EntityType.TASK,
                            tid,
                            index,
                            "MaxConcurrent",
                            f"Max concurrency ({concurrent}) exceeds workers available in "
                            f"phase {phase} ({in_phase} available)",
                            Severity.WARNING,
                        )
                    )
        return findings

    def _check_worker_overload(
        self, workers: Sequence[Worker], assignments: Assignments, ctx: _CrossContext
    ) -> list[ValidationFinding]:
        """
        @brief
        Assigned phase-load per worker against its capacity.

        @details
        load = sum of Duration over assigned tasks that exist;
        capacity = number of available slots * MaxLoadPerPhase.
        Above capacity is an error, above 80 % a warning. Without an
        assignment map every load is zero and nothing is reported.
        """
        if not assignments:
            return []

        findings: list[ValidationFinding] = []
        for index, worker in enumerate(workers):
            wid = worker.identifier
            if not wid or wid not in assignments:
                continue

            load = 0
            for task_id in parse_string_array(assignments[wid]):
                task = ctx.task_by_id.get(task_id)
                if task is not None:
                    load += _positive_int(task.duration)

            capacity = len(ctx.worker_slots[index]) * _positive_int(worker.max_load_per_phase)
            if load > capacity:
                findings.append(
                    make_finding(
                        EntityType.WORKER,
                        wid,
                        index,
                        "MaxLoadPerPhase",
                        f"Worker is overloaded: {load} phases assigned but only "
                        f"{capacity} capacity available",
                        Severity.ERROR,
                        "Reassign tasks or increase availability",
                    )
                )
            elif load > capacity * rules.NEAR_CAPACITY_RATIO:
                findings.append(
                    make_finding(
                        EntityType.WORKER,
                        wid,
                        index,
                        "MaxLoadPerPhase",
                        f"Worker approaching capacity: {load}/{capacity} phases "
                        f"({int(load / capacity * 100 + 0.5)}%)",
                        Severity.WARNING,
                    )
                )
        return findings

    def _check_circular_dependencies(
        self, co_run_groups: CoRunGroups, ctx: _CrossContext
    ) -> list[ValidationFinding]:
        """
        @brief
        Detect cycles inside co-run groups (one error per offending group).

        @details
        Inside a group every other member is treated as a dependency of each
        member. A depth-first walk that reaches a node already on the current
        recursion stack marks the group as circular. The error is attributed
        to the first member that exists as a task, or to GLOBAL when none does;
        unknown members are reported by the rule-reference check.
        """
        findings: list[ValidationFinding] = []

        for group_id, raw_members in co_run_groups.items():
            members = list(dict.fromkeys(parse_string_array(raw_members)))
            visited: set[str] = set()
            stack: set[str] = set()

            def has_cycle(node: str) -> bool:
                if node in stack:
                    return True
                if node in visited:
                    return False
                visited.add(node)
                stack.add(node)
                for dep in members:
                    if dep != node and has_cycle(dep):
                        return True
                stack.discard(node)
                return False

            if not any(has_cycle(task_id) for task_id in members):
                continue

            known = [task_id for task_id in members if task_id in ctx.task_ids]
            owner = known[0] if known else rules.GLOBAL_ENTITY_ID
            findings.append(
                make_finding(
                    EntityType.TASK,
                    owner,
                    ctx.task_row.get(owner, rules.SENTINEL_ROW),
                    "CoRunGroup",
                    f"Circular dependency detected in co-run group {group_id}",
                    Severity.ERROR,
                    column=f"CoRunGroup[{group_id}]",
                )
            )
        return findings

    def _check_rule_references(
        self, co_run_groups: CoRunGroups, assignments: Assignments, ctx: _CrossContext
    ) -> list[ValidationFinding]:
        """
        @brief
        Every id named by a co-run group or an assignment must exist.

        @details
        (1) Co-run members that are not task ids: one error per member, at
            dataset level.
        (2) Assignment keys that are not worker ids: one error per key.
        (3) Assigned task ids that do not exist: one error per id, on the
            worker row when the worker exists.
        """
        findings: list[ValidationFinding] = []

        # (1) Co-run groups
        for group_id, raw_members in co_run_groups.items():
            for task_id in dict.fromkeys(parse_string_array(raw_members)):
                if task_id in ctx.task_ids:
                    continue
                findings.append(
                    make_finding(
                        EntityType.TASK,
                        rules.GLOBAL_ENTITY_ID,
                        rules.SENTINEL_ROW,
                        "CoRunGroup",
                        f'Co-run group {group_id} references unknown task "{task_id}"',
                        Severity.ERROR,
                        f'Remove "{task_id}" from co-run group {group_id} or add the task',
                        column=f"CoRunGroup[{group_id}]",
                    )
                )

        # (2) + (3) Assignments
        for worker_id, raw_tasks in assignments.items():
            row = ctx.worker_row.get(worker_id)
            if row is None:
                findings.append(
                    make_finding(
                        EntityType.WORKER,
                        rules.GLOBAL_ENTITY_ID,
                        rules.SENTINEL_ROW,
                        "Assignments",
                        f'Assignment references unknown worker "{worker_id}"',
                        Severity.ERROR,
                        f'Remove the assignment of "{worker_id}" or add the worker',
                        column=f"Assignments[{worker_id}]",
                    )
                )

            for task_id in dict.fromkeys(parse_string_array(raw_tasks)):
                if task_id in ctx.task_ids:
                    continue
                findings.append(
                    make_finding(
                        EntityType.WORKER,
                        worker_id if row is not None else rules.GLOBAL_ENTITY_ID,
                        rules.SENTINEL_ROW if row is None else row,
                        "Assignments",
                        f'Assignment of {worker_id} references unknown task "{task_id}"',
                        Severity.ERROR,
                        f'Remove "{task_id}" from the assignment of {worker_id} or add the task',
                        column=f"Assignments[{worker_id}]",
                    )
                )
        return findings


__all__ = ["CrossEntityOutcome", "CrossEntityValidator", "PhaseLoad", "SkillMatcher"]
