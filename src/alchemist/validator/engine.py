# src/alchemist/validator/engine.py
from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from alchemist.errors import ValidationError
from alchemist.metrics.quality import summarize_findings
from alchemist.schemas.coercion import is_positive_int
from alchemist.schemas.models import (
    Client,
    Config,
    CoRunRule,
    LoadLimitRule,
    PhaseWindowRule,
    Severity,
    Task,
    ValidationFinding,
    Worker,
    Workspace,
    parse_rule,
)
from alchemist.validator.capacity import (
    group_capacity,
    phase_capacity,
    phase_demand,
    qualified_workers,
    valid_phases,
)
from alchemist.validator.corun import find_corun_loops
from alchemist.validator.insights import collect_insights

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


# ----------------------------
# AUXILIARY FUNCTIONS
# ----------------------------
def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _finding_id(*parts: Any) -> str:
    return "-".join(str(p) for p in parts if p not in (None, ""))


def _as_collection(items: Any, label: str) -> list[Any]:
    """
    @brief
    Normalize a caller-supplied collection.

    @details
    None becomes an empty list. Strings, mappings and non-iterables are not
    collections of records; they are logged and treated as empty.
    """
    if items is None:
        return []
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
        logger.warning("Ignoring %s collection of type %s", label, type(items).__name__)
        return []
    return list(items)


def _coerce_records(items: Any, model: type[M], label: str) -> list[M]:
    """
    @brief
    Turn raw rows into entity models, skipping rows that cannot be read.

    @details
    Model instances pass through. Mappings go through the lenient intake
    model, which keeps malformed cell values for the checks to report. Only a
    row the model cannot read at all (or a non-mapping) is skipped with a
    warning, so a single bad row never aborts the run.
    """
    out: list[M] = []
    for index, item in enumerate(_as_collection(items, label)):
        if isinstance(item, model):
            out.append(item)
            continue
        if not isinstance(item, Mapping):
            logger.warning(
                "Skipping %s #%d: expected a mapping, got %s", label, index, type(item).__name__
            )
            continue
        try:
            out.append(model.model_validate(dict(item)))
        except (SchemaError, TypeError, ValueError) as e:
            logger.warning("Skipping %s #%d: %s", label, index, e)
    return out


def _coerce_rules(items: Any) -> list[Any]:
    out: list[Any] = []
    for index, item in enumerate(_as_collection(items, "rule")):
        try:
            out.append(parse_rule(item))
        except (SchemaError, TypeError, ValueError) as e:
            logger.warning("Skipping rule #%d: %s", index, e)
    return out


# ---------------------------
# VALIDATOR CLASS (instance core)
# ----------------------------
class ValidationEngine:
    """
    @brief
    Workspace validator for clients, workers, tasks and business rules.

    @details
    Runs field-level, referential and cross-rule checks in a fixed order and
    collects every anomaly as a ValidationFinding. Data problems never raise;
    the only exception surfaced is a failure to persist the report.
    One instance serves one run and holds no state shared with other runs.
    """

    # ---------- Constructor ----------
    def __init__(
        self,
        clients: Any = None,
        workers: Any = None,
        tasks: Any = None,
        rules: Any = None,
        cfg: Config | None = None,
    ) -> None:
        """
        @brief
        Initialize validation context.

        @details
        Normalizes the collections (None or malformed containers become
        empty), coerces raw rows into models and builds the task lookup.

        @params
            clients, workers, tasks : Iterable
                Entity models or raw row mappings.
            rules : Iterable
                BusinessRule models or raw rule mappings.
            cfg : Config | None
                Runtime configuration; defaults apply when omitted.
        """
        self.cfg = cfg or Config()
        self.clients: list[Client] = _coerce_records(clients, Client, "client")
        self.workers: list[Worker] = _coerce_records(workers, Worker, "worker")
        self.tasks: list[Task] = _coerce_records(tasks, Task, "task")
        self.rules: list[Any] = _coerce_rules(rules)

        # (1) First occurrence wins for lookups; duplicates are reported separately
        self.task_by_id: dict[str, Task] = {}
        for task in self.tasks:
            if task.task_id:
                self.task_by_id.setdefault(task.task_id, task)

        # (2) Accumulators
        self.findings: list[ValidationFinding] = []
        self.checks: dict[str, bool] = {}

    # ---------- Public lifecycle API ----------
    def run_all_checks(self) -> list[ValidationFinding]:
        """
        @brief
        Execute the full validation sequence.

        @details
        Findings are appended in check order; within a check they follow the
        input order of the collections. Previous findings are discarded.

        @returns
            A new list with every finding of this run.
        """
        self.findings = []
        self.checks = {}

        sequence: list[tuple[str, Callable[[], None]]] = [
            ("RequiredFields", self._check_required_fields),
            ("UniqueIds", self._check_unique_ids),
            ("AvailableSlots", self._check_available_slots),
            ("Ranges", self._check_ranges),
            ("AttributesJSON", self._check_attributes_json),
            ("References", self._check_references),
            ("CoRunLoops", self._check_corun_loops),
            ("PhaseWindows", self._check_phase_windows),
            ("LoadLimits", self._check_load_limits),
            ("WorkerLoad", self._check_worker_load),
            ("PhaseSaturation", self._check_phase_saturation),
            ("SkillCoverage", self._check_skill_coverage),
            ("MaxConcurrency", self._check_max_concurrency),
        ]
        for name, check in sequence:
            before = len(self.findings)
            check()
            self.checks[name] = len(self.findings) == before

        if self.cfg.validation.include_insights:
            self.findings.extend(
                collect_insights(
                    self.clients, self.workers, self.tasks, self._corun_task_lists()
                )
            )

        counts = Counter(f.severity for f in self.findings)
        logger.info(
            "Validation finished: %d error(s), %d warning(s), %d info",
            counts[Severity.ERROR.value],
            counts[Severity.WARNING.value],
            counts[Severity.INFO.value],
        )
        return list(self.findings)

    def build_report(self) -> dict[str, Any]:
        """
        @brief
        Assemble validation results into a structured dictionary.

        @details
        The workspace is valid when no error exists; with
        validation.fail_on_warnings, warnings invalidate it too.
        No files are written at this stage.
        """
        errors = [f.to_payload() for f in self.findings if f.severity == Severity.ERROR]
        warnings = [f.to_payload() for f in self.findings if f.severity == Severity.WARNING]
        info = [f.to_payload() for f in self.findings if f.severity == Severity.INFO]

        is_valid = not errors and not (self.cfg.validation.fail_on_warnings and warnings)

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "valid": bool(is_valid),
            "errors": errors,
            "warnings": warnings,
            "info": info,
            "findings": [f.to_payload() for f in self.findings],
            "checks": dict(self.checks),
            "summary": summarize_findings(self.findings),
        }

    def save_report(
        self,
        report: dict[str, Any],
        out_dir: Path | None = None,
        filename: str = "validation_report.json",
    ) -> Path:
        """
        Writes the report atomically to disk.

        Args:
            report: Validation report dictionary.
            out_dir: Target directory (defaults to cfg.output_dir).
            filename: Target filename (default 'validation_report.json').

        Returns:
            Path to the written JSON file.
        """
        target_dir = Path(out_dir or self.cfg.output_dir or "data/output")
        final_path = target_dir / filename
        tmp_path = final_path.with_suffix(".tmp")

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(report, f, indent=2, ensure_ascii=False)
            tmp_path.replace(final_path)
        except OSError as e:
            # (1) Never leave a half-written report behind
            tmp_path.unlink(missing_ok=True)
            raise ValidationError(
                f"Failed to write validation report: {e}",
                source="ValidationEngine.save_report",
                suggested_action="Check disk permissions and free space.",
            ) from e

        logger.info("Validation report saved: %s", final_path)
        return final_path

    # ---------- Checks (one method per check, run in this order) ----------
    def _check_required_fields(self) -> None:
        """Every client needs a ClientID and a ClientName."""
        for index, client in enumerate(self.clients):
            if not client.client_id:
                self._add(
                    id=_finding_id("missing-client-id", index),
                    type="missing-required",
                    severity=Severity.ERROR,
                    message="Missing required ClientID",
                    entity=f"Client-{index}",
                    field="ClientID",
                    suggestion="Add a unique ClientID",
                )
            if not client.client_name:
                self._add(
                    id=_finding_id("missing-client-name", client.client_id or index),
                    type="missing-required",
                    severity=Severity.ERROR,
                    message="Missing required ClientName",
                    entity=client.client_id or f"Client-{index}",
                    field="ClientName",
                    suggestion="Add a descriptive client name",
                )

    def _check_unique_ids(self) -> None:
        """
        @brief
        Report each duplicated identifier once per entity type.

        @details
        Duplicates are listed in order of first occurrence; empty IDs are
        covered by the required-field check.
        """
        collections = (
            ("Client", [c.client_id for c in self.clients]),
            ("Worker", [w.worker_id for w in self.workers]),
            ("Task", [t.task_id for t in self.tasks]),
        )
        for label, ids in collections:
            counts = Counter(i for i in ids if i)
            for dup_id, count in counts.items():
                if count < 2:
                    continue
                self._add(
                    id=_finding_id("duplicate", label.lower(), dup_id),
                    type="duplicate-id",
                    severity=Severity.ERROR,
                    message=f"Duplicate {label}ID: {dup_id} ({count} occurrences)",
                    entity=dup_id,
                    field=f"{label}ID",
                    suggestion=f"Rename one of the duplicate {label} IDs",
                )

    def _check_available_slots(self) -> None:
        """AvailableSlots may only hold integers >= 1; offenders are listed together."""
        for index, worker in enumerate(self.workers):
            invalid = [v for v in worker.available_slots if not is_positive_int(v)]
            if not invalid:
                continue
            self._add(
                id=_finding_id("malformed-slots", worker.worker_id or index),
                type="malformed-list",
                severity=Severity.ERROR,
                message=f"Invalid AvailableSlots: {', '.join(repr(v) for v in invalid)}",
                entity=worker.worker_id or f"Worker-{index}",
                field="AvailableSlots",
                suggestion="AvailableSlots must be positive integers",
            )

    def _check_ranges(self) -> None:
        """
        @brief
        PriorityLevel within [priority_min, priority_max], Duration >= min_duration.

        @details
        Missing values are not range violations. Values that are present but
        not integers (e.g. "high", 2.5) are reported as out of range.
        """
        vcfg = self.cfg.validation
        lo, hi = vcfg.priority_min, vcfg.priority_max

        for index, client in enumerate(self.clients):
            value = client.priority_level
            if value is None or (_is_int(value) and lo <= value <= hi):
                continue
            self._add(
                id=_finding_id("invalid-priority", client.client_id or index),
                type="out-of-range",
                severity=Severity.ERROR,
                message=f"PriorityLevel must be {lo}-{hi}, got {value!r}",
                entity=client.client_id or f"Client-{index}",
                field="PriorityLevel",
                suggestion=f"Set priority between {lo} and {hi}",
            )

        for index, task in enumerate(self.tasks):
            value = task.duration
            if value is None or (_is_int(value) and value >= vcfg.min_duration):
                continue
            self._add(
                id=_finding_id("invalid-duration", task.task_id or index),
                type="out-of-range",
                severity=Severity.ERROR,
                message=f"Duration must be >= {vcfg.min_duration}, got {value!r}",
                entity=task.task_id or f"Task-{index}",
                field="Duration",
                suggestion=f"Set duration to at least {vcfg.min_duration} phase(s)",
            )

    def _check_attributes_json(self) -> None:
        """AttributesJSON, when present, must parse as JSON."""
        for index, client in enumerate(self.clients):
            raw = client.attributes_json
            if not raw:
                continue
            try:
                json.loads(raw)
            except json.JSONDecodeError as e:
                self._add(
                    id=_finding_id("broken-json", client.client_id or index),
                    type="broken-json",
                    severity=Severity.ERROR,
                    message=f"Invalid JSON in AttributesJSON: {e.msg} (pos {e.pos})",
                    entity=client.client_id or f"Client-{index}",
                    field="AttributesJSON",
                    suggestion="Fix JSON syntax or use empty object {}",
                )

    def _check_references(self) -> None:
        """One finding per (client, unknown task ID) pair."""
        known = set(self.task_by_id)
        for index, client in enumerate(self.clients):
            for task_id in dict.fromkeys(client.requested_task_ids):
                if task_id in known:
                    continue
                self._add(
                    id=_finding_id("unknown-task", client.client_id or index, task_id),
                    type="unknown-reference",
                    severity=Severity.ERROR,
                    message=f"Client {client.client_id or index} references unknown TaskID: {task_id}",
                    entity=client.client_id or f"Client-{index}",
                    field="RequestedTaskIDs",
                    suggestion="Remove invalid task reference or add the missing task",
                )

    def _check_corun_loops(self) -> None:
        """
        @brief
        Detect loops formed by distinct active co-run rules.

        @details
        One finding per task lying on a loop, in order of first appearance in
        the rule list. A single rule never forms a loop by itself.
        """
        corun_rules = self._active(CoRunRule)
        loops = find_corun_loops(self._corun_task_lists())
        if not loops:
            return

        rules_of: dict[str, list[str]] = {}
        for loop in loops:
            rule_ids = [corun_rules[i].id or f"#{i}" for i in sorted(loop.rules)]
            for task_id in loop.tasks:
                merged = rules_of.setdefault(task_id, [])
                merged.extend(r for r in rule_ids if r not in merged)

        order = list(
            dict.fromkeys(t for rule in corun_rules for t in rule.parameters.tasks if t)
        )
        for task_id in sorted(rules_of, key=order.index):
            self._add(
                id=_finding_id("circular-corun", task_id),
                type="circular-dependency",
                severity=Severity.ERROR,
                message=(
                    f"Circular co-run dependency detected involving task {task_id} "
                    f"(rules: {', '.join(rules_of[task_id])})"
                ),
                entity=task_id,
                suggestion="Merge the overlapping co-run rules or remove one relationship",
            )

    def _check_phase_windows(self) -> None:
        """
        @brief
        Cross-check phase-window rules against tasks and workers.

        @details
        For each active window on a known task: preferred phases outside the
        window conflict with it, and the window is unusable when no qualified
        worker is available in any allowed phase.
        """
        for rule in self._active(PhaseWindowRule):
            task_id = rule.parameters.task_id
            task = self.task_by_id.get(task_id)
            if task is None:
                continue
            allowed = valid_phases(rule.parameters.allowed_phases)
            allowed_text = ", ".join(str(p) for p in allowed)

            # (1) Preferred phases outside the window
            conflicting = [p for p in valid_phases(task.preferred_phases) if p not in allowed]
            if conflicting:
                self._add(
                    id=_finding_id("phase-conflict", task_id, rule.id),
                    type="rule-conflict",
                    severity=Severity.ERROR,
                    message=(
                        f"Task {task_id} preferred phases "
                        f"[{', '.join(str(p) for p in conflicting)}] conflict with "
                        f"phase window rule [{allowed_text}]"
                    ),
                    entity=task_id,
                    field="PreferredPhases",
                    suggestion="Update task preferred phases or modify phase window rule",
                )

            # (2) Nobody qualified can work inside the window
            available = [
                w
                for w in qualified_workers(task, self.workers)
                if set(valid_phases(w.available_slots)) & set(allowed)
            ]
            if not available:
                self._add(
                    id=_finding_id("no-workers-phase-window", task_id, rule.id),
                    type="rule-conflict",
                    severity=Severity.ERROR,
                    message=(
                        f"No qualified workers available in phases [{allowed_text}] "
                        f"for task {task_id}"
                    ),
                    entity=task_id,
                    suggestion=(
                        "Expand phase window or ensure qualified workers are available "
                        "in these phases"
                    ),
                )

    def _check_load_limits(self) -> None:
        """
        @brief
        Check that load limits leave room for co-run execution.

        @details
        For every task of an active co-run rule and every active load limit,
        the qualified workers of the limited group contribute their load capped
        at maxSlotsPerPhase. Demand is the number of co-run tasks times the
        task duration. Limits without an integer cap and tasks without an
        integer duration are skipped.
        """
        load_rules = self._active(LoadLimitRule)
        if not load_rules:
            return

        for corun in self._active(CoRunRule):
            members = list(dict.fromkeys(t for t in corun.parameters.tasks if t))
            for task_id in members:
                task = self.task_by_id.get(task_id)
                if task is None or not _is_int(task.duration):
                    continue
                qualified = qualified_workers(task, self.workers)
                demand = len(members) * task.duration

                for load in load_rules:
                    max_slots = load.parameters.max_slots_per_phase
                    if not _is_int(max_slots):
                        continue
                    group = load.parameters.worker_group
                    capacity = group_capacity(qualified, group, max_slots)
                    if capacity >= demand:
                        continue
                    self._add(
                        id=_finding_id("load-limit-corun-conflict", task_id, corun.id, load.id),
                        type="rule-conflict",
                        severity=Severity.WARNING,
                        message=(
                            f"Load limit for group {group} ({max_slots} slots) may prevent "
                            f"co-run execution of tasks [{', '.join(members)}]: "
                            f"capacity {capacity} < demand {demand}"
                        ),
                        entity=task_id,
                        suggestion="Increase load limit or modify co-run grouping",
                    )

    def _check_worker_load(self) -> None:
        """Flag workers whose slot count cannot reach MaxLoadPerPhase."""
        for index, worker in enumerate(self.workers):
            max_load = worker.max_load_per_phase
            if not _is_int(max_load):
                continue
            slots = len(worker.available_slots)
            if slots >= max_load:
                continue
            self._add(
                id=_finding_id("overloaded-worker", worker.worker_id or index),
                type="overloaded-worker",
                severity=Severity.WARNING,
                message=(
                    f"Worker {worker.worker_id or index} has fewer available slots "
                    f"({slots}) than max load ({max_load})"
                ),
                entity=worker.worker_id or f"Worker-{index}",
                field="MaxLoadPerPhase",
                suggestion="Reduce MaxLoadPerPhase or increase AvailableSlots",
            )

    def _check_phase_saturation(self) -> None:
        """Phases where preferred task demand exceeds worker capacity, ascending."""
        capacity = phase_capacity(self.workers)
        demand = phase_demand(self.tasks)
        for phase in sorted(demand):
            cap = capacity.get(phase, 0)
            if demand[phase] <= cap:
                continue
            self._add(
                id=_finding_id("phase-saturation", phase),
                type="phase-saturation",
                severity=Severity.WARNING,
                message=f"Phase {phase} is oversaturated: demand {demand[phase]} > capacity {cap}",
                entity=f"Phase-{phase}",
                suggestion="Add more workers to this phase or redistribute tasks",
            )

    def _check_skill_coverage(self) -> None:
        """Each required skill held by no worker is reported once."""
        held = {skill for w in self.workers for skill in w.skills}
        required = dict.fromkeys(skill for t in self.tasks for skill in t.required_skills)
        for skill in required:
            if skill in held:
                continue
            self._add(
                id=_finding_id("missing-skill", skill),
                type="skill-coverage",
                severity=Severity.ERROR,
                message=f"No worker has required skill: {skill}",
                entity=skill,
                field="RequiredSkills",
                suggestion="Add a worker with this skill or remove the skill requirement",
            )

    def _check_max_concurrency(self) -> None:
        """MaxConcurrent may not exceed the number of qualified workers."""
        for index, task in enumerate(self.tasks):
            max_concurrent = task.max_concurrent
            if not _is_int(max_concurrent):
                continue
            qualified = len(qualified_workers(task, self.workers))
            if max_concurrent <= qualified:
                continue
            self._add(
                id=_finding_id("max-concurrency", task.task_id or index),
                type="max-concurrency",
                severity=Severity.WARNING,
                message=(
                    f"Task {task.task_id or index} MaxConcurrent ({max_concurrent}) "
                    f"exceeds qualified workers ({qualified})"
                ),
                entity=task.task_id or f"Task-{index}",
                field="MaxConcurrent",
                suggestion="Reduce MaxConcurrent or train more workers in required skills",
            )

    # ---------- Utilities ----------
    def _active(self, rule_type: type[Any]) -> list[Any]:
        return [r for r in self.rules if isinstance(r, rule_type) and r.active]

    def _corun_task_lists(self) -> list[list[str]]:
        return [list(rule.parameters.tasks) for rule in self._active(CoRunRule)]

    def _add(self, **payload: Any) -> None:
        self.findings.append(ValidationFinding(**payload))


# ----------------------------
# THIN FACADES
# ----------------------------
def validate(
    clients: Any = None,
    workers: Any = None,
    tasks: Any = None,
    rules: Any = None,
    cfg: Config | None = None,
) -> list[ValidationFinding]:
    """
    @brief
    Validate a workspace and return its findings.

    @details
    Pure function: a fresh ValidationEngine per call, no I/O, identical
    output for identical input. Never raises for data anomalies.
    """
    return ValidationEngine(clients, workers, tasks, rules, cfg).run_all_checks()


def validate_workspace(
    workspace: Workspace,
    cfg: Config | None = None,
    *,
    write_report: bool = False,
    out_dir: Path | None = None,
    filename: str = "validation_report.json",
) -> dict[str, Any]:
    """
    @brief
    High-level convenience wrapper for workspace validation.

    @details
    Runs every check on the snapshot, builds the structured report and
    optionally writes it to disk. Always returns the in-memory report.
    """
    # (1) Initialize engine with the snapshot collections
    engine = ValidationEngine(
        workspace.clients, workspace.workers, workspace.tasks, workspace.rules, cfg
    )

    # (2) Execute checks and build report
    engine.run_all_checks()
    report = engine.build_report()

    # (3) Optionally persist
    if write_report:
        engine.save_report(report, out_dir=out_dir, filename=filename)

    return report


__all__ = ["ValidationEngine", "validate", "validate_workspace"]
