# src/alchemist/validator/capacity.py
"""
@brief
Capacity accounting shared by the validator checks.

@details
Qualified-worker lookup, per-phase worker capacity and task demand, and
group capacity under a load limit. Malformed cells (non-integer phases,
missing loads) contribute nothing instead of failing.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import Any

from alchemist.schemas.coercion import as_int, is_positive_int
from alchemist.schemas.models import Task, Worker


def valid_phases(values: Iterable[Any]) -> list[int]:
    """Positive integer phases in first-appearance order, without repeats."""
    return list(dict.fromkeys(v for v in values if is_positive_int(v)))


def is_qualified(worker: Worker, task: Task) -> bool:
    """A worker is qualified when it holds every skill the task requires."""
    return set(task.required_skills).issubset(worker.skills)


def qualified_workers(task: Task, workers: Sequence[Worker]) -> list[Worker]:
    return [w for w in workers if is_qualified(w, task)]


def phase_capacity(workers: Iterable[Worker]) -> dict[int, int]:
    """
    @brief
    Aggregate worker capacity per phase.

    @details
    Each worker adds its MaxLoadPerPhase to every phase listed in its
    AvailableSlots. Workers without an integer load add nothing.
    """
    capacity: dict[int, int] = defaultdict(int)
    for worker in workers:
        load = max(as_int(worker.max_load_per_phase), 0)
        for phase in valid_phases(worker.available_slots):
            capacity[phase] += load
    return dict(capacity)


def phase_demand(tasks: Iterable[Task]) -> dict[int, int]:
    """
    @brief
    Aggregate task demand per phase.

    @details
    Each task adds its Duration to every phase listed in its PreferredPhases.
    """
    demand: dict[int, int] = defaultdict(int)
    for task in tasks:
        duration = max(as_int(task.duration), 0)
        for phase in valid_phases(task.preferred_phases):
            demand[phase] += duration
    return dict(demand)


def group_capacity(workers: Iterable[Worker], group: str, max_slots: int) -> int:
    """Sum of per-worker loads in a group, each capped by the load limit."""
    return sum(
        max(min(as_int(w.max_load_per_phase), max_slots), 0)
        for w in workers
        if w.worker_group == group
    )


__all__ = [
    "valid_phases",
    "is_qualified",
    "qualified_workers",
    "phase_capacity",
    "phase_demand",
    "group_capacity",
]
