# tests/validator/test_capacity.py
from __future__ import annotations

from alchemist.schemas.models import Task, Worker
from alchemist.validator.capacity import (
    group_capacity,
    phase_capacity,
    phase_demand,
    qualified_workers,
    valid_phases,
)


def test_valid_phases_keeps_positive_ints_once() -> None:
    assert valid_phases([3, 1, "x", 0, 3, -1, 2.5, True, 2]) == [3, 1, 2]


def test_qualified_workers_need_every_skill() -> None:
    # --- Arrange ---
    workers = [
        Worker(worker_id="W1", skills=["a", "b"]),
        Worker(worker_id="W2", skills=["a"]),
        Worker(worker_id="W3", skills=["b", "a", "c"]),
    ]
    task = Task(task_id="T1", required_skills=["a", "b"])

    # --- Act ---
    ids = [w.worker_id for w in qualified_workers(task, workers)]

    # --- Assert ---
    assert ids == ["W1", "W3"]


def test_task_without_skills_is_open_to_everyone() -> None:
    workers = [Worker(worker_id="W1"), Worker(worker_id="W2", skills=["a"])]
    assert len(qualified_workers(Task(task_id="T1"), workers)) == 2


def test_phase_capacity_and_demand_skip_malformed_cells() -> None:
    """
    @brief
    Malformed slots and loads contribute nothing.
    """
    # --- Arrange ---
    workers = [
        Worker(worker_id="W1", available_slots=[1, 2, 2, "x"], max_load_per_phase=2),
        Worker(worker_id="W2", available_slots=[2], max_load_per_phase="many"),
    ]
    tasks = [
        Task(task_id="T1", duration=3, preferred_phases=[1, 1]),
        Task(task_id="T2", duration=None, preferred_phases=[2]),
    ]

    # --- Act / Assert ---
    assert phase_capacity(workers) == {1: 2, 2: 2}
    assert phase_demand(tasks) == {1: 3, 2: 0}


def test_group_capacity_caps_each_worker() -> None:
    # --- Arrange ---
    workers = [
        Worker(worker_id="W1", worker_group="G", max_load_per_phase=5),
        Worker(worker_id="W2", worker_group="G", max_load_per_phase=1),
        Worker(worker_id="W3", worker_group="H", max_load_per_phase=5),
    ]

    # --- Act / Assert ---
    assert group_capacity(workers, "G", 2) == 3
    assert group_capacity(workers, "none", 2) == 0
