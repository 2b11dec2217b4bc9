# src/alchemist/validator/insights.py
"""
@brief
Advisory findings (severity "info").

@details
Hints that do not make the data invalid: high-priority demand outgrowing the
workforce, and tasks with identical skill requirements that could share a
co-run rule. Enabled through ValidationConfig.include_insights.
"""

from __future__ import annotations

from collections.abc import Sequence

from alchemist.schemas.coercion import as_int
from alchemist.schemas.models import Client, Severity, Task, ValidationFinding, Worker
from alchemist.validator.corun import corun_groups

HIGH_PRIORITY_LEVEL = 4


def collect_insights(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    corun_task_lists: Sequence[Sequence[str]] = (),
) -> list[ValidationFinding]:
    """
    @brief
    Build advisory findings for the workspace.

    @params
        corun_task_lists : Sequence[Sequence[str]]
            Task lists of the active co-run rules; tasks already grouped
            together are not suggested again.
    """
    insights: list[ValidationFinding] = []

    # (1) High-priority clients outnumbering the workforce
    high_priority = sum(1 for c in clients if as_int(c.priority_level) >= HIGH_PRIORITY_LEVEL)
    if clients and workers and high_priority > len(workers):
        insights.append(
            ValidationFinding(
                id="capacity-advisory",
                type="capacity-advisory",
                severity=Severity.INFO,
                message=(
                    f"{high_priority} high-priority clients but only {len(workers)} workers. "
                    "Consider adding workers or adjusting priorities."
                ),
                entity="Workers",
                suggestion="Review capacity planning",
            )
        )

    # (2) Tasks sharing an identical skill set that are not co-run yet
    group_of: dict[str, int] = {}
    for index, group in enumerate(corun_groups(corun_task_lists)):
        for task_id in group:
            group_of[task_id] = index

    by_skills: dict[tuple[str, ...], list[str]] = {}
    for task in tasks:
        if not task.task_id or not task.required_skills:
            continue
        key = tuple(sorted(set(task.required_skills)))
        members = by_skills.setdefault(key, [])
        if task.task_id not in members:
            members.append(task.task_id)

    for skills, task_ids in by_skills.items():
        if len(task_ids) < 2:
            continue
        grouped = {group_of.get(t) for t in task_ids}
        if len(grouped) == 1 and None not in grouped:
            continue
        skill_text = ", ".join(skills)
        insights.append(
            ValidationFinding(
                id=f"corun-suggestion-{','.join(skills)}",
                type="co-run-opportunity",
                severity=Severity.INFO,
                message=(
                    f"Tasks {', '.join(task_ids)} require the same skills ({skill_text}). "
                    "Consider creating a co-run rule."
                ),
                entity=task_ids[0],
                field="RequiredSkills",
                suggestion="Create co-run rule",
            )
        )

    return insights


__all__ = ["collect_insights", "HIGH_PRIORITY_LEVEL"]
