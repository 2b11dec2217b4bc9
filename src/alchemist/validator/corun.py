# src/alchemist/validator/corun.py
"""
@brief
Co-run partitions and loop detection.

@details
Co-run rules group tasks that must be scheduled together. Rules are merged
into partitions with a union-find over a rule/task incidence graph: every
rule is a node linked to each task it names. A single rule is a star and can
never close a loop, however many tasks it lists. A loop exists only when a
chain of distinct rules links a task back to a task it already reaches.
Such loops usually mean overlapping or contradictory co-run rules.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass


class UnionFind:
    """Disjoint-set forest with path halving and union by size."""

    def __init__(self) -> None:
        self._parent: dict[Hashable, Hashable] = {}
        self._size: dict[Hashable, int] = {}

    def add(self, node: Hashable) -> None:
        if node not in self._parent:
            self._parent[node] = node
            self._size[node] = 1

    def __contains__(self, node: object) -> bool:
        return node in self._parent

    def find(self, node: Hashable) -> Hashable:
        self.add(node)
        while self._parent[node] != node:
            self._parent[node] = self._parent[self._parent[node]]
            node = self._parent[node]
        return node

    def union(self, a: Hashable, b: Hashable) -> bool:
        """Merge the sets of a and b. Returns False if they were already joined."""
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return False
        if self._size[root_a] < self._size[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        self._size[root_a] += self._size[root_b]
        return True

    def connected(self, a: Hashable, b: Hashable) -> bool:
        return self.find(a) == self.find(b)


@dataclass(frozen=True)
class CoRunLoop:
    """
    @brief
    One loop closed by a co-run rule.

    @details
    tasks and rules are listed along the loop, starting from the rule that
    closed it.
    """

    tasks: tuple[str, ...]
    rules: tuple[int, ...]


def _members(task_ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(t for t in task_ids if isinstance(t, str) and t))


def corun_groups(task_lists: Sequence[Iterable[str]]) -> list[list[str]]:
    """
    @brief
    Merge co-run task lists into partitions.

    @details
    Tasks sharing any rule, directly or through other rules, land in the same
    group. Groups and their members follow first appearance in task_lists.
    """
    uf = UnionFind()
    order: list[str] = []
    for task_ids in task_lists:
        members = _members(task_ids)
        for task_id in members:
            if task_id not in uf:
                order.append(task_id)
            uf.add(task_id)
        for other in members[1:]:
            uf.union(members[0], other)

    groups: dict[Hashable, list[str]] = {}
    for task_id in order:
        groups.setdefault(uf.find(task_id), []).append(task_id)
    return list(groups.values())


def find_corun_loops(task_lists: Sequence[Iterable[str]]) -> list[CoRunLoop]:
    """
    @brief
    Detect loops formed by distinct co-run rules.

    @details
    Walks rules in order and links each rule node to its tasks. When a link
    would join two nodes already in the same set, the path between them in
    the spanning forest plus the new link is a loop. Tasks repeated inside a
    single rule are ignored.

    @params
        task_lists : Sequence[Iterable[str]]
            Task IDs of each active co-run rule, in rule order.

    @returns
        Loops in the order they are closed.
    """
    uf = UnionFind()
    forest: dict[Hashable, list[Hashable]] = {}
    loops: list[CoRunLoop] = []

    for index, task_ids in enumerate(task_lists):
        rule_node = ("rule", index)
        uf.add(rule_node)
        forest.setdefault(rule_node, [])
        for task_id in _members(task_ids):
            task_node = ("task", task_id)
            forest.setdefault(task_node, [])
            if uf.union(rule_node, task_node):
                forest[rule_node].append(task_node)
                forest[task_node].append(rule_node)
                continue
            path = _forest_path(forest, rule_node, task_node)
            loops.append(
                CoRunLoop(
                    tasks=tuple(node[1] for node in path if node[0] == "task"),
                    rules=tuple(node[1] for node in path if node[0] == "rule"),
                )
            )
    return loops


def _forest_path(
    forest: dict[Hashable, list[Hashable]], start: Hashable, goal: Hashable
) -> list[Hashable]:
    # Breadth-first search; the forest holds exactly one path between connected nodes.
    parents: dict[Hashable, Hashable | None] = {start: None}
    queue: deque[Hashable] = deque([start])
    while queue:
        node = queue.popleft()
        if node == goal:
            break
        for nxt in forest.get(node, ()):
            if nxt not in parents:
                parents[nxt] = node
                queue.append(nxt)

    path: list[Hashable] = []
    node: Hashable | None = goal
    while node is not None:
        path.append(node)
        node = parents.get(node)
    path.reverse()
    return path


__all__ = ["UnionFind", "CoRunLoop", "corun_groups", "find_corun_loops"]
