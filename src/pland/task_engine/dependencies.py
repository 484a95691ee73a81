"""Derived dependency fields.

``blocked_by`` is the only edge set a user edits.  From it we derive

* ``blocks`` -- the reverse adjacency: ``U.id in T.blocks`` iff
  ``T.id in U.blocked_by``;
* ``blocked_by_transitive`` -- every id reachable by following
  ``blocked_by`` edges onwards from each direct predecessor.

Both are rebuilt from scratch for the whole task set after every mutation.
Cycles and dangling references are tolerated here; they are reported by the
validator.
"""

from __future__ import annotations

from typing import Mapping

from loguru import logger

from .model import Task


def collect_transitive(task: Task, tasks: Mapping[str, Task]) -> list[str]:
    """Return the ancestors of *task* beyond its direct predecessors.

    Depth-first from each direct predecessor, adding that node's own
    ``blocked_by`` entries and continuing from them.  The visited set makes
    the walk terminate on cycles; *task* itself appears only when a cycle
    leads back to it.  Order follows discovery.
    """
    visited: set[str] = set()
    found: dict[str, None] = {}

    for start in task.blocked_by:
        stack = [start]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            node = tasks.get(current)
            if node is None:
                continue
            for parent_id in node.blocked_by:
                found.setdefault(parent_id, None)
            # reversed keeps the recursive visiting order
            stack.extend(reversed(node.blocked_by))

    return list(found)


def rebuild_dependencies(tasks: Mapping[str, Task]) -> None:
    """Recompute ``blocks`` and ``blocked_by_transitive`` for every task in place."""
    for task in tasks.values():
        task.blocks = []
        task.blocked_by_transitive = []
        task.dependency_chain = []

    for task in tasks.values():
        for dep_id in task.blocked_by:
            dep = tasks.get(dep_id)
            if dep is not None and task.id not in dep.blocks:
                dep.blocks.append(task.id)

    for task in tasks.values():
        if task.blocked_by:
            task.blocked_by_transitive = collect_transitive(task, tasks)

    logger.debug("Rebuilt dependency fields for {} task(s)", len(tasks))
