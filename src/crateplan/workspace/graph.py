from __future__ import annotations

import heapq
from typing import Iterable, Sequence

from ..core.context import PlanContext
from ..core.logging import log_event
from ..errors import DependencyCycleError, UnknownDependencyError
from ..model.providers import ResolvedTarget
from ..planner.actions import TargetPlan
from ..planner.rules import plan_target
from .manifest import Workspace


def dependency_graph(workspace: Workspace) -> dict[str, list[str]]:
    graph: dict[str, list[str]] = {}
    known = {t.label for t in workspace.targets}
    for target in workspace.targets:
        edges: list[str] = []
        for dep in target.all_deps():
            if dep not in known:
                raise UnknownDependencyError(
                    f"{target.label}: unknown dependency {dep}", target=target.label, dependency=dep
                )
            if dep not in edges:
                edges.append(dep)
        graph[target.label] = edges
    return graph


def reachable(graph: dict[str, list[str]], roots: Iterable[str]) -> set[str]:
    seen: set[str] = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        if node in seen:
            continue
        if node not in graph:
            raise UnknownDependencyError(f"unknown target {node}", target=node)
        seen.add(node)
        stack.extend(graph[node])
    return seen


def _find_cycle(graph: dict[str, list[str]], nodes: set[str]) -> list[str]:
    state: dict[str, int] = {}
    path: list[str] = []

    def visit(node: str) -> list[str] | None:
        state[node] = 1
        path.append(node)
        for dep in graph[node]:
            if dep not in nodes:
                continue
            if state.get(dep) == 1:
                return path[path.index(dep):] + [dep]
            if dep not in state:
                found = visit(dep)
                if found:
                    return found
        state[node] = 2
        path.pop()
        return None

    for start in sorted(nodes):
        if start not in state:
            found = visit(start)
            if found:
                return found
    return sorted(nodes)


def topological_order(graph: dict[str, list[str]], only: set[str] | None = None) -> list[str]:
    """Dependencies first; ties broken by label so the order is stable."""
    nodes = set(graph) if only is None else set(only)
    pending = {node: len([d for d in graph[node] if d in nodes]) for node in nodes}
    dependents: dict[str, list[str]] = {node: [] for node in nodes}
    for node in nodes:
        for dep in graph[node]:
            if dep in nodes:
                dependents[dep].append(node)
    ready = [node for node, count in pending.items() if count == 0]
    heapq.heapify(ready)
    order: list[str] = []
    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        for dependent in dependents[node]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, dependent)
    if len(order) != len(nodes):
        cycle = _find_cycle(graph, nodes - set(order))
        raise DependencyCycleError(f"dependency cycle: {' -> '.join(cycle)}", target=cycle[0])
    return order


def plan_workspace(ctx: PlanContext, workspace: Workspace, roots: Sequence[str] = ()) -> list[TargetPlan]:
    """Plan every target (or just `roots` and what they need) in dependency order."""
    graph = dependency_graph(workspace)
    only = reachable(graph, roots) if roots else None
    by_label = workspace.by_label()
    resolved: dict[str, ResolvedTarget] = {}
    plans: list[TargetPlan] = []
    for label in topological_order(graph, only):
        plan = plan_target(ctx, by_label[label], resolved)
        resolved[label] = plan.provides
        plans.append(plan)
    log_event(ctx, "info", "workspace", "planned", workspace=workspace.name or workspace.source, targets=len(plans))
    return plans


def render_tree(graph: dict[str, list[str]], root: str, prefix: str = "", seen: set[str] | None = None) -> list[str]:
    if seen is None:
        seen = set()
    lines = [f"{prefix}{root}"]
    if root in seen:
        lines[-1] += " (cycle)"
        return lines
    seen = set(seen)
    seen.add(root)
    deps = graph.get(root, [])
    indent = prefix.replace("├─ ", "│  ").replace("└─ ", "   ")
    for i, dep in enumerate(deps):
        branch = "└─ " if i == len(deps) - 1 else "├─ "
        lines.extend(render_tree(graph, dep, indent + branch, seen))
    return lines
