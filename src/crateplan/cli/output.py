"""CLI payload output helpers."""

from __future__ import annotations

import json
from typing import Any, Iterable

from ..core.context import PlanContext
from ..errors import PlanError
from ..planner.actions import ShellAction, TargetPlan

SCHEMA_VERSION = 1
TOOL = "crateplan"


def dumps_json(payload: Any, pretty: bool = False) -> str:
    """Sorted-key JSON; compact for machine consumers, indented for humans."""
    return json.dumps(payload, indent=2 if pretty else None, sort_keys=True)


def emit(payload: dict[str, object], as_json: bool) -> None:
    print(dumps_json(payload, pretty=not as_json))


def build_base_payload(ctx: PlanContext, status: str = "ok") -> dict[str, object]:
    return {
        "schema_version": SCHEMA_VERSION,
        "tool": TOOL,
        "status": status,
        "run_id": ctx.run_id,
    }


def build_plan_payload(ctx: PlanContext, workspace: str, plans: Iterable[TargetPlan]) -> dict[str, object]:
    return {
        **build_base_payload(ctx),
        "schema_name": "crateplan.plan.v1",
        "workspace": workspace,
        "toolchain": ctx.toolchain.as_dict(),
        "targets": [plan.as_dict() for plan in plans],
    }


def render_plan_text(plans: Iterable[TargetPlan]) -> str:
    lines: list[str] = []
    for plan in plans:
        lines.append(f"{plan.label} ({plan.kind})")
        if not plan.actions:
            lines.append("  provides: " + " ".join(f.path for f in plan.provides.files))
        for action in plan.actions:
            if isinstance(action, ShellAction):
                lines.append(f"  [{action.mnemonic}] {action.progress_message}")
                lines.extend(f"    | {line}" for line in action.command.splitlines())
            else:
                mode = "executable " if action.executable else ""
                lines.append(f"  [{action.mnemonic}] write {mode}{action.output}")
            lines.append("    -> " + " ".join(action.outputs))
        if plan.runfiles:
            lines.append("  runfiles: " + " ".join(plan.runfiles))
    return "\n".join(lines)


def render_error(*, as_json: bool, message: str, code: int, error: PlanError | None = None) -> str:
    if as_json:
        entry: dict[str, object] = {"code": code, "kind": "internal_error", "message": message}
        if error is not None:
            entry = error.as_dict()
        return dumps_json(
            {
                "schema_name": "crateplan.error.v1",
                "schema_version": SCHEMA_VERSION,
                "tool": TOOL,
                "status": "error",
                "errors": [entry],
            },
            pretty=False,
        )
    return message
