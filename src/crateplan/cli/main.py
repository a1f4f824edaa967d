from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .. import __version__
from ..core.context import PlanContext
from ..core.logging import log_event
from ..errors import PlanError
from ..exit_codes import ERR_INTERNAL, ERR_USAGE, OK
from ..toolchain import apply_env_overrides
from ..workspace.graph import dependency_graph, plan_workspace, reachable, render_tree, topological_order
from ..workspace.labels import normalize_label
from ..workspace.manifest import Workspace, load_workspace
from .output import build_base_payload, build_plan_payload, emit, render_error, render_plan_text


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="crateplan", description="plan rustc/rustdoc actions for a Rust workspace")
    p.add_argument("--version", action="version", version=f"crateplan {__version__}")
    p.add_argument("--json", action="store_true", help="emit JSON output")
    p.add_argument("--run-id", help="run identifier attached to log events and payloads")
    p.add_argument("--log-json", action="store_true", default=None, help="emit log events as JSON lines")
    vg = p.add_mutually_exclusive_group()
    vg.add_argument("--verbose", action="store_true", help="enable per-action debug events")
    vg.add_argument("--quiet", action="store_true", help="only emit errors")
    sub = p.add_subparsers(dest="cmd", required=True)

    plan_p = sub.add_parser("plan", help="print the actions for every target (or selected targets)")
    _workspace_args(plan_p)
    plan_p.add_argument("--target", action="append", default=[], help="plan only this label and its deps")
    plan_p.add_argument("--bin-dir", help="output root for generated files (default: out/bin)")

    graph_p = sub.add_parser("graph", help="print the dependency tree of a target")
    _workspace_args(graph_p)
    graph_p.add_argument("--target", action="append", default=[], help="root label (default: every target)")

    validate_p = sub.add_parser("validate", help="check the manifest, the graph and every target's invariants")
    _workspace_args(validate_p)

    version_p = sub.add_parser("version", help="print the crateplan version")
    version_p.add_argument("--json", action="store_true", default=argparse.SUPPRESS, help="emit JSON output")
    return p


def _workspace_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--workspace", required=True, help="workspace manifest (.toml, .yaml or .json)")
    parser.add_argument("--toolchain", help="toolchain file; overrides the manifest's [toolchain] table")
    parser.add_argument("--json", action="store_true", default=argparse.SUPPRESS, help="emit JSON output")


def _load(ns: argparse.Namespace, ctx: PlanContext) -> tuple[PlanContext, Workspace]:
    workspace = load_workspace(Path(ns.workspace))
    if workspace.toolchain is not None and not ns.toolchain:
        ctx = replace(ctx, toolchain=apply_env_overrides(workspace.toolchain))
    return ctx, workspace


def _roots(ns: argparse.Namespace) -> list[str]:
    return [normalize_label(ref, "") for ref in ns.target]


def _run_plan(ctx: PlanContext, ns: argparse.Namespace, as_json: bool) -> int:
    ctx, workspace = _load(ns, ctx)
    plans = plan_workspace(ctx, workspace, _roots(ns))
    if as_json:
        emit(build_plan_payload(ctx, workspace.name or workspace.source, plans), True)
    else:
        print(render_plan_text(plans))
    return OK


def _run_graph(ctx: PlanContext, ns: argparse.Namespace, as_json: bool) -> int:
    _, workspace = _load(ns, ctx)
    graph = dependency_graph(workspace)
    roots = _roots(ns) or sorted(graph)
    nodes = reachable(graph, roots)
    if as_json:
        emit(
            {
                **build_base_payload(ctx),
                "roots": roots,
                "edges": {label: graph[label] for label in topological_order(graph, nodes)},
            },
            True,
        )
        return OK
    for root in roots:
        print("\n".join(render_tree(graph, root)))
    return OK


def _run_validate(ctx: PlanContext, ns: argparse.Namespace, as_json: bool) -> int:
    ctx, workspace = _load(ns, ctx)
    plans = plan_workspace(ctx, workspace)
    actions = sum(len(plan.actions) for plan in plans)
    if as_json:
        emit({**build_base_payload(ctx), "targets": len(plans), "actions": actions}, True)
    else:
        print(f"ok: {workspace.source} targets={len(plans)} actions={actions}")
    return OK


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    ns = p.parse_args(argv)
    as_json = bool(ns.json)
    ctx: PlanContext | None = None
    try:
        ctx = PlanContext.from_args(
            run_id=ns.run_id,
            toolchain_file=getattr(ns, "toolchain", None),
            bin_dir=getattr(ns, "bin_dir", None),
            verbose=ns.verbose,
            quiet=ns.quiet,
            log_json=ns.log_json,
        )
        log_event(ctx, "info", "cli", "start", cmd=ns.cmd)
        if ns.cmd == "version":
            emit({**build_base_payload(ctx), "crateplan_version": __version__}, as_json)
            return OK
        if ns.cmd == "plan":
            return _run_plan(ctx, ns, as_json)
        if ns.cmd == "graph":
            return _run_graph(ctx, ns, as_json)
        if ns.cmd == "validate":
            return _run_validate(ctx, ns, as_json)
        return ERR_USAGE
    except PlanError as exc:
        if ctx is not None:
            log_event(ctx, "error", "cli", "error", kind=exc.kind, target=exc.target)
        print(render_error(as_json=as_json, message=str(exc), code=exc.code, error=exc), file=sys.stderr)
        return exc.code
    except Exception as exc:  # pragma: no cover
        print(render_error(as_json=as_json, message=f"internal error: {exc}", code=ERR_INTERNAL), file=sys.stderr)
        return ERR_INTERNAL


if __name__ == "__main__":
    raise SystemExit(main())
