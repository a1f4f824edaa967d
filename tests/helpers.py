from __future__ import annotations

from pathlib import Path
from typing import Any

from crateplan.core.context import PlanContext
from crateplan.model.providers import CrateInfo, NativeInfo, ResolvedTarget
from crateplan.model.target import Artifact, TargetDescriptor, TargetKind
from crateplan.planner.actions import TargetPlan
from crateplan.planner.rules import plan_target
from crateplan.toolchain import Toolchain
from crateplan.workspace.labels import normalize_label

ROOT = Path(__file__).resolve().parents[1]
BIN = "out/bin"


def make_context(**toolchain: Any) -> PlanContext:
    return PlanContext(run_id="pytest-run", toolchain=Toolchain(**toolchain), bin_dir=BIN)


def target(name: str, kind: str | TargetKind, package: str = "pkg", **fields: Any) -> TargetDescriptor:
    for key, value in list(fields.items()):
        if isinstance(value, list):
            fields[key] = tuple(value)
    if "deps" in fields:
        fields["deps"] = tuple(normalize_label(ref, package) for ref in fields["deps"])
    if fields.get("dep"):
        fields["dep"] = normalize_label(fields["dep"], package)
    return TargetDescriptor(name=name, kind=TargetKind(kind), package=package, **fields)


def plan_in_order(ctx: PlanContext, *targets: TargetDescriptor) -> dict[str, TargetPlan]:
    """Plan `targets` in the given order, feeding each result to later targets."""
    resolved: dict[str, ResolvedTarget] = {}
    plans: dict[str, TargetPlan] = {}
    for t in targets:
        plan = plan_target(ctx, t, resolved)
        resolved[t.label] = plan.provides
        plans[t.name] = plan
    return plans


def rlib(name: str, package: str = "pkg") -> Artifact:
    short = f"{package}/lib{name}.rlib"
    return Artifact(path=f"{BIN}/{short}", short_path=short, owner=name, link_kind="crate")


def archive(owner: str, path: str) -> Artifact:
    return Artifact(path=path, short_path=path, owner=owner, link_kind="native")


def crate_dep(name: str, transitive: frozenset[Artifact] = frozenset(), package: str = "pkg") -> ResolvedTarget:
    artifact = rlib(name, package)
    return ResolvedTarget(
        label=f"//{package}:{name}",
        name=name,
        crate=CrateInfo(artifact=artifact, transitive_artifacts=transitive, crate_type="lib"),
        files=(artifact,),
    )


def native_dep(name: str, *paths: str, package: str = "pkg") -> ResolvedTarget:
    archives = tuple(archive(name, p) for p in paths)
    return ResolvedTarget(label=f"//{package}:{name}", name=name, native=NativeInfo(archives=archives), files=archives)
