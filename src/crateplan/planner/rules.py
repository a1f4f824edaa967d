"""Per-kind planners.

Each planner turns one `TargetDescriptor` plus the already-resolved targets it
depends on into a `TargetPlan`: the actions the engine must run and the
`ResolvedTarget` downstream targets will consume.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Callable, Mapping, Sequence

from ..core.context import PlanContext
from ..core.logging import log_event
from ..errors import InvalidDependencyKindError, InvalidTargetError, UnknownDependencyError
from ..model.providers import CrateInfo, NativeInfo, ResolvedTarget, SourceInfo
from ..model.target import (
    PROTO_EXTENSION,
    RUST_EXTENSION,
    Artifact,
    File,
    TargetDescriptor,
    TargetKind,
    doc_zip_basename,
    library_basename,
    output_artifact,
)
from .actions import ShellAction, TargetPlan, WriteAction, ordered_paths
from .closure import DependencyClosure, build_closure
from .command import (
    bench_wrapper_script,
    build_rustc_invocation,
    build_rustdoc_invocation,
    build_rustdoc_test_invocation,
    compile_command,
    doc_command,
    doc_test_script,
    library_crate_type,
    require_single_proto,
    rustdoc_flags,
)
from .root import BINARY_ROOTS, DOC_ROOTS, LIBRARY_ROOTS, find_crate_root, resolve_crate_root
from .staging import build_staging_plan, staging_dir_for


@dataclass(frozen=True)
class KindPolicy:
    allow_native: bool
    root_names: tuple[str, ...]
    mnemonic: str
    noun: str


KIND_POLICIES: dict[TargetKind, KindPolicy] = {
    TargetKind.LIBRARY: KindPolicy(True, LIBRARY_ROOTS, "Rustc", "library"),
    TargetKind.BINARY: KindPolicy(False, BINARY_ROOTS, "Rustc", "binary"),
    TargetKind.TEST: KindPolicy(True, LIBRARY_ROOTS, "RustcTest", "test"),
    TargetKind.BENCH_TEST: KindPolicy(True, LIBRARY_ROOTS, "RustcTest", "benchmark test"),
    TargetKind.DOC: KindPolicy(False, DOC_ROOTS, "Rustdoc", "doc"),
    TargetKind.DOC_TEST: KindPolicy(False, DOC_ROOTS, "FileWrite", "doc test"),
    TargetKind.PROTO_LIBRARY: KindPolicy(True, LIBRARY_ROOTS, "CompileProtoLibrary", "proto library"),
}


def validate_descriptor(target: TargetDescriptor) -> None:
    """Reject descriptors that break the structural rules of their kind."""
    label = target.label
    kind = target.kind
    if kind is TargetKind.NATIVE_LIBRARY:
        if not target.archives:
            raise InvalidTargetError(f"{label}: native_library requires at least one archive", target=label)
        return
    if kind.is_doc:
        if not target.dep:
            raise InvalidTargetError(f"{label}: {kind.value} requires `dep`", target=label)
        return
    wraps_dep = kind.is_test and len(target.deps) == 1 and not target.srcs
    if not target.srcs and not wraps_dep and kind is not TargetKind.PROTO_LIBRARY:
        raise InvalidTargetError(f"{label}: srcs must not be empty", target=label)
    expected = PROTO_EXTENSION if kind is TargetKind.PROTO_LIBRARY else RUST_EXTENSION
    bad = sorted(src for src in target.srcs if not src.endswith(expected))
    if bad:
        raise InvalidTargetError(f"{label}: srcs must be {expected} files: {', '.join(bad)}", target=label)
    if target.crate_root is not None and target.crate_root not in target.srcs:
        raise InvalidTargetError(f"{label}: crate_root `{target.crate_root}` is not listed in srcs", target=label)
    if target.crate_type and kind is not TargetKind.LIBRARY:
        raise InvalidTargetError(f"{label}: crate_type is only valid on library targets", target=label)


def _lookup(label: str, owner: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]) -> ResolvedTarget:
    try:
        return resolved[label]
    except KeyError:
        raise UnknownDependencyError(
            f"{owner.label}: dependency {label} has not been resolved", target=owner.label, dependency=label
        ) from None


def _deps(target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]) -> tuple[ResolvedTarget, ...]:
    return tuple(_lookup(label, target, resolved) for label in target.deps)


def _progress(verb: str, noun: str, name: str, count: int) -> str:
    return f"{verb} Rust {noun} {name} ({count} files)"


def _compile_inputs(
    ctx: PlanContext, srcs: Sequence[File], root: File, data: Sequence[File], closure: DependencyClosure
) -> tuple[str, ...]:
    return ordered_paths([*srcs, root, *data, *closure.staged_artifacts, *ctx.toolchain.compile_files])


def plan_library(ctx: PlanContext, target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]) -> TargetPlan:
    policy = KIND_POLICIES[TargetKind.LIBRARY]
    srcs = target.source_files
    root = resolve_crate_root(srcs, target.root_file, policy.root_names, target=target.label)
    crate_type = library_crate_type(target)
    out_dir = ctx.output_dir(target.package)
    rust_lib = output_artifact(ctx.bin_dir, target.package, library_basename(target.name), target.name, "crate")
    deps = _deps(target, resolved)
    closure = build_closure(target.label, staging_dir_for(out_dir, target.name), deps, policy.allow_native)
    staging = build_staging_plan(closure.staged_artifacts, closure.staging_dir)
    invocation = build_rustc_invocation(
        ctx.toolchain,
        target.name,
        crate_type,
        root,
        out_dir,
        closure,
        target.crate_features,
        target.rustc_flags,
    )
    action = ShellAction(
        mnemonic=policy.mnemonic,
        inputs=_compile_inputs(ctx, srcs, root, target.data_files, closure),
        outputs=(rust_lib.path,),
        command=compile_command(staging, invocation),
        progress_message=_progress("Compiling", policy.noun, target.name, len(srcs)),
        staging=staging,
        invocation=invocation,
    )
    provides = ResolvedTarget(
        label=target.label,
        name=target.name,
        crate=CrateInfo(artifact=rust_lib, transitive_artifacts=closure.transitive_artifacts, crate_type=crate_type),
        sources=SourceInfo(srcs=srcs, crate_root=root, deps=deps),
        files=(rust_lib,),
    )
    return TargetPlan(target.label, target.kind.value, (action,), provides)


def plan_binary(ctx: PlanContext, target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]) -> TargetPlan:
    policy = KIND_POLICIES[TargetKind.BINARY]
    srcs = target.source_files
    root = resolve_crate_root(srcs, target.root_file, policy.root_names, target=target.label)
    out_dir = ctx.output_dir(target.package)
    binary = output_artifact(ctx.bin_dir, target.package, target.name, target.name)
    deps = _deps(target, resolved)
    closure = build_closure(target.label, staging_dir_for(out_dir, target.name), deps, policy.allow_native)
    staging = build_staging_plan(closure.staged_artifacts, closure.staging_dir)
    invocation = build_rustc_invocation(
        ctx.toolchain,
        target.name,
        "bin",
        root,
        out_dir,
        closure,
        target.crate_features,
        target.rustc_flags,
    )
    action = ShellAction(
        mnemonic=policy.mnemonic,
        inputs=_compile_inputs(ctx, srcs, root, target.data_files, closure),
        outputs=(binary.path,),
        command=compile_command(staging, invocation),
        progress_message=_progress("Compiling", policy.noun, target.name, len(srcs)),
        staging=staging,
        invocation=invocation,
    )
    provides = ResolvedTarget(
        label=target.label,
        name=target.name,
        sources=SourceInfo(srcs=srcs, crate_root=root, deps=deps),
        files=(binary,),
    )
    return TargetPlan(target.label, target.kind.value, (action,), provides, runfiles=ordered_paths(target.data_files))


def _test_action(
    ctx: PlanContext,
    target: TargetDescriptor,
    resolved: Mapping[str, ResolvedTarget],
    test_binary: Artifact,
) -> ShellAction:
    policy = KIND_POLICIES[target.kind]
    deps = _deps(target, resolved)
    if len(deps) == 1 and not target.srcs:
        # No sources of its own: rebuild the single dependency as a test crate.
        wrapped = deps[0]
        if wrapped.sources is None:
            raise InvalidDependencyKindError(
                f"{target.label}: a test without srcs must wrap a library or binary, "
                f"but {wrapped.label} exposes no sources",
                target=target.label,
                dependency=wrapped.label,
            )
        srcs = wrapped.sources.srcs
        root = wrapped.sources.crate_root or find_crate_root(srcs, policy.root_names, target=target.label)
        test_deps = wrapped.sources.deps
        crate_type = wrapped.crate.crate_type if wrapped.crate is not None else "bin"
    else:
        srcs = target.source_files
        root = resolve_crate_root(srcs, target.root_file, policy.root_names, target=target.label)
        test_deps = deps
        crate_type = "lib"
    out_dir = ctx.output_dir(target.package)
    closure = build_closure(target.label, staging_dir_for(out_dir, target.name), test_deps, policy.allow_native)
    staging = build_staging_plan(closure.staged_artifacts, closure.staging_dir)
    invocation = build_rustc_invocation(
        ctx.toolchain,
        test_binary.basename,
        crate_type,
        root,
        out_dir,
        closure,
        target.crate_features,
        target.rustc_flags,
        test_harness=True,
    )
    return ShellAction(
        mnemonic=policy.mnemonic,
        inputs=_compile_inputs(ctx, srcs, root, target.data_files, closure),
        outputs=(test_binary.path,),
        command=compile_command(staging, invocation),
        progress_message=_progress("Compiling", policy.noun, target.name, len(srcs)),
        staging=staging,
        invocation=invocation,
    )


def plan_test(ctx: PlanContext, target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]) -> TargetPlan:
    test_binary = output_artifact(ctx.bin_dir, target.package, target.name, target.name)
    action = _test_action(ctx, target, resolved, test_binary)
    provides = ResolvedTarget(label=target.label, name=target.name, files=(test_binary,))
    return TargetPlan(target.label, target.kind.value, (action,), provides, runfiles=ordered_paths(target.data_files))


def plan_bench_test(ctx: PlanContext, target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]) -> TargetPlan:
    wrapper = output_artifact(ctx.bin_dir, target.package, target.name, target.name)
    test_binary = output_artifact(ctx.bin_dir, target.package, f"{target.name}_bin", target.name)
    compile_action = _test_action(ctx, target, resolved, test_binary)
    script = WriteAction(output=wrapper.path, content=bench_wrapper_script(test_binary.short_path), executable=True)
    provides = ResolvedTarget(label=target.label, name=target.name, files=(wrapper, test_binary))
    runfiles = ordered_paths([test_binary.short_path, *target.data_files])
    return TargetPlan(target.label, target.kind.value, (compile_action, script), provides, runfiles=runfiles)


def _documented_sources(
    target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]
) -> tuple[ResolvedTarget, SourceInfo, File]:
    documented = _lookup(str(target.dep), target, resolved)
    if documented.sources is None:
        raise InvalidDependencyKindError(
            f"{target.label}: {target.kind.value} dep {documented.label} must be a library or binary with sources",
            target=target.label,
            dependency=documented.label,
        )
    info = documented.sources
    root = info.crate_root or find_crate_root(info.srcs, DOC_ROOTS, target=target.label)
    return documented, info, root


def _documented_closure(target: TargetDescriptor, staging_dir: str, info: SourceInfo) -> DependencyClosure:
    # Reuses the documented crate's edges, which were checked when it was planned.
    return build_closure(target.label, staging_dir, info.deps, allow_native=True)


def plan_doc(ctx: PlanContext, target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]) -> TargetPlan:
    policy = KIND_POLICIES[TargetKind.DOC]
    documented, info, root = _documented_sources(target, resolved)
    out_dir = ctx.output_dir(target.package)
    docs_zip = output_artifact(ctx.bin_dir, target.package, doc_zip_basename(target.name), target.name)
    docs_dir = f"{out_dir}/_{target.name}_rust_docs"
    closure = _documented_closure(target, staging_dir_for(out_dir, target.name), info)
    staging = build_staging_plan(closure.staged_artifacts, closure.staging_dir)
    flags = rustdoc_flags(target)
    invocation = build_rustdoc_invocation(ctx.toolchain, documented.name, root, docs_dir, closure, flags)
    extras = (*target.markdown_css, target.html_in_header, target.html_before_content, target.html_after_content)
    doc_inputs = [target.source_path(p) for p in extras if p]
    action = ShellAction(
        mnemonic=policy.mnemonic,
        inputs=ordered_paths([*info.srcs, root, *doc_inputs, *closure.staged_artifacts, *ctx.toolchain.doc_files]),
        outputs=(docs_zip.path,),
        command=doc_command(staging, invocation, ctx.toolchain.zip, docs_dir, docs_zip.path, docs_zip.basename),
        progress_message=f"Generating rustdoc for {documented.name} ({len(info.srcs)} files)",
        staging=staging,
        invocation=invocation,
    )
    provides = ResolvedTarget(label=target.label, name=target.name, files=(docs_zip,))
    return TargetPlan(target.label, target.kind.value, (action,), provides)


def plan_doc_test(ctx: PlanContext, target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]) -> TargetPlan:
    policy = KIND_POLICIES[TargetKind.DOC_TEST]
    documented, info, root = _documented_sources(target, resolved)
    script_file = output_artifact(ctx.bin_dir, target.package, target.name, target.name)
    # The script runs from the runfiles root, so staging happens under `.`.
    closure = _documented_closure(target, staging_dir_for(".", target.name), info)
    staging = build_staging_plan(closure.staged_artifacts, closure.staging_dir, in_runfiles=True)
    invocation = build_rustdoc_test_invocation(ctx.toolchain, documented.name, root, closure)
    script = WriteAction(
        output=script_file.path,
        content=doc_test_script(staging, invocation),
        executable=True,
        mnemonic=policy.mnemonic,
        staging=staging,
        invocation=invocation,
    )
    runfiles = ordered_paths(
        [*(f.short_path for f in info.srcs), root.short_path,
         *(a.short_path for a in closure.staged_artifacts), *ctx.toolchain.doc_files]
    )
    provides = ResolvedTarget(label=target.label, name=target.name, files=(script_file,))
    return TargetPlan(target.label, target.kind.value, (script,), provides, runfiles=runfiles)


def plan_proto_library(
    ctx: PlanContext, target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]
) -> TargetPlan:
    policy = KIND_POLICIES[TargetKind.PROTO_LIBRARY]
    proto = require_single_proto(target)
    out_dir = ctx.output_dir(target.package)
    gen_name = f"{target.name}.proto_gen"
    gen_dir = f"{out_dir}/{gen_name}"
    lib_rs = output_artifact(ctx.bin_dir, target.package, f"{gen_name}/lib.rs", target.name)
    proto_rs = output_artifact(ctx.bin_dir, target.package, f"{gen_name}/{target.name}.rs", target.name)
    staged_proto = f"{gen_dir}/{target.name}.proto"
    name = target.name
    generate = ShellAction(
        mnemonic="GenerateProtoLibrary",
        inputs=(proto.path,),
        outputs=(lib_rs.path, proto_rs.path),
        command="\n".join(
            [
                "set -e",
                f"mkdir -p {shlex.quote(gen_dir)}",
                f"cp {shlex.quote(proto.path)} {shlex.quote(staged_proto)}",
                shlex.join(
                    [ctx.toolchain.protoc, f"--proto_path={gen_dir}", f"--rust_out={gen_dir}", staged_proto]
                ),
                f"echo {shlex.quote(f'pub mod {name}; pub use {name}::*; extern crate protobuf;')}"
                f" > {shlex.quote(lib_rs.path)}",
            ]
        ),
        progress_message=f"Generating {name} (rust proto library)",
    )

    rust_lib = output_artifact(ctx.bin_dir, target.package, library_basename(name), name, "crate")
    deps = _deps(target, resolved)
    closure = build_closure(target.label, staging_dir_for(out_dir, name), deps, policy.allow_native)
    staging = build_staging_plan(closure.staged_artifacts, closure.staging_dir)
    invocation = build_rustc_invocation(
        ctx.toolchain, name, "lib", lib_rs, out_dir, closure, target.crate_features, target.rustc_flags
    )
    compile_action = ShellAction(
        mnemonic=policy.mnemonic,
        inputs=ordered_paths([lib_rs, proto_rs, *closure.staged_artifacts, *ctx.toolchain.compile_files]),
        outputs=(rust_lib.path,),
        command=compile_command(staging, invocation),
        progress_message=f"Compiling {name} (rust proto library)",
        staging=staging,
        invocation=invocation,
    )
    provides = ResolvedTarget(
        label=target.label,
        name=name,
        crate=CrateInfo(artifact=rust_lib, transitive_artifacts=closure.transitive_artifacts, crate_type="lib"),
        sources=SourceInfo(srcs=(lib_rs, proto_rs), crate_root=lib_rs, deps=deps),
        files=(rust_lib,),
    )
    return TargetPlan(target.label, target.kind.value, (generate, compile_action), provides)


def resolve_native_library(ctx: PlanContext, target: TargetDescriptor) -> TargetPlan:
    archives = tuple(
        Artifact(path=path, short_path=path, owner=target.name, link_kind="native")
        for path in (target.source_path(a) for a in target.archives)
    )
    native = NativeInfo(archives=archives)
    provides = ResolvedTarget(label=target.label, name=target.name, native=native, files=archives)
    return TargetPlan(target.label, target.kind.value, (), provides)


Planner = Callable[[PlanContext, TargetDescriptor, Mapping[str, ResolvedTarget]], TargetPlan]

PLANNERS: dict[TargetKind, Planner] = {
    TargetKind.LIBRARY: plan_library,
    TargetKind.BINARY: plan_binary,
    TargetKind.TEST: plan_test,
    TargetKind.BENCH_TEST: plan_bench_test,
    TargetKind.DOC: plan_doc,
    TargetKind.DOC_TEST: plan_doc_test,
    TargetKind.PROTO_LIBRARY: plan_proto_library,
}


def plan_target(ctx: PlanContext, target: TargetDescriptor, resolved: Mapping[str, ResolvedTarget]) -> TargetPlan:
    validate_descriptor(target)
    if target.kind is TargetKind.NATIVE_LIBRARY:
        plan = resolve_native_library(ctx, target)
    else:
        plan = PLANNERS[target.kind](ctx, target, resolved)
    for action in plan.actions:
        log_event(ctx, "debug", "planner", "action", target=target.label, mnemonic=action.mnemonic)
    return plan

