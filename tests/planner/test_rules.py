from __future__ import annotations

import pytest

from crateplan.errors import (
    CodegenInputCountViolationError,
    InvalidArtifactKindError,
    InvalidDependencyKindError,
    InvalidTargetError,
    NativeInteropDisallowedError,
    RootNotFoundError,
    UnknownDependencyError,
)
from crateplan.planner.actions import ShellAction, WriteAction
from crateplan.planner.rules import plan_target

from helpers import make_context, plan_in_order, target


def _invocation(action):
    assert action.invocation is not None
    return action.invocation


def test_library_plan_compiles_rlib(ctx) -> None:
    lib = target("foo", "library", srcs=["lib.rs", "util.rs"], data=["fixtures/x.txt"])
    plan = plan_in_order(ctx, lib)["foo"]
    (action,) = plan.actions
    assert isinstance(action, ShellAction)
    assert action.mnemonic == "Rustc"
    assert action.outputs == ("out/bin/pkg/libfoo.rlib",)
    assert action.progress_message == "Compiling Rust library foo (2 files)"
    assert action.inputs[:3] == ("pkg/lib.rs", "pkg/util.rs", "pkg/fixtures/x.txt")
    assert "rustc" in action.inputs
    inv = _invocation(action)
    assert inv.src == "pkg/lib.rs"
    assert inv.crate_type == "lib"
    assert plan.provides.crate is not None
    assert plan.provides.crate.artifact.path == "out/bin/pkg/libfoo.rlib"
    assert plan.provides.sources is not None


def test_binary_through_library_reaches_native_archive() -> None:
    ctx = make_context()
    plans = plan_in_order(
        ctx,
        target("nat", "native_library", archives=["libnat.a"]),
        target("core", "library", srcs=["lib.rs"], deps=["//pkg:nat"]),
        target("app", "binary", srcs=["main.rs"], deps=["//pkg:core"]),
    )
    core_inv = _invocation(plans["core"].actions[0])
    assert "static=nat" in core_inv.argv
    assert "native=out/bin/pkg/core.deps" in core_inv.argv

    app_action = plans["app"].actions[0]
    app_inv = _invocation(app_action)
    staging = "out/bin/pkg/app.deps"
    assert app_inv.crate_type == "bin"
    assert f"dependency={staging}" in app_inv.argv
    assert f"native={staging}" in app_inv.argv
    assert f"core={staging}/libcore.rlib" in app_inv.argv
    assert "static=nat" in app_inv.argv
    assert not any(tok.startswith("nat=") for tok in app_inv.argv)
    assert "pkg/libnat.a" in app_action.inputs
    assert f"ln -sf ../../../../pkg/libnat.a {staging}/libnat.a" in app_action.command


def test_binary_cannot_depend_on_native_library_directly(ctx) -> None:
    with pytest.raises(NativeInteropDisallowedError) as err:
        plan_in_order(
            ctx,
            target("nat", "native_library", archives=["libnat.a"]),
            target("app", "binary", srcs=["main.rs"], deps=[":nat"]),
        )
    assert err.value.dependency == "//pkg:nat"


def test_library_crate_type_is_validated(ctx) -> None:
    with pytest.raises(InvalidArtifactKindError):
        plan_in_order(ctx, target("foo", "library", srcs=["lib.rs"], crate_type="proc-macro"))


def test_binary_without_main_rs_has_no_root(ctx) -> None:
    with pytest.raises(RootNotFoundError):
        plan_in_order(ctx, target("app", "binary", srcs=["a.rs", "b.rs"]))


def test_test_wrapping_library_rebuilds_it_with_harness(ctx) -> None:
    plans = plan_in_order(
        ctx,
        target("base", "library", srcs=["base.rs"]),
        target("foo", "library", srcs=["lib.rs", "x.rs"], deps=[":base"], crate_type="rlib"),
        target("foo_test", "test", deps=[":foo"]),
    )
    action = plans["foo_test"].actions[0]
    inv = _invocation(action)
    assert action.mnemonic == "RustcTest"
    assert inv.crate_name == "foo_test"
    assert inv.crate_type == "rlib"
    assert inv.src == "pkg/lib.rs"
    assert inv.argv[-1] == "--test"
    assert "base=out/bin/pkg/foo_test.deps/libbase.rlib" in inv.argv
    assert action.outputs == ("out/bin/pkg/foo_test",)


def test_test_wrapping_binary_uses_bin_crate_type(ctx) -> None:
    plans = plan_in_order(
        ctx,
        target("app", "binary", srcs=["main.rs"]),
        target("app_test", "test", deps=[":app"]),
    )
    assert _invocation(plans["app_test"].actions[0]).crate_type == "bin"


def test_standalone_test_compiles_its_own_sources(ctx) -> None:
    plans = plan_in_order(
        ctx,
        target("foo", "library", srcs=["lib.rs"]),
        target("it", "test", srcs=["it.rs"], deps=[":foo"]),
    )
    inv = _invocation(plans["it"].actions[0])
    assert inv.src == "pkg/it.rs"
    assert inv.crate_type == "lib"
    assert "foo=out/bin/pkg/it.deps/libfoo.rlib" in inv.argv


def test_test_cannot_wrap_a_target_without_sources(ctx) -> None:
    with pytest.raises(InvalidDependencyKindError):
        plan_in_order(
            ctx,
            target("nat", "native_library", archives=["libnat.a"]),
            target("nat_test", "test", deps=[":nat"]),
        )


def test_bench_test_writes_wrapper_around_test_binary(ctx) -> None:
    plans = plan_in_order(
        ctx,
        target("foo", "library", srcs=["lib.rs"]),
        target("bench", "bench_test", deps=[":foo"]),
    )
    compile_action, wrapper = plans["bench"].actions
    assert compile_action.outputs == ("out/bin/pkg/bench_bin",)
    assert _invocation(compile_action).argv[-1] == "--test"
    assert isinstance(wrapper, WriteAction)
    assert wrapper.executable
    assert wrapper.output == "out/bin/pkg/bench"
    assert wrapper.content == "#!/bin/bash\nset -e\npkg/bench_bin --bench\n"
    assert plans["bench"].runfiles[0] == "pkg/bench_bin"


def test_doc_target_zips_rustdoc_output(ctx) -> None:
    plans = plan_in_order(
        ctx,
        target("base", "library", srcs=["base.rs"]),
        target("foo", "library", srcs=["lib.rs"], deps=[":base"]),
        target("foo_docs", "doc", dep=":foo", html_in_header="header.html"),
    )
    (action,) = plans["foo_docs"].actions
    inv = _invocation(action)
    assert action.mnemonic == "Rustdoc"
    assert inv.program == "rustdoc"
    assert inv.crate_name == "foo"
    assert inv.out_dir == "out/bin/pkg/_foo_docs_rust_docs"
    assert "--html-in-header" in inv.argv
    assert "base=out/bin/pkg/foo_docs.deps/libbase.rlib" in inv.argv
    assert action.outputs == ("out/bin/pkg/foo_docs-docs.zip",)
    assert "pkg/header.html" in action.inputs
    assert "zip -qR foo_docs-docs.zip" in action.command
    assert action.command.splitlines()[-1] == (
        "mv out/bin/pkg/_foo_docs_rust_docs/foo_docs-docs.zip out/bin/pkg/foo_docs-docs.zip"
    )


def test_doc_requires_a_dep(ctx) -> None:
    with pytest.raises(InvalidTargetError):
        plan_in_order(ctx, target("docs", "doc"))


def test_doc_rejects_a_dependency_without_sources(ctx) -> None:
    with pytest.raises(InvalidDependencyKindError):
        plan_in_order(
            ctx,
            target("nat", "native_library", archives=["libnat.a"]),
            target("docs", "doc", dep=":nat"),
        )


def test_doc_test_writes_runfiles_script(ctx) -> None:
    plans = plan_in_order(
        ctx,
        target("base", "library", srcs=["base.rs"]),
        target("foo", "library", srcs=["lib.rs"], deps=[":base"]),
        target("foo_doc_test", "doc_test", dep=":foo"),
    )
    plan = plans["foo_doc_test"]
    (script,) = plan.actions
    assert isinstance(script, WriteAction)
    assert script.executable
    assert script.output == "out/bin/pkg/foo_doc_test"
    lines = script.content.splitlines()
    assert lines[:2] == ["#!/bin/bash", "set -e"]
    assert "rm -rf ./foo_doc_test.deps; mkdir ./foo_doc_test.deps" in lines
    assert "ln -sf ../pkg/libbase.rlib ./foo_doc_test.deps/libbase.rlib" in lines
    assert lines[-1].startswith("rustdoc --test pkg/lib.rs --crate-name foo ")
    assert "pkg/lib.rs" in plan.runfiles
    assert "pkg/libbase.rlib" in plan.runfiles
    assert "rustdoc" in plan.runfiles


def test_doc_targets_stage_native_archives_of_documented_library(ctx) -> None:
    plans = plan_in_order(
        ctx,
        target("nat", "native_library", archives=["libnat.a"]),
        target("core", "library", srcs=["lib.rs"], deps=[":nat"]),
        target("core_docs", "doc", dep=":core"),
        target("core_doc_test", "doc_test", dep=":core"),
    )
    doc_inv = _invocation(plans["core_docs"].actions[0])
    assert "static=nat" in doc_inv.argv
    assert "native=out/bin/pkg/core_docs.deps" in doc_inv.argv
    assert not any(arg.startswith("nat=") for arg in doc_inv.argv)
    doc_test = plans["core_doc_test"]
    (script,) = doc_test.actions
    lines = script.content.splitlines()
    assert "ln -sf ../pkg/libnat.a ./core_doc_test.deps/libnat.a" in lines
    assert "-l static=nat" in lines[-1]
    assert "pkg/libnat.a" in doc_test.runfiles


def test_proto_library_generates_then_compiles(ctx) -> None:
    plans = plan_in_order(
        ctx,
        target("msgs", "proto_library", srcs=["msgs.proto"]),
        target("svc", "library", srcs=["lib.rs"], deps=[":msgs"]),
    )
    generate, compile_action = plans["msgs"].actions
    assert generate.mnemonic == "GenerateProtoLibrary"
    assert generate.outputs == ("out/bin/pkg/msgs.proto_gen/lib.rs", "out/bin/pkg/msgs.proto_gen/msgs.rs")
    assert "protoc --proto_path=out/bin/pkg/msgs.proto_gen" in generate.command
    assert "pub mod msgs; pub use msgs::*; extern crate protobuf;" in generate.command
    assert compile_action.mnemonic == "CompileProtoLibrary"
    assert compile_action.outputs == ("out/bin/pkg/libmsgs.rlib",)
    assert _invocation(compile_action).src == "out/bin/pkg/msgs.proto_gen/lib.rs"
    svc_inv = _invocation(plans["svc"].actions[0])
    assert "msgs=out/bin/pkg/svc.deps/libmsgs.rlib" in svc_inv.argv


def test_proto_library_requires_exactly_one_proto(ctx) -> None:
    with pytest.raises(CodegenInputCountViolationError):
        plan_in_order(ctx, target("msgs", "proto_library", srcs=["a.proto", "b.proto"]))
    with pytest.raises(CodegenInputCountViolationError):
        plan_in_order(ctx, target("empty", "proto_library"))


def test_native_library_plans_no_actions(ctx) -> None:
    plan = plan_in_order(ctx, target("nat", "native_library", archives=["lib/libnat.a"]))["nat"]
    assert plan.actions == ()
    assert plan.provides.native is not None
    assert [a.path for a in plan.provides.native.archives] == ["pkg/lib/libnat.a"]


@pytest.mark.parametrize(
    ("descriptor", "fragment"),
    [
        (target("foo", "library", srcs=["lib.rs"], crate_root="main.rs"), "crate_root"),
        (target("foo", "binary", srcs=["main.rs"], crate_type="lib"), "crate_type"),
        (target("foo", "library", srcs=["lib.c"]), ".rs"),
        (target("foo", "library"), "srcs"),
        (target("nat", "native_library"), "archive"),
    ],
)
def test_descriptor_invariants(ctx, descriptor, fragment: str) -> None:
    with pytest.raises(InvalidTargetError) as err:
        plan_target(ctx, descriptor, {})
    assert fragment in str(err.value)


def test_unresolved_dependency_is_reported(ctx) -> None:
    with pytest.raises(UnknownDependencyError) as err:
        plan_target(ctx, target("app", "binary", srcs=["main.rs"], deps=["//other:lib"]), {})
    assert err.value.dependency == "//other:lib"
