"""rustc and rustdoc invocations.

An `Invocation` is the structured form of one compiler call; `render()` turns
it into the single shell line the engine runs after the staging commands.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..core.paths import dirnames
from ..errors import CodegenInputCountViolationError, InvalidArtifactKindError
from ..model.target import (
    DEFAULT_LIBRARY_CRATE_TYPE,
    LIBRARY_CRATE_TYPES,
    PROTO_EXTENSION,
    File,
    TargetDescriptor,
)
from ..toolchain import Toolchain
from .closure import DependencyClosure, Flag
from .staging import StagingOp, render_staging

TMPDIR_GUARD = 'if [ ! -z "${TMPDIR+x}" ]; then mkdir -p "$TMPDIR"; fi'


@dataclass(frozen=True)
class Invocation:
    program: str
    crate_name: str
    crate_type: str
    src: str
    out_dir: str
    argv: tuple[str, ...]
    env: tuple[tuple[str, str], ...] = ()

    def command_line(self) -> list[str]:
        return [self.program, *self.argv]

    def render(self) -> str:
        assignments = [f"{key}={shlex.quote(value)}" for key, value in self.env]
        return " ".join([*assignments, shlex.join(self.command_line())])

    def as_dict(self) -> dict[str, object]:
        return {
            "program": self.program,
            "crate_name": self.crate_name,
            "crate_type": self.crate_type,
            "src": self.src,
            "out_dir": self.out_dir,
            "argv": list(self.argv),
            "env": dict(self.env),
        }


def library_crate_type(target: TargetDescriptor) -> str:
    if not target.crate_type:
        return DEFAULT_LIBRARY_CRATE_TYPE
    if target.crate_type not in LIBRARY_CRATE_TYPES:
        raise InvalidArtifactKindError(
            f"{target.label}: invalid crate_type `{target.crate_type}` for a library; "
            f"allowed crate types are: {' '.join(LIBRARY_CRATE_TYPES)}",
            target=target.label,
        )
    return target.crate_type


def require_single_proto(target: TargetDescriptor) -> File:
    srcs = target.source_files
    if len(srcs) != 1:
        raise CodegenInputCountViolationError(
            f"{target.label}: expected exactly one {PROTO_EXTENSION} input file, got {len(srcs)}",
            target=target.label,
        )
    return srcs[0]


def feature_flags(features: Iterable[str]) -> tuple[Flag, ...]:
    return tuple(("--cfg", f'feature="{feature}"') for feature in features)


def _flatten(flags: Iterable[Flag]) -> list[str]:
    return [token for flag in flags for token in flag]


def _library_path_env(toolchain: Toolchain) -> tuple[tuple[str, str], ...]:
    if not toolchain.rustc_lib:
        return ()
    lib_path = ":".join(dirnames(toolchain.rustc_lib))
    return (("LD_LIBRARY_PATH", lib_path), ("DYLD_LIBRARY_PATH", lib_path))


def _codegen_flags(toolchain: Toolchain) -> list[str]:
    argv: list[str] = []
    if toolchain.effective_ar:
        argv += ["--codegen", f"ar={toolchain.effective_ar}"]
    if toolchain.cc:
        argv += ["--codegen", f"linker={toolchain.cc}"]
    if toolchain.link_options:
        argv += ["--codegen", f"link-args={' '.join(toolchain.link_options)}"]
    return argv


def build_rustc_invocation(
    toolchain: Toolchain,
    crate_name: str,
    crate_type: str,
    src: File,
    out_dir: str,
    closure: DependencyClosure,
    crate_features: Sequence[str] = (),
    rustc_flags: Sequence[str] = (),
    test_harness: bool = False,
) -> Invocation:
    argv = [
        src.path,
        "--crate-name",
        crate_name,
        "--crate-type",
        crate_type,
        *_codegen_flags(toolchain),
        "--out-dir",
        out_dir,
        "--emit=dep-info,link",
        "--color",
        toolchain.color,
    ]
    if toolchain.target_triple:
        argv.append(f"--target={toolchain.target_triple}")
    argv += _flatten(closure.search_flags)
    argv += _flatten(closure.named_binding_flags)
    argv += _flatten(closure.link_flags)
    argv += _flatten(feature_flags(crate_features))
    argv += list(toolchain.rustc_opts)
    argv += list(rustc_flags)
    if test_harness:
        argv.append("--test")
    return Invocation(
        program=toolchain.rustc,
        crate_name=crate_name,
        crate_type=crate_type,
        src=src.path,
        out_dir=out_dir,
        argv=tuple(argv),
        env=_library_path_env(toolchain),
    )


def build_rustdoc_invocation(
    toolchain: Toolchain,
    crate_name: str,
    src: File,
    docs_dir: str,
    closure: DependencyClosure,
    doc_flags: Sequence[str] = (),
) -> Invocation:
    argv = [src.path, "--crate-name", crate_name, "-o", docs_dir, *doc_flags, *closure.argv]
    return Invocation(
        program=toolchain.rustdoc,
        crate_name=crate_name,
        crate_type="doc",
        src=src.path,
        out_dir=docs_dir,
        argv=tuple(argv),
        env=_library_path_env(toolchain),
    )


def build_rustdoc_test_invocation(
    toolchain: Toolchain, crate_name: str, src: File, closure: DependencyClosure
) -> Invocation:
    # Runs from the runfiles tree, so the source is addressed by short path.
    argv = ["--test", src.short_path, "--crate-name", crate_name, *closure.argv]
    return Invocation(
        program=toolchain.rustdoc,
        crate_name=crate_name,
        crate_type="doc_test",
        src=src.short_path,
        out_dir=".",
        argv=tuple(argv),
        env=_library_path_env(toolchain),
    )


def compile_command(staging: Sequence[StagingOp], invocation: Invocation) -> str:
    return "\n".join(["set -e", TMPDIR_GUARD, *render_staging(staging), invocation.render()])


def doc_command(
    staging: Sequence[StagingOp],
    invocation: Invocation,
    zip_tool: str,
    docs_dir: str,
    zip_path: str,
    zip_name: str,
) -> str:
    docs = shlex.quote(docs_dir)
    return "\n".join(
        [
            "set -e",
            *render_staging(staging),
            f"rm -rf {docs}; mkdir {docs}",
            invocation.render(),
            f"(cd {docs} && {shlex.quote(zip_tool)} -qR {shlex.quote(zip_name)} $(find . -type f))",
            f"mv {docs}/{shlex.quote(zip_name)} {shlex.quote(zip_path)}",
        ]
    )


def doc_test_script(staging: Sequence[StagingOp], invocation: Invocation) -> str:
    return "\n".join(["#!/bin/bash", "set -e", *render_staging(staging), invocation.render()]) + "\n"


def bench_wrapper_script(test_binary_short_path: str) -> str:
    return f"#!/bin/bash\nset -e\n{shlex.quote(test_binary_short_path)} --bench\n"


def rustdoc_flags(target: TargetDescriptor) -> list[str]:
    flags: list[str] = []
    for css in target.markdown_css:
        flags += ["--markdown-css", target.source_path(css)]
    if target.html_in_header:
        flags += ["--html-in-header", target.source_path(target.html_in_header)]
    if target.html_before_content:
        flags += ["--html-before-content", target.source_path(target.html_before_content)]
    if target.html_after_content:
        flags += ["--html-after-content", target.source_path(target.html_after_content)]
    return flags
