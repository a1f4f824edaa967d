"""Toolchain configuration.

The active toolchain is a plain value loaded once and threaded through every
planning call via `PlanContext`; nothing in the planner reads it from ambient
state.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from .contracts.validate import validate
from .core.files import load_structured

DARWIN_AR = "/usr/bin/ar"


@dataclass(frozen=True)
class Toolchain:
    rustc: str = "rustc"
    rustdoc: str = "rustdoc"
    rustc_lib: tuple[str, ...] = ()
    rust_lib: tuple[str, ...] = ()
    crosstool_files: tuple[str, ...] = ()
    cc: str = ""
    ar: str = ""
    link_options: tuple[str, ...] = ()
    target_triple: str = ""
    rustc_opts: tuple[str, ...] = ()
    protoc: str = "protoc"
    zip: str = "zip"
    color: str = "always"

    @property
    def effective_ar(self) -> str:
        # rustc passes ar-specific flags, which libtool rejects.
        if "libtool" in self.ar:
            return DARWIN_AR
        return self.ar

    @property
    def compile_files(self) -> tuple[str, ...]:
        """Toolchain files every rustc action must declare as inputs."""
        return (self.rustc, *self.rustc_lib, *self.rust_lib, *self.crosstool_files)

    @property
    def doc_files(self) -> tuple[str, ...]:
        return (self.rustdoc, *self.rustc_lib, *self.rust_lib)

    def as_dict(self) -> dict[str, Any]:
        return {
            "rustc": self.rustc,
            "rustdoc": self.rustdoc,
            "rustc_lib": list(self.rustc_lib),
            "rust_lib": list(self.rust_lib),
            "crosstool_files": list(self.crosstool_files),
            "cc": self.cc,
            "ar": self.ar,
            "link_options": list(self.link_options),
            "target_triple": self.target_triple,
            "rustc_opts": list(self.rustc_opts),
            "protoc": self.protoc,
            "zip": self.zip,
            "color": self.color,
        }


_LIST_FIELDS = {"rustc_lib", "rust_lib", "crosstool_files", "link_options", "rustc_opts"}

ENV_OVERRIDES = {
    "CRATEPLAN_RUSTC": "rustc",
    "CRATEPLAN_RUSTDOC": "rustdoc",
    "CRATEPLAN_TARGET_TRIPLE": "target_triple",
    "CRATEPLAN_PROTOC": "protoc",
}


def toolchain_from_mapping(raw: Mapping[str, Any], source: str = "") -> Toolchain:
    validate("crateplan.toolchain.v1", dict(raw), source=source)
    values: dict[str, Any] = {}
    for key, value in raw.items():
        values[key] = tuple(str(x) for x in value) if key in _LIST_FIELDS else str(value)
    return Toolchain(**values)


def apply_env_overrides(toolchain: Toolchain, env: Mapping[str, str] | None = None) -> Toolchain:
    env = os.environ if env is None else env
    updates = {attr: env[name] for name, attr in ENV_OVERRIDES.items() if env.get(name)}
    return replace(toolchain, **updates) if updates else toolchain


def load_toolchain(path: Path | None, env: Mapping[str, str] | None = None) -> Toolchain:
    """Load the `[toolchain]` table of a config file, then apply env overrides.

    A missing `path` yields the default toolchain (tools resolved from PATH).
    """
    if path is None:
        return apply_env_overrides(Toolchain(), env)
    payload = load_structured(path)
    table = payload.get("toolchain", payload)
    return apply_env_overrides(toolchain_from_mapping(table, source=str(path)), env)

