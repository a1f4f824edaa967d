from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from ..contracts.validate import validate
from ..core.files import load_structured
from ..errors import ManifestError
from ..model.target import TargetDescriptor, TargetKind
from ..toolchain import Toolchain, toolchain_from_mapping
from .labels import is_valid_name, is_valid_package, normalize_label

_TUPLE_FIELDS = ("srcs", "crate_features", "rustc_flags", "data", "markdown_css", "archives")
_OPTIONAL_STR_FIELDS = ("crate_root", "html_in_header", "html_before_content", "html_after_content")


@dataclass(frozen=True)
class Workspace:
    name: str
    targets: tuple[TargetDescriptor, ...]
    toolchain: Toolchain | None = None
    source: str = ""

    def by_label(self) -> dict[str, TargetDescriptor]:
        return {t.label: t for t in self.targets}


def _strings(row: Mapping[str, Any], key: str) -> tuple[str, ...]:
    return tuple(str(x).strip() for x in row.get(key, []) if str(x).strip())


def descriptor_from_row(row: Mapping[str, Any]) -> TargetDescriptor:
    name = str(row.get("name", "")).strip()
    package = str(row.get("package", "")).strip().strip("/")
    if not is_valid_name(name):
        raise ManifestError(f"invalid target name `{name}`")
    if not is_valid_package(package):
        raise ManifestError(f"invalid package `{package}` for target `{name}`")
    values: dict[str, Any] = {key: _strings(row, key) for key in _TUPLE_FIELDS}
    for key in _OPTIONAL_STR_FIELDS:
        value = row.get(key)
        values[key] = str(value).strip() if value is not None else None
    dep = row.get("dep")
    return TargetDescriptor(
        name=name,
        kind=TargetKind(str(row["kind"])),
        package=package,
        deps=tuple(normalize_label(ref, package) for ref in _strings(row, "deps")),
        dep=normalize_label(str(dep), package) if dep else None,
        crate_type=str(row.get("crate_type", "")).strip(),
        **values,
    )


def workspace_from_mapping(payload: Mapping[str, Any], source: str = "") -> Workspace:
    validate("crateplan.workspace.v1", dict(payload), source=source)
    targets = tuple(descriptor_from_row(row) for row in payload.get("targets", []))
    seen: set[str] = set()
    duplicates: list[str] = []
    for target in targets:
        if target.label in seen:
            duplicates.append(target.label)
        seen.add(target.label)
    if duplicates:
        raise ManifestError(f"duplicate target labels: {', '.join(sorted(set(duplicates)))}")
    table = payload.get("toolchain")
    toolchain = toolchain_from_mapping(table, source=source) if table is not None else None
    workspace = payload.get("workspace", {})
    return Workspace(
        name=str(workspace.get("name", "")),
        targets=targets,
        toolchain=toolchain,
        source=source,
    )


def load_workspace(path: Path) -> Workspace:
    return workspace_from_mapping(load_structured(path), source=str(path))
