from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidDependencyKindError, NativeInteropDisallowedError
from ..model.providers import CrateInfo, ResolvedTarget
from ..model.target import NATIVE_ARCHIVE_EXTENSION, Artifact


@dataclass(frozen=True)
class CrateDependency:
    name: str
    label: str
    info: CrateInfo


@dataclass(frozen=True)
class NativeDependency:
    name: str
    label: str
    archives: tuple[Artifact, ...]


Dependency = CrateDependency | NativeDependency


def native_archives(dep: ResolvedTarget) -> tuple[Artifact, ...]:
    if dep.native is None:
        return ()
    return tuple(a for a in dep.native.archives if a.extension == NATIVE_ARCHIVE_EXTENSION)


def classify_dependency(dep: ResolvedTarget, consumer: str, allow_native: bool) -> Dependency:
    if dep.crate is not None:
        return CrateDependency(name=dep.name, label=dep.label, info=dep.crate)
    archives = native_archives(dep)
    if archives:
        if not allow_native:
            raise NativeInteropDisallowedError(
                f"{consumer}: native dependency {dep.label} is not allowed for this target kind; "
                "only library, test, bench_test and proto_library targets may depend on native libraries",
                target=consumer,
                dependency=dep.label,
            )
        return NativeDependency(name=dep.name, label=dep.label, archives=archives)
    exposed = ", ".join(dep.capabilities) or "nothing linkable"
    raise InvalidDependencyKindError(
        f"{consumer}: dependency {dep.label} is neither a crate library nor a native library (exposes {exposed})",
        target=consumer,
        dependency=dep.label,
    )
