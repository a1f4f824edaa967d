"""Dependency closure for a single target.

Only the declared dependencies are walked. Each crate dependency already
carries its own transitive artifact set, so one level is enough to stage the
whole closure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..errors import StagingNameCollisionError
from ..model.providers import ResolvedTarget
from ..model.target import Artifact
from .classify import CrateDependency, Dependency, classify_dependency

Flag = tuple[str, ...]


@dataclass(frozen=True)
class DependencyClosure:
    target: str
    staging_dir: str
    immediate_artifacts: frozenset[Artifact]
    transitive_artifacts: frozenset[Artifact]
    staged_artifacts: tuple[Artifact, ...]
    search_flags: tuple[Flag, ...]
    named_binding_flags: tuple[Flag, ...]
    link_flags: tuple[Flag, ...]
    dependencies: tuple[Dependency, ...] = ()

    @property
    def flags(self) -> tuple[Flag, ...]:
        return self.search_flags + self.named_binding_flags + self.link_flags

    @property
    def argv(self) -> list[str]:
        return [token for flag in self.flags for token in flag]


def dependency_search_flag(staging_dir: str) -> Flag:
    return ("-L", f"dependency={staging_dir}")


def native_search_flag(staging_dir: str) -> Flag:
    return ("-L", f"native={staging_dir}")


def named_binding_flag(name: str, staging_dir: str, artifact: Artifact) -> Flag:
    return ("--extern", f"{name}={staging_dir}/{artifact.basename}")


def native_link_flag(name: str) -> Flag:
    return ("-l", f"static={name}")


class _StagedSet:
    """Staged artifacts keyed by base name, in first-seen order."""

    def __init__(self, target: str) -> None:
        self._target = target
        self._by_name: dict[str, Artifact] = {}

    def add(self, artifact: Artifact, via: str) -> None:
        existing = self._by_name.get(artifact.basename)
        if existing is None:
            self._by_name[artifact.basename] = artifact
            return
        if existing.path != artifact.path:
            raise StagingNameCollisionError(
                f"{self._target}: staged artifacts {existing.path} and {artifact.path} share the name "
                f"`{artifact.basename}` (reached through {via})",
                target=self._target,
                dependency=via,
            )

    def items(self) -> tuple[Artifact, ...]:
        return tuple(self._by_name.values())


def build_closure(
    target: str,
    staging_dir: str,
    deps: Sequence[ResolvedTarget],
    allow_native: bool,
) -> DependencyClosure:
    # Classify every edge before accumulating anything.
    classified = tuple(classify_dependency(dep, target, allow_native) for dep in deps)

    immediate: set[Artifact] = set()
    transitive: set[Artifact] = set()
    staged = _StagedSet(target)
    named: list[Flag] = []
    links: dict[Flag, None] = {}
    has_crate = False
    has_native = False

    for dep in classified:
        if isinstance(dep, CrateDependency):
            has_crate = True
            artifact = dep.info.artifact
            immediate.add(artifact)
            transitive.add(artifact)
            transitive.update(dep.info.transitive_artifacts)
            staged.add(artifact, dep.label)
            for lib in sorted(dep.info.transitive_artifacts):
                staged.add(lib, dep.label)
                if lib.is_native:
                    has_native = True
                    links.setdefault(native_link_flag(lib.owner), None)
            named.append(named_binding_flag(dep.name, staging_dir, artifact))
        else:
            has_native = True
            for archive in dep.archives:
                transitive.add(archive)
                staged.add(archive, dep.label)
            links.setdefault(native_link_flag(dep.name), None)

    search: list[Flag] = []
    if has_crate:
        search.append(dependency_search_flag(staging_dir))
    if has_native:
        search.append(native_search_flag(staging_dir))

    return DependencyClosure(
        target=target,
        staging_dir=staging_dir,
        immediate_artifacts=frozenset(immediate),
        transitive_artifacts=frozenset(transitive),
        staged_artifacts=staged.items(),
        search_flags=tuple(search),
        named_binding_flags=tuple(named),
        link_flags=tuple(links),
        dependencies=classified,
    )
