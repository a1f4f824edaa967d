"""What a planned target exposes to the targets that depend on it.

A consumer never looks at a dependency's descriptor; it only sees the
capabilities recorded here once the dependency has been planned.
"""

from __future__ import annotations

from dataclasses import dataclass

from .target import Artifact, File


@dataclass(frozen=True)
class CrateInfo:
    """A linkable crate plus everything it transitively links against."""

    artifact: Artifact
    transitive_artifacts: frozenset[Artifact]
    crate_type: str


@dataclass(frozen=True)
class NativeInfo:
    archives: tuple[Artifact, ...]


@dataclass(frozen=True)
class SourceInfo:
    """Resolved sources, kept so tests and docs can rebuild the same crate."""

    srcs: tuple[File, ...]
    crate_root: File | None
    deps: tuple["ResolvedTarget", ...]


@dataclass(frozen=True)
class ResolvedTarget:
    label: str
    name: str
    crate: CrateInfo | None = None
    native: NativeInfo | None = None
    sources: SourceInfo | None = None
    files: tuple[Artifact, ...] = ()

    @property
    def capabilities(self) -> tuple[str, ...]:
        caps = []
        if self.crate is not None:
            caps.append("crate")
        if self.native is not None:
            caps.append("native")
        if self.sources is not None:
            caps.append("sources")
        return tuple(caps)
