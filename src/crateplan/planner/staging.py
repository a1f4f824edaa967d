from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Iterable

from ..core.paths import relative_path
from ..model.target import Artifact


@dataclass(frozen=True)
class ResetDirectory:
    path: str

    def render(self) -> str:
        quoted = shlex.quote(self.path)
        return f"rm -rf {quoted}; mkdir {quoted}"

    def as_dict(self) -> dict[str, str]:
        return {"op": "reset_dir", "path": self.path}


@dataclass(frozen=True)
class Symlink:
    target: str
    link: str

    def render(self) -> str:
        return f"ln -sf {shlex.quote(self.target)} {shlex.quote(self.link)}"

    def as_dict(self) -> dict[str, str]:
        return {"op": "symlink", "target": self.target, "link": self.link}


StagingOp = ResetDirectory | Symlink


def staging_dir_for(working_dir: str, name: str) -> str:
    return f"{working_dir}/{name}.deps"


def build_staging_plan(
    staged: Iterable[Artifact],
    staging_dir: str,
    in_runfiles: bool = False,
) -> tuple[StagingOp, ...]:
    """Reset `staging_dir`, then link every staged artifact into it by base name.

    Link targets are relative to the staging directory. In a runfiles tree the
    artifact's short path is the one that exists on disk.
    """
    ops: list[StagingOp] = [ResetDirectory(staging_dir)]
    for artifact in staged:
        source = artifact.short_path if in_runfiles else artifact.path
        ops.append(Symlink(target=relative_path(staging_dir, source), link=f"{staging_dir}/{artifact.basename}"))
    return tuple(ops)


def render_staging(ops: Iterable[StagingOp]) -> list[str]:
    return [op.render() for op in ops]
