from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..model.providers import ResolvedTarget
from ..model.target import File
from .command import Invocation
from .staging import StagingOp


def ordered_paths(files: Iterable[File | str]) -> tuple[str, ...]:
    """Deduplicate declared action paths while keeping first-seen order."""
    seen: dict[str, None] = {}
    for item in files:
        seen.setdefault(item if isinstance(item, str) else item.path, None)
    return tuple(seen)


@dataclass(frozen=True)
class ShellAction:
    mnemonic: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]
    command: str
    progress_message: str
    staging: tuple[StagingOp, ...] = ()
    invocation: Invocation | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "type": "run_shell",
            "mnemonic": self.mnemonic,
            "inputs": list(self.inputs),
            "outputs": list(self.outputs),
            "command": self.command,
            "progress_message": self.progress_message,
            "staging": [op.as_dict() for op in self.staging],
            "invocation": self.invocation.as_dict() if self.invocation else None,
        }


@dataclass(frozen=True)
class WriteAction:
    output: str
    content: str
    executable: bool = False
    mnemonic: str = "FileWrite"
    staging: tuple[StagingOp, ...] = ()
    invocation: Invocation | None = None

    @property
    def outputs(self) -> tuple[str, ...]:
        return (self.output,)

    def as_dict(self) -> dict[str, object]:
        return {
            "type": "write_file",
            "mnemonic": self.mnemonic,
            "outputs": [self.output],
            "content": self.content,
            "executable": self.executable,
            "staging": [op.as_dict() for op in self.staging],
            "invocation": self.invocation.as_dict() if self.invocation else None,
        }


Action = ShellAction | WriteAction


@dataclass(frozen=True)
class TargetPlan:
    label: str
    kind: str
    actions: tuple[Action, ...]
    provides: ResolvedTarget
    runfiles: tuple[str, ...] = field(default=())

    @property
    def outputs(self) -> tuple[str, ...]:
        return tuple(path for action in self.actions for path in action.outputs)

    def as_dict(self) -> dict[str, object]:
        return {
            "label": self.label,
            "kind": self.kind,
            "outputs": list(self.outputs),
            "runfiles": list(self.runfiles),
            "actions": [action.as_dict() for action in self.actions],
        }
