"""Planning errors.

Every failure the planner can report is a configuration error surfaced
synchronously to the caller. Each carries the offending target and, where one
is involved, the offending dependency, so the engine can report it verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass

from .exit_codes import ERR_CONFIG, ERR_POLICY, ERR_VALIDATION


@dataclass
class PlanError(Exception):
    message: str
    code: int = ERR_CONFIG
    kind: str = "plan_error"
    target: str = ""
    dependency: str | None = None

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "code": self.code,
            "message": self.message,
            "target": self.target,
            "dependency": self.dependency,
        }


@dataclass
class RootNotFoundError(PlanError):
    kind: str = "root_not_found"


@dataclass
class InvalidDependencyKindError(PlanError):
    code: int = ERR_POLICY
    kind: str = "invalid_dependency_kind"


@dataclass
class NativeInteropDisallowedError(PlanError):
    code: int = ERR_POLICY
    kind: str = "native_interop_disallowed"


@dataclass
class InvalidArtifactKindError(PlanError):
    kind: str = "invalid_artifact_kind"


@dataclass
class CodegenInputCountViolationError(PlanError):
    kind: str = "codegen_input_count"


@dataclass
class StagingNameCollisionError(PlanError):
    kind: str = "staging_name_collision"


@dataclass
class InvalidTargetError(PlanError):
    kind: str = "invalid_target"


@dataclass
class ManifestError(PlanError):
    code: int = ERR_VALIDATION
    kind: str = "manifest_invalid"


@dataclass
class UnknownDependencyError(PlanError):
    kind: str = "unknown_dependency"


@dataclass
class DependencyCycleError(PlanError):
    kind: str = "dependency_cycle"
