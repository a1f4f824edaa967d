from .providers import CrateInfo, NativeInfo, ResolvedTarget, SourceInfo
from .target import Artifact, File, TargetDescriptor, TargetKind

__all__ = [
    "Artifact",
    "CrateInfo",
    "File",
    "NativeInfo",
    "ResolvedTarget",
    "SourceInfo",
    "TargetDescriptor",
    "TargetKind",
]
