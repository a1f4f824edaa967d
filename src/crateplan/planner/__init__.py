"""Per-target planning: root resolution, dependency closure, staging, commands."""

from .rules import plan_target

__all__ = ["plan_target"]
