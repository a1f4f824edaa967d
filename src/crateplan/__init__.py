__version__ = "0.1.0"

__all__ = [
    "__version__",
    "cli",
    "core",
    "contracts",
    "errors",
    "exit_codes",
    "model",
    "planner",
    "toolchain",
    "workspace",
]
