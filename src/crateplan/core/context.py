from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from ..toolchain import Toolchain, load_toolchain

DEFAULT_BIN_DIR = "out/bin"


@dataclass(frozen=True)
class PlanContext:
    """Everything a planning call may consult besides the target and its deps."""

    run_id: str = "crateplan"
    toolchain: Toolchain = field(default_factory=Toolchain)
    bin_dir: str = DEFAULT_BIN_DIR
    verbose: bool = False
    quiet: bool = False
    log_json: bool = False

    def output_dir(self, package: str) -> str:
        return f"{self.bin_dir}/{package}" if package else self.bin_dir

    @classmethod
    def from_args(
        cls,
        run_id: str | None = None,
        toolchain_file: str | None = None,
        bin_dir: str | None = None,
        verbose: bool = False,
        quiet: bool = False,
        log_json: bool | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "PlanContext":
        env = os.environ if env is None else env
        default_run = f"crateplan-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"
        resolved_run_id = run_id or env.get("RUN_ID", default_run)
        toolchain = load_toolchain(Path(toolchain_file) if toolchain_file else None, env)
        resolved_bin_dir = (bin_dir or env.get("CRATEPLAN_BIN_DIR", DEFAULT_BIN_DIR)).rstrip("/")
        resolved_log_json = log_json if log_json is not None else env.get("CRATEPLAN_LOG_JSON", "") in {"1", "true"}
        return cls(
            run_id=resolved_run_id,
            toolchain=toolchain,
            bin_dir=resolved_bin_dir,
            verbose=verbose,
            quiet=quiet,
            log_json=resolved_log_json,
        )
