from __future__ import annotations

from typing import Sequence

from ..errors import RootNotFoundError
from ..model.target import File

LIBRARY_ROOTS = ("lib.rs",)
BINARY_ROOTS = ("main.rs",)
DOC_ROOTS = ("lib.rs", "main.rs")


def find_crate_root(srcs: Sequence[File], file_names: Sequence[str] = LIBRARY_ROOTS, target: str = "") -> File:
    """Pick the crate entry point out of `srcs`.

    A single source is always the root. Otherwise the conventional names are
    tried in priority order, so `lib.rs` wins over `main.rs` when both exist.
    """
    if len(srcs) == 1:
        return srcs[0]
    for name in file_names:
        for src in srcs:
            if src.basename == name:
                return src
    tried = " or ".join(file_names)
    prefix = f"{target}: " if target else ""
    raise RootNotFoundError(f"{prefix}no {tried} source file found in srcs", target=target)


def resolve_crate_root(
    srcs: Sequence[File],
    crate_root: File | None,
    file_names: Sequence[str] = LIBRARY_ROOTS,
    target: str = "",
) -> File:
    if crate_root is not None:
        return crate_root
    return find_crate_root(srcs, file_names, target=target)
