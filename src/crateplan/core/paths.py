from __future__ import annotations

import posixpath


def path_parts(path: str) -> list[str]:
    """Split a slash-separated path, dropping empty and "." segments."""
    return [part for part in path.split("/") if part not in {"", "."}]


def relative_path(src_dir: str, dest_path: str) -> str:
    """Return `dest_path` expressed relative to the directory `src_dir`.

    Both paths are interpreted against the same (unspecified) root, so the
    result stays valid wherever that root is mounted.
    """
    src = path_parts(src_dir)
    dest = path_parts(dest_path)
    common = 0
    for src_part, dest_part in zip(src, dest):
        if src_part != dest_part:
            break
        common += 1
    ups = [".."] * (len(src) - common)
    return "/".join(ups + dest[common:]) or "."


def join(*parts: str) -> str:
    return posixpath.join(*[p for p in parts if p])


def dirnames(paths: tuple[str, ...] | list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for path in paths:
        seen.setdefault(posixpath.dirname(path) or ".", None)
    return list(seen)
