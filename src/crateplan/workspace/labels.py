from __future__ import annotations

import re

from ..errors import ManifestError
from ..model.target import label_for

_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.+-]*$")
_PACKAGE_RE = re.compile(r"^(?:[A-Za-z0-9_.+-]+(?:/[A-Za-z0-9_.+-]+)*)?$")


def is_valid_name(name: str) -> bool:
    return bool(_NAME_RE.match(name))


def is_valid_package(package: str) -> bool:
    return bool(_PACKAGE_RE.match(package))


def normalize_label(ref: str, package: str) -> str:
    """Canonicalize `ref`, as written inside `package`, to `//pkg:name`.

    Accepted forms: `//pkg:name`, `//pkg` (name = last path segment),
    `:name` and bare `name` (both relative to `package`).
    """
    raw = ref.strip()
    if raw.startswith("//"):
        body = raw[2:]
        if ":" in body:
            pkg, name = body.split(":", 1)
        else:
            pkg, name = body, body.rsplit("/", 1)[-1]
    elif raw.startswith(":"):
        pkg, name = package, raw[1:]
    elif ":" not in raw and "/" not in raw:
        pkg, name = package, raw
    else:
        raise ManifestError(f"malformed label `{ref}` in package `{package}`")
    if not is_valid_package(pkg) or not is_valid_name(name):
        raise ManifestError(f"malformed label `{ref}` in package `{package}`")
    return label_for(pkg, name)
