from __future__ import annotations

import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Literal

LinkKind = Literal["crate", "native", "output"]

LIBRARY_CRATE_TYPES = ("lib", "rlib", "dylib", "staticlib")
DEFAULT_LIBRARY_CRATE_TYPE = "lib"
RUST_EXTENSION = ".rs"
PROTO_EXTENSION = ".proto"
NATIVE_ARCHIVE_EXTENSION = ".a"


class TargetKind(str, Enum):
    LIBRARY = "library"
    BINARY = "binary"
    TEST = "test"
    BENCH_TEST = "bench_test"
    DOC = "doc"
    DOC_TEST = "doc_test"
    PROTO_LIBRARY = "proto_library"
    NATIVE_LIBRARY = "native_library"

    @property
    def is_test(self) -> bool:
        return self in {TargetKind.TEST, TargetKind.BENCH_TEST}

    @property
    def is_doc(self) -> bool:
        return self in {TargetKind.DOC, TargetKind.DOC_TEST}


@dataclass(frozen=True, order=True)
class File:
    path: str
    short_path: str

    @property
    def basename(self) -> str:
        return posixpath.basename(self.path)

    @property
    def dirname(self) -> str:
        return posixpath.dirname(self.path)

    @property
    def extension(self) -> str:
        return posixpath.splitext(self.path)[1]

    @classmethod
    def source(cls, path: str) -> "File":
        return cls(path=path, short_path=path)


@dataclass(frozen=True, order=True)
class Artifact(File):
    owner: str = ""
    link_kind: LinkKind = "output"

    @property
    def is_native(self) -> bool:
        return self.link_kind == "native"


def label_for(package: str, name: str) -> str:
    return f"//{package}:{name}"


@dataclass(frozen=True)
class TargetDescriptor:
    name: str
    kind: TargetKind
    package: str = ""
    srcs: tuple[str, ...] = ()
    crate_root: str | None = None
    deps: tuple[str, ...] = ()
    crate_features: tuple[str, ...] = ()
    rustc_flags: tuple[str, ...] = ()
    data: tuple[str, ...] = ()
    crate_type: str = ""
    dep: str | None = None
    markdown_css: tuple[str, ...] = ()
    html_in_header: str | None = None
    html_before_content: str | None = None
    html_after_content: str | None = None
    archives: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return label_for(self.package, self.name)

    def source_path(self, rel: str) -> str:
        return f"{self.package}/{rel}" if self.package else rel

    @property
    def source_files(self) -> tuple[File, ...]:
        return tuple(File.source(self.source_path(src)) for src in self.srcs)

    @property
    def root_file(self) -> File | None:
        if self.crate_root is None:
            return None
        return File.source(self.source_path(self.crate_root))

    @property
    def data_files(self) -> tuple[File, ...]:
        return tuple(File.source(self.source_path(path)) for path in self.data)

    def all_deps(self) -> tuple[str, ...]:
        """Every label this target needs resolved before it can be planned."""
        return self.deps + ((self.dep,) if self.dep else ())


def output_artifact(bin_dir: str, package: str, basename: str, owner: str, link_kind: LinkKind = "output") -> Artifact:
    short_path = f"{package}/{basename}" if package else basename
    return Artifact(path=f"{bin_dir}/{short_path}", short_path=short_path, owner=owner, link_kind=link_kind)


def library_basename(name: str) -> str:
    return f"lib{name}.rlib"


def doc_zip_basename(name: str) -> str:
    return f"{name}-docs.zip"
