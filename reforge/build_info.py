"""
reforge/build_info.py

Finds the compiler build info that produced a given source file.

A forge build writes one build info per solc invocation into the build info
folder:
  <build_info_folder>/<id>.json   {"id": ..., "output": {"sources": {...}}, ...}

Incremental builds leave several of these side by side, so the file name tells
us nothing about which sources it covers. We match on content instead: the
build info for a source is the one whose output.sources has that source as a
key. Each source should appear in exactly one build info; when it appears in
two different ones we refuse to guess.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Iterator

from reforge.errors import AmbiguousBuildInfo, BuildInfoNotFound, BuildInfoParseError

BUILD_INFO_EXTENSION = ".json"


@dataclass(frozen=True)
class BuildInfo:
    id: str
    path: str
    sources: dict[str, Any] = field(repr=False)
    solc_version: str | None = None

    @property
    def file_name(self) -> str:
        return f"{self.id}{BUILD_INFO_EXTENSION}"


def build_info_path(build_info_folder: str, build_info_id: str) -> str:
    return os.path.join(build_info_folder, f"{build_info_id}{BUILD_INFO_EXTENSION}")


def load_build_info(path: str) -> BuildInfo:
    """Parse one build info file."""
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except ValueError as e:
            raise BuildInfoParseError(path, f"invalid JSON ({e})") from e

    if not isinstance(data, dict):
        raise BuildInfoParseError(path, "build info is not a JSON object")

    build_id = data.get("id")
    if not build_id or not isinstance(build_id, str):
        raise BuildInfoParseError(path, "missing id")

    output = data.get("output") or {}
    sources = output.get("sources") if isinstance(output, dict) else None
    if not isinstance(sources, dict):
        sources = {}

    return BuildInfo(
        id=build_id,
        path=path,
        sources=sources,
        solc_version=data.get("solcLongVersion") or data.get("solcVersion"),
    )


def _named_after_id(info: BuildInfo) -> bool:
    return os.path.basename(info.path) == info.file_name


def iter_build_infos(build_info_folder: str) -> Iterator[BuildInfo]:
    """Yield every build info in the folder, ordered by file name.

    A missing folder yields nothing; the lookup that follows reports it.
    """
    if not os.path.isdir(build_info_folder):
        return

    for name in sorted(os.listdir(build_info_folder)):
        if not name.endswith(BUILD_INFO_EXTENSION):
            continue
        path = os.path.join(build_info_folder, name)
        if os.path.isfile(path):
            yield load_build_info(path)


class BuildInfoIndex:
    """
    source name -> BuildInfo, built from one scan of a build info folder.

    Sources claimed by build infos with different ids are remembered as
    conflicts and only reported when someone looks them up, so an unrelated
    stale file does not break resolution of other contracts.
    """

    def __init__(self, build_info_folder: str) -> None:
        self.build_info_folder = build_info_folder
        self._by_source: dict[str, BuildInfo] = {}
        self._conflicts: dict[str, list[BuildInfo]] = {}

    @classmethod
    def from_folder(cls, build_info_folder: str) -> "BuildInfoIndex":
        index = cls(build_info_folder)
        for info in iter_build_infos(build_info_folder):
            index.add(info)
        return index

    def add(self, info: BuildInfo) -> None:
        for source_name in info.sources:
            existing = self._by_source.get(source_name)
            if existing is None:
                self._by_source[source_name] = info
            elif existing.id != info.id:
                self._conflicts.setdefault(source_name, [existing]).append(info)
            elif not _named_after_id(existing) and _named_after_id(info):
                # Same build under two names; keep the <id>.json copy.
                self._by_source[source_name] = info

    def lookup(self, source_name: str) -> BuildInfo:
        if source_name in self._conflicts:
            raise AmbiguousBuildInfo(source_name, [b.path for b in self._conflicts[source_name]])
        info = self._by_source.get(source_name)
        if info is None:
            raise BuildInfoNotFound(source_name, self.build_info_folder)
        if not _named_after_id(info):
            raise BuildInfoParseError(
                info.path,
                f"file name does not match its id (expected {info.file_name})",
            )
        return info


def find_build_info(build_info_folder: str, source_name: str) -> BuildInfo:
    """Scan the folder and return the build info that compiled `source_name`."""
    return BuildInfoIndex.from_folder(build_info_folder).lookup(source_name)
