"""
reforge/artifact_paths.py

Builds the artifact path table handed to the task engine:

  reference name -> (build info path, contract artifact path)

For each contract in the user config:
1) read its artifact to learn the source file and the real contract name
2) find the build info that compiled that source
3) derive both file paths

Any failure aborts the whole table; the engine needs every contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from reforge.artifacts import artifact_path, read_contract_artifact
from reforge.build_info import BuildInfoIndex, build_info_path
from reforge.config import ContractConfig
from reforge.errors import AggregationAborted, ResolutionError


@dataclass(frozen=True)
class ArtifactPathEntry:
    build_info_path: str
    contract_artifact_path: str


ArtifactPathTable = Mapping[str, ArtifactPathEntry]


def get_artifact_paths(
    contract_configs: Iterable[ContractConfig],
    artifact_folder: str,
    build_info_folder: str,
    log: Callable[[str], None] | None = None,
) -> ArtifactPathTable:
    """Resolve every contract config to its artifact and build info paths."""
    configs = list(contract_configs)
    table: dict[str, ArtifactPathEntry] = {}
    index: BuildInfoIndex | None = None

    for cfg in configs:
        try:
            artifact = read_contract_artifact(cfg.contract, artifact_folder)

            # Parse the build info folder once, on first use.
            if index is None:
                index = BuildInfoIndex.from_folder(build_info_folder)
            build_info = index.lookup(artifact.source_name)
        except ResolutionError as e:
            raise AggregationAborted(cfg.reference_name, e) from e

        table[cfg.reference_name] = ArtifactPathEntry(
            build_info_path=build_info_path(build_info_folder, build_info.id),
            contract_artifact_path=artifact_path(artifact_folder, artifact.contract_name),
        )
        if log is not None:
            log(f"  {cfg.reference_name}: {artifact.source_name}:{artifact.contract_name} -> {build_info.file_name}")

    return MappingProxyType(table)
