"""
reforge/artifacts.py

Reads a single compiled contract artifact.

Forge writes one artifact per contract at
  <out>/<ContractName>.sol/<ContractName>.json

Two artifact shapes are accepted:
- Foundry: source/contract come from metadata.settings.compilationTarget,
  bytecode lives under bytecode.object.
- Hardhat: flat sourceName / contractName / bytecode fields.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

from reforge.errors import ArtifactNotFound, ArtifactParseError


@dataclass(frozen=True)
class ContractArtifact:
    source_name: str
    contract_name: str
    abi: list[dict[str, Any]]
    bytecode: str
    deployed_bytecode: str


def artifact_path(artifact_folder: str, contract_name: str) -> str:
    """Conventional artifact location for a contract."""
    return os.path.join(artifact_folder, f"{contract_name}.sol", f"{contract_name}.json")


def _bytecode(value: Any) -> str:
    # Foundry nests the hex under "object"; Hardhat stores it directly.
    if isinstance(value, dict):
        value = value.get("object")
    if not value:
        return "0x"
    value = str(value)
    return value if value.startswith("0x") else "0x" + value


def _compilation_target(data: dict[str, Any]) -> tuple[str | None, str | None]:
    metadata = data.get("metadata")
    if isinstance(metadata, str):
        # Older forge versions store the solc metadata as a raw JSON string.
        try:
            metadata = json.loads(metadata)
        except ValueError:
            metadata = None
    if not isinstance(metadata, dict):
        return None, None

    target = (metadata.get("settings") or {}).get("compilationTarget") or {}
    if len(target) != 1:
        return None, None
    source_name, contract_name = next(iter(target.items()))
    return source_name, contract_name


def parse_artifact(data: Any, path: str) -> ContractArtifact:
    """Normalize a decoded artifact document into a ContractArtifact."""
    if not isinstance(data, dict):
        raise ArtifactParseError(path, "artifact is not a JSON object")

    source_name = data.get("sourceName")
    contract_name = data.get("contractName")
    if not source_name or not contract_name:
        target_source, target_contract = _compilation_target(data)
        source_name = source_name or target_source
        contract_name = contract_name or target_contract

    if not source_name:
        source_name = (data.get("ast") or {}).get("absolutePath")

    if not source_name:
        raise ArtifactParseError(path, "missing source name")
    if not contract_name:
        raise ArtifactParseError(path, "missing contract name")

    abi = data.get("abi") or []
    if not isinstance(abi, list):
        raise ArtifactParseError(path, "abi is not a list")

    return ContractArtifact(
        source_name=str(source_name),
        contract_name=str(contract_name),
        abi=abi,
        bytecode=_bytecode(data.get("bytecode")),
        deployed_bytecode=_bytecode(data.get("deployedBytecode")),
    )


def read_contract_artifact(name: str, artifact_folder: str) -> ContractArtifact:
    """Load and parse the artifact for `name` from the artifact folder."""
    path = artifact_path(artifact_folder, name)
    if not os.path.isfile(path):
        raise ArtifactNotFound(path)

    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except ValueError as e:
            raise ArtifactParseError(path, f"invalid JSON ({e})") from e

    return parse_artifact(data, path)
