"""
reforge/paths.py

Resolves the directories a command works with:
- artifact folder   (forge `out/`, absolute)
- build info folder (forge `out/build-info/` or a custom location, absolute)
- deployment folder          <root>/deployments
- canonical config folder    <root>/.canonical-configs

Nothing here touches the filesystem beyond normalizing paths. Bad paths show
up later as ArtifactNotFound / BuildInfoNotFound.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_ROOT = "reforge"
DEPLOYMENTS_DIRNAME = "deployments"
CANONICAL_CONFIGS_DIRNAME = ".canonical-configs"


@dataclass(frozen=True)
class ResolvedPaths:
    artifact_folder: str
    build_info_folder: str
    deployment_folder: str
    canonical_config_folder: str


def fetch_paths(out_path: str, build_info_path: str, root: str | None = None) -> ResolvedPaths:
    """Turn the CLI's out/build-info arguments into absolute folders."""
    root_dir = os.path.abspath(root or DEFAULT_ROOT)
    return ResolvedPaths(
        artifact_folder=os.path.abspath(out_path),
        build_info_folder=os.path.abspath(build_info_path),
        deployment_folder=os.path.join(root_dir, DEPLOYMENTS_DIRNAME),
        canonical_config_folder=os.path.join(root_dir, CANONICAL_CONFIGS_DIRNAME),
    )
