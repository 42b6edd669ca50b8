"""
reforge/errors.py

Error taxonomy for reforge.

Every error raised on purpose derives from ReforgeError and carries the
process exit code the CLI should use for it. Argparse usage errors keep
argparse's own exit code (2).
"""

from __future__ import annotations

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_CONFIG = 3
EXIT_RESOLUTION = 4
EXIT_CHAIN = 5
EXIT_TASK = 6


class ReforgeError(Exception):
    exit_code = 1


class ConfigError(ReforgeError):
    """Bad environment settings, user config or task engine reference."""

    exit_code = EXIT_CONFIG


# ----------------------------
# Artifact resolution
# ----------------------------

class ResolutionError(ReforgeError):
    exit_code = EXIT_RESOLUTION


class ArtifactNotFound(ResolutionError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Artifact not found: {path}. Are you sure your contracts were compiled "
            "and the output directory is correct?"
        )


class ArtifactParseError(ResolutionError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Could not parse artifact {path}: {reason}")


class BuildInfoNotFound(ResolutionError):
    def __init__(self, source_name: str, build_info_folder: str) -> None:
        self.source_name = source_name
        self.build_info_folder = build_info_folder
        super().__init__(
            f"Failed to find build info for {source_name}. Are you sure your contracts "
            f"were compiled and {build_info_folder} is the correct build info directory?"
        )


class BuildInfoParseError(ResolutionError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Could not parse build info {path}: {reason}")


class AmbiguousBuildInfo(ResolutionError):
    def __init__(self, source_name: str, paths: list[str]) -> None:
        self.source_name = source_name
        self.paths = paths
        super().__init__(
            f"Source {source_name} appears in more than one build info: "
            + ", ".join(paths)
            + ". Remove stale build info files (or run `forge clean`) and recompile."
        )


class AggregationAborted(ResolutionError):
    """First per-contract failure, tagged with the contract's reference name."""

    def __init__(self, reference_name: str, cause: ReforgeError) -> None:
        self.reference_name = reference_name
        self.cause = cause
        super().__init__(f"Could not resolve artifacts for {reference_name}: {cause}")


# ----------------------------
# Chain access
# ----------------------------

class RpcUnreachable(ReforgeError):
    exit_code = EXIT_CHAIN


class InvalidSigner(ReforgeError):
    exit_code = EXIT_CHAIN


# ----------------------------
# Task engine
# ----------------------------

class TaskFailed(ReforgeError):
    exit_code = EXIT_TASK

    def __init__(self, command: str, cause: BaseException) -> None:
        self.command = command
        self.cause = cause
        super().__init__(f"{command} failed: {cause}")


# ----------------------------
# Command line
# ----------------------------

class UsageError(ReforgeError):
    """Unknown subcommand, wrong number of arguments or a malformed value."""

    exit_code = EXIT_USAGE
