"""
reforge/config.py

Two kinds of configuration:

1) Tool settings from the environment (.env in the working directory is
   loaded first):
     REFORGE_ROOT                 root for deployments / canonical configs
     REFORGE_LOG_DIR              where deploy logs are written
     REFORGE_TASK_ENGINE          module:attr of the task engine
     REFORGE_EXECUTOR_LOG_LEVEL   log level for a locally booted executor
     REFORGE_RPC_TIMEOUT          HTTP timeout for RPC requests (seconds)
     REFORGE_VERBOSE              print resolution details to stderr

2) The user's project config file (JSON). Only the contracts section is read
   here; everything else is passed through to the task engine untouched.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from reforge.errors import ConfigError
from reforge.paths import DEFAULT_ROOT

EXECUTOR_LOG_LEVELS = ("trace", "debug", "info", "warn", "error", "fatal")


def _opt(name: str) -> str | None:
    """Fetch an optional environment variable."""
    v = os.getenv(name)
    return v if v else None


def _env_float(name: str, default: float) -> float:
    """Read a float env var with a default."""
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _opt(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    root: str = DEFAULT_ROOT
    log_dir: str = "chugsplash/logs"
    task_engine: str | None = None
    executor_log_level: str = "error"
    rpc_timeout: float = 60.0
    verbose: bool = False


def load_settings(env_path: str | Path | None = None) -> Settings:
    """
    Load tool settings from the environment.

    Variables already set in the process environment win over the .env file.
    """
    load_dotenv(dotenv_path=env_path or Path.cwd() / ".env")

    level = (os.getenv("REFORGE_EXECUTOR_LOG_LEVEL") or "error").lower().strip()
    if level not in EXECUTOR_LOG_LEVELS:
        raise ConfigError(
            f"Unsupported REFORGE_EXECUTOR_LOG_LEVEL={level} "
            f"(expected one of {', '.join(EXECUTOR_LOG_LEVELS)})"
        )

    timeout = _env_float("REFORGE_RPC_TIMEOUT", 60.0)
    if timeout <= 0:
        raise ConfigError("REFORGE_RPC_TIMEOUT must be positive")

    return Settings(
        root=_opt("REFORGE_ROOT") or DEFAULT_ROOT,
        log_dir=_opt("REFORGE_LOG_DIR") or "chugsplash/logs",
        task_engine=_opt("REFORGE_TASK_ENGINE"),
        executor_log_level=level,
        rpc_timeout=timeout,
        verbose=_env_bool("REFORGE_VERBOSE"),
    )


# ----------------------------
# User project config
# ----------------------------

@dataclass(frozen=True)
class ContractConfig:
    reference_name: str
    contract: str
    variables: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class UserConfig:
    path: str
    options: dict[str, Any]
    contracts: tuple[ContractConfig, ...]
    raw: dict[str, Any] = field(repr=False)

    def contract(self, reference_name: str) -> ContractConfig:
        for c in self.contracts:
            if c.reference_name == reference_name:
                return c
        raise ConfigError(f"No contract named {reference_name} in {self.path}")


def parse_user_config(data: Any, path: str) -> UserConfig:
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: config must be a JSON object")

    options = data.get("options")
    if options is None:
        options = {}
    if not isinstance(options, dict):
        raise ConfigError(f"{path}: options must be an object")

    contracts_raw = data.get("contracts")
    if not isinstance(contracts_raw, dict):
        raise ConfigError(f"{path}: contracts must be an object of reference name -> contract config")

    contracts = []
    for reference_name, entry in contracts_raw.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"{path}: contract {reference_name} must be an object")
        contract = entry.get("contract")
        if not contract or not isinstance(contract, str):
            raise ConfigError(f"{path}: contract {reference_name} is missing a contract name")
        variables = entry.get("variables")
        if variables is None:
            variables = {}
        if not isinstance(variables, dict):
            raise ConfigError(f"{path}: variables of {reference_name} must be an object")
        contracts.append(ContractConfig(reference_name=reference_name, contract=contract, variables=variables))

    return UserConfig(path=path, options=options, contracts=tuple(contracts), raw=data)


def read_user_config(config_path: str) -> UserConfig:
    """Read the user's project config file."""
    p = Path(config_path)
    if not p.is_file():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ConfigError(f"{config_path}: invalid JSON ({e})") from e
    return parse_user_config(data, str(p.resolve()))
