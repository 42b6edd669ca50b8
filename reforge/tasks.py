"""
reforge/tasks.py

Boundary with the task engine that performs the actual on-chain workflows.

reforge only resolves inputs; everything that sends transactions lives behind
the TaskEngine protocol below, one method per workflow. The engine is picked
at runtime from REFORGE_TASK_ENGINE ("package.module:attr"), where attr is a
class or zero-argument factory returning an object with these methods.

Engines write human-readable progress to ctx.stream.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import IO, Any, Optional, Protocol, Sequence, runtime_checkable

from eth_abi import encode
from web3 import Web3

from reforge.artifact_paths import ArtifactPathTable
from reforge.chain import ChainContext
from reforge.config import UserConfig
from reforge.errors import ConfigError
from reforge.paths import ResolvedPaths

INTEGRATION = "foundry"

DEPLOYED_CONTRACTS_ABI = "(string,string,address)[]"


@dataclass
class TaskContext:
    chain: ChainContext
    config_path: Optional[str]
    user_config: Optional[UserConfig]
    artifact_paths: ArtifactPathTable
    paths: Optional[ResolvedPaths]
    stream: IO[str]
    silent: bool = False
    integration: str = INTEGRATION


@dataclass(frozen=True)
class DeployedContract:
    reference_name: str
    contract_name: str
    contract_address: str


def encode_deployed_contracts(contracts: Sequence[DeployedContract]) -> str:
    """ABI-encode deploy results as tuple(string referenceName, string contractName, address contractAddress)[]."""
    rows = [
        (c.reference_name, c.contract_name, Web3.to_checksum_address(c.contract_address))
        for c in contracts
    ]
    return "0x" + encode([DEPLOYED_CONTRACTS_ABI], [rows]).hex()


@runtime_checkable
class TaskEngine(Protocol):
    def register(self, ctx: TaskContext, owner: str) -> Any: ...

    def propose(
        self,
        ctx: TaskContext,
        ipfs_url: Optional[str],
        remote_execution: bool,
        skip_storage_check: bool,
    ) -> Any: ...

    def fund(self, ctx: TaskContext, amount: int) -> Any: ...

    def approve(
        self,
        ctx: TaskContext,
        withdraw_funds: bool,
        skip_monitor_status: bool,
        remote_execution: bool,
    ) -> Any: ...

    def monitor_setup(self, ctx: TaskContext) -> None: ...

    def initialize_executor(self, ctx: TaskContext, private_key: str, log_level: str) -> Any: ...

    def deploy(
        self,
        ctx: TaskContext,
        *,
        remote_execution: bool,
        ipfs_url: Optional[str],
        no_compile: bool,
        confirm: bool,
        withdraw_funds: bool,
        new_owner: str,
        skip_storage_check: bool,
        executor: Any,
    ) -> Sequence[DeployedContract]: ...

    def monitor(
        self,
        ctx: TaskContext,
        withdraw_funds: bool,
        new_owner: str,
        remote_execution: bool,
    ) -> Any: ...

    def cancel(self, ctx: TaskContext) -> Any: ...

    def withdraw(self, ctx: TaskContext) -> Any: ...

    def list_projects(self, ctx: TaskContext) -> Any: ...

    def list_proposers(self, ctx: TaskContext) -> Any: ...

    def add_proposers(self, ctx: TaskContext, new_proposers: list[str]) -> Any: ...

    def claim_proxy(self, ctx: TaskContext, reference_name: str) -> Any: ...

    def transfer_proxy(self, ctx: TaskContext, proxy_address: str) -> Any: ...

    def get_proxy_address(self, ctx: TaskContext, reference_name: str) -> str: ...


def load_task_engine(target: Optional[str]) -> TaskEngine:
    """Import and instantiate the engine named by "module:attr"."""
    if not target:
        raise ConfigError("No task engine configured. Set REFORGE_TASK_ENGINE=package.module:EngineClass")

    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"REFORGE_TASK_ENGINE must look like package.module:attr, got {target!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Could not import task engine module {module_name}: {e}") from e

    factory = getattr(module, attr, None)
    if factory is None:
        raise ConfigError(f"Module {module_name} has no attribute {attr}")

    engine = factory() if callable(factory) else factory
    if not isinstance(engine, TaskEngine):
        raise ConfigError(f"{target} does not implement the task engine interface")
    return engine
