"""Shared fixtures: a fake forge output tree, a fake chain and a recording task engine."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from eth_account import Account

from reforge import chain as chain_mod
from reforge.chain import ChainContext
from reforge.tasks import DeployedContract

# Hardhat / anvil default account #0 (LOCAL ONLY).
HARDHAT_KEY0 = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
HARDHAT_ADDR0 = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

REFORGE_ENV = (
    "REFORGE_ROOT",
    "REFORGE_LOG_DIR",
    "REFORGE_TASK_ENGINE",
    "REFORGE_EXECUTOR_LOG_LEVEL",
    "REFORGE_RPC_TIMEOUT",
    "REFORGE_VERBOSE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate every test from REFORGE_* variables and any .env in the repo."""
    for name in REFORGE_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def foundry_artifact(source_name: str, contract_name: str) -> dict[str, Any]:
    return {
        "abi": [{"type": "function", "name": "totalSupply", "inputs": [], "outputs": [{"type": "uint256"}]}],
        "bytecode": {"object": "0x6080", "linkReferences": {}},
        "deployedBytecode": {"object": "0x6081", "linkReferences": {}},
        "metadata": {"settings": {"compilationTarget": {source_name: contract_name}}},
        "ast": {"absolutePath": source_name},
    }


def write_artifact(out_dir: Path, contract_name: str, data: Any) -> Path:
    path = out_dir / f"{contract_name}.sol" / f"{contract_name}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(data if isinstance(data, str) else json.dumps(data))
    return path


def write_build_info(build_info_dir: Path, build_id: str, sources: list[str], file_name: str | None = None) -> Path:
    build_info_dir.mkdir(parents=True, exist_ok=True)
    path = build_info_dir / (file_name or f"{build_id}.json")
    path.write_text(json.dumps({
        "id": build_id,
        "solcVersion": "0.8.15",
        "input": {"language": "Solidity", "sources": {s: {"content": ""} for s in sources}},
        "output": {"sources": {s: {"id": i} for i, s in enumerate(sources)}, "contracts": {}},
    }))
    return path


class ForgeProject:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.out = root / "out"
        self.build_info = root / "out" / "build-info"
        self.config_path = root / "reforge.config.json"

    def add_contract(self, contract_name: str, source_name: str | None = None) -> Path:
        source_name = source_name or f"contracts/{contract_name}.sol"
        return write_artifact(self.out, contract_name, foundry_artifact(source_name, contract_name))

    def add_build_info(self, build_id: str, sources: list[str]) -> Path:
        return write_build_info(self.build_info, build_id, sources)

    def write_config(self, contracts: dict[str, str]) -> Path:
        self.config_path.write_text(json.dumps({
            "options": {"projectName": "My Project"},
            "contracts": {ref: {"contract": name, "variables": {}} for ref, name in contracts.items()},
        }))
        return self.config_path


@pytest.fixture
def project(tmp_path: Path) -> ForgeProject:
    """ERC20 compiled into build info 0xabc, referenced as "Token"."""
    p = ForgeProject(tmp_path)
    p.add_contract("ERC20", "contracts/ERC20.sol")
    p.add_build_info("0xabc", ["contracts/ERC20.sol", "lib/Context.sol"])
    p.write_config({"Token": "ERC20"})
    return p


@pytest.fixture
def fake_chain(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, Any, str]]:
    """Replace RPC connection with an offline signer; records connect() calls."""
    calls: list[tuple[str, Any, str]] = []

    def connect(rpc_url: str, network: Any, private_key: str, timeout: float = 60.0) -> ChainContext:
        calls.append((rpc_url, network, private_key))
        return ChainContext(w3=None, account=Account.from_key(private_key), network=network, chain_id=31337)

    def connect_readonly(rpc_url: str, timeout: float = 60.0) -> ChainContext:
        calls.append((rpc_url, None, ""))
        return ChainContext(w3=None, account=None, network=None)

    monkeypatch.setattr(chain_mod, "connect", connect)
    monkeypatch.setattr(chain_mod, "connect_readonly", connect_readonly)
    return calls


class FakeEngine:
    """Task engine that records calls instead of sending transactions."""

    def __init__(self, deployed: list[DeployedContract] | None = None, fail_with: Exception | None = None) -> None:
        self.calls: list[tuple[str, Any, tuple, dict]] = []
        self.deployed = deployed or []
        self.fail_with = fail_with

    def _record(self, name: str, ctx: Any, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, ctx, args, kwargs))
        ctx.stream.write(f"{name} done\n")
        if self.fail_with is not None:
            raise self.fail_with

    def register(self, ctx, owner):
        self._record("register", ctx, owner)

    def propose(self, ctx, ipfs_url, remote_execution, skip_storage_check):
        self._record("propose", ctx, ipfs_url, remote_execution, skip_storage_check)

    def fund(self, ctx, amount):
        self._record("fund", ctx, amount)

    def approve(self, ctx, withdraw_funds, skip_monitor_status, remote_execution):
        self._record("approve", ctx, withdraw_funds, skip_monitor_status, remote_execution)

    def monitor_setup(self, ctx):
        self._record("monitor_setup", ctx)

    def initialize_executor(self, ctx, private_key, log_level):
        self._record("initialize_executor", ctx, private_key, log_level)
        return "executor"

    def deploy(self, ctx, **kwargs):
        self._record("deploy", ctx, **kwargs)
        return self.deployed

    def monitor(self, ctx, withdraw_funds, new_owner, remote_execution):
        self._record("monitor", ctx, withdraw_funds, new_owner, remote_execution)

    def cancel(self, ctx):
        self._record("cancel", ctx)

    def withdraw(self, ctx):
        self._record("withdraw", ctx)

    def list_projects(self, ctx):
        self._record("list_projects", ctx)
        return ["My Project"]

    def list_proposers(self, ctx):
        self._record("list_proposers", ctx)
        return [HARDHAT_ADDR0]

    def add_proposers(self, ctx, new_proposers):
        self._record("add_proposers", ctx, new_proposers)

    def claim_proxy(self, ctx, reference_name):
        self._record("claim_proxy", ctx, reference_name)

    def transfer_proxy(self, ctx, proxy_address):
        self._record("transfer_proxy", ctx, proxy_address)

    def get_proxy_address(self, ctx, reference_name):
        self._record("get_proxy_address", ctx, reference_name)
        return "0x5FbDB2315678afecb367f032d93F642f64180aa3"

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()
