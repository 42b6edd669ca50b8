"""
reforge/chain.py

Connection layer:
- Build a Web3 HTTP provider for the RPC URL
- Build a signer from the raw private key
- Fail fast: ask the node for its chain id (and compare it with the requested
  network, if any) and derive the signer address before any work is done

Network names follow the usual ethers/hardhat names. "localhost" on the
command line means no network override and is mapped to None before it gets
here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from reforge.errors import InvalidSigner, RpcUnreachable

KNOWN_NETWORKS = {
    "mainnet": 1,
    "homestead": 1,
    "goerli": 5,
    "sepolia": 11155111,
    "optimism": 10,
    "optimism-goerli": 420,
    "arbitrum": 42161,
    "arbitrum-goerli": 421613,
    "matic": 137,
    "polygon": 137,
    "maticmum": 80001,
    "gnosis": 100,
    "bnb": 56,
    "anvil": 31337,
    "hardhat": 31337,
}


@dataclass
class ChainContext:
    w3: Web3
    account: Optional[LocalAccount]
    network: Optional[str]
    chain_id: Optional[int] = None

    @property
    def address(self) -> str:
        if self.account is None:
            raise InvalidSigner("No signer configured for this command")
        return self.account.address


def make_provider(rpc_url: str, timeout: float = 60.0) -> Web3:
    """Web3 instance for the RPC URL. No request is made."""
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


def load_signer(private_key: str) -> LocalAccount:
    """Signer for a raw hex private key (with or without 0x)."""
    key = private_key.strip()
    if not key.startswith("0x"):
        key = "0x" + key
    try:
        return Account.from_key(key)
    except Exception as e:
        # eth_account raises a mix of ValueError / binascii / validation errors.
        raise InvalidSigner(f"Invalid private key: {e.__class__.__name__}") from None


def check_network(w3: Web3, rpc_url: str, network: Optional[str]) -> int:
    """
    Ask the node for its chain id.

    When a network name was given, the node must be on that network.
    """
    try:
        chain_id = int(w3.eth.chain_id)
    except Exception as e:
        raise RpcUnreachable(f"Could not connect to RPC: {rpc_url} ({e})") from e

    if network is None:
        return chain_id

    expected = KNOWN_NETWORKS.get(network.lower())
    if expected is None:
        raise RpcUnreachable(
            f"Unknown network {network!r}. Use one of: {', '.join(sorted(KNOWN_NETWORKS))} "
            "or 'localhost' for no override."
        )
    if expected != chain_id:
        raise RpcUnreachable(
            f"RPC {rpc_url} is on chain {chain_id}, but network {network} expects chain {expected}"
        )
    return chain_id


def connect(rpc_url: str, network: Optional[str], private_key: str, timeout: float = 60.0) -> ChainContext:
    """Provider + signer, checked against the node."""
    w3 = make_provider(rpc_url, timeout)
    chain_id = check_network(w3, rpc_url, network)
    account = load_signer(private_key)
    return ChainContext(w3=w3, account=account, network=network, chain_id=chain_id)


def connect_readonly(rpc_url: str, timeout: float = 60.0) -> ChainContext:
    """Provider only. Nothing is checked until the engine uses it."""
    return ChainContext(w3=make_provider(rpc_url, timeout), account=None, network=None)
