"""
reforge/commands.py

Typed command schema.

The command line stays positional (Solidity scripts call it through ffi with
a fixed argument order), but each subcommand is parsed into its own frozen
dataclass with named, converted fields:
- network "localhost"        -> None (no network override)
- booleans "true"            -> True, anything else False
- owner / new_owner "self"   -> SELF (resolved to the signer address later)
- ipfs_url "none"            -> None
- addresses                  -> checksummed
- amount                     -> int (wei)

The field order of each dataclass is the positional order on the command
line.

Usage:
  reforge <command> <args...>
  python -m reforge <command> <args...>
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field, fields
from typing import Any, Callable, ClassVar, Optional, Sequence

from eth_utils import is_address, to_checksum_address

from reforge.errors import UsageError

SELF = "self"


# ----------------------------
# Value converters
# ----------------------------

def network_arg(value: str) -> Optional[str]:
    return None if value == "localhost" else value


def flag_arg(value: str) -> bool:
    return value == "true"


def optional_url_arg(value: str) -> Optional[str]:
    return None if value == "none" else value


def address_arg(value: str) -> str:
    if not is_address(value):
        raise argparse.ArgumentTypeError(f"not an address: {value}")
    return to_checksum_address(value)


def owner_arg(value: str) -> str:
    return SELF if value == SELF else address_arg(value)


def wei_arg(value: str) -> int:
    try:
        amount = int(value, 16) if value.lower().startswith("0x") else int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer amount: {value}") from None
    if amount < 0:
        raise argparse.ArgumentTypeError(f"amount must not be negative: {value}")
    return amount


def arg(convert: Callable[[str], Any] = str, help: str = "") -> Any:
    """Dataclass field carrying its positional converter and help text."""
    return field(metadata={"convert": convert, "help": help})


# ----------------------------
# Commands
# ----------------------------

@dataclass(frozen=True)
class Command:
    name: ClassVar[str] = ""
    title: ClassVar[str] = ""
    needs_signer: ClassVar[bool] = True
    needs_artifacts: ClassVar[bool] = True


@dataclass(frozen=True)
class ConnectedCommand(Command):
    config_path: str = arg(help="path to the project config file")
    rpc_url: str = arg(help="JSON-RPC endpoint")
    network: Optional[str] = arg(network_arg, "network name, or 'localhost' for no override")
    private_key: str = arg(help="signer private key")


@dataclass(frozen=True)
class RegisterCommand(ConnectedCommand):
    name: ClassVar[str] = "register"
    title: ClassVar[str] = "Register"
    silent: bool = arg(flag_arg)
    out_path: str = arg(help="forge artifact directory")
    build_info_path: str = arg(help="forge build info directory")
    owner: str = arg(owner_arg, "project owner address, or 'self'")


@dataclass(frozen=True)
class ProposeCommand(ConnectedCommand):
    name: ClassVar[str] = "propose"
    title: ClassVar[str] = "Propose"
    silent: bool = arg(flag_arg)
    out_path: str = arg()
    build_info_path: str = arg()
    ipfs_url: Optional[str] = arg(optional_url_arg, "IPFS endpoint, or 'none'")
    remote_execution: bool = arg(flag_arg)
    skip_storage_check: bool = arg(flag_arg)


@dataclass(frozen=True)
class FundCommand(ConnectedCommand):
    name: ClassVar[str] = "fund"
    title: ClassVar[str] = "Fund"
    silent: bool = arg(flag_arg)
    out_path: str = arg()
    build_info_path: str = arg()
    amount: int = arg(wei_arg, "amount in wei")


@dataclass(frozen=True)
class ApproveCommand(ConnectedCommand):
    name: ClassVar[str] = "approve"
    title: ClassVar[str] = "Approve"
    silent: bool = arg(flag_arg)
    out_path: str = arg()
    build_info_path: str = arg()
    withdraw_funds: bool = arg(flag_arg)
    skip_monitor_status: bool = arg(flag_arg)


@dataclass(frozen=True)
class DeployCommand(ConnectedCommand):
    name: ClassVar[str] = "deploy"
    title: ClassVar[str] = "Deploy"
    silent: bool = arg(flag_arg)
    out_path: str = arg()
    build_info_path: str = arg()
    withdraw_funds: bool = arg(flag_arg)
    new_owner: str = arg(owner_arg, "owner after deployment, or 'self'")
    ipfs_url: Optional[str] = arg(optional_url_arg)
    skip_storage_check: bool = arg(flag_arg)


@dataclass(frozen=True)
class MonitorCommand(ConnectedCommand):
    name: ClassVar[str] = "monitor"
    title: ClassVar[str] = "Monitor"
    silent: bool = arg(flag_arg)
    out_path: str = arg()
    build_info_path: str = arg()
    withdraw_funds: bool = arg(flag_arg)
    new_owner: str = arg(owner_arg)


@dataclass(frozen=True)
class CancelCommand(ConnectedCommand):
    name: ClassVar[str] = "cancel"
    title: ClassVar[str] = "Cancel"
    out_path: str = arg()
    build_info_path: str = arg()


@dataclass(frozen=True)
class WithdrawCommand(ConnectedCommand):
    name: ClassVar[str] = "withdraw"
    title: ClassVar[str] = "Withdraw"
    silent: bool = arg(flag_arg)
    out_path: str = arg()
    build_info_path: str = arg()


@dataclass(frozen=True)
class ListProjectsCommand(Command):
    name: ClassVar[str] = "listProjects"
    title: ClassVar[str] = "List Projects"
    needs_artifacts: ClassVar[bool] = False
    rpc_url: str = arg()
    network: Optional[str] = arg(network_arg)
    private_key: str = arg()


@dataclass(frozen=True)
class ListProposersCommand(ConnectedCommand):
    name: ClassVar[str] = "listProposers"
    title: ClassVar[str] = "List Proposers"
    out_path: str = arg()
    build_info_path: str = arg()


@dataclass(frozen=True)
class AddProposerCommand(ConnectedCommand):
    name: ClassVar[str] = "addProposer"
    title: ClassVar[str] = "Add Proposer"
    out_path: str = arg()
    build_info_path: str = arg()
    new_proposer: str = arg(address_arg)


@dataclass(frozen=True)
class ClaimProxyCommand(ConnectedCommand):
    name: ClassVar[str] = "claimProxy"
    title: ClassVar[str] = "Claim Proxy"
    silent: bool = arg(flag_arg)
    out_path: str = arg()
    build_info_path: str = arg()
    reference_name: str = arg()


@dataclass(frozen=True)
class TransferProxyCommand(ConnectedCommand):
    name: ClassVar[str] = "transferProxy"
    title: ClassVar[str] = "Transfer Proxy"
    silent: bool = arg(flag_arg)
    out_path: str = arg()
    build_info_path: str = arg()
    proxy_address: str = arg(address_arg)


@dataclass(frozen=True)
class GetAddressCommand(Command):
    name: ClassVar[str] = "getAddress"
    title: ClassVar[str] = "Get Address"
    needs_signer: ClassVar[bool] = False
    rpc_url: str = arg()
    config_path: str = arg()
    reference_name: str = arg()
    out_path: str = arg()
    build_info_path: str = arg()


COMMANDS: dict[str, type[Command]] = {
    c.name: c
    for c in (
        RegisterCommand,
        ProposeCommand,
        FundCommand,
        ApproveCommand,
        DeployCommand,
        MonitorCommand,
        CancelCommand,
        WithdrawCommand,
        ListProjectsCommand,
        ListProposersCommand,
        AddProposerCommand,
        ClaimProxyCommand,
        TransferProxyCommand,
        GetAddressCommand,
    )
}


# ----------------------------
# Parsing
# ----------------------------

class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(f"{self.prog}: {message}")


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="reforge", description="Foundry deployment workflows", add_help=False)
    sub = parser.add_subparsers(dest="command", metavar="command")
    sub.required = True

    for name, cls in COMMANDS.items():
        p = sub.add_parser(name, help=cls.title.lower(), add_help=False)
        for f in fields(cls):
            p.add_argument(f.name, type=f.metadata["convert"], help=f.metadata["help"] or None)
    return parser


def parse_command(argv: Sequence[str]) -> Command:
    """Parse argv (without the program name) into a command dataclass."""
    ns = vars(build_parser().parse_args(list(argv)))
    cls = COMMANDS[ns.pop("command")]
    return cls(**ns)
