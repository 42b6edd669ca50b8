"""
reforge/cli.py

Command dispatcher.

For every command:
1) parse argv into a typed command
2) connect to the RPC endpoint and load the signer (fails fast on a dead RPC
   or a malformed key)
3) resolve folders, read the project config and build the artifact path table
4) call exactly one task engine method

Output contract:
- stdout gets exactly one JSON line, the result envelope
    {"ok": true,  "command": "...", "result": ...}
    {"ok": false, "command": "...", "error": {"type": "...", "message": "..."}}
- progress and diagnostics go to stderr (deploy progress goes to a log file)
- the exit code tells failure categories apart (see reforge.errors)
"""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime, timezone
from types import MappingProxyType
from typing import IO, Any, Callable, Optional, Sequence

from reforge import chain as chain_mod
from reforge.artifact_paths import get_artifact_paths
from reforge.commands import (
    SELF,
    AddProposerCommand,
    ApproveCommand,
    CancelCommand,
    ClaimProxyCommand,
    Command,
    DeployCommand,
    FundCommand,
    GetAddressCommand,
    ListProjectsCommand,
    ListProposersCommand,
    MonitorCommand,
    ProposeCommand,
    RegisterCommand,
    TransferProxyCommand,
    WithdrawCommand,
    parse_command,
)
from reforge.config import Settings, load_settings, read_user_config
from reforge.errors import EXIT_OK, ReforgeError, TaskFailed
from reforge.paths import fetch_paths
from reforge.tasks import (
    DeployedContract,
    TaskContext,
    TaskEngine,
    encode_deployed_contracts,
    load_task_engine,
)


def _log(msg: str, stream: IO[str] | None = None) -> None:
    print(msg, file=stream or sys.stderr, flush=True)


def utc_now_iso() -> str:
    """UTC timestamp, millisecond precision, used to name deploy logs."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _call(command: Command, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run an engine method, reporting anything it raises as TaskFailed."""
    try:
        return fn(*args, **kwargs)
    except ReforgeError:
        raise
    except Exception as e:
        raise TaskFailed(command.name, e) from e


def _resolve_owner(value: str, ctx: TaskContext) -> str:
    return ctx.chain.address if value == SELF else value


# ----------------------------
# Context
# ----------------------------

def prepare_context(command: Command, settings: Settings, stream: IO[str]) -> TaskContext:
    """Connect, resolve folders and build the artifact path table for a command."""
    def debug(msg: str) -> None:
        if settings.verbose:
            _log(msg, stream)

    if command.needs_signer:
        chain = chain_mod.connect(
            command.rpc_url,
            command.network,
            command.private_key,
            timeout=settings.rpc_timeout,
        )
        debug(f"Connected to chain {chain.chain_id} as {chain.address}")
    else:
        chain = chain_mod.connect_readonly(command.rpc_url, timeout=settings.rpc_timeout)

    if not command.needs_artifacts:
        return TaskContext(
            chain=chain,
            config_path=None,
            user_config=None,
            artifact_paths=MappingProxyType({}),
            paths=None,
            stream=stream,
            silent=getattr(command, "silent", False),
        )

    paths = fetch_paths(command.out_path, command.build_info_path, settings.root)
    user_config = read_user_config(command.config_path)
    debug(f"Resolving {len(user_config.contracts)} contract(s)")
    debug(f"  artifacts:  {paths.artifact_folder}")
    debug(f"  build info: {paths.build_info_folder}")

    artifact_paths = get_artifact_paths(
        user_config.contracts,
        paths.artifact_folder,
        paths.build_info_folder,
        log=debug if settings.verbose else None,
    )

    return TaskContext(
        chain=chain,
        config_path=user_config.path,
        user_config=user_config,
        artifact_paths=artifact_paths,
        paths=paths,
        stream=stream,
        silent=getattr(command, "silent", False),
    )


# ----------------------------
# Handlers
# ----------------------------

def _register(cmd: RegisterCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.register, ctx, _resolve_owner(cmd.owner, ctx))


def _propose(cmd: ProposeCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.propose, ctx, cmd.ipfs_url, cmd.remote_execution, cmd.skip_storage_check)


def _fund(cmd: FundCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.fund, ctx, cmd.amount)


def _approve(cmd: ApproveCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    remote_execution = cmd.network is not None
    return _call(cmd, engine.approve, ctx, cmd.withdraw_funds, cmd.skip_monitor_status, remote_execution)


def deploy_log_path(settings: Settings, network: Optional[str]) -> str:
    log_dir = os.path.abspath(os.path.join(settings.log_dir, network or "anvil"))
    os.makedirs(log_dir, exist_ok=True)
    return os.path.join(log_dir, utc_now_iso())


def _deploy_result(deployed: Optional[Sequence[DeployedContract]], log_path: str) -> dict[str, Any]:
    deployed = list(deployed or [])
    return {
        "encoded": encode_deployed_contracts(deployed),
        "contracts": [
            {
                "referenceName": c.reference_name,
                "contractName": c.contract_name,
                "contractAddress": c.contract_address,
            }
            for c in deployed
        ],
        "log": log_path,
    }


def _deploy(cmd: DeployCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    remote_execution = cmd.network is not None
    new_owner = _resolve_owner(cmd.new_owner, ctx)
    log_path = deploy_log_path(settings, cmd.network)

    with open(log_path, "w", encoding="utf-8") as log_writer:
        ctx.stream = log_writer
        _log(f"-- Reforge {cmd.title} --", log_writer)

        executor = None
        if remote_execution:
            _log("Waiting for the remote executor to finish setup...", log_writer)
            _call(cmd, engine.monitor_setup, ctx)
        else:
            _log("Booting up a local executor...", log_writer)
            executor = _call(cmd, engine.initialize_executor, ctx, cmd.private_key, settings.executor_log_level)
        _log("Executor is ready.", log_writer)

        deployed = _call(
            cmd,
            engine.deploy,
            ctx,
            remote_execution=remote_execution,
            ipfs_url=cmd.ipfs_url,
            no_compile=True,
            confirm=True,
            withdraw_funds=cmd.withdraw_funds,
            new_owner=new_owner,
            skip_storage_check=cmd.skip_storage_check,
            executor=executor,
        )

    # Malformed engine results surface as TaskFailed.
    return _call(cmd, _deploy_result, deployed, log_path)


def _monitor(cmd: MonitorCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    remote_execution = cmd.network is not None
    new_owner = _resolve_owner(cmd.new_owner, ctx)
    return _call(cmd, engine.monitor, ctx, cmd.withdraw_funds, new_owner, remote_execution)


def _cancel(cmd: CancelCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.cancel, ctx)


def _withdraw(cmd: WithdrawCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.withdraw, ctx)


def _list_projects(cmd: ListProjectsCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.list_projects, ctx)


def _list_proposers(cmd: ListProposersCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.list_proposers, ctx)


def _add_proposer(cmd: AddProposerCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.add_proposers, ctx, [cmd.new_proposer])


def _claim_proxy(cmd: ClaimProxyCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.claim_proxy, ctx, cmd.reference_name)


def _transfer_proxy(cmd: TransferProxyCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    return _call(cmd, engine.transfer_proxy, ctx, cmd.proxy_address)


def _get_address(cmd: GetAddressCommand, ctx: TaskContext, engine: TaskEngine, settings: Settings) -> Any:
    # Fail here with a clear message rather than inside the engine.
    ctx.user_config.contract(cmd.reference_name)
    return _call(cmd, engine.get_proxy_address, ctx, cmd.reference_name)


HANDLERS: dict[type, Callable[..., Any]] = {
    RegisterCommand: _register,
    ProposeCommand: _propose,
    FundCommand: _fund,
    ApproveCommand: _approve,
    DeployCommand: _deploy,
    MonitorCommand: _monitor,
    CancelCommand: _cancel,
    WithdrawCommand: _withdraw,
    ListProjectsCommand: _list_projects,
    ListProposersCommand: _list_proposers,
    AddProposerCommand: _add_proposer,
    ClaimProxyCommand: _claim_proxy,
    TransferProxyCommand: _transfer_proxy,
    GetAddressCommand: _get_address,
}


def run_command(
    command: Command,
    settings: Settings,
    engine: Optional[TaskEngine] = None,
    stream: Optional[IO[str]] = None,
) -> Any:
    """Prepare the context for `command` and hand it to the task engine."""
    stream = stream or sys.stderr
    if engine is None:
        engine = load_task_engine(settings.task_engine)

    ctx = prepare_context(command, settings, stream)
    if not isinstance(command, DeployCommand):
        _log(f"-- Reforge {command.title} --", stream)
    return HANDLERS[type(command)](command, ctx, engine, settings)


# ----------------------------
# Entry point
# ----------------------------

def _emit(out: IO[str], envelope: dict[str, Any]) -> None:
    out.write(json.dumps(envelope, default=str) + "\n")
    out.flush()


def main(
    argv: Optional[Sequence[str]] = None,
    engine: Optional[TaskEngine] = None,
    stdout: Optional[IO[str]] = None,
    stderr: Optional[IO[str]] = None,
) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    name = argv[0] if argv else ""

    try:
        command = parse_command(argv)
        settings = load_settings()
        result = run_command(command, settings, engine=engine, stream=stderr)
    except (ReforgeError, OSError) as e:
        _log(f"error: {e}", stderr)
        _emit(stdout, {
            "ok": False,
            "command": name,
            "error": {"type": e.__class__.__name__, "message": str(e)},
        })
        return getattr(e, "exit_code", 1)

    _emit(stdout, {"ok": True, "command": command.name, "result": result})
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
