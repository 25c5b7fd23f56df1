#!/usr/bin/env python3
"""
ledger-vm
=========

Drive the bulletin board contract against a local state file.

Usage
-----
# Fresh board (prints a generated secret key unless --secret-key is given)
ledger-vm init --state board.cbor

# Post and take down with the same secret key
ledger-vm post --state board.cbor --secret-key 0x<64 hex> --message "hello"
ledger-vm take-down --state board.cbor --secret-key 0x<64 hex> --transcript td.json

# Inspect
ledger-vm show --state board.cbor [--json]
ledger-vm public-key --secret-key 0x<64 hex> --sequence 0

Notes
-----
- State files hold a canonical CBOR ChargedState (ledger_vm.state.codec).
- A failed circuit leaves the state file untouched and exits with code 1.
- --transcript writes the call's ProofData as JSON (public + private parts).
"""

from __future__ import annotations

import json
import logging
import secrets
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ledger_vm.config import load_config
from ledger_vm.errors import LedgerVmError
from ledger_vm.examples.bboard.contract import (
    BBoardPrivateState,
    BBoardWitnesses,
    Contract,
    Ledger,
    ledger,
    pure_circuits,
)
from ledger_vm.runtime.context import (
    CircuitResults,
    ConstructorContext,
    create_circuit_context,
    dummy_contract_address,
    to_address,
)
from ledger_vm.runtime.hash_api import field_to_bytes
from ledger_vm.state.codec import decode_charged_state, encode_charged_state
from ledger_vm.state.value import ChargedState
from ledger_vm.version import banner

app = typer.Typer(no_args_is_help=True, add_completion=False)
console = Console()
err_console = Console(stderr=True)

log = logging.getLogger("ledger_vm.cli")


# ----------------- helpers -----------------


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=False, show_path=False)],
        force=True,
    )


def _parse_secret_key(value: str) -> bytes:
    h = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        sk = bytes.fromhex(h)
    except ValueError as e:
        raise typer.BadParameter(f"secret key is not hex: {e}") from e
    if len(sk) != 32:
        raise typer.BadParameter(f"secret key must be 32 bytes, got {len(sk)}")
    return sk


def _load_state(path: Path) -> ChargedState:
    if not path.exists():
        raise typer.BadParameter(f"state file {str(path)!r} does not exist; run `init` first")
    return decode_charged_state(path.read_bytes())


def _save_state(path: Path, state: ChargedState) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_charged_state(state))
    log.info("wrote %s (%d bytes charged)", path, state.charged_bytes)


def _write_transcript(path: Optional[Path], res: CircuitResults[Any, Any]) -> None:
    if path is None:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(res.proof_data.to_json(indent=2) + "\n", encoding="utf-8")
    log.info("wrote transcript %s", path)


def _print_ledger(view: Ledger, title: str, extra: Optional[Dict[str, Any]] = None) -> None:
    t = Table(title=title, box=box.SIMPLE)
    t.add_column("Field")
    t.add_column("Value", overflow="fold")
    for k, v in view.to_dict().items():
        t.add_row(k, "-" if v is None else str(v))
    for k, v in (extra or {}).items():
        t.add_row(k, str(v))
    console.print(Panel(t, title="ledger-vm", expand=False))


def _guarded(fn: Callable[[], Any]) -> Any:
    """Run ``fn``; render LedgerVmError and exit 1 instead of a traceback."""
    try:
        return fn()
    except LedgerVmError as e:
        log.debug("call failed: %r", e)
        err_console.print(f"[bold red]error[/] ({e.code}): {e.message}")
        raise typer.Exit(1) from e


def _call(state_path: Path, sk: bytes, invoke: Callable[[Contract[Any], Any], CircuitResults[Any, Any]]) -> CircuitResults[Any, Any]:
    contract: Contract[BBoardPrivateState] = Contract(BBoardWitnesses())
    loaded = _guarded(lambda: _load_state(state_path))
    ctx = create_circuit_context(dummy_contract_address(), loaded, BBoardPrivateState(sk))
    res = _guarded(lambda: invoke(contract, ctx))
    _save_state(state_path, res.context.current_query_context.state)
    return res


# ----------------- CLI -----------------


def _version_cb(value: bool) -> None:
    if value:
        typer.echo(banner())
        raise typer.Exit(0)


@app.callback()
def _meta(
    version: bool = typer.Option(
        False, "--version", "-V", help="Print version and exit", callback=_version_cb, is_eager=True
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default: LEDGER_VM_LOG_LEVEL)"),
) -> None:
    _setup_logging(log_level or load_config().log_level)


@app.command("init")
def init(
    state: Path = typer.Option(..., "--state", "-s", help="State file to create"),
    secret_key: Optional[str] = typer.Option(None, "--secret-key", "-k", help="32-byte hex secret key"),
    address: Optional[str] = typer.Option(None, "--address", help="32-byte hex contract address"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing state file"),
) -> None:
    """Create a fresh, vacant board."""
    if state.exists() and not force:
        raise typer.BadParameter(f"{str(state)!r} exists; pass --force to overwrite")
    generated = secret_key is None
    sk = secrets.token_bytes(32) if generated else _parse_secret_key(secret_key)  # type: ignore[arg-type]
    addr = to_address(address) if address else dummy_contract_address()

    contract: Contract[BBoardPrivateState] = Contract(BBoardWitnesses())
    res = _guarded(lambda: contract.initial_state(ConstructorContext(BBoardPrivateState(sk), addr)))
    _save_state(state, res.current_contract_state.data)
    extra = {"secret_key": "0x" + sk.hex()} if generated else None
    _print_ledger(ledger(res.current_contract_state), "Board created", extra)


@app.command("post")
def post(
    state: Path = typer.Option(..., "--state", "-s", help="State file"),
    secret_key: str = typer.Option(..., "--secret-key", "-k", help="32-byte hex secret key"),
    message: str = typer.Option(..., "--message", "-m", help="Message to post"),
    transcript: Optional[Path] = typer.Option(None, "--transcript", help="Write ProofData JSON here"),
) -> None:
    """Post a message to a vacant board."""
    sk = _parse_secret_key(secret_key)
    res = _call(state, sk, lambda c, ctx: c.post(ctx, message))
    _write_transcript(transcript, res)
    _print_ledger(ledger(res.context.state), "Posted", {"cost": res.gas_cost.used})


@app.command("take-down")
def take_down(
    state: Path = typer.Option(..., "--state", "-s", help="State file"),
    secret_key: str = typer.Option(..., "--secret-key", "-k", help="32-byte hex secret key"),
    transcript: Optional[Path] = typer.Option(None, "--transcript", help="Write ProofData JSON here"),
) -> None:
    """Take down the current post (owner only) and print it."""
    sk = _parse_secret_key(secret_key)
    res = _call(state, sk, lambda c, ctx: c.take_down(ctx))
    _write_transcript(transcript, res)
    _print_ledger(ledger(res.context.state), "Taken down", {"former message": res.result, "cost": res.gas_cost.used})


@app.command("show")
def show(
    state: Path = typer.Option(..., "--state", "-s", help="State file"),
    as_json: bool = typer.Option(False, "--json", help="Print the ledger view as JSON"),
) -> None:
    """Decode and print the board's ledger fields."""
    view = _guarded(lambda: ledger(_load_state(state)))
    if as_json:
        typer.echo(json.dumps(view.to_dict(), sort_keys=True))
        return
    _print_ledger(view, "Board")


@app.command("public-key")
def public_key(
    secret_key: str = typer.Option(..., "--secret-key", "-k", help="32-byte hex secret key"),
    sequence: int = typer.Option(..., "--sequence", help="Board sequence number", min=0),
) -> None:
    """Derive the owner key a post made at ``sequence`` would store."""
    sk = _parse_secret_key(secret_key)
    pk = _guarded(lambda: pure_circuits.public_key(sk, field_to_bytes(32, sequence)))
    typer.echo("0x" + pk.hex())


def main() -> int:
    app()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
