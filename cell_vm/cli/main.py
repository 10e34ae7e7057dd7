"""
cell-vm — local runner for the counter contract.

Commands:
  cell-vm deploy [--total N] [--force]     Write a fresh counter root
  cell-vm send DELTA [--extra-bits N]      Deliver an increment message
  cell-vm send-raw HEX --bits N            Deliver an arbitrary message body
  cell-vm get                              Read the counter (free, no gas)
  cell-vm inspect                          Dump the root cell, hash and BoC

Global options:
  --state PATH     State file (env CELL_VM_STATE_PATH, default counter_state.boc)
  --json           Output JSON instead of human-readable text
  --verbose / -v   Debug logging (otherwise CELL_VM_LOG_LEVEL)

Exit codes: 0 on success, 1 when the invocation aborted or state is unusable.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

import typer

from ..boc.cell import MAX_BITS, Cell
from ..boc.serialize import serialize_boc
from ..config import load_config
from ..contract import counter
from ..errors import VmError
from ..runtime.host import ContractHost
from ..runtime.receipt import Receipt
from ..runtime.state_store import FileStateStore

app = typer.Typer(
    name="cell-vm",
    help="Run the cell VM counter contract against a local state file",
    no_args_is_help=True,
    add_completion=False,
)


class GlobalContext:
    def __init__(self) -> None:
        self.state_path: Optional[Path] = None
        self.json_output: bool = False


_ctx = GlobalContext()


@app.callback()
def main_callback(
    state: Optional[Path] = typer.Option(
        None,
        "--state",
        help="State file holding the root cell",
        envvar="CELL_VM_STATE_PATH",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Cell VM counter runner."""
    cfg = load_config()
    _ctx.state_path = state if state is not None else cfg.state_path
    _ctx.json_output = json_output
    logging.basicConfig(
        level=logging.DEBUG if verbose else cfg.log_level,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _store() -> FileStateStore:
    path = _ctx.state_path if _ctx.state_path is not None else load_config().state_path
    return FileStateStore(path)


def _emit(payload: Dict[str, Any], text: str) -> None:
    if _ctx.json_output:
        typer.echo(json.dumps(payload, indent=2))
    else:
        typer.echo(text)


def _fail(err: VmError) -> NoReturn:
    if _ctx.json_output:
        typer.echo(json.dumps({"error": err.to_dict()}, indent=2))
    else:
        typer.echo(f"Error [{err.code}]: {err.message}", err=True)
    raise typer.Exit(1)


def _report(receipt: Receipt, host: ContractHost) -> None:
    payload = receipt.to_dict()
    if receipt.is_success:
        payload["total"] = host.get_total()
        _emit(payload, f"ok: total={payload['total']} gas={receipt.gas_used}")
        return
    err = receipt.error or {}
    _emit(
        payload,
        f"aborted: exit_code={receipt.exit_code} ({err.get('code')}) gas={receipt.gas_used}",
    )
    raise typer.Exit(1)


@app.command()
def deploy(
    total: int = typer.Option(0, "--total", min=0, max=counter.COUNTER_MAX, help="Initial counter value"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing state file"),
) -> None:
    """Write a fresh counter root to the state file."""
    store = _store()
    if store.initialized and not force:
        typer.echo(f"Error: {store.path} already exists (use --force)", err=True)
        raise typer.Exit(1)
    try:
        host = ContractHost.deploy(store, total=total)
    except VmError as e:
        _fail(e)
    root = store.load()
    _emit(
        {"state": str(store.path), "root": "0x" + root.hash.hex(), "total": host.get_total()},
        f"deployed {store.path}: total={host.get_total()}",
    )


@app.command()
def send(
    delta: int = typer.Argument(..., min=0, max=counter.INCREMENT_MAX, help="Increment (uint16)"),
    extra_bits: int = typer.Option(
        0,
        "--extra-bits",
        min=0,
        max=MAX_BITS - counter.INCREMENT_BITS,
        help="Trailing zero bits after the increment",
    ),
    gas_limit: Optional[int] = typer.Option(None, "--gas-limit", min=0, help="Override the gas limit"),
) -> None:
    """Deliver one increment message."""
    host = ContractHost(_store())
    try:
        body = counter.build_increment_body(delta, extra_bits=extra_bits)
        receipt = host.send_internal(body, gas_limit=gas_limit)
    except VmError as e:
        _fail(e)
    _report(receipt, host)


@app.command("send-raw")
def send_raw(
    body_hex: str = typer.Argument("", help="Body payload as hex (may be empty)"),
    bits: int = typer.Option(..., "--bits", min=0, max=MAX_BITS, help="Payload length in bits"),
    gas_limit: Optional[int] = typer.Option(None, "--gas-limit", min=0, help="Override the gas limit"),
) -> None:
    """Deliver a message body given as raw bits (the leading `bits` bits of HEX)."""
    digits = body_hex[2:] if body_hex.startswith(("0x", "0X")) else body_hex
    if bits > len(digits) * 4:
        typer.echo(f"Error: {bits} bits requested but HEX only holds {len(digits) * 4}", err=True)
        raise typer.Exit(2)
    try:
        value = int(digits, 16) if digits else 0
    except ValueError:
        typer.echo(f"Error: invalid hex {body_hex!r}", err=True)
        raise typer.Exit(2)
    value >>= len(digits) * 4 - bits

    host = ContractHost(_store())
    try:
        receipt = host.send_internal(Cell(value, bits), gas_limit=gas_limit)
    except VmError as e:
        _fail(e)
    _report(receipt, host)


@app.command()
def get() -> None:
    """Read the counter. Free: no gas is charged."""
    try:
        total = ContractHost(_store()).get_total()
    except VmError as e:
        _fail(e)
    _emit({"total": total}, str(total))


@app.command()
def inspect() -> None:
    """Dump the root cell, its hash and its bag-of-cells encoding."""
    store = _store()
    try:
        root = store.load()
    except VmError as e:
        _fail(e)
    total: Optional[int]
    try:
        total = counter.get_total(root)
    except VmError:
        total = None
    boc = serialize_boc(root)
    _emit(
        {
            "state": str(store.path),
            "initialized": store.initialized,
            "root": "0x" + root.hash.hex(),
            "depth": root.depth,
            "bits": root.bits,
            "refs": len(root.refs),
            "cell": root.dump(),
            "boc": boc.hex(),
            "total": total,
        },
        "\n".join(
            [
                f"state: {store.path}{'' if store.initialized else ' (not deployed)'}",
                f"root:  0x{root.hash.hex()}",
                f"cell:  {root.dump()}",
                f"boc:   {boc.hex()}",
                f"total: {total if total is not None else '<unreadable>'}",
            ]
        ),
    )


def main() -> None:
    app()


__all__ = ["app", "main"]
