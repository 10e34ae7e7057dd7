from __future__ import annotations

import importlib
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cell_vm.boc import deserialize_boc
from cell_vm.cli.main import app
from cell_vm.contract import counter

runner = CliRunner()
# the package re-exports a `main` function that shadows the submodule name
cli_main = importlib.import_module("cell_vm.cli.main")

pytestmark = pytest.mark.usefixtures("clean_env")


def _json(*args: str) -> dict:
    res = runner.invoke(app, ["--json", *args])
    assert res.exit_code == 0, res.output
    return json.loads(res.stdout)


def test_help_lists_commands() -> None:
    res = runner.invoke(app, ["--help"])
    assert res.exit_code == 0
    for cmd in ("deploy", "send", "send-raw", "get", "inspect"):
        assert cmd in res.stdout


def test_deploy_writes_bag_of_cells(clean_env: Path) -> None:
    out = _json("deploy", "--total", "5")
    assert out["total"] == 5
    assert out["state"] == str(clean_env)
    assert deserialize_boc(clean_env.read_bytes()) == counter.store_total(5)


def test_deploy_refuses_to_overwrite_without_force(clean_env: Path) -> None:
    assert runner.invoke(app, ["deploy"]).exit_code == 0
    assert runner.invoke(app, ["deploy", "--total", "9"]).exit_code == 1
    assert _json("get")["total"] == 0
    assert runner.invoke(app, ["deploy", "--total", "9", "--force"]).exit_code == 0
    assert _json("get")["total"] == 9


def test_send_and_get_scenario() -> None:
    runner.invoke(app, ["deploy"])
    first = _json("send", "5")
    assert first["status"] == "success"
    assert first["total"] == 5
    assert first["gasUsed"] == 894
    assert _json("send", "65535")["total"] == 65540
    assert _json("get") == {"total": 65540}

    res = runner.invoke(app, ["get"])
    assert res.stdout.strip() == "65540"


def test_send_rejects_out_of_range_delta() -> None:
    res = runner.invoke(app, ["send", "65536"])
    assert res.exit_code == 2


def test_send_raw_short_body_aborts() -> None:
    runner.invoke(app, ["deploy", "--total", "3"])
    res = runner.invoke(app, ["--json", "send-raw", "7fff", "--bits", "15"])
    assert res.exit_code == 1
    out = json.loads(res.stdout)
    assert out["status"] == "aborted"
    assert out["exitCode"] == 35
    assert out["gasUsed"] == 110
    assert _json("get")["total"] == 3


def test_send_raw_full_body() -> None:
    runner.invoke(app, ["deploy"])
    out = _json("send-raw", "0x0010ff", "--bits", "16")
    assert out["total"] == 16


def test_send_raw_input_errors() -> None:
    assert runner.invoke(app, ["send-raw", "zz", "--bits", "8"]).exit_code == 2
    assert runner.invoke(app, ["send-raw", "ff", "--bits", "9"]).exit_code == 2


def test_send_out_of_gas_keeps_state() -> None:
    runner.invoke(app, ["deploy", "--total", "1"])
    res = runner.invoke(app, ["--json", "send", "1", "--gas-limit", "500"])
    assert res.exit_code == 1
    assert json.loads(res.stdout)["status"] == "out_of_gas"
    assert _json("get")["total"] == 1


def test_get_without_deploy_reads_zero_root() -> None:
    assert _json("get") == {"total": 0}


def test_inspect(clean_env: Path) -> None:
    undeployed = _json("inspect")
    assert undeployed["initialized"] is False
    assert undeployed["total"] == 0

    runner.invoke(app, ["deploy", "--total", "5"])
    out = _json("inspect")
    assert out["initialized"] is True
    assert out["cell"] == "x{0000000000000005}"
    assert out["root"] == "0x" + counter.store_total(5).hash.hex()
    assert bytes.fromhex(out["boc"]) == clean_env.read_bytes()
    assert (out["bits"], out["refs"], out["depth"]) == (64, 0, 0)


def test_corrupt_state_file_fails_cleanly(clean_env: Path) -> None:
    clean_env.write_bytes(b"garbage")
    res = runner.invoke(app, ["--json", "get"])
    assert res.exit_code == 1
    assert json.loads(res.stdout)["error"]["code"] == "state_store"


def test_state_option_overrides_env(tmp_path: Path) -> None:
    other = tmp_path / "other.boc"
    assert runner.invoke(app, ["--state", str(other), "deploy", "--total", "2"]).exit_code == 0
    assert other.is_file()
    assert _json("--state", str(other), "get")["total"] == 2


def test_extra_bits_bounded_by_cell_capacity() -> None:
    runner.invoke(app, ["deploy"])
    assert runner.invoke(app, ["send", "1", "--extra-bits", "1008"]).exit_code == 2
    assert _json("send", "1", "--extra-bits", "1007")["total"] == 1


def test_store_falls_back_to_configured_path(clean_env: Path, monkeypatch) -> None:
    monkeypatch.setattr(cli_main._ctx, "state_path", None)
    assert cli_main._store().path == clean_env
