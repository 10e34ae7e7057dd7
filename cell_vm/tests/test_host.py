from __future__ import annotations

import threading
import time
from typing import List

import pytest
from hypothesis import given, settings, strategies as st

from cell_vm.boc import Cell
from cell_vm.config import VMConfig
from cell_vm.contract import counter
from cell_vm.runtime import (ContractHost, ExitStatus, FileStateStore,
                             MemoryStateStore, zero_root)

CFG = VMConfig()


def _host(total: int = 0) -> ContractHost:
    return ContractHost.deploy(MemoryStateStore(), total=total, config=CFG)


def test_deploy_then_increment_scenario() -> None:
    host = _host()
    assert host.get_total() == 0

    r1 = host.send_increment(5)
    assert r1.status is ExitStatus.SUCCESS
    assert r1.exit_code == 0
    assert host.get_total() == 5

    r2 = host.send_increment(65535)
    assert r2.is_success
    assert host.get_total() == 65540
    assert r2.state_before == r1.state_after
    assert r2.state_after == counter.store_total(65540).hash


def test_success_receipt_shape() -> None:
    host = _host()
    r = host.send_increment(1)
    assert (r.gas_used, r.gas_limit) == (894, CFG.gas_limit)
    assert r.state_changed
    d = r.to_dict()
    assert d["status"] == "success"
    assert d["exitCode"] == 0
    assert d["stateAfter"] == "0x" + counter.store_total(1).hash.hex()
    assert d["error"] is None


def test_short_body_aborts_without_commit() -> None:
    host = _host(total=5)
    before = host.store.load()
    r = host.send_internal(Cell(0x7FFF, 15))
    assert r.status is ExitStatus.ABORTED
    assert r.exit_code == 35
    assert r.gas_used == 110
    assert not r.state_changed
    assert r.error["code"] == "body_too_short"
    assert host.store.load() is before
    assert host.get_total() == 5


def test_overflow_aborts_and_keeps_previous_total() -> None:
    host = _host(total=counter.COUNTER_MAX - 10)
    assert host.send_increment(10).is_success
    assert host.get_total() == counter.COUNTER_MAX

    r = host.send_increment(1)
    assert r.status is ExitStatus.ABORTED
    assert r.exit_code == 4
    assert host.get_total() == counter.COUNTER_MAX


def test_out_of_gas_leaves_state_alone() -> None:
    host = _host(total=3)
    r = host.send_increment(1, gas_limit=500)
    assert r.status is ExitStatus.OUT_OF_GAS
    assert r.exit_code == 13
    assert (r.gas_used, r.gas_limit) == (394, 500)
    assert host.get_total() == 3


def test_exact_gas_limit_is_enough() -> None:
    host = _host()
    assert host.send_increment(1, gas_limit=894).is_success
    assert host.send_increment(1, gas_limit=893).status is ExitStatus.OUT_OF_GAS
    assert host.get_total() == 1


def test_corrupted_root_aborts_with_underflow() -> None:
    host = ContractHost.deploy(MemoryStateStore(), initial=Cell.empty(), config=CFG)
    r = host.send_increment(1)
    assert r.exit_code == 9
    assert host.store.load() == Cell.empty()


def test_undeployed_store_starts_from_zero_root() -> None:
    store = MemoryStateStore()
    host = ContractHost(store, config=CFG)
    assert host.get_total() == 0
    r = host.send_increment(2)
    assert r.state_before == zero_root().hash
    assert host.get_total() == 2


def test_queries_are_free_and_idempotent() -> None:
    host = _host(total=41)
    root = host.store.load()
    assert [host.get_total() for _ in range(3)] == [41, 41, 41]
    assert host.store.load() is root


def test_file_store_persists_across_hosts(tmp_path) -> None:
    path = tmp_path / "counter_state.boc"
    ContractHost.deploy(FileStateStore(path), config=CFG).send_increment(5)
    again = ContractHost(FileStateStore(path), config=CFG)
    assert again.get_total() == 5
    assert again.send_increment(7).is_success
    assert ContractHost(FileStateStore(path), config=CFG).get_total() == 12


def test_host_rejects_bad_inputs() -> None:
    with pytest.raises(TypeError):
        ContractHost(object(), config=CFG)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        _host().send_internal(b"\x00\x01")  # type: ignore[arg-type]


@settings(max_examples=50, deadline=None)
@given(st.lists(st.integers(min_value=0, max_value=counter.INCREMENT_MAX), max_size=20))
def test_increments_are_additive(deltas: List[int]) -> None:
    host = _host()
    for d in deltas:
        assert host.send_increment(d).is_success
    assert host.get_total() == sum(deltas)


class _SlowMemoryStore(MemoryStateStore):
    """Widens the window between load and replace."""

    def load(self) -> Cell:
        root = super().load()
        time.sleep(0.05)
        return root


def test_hosts_sharing_a_store_do_not_lose_updates() -> None:
    store = _SlowMemoryStore()
    a = ContractHost.deploy(store, config=CFG)
    b = ContractHost(store, config=CFG)
    receipts = []
    threads = [threading.Thread(target=lambda h=h: receipts.append(h.send_increment(1))) for h in (a, b)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(receipts) == 2
    assert all(r.is_success for r in receipts)
    assert a.get_total() == b.get_total() == 2


def test_file_hosts_on_one_path_share_a_lock(tmp_path) -> None:
    path = tmp_path / "counter_state.boc"
    hosts = [ContractHost(FileStateStore(path), config=CFG) for _ in range(4)]
    assert len({id(h.store.lock) for h in hosts}) == 1
    threads = [threading.Thread(target=h.send_increment, args=(3,)) for h in hosts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert hosts[0].get_total() == 12
