from __future__ import annotations

import pytest

from cell_vm.boc import Builder, Cell, Slice
from cell_vm.config import GasSchedule
from cell_vm.contract import counter
from cell_vm.errors import (IntegerOverflowError, OutOfGas, PreconditionError,
                            RangeCheckError, UnderflowError)
from cell_vm.runtime.gasmeter import GasMeter


def _meter(limit: int = 1_000_000) -> GasMeter:
    return GasMeter(limit=limit, schedule=GasSchedule())


def _recv(state: Cell, body: Cell, meter=None) -> counter.HandlerResult:
    return counter.recv_internal(state, 0, 0, None, Slice(body, meter=meter), meter=meter)


# ------------------------------ validate ----------------------------------- #


def test_validate_accepts_exactly_min_bits() -> None:
    assert counter.validate(Cell(0, 16).begin_parse(), 16) is None
    assert counter.validate(Cell(0, 40).begin_parse(), 16) is None


def test_validate_reports_short_body_as_value() -> None:
    err = counter.validate(Cell(0, 15).begin_parse(), 16)
    assert isinstance(err, PreconditionError)
    assert err.exit_code == 35
    assert err.code == "body_too_short"
    assert err.context == {"bits": 15, "min_bits": 16}


def test_validate_counts_current_cell_only() -> None:
    # 8 bits here plus 8 in a child would be readable, but the check is local
    body = Cell(0xAB, 8, [Cell(0xCD, 8)])
    assert counter.validate(body.begin_parse(), 16) is not None


# -------------------------------- merge ------------------------------------ #


def test_merge_adds() -> None:
    assert counter.merge(0, 5) == 5
    assert counter.merge(5, 65535) == 65540


def test_merge_at_the_ceiling() -> None:
    assert counter.merge(counter.COUNTER_MAX - 10, 10) == counter.COUNTER_MAX
    with pytest.raises(IntegerOverflowError) as ei:
        counter.merge(counter.COUNTER_MAX, 1)
    assert ei.value.exit_code == 4


@pytest.mark.parametrize("total, delta", [(-1, 0), (1 << 64, 0), (0, -1), (0, 1 << 16)])
def test_merge_rejects_out_of_range_operands(total: int, delta: int) -> None:
    with pytest.raises(RangeCheckError):
        counter.merge(total, delta)


# ----------------------------- state codec --------------------------------- #


def test_store_and_load_total() -> None:
    root = counter.store_total(0xDEADBEEF)
    assert (root.bits, root.refs) == (64, ())
    assert counter.load_total(root) == 0xDEADBEEF
    assert counter.initial_data() == Cell(0, 64)


def test_load_total_from_short_root_underflows() -> None:
    with pytest.raises(UnderflowError):
        counter.load_total(Cell.empty())


def test_build_increment_body() -> None:
    assert counter.build_increment_body(5) == Cell(5, 16)
    padded = counter.build_increment_body(5, extra_bits=8)
    assert (padded.data, padded.bits) == (5 << 8, 24)
    with pytest.raises(RangeCheckError):
        counter.build_increment_body(1 << 16)


# ---------------------------- recv_internal -------------------------------- #


def test_recv_internal_is_pure() -> None:
    state = counter.store_total(5)
    result = _recv(state, Cell(65535, 16))
    assert result.ok
    assert counter.get_total(result.new_state) == 65540
    # the input root is untouched and can be reused
    assert counter.get_total(state) == 5
    assert _recv(state, Cell(65535, 16)).new_state == result.new_state


def test_recv_internal_ignores_trailing_bits() -> None:
    body = Builder().store_uint(3, 16).store_uint(0xFFFF, 16).end_cell()
    result = _recv(counter.store_total(1), body)
    assert counter.get_total(result.new_state) == 4


def test_recv_internal_short_body_returns_error_value() -> None:
    result = _recv(counter.store_total(5), Cell(0x7FFF, 15))
    assert not result.ok
    assert result.new_state is None
    assert isinstance(result.error, PreconditionError)
    assert result.to_dict()["error"]["exit_code"] == 35


def test_recv_internal_overflow_raises() -> None:
    with pytest.raises(IntegerOverflowError):
        _recv(counter.store_total(counter.COUNTER_MAX), Cell(1, 16))


def test_recv_internal_gas_costs() -> None:
    # body load 100, instruction 10
    short = _meter()
    _recv(counter.store_total(0), Cell(0, 15), meter=short)
    assert short.used == 110

    # + state load 100, read 64 (74), read 16 (26), instruction 10,
    #   write 64 (74), create 500
    full = _meter()
    _recv(counter.store_total(0), Cell(1, 16), meter=full)
    assert full.used == 894


def test_recv_internal_out_of_gas_before_cell_create() -> None:
    gm = _meter(limit=500)
    with pytest.raises(OutOfGas):
        _recv(counter.store_total(0), Cell(1, 16), meter=gm)
    assert gm.used == 394


def test_get_total_takes_no_meter() -> None:
    assert counter.get_total(counter.store_total(7)) == 7
