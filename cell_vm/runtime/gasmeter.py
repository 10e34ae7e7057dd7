"""
cell_vm.runtime.gasmeter — pay-before-use gas accounting for one invocation.

Rules:

- every charge is taken *before* the priced operation runs;
- a charge that would push ``used`` past ``limit`` raises
  :class:`~cell_vm.errors.OutOfGas` and is not recorded, so ``used`` reports
  exactly what the completed operations cost;
- ``checkpoint()`` rewinds the meter if the guarded block raises.

Codec prices come from a :class:`~cell_vm.config.GasSchedule`. Slices and
builders carrying a meter call the ``charge_*`` helpers; the query path builds
its cursors without one and costs nothing.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from ..config import GasSchedule
from ..errors import OutOfGas, VmError


@dataclass(frozen=True)
class GasSnapshot:
    used: int


def _non_negative_int(value: int, what: str) -> int:
    # bool is an int subclass; a stray True must not pass as 1 gas
    if isinstance(value, bool) or not isinstance(value, int):
        raise VmError(f"{what} must be int, got {type(value).__name__}")
    if value < 0:
        raise VmError(f"{what} must be >= 0, got {value}")
    return value


class GasMeter:
    """
    Gas budget for a single message delivery.

        meter = GasMeter(limit=cfg.gas_limit, schedule=cfg.gas)
        meter.charge_cell_load()   # opening a cell
        meter.charge_bits(64)      # one read/write of 64 bits

    ``used`` only grows, except through ``restore``.
    """

    __slots__ = ("_limit", "_used", "_schedule")

    def __init__(self, *, limit: int, schedule: Optional[GasSchedule] = None) -> None:
        self._limit = _non_negative_int(limit, "gas limit")
        self._used = 0
        self._schedule = schedule if schedule is not None else GasSchedule()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int:
        return self._limit - self._used

    @property
    def schedule(self) -> GasSchedule:
        return self._schedule

    # ----------------------------- charging --------------------------- #

    def consume(self, amount: int) -> None:
        """Take `amount` gas or raise OutOfGas without recording anything."""
        cost = _non_negative_int(amount, "gas amount")
        if cost > self.remaining:
            raise OutOfGas(
                f"out of gas: need {cost}, {self.remaining} of {self._limit} left",
                context={"need": cost, "used": self._used, "limit": self._limit},
            )
        self._used += cost

    def charge_instruction(self) -> None:
        self.consume(self._schedule.instruction)

    def charge_bits(self, nbits: int) -> None:
        """Price of one codec operation moving `nbits` payload bits."""
        n = _non_negative_int(nbits, "bit count")
        self.consume(self._schedule.instruction + n * self._schedule.per_bit)

    def charge_cell_load(self) -> None:
        self.consume(self._schedule.cell_load)

    def charge_cell_create(self) -> None:
        self.consume(self._schedule.cell_create)

    # ----------------------------- rewinding -------------------------- #

    def snapshot(self) -> GasSnapshot:
        return GasSnapshot(self._used)

    def restore(self, snap: GasSnapshot) -> None:
        if not isinstance(snap, GasSnapshot):
            raise VmError(f"expected GasSnapshot, got {type(snap).__name__}")
        self._used = _non_negative_int(snap.used, "snapshot.used")

    @contextmanager
    def checkpoint(self) -> Iterator["GasMeter"]:
        """Charges made inside the block stick unless the block raises."""
        mark = self.snapshot()
        try:
            yield self
        except Exception:
            self.restore(mark)
            raise

    def __repr__(self) -> str:
        return f"GasMeter(used={self._used}/{self._limit})"


__all__ = ["GasMeter", "GasSnapshot"]
