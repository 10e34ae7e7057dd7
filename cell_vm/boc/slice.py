"""
cell_vm.boc.slice — read cursor over a cell.

A slice consumes payload bits front to back. The offset only ever advances.
When the current cell's payload is exhausted, a read continues into the
current cell's not-yet-loaded references in order (depth first, pre-order),
returning to the parent's remaining references afterwards. A read that asks
for more bits than are reachable fails with UnderflowError and consumes
nothing.

`remaining_bits` / `remaining_refs` only describe the *current* cell; they
never look into children. Handlers use them for cheap length preconditions.

With a GasMeter attached every operation is charged before it takes effect:
reads pay ``instruction + nbits * per_bit`` and stepping into a child cell
pays ``cell_load``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Tuple

from ..errors import RangeCheckError, UnderflowError
from .cell import MAX_BITS, Cell

if TYPE_CHECKING:  # pragma: no cover
    from ..runtime.gasmeter import GasMeter

# (cell, index of its next unconsumed ref) for every ancestor we descended from
_Frame = Tuple[Cell, int]


class Slice:
    __slots__ = ("_cell", "_bit_pos", "_ref_pos", "_frames", "_meter")

    def __init__(self, cell: Cell, *, meter: Optional["GasMeter"] = None) -> None:
        if not isinstance(cell, Cell):
            raise TypeError(f"Slice expects a Cell, got {type(cell).__name__}")
        if meter is not None:
            meter.charge_cell_load()
        self._cell = cell
        self._bit_pos = 0
        self._ref_pos = 0
        self._frames: Tuple[_Frame, ...] = ()
        self._meter = meter

    def copy(self) -> "Slice":
        """Independent cursor at the same position, sharing the same meter."""
        dup = Slice.__new__(Slice)
        dup._cell = self._cell
        dup._bit_pos = self._bit_pos
        dup._ref_pos = self._ref_pos
        dup._frames = self._frames
        dup._meter = self._meter
        return dup

    # ----------------------------- inspection ------------------------- #

    @property
    def cell(self) -> Cell:
        """Cell the cursor currently reads from."""
        return self._cell

    @property
    def offset(self) -> int:
        """Bit offset into the current cell's payload."""
        return self._bit_pos

    @property
    def remaining_bits(self) -> int:
        return self._cell.bits - self._bit_pos

    @property
    def remaining_refs(self) -> int:
        return len(self._cell.refs) - self._ref_pos

    @property
    def reachable_bits(self) -> int:
        """Bits left in the current payload plus every unconsumed subtree."""
        total = self.remaining_bits
        total += sum(r.total_bits for r in self._cell.refs[self._ref_pos:])
        for cell, ref_pos in self._frames:
            total += sum(r.total_bits for r in cell.refs[ref_pos:])
        return total

    def is_empty(self) -> bool:
        return self.remaining_bits == 0 and self.remaining_refs == 0

    def end_parse(self) -> None:
        """Assert the current cell is fully consumed."""
        self._charge_instruction()
        if not self.is_empty():
            raise UnderflowError(
                "slice not empty at end_parse",
                context={"bits": self.remaining_bits, "refs": self.remaining_refs},
            )

    # -------------------------------- reads --------------------------- #

    def load_uint(self, nbits: int) -> int:
        """Consume `nbits` bits as a big-endian unsigned integer."""
        return self._read(nbits)

    def preload_uint(self, nbits: int) -> int:
        return self.copy()._read(nbits)

    def load_int(self, nbits: int) -> int:
        """Consume `nbits` bits as a two's-complement signed integer."""
        v = self._read(nbits)
        if nbits and v >> (nbits - 1):
            v -= 1 << nbits
        return v

    def skip_bits(self, nbits: int) -> "Slice":
        self._read(nbits)
        return self

    def load_bytes(self, nbytes: int) -> bytes:
        if not isinstance(nbytes, int) or nbytes < 0:
            raise RangeCheckError(f"byte count must be a non-negative int, got {nbytes!r}")
        return self._read(nbytes * 8).to_bytes(nbytes, "big")

    def load_ref(self) -> Cell:
        ref = self.preload_ref()
        self._ref_pos += 1
        return ref

    def preload_ref(self) -> Cell:
        self._charge_instruction()
        if self.remaining_refs <= 0:
            raise UnderflowError(
                "no references left in slice",
                context={"refs": len(self._cell.refs)},
            )
        return self._cell.refs[self._ref_pos]

    def remaining_payload(self) -> Tuple[int, int, Tuple[Cell, ...]]:
        """(value, nbits, refs) still unread in the current cell."""
        nbits = self.remaining_bits
        value = self._cell.data & ((1 << nbits) - 1)
        return value, nbits, self._cell.refs[self._ref_pos:]

    # ------------------------------ internals ------------------------- #

    def _charge_instruction(self) -> None:
        if self._meter is not None:
            self._meter.charge_instruction()

    def _read(self, nbits: int) -> int:
        if not isinstance(nbits, int) or isinstance(nbits, bool) or not 0 <= nbits <= MAX_BITS:
            raise RangeCheckError(f"bit count must be in [0, {MAX_BITS}], got {nbits!r}")
        if self._meter is not None:
            self._meter.charge_bits(nbits)
        available = self.reachable_bits
        if nbits > available:
            raise UnderflowError(
                f"cannot read {nbits} bits, only {available} reachable",
                context={"requested": nbits, "available": available},
            )

        value = 0
        need = nbits
        while need:
            avail = self._cell.bits - self._bit_pos
            if avail == 0:
                self._advance_cell()
                continue
            take = min(avail, need)
            shift = self._cell.bits - self._bit_pos - take
            chunk = (self._cell.data >> shift) & ((1 << take) - 1)
            value = (value << take) | chunk
            self._bit_pos += take
            need -= take
        return value

    def _advance_cell(self) -> None:
        """Step to the next cell in pre-order once the current payload is spent."""
        if self._ref_pos < len(self._cell.refs):
            child = self._cell.refs[self._ref_pos]
            if self._meter is not None:
                self._meter.charge_cell_load()
            self._frames = self._frames + ((self._cell, self._ref_pos + 1),)
            self._cell = child
            self._bit_pos = 0
            self._ref_pos = 0
            return
        if not self._frames:
            raise UnderflowError("no reachable bits left")
        parent, ref_pos = self._frames[-1]
        self._frames = self._frames[:-1]
        self._cell = parent
        self._bit_pos = parent.bits
        self._ref_pos = ref_pos

    def __repr__(self) -> str:
        return (
            f"Slice(offset={self._bit_pos}, bits={self.remaining_bits}, "
            f"refs={self.remaining_refs}, cell={self._cell})"
        )


__all__ = ["Slice"]
