"""
cell_vm.boc.builder — write cursor that accumulates bits and refs into a cell.

Every store is checked against the bounded-node ceiling: going past 1023 bits
or 4 refs raises CapacityError, and a value that does not fit its declared
width raises RangeCheckError. Nothing is ever truncated.

Stores return the builder itself so calls can be chained:

    cell = Builder().store_uint(5, 64).store_ref(child).end_cell()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from ..errors import CapacityError, RangeCheckError
from .cell import MAX_BITS, MAX_REFS, Cell

if TYPE_CHECKING:  # pragma: no cover
    from ..runtime.gasmeter import GasMeter
    from .slice import Slice


def _require_width(nbits: int) -> int:
    if not isinstance(nbits, int) or isinstance(nbits, bool) or not 0 <= nbits <= MAX_BITS:
        raise RangeCheckError(f"bit count must be in [0, {MAX_BITS}], got {nbits!r}")
    return nbits


class Builder:
    __slots__ = ("_data", "_bits", "_refs", "_meter")

    def __init__(self, *, meter: Optional["GasMeter"] = None) -> None:
        self._data = 0
        self._bits = 0
        self._refs: List[Cell] = []
        self._meter = meter

    @property
    def bits(self) -> int:
        return self._bits

    @property
    def refs(self) -> int:
        return len(self._refs)

    @property
    def bits_left(self) -> int:
        return MAX_BITS - self._bits

    @property
    def refs_left(self) -> int:
        return MAX_REFS - len(self._refs)

    # -------------------------------- stores -------------------------- #

    def store_uint(self, value: int, nbits: int) -> "Builder":
        """Append `value` as `nbits` big-endian unsigned bits."""
        _require_width(nbits)
        if self._meter is not None:
            self._meter.charge_bits(nbits)
        if not isinstance(value, int) or isinstance(value, bool):
            raise RangeCheckError(f"value must be int, got {type(value).__name__}")
        if value < 0 or value >> nbits:
            raise RangeCheckError(
                f"value {value} does not fit in {nbits} unsigned bits",
                context={"value": value, "bits": nbits},
            )
        self._append(value, nbits)
        return self

    def store_int(self, value: int, nbits: int) -> "Builder":
        """Append `value` as `nbits` two's-complement bits."""
        _require_width(nbits)
        if self._meter is not None:
            self._meter.charge_bits(nbits)
        if not isinstance(value, int) or isinstance(value, bool):
            raise RangeCheckError(f"value must be int, got {type(value).__name__}")
        if nbits == 0:
            lo, hi = 0, 0
        else:
            lo, hi = -(1 << (nbits - 1)), (1 << (nbits - 1)) - 1
        if not lo <= value <= hi:
            raise RangeCheckError(
                f"value {value} does not fit in {nbits} signed bits",
                context={"value": value, "bits": nbits},
            )
        self._append(value & ((1 << nbits) - 1), nbits)
        return self

    def store_bytes(self, data: bytes) -> "Builder":
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"store_bytes expects bytes, got {type(data).__name__}")
        raw = bytes(data)
        if len(raw) * 8 > self.bits_left:
            raise CapacityError(
                f"storing {len(raw)} bytes would exceed {MAX_BITS} bits (have {self._bits})",
                context={"bits": self._bits, "requested": len(raw) * 8, "max_bits": MAX_BITS},
            )
        return self.store_uint(int.from_bytes(raw, "big"), len(raw) * 8)

    def store_ref(self, cell: Cell) -> "Builder":
        if not isinstance(cell, Cell):
            raise TypeError(f"store_ref expects a Cell, got {type(cell).__name__}")
        if self._meter is not None:
            self._meter.charge_instruction()
        if len(self._refs) >= MAX_REFS:
            raise CapacityError(
                f"builder already holds {MAX_REFS} refs",
                context={"refs": len(self._refs), "max_refs": MAX_REFS},
            )
        self._refs.append(cell)
        return self

    def store_slice(self, src: "Slice") -> "Builder":
        """Append the unread bits and refs of `src`'s current cell."""
        value, nbits, refs = src.remaining_payload()
        if self._meter is not None:
            self._meter.charge_bits(nbits)
        if len(self._refs) + len(refs) > MAX_REFS:
            raise CapacityError(
                f"storing {len(refs)} refs would exceed {MAX_REFS}",
                context={"refs": len(self._refs) + len(refs), "max_refs": MAX_REFS},
            )
        self._append(value, nbits)
        self._refs.extend(refs)
        return self

    def end_cell(self) -> Cell:
        """Finalize into an immutable Cell; the builder may keep being used."""
        if self._meter is not None:
            self._meter.charge_cell_create()
        return Cell(self._data, self._bits, self._refs)

    # ------------------------------ internals ------------------------- #

    def _append(self, value: int, nbits: int) -> None:
        if self._bits + nbits > MAX_BITS:
            raise CapacityError(
                f"storing {nbits} bits would exceed {MAX_BITS} (have {self._bits})",
                context={"bits": self._bits, "requested": nbits, "max_bits": MAX_BITS},
            )
        self._data = (self._data << nbits) | value
        self._bits += nbits

    def __repr__(self) -> str:
        return f"Builder(bits={self._bits}, refs={len(self._refs)})"


__all__ = ["Builder"]
