"""
cell_vm.boc.codec — functional facade over Slice/Builder.

These helpers treat cursors as values: a read returns the decoded value
together with a *new* advanced cursor and leaves its input untouched, so a
caller can keep the pre-read position around. Writes append to the builder
in place and return it. They are thin wrappers; the
checks (UnderflowError, CapacityError, RangeCheckError) live in the cursor
classes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Tuple

from .builder import Builder
from .cell import Cell
from .slice import Slice

if TYPE_CHECKING:  # pragma: no cover
    from ..runtime.gasmeter import GasMeter


def begin_read(node: Cell, meter: Optional["GasMeter"] = None) -> Slice:
    return Slice(node, meter=meter)


def read_unsigned(cursor: Slice, nbits: int) -> Tuple[int, Slice]:
    advanced = cursor.copy()
    value = advanced.load_uint(nbits)
    return value, advanced


def remaining_bits(cursor: Slice) -> int:
    return cursor.remaining_bits


def begin_write(meter: Optional["GasMeter"] = None) -> Builder:
    return Builder(meter=meter)


def write_unsigned(cursor: Builder, value: int, nbits: int) -> Builder:
    return cursor.store_uint(value, nbits)


def finalize(cursor: Builder) -> Cell:
    return cursor.end_cell()


__all__ = [
    "begin_read",
    "read_unsigned",
    "remaining_bits",
    "begin_write",
    "write_unsigned",
    "finalize",
]
