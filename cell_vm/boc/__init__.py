"""
cell_vm.boc — bounded cells, their read/write cursors and byte encoding.

- Cell     : immutable node, <= 1023 payload bits and <= 4 refs
- Slice    : read cursor (offset only advances)
- Builder  : write cursor (fails instead of truncating)
- codec    : functional begin_read / read_unsigned / write_unsigned / finalize
- serialize: bag-of-cells bytes <-> Cell
"""

from .builder import Builder
from .cell import MAX_BITS, MAX_REFS, Cell
from .codec import (begin_read, begin_write, finalize, read_unsigned,
                    remaining_bits, write_unsigned)
from .serialize import deserialize_boc, deserialize_boc_roots, serialize_boc
from .slice import Slice

__all__ = [
    "Cell",
    "Slice",
    "Builder",
    "MAX_BITS",
    "MAX_REFS",
    "begin_read",
    "read_unsigned",
    "remaining_bits",
    "begin_write",
    "write_unsigned",
    "finalize",
    "serialize_boc",
    "deserialize_boc",
    "deserialize_boc_roots",
]
