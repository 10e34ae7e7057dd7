"""
cell_vm.boc.cell — the immutable bounded node.

A cell holds up to 1023 payload bits and up to 4 references to other cells.
It is built once (normally by :class:`~cell_vm.boc.builder.Builder`) and never
mutated afterwards; "changing" a cell means building a new one.

Payload bits are kept as a Python int plus an explicit bit length, so the
leading zero bits of e.g. a 64-bit zero counter are not lost.

Hashing follows the representation-hash rules for ordinary (level 0) cells:

    repr = d1 || d2 || data(completion-tagged) || depth(ref_i)... || hash(ref_i)...
    hash = sha256(repr)

with ``d1 = refs_count`` and ``d2 = floor(bits/8) + ceil(bits/8)``. Two cells
compare equal iff their hashes match.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from ..errors import CapacityError, RangeCheckError

if TYPE_CHECKING:  # pragma: no cover
    from ..runtime.gasmeter import GasMeter
    from .slice import Slice

MAX_BITS = 1023
MAX_REFS = 4
MAX_DEPTH = 1024


def _completion_tagged(data: int, bits: int) -> bytes:
    """Pad `bits` payload bits to whole bytes: append a 1 bit, then zeros."""
    if bits % 8 == 0:
        return data.to_bytes(bits // 8, "big")
    pad = 8 - bits % 8
    tagged = ((data << 1) | 1) << (pad - 1)
    return tagged.to_bytes((bits + 7) // 8, "big")


class Cell:
    """Immutable bounded node: payload bits plus child references."""

    __slots__ = ("_data", "_bits", "_refs", "_depth", "_hash", "_total_bits")

    def __init__(self, data: int = 0, bits: int = 0, refs: Iterable["Cell"] = ()) -> None:
        if not isinstance(bits, int) or bits < 0:
            raise RangeCheckError(f"bit length must be a non-negative int, got {bits!r}")
        if bits > MAX_BITS:
            raise CapacityError(
                f"cell payload of {bits} bits exceeds {MAX_BITS}",
                context={"bits": bits, "max_bits": MAX_BITS},
            )
        if not isinstance(data, int) or data < 0 or data >> bits:
            raise RangeCheckError(f"payload value does not fit in {bits} bits")
        refs_t = tuple(refs)
        if len(refs_t) > MAX_REFS:
            raise CapacityError(
                f"cell with {len(refs_t)} refs exceeds {MAX_REFS}",
                context={"refs": len(refs_t), "max_refs": MAX_REFS},
            )
        for r in refs_t:
            if not isinstance(r, Cell):
                raise TypeError(f"cell refs must be Cell, got {type(r).__name__}")

        self._data = data
        self._bits = bits
        self._refs: Tuple[Cell, ...] = refs_t
        self._depth = 1 + max(r.depth for r in refs_t) if refs_t else 0
        if self._depth > MAX_DEPTH:
            raise CapacityError(f"cell depth {self._depth} exceeds {MAX_DEPTH}")
        self._hash: Optional[bytes] = None
        self._total_bits: Optional[int] = None

    @classmethod
    def empty(cls) -> "Cell":
        return cls()

    # ----------------------------- views ------------------------------ #

    @property
    def data(self) -> int:
        """Payload bits as an unsigned big-endian integer."""
        return self._data

    @property
    def bits(self) -> int:
        """Payload bit length (0..1023)."""
        return self._bits

    @property
    def refs(self) -> Tuple["Cell", ...]:
        return self._refs

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def total_bits(self) -> int:
        """Bits reachable from this cell in pre-order (payload + all subtrees)."""
        if self._total_bits is None:
            self._total_bits = self._bits + sum(r.total_bits for r in self._refs)
        return self._total_bits

    @property
    def descriptors(self) -> bytes:
        d1 = len(self._refs)
        d2 = self._bits // 8 + (self._bits + 7) // 8
        return bytes((d1, d2))

    def data_bytes(self) -> bytes:
        """Completion-tagged payload bytes as used in hashing and serialization."""
        return _completion_tagged(self._data, self._bits)

    @property
    def hash(self) -> bytes:
        """32-byte representation hash."""
        if self._hash is None:
            h = hashlib.sha256()
            h.update(self.descriptors)
            h.update(self.data_bytes())
            for r in self._refs:
                h.update(r.depth.to_bytes(2, "big"))
            for r in self._refs:
                h.update(r.hash)
            self._hash = h.digest()
        return self._hash

    def begin_parse(self, meter: Optional["GasMeter"] = None) -> "Slice":
        from .slice import Slice

        return Slice(self, meter=meter)

    # --------------------------- rendering ---------------------------- #

    def hex_payload(self) -> str:
        """
        Fift-style payload text: whole nibbles as hex; otherwise the payload is
        completion-tagged to a nibble boundary and suffixed with ``_``.
        """
        if self._bits % 4 == 0:
            if self._bits == 0:
                return ""
            return format(self._data, f"0{self._bits // 4}x").upper()
        pad = 4 - self._bits % 4
        tagged = ((self._data << 1) | 1) << (pad - 1)
        nibbles = (self._bits + pad) // 4
        return format(tagged, f"0{nibbles}x").upper() + "_"

    def dump(self, indent: int = 0) -> str:
        lines: List[str] = []
        self._dump_into(lines, indent)
        return "\n".join(lines)

    def _dump_into(self, lines: List[str], indent: int) -> None:
        lines.append(" " * indent + str(self))
        for r in self._refs:
            r._dump_into(lines, indent + 1)

    def __str__(self) -> str:
        return "x{" + self.hex_payload() + "}"

    def __repr__(self) -> str:
        return f"Cell(bits={self._bits}, refs={len(self._refs)}, {self})"

    # -------------------------- identity ------------------------------ #

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        return self.hash == other.hash

    def __hash__(self) -> int:
        return hash(self.hash)


__all__ = ["Cell", "MAX_BITS", "MAX_REFS", "MAX_DEPTH"]
