"""
cell_vm.boc.serialize — bag-of-cells (BoC) byte encoding.

Layout written (generic ``b5ee9c72`` magic, no index, no CRC):

    magic           4 bytes   b5 ee 9c 72
    flags|size      1 byte    has_idx:1 has_crc32c:1 has_cache_bits:1 flags:2 size_bytes:3
    off_bytes       1 byte
    cells           size_bytes
    roots           size_bytes   (always 1 on write)
    absent          size_bytes   (always 0)
    tot_cells_size  off_bytes
    root_list       roots * size_bytes
    [index]         cells * off_bytes     (only if has_idx; skipped on read)
    cell_data       per cell: d1 d2 data[ceil(d2/2)] ref_index[refs] * size_bytes
    [crc32c]        4 bytes               (only if has_crc32c; rejected on read)

Cells are deduplicated by representation hash and ordered so every cell
precedes the cells it references; the root gets index 0.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from ..errors import BocError, VmError
from .cell import MAX_REFS, Cell

BOC_MAGIC = bytes.fromhex("b5ee9c72")


def _byte_len(n: int) -> int:
    return max(1, (n.bit_length() + 7) // 8)


def _topological_order(root: Cell) -> List[Cell]:
    """Parents before children, each distinct cell once."""
    seen: Dict[bytes, None] = {}
    post: List[Cell] = []

    stack: List[Tuple[Cell, int]] = [(root, 0)]
    seen[root.hash] = None
    while stack:
        cell, i = stack.pop()
        if i < len(cell.refs):
            stack.append((cell, i + 1))
            child = cell.refs[i]
            if child.hash not in seen:
                seen[child.hash] = None
                stack.append((child, 0))
        else:
            post.append(cell)
    post.reverse()
    return post


def serialize_boc(root: Cell) -> bytes:
    """Encode the tree under `root` as bag-of-cells bytes."""
    if not isinstance(root, Cell):
        raise TypeError(f"serialize_boc expects a Cell, got {type(root).__name__}")
    cells = _topological_order(root)
    index = {c.hash: i for i, c in enumerate(cells)}
    size_bytes = _byte_len(len(cells))

    body = bytearray()
    for cell in cells:
        body += cell.descriptors
        body += cell.data_bytes()
        for r in cell.refs:
            body += index[r.hash].to_bytes(size_bytes, "big")

    off_bytes = _byte_len(len(body))
    out = bytearray(BOC_MAGIC)
    out.append(size_bytes)  # has_idx=0 has_crc32c=0 has_cache_bits=0 flags=0
    out.append(off_bytes)
    out += len(cells).to_bytes(size_bytes, "big")
    out += (1).to_bytes(size_bytes, "big")
    out += (0).to_bytes(size_bytes, "big")
    out += len(body).to_bytes(off_bytes, "big")
    out += (0).to_bytes(size_bytes, "big")
    out += body
    return bytes(out)


class _Reader:
    __slots__ = ("_buf", "_pos")

    def __init__(self, buf: bytes) -> None:
        self._buf = buf
        self._pos = 0

    @property
    def pos(self) -> int:
        return self._pos

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._buf):
            raise BocError(
                f"truncated bag of cells: need {n} bytes at offset {self._pos}",
                context={"offset": self._pos, "need": n, "size": len(self._buf)},
            )
        chunk = self._buf[self._pos:end]
        self._pos = end
        return chunk

    def uint(self, n: int) -> int:
        return int.from_bytes(self.take(n), "big")

    def remaining(self) -> int:
        return len(self._buf) - self._pos


def _parse_payload(d2: int, raw: bytes) -> Tuple[int, int]:
    """Undo completion tagging; return (data, bits)."""
    value = int.from_bytes(raw, "big")
    if d2 % 2 == 0:
        return value, len(raw) * 8
    last = raw[-1]
    if last == 0:
        raise BocError("payload completion tag missing")
    trailing = (last & -last).bit_length() - 1
    bits = len(raw) * 8 - trailing - 1
    if bits % 8 == 0:
        raise BocError(
            "non-canonical completion tag: odd d2 with a byte-aligned payload",
            context={"d2": d2, "bits": bits},
        )
    return value >> (trailing + 1), bits


def deserialize_boc_roots(data: bytes) -> List[Cell]:
    """Decode bag-of-cells bytes and return every root in root-list order."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"deserialize_boc expects bytes, got {type(data).__name__}")
    rd = _Reader(bytes(data))
    if rd.take(4) != BOC_MAGIC:
        raise BocError("bad bag-of-cells magic")

    flags = rd.uint(1)
    has_idx = bool(flags & 0x80)
    has_crc = bool(flags & 0x40)
    size_bytes = flags & 0x07
    if has_crc:
        raise BocError("crc32c-protected bags of cells are not supported")
    if not 1 <= size_bytes <= 4:
        raise BocError(f"invalid size_bytes {size_bytes}")
    off_bytes = rd.uint(1)
    if not 1 <= off_bytes <= 8:
        raise BocError(f"invalid off_bytes {off_bytes}")

    n_cells = rd.uint(size_bytes)
    n_roots = rd.uint(size_bytes)
    n_absent = rd.uint(size_bytes)
    tot_cells_size = rd.uint(off_bytes)
    if n_roots < 1 or n_roots > n_cells:
        raise BocError(f"invalid root count {n_roots} for {n_cells} cells")
    if n_absent:
        raise BocError("bags of cells with absent cells are not supported")
    root_ids = [rd.uint(size_bytes) for _ in range(n_roots)]
    if has_idx:
        rd.take(n_cells * off_bytes)

    start = rd.pos
    records: List[Tuple[int, int, List[int]]] = []
    for i in range(n_cells):
        d1 = rd.uint(1)
        d2 = rd.uint(1)
        n_refs = d1 & 0x07
        if d1 & 0x08:
            raise BocError(f"cell {i}: exotic cells are not supported")
        if d1 >> 5:
            raise BocError(f"cell {i}: cells with a non-zero level are not supported")
        if n_refs > MAX_REFS:
            raise BocError(f"cell {i}: {n_refs} refs exceeds {MAX_REFS}")
        value, bits = _parse_payload(d2, rd.take((d2 + 1) // 2))
        refs = [rd.uint(size_bytes) for _ in range(n_refs)]
        for r in refs:
            if r <= i or r >= n_cells:
                raise BocError(f"cell {i}: reference {r} is not a later cell")
        records.append((value, bits, refs))

    if rd.pos - start != tot_cells_size:
        raise BocError(
            "cell data size mismatch",
            context={"declared": tot_cells_size, "actual": rd.pos - start},
        )
    if rd.remaining():
        raise BocError(f"{rd.remaining()} trailing bytes after cell data")

    built: List[Cell] = [Cell.empty()] * n_cells
    for i in range(n_cells - 1, -1, -1):
        value, bits, refs = records[i]
        try:
            built[i] = Cell(value, bits, [built[r] for r in refs])
        except VmError as e:
            raise BocError(f"cell {i}: {e.message}") from e

    for r in root_ids:
        if r >= n_cells:
            raise BocError(f"root index {r} out of range")
    return [built[r] for r in root_ids]


def deserialize_boc(data: bytes) -> Cell:
    """Decode bag-of-cells bytes holding exactly one root."""
    roots = deserialize_boc_roots(data)
    if len(roots) != 1:
        raise BocError(f"expected a single root, found {len(roots)}")
    return roots[0]


__all__ = [
    "BOC_MAGIC",
    "serialize_boc",
    "deserialize_boc",
    "deserialize_boc_roots",
]
