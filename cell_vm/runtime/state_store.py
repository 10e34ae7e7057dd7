"""
cell_vm.runtime.state_store — the contract's single persisted root cell.

A store is a register holding one root cell:

- load()        -> Cell   current root; never fails for a fresh store, which
                          reports the implicit all-zero root (64 zero bits)
- replace(cell) -> None   atomically supersede the root

Backends
--------
- MemoryStateStore : in-process, thread-safe; tests and embedding
- FileStateStore   : persists the root as bag-of-cells bytes; writes go to a
                     temp file in the same directory and are renamed over the
                     target, so a crash leaves either the old or the new root

Any object with ``load``/``replace`` and a reentrant ``lock`` satisfies the
StateStore protocol. The lock belongs to the stored root, not to whoever
drives it: hosts hold it across load -> handler -> replace, and every
FileStateStore opened on the same file shares one lock.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol, Union, runtime_checkable

from ..boc.cell import Cell
from ..boc.serialize import deserialize_boc, serialize_boc
from ..errors import BocError, StateStoreError

log = logging.getLogger(__name__)

DEFAULT_ROOT_BITS = 64


def zero_root() -> Cell:
    """Root reported before anything was ever stored."""
    return Cell(0, DEFAULT_ROOT_BITS)


@runtime_checkable
class StateStore(Protocol):
    """Minimal register interface for the contract root."""

    @property
    def lock(self) -> "threading.RLock": ...
    def load(self) -> Cell: ...
    def replace(self, node: Cell) -> None: ...


_PATH_LOCKS: Dict[Path, "threading.RLock"] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> "threading.RLock":
    """One lock per resolved state file, shared by every store opened on it."""
    key = path.resolve()
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = _PATH_LOCKS[key] = threading.RLock()
        return lock


def _require_cell(node: object) -> Cell:
    if not isinstance(node, Cell):
        raise StateStoreError(f"state root must be a Cell, got {type(node).__name__}")
    return node


class MemoryStateStore:
    """Thread-safe in-memory register."""

    def __init__(self, initial: Optional[Cell] = None) -> None:
        self._root: Optional[Cell] = _require_cell(initial) if initial is not None else None
        self._lock = threading.RLock()

    def load(self) -> Cell:
        with self._lock:
            return self._root if self._root is not None else zero_root()

    def replace(self, node: Cell) -> None:
        cell = _require_cell(node)
        with self._lock:
            self._root = cell

    @property
    def lock(self) -> "threading.RLock":
        return self._lock

    @property
    def initialized(self) -> bool:
        return self._root is not None


class FileStateStore:
    """Root cell persisted as a bag-of-cells file."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self._path = Path(path)
        self._lock = _lock_for(self._path)

    @property
    def lock(self) -> "threading.RLock":
        return self._lock

    @property
    def path(self) -> Path:
        return self._path

    @property
    def initialized(self) -> bool:
        return self._path.is_file()

    def load(self) -> Cell:
        with self._lock:
            try:
                raw = self._path.read_bytes()
            except FileNotFoundError:
                return zero_root()
            except OSError as e:
                raise StateStoreError(
                    f"cannot read state file {self._path}: {e}",
                    context={"path": str(self._path)},
                ) from e
            try:
                return deserialize_boc(raw)
            except BocError as e:
                raise StateStoreError(
                    f"state file {self._path} is not a valid bag of cells: {e.message}",
                    context={"path": str(self._path)},
                ) from e

    def replace(self, node: Cell) -> None:
        cell = _require_cell(node)
        data = serialize_boc(cell)
        with self._lock:
            directory = self._path.parent
            tmp: Optional[str] = None
            try:
                directory.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(prefix=self._path.name + ".", suffix=".tmp", dir=directory)
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, self._path)
            except OSError as e:
                if tmp is not None:
                    try:
                        os.unlink(tmp)
                    except FileNotFoundError:
                        pass
                raise StateStoreError(
                    f"cannot write state file {self._path}: {e}",
                    context={"path": str(self._path)},
                ) from e
        log.debug("state_store: wrote %d bytes to %s (root %s)", len(data), self._path, cell.hash.hex())


__all__ = [
    "StateStore",
    "MemoryStateStore",
    "FileStateStore",
    "zero_root",
    "DEFAULT_ROOT_BITS",
]
