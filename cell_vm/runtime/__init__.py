"""
cell_vm.runtime — gas metering, state stores, receipts and the invocation host.

Re-exports the pieces a host integration needs:

    from cell_vm.runtime import ContractHost, MemoryStateStore, GasMeter
"""

from .gasmeter import GasMeter, GasSnapshot
from .host import ContractHost
from .receipt import ExitStatus, Receipt
from .state_store import (FileStateStore, MemoryStateStore, StateStore,
                          zero_root)

__all__ = [
    "GasMeter",
    "GasSnapshot",
    "ContractHost",
    "ExitStatus",
    "Receipt",
    "StateStore",
    "MemoryStateStore",
    "FileStateStore",
    "zero_root",
]
