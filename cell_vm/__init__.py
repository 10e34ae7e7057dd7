"""
cell_vm — a metered counter contract over bounded cells.

Small, stable façade over the codec, contract and host:

- version() -> str
- deploy(store=None, *, total=0) -> ContractHost
    Install a counter root in `store` (in-memory if omitted).
- send_increment(host, delta) -> Receipt
    Deliver a message whose body carries `delta` as uint16.
- get_total(host) -> int
    Free, side-effect-free read of the counter.

Heavier imports are resolved lazily so `import cell_vm` stays cheap for tools
that only need the codec.
"""

from __future__ import annotations

import importlib
from typing import Any, Optional

from .version import __version__


def version() -> str:
    """Return the cell_vm semantic version string."""
    return __version__


def deploy(store: Optional[Any] = None, *, total: int = 0) -> Any:
    """Deploy a counter set to `total` and return its ContractHost."""
    runtime = importlib.import_module(".runtime", __name__)
    if store is None:
        store = runtime.MemoryStateStore()
    return runtime.ContractHost.deploy(store, total=total)


def send_increment(host: Any, delta: int, **kwargs: Any) -> Any:
    """Send one increment through `host`; returns the Receipt."""
    return host.send_increment(delta, **kwargs)


def get_total(host: Any) -> int:
    return host.get_total()


__all__ = ["__version__", "version", "deploy", "send_increment", "get_total"]
