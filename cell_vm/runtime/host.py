"""
cell_vm.runtime.host — drives counter invocations against a StateStore.

The contract handler is a pure function (old root, message) -> new root. The
host owns everything around it:

- one GasMeter per mutating invocation (limit and prices from config)
- holding the store's lock across load, handler and replace, so no two
  invocations on the same root interleave, whichever host drives them
- committing the new root only when the handler succeeded
- turning every outcome into a Receipt

Queries (`get_total`) bypass the meter entirely.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..boc.cell import Cell
from ..boc.slice import Slice
from ..config import VMConfig, load_config
from ..contract import counter
from ..errors import OutOfGas, VmError
from .gasmeter import GasMeter
from .receipt import ExitStatus, Receipt
from .state_store import StateStore

log = logging.getLogger(__name__)


class ContractHost:
    def __init__(self, store: StateStore, *, config: Optional[VMConfig] = None) -> None:
        if not isinstance(store, StateStore):
            raise TypeError(f"store must implement load/replace/lock, got {type(store).__name__}")
        self._store = store
        self._config = config if config is not None else load_config()

    @classmethod
    def deploy(
        cls,
        store: StateStore,
        initial: Optional[Cell] = None,
        *,
        total: int = 0,
        config: Optional[VMConfig] = None,
    ) -> "ContractHost":
        """Install the initial root (explicit cell, or a counter set to `total`)."""
        root = initial if initial is not None else counter.initial_data(total)
        store.replace(root)
        log.info("host: deployed root %s", root.hash.hex())
        return cls(store, config=config)

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def config(self) -> VMConfig:
        return self._config

    # ------------------------------ mutating --------------------------- #

    def send_internal(
        self,
        body: Cell,
        *,
        balance: int = 0,
        msg_value: int = 0,
        in_msg_full: Optional[Cell] = None,
        gas_limit: Optional[int] = None,
    ) -> Receipt:
        """Deliver one message; commit the new root only on success."""
        if not isinstance(body, Cell):
            raise TypeError(f"message body must be a Cell, got {type(body).__name__}")
        limit = self._config.gas_limit if gas_limit is None else gas_limit
        meter = GasMeter(limit=limit, schedule=self._config.gas)

        with self._store.lock:
            before = self._store.load()
            try:
                result = counter.recv_internal(
                    before,
                    balance,
                    msg_value,
                    in_msg_full,
                    Slice(body, meter=meter),
                    meter=meter,
                )
            except OutOfGas as e:
                return self._failed(ExitStatus.OUT_OF_GAS, e, meter, before)
            except VmError as e:
                return self._failed(ExitStatus.ABORTED, e, meter, before)

            if result.error is not None or result.new_state is None:
                err = result.error if result.error is not None else VmError("handler produced no state")
                return self._failed(ExitStatus.ABORTED, err, meter, before)

            self._store.replace(result.new_state)

        after = result.new_state
        log.info(
            "host: committed root %s -> %s gas=%d",
            before.hash.hex()[:16],
            after.hash.hex()[:16],
            meter.used,
        )
        return Receipt(
            status=ExitStatus.SUCCESS,
            exit_code=0,
            gas_used=meter.used,
            gas_limit=meter.limit,
            state_before=before.hash,
            state_after=after.hash,
        )

    def send_increment(self, delta: int, **kwargs) -> Receipt:
        return self.send_internal(counter.build_increment_body(delta), **kwargs)

    # ------------------------------- queries --------------------------- #

    def get_total(self) -> int:
        return counter.get_total(self._store.load())

    # ------------------------------- helpers --------------------------- #

    def _failed(self, status: ExitStatus, err: VmError, meter: GasMeter, before: Cell) -> Receipt:
        log.warning(
            "host: invocation %s exit_code=%d code=%s gas=%d: %s",
            status,
            err.exit_code,
            err.code,
            meter.used,
            err.message,
        )
        return Receipt(
            status=status,
            exit_code=err.exit_code,
            gas_used=meter.used,
            gas_limit=meter.limit,
            state_before=before.hash,
            state_after=before.hash,
            error=err.to_dict(),
        )


__all__ = ["ContractHost"]
