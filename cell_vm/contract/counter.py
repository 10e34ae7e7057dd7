"""
Counter contract for the cell VM.

Persisted state (root cell):
    counter : uint64, big-endian, first 64 payload bits; 0 refs

Inbound message body:
    delta   : uint16, big-endian, first 16 bits; anything after is ignored

Entry points:

    recv_internal(state, balance, msg_value, in_msg_full, in_msg_body, *, meter=None)
        Validate the body length, add `delta` to the stored counter and return
        the new root cell inside a HandlerResult. The caller commits it.

    get_total(state) -> int
        Read the counter. Takes no meter and has no side effects.

Overflow policy: a sum above 2**64 - 1 fails with IntegerOverflowError
(exit code 4); the invocation aborts and the previous root stays in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Final, Optional

from ..boc.builder import Builder
from ..boc.cell import Cell
from ..boc.slice import Slice
from ..errors import (IntegerOverflowError, PreconditionError,
                      RangeCheckError, VmError)

if TYPE_CHECKING:  # pragma: no cover
    from ..runtime.gasmeter import GasMeter

COUNTER_BITS: Final[int] = 64
INCREMENT_BITS: Final[int] = 16
MIN_BODY_BITS: Final[int] = INCREMENT_BITS

COUNTER_MAX: Final[int] = (1 << COUNTER_BITS) - 1
INCREMENT_MAX: Final[int] = (1 << INCREMENT_BITS) - 1


@dataclass(frozen=True)
class HandlerResult:
    """Outcome of one mutating invocation: a new root or the reason it was refused."""

    new_state: Optional[Cell] = None
    error: Optional[VmError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "new_state": self.new_state.hash.hex() if self.new_state is not None else None,
            "error": self.error.to_dict() if self.error is not None else None,
        }


# ------------------------------ validation --------------------------------- #


def validate(body: Slice, min_bits: int) -> Optional[PreconditionError]:
    """Return a PreconditionError if `body` has fewer than `min_bits` bits left."""
    have = body.remaining_bits
    if have < min_bits:
        return PreconditionError(
            f"message body has {have} bits, need at least {min_bits}",
            context={"bits": have, "min_bits": min_bits},
        )
    return None


def merge(total: int, delta: int) -> int:
    """Unsigned 64-bit addition that refuses to wrap."""
    if not 0 <= total <= COUNTER_MAX:
        raise RangeCheckError(f"total {total} outside uint{COUNTER_BITS}")
    if not 0 <= delta <= INCREMENT_MAX:
        raise RangeCheckError(f"delta {delta} outside uint{INCREMENT_BITS}")
    new_total = total + delta
    if new_total > COUNTER_MAX:
        raise IntegerOverflowError(
            f"counter overflow: {total} + {delta} exceeds {COUNTER_MAX}",
            context={"total": total, "delta": delta},
        )
    return new_total


# ----------------------------- state codec --------------------------------- #


def load_total(state: Cell, meter: Optional["GasMeter"] = None) -> int:
    return Slice(state, meter=meter).load_uint(COUNTER_BITS)


def store_total(total: int, meter: Optional["GasMeter"] = None) -> Cell:
    return Builder(meter=meter).store_uint(total, COUNTER_BITS).end_cell()


def initial_data(total: int = 0) -> Cell:
    """Root cell a deployer supplies for a fresh counter."""
    return store_total(total)


def build_increment_body(delta: int, *, extra_bits: int = 0) -> Cell:
    """Message body carrying `delta`, optionally padded with trailing zero bits."""
    b = Builder().store_uint(delta, INCREMENT_BITS)
    if extra_bits:
        b.store_uint(0, extra_bits)
    return b.end_cell()


# ------------------------------ entry points ------------------------------- #


def recv_internal(
    state: Cell,
    balance: int,
    msg_value: int,
    in_msg_full: Optional[Cell],
    in_msg_body: Slice,
    *,
    meter: Optional["GasMeter"] = None,
) -> HandlerResult:
    """
    Handle an inbound message. `balance`, `msg_value` and `in_msg_full` are
    accepted for signature compatibility and not consulted.

    The length check runs before the state is opened so a short body costs
    a single instruction.
    """
    if meter is not None:
        meter.charge_instruction()
    err = validate(in_msg_body, MIN_BODY_BITS)
    if err is not None:
        return HandlerResult(error=err)

    total = load_total(state, meter)
    delta = in_msg_body.load_uint(INCREMENT_BITS)
    if meter is not None:
        meter.charge_instruction()
    new_total = merge(total, delta)
    return HandlerResult(new_state=store_total(new_total, meter))


def get_total(state: Cell) -> int:
    """Current counter value. Never metered."""
    return load_total(state)


__all__ = [
    "COUNTER_BITS",
    "INCREMENT_BITS",
    "MIN_BODY_BITS",
    "COUNTER_MAX",
    "INCREMENT_MAX",
    "HandlerResult",
    "validate",
    "merge",
    "load_total",
    "store_total",
    "initial_data",
    "build_increment_body",
    "recv_internal",
    "get_total",
]
