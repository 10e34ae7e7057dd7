"""
cell_vm.errors — typed failures raised by the codec, the gas meter, the
contract handler and the host.

Every failure derives from :class:`VmError`, which carries:

- ``code``      short machine-readable string (stable; used in receipts)
- ``exit_code`` TVM-style numeric exit code of the aborted invocation
- ``message``   human-readable text
- ``context``   JSON-safe dict of extra fields for debugging

Hierarchy
---------
VmError
 ├─ IntegerOverflowError   (4)  counter addition left the 64-bit range
 ├─ CapacityError          (8)  builder past 1023 bits / 4 refs
 │   └─ RangeCheckError    (5)  value does not fit the requested bit width
 ├─ UnderflowError         (9)  read past the reachable bits / refs
 ├─ OutOfGas               (13) gas limit exhausted
 ├─ PreconditionError      (35) inbound message body too short
 ├─ BocError               (1)  malformed serialized bag of cells
 └─ StateStoreError        (1)  persisted state could not be read or written

These classes import nothing from the rest of the package so the lowest-level
modules (cells, gas meter) can use them without cycles.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Mapping, Optional


class VmError(Exception):
    """
    Base error for the cell VM.

    Supported call patterns:

        VmError("message")
        VmError("message", code="some_code", context={...})
    """

    default_code: ClassVar[str] = "vm_error"
    exit_code: ClassVar[int] = 1

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = str(message)
        self.code = str(code) if code is not None else self.default_code
        self.context: Dict[str, Any] = dict(context) if context else {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "exit_code": self.exit_code,
            "message": self.message,
            "context": dict(self.context),
        }

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class IntegerOverflowError(VmError):
    """Unsigned addition produced a value above the accumulator width."""

    default_code = "integer_overflow"
    exit_code = 4


class CapacityError(VmError):
    """A builder would exceed the bounded-node ceiling (1023 bits / 4 refs)."""

    default_code = "cell_overflow"
    exit_code = 8


class RangeCheckError(CapacityError):
    """A value does not fit in the requested number of bits."""

    default_code = "range_check"
    exit_code = 5


class UnderflowError(VmError):
    """A slice was asked for more bits or refs than it can reach."""

    default_code = "cell_underflow"
    exit_code = 9


class OutOfGas(VmError):
    """The gas meter would exceed its limit."""

    default_code = "out_of_gas"
    exit_code = 13


class PreconditionError(VmError):
    """Inbound message body is shorter than the handler requires."""

    default_code = "body_too_short"
    exit_code = 35


class BocError(VmError):
    """Malformed or unsupported bag-of-cells bytes."""

    default_code = "boc_malformed"


class StateStoreError(VmError):
    """Persisted contract state could not be read or written."""

    default_code = "state_store"


__all__ = [
    "VmError",
    "IntegerOverflowError",
    "CapacityError",
    "RangeCheckError",
    "UnderflowError",
    "OutOfGas",
    "PreconditionError",
    "BocError",
    "StateStoreError",
]
