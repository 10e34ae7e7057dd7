"""
cell_vm.runtime.receipt — outcome record of one mutating invocation.

ExitStatus models the *logical* outcome:
  - SUCCESS    : handler ran to completion, new root committed
  - ABORTED    : handler refused the message or a VM check failed; no commit
  - OUT_OF_GAS : gas ran out; no commit

String forms:
  - str(ExitStatus.SUCCESS)  -> "success"
  - ExitStatus.SUCCESS.code  -> "SUCCESS"
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ExitStatus(str, Enum):
    SUCCESS = "success"
    ABORTED = "aborted"
    OUT_OF_GAS = "out_of_gas"

    @property
    def code(self) -> str:
        return self.value.upper()

    @property
    def is_success(self) -> bool:
        return self is ExitStatus.SUCCESS

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


@dataclass(frozen=True)
class Receipt:
    """
    Fields
    ------
    status       : ExitStatus
    exit_code    : 0 on success, otherwise the failing VmError's exit code
    gas_used     : gas charged up to success or failure
    gas_limit    : limit the invocation ran under
    state_before : hash of the root the handler saw
    state_after  : hash of the root after the invocation (== before unless SUCCESS)
    error        : VmError.to_dict() for failed invocations
    """

    status: ExitStatus
    exit_code: int
    gas_used: int
    gas_limit: int
    state_before: bytes
    state_after: bytes
    error: Optional[Dict[str, Any]] = None

    @property
    def is_success(self) -> bool:
        return self.status.is_success

    @property
    def state_changed(self) -> bool:
        return self.state_before != self.state_after

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": str(self.status),
            "exitCode": self.exit_code,
            "gasUsed": self.gas_used,
            "gasLimit": self.gas_limit,
            "stateBefore": "0x" + self.state_before.hex(),
            "stateAfter": "0x" + self.state_after.hex(),
            "error": self.error,
        }


__all__ = ["ExitStatus", "Receipt"]
