"""
cell_vm.config — gas schedule, gas limit, state path and log level.

This module centralizes configuration for the cell VM. It has NO third-party
deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (CELL_VM_*)
  2) Hardcoded safe defaults below

Key env vars:
  - CELL_VM_GAS_LIMIT        (int)   default: 1_000_000
  - CELL_VM_GAS_INSTRUCTION  (int)   default: 10     (flat cost per codec op)
  - CELL_VM_GAS_PER_BIT      (int)   default: 1      (per bit read or written)
  - CELL_VM_GAS_CELL_LOAD    (int)   default: 100    (opening a cell for reading)
  - CELL_VM_GAS_CELL_CREATE  (int)   default: 500    (finalizing a builder)
  - CELL_VM_STATE_PATH       (path)  default: ./counter_state.boc
  - CELL_VM_LOG_LEVEL        (str)   default: WARNING

Usage:
    from cell_vm.config import load_config
    cfg = load_config()
    meter = GasMeter(limit=cfg.gas_limit, schedule=cfg.gas)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

DEFAULT_GAS_LIMIT = 1_000_000
DEFAULT_STATE_PATH = "counter_state.boc"
DEFAULT_LOG_LEVEL = "WARNING"


# ----------------------------- helpers ---------------------------------------


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_path(name: str, default: str) -> Path:
    raw = os.getenv(name) or default
    return Path(raw).expanduser()


def _env_log_level(name: str, default: str) -> str:
    raw = (os.getenv(name) or default).strip().upper()
    if logging.getLevelName(raw) == f"Level {raw}":
        return default
    return raw


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class GasSchedule:
    """Per-operation gas prices charged by slices, builders and the handler."""

    instruction: int = 10
    per_bit: int = 1
    cell_load: int = 100
    cell_create: int = 500

    def as_dict(self) -> Dict[str, int]:
        return {
            "instruction": self.instruction,
            "per_bit": self.per_bit,
            "cell_load": self.cell_load,
            "cell_create": self.cell_create,
        }


@dataclass(frozen=True)
class VMConfig:
    gas_limit: int = DEFAULT_GAS_LIMIT
    gas: GasSchedule = field(default_factory=GasSchedule)
    state_path: Path = Path(DEFAULT_STATE_PATH)
    log_level: str = DEFAULT_LOG_LEVEL

    def as_dict(self) -> Dict[str, Any]:
        return {
            "gas_limit": self.gas_limit,
            "gas": self.gas.as_dict(),
            "state_path": str(self.state_path),
            "log_level": self.log_level,
        }


@lru_cache(maxsize=1)
def load_config() -> VMConfig:
    """
    Build and cache a VMConfig from environment + safe defaults.

    Tests that change the environment must call ``load_config.cache_clear()``.
    """
    gas = GasSchedule(
        instruction=_env_int("CELL_VM_GAS_INSTRUCTION", 10, min_v=0, max_v=1_000_000),
        per_bit=_env_int("CELL_VM_GAS_PER_BIT", 1, min_v=0, max_v=1_000_000),
        cell_load=_env_int("CELL_VM_GAS_CELL_LOAD", 100, min_v=0, max_v=1_000_000),
        cell_create=_env_int("CELL_VM_GAS_CELL_CREATE", 500, min_v=0, max_v=1_000_000),
    )
    return VMConfig(
        gas_limit=_env_int("CELL_VM_GAS_LIMIT", DEFAULT_GAS_LIMIT, min_v=0, max_v=1 << 62),
        gas=gas,
        state_path=_env_path("CELL_VM_STATE_PATH", DEFAULT_STATE_PATH),
        log_level=_env_log_level("CELL_VM_LOG_LEVEL", DEFAULT_LOG_LEVEL),
    )


__all__ = ["GasSchedule", "VMConfig", "load_config"]
