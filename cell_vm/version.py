"""cell_vm.version — package version.

First match wins:
  1) CELL_VM_VERSION, used verbatim (release builds pin it)
  2) metadata of the installed ``cell-vm`` distribution
  3) BASE_VERSION with the checkout's ``git describe`` as a PEP 440 local part
  4) BASE_VERSION + '+dev'
"""

from __future__ import annotations

import os
import re
import subprocess
from functools import lru_cache
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Optional

# Bump when the persisted root layout, gas prices or exit codes change.
BASE_VERSION = "0.1.0"
DIST_NAME = "cell-vm"


def _local_part(describe: str) -> str:
    """'v0.1.0-3-gabc1234-dirty' -> '0.1.0.3.gabc1234.dirty'"""
    parts = re.split(r"[^A-Za-z0-9]+", describe.strip().lstrip("v"))
    return ".".join(p for p in parts if p)


def _describe_checkout() -> Optional[str]:
    override = os.getenv("GIT_DESCRIBE")
    if override:
        return override
    try:
        proc = subprocess.run(
            ["git", "describe", "--tags", "--dirty", "--always"],
            cwd=Path(__file__).resolve().parent,
            capture_output=True,
            text=True,
            timeout=1.5,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout.strip() or None


@lru_cache(maxsize=1)
def compute_version() -> str:
    pinned = os.getenv("CELL_VM_VERSION")
    if pinned:
        return pinned
    try:
        return importlib_metadata.version(DIST_NAME)
    except importlib_metadata.PackageNotFoundError:
        pass
    describe = _describe_checkout()
    if describe:
        return f"{BASE_VERSION}+{_local_part(describe)}"
    return f"{BASE_VERSION}+dev"


__version__ = compute_version()

__all__ = ["__version__", "BASE_VERSION", "compute_version"]
