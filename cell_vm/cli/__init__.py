"""
cell_vm.cli
-----------

Command-line entrypoint for the cell VM (console script ``cell-vm``).
Also runnable as ``python -m cell_vm.cli``.
"""

from __future__ import annotations

from .main import app, main

__all__ = ["app", "main"]
