"""Contracts executed by the cell VM host."""

from . import counter

__all__ = ["counter"]
