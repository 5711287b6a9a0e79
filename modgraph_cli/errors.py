"""Exception types raised by ModGraph.

The analysis core is best-effort: dangling references and cycles are reported
as data. These exceptions cover the few places where a caller asked for
something that cannot be produced.
"""

from __future__ import annotations

from typing import List


class ModGraphError(Exception):
    """Base class for all ModGraph errors."""


class CatalogError(ModGraphError):
    """The module catalog file is missing, unreadable or malformed."""


class OrderCycleError(ModGraphError):
    """Raised by the strict synthesis policy when a cycle blocks ordering."""

    def __init__(self, chain: List[str]):
        self.chain = list(chain)
        super().__init__(f"Circular dependency blocks load order: {' -> '.join(self.chain)}")
