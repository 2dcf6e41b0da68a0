"""In-memory index of registered implementor tables.

``ImplementorIndex`` is the sink the registry delivers to. It stores tables
for later rendering, grouped by trait, keeping crates in registration order.
Registering a crate twice for the same trait replaces the earlier entry.
"""

from __future__ import annotations

import threading
from typing import Any

from implspine.core.logging import get_logger
from implspine.models import CrateImplementorTable, ImplementorDescriptor

logger = get_logger(__name__)

UNKNOWN_TRAIT = "<unknown>"


class ImplementorIndex:
    """Trait -> crate -> implementors, in registration order.

    Example:
        >>> index = ImplementorIndex()
        >>> registry = ImplementorRegistry(sink=index)
        >>> _ = registry.initialize()
        >>> index.traits()
        []
    """

    def __init__(self) -> None:
        self._traits: dict[str, dict[str, tuple[ImplementorDescriptor, ...]]] = {}
        self._lock = threading.Lock()

    def __call__(self, table: CrateImplementorTable) -> None:
        self.register(table)

    def register(self, table: CrateImplementorTable) -> None:
        """Merge a table into the index; last registration wins per crate."""
        trait = table.trait_path or UNKNOWN_TRAIT
        with self._lock:
            crates = self._traits.setdefault(trait, {})
            for crate, descriptors in table.items():
                if crate in crates:
                    logger.info("crate_replaced", trait=trait, crate=crate)
                crates[crate] = descriptors
        logger.debug("table_indexed", trait=trait, crates=list(table.crates))

    def traits(self) -> list[str]:
        with self._lock:
            return sorted(self._traits)

    def crates(self, trait: str) -> list[str]:
        with self._lock:
            return list(self._traits.get(trait, {}))

    def implementors(
        self,
        trait: str,
        exclude: set[str] | frozenset[str] = frozenset(),
    ) -> dict[str, tuple[ImplementorDescriptor, ...]]:
        """Implementors of ``trait`` per crate, skipping crates in ``exclude``."""
        with self._lock:
            return {
                crate: descriptors
                for crate, descriptors in self._traits.get(trait, {}).items()
                if crate not in exclude
            }

    def __contains__(self, trait: object) -> bool:
        return trait in self._traits

    def __len__(self) -> int:
        return len(self._traits)

    def stats(self) -> dict[str, Any]:
        """Counts per trait plus totals."""
        with self._lock:
            per_trait = {
                trait: {
                    "crates": len(crates),
                    "implementors": sum(len(descriptors) for descriptors in crates.values()),
                }
                for trait, crates in sorted(self._traits.items())
            }
            crate_names = {crate for crates in self._traits.values() for crate in crates}
        return {
            "traits": per_trait,
            "total_traits": len(per_trait),
            "total_crates": len(crate_names),
            "total_implementors": sum(entry["implementors"] for entry in per_trait.values()),
        }


__all__ = ["ImplementorIndex", "UNKNOWN_TRAIT"]
