"""
Data model for implementor fragments.

Manifesto:
    A fragment is display data produced by a trusted generator. Once built
    it never changes: descriptors are frozen dataclasses and tables are
    read-only mappings. Ownership moves to the registry's sink on delivery;
    immutability means the sink may keep the table as-is without copying.

Architecture:
    ::

        CrateImplementorTable (trait_path="core::ops::Drop")
              │
              ├── "futures" ──► (ImplementorDescriptor, ImplementorDescriptor, ...)
              └── "tokio"   ──► (ImplementorDescriptor, ...)

        ImplementorDescriptor
              trait_path   "core::ops::Drop"
              type_path    "futures::stream::Receiver<T, E>"
              generics     ("T", "E")
              constraints  ("T: Send + 'static", "E: Send + 'static")
              markup       raw generated markup (optional)

Tags:
    models, dataclass, immutable, implspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class ImplementorDescriptor:
    """One trait implementation for one concrete type."""

    trait_path: str
    type_path: str
    constraints: tuple[str, ...] = ()
    generics: tuple[str, ...] = ()
    markup: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples.
        object.__setattr__(self, "constraints", tuple(self.constraints))
        object.__setattr__(self, "generics", tuple(self.generics))

    @property
    def trait_name(self) -> str:
        """Last path segment of the trait, e.g. ``Drop``."""
        return self.trait_path.rsplit("::", 1)[-1]

    @property
    def signature(self) -> str:
        """Plain-text impl line, e.g. ``impl<T> Drop for Promise<T> where T: Send``."""
        text = "impl"
        if self.generics:
            text += f"<{', '.join(self.generics)}>"
        text += f" {self.trait_name} for {self.type_path}"
        if self.constraints:
            text += f" where {', '.join(self.constraints)}"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "trait_path": self.trait_path,
            "type_path": self.type_path,
            "generics": list(self.generics),
            "constraints": list(self.constraints),
        }


class CrateImplementorTable(Mapping[str, tuple[ImplementorDescriptor, ...]]):
    """Read-only mapping of crate name to its implementors, in generation order.

    Args:
        entries: Mapping or iterable of ``(crate, descriptors)`` pairs
        trait_path: Trait page this table belongs to, if known

    Example:
        >>> table = CrateImplementorTable(
        ...     {"futures": [ImplementorDescriptor("core::ops::Drop", "futures::Promise<T>")]},
        ...     trait_path="core::ops::Drop",
        ... )
        >>> table.crates
        ('futures',)
        >>> table.implementor_count
        1
    """

    __slots__ = ("_entries", "_trait_path")

    def __init__(
        self,
        entries: Mapping[str, Iterable[ImplementorDescriptor]]
        | Iterable[tuple[str, Iterable[ImplementorDescriptor]]] = (),
        trait_path: str | None = None,
    ):
        pairs = entries.items() if isinstance(entries, Mapping) else entries
        frozen: dict[str, tuple[ImplementorDescriptor, ...]] = {}
        for crate, descriptors in pairs:
            frozen[crate] = tuple(descriptors)
        self._entries = MappingProxyType(frozen)
        self._trait_path = trait_path

    @property
    def trait_path(self) -> str | None:
        return self._trait_path

    @property
    def crates(self) -> tuple[str, ...]:
        return tuple(self._entries)

    @property
    def implementor_count(self) -> int:
        return sum(len(descriptors) for descriptors in self._entries.values())

    def __getitem__(self, crate: str) -> tuple[ImplementorDescriptor, ...]:
        return self._entries[crate]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CrateImplementorTable):
            return self._trait_path == other._trait_path and dict(self._entries) == dict(other._entries)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"CrateImplementorTable(trait_path={self._trait_path!r}, crates={list(self._entries)!r})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "trait_path": self._trait_path,
            "crates": {
                crate: [descriptor.to_dict() for descriptor in descriptors]
                for crate, descriptors in self._entries.items()
            },
        }


__all__ = ["ImplementorDescriptor", "CrateImplementorTable"]
