"""
Implementor data fragments.

A fragment carries one generated table and delivers it once to whatever can
accept it right now. It never inspects the registry's state itself: it calls
``registry.submit`` and the registry decides between queueing and delivery.

Examples:
    >>> from implspine.registry import ImplementorRegistry
    >>> registry = ImplementorRegistry()
    >>> fragment = ImplementorFragment.from_js(script, trait_path="core::ops::Drop")
    >>> fragment.load(registry)        # queued until registry.initialize(...)
"""

from __future__ import annotations

from pathlib import Path

from implspine.core.errors import FragmentParseError, RegistryStateError
from implspine.core.logging import get_logger
from implspine.models import CrateImplementorTable
from implspine.parser import parse_descriptor, parse_fragment_script, trait_path_from_location
from implspine.registry import ImplementorRegistry, SubmitResult, default_registry

logger = get_logger(__name__)


class ImplementorFragment:
    """One crate's (or several crates') implementor table, ready to load.

    Args:
        table: The immutable table this fragment delivers
        source: Where the fragment came from, for logging
    """

    def __init__(self, table: CrateImplementorTable, source: str | None = None):
        self.table = table
        self.source = source
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, list[str]],
        trait_path: str | None = None,
        source: str | None = None,
    ) -> ImplementorFragment:
        """Build a fragment from ``{crate: [markup, ...]}``."""
        entries = {
            crate: [parse_descriptor(markup, trait_path=trait_path) for markup in markups]
            for crate, markups in payload.items()
        }
        return cls(CrateImplementorTable(entries, trait_path=trait_path), source=source)

    @classmethod
    def from_js(cls, text: str, trait_path: str | None = None, source: str | None = None) -> ImplementorFragment:
        """Build a fragment from a generated fragment script."""
        try:
            payload = parse_fragment_script(text)
            return cls.from_payload(payload, trait_path=trait_path, source=source)
        except FragmentParseError as e:
            raise e.with_context(source=source, trait_path=trait_path)

    @classmethod
    def from_file(cls, path: Path | str, trait_path: str | None = None) -> ImplementorFragment:
        """Read a fragment script; the trait comes from the path unless given."""
        path = Path(path)
        if trait_path is None:
            trait_path = trait_path_from_location(path)
        text = path.read_text(encoding="utf-8")
        return cls.from_js(text, trait_path=trait_path, source=str(path))

    def load(self, registry: ImplementorRegistry | None = None) -> SubmitResult:
        """Deliver the table: straight to the sink if ready, else to the queue.

        A fragment delivers at most once.

        Raises:
            RegistryStateError: If this fragment was already loaded
        """
        if self._loaded:
            raise RegistryStateError("Fragment already loaded").with_context(source=self.source)
        target = registry if registry is not None else default_registry()
        result = target.submit(self.table)
        self._loaded = True
        logger.debug(
            "fragment_loaded",
            source=self.source,
            trait=self.table.trait_path,
            crates=list(self.table.crates),
            result=result.value,
        )
        return result

    def to_payload(self) -> dict[str, list[str]]:
        """Return ``{crate: [markup, ...]}``, falling back to plain signatures."""
        return {
            crate: [descriptor.markup or descriptor.signature for descriptor in descriptors]
            for crate, descriptors in self.table.items()
        }

    def __repr__(self) -> str:
        return f"ImplementorFragment(source={self.source!r}, table={self.table!r})"


__all__ = ["ImplementorFragment"]
