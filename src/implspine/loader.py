"""Discovery and loading of fragment scripts from a generated docs tree.

Fragments live at ``<docs_root>/implementors/<module path>/trait.<Name>.js``.
The loader parses each into an ``ImplementorFragment`` and loads it onto a
registry. Unparseable files are logged and skipped; they never stop the
remaining fragments from loading.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from implspine.core.errors import FragmentParseError
from implspine.core.logging import LogContext, get_logger
from implspine.fragment import ImplementorFragment
from implspine.registry import ImplementorRegistry, SubmitResult

logger = get_logger(__name__)

IMPLEMENTORS_DIR = "implementors"


@dataclass
class LoadReport:
    """Outcome of loading a docs tree onto a registry."""

    loaded: list[str] = field(default_factory=list)
    queued: int = 0
    delivered: int = 0
    failed: int = 0
    skipped: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "loaded": len(self.loaded),
            "queued": self.queued,
            "delivered": self.delivered,
            "failed": self.failed,
            "skipped": dict(self.skipped),
        }


class FragmentLoader:
    """Find and load the fragment scripts under a docs root.

    Args:
        docs_root: Generated documentation root (the directory holding
            ``implementors/``), or the ``implementors`` directory itself
    """

    def __init__(self, docs_root: Path | str):
        root = Path(docs_root)
        self.implementors_dir = root if root.name == IMPLEMENTORS_DIR else root / IMPLEMENTORS_DIR

    def discover(self) -> list[Path]:
        """Fragment script paths, sorted for a stable load order."""
        if not self.implementors_dir.is_dir():
            logger.warning("implementors_dir_missing", path=str(self.implementors_dir))
            return []
        return sorted(self.implementors_dir.rglob("trait.*.js"))

    def iter_fragments(self, report: LoadReport | None = None) -> Iterator[ImplementorFragment]:
        """Parse each discovered script, recording failures in ``report``."""
        for path in self.discover():
            try:
                fragment = ImplementorFragment.from_file(path)
            except (FragmentParseError, OSError, UnicodeDecodeError) as e:
                logger.warning("fragment_skipped", path=str(path), error=str(e))
                if report is not None:
                    report.skipped[str(path)] = str(e)
                continue
            yield fragment

    def load_all(self, registry: ImplementorRegistry) -> LoadReport:
        """Load every fragment onto ``registry``, in discovery order."""
        report = LoadReport()
        with LogContext(docs_root=str(self.implementors_dir)):
            for fragment in self.iter_fragments(report):
                result = fragment.load(registry)
                report.loaded.append(fragment.source or "")
                if result is SubmitResult.QUEUED:
                    report.queued += 1
                elif result is SubmitResult.DELIVERED:
                    report.delivered += 1
                else:
                    report.failed += 1

            logger.info("fragments_loaded", **report.to_dict())
        return report


__all__ = ["FragmentLoader", "LoadReport", "IMPLEMENTORS_DIR"]
