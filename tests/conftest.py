"""Shared pytest fixtures for implspine tests."""

from pathlib import Path

import pytest
import structlog

from implspine.models import CrateImplementorTable, ImplementorDescriptor
from implspine.registry import reset_default_registry

FIXTURES = Path(__file__).parent / "fixtures"


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark CLI and loader tests as integration, everything else as unit."""
    for item in items:
        if item.path.name in {"test_cli.py", "test_loader.py"}:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def clean_default_registry():
    """Each test starts without a process-wide registry."""
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo configure_logging() calls made by CLI and logging tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def docs_root() -> Path:
    """Docs tree holding implementors/core/ops/trait.Drop.js and core/clone/trait.Clone.js."""
    return FIXTURES / "docs"


@pytest.fixture(scope="session")
def drop_fragment_path(docs_root) -> Path:
    return docs_root / "implementors" / "core" / "ops" / "trait.Drop.js"


@pytest.fixture(scope="session")
def clone_fragment_path(docs_root) -> Path:
    return docs_root / "implementors" / "core" / "clone" / "trait.Clone.js"


@pytest.fixture
def make_table():
    """Build a one-crate table: make_table("alpha", "alpha::Token")."""

    def _make(crate: str, *type_paths: str, trait_path: str = "core::ops::Drop") -> CrateImplementorTable:
        descriptors = [ImplementorDescriptor(trait_path, type_path) for type_path in type_paths]
        return CrateImplementorTable({crate: descriptors}, trait_path=trait_path)

    return _make
