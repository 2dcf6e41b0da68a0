"""
implspine - deferred registration of trait implementor fragments.

Generated documentation ships one fragment per crate listing the types that
implement a trait. Fragments and the page controller load in any order;
``ImplementorRegistry`` queues tables until it initializes, then delivers
each exactly once.

Example:
    >>> from implspine import FragmentLoader, ImplementorIndex, ImplementorRegistry
    >>> index = ImplementorIndex()
    >>> registry = ImplementorRegistry(sink=index)
    >>> FragmentLoader("target/doc").load_all(registry)
    >>> registry.initialize()
"""

__version__ = "0.1.0"

from implspine.fragment import ImplementorFragment
from implspine.index import ImplementorIndex
from implspine.loader import FragmentLoader, LoadReport
from implspine.models import CrateImplementorTable, ImplementorDescriptor
from implspine.registry import (
    DeliveryResult,
    ImplementorRegistry,
    PendingQueue,
    RegistryState,
    SubmitResult,
    default_registry,
    reset_default_registry,
)
from implspine.renderer import ImplementorsRenderer

__all__ = [
    "CrateImplementorTable",
    "DeliveryResult",
    "FragmentLoader",
    "ImplementorDescriptor",
    "ImplementorFragment",
    "ImplementorIndex",
    "ImplementorRegistry",
    "ImplementorsRenderer",
    "LoadReport",
    "PendingQueue",
    "RegistryState",
    "SubmitResult",
    "default_registry",
    "reset_default_registry",
    "__version__",
]
