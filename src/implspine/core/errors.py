"""
Structured error types for implspine.

Every error raised by the package derives from ``ImplspineError`` and carries
a category, optional structured context, and an optional chained cause, so
a failure can be logged with ``error.to_dict()`` without losing detail.

Architecture:
    ::

        ┌───────────────────────────────────────────────────────┐
        │                   ImplspineError                       │
        │          (category, context, cause)                    │
        ├───────────────────────────────────────────────────────┤
        │  FragmentParseError   RegistryError      DeliveryError │
        │  (PARSE)              (REGISTRY)         (DELIVERY)    │
        │                            │                           │
        │                 RegistryNotReadyError                  │
        │                 RegistryStateError                     │
        │                                                        │
        │  ConfigError          RenderError                      │
        │  (CONFIG)             (RENDER)                         │
        └───────────────────────────────────────────────────────┘

Examples:
    >>> error = FragmentParseError("no implementors assignment found")
    >>> error.with_context(source="implementors/core/ops/trait.Drop.js")
    FragmentParseError('no implementors assignment found', category=PARSE)
    >>> error.context.source
    'implementors/core/ops/trait.Drop.js'

Guardrails:
    ❌ DON'T: Raise bare Exception from library code
    ✅ DO: Use the ImplspineError subclass for the failing stage

    ❌ DON'T: Drop the original exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, implspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    PARSE = "PARSE"  # Malformed fragment script or markup
    REGISTRY = "REGISTRY"  # Registry used in the wrong state
    DELIVERY = "DELIVERY"  # Sink raised while consuming a table
    CONFIG = "CONFIG"  # Missing or invalid settings
    RENDER = "RENDER"  # Template lookup or rendering failed
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error."""

    source: str | None = None
    crate: str | None = None
    trait_path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None and empty values."""
        result: dict[str, Any] = {}
        for key in ("source", "crate", "trait_path"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ImplspineError(Exception):
    """Base class for all implspine errors.

    Subclasses set ``default_category``; callers may override it per
    instance. ``cause`` is chained onto ``__cause__`` so tracebacks show
    the original exception.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ImplspineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise FragmentParseError("bad payload").with_context(
                source="implementors/core/ops/trait.Drop.js",
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# PARSE ERRORS
# =============================================================================


class FragmentParseError(ImplspineError):
    """A fragment script or descriptor markup could not be parsed."""

    default_category = ErrorCategory.PARSE


# =============================================================================
# REGISTRY ERRORS
# =============================================================================


class RegistryError(ImplspineError):
    """Base for registry lifecycle errors."""

    default_category = ErrorCategory.REGISTRY


class RegistryNotReadyError(RegistryError):
    """The registration entry-point was called before initialization."""

    def __init__(self, message: str = "Registry has not been initialized", **kwargs: Any):
        super().__init__(message, **kwargs)


class RegistryStateError(RegistryError):
    """An operation is not valid in the registry's current state."""


class DeliveryError(ImplspineError):
    """The sink raised while consuming a table."""

    default_category = ErrorCategory.DELIVERY


# =============================================================================
# CONFIG / RENDER ERRORS
# =============================================================================


class ConfigError(ImplspineError):
    """Invalid or unreadable configuration."""

    default_category = ErrorCategory.CONFIG


class RenderError(ImplspineError):
    """A template could not be found or rendered."""

    default_category = ErrorCategory.RENDER


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ImplspineError",
    "FragmentParseError",
    "RegistryError",
    "RegistryNotReadyError",
    "RegistryStateError",
    "DeliveryError",
    "ConfigError",
    "RenderError",
]
