"""Shared infrastructure: logging, errors and settings."""

from implspine.core.errors import (
    ConfigError,
    DeliveryError,
    ErrorCategory,
    ErrorContext,
    FragmentParseError,
    ImplspineError,
    RegistryError,
    RegistryNotReadyError,
    RegistryStateError,
    RenderError,
)
from implspine.core.logging import configure_logging, get_logger
from implspine.core.settings import ImplspineSettings

__all__ = [
    "ConfigError",
    "DeliveryError",
    "ErrorCategory",
    "ErrorContext",
    "FragmentParseError",
    "ImplspineError",
    "RegistryError",
    "RegistryNotReadyError",
    "RegistryStateError",
    "RenderError",
    "configure_logging",
    "get_logger",
    "ImplspineSettings",
]
