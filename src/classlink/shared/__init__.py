"""
Shared components: error types and diagnostic rendering.
"""

from .errors import (
    ClasslinkError,
    ConfigError,
    DefinitionError,
    Diagnostic,
    Label,
    format_diagnostic,
)

__all__ = [
    "ClasslinkError",
    "ConfigError",
    "DefinitionError",
    "Diagnostic",
    "Label",
    "format_diagnostic",
]
