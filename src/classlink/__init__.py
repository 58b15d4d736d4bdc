"""
classlink: dependency-driven class loader.

Classes are declared with the classes and files they need; the loader fetches
what is missing, resolves the graph (tolerating direct two-class cycles) and
installs each class into a namespace exactly once, in dependency order.
"""

from .linker import ClassDefinition, Factory, Namespace, StallReport, Value, class_to_path
from .loader import Loader
from .runtime import (
    EventLoopScheduler,
    LoadStatus,
    ManualScheduler,
    SourceFileFetcher,
    coroutine_fetcher,
)
from .shared.errors import ClasslinkError, ConfigError, DefinitionError
from .utils.config import LoaderConfig

__version__ = "0.1.0"

__all__ = [
    "Loader",
    "LoaderConfig",
    "ClassDefinition",
    "Factory",
    "Value",
    "Namespace",
    "StallReport",
    "class_to_path",
    "LoadStatus",
    "EventLoopScheduler",
    "ManualScheduler",
    "SourceFileFetcher",
    "coroutine_fetcher",
    "ClasslinkError",
    "ConfigError",
    "DefinitionError",
]
