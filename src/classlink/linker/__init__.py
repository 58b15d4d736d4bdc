"""Linker: class definitions, path translation, registry, resolver, materializer, watchdog."""

from .definition import ClassDefinition, Factory, Value, Installable
from .path_resolver import PathResolver, class_to_path
from .materializer import Namespace, NamespaceMaterializer
from .registry import DefinitionRegistry
from .resolver import DependencyResolver
from .watchdog import FailureWatchdog, PendingState, StallReport

__all__ = [
    'ClassDefinition',
    'Factory',
    'Value',
    'Installable',
    'PathResolver',
    'class_to_path',
    'Namespace',
    'NamespaceMaterializer',
    'DefinitionRegistry',
    'DependencyResolver',
    'FailureWatchdog',
    'PendingState',
    'StallReport',
]
