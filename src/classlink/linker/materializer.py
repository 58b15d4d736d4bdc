"""
Namespace Materialization

Installs resolved class values into a nested namespace and runs their
one-time ``on_resolved`` hook.
"""

import logging
from types import SimpleNamespace
from typing import Any, Iterator, Tuple

from .definition import ClassDefinition, Factory

logger = logging.getLogger(__name__)

RESOLVED_HOOK = "on_resolved"


class Namespace(SimpleNamespace):
    """
    Attribute container for one level of the dotted class hierarchy.

    ``ns.App.objects.Ship`` is the value installed for 'App.objects.Ship'.
    """

    def lookup(self, dotted: str) -> Any:
        """Return the object at a dotted path; AttributeError if any segment is missing."""
        node: Any = self
        for segment in dotted.split("."):
            node = getattr(node, segment)
        return node

    def contains(self, dotted: str) -> bool:
        try:
            self.lookup(dotted)
        except AttributeError:
            return False
        return True

    def walk(self, prefix: str = "") -> Iterator[Tuple[str, Any]]:
        """Yield (dotted name, value) for every leaf below this node."""
        for name, value in vars(self).items():
            dotted = f"{prefix}.{name}" if prefix else name
            if isinstance(value, Namespace):
                yield from value.walk(dotted)
            else:
                yield dotted, value


class NamespaceMaterializer:
    """
    Installs a definition's value at its dotted location.

    - walks/creates intermediate Namespace nodes
    - Factory installables are called once; Value installables are used as-is
    - an ``on_resolved`` attribute on the installed value is called right after
      installation, with no arguments

    Materialization is synchronous and happens on the caller's thread.
    """

    def __init__(self, root: Namespace = None):
        self.root = root if root is not None else Namespace()

    def parent_of(self, segments: Tuple[str, ...]) -> Any:
        """Return the object that will hold the leaf segment, creating namespaces on the way."""
        node: Any = self.root
        for segment in segments[:-1]:
            child = getattr(node, segment, None)
            if child is None:
                child = Namespace()
                setattr(node, segment, child)
            node = child
        return node

    def install(self, definition: ClassDefinition) -> Any:
        """Install the definition's value and return it. Does not run the hook."""
        segments = definition.segments
        parent = self.parent_of(segments)

        installable = definition.installable
        if isinstance(installable, Factory):
            value = installable.create()
        else:
            value = installable.value

        existing = getattr(parent, segments[-1], None)
        if isinstance(existing, Namespace) and existing is not value and vars(existing):
            logger.warning(
                f"{definition.name} replaces a namespace that already holds {sorted(vars(existing))}"
            )
        setattr(parent, segments[-1], value)
        logger.debug(f"Installed {definition.name}")
        return value

    def run_hook(self, definition: ClassDefinition, value: Any) -> None:
        hook = getattr(value, RESOLVED_HOOK, None)
        if hook is not None and callable(hook):
            logger.debug(f"Running {RESOLVED_HOOK}() for {definition.name}")
            hook()
