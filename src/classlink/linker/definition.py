"""
Class Definition Types

Pure data structures describing what a caller submitted. No loading or
resolution logic lives here.
"""

import logging
from collections import abc
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

from typing_extensions import TypeAlias

from ..shared.errors import DefinitionError

logger = logging.getLogger(__name__)

# Manifest keys
CLASS_KEY = "class"
REQUIRES_KEY = "requires"
INCLUDES_KEY = "includes"
DEPENDS_KEY = "depends"
FACTORY_KEY = "factory"
VALUE_KEY = "value"

MANIFEST_KEYS = frozenset({CLASS_KEY, REQUIRES_KEY, INCLUDES_KEY, DEPENDS_KEY, FACTORY_KEY, VALUE_KEY})


@dataclass(frozen=True)
class Factory:
    """Installable produced by calling ``create()`` once, at materialization."""
    create: Callable[[], Any]

    def __repr__(self) -> str:
        return f"Factory({getattr(self.create, '__qualname__', self.create)!r})"


@dataclass(frozen=True)
class Value:
    """Installable used as-is."""
    value: Any = None


Installable: TypeAlias = Union[Factory, Value]


def _name_list(manifest: Mapping[str, Any], key: str, class_name: str) -> Tuple[str, ...]:
    """Normalize an optional list-of-names manifest entry (None/absent -> empty)."""
    raw = manifest.get(key)
    if raw is None:
        return ()
    if isinstance(raw, str) or not isinstance(raw, abc.Iterable):
        raise DefinitionError(
            f"'{key}' of class '{class_name}' must be a list of strings, got {type(raw).__name__}",
            class_name=class_name,
        )
    names = []
    for item in raw:
        if not isinstance(item, str) or not item:
            raise DefinitionError(
                f"'{key}' of class '{class_name}' contains a non-string or empty entry: {item!r}",
                class_name=class_name,
            )
        if item not in names:
            names.append(item)
    return tuple(names)


@dataclass(frozen=True)
class ClassDefinition:
    """
    A submitted class definition.

    - name: dotted path of the class (e.g. 'App.objects.Ship')
    - requires: dotted class names that must be resolved first
    - includes: file paths that must have loaded first
    - depends: opaque identifiers kept for bookkeeping and diagnostics only
    - installable: Factory or Value producing what gets installed
    """
    name: str
    requires: Tuple[str, ...] = ()
    includes: Tuple[str, ...] = ()
    depends: Tuple[str, ...] = ()
    installable: Installable = field(default_factory=Value)

    @property
    def segments(self) -> Tuple[str, ...]:
        return tuple(self.name.split("."))

    @property
    def is_ready_on_submit(self) -> bool:
        """True when nothing needs to load first, so submission materializes at once."""
        return not self.requires and not self.includes

    @classmethod
    def create(
        cls,
        name: Optional[str],
        requires: Optional[Iterable[str]] = None,
        includes: Optional[Iterable[str]] = None,
        depends: Optional[Iterable[str]] = None,
        installable: Optional[Installable] = None,
    ) -> "ClassDefinition":
        manifest = {
            CLASS_KEY: name,
            REQUIRES_KEY: list(requires) if requires is not None else None,
            INCLUDES_KEY: list(includes) if includes is not None else None,
            DEPENDS_KEY: list(depends) if depends is not None else None,
        }
        definition = cls.from_manifest(manifest)
        if installable is not None:
            definition = replace(definition, installable=installable)
        return definition

    @classmethod
    def from_manifest(cls, manifest: Mapping[str, Any]) -> "ClassDefinition":
        """
        Build a definition from a manifest mapping.

        Raises:
            DefinitionError: missing/empty 'class', malformed lists, or both
                'factory' and 'value' given
        """
        if not isinstance(manifest, Mapping):
            raise DefinitionError(f"Class definition must be a mapping, got {type(manifest).__name__}")

        name = manifest.get(CLASS_KEY)
        if name is None:
            raise DefinitionError("Missing 'class' key in class definition!")
        if not isinstance(name, str) or not name.strip():
            raise DefinitionError(f"'class' must be a non-empty dotted name, got {name!r}")
        if any(not part for part in name.split(".")):
            raise DefinitionError(f"Malformed class name '{name}'", class_name=name)

        unknown = set(manifest) - MANIFEST_KEYS
        if unknown:
            logger.debug(f"Ignoring unknown manifest keys for {name}: {sorted(unknown)}")

        if FACTORY_KEY in manifest and VALUE_KEY in manifest:
            raise DefinitionError(
                f"Class '{name}' gives both 'factory' and 'value'; pick one", class_name=name
            )
        if FACTORY_KEY in manifest:
            factory = manifest[FACTORY_KEY]
            if not callable(factory):
                raise DefinitionError(f"'factory' of class '{name}' is not callable", class_name=name)
            installable: Installable = Factory(factory)
        else:
            installable = Value(manifest.get(VALUE_KEY))

        return cls(
            name=name,
            requires=_name_list(manifest, REQUIRES_KEY, name),
            includes=_name_list(manifest, INCLUDES_KEY, name),
            depends=_name_list(manifest, DEPENDS_KEY, name),
            installable=installable,
        )

    def __str__(self) -> str:
        """Human-readable representation"""
        parts = [self.name]
        if self.requires:
            parts.append(f"requires={list(self.requires)}")
        if self.includes:
            parts.append(f"includes={list(self.includes)}")
        if self.depends:
            parts.append(f"depends={list(self.depends)}")
        return " ".join(parts)
